"""File-backed persistence gateway with two-phase version commits.

Layout under data_dir:

    pages/<page_id>/
        page.json                  page row (slug, status, timestamps)
        CURRENT                    name of the committed version, e.g. "v3"
        versions/v3/meta.json      translation metadata
        versions/v3/content/en.json
        versions/v3/content/fi.json
        live.json                  last published snapshot
        .lock                      advisory lock for writers

A write stages a complete new version directory, renames it into place,
then flips CURRENT with os.replace. Readers only follow CURRENT, so a crash
at any point leaves the previous version fully readable.
"""

import json
import logging
import os
import re
import shutil
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

# Import fcntl for POSIX file locking (not available on Windows)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

from src.node_store.errors import IntegrityError
from src.node_store.models import ValidatedTree
from src.node_store.node_store import NodeStore
from src.translation_status.models import BlockTranslationMeta, MetaMap

from .errors import (
    LocaleContentNotFoundError,
    PageNotFoundError,
    PersistenceFailure,
    SlugExistsError,
)
from .gateway import (
    VERSION_PATTERN,
    PersistenceGateway,
    format_version,
    new_page_id,
    parse_version,
)
from .models import (
    LiveSnapshot,
    LocaleContent,
    Page,
    PageSnapshot,
    PageStatus,
    SeoFields,
    utc_now,
)

logger = logging.getLogger(__name__)

PAGE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
LOCALE_PATTERN = re.compile(r'^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})?$')

# Committed versions kept on disk, including the current one
DEFAULT_RETENTION = 5


class FileGateway(PersistenceGateway):
    """Persists pages as JSON files under a data directory.

    Example:
        >>> gateway = FileGateway(Path(".page-sync/data"))
        >>> snapshot = gateway.create_page("about", "About", "en", tree)
        >>> gateway.write_all(snapshot.page.page_id, {"fi": fi_tree}, {}, snapshot.version)
        'v2'
    """

    def __init__(
        self,
        data_dir: Path,
        node_store: Optional[NodeStore] = None,
        retention: int = DEFAULT_RETENTION,
        lock_timeout: float = 30.0,
    ):
        self.data_dir = Path(data_dir)
        self.pages_dir = self.data_dir / "pages"
        self.node_store = node_store or NodeStore()
        self.retention = max(1, retention)
        self.lock_timeout = lock_timeout

    # Pages

    def create_page(
        self, slug: str, title: str, default_locale: str, tree: ValidatedTree
    ) -> PageSnapshot:
        self._validate_locale(default_locale)
        with self._acquire_lock(self.data_dir / ".lock", "store"):
            if self._find_by_slug(slug) is not None:
                raise SlugExistsError(slug)

            page = Page(
                page_id=new_page_id(),
                slug=slug,
                title=title,
                default_locale=default_locale,
            )
            page_dir = self._page_dir(page.page_id)
            content = LocaleContent(locale=default_locale, tree=tree)
            try:
                page_dir.mkdir(parents=True, exist_ok=False)
                self._commit_version(page.page_id, 1, {default_locale: content}, {})
                self._write_json_atomic(page_dir / "page.json", page.to_dict())
            except PersistenceFailure:
                shutil.rmtree(page_dir, ignore_errors=True)
                raise
            except OSError as e:
                shutil.rmtree(page_dir, ignore_errors=True)
                raise PersistenceFailure(page.page_id, 'create_page', str(e)) from e

        logger.debug(f"Created page {page.page_id} ('{slug}') in {page_dir}")
        return PageSnapshot(
            page=page,
            contents={default_locale: content},
            metas={},
            version=format_version(1),
        )

    def get_page(self, page_id: str) -> Page:
        return self._load_page(page_id)

    def get_page_by_slug(self, slug: str) -> Page:
        page = self._find_by_slug(slug)
        if page is None:
            raise PageNotFoundError(slug)
        return page

    def list_pages(self) -> List[Page]:
        return sorted(self._iter_pages(), key=lambda p: p.slug)

    def read_snapshot(self, page_id: str) -> PageSnapshot:
        page = self._load_page(page_id)
        version = self._current_version(page_id)
        version_dir = self._version_dir(page_id, version)

        contents: Dict[str, LocaleContent] = {}
        content_dir = version_dir / "content"
        for path in sorted(content_dir.glob("*.json")):
            content = self._load_locale_content(page_id, path)
            contents[content.locale] = content

        raw_metas = self._read_json(page_id, version_dir / "meta.json")
        metas = {
            node_id: BlockTranslationMeta.from_dict(data)
            for node_id, data in raw_metas.items()
        }
        return PageSnapshot(
            page=page, contents=contents, metas=metas, version=format_version(version)
        )

    # Writes

    def write_all(
        self,
        page_id: str,
        trees: Mapping[str, ValidatedTree],
        metas: MetaMap,
        expected_version: str,
        seo: Optional[Mapping[str, SeoFields]] = None,
    ) -> str:
        for locale in trees:
            self._validate_locale(locale)

        with self._acquire_lock(self._page_dir(page_id) / ".lock", page_id):
            snapshot = self.read_snapshot(page_id)
            current = parse_version(page_id, snapshot.version)
            self._check_version(page_id, expected_version, current)

            now = utc_now()
            contents = dict(snapshot.contents)
            for locale, tree in trees.items():
                previous = contents.get(locale)
                contents[locale] = LocaleContent(
                    locale=locale,
                    tree=tree,
                    seo_title=previous.seo_title if previous else "",
                    seo_description=previous.seo_description if previous else "",
                    featured_image=previous.featured_image if previous else None,
                    updated_at=now,
                )
            for locale, fields in (seo or {}).items():
                if locale not in contents:
                    raise LocaleContentNotFoundError(page_id, locale)
                contents[locale] = contents[locale].with_seo(fields)

            new_version = current + 1
            self._commit_version(page_id, new_version, contents, metas)
            self._touch_page(snapshot.page)
            logger.debug(
                f"Committed page {page_id} {format_version(new_version)} "
                f"({', '.join(sorted(trees)) or 'metadata only'})"
            )
            return format_version(new_version)

    def write_live(
        self, page_id: str, trees: Mapping[str, ValidatedTree], expected_version: str
    ) -> LiveSnapshot:
        page_dir = self._page_dir(page_id)
        with self._acquire_lock(page_dir / ".lock", page_id):
            page = self._load_page(page_id)
            current = self._current_version(page_id)
            self._check_version(page_id, expected_version, current)

            live = LiveSnapshot(
                page_id=page_id,
                trees=dict(trees),
                source_version=format_version(current),
            )
            data = {
                'page_id': page_id,
                'source_version': live.source_version,
                'published_at': live.published_at,
                'trees': {
                    locale: self.node_store.to_wire(tree) for locale, tree in trees.items()
                },
            }
            page.status = PageStatus.PUBLISHED
            page.published_at = live.published_at
            try:
                self._write_json_atomic(page_dir / "live.json", data)
                self._write_json_atomic(page_dir / "page.json", page.to_dict())
            except OSError as e:
                raise PersistenceFailure(page_id, 'write_live', str(e)) from e
            return live

    def set_status(self, page_id: str, status: PageStatus) -> Page:
        page_dir = self._page_dir(page_id)
        with self._acquire_lock(page_dir / ".lock", page_id):
            page = self._load_page(page_id)
            page.status = status
            page.updated_at = utc_now()
            try:
                self._write_json_atomic(page_dir / "page.json", page.to_dict())
            except OSError as e:
                raise PersistenceFailure(page_id, 'set_status', str(e)) from e
            return page

    def read_live(self, page_id: str) -> Optional[LiveSnapshot]:
        self._load_page(page_id)
        path = self._page_dir(page_id) / "live.json"
        if not path.exists():
            return None
        data = self._read_json(page_id, path)
        try:
            trees = {
                locale: self.node_store.from_wire(wire)
                for locale, wire in data['trees'].items()
            }
        except IntegrityError as e:
            raise PersistenceFailure(page_id, 'read_live', str(e)) from e
        return LiveSnapshot(
            page_id=page_id,
            trees=trees,
            source_version=data['source_version'],
            published_at=data['published_at'],
        )

    def delete_locale(
        self, page_id: str, locale: str, metas: MetaMap, expected_version: str
    ) -> str:
        with self._acquire_lock(self._page_dir(page_id) / ".lock", page_id):
            snapshot = self.read_snapshot(page_id)
            current = parse_version(page_id, snapshot.version)
            self._check_version(page_id, expected_version, current)
            if locale not in snapshot.contents:
                raise LocaleContentNotFoundError(page_id, locale)
            self._check_locale_count(page_id, len(snapshot.contents) - 1)

            contents = {k: v for k, v in snapshot.contents.items() if k != locale}
            self._commit_version(page_id, current + 1, contents, metas)
            self._touch_page(snapshot.page)
            return format_version(current + 1)

    def delete_page(self, page_id: str) -> None:
        page_dir = self._page_dir(page_id)
        self._load_page(page_id)
        with self._acquire_lock(self.data_dir / ".lock", "store"), \
                self._acquire_lock(page_dir / ".lock", page_id):
            try:
                shutil.rmtree(page_dir)
            except OSError as e:
                raise PersistenceFailure(page_id, 'delete_page', str(e)) from e
        logger.debug(f"Deleted page {page_id}")

    # Two-phase commit

    def _commit_version(
        self,
        page_id: str,
        version: int,
        contents: Mapping[str, LocaleContent],
        metas: MetaMap,
    ) -> None:
        """Stage a complete version directory, then flip CURRENT to it.

        Phase 1: write every file into a staging directory and rename it to
        versions/v<N>. Phase 2: replace CURRENT. On failure in phase 1 the
        staging directory is removed and CURRENT still names the old version.

        Raises:
            PersistenceFailure: If any file operation fails
        """
        versions_dir = self._page_dir(page_id) / "versions"
        staging_dir = versions_dir / f".staging-{uuid.uuid4().hex}"
        final_dir = versions_dir / format_version(version)

        try:
            (staging_dir / "content").mkdir(parents=True)
            for locale, content in contents.items():
                self._write_json(
                    staging_dir / "content" / f"{locale}.json",
                    self._locale_content_to_dict(content),
                )
            self._write_json(
                staging_dir / "meta.json",
                {node_id: meta.to_dict() for node_id, meta in metas.items()},
            )
            if final_dir.exists():
                # Left behind by a crash between rename and CURRENT flip
                shutil.rmtree(final_dir)
            os.replace(staging_dir, final_dir)
        except OSError as e:
            logger.error(f"Staging {format_version(version)} of page {page_id} failed: {e}")
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise PersistenceFailure(page_id, 'write_all', f"staging failed: {e}") from e

        try:
            self._write_text_atomic(
                self._page_dir(page_id) / "CURRENT", format_version(version)
            )
        except OSError as e:
            logger.error(f"Committing {format_version(version)} of page {page_id} failed: {e}")
            raise PersistenceFailure(page_id, 'write_all', f"commit failed: {e}") from e

        self._prune_versions(page_id, version)

    def _prune_versions(self, page_id: str, current: int) -> None:
        versions_dir = self._page_dir(page_id) / "versions"
        for path in versions_dir.iterdir():
            match = VERSION_PATTERN.match(path.name)
            if match and int(match.group(1)) <= current - self.retention:
                shutil.rmtree(path, ignore_errors=True)

    # Locking

    @contextmanager
    def _acquire_lock(self, lock_path: Path, name: str) -> Iterator[None]:
        """Hold an exclusive advisory lock on lock_path.

        Raises:
            PersistenceFailure: If the lock cannot be acquired within the timeout
        """
        if not lock_path.parent.exists():
            if lock_path.parent == self.data_dir:
                lock_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                raise PageNotFoundError(name)

        with open(lock_path, 'w') as lock_file:
            if not HAS_FCNTL:
                logger.warning(
                    "File locking not available on this platform. "
                    "Concurrent writes may overwrite each other."
                )
                yield
                return

            start_time = time.time()
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except IOError:
                    if time.time() - start_time > self.lock_timeout:
                        raise PersistenceFailure(
                            name, 'lock',
                            f"timeout after {self.lock_timeout}s, another write may be in progress",
                        )
                    time.sleep(0.05)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    # File helpers

    def _page_dir(self, page_id: str) -> Path:
        if not page_id or not PAGE_ID_PATTERN.match(page_id):
            raise ValueError(
                f"Invalid page_id format: '{page_id}'. "
                f"Page IDs may contain only letters, digits, '-' and '_'."
            )
        return self.pages_dir / page_id

    def _version_dir(self, page_id: str, version: int) -> Path:
        return self._page_dir(page_id) / "versions" / format_version(version)

    def _validate_locale(self, locale: str) -> None:
        if not LOCALE_PATTERN.match(locale or ""):
            raise ValueError(f"Invalid locale code: '{locale}'")

    def _current_version(self, page_id: str) -> int:
        path = self._page_dir(page_id) / "CURRENT"
        try:
            token = path.read_text(encoding='utf-8').strip()
        except FileNotFoundError:
            raise PageNotFoundError(page_id)
        except OSError as e:
            raise PersistenceFailure(page_id, 'read', str(e)) from e
        return parse_version(page_id, token)

    def _load_page(self, page_id: str) -> Page:
        path = self._page_dir(page_id) / "page.json"
        if not path.exists():
            raise PageNotFoundError(page_id)
        return Page.from_dict(self._read_json(page_id, path))

    def _touch_page(self, page: Page) -> None:
        page.updated_at = utc_now()
        try:
            self._write_json_atomic(self._page_dir(page.page_id) / "page.json", page.to_dict())
        except OSError as e:
            # Content is already committed; only the timestamp is stale
            logger.warning(f"Failed to update page row of {page.page_id}: {e}")

    def _iter_pages(self) -> Iterator[Page]:
        if not self.pages_dir.exists():
            return
        for page_dir in sorted(self.pages_dir.iterdir()):
            if (page_dir / "page.json").exists():
                yield self._load_page(page_dir.name)

    def _find_by_slug(self, slug: str) -> Optional[Page]:
        for page in self._iter_pages():
            if page.slug == slug:
                return page
        return None

    def _load_locale_content(self, page_id: str, path: Path) -> LocaleContent:
        data = self._read_json(page_id, path)
        try:
            tree = self.node_store.from_wire(data['tree'])
        except IntegrityError as e:
            raise PersistenceFailure(page_id, 'read', f"{path.name}: {e}") from e
        return LocaleContent(
            locale=data['locale'],
            tree=tree,
            seo_title=data.get('seo_title', ""),
            seo_description=data.get('seo_description', ""),
            featured_image=data.get('featured_image'),
            updated_at=data.get('updated_at') or utc_now(),
        )

    def _locale_content_to_dict(self, content: LocaleContent) -> Dict[str, Any]:
        return {
            'locale': content.locale,
            'tree': self.node_store.to_wire(content.tree),
            'seo_title': content.seo_title,
            'seo_description': content.seo_description,
            'featured_image': content.featured_image,
            'updated_at': content.updated_at,
        }

    def _read_json(self, page_id: str, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            raise PersistenceFailure(page_id, 'read', f"missing {path.name}")
        except (OSError, ValueError) as e:
            raise PersistenceFailure(page_id, 'read', f"{path.name}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _write_json_atomic(self, path: Path, data: Any) -> None:
        self._write_text_atomic(path, json.dumps(data, ensure_ascii=False, indent=2))

    def _write_text_atomic(self, path: Path, text: str) -> None:
        temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(temp_path, path)
        finally:
            if temp_path.exists():
                temp_path.unlink()
