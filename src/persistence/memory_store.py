"""In-memory persistence gateway.

Pages live in a dict guarded by a single lock. Each write builds a complete
new record and swaps it in, so readers never see a half-applied write.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from src.node_store.models import ValidatedTree
from src.translation_status.models import MetaMap

from .errors import LocaleContentNotFoundError, PageNotFoundError, SlugExistsError
from .gateway import PersistenceGateway, format_version, new_page_id
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


@dataclass
class _PageRecord:
    page: Page
    contents: Dict[str, LocaleContent]
    metas: MetaMap
    version: int = 1
    live: Optional[LiveSnapshot] = None


def _copy_metas(metas: MetaMap) -> MetaMap:
    return {node_id: meta.copy() for node_id, meta in metas.items()}


def _copy_page(page: Page) -> Page:
    return Page.from_dict(page.to_dict())


class InMemoryGateway(PersistenceGateway):
    """Thread-safe dict-backed gateway.

    Example:
        >>> gateway = InMemoryGateway()
        >>> snapshot = gateway.create_page("about", "About", "en", tree)
        >>> gateway.read_tree(snapshot.page.page_id, "en")
        (ValidatedTree(root='ROOT', nodes=1), 'v1')
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, _PageRecord] = {}

    def create_page(
        self, slug: str, title: str, default_locale: str, tree: ValidatedTree
    ) -> PageSnapshot:
        with self._lock:
            if any(r.page.slug == slug for r in self._records.values()):
                raise SlugExistsError(slug)
            page = Page(
                page_id=new_page_id(),
                slug=slug,
                title=title,
                default_locale=default_locale,
            )
            record = _PageRecord(
                page=page,
                contents={default_locale: LocaleContent(locale=default_locale, tree=tree)},
                metas={},
            )
            self._records[page.page_id] = record
            logger.debug(f"Created page {page.page_id} ('{slug}')")
            return self._snapshot(record)

    def get_page(self, page_id: str) -> Page:
        with self._lock:
            return _copy_page(self._record(page_id).page)

    def get_page_by_slug(self, slug: str) -> Page:
        with self._lock:
            for record in self._records.values():
                if record.page.slug == slug:
                    return _copy_page(record.page)
        raise PageNotFoundError(slug)

    def list_pages(self) -> List[Page]:
        with self._lock:
            pages = [_copy_page(r.page) for r in self._records.values()]
        return sorted(pages, key=lambda p: p.slug)

    def read_snapshot(self, page_id: str) -> PageSnapshot:
        with self._lock:
            return self._snapshot(self._record(page_id))

    def write_all(
        self,
        page_id: str,
        trees: Mapping[str, ValidatedTree],
        metas: MetaMap,
        expected_version: str,
        seo: Optional[Mapping[str, SeoFields]] = None,
    ) -> str:
        with self._lock:
            record = self._record(page_id)
            self._check_version(page_id, expected_version, record.version)

            now = utc_now()
            contents = dict(record.contents)
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

            page = _copy_page(record.page)
            page.updated_at = now
            self._records[page_id] = _PageRecord(
                page=page,
                contents=contents,
                metas=_copy_metas(metas),
                version=record.version + 1,
                live=record.live,
            )
            return format_version(record.version + 1)

    def write_live(
        self, page_id: str, trees: Mapping[str, ValidatedTree], expected_version: str
    ) -> LiveSnapshot:
        with self._lock:
            record = self._record(page_id)
            self._check_version(page_id, expected_version, record.version)

            live = LiveSnapshot(
                page_id=page_id,
                trees=dict(trees),
                source_version=format_version(record.version),
            )
            record.page = _copy_page(record.page)
            record.page.status = PageStatus.PUBLISHED
            record.page.published_at = live.published_at
            record.live = live
            return live

    def set_status(self, page_id: str, status: PageStatus) -> Page:
        with self._lock:
            record = self._record(page_id)
            record.page = _copy_page(record.page)
            record.page.status = status
            record.page.updated_at = utc_now()
            return _copy_page(record.page)

    def read_live(self, page_id: str) -> Optional[LiveSnapshot]:
        with self._lock:
            return self._record(page_id).live

    def delete_locale(
        self, page_id: str, locale: str, metas: MetaMap, expected_version: str
    ) -> str:
        with self._lock:
            record = self._record(page_id)
            self._check_version(page_id, expected_version, record.version)
            if locale not in record.contents:
                raise LocaleContentNotFoundError(page_id, locale)
            self._check_locale_count(page_id, len(record.contents) - 1)

            contents = {k: v for k, v in record.contents.items() if k != locale}
            page = _copy_page(record.page)
            page.updated_at = utc_now()
            self._records[page_id] = _PageRecord(
                page=page,
                contents=contents,
                metas=_copy_metas(metas),
                version=record.version + 1,
                live=record.live,
            )
            return format_version(record.version + 1)

    def delete_page(self, page_id: str) -> None:
        with self._lock:
            self._record(page_id)
            del self._records[page_id]

    def _record(self, page_id: str) -> _PageRecord:
        record = self._records.get(page_id)
        if record is None:
            raise PageNotFoundError(page_id)
        return record

    def _snapshot(self, record: _PageRecord) -> PageSnapshot:
        return PageSnapshot(
            page=_copy_page(record.page),
            contents=dict(record.contents),
            metas=_copy_metas(record.metas),
            version=format_version(record.version),
        )
