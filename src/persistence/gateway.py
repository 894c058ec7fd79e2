"""Abstract persistence gateway for pages, locale trees and translation metadata.

Every write is all-or-nothing and guarded by optimistic concurrency: reads
return an opaque version token, and writes must present the token they
read. A stale token raises ConflictError and nothing is written.
"""

import logging
import re
import uuid
from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, Tuple

from src.node_store.models import ValidatedTree
from src.translation_status.models import MetaMap

from .errors import ConflictError, LocaleContentNotFoundError, PersistenceFailure
from .models import LiveSnapshot, Page, PageSnapshot, PageStatus, SeoFields

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r'^v(\d+)$')


def format_version(number: int) -> str:
    return f"v{number}"


def parse_version(page_id: str, token: str) -> int:
    """Parse a "v<N>" version token.

    Raises:
        ConflictError: If the token is malformed (it can never match)
    """
    match = VERSION_PATTERN.match(token or "")
    if not match:
        raise ConflictError(page_id, str(token), "a valid version token")
    return int(match.group(1))


def new_page_id() -> str:
    return uuid.uuid4().hex


class PersistenceGateway(ABC):
    """Storage interface used by the page service.

    Implementations: InMemoryGateway (tests, embedding) and FileGateway
    (JSON files with a two-phase version pointer).
    """

    @abstractmethod
    def create_page(
        self, slug: str, title: str, default_locale: str, tree: ValidatedTree
    ) -> PageSnapshot:
        """Create a page together with its first locale content.

        Raises:
            SlugExistsError: If the slug is taken
        """

    @abstractmethod
    def get_page(self, page_id: str) -> Page:
        """Raises PageNotFoundError if the page does not exist."""

    @abstractmethod
    def get_page_by_slug(self, slug: str) -> Page:
        """Raises PageNotFoundError if no page has the slug."""

    @abstractmethod
    def list_pages(self) -> List[Page]:
        """All pages, ordered by slug."""

    @abstractmethod
    def read_snapshot(self, page_id: str) -> PageSnapshot:
        """Read the current version of everything stored for a page."""

    def read_tree(self, page_id: str, locale: str) -> Tuple[ValidatedTree, str]:
        """Read one locale's tree together with the page version token.

        Raises:
            PageNotFoundError: If the page does not exist
            LocaleContentNotFoundError: If the locale has no content
        """
        snapshot = self.read_snapshot(page_id)
        tree = snapshot.tree(locale)
        if tree is None:
            raise LocaleContentNotFoundError(page_id, locale)
        return tree, snapshot.version

    @abstractmethod
    def write_all(
        self,
        page_id: str,
        trees: Mapping[str, ValidatedTree],
        metas: MetaMap,
        expected_version: str,
        seo: Optional[Mapping[str, SeoFields]] = None,
    ) -> str:
        """Atomically replace locale trees and the page's translation metadata.

        Locales absent from trees keep their stored content. metas replaces
        the stored metadata as a whole.

        Returns:
            The new version token

        Raises:
            ConflictError: If expected_version is not the stored version
            PersistenceFailure: If the write fails (nothing is written)
        """

    @abstractmethod
    def write_live(
        self, page_id: str, trees: Mapping[str, ValidatedTree], expected_version: str
    ) -> LiveSnapshot:
        """Atomically replace the live snapshot and mark the page published."""

    @abstractmethod
    def set_status(self, page_id: str, status: PageStatus) -> Page:
        """Change the publication status of a page."""

    @abstractmethod
    def read_live(self, page_id: str) -> Optional[LiveSnapshot]:
        """The last published snapshot, or None if never published."""

    @abstractmethod
    def delete_locale(
        self, page_id: str, locale: str, metas: MetaMap, expected_version: str
    ) -> str:
        """Atomically remove one locale's content and replace the metadata."""

    @abstractmethod
    def delete_page(self, page_id: str) -> None:
        """Remove a page and everything stored for it."""

    def _check_version(self, page_id: str, expected_version: str, current: int) -> None:
        if parse_version(page_id, expected_version) != current:
            logger.info(
                f"Rejecting write to page {page_id}: version {expected_version} "
                f"is stale (current {format_version(current)})"
            )
            raise ConflictError(page_id, expected_version, format_version(current))

    def _check_locale_count(self, page_id: str, remaining: int) -> None:
        if remaining < 1:
            raise PersistenceFailure(
                page_id, 'delete_locale', "cannot delete the last locale of a page"
            )
