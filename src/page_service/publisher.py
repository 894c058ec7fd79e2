"""Publish pipeline: draft -> published -> draft.

Publishing copies every valid locale tree into the live snapshot and flips
the page status in a single gateway write. Until that write succeeds the
previous live snapshot (or nothing, for a page never published) keeps
serving.
"""

import logging
from typing import Dict, Optional

from src.node_store.errors import IntegrityError
from src.node_store.models import ValidatedTree
from src.node_store.node_store import NodeStore
from src.persistence.errors import LocaleContentNotFoundError
from src.persistence.gateway import PersistenceGateway
from src.persistence.models import LiveSnapshot, Page, PageStatus

from .errors import PublishError

logger = logging.getLogger(__name__)


class Publisher:
    """Moves pages between draft and published.

    Example:
        >>> publisher = Publisher(gateway)
        >>> publisher.publish(page_id)
        >>> publisher.get_published_tree("about", "fi")
    """

    def __init__(self, gateway: PersistenceGateway, node_store: Optional[NodeStore] = None):
        self.gateway = gateway
        self.node_store = node_store or NodeStore()

    def publish(self, page_id: str) -> LiveSnapshot:
        """Publish the current content of a page.

        Locales whose tree fails validation are left out of the live
        snapshot. Publishing an already published page refreshes its live
        snapshot.

        Raises:
            PublishError: If no locale has a valid tree
            ConflictError: If the page changed while publishing
        """
        snapshot = self.gateway.read_snapshot(page_id)
        if snapshot.page.is_published:
            logger.info(f"Republishing page {page_id}")

        trees: Dict[str, ValidatedTree] = {}
        for locale, content in snapshot.contents.items():
            try:
                trees[locale] = self.node_store.validate(content.tree.to_node_map())
            except IntegrityError as e:
                logger.warning(f"Leaving '{locale}' out of publication of {page_id}: {e}")

        if not trees:
            raise PublishError(page_id, "no locale has a valid tree")

        live = self.gateway.write_live(page_id, trees, snapshot.version)
        logger.info(
            f"Published page {page_id} ({', '.join(sorted(trees))}) "
            f"at {live.source_version}"
        )
        return live

    def unpublish(self, page_id: str) -> Page:
        """Take a published page offline.

        Raises:
            PublishError: If the page is not published
        """
        page = self.gateway.get_page(page_id)
        if not page.is_published:
            raise PublishError(page_id, "page is not published")
        page = self.gateway.set_status(page_id, PageStatus.DRAFT)
        logger.info(f"Unpublished page {page_id}")
        return page

    def get_published_tree(self, slug: str, locale: str) -> ValidatedTree:
        """Tree served to visitors for a slug and locale.

        Raises:
            PageNotFoundError: If no page has the slug
            PublishError: If the page is not published
            LocaleContentNotFoundError: If the locale was not published
        """
        page = self.gateway.get_page_by_slug(slug)
        if not page.is_published:
            raise PublishError(page.page_id, "page is not published")
        live = self.gateway.read_live(page.page_id)
        if live is None or locale not in live.trees:
            raise LocaleContentNotFoundError(page.page_id, locale)
        return live.trees[locale]
