"""Data models for stored pages and their per-locale content.

This module defines the page row, the per-locale content rows and the
snapshot objects returned by a persistence gateway. Trees are held as
ValidatedTree values; gateways that write to disk serialize them with the
node store's wire codec.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from src.node_store.models import ValidatedTree
from src.translation_status.models import MetaMap


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class PageStatus(Enum):
    """Publication state of a page."""

    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass
class Page:
    """Identity row of a page.

    Attributes:
        page_id: Stable page id
        slug: Unique URL slug
        title: Human readable title (admin listings only)
        default_locale: Locale the page was created in
        status: Publication state
        created_at: ISO 8601 creation time
        updated_at: ISO 8601 time of the last write
        published_at: ISO 8601 time of the last publish
    """
    page_id: str
    slug: str
    title: str
    default_locale: str
    status: PageStatus = PageStatus.DRAFT
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    published_at: Optional[str] = None

    @property
    def is_published(self) -> bool:
        return self.status == PageStatus.PUBLISHED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'page_id': self.page_id,
            'slug': self.slug,
            'title': self.title,
            'default_locale': self.default_locale,
            'status': self.status.value,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'published_at': self.published_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        return cls(
            page_id=data['page_id'],
            slug=data['slug'],
            title=data.get('title', ''),
            default_locale=data['default_locale'],
            status=PageStatus(data.get('status', PageStatus.DRAFT.value)),
            created_at=data['created_at'],
            updated_at=data['updated_at'],
            published_at=data.get('published_at'),
        )


@dataclass
class SeoFields:
    """SEO fields of one locale. None leaves the stored value unchanged."""
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    featured_image: Optional[str] = None


@dataclass
class LocaleContent:
    """Content of one page in one locale."""
    locale: str
    tree: ValidatedTree
    seo_title: str = ""
    seo_description: str = ""
    featured_image: Optional[str] = None
    updated_at: str = field(default_factory=utc_now)

    def with_seo(self, seo: Optional[SeoFields]) -> "LocaleContent":
        if seo is None:
            return self
        return LocaleContent(
            locale=self.locale,
            tree=self.tree,
            seo_title=self.seo_title if seo.seo_title is None else seo.seo_title,
            seo_description=(
                self.seo_description if seo.seo_description is None else seo.seo_description
            ),
            featured_image=(
                self.featured_image if seo.featured_image is None else seo.featured_image
            ),
            updated_at=self.updated_at,
        )


@dataclass
class PageSnapshot:
    """Everything stored for a page at one version.

    Attributes:
        page: Identity row
        contents: LocaleContent per locale
        metas: Translation provenance per node
        version: Opaque version token; writes must send it back
    """
    page: Page
    contents: Dict[str, LocaleContent]
    metas: MetaMap
    version: str

    @property
    def locales(self) -> List[str]:
        return sorted(self.contents)

    def tree(self, locale: str) -> Optional[ValidatedTree]:
        content = self.contents.get(locale)
        return content.tree if content is not None else None

    def trees(self) -> Dict[str, ValidatedTree]:
        return {locale: content.tree for locale, content in self.contents.items()}


@dataclass
class LiveSnapshot:
    """The published copy of a page, served to visitors."""
    page_id: str
    trees: Dict[str, ValidatedTree]
    source_version: str
    published_at: str = field(default_factory=utc_now)
