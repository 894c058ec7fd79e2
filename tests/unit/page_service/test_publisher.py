"""Unit tests for page_service.publisher module."""

import pytest

from src.node_store.errors import IntegrityError
from src.page_service.errors import PublishError
from src.page_service.publisher import Publisher
from src.persistence.errors import ConflictError, LocaleContentNotFoundError, PageNotFoundError
from src.persistence.models import PageStatus


@pytest.fixture
def publisher(memory_gateway):
    return Publisher(memory_gateway)


@pytest.fixture
def page(memory_gateway, en_tree, fi_tree):
    snapshot = memory_gateway.create_page("about", "About us", "en", en_tree)
    memory_gateway.write_all(snapshot.page.page_id, {"fi": fi_tree}, {}, snapshot.version)
    return memory_gateway.read_snapshot(snapshot.page.page_id)


class TestPublish:
    """Test cases for Publisher.publish()."""

    def test_publish_copies_every_locale(self, publisher, memory_gateway, page, fi_tree):
        live = publisher.publish(page.page.page_id)

        assert sorted(live.trees) == ["en", "fi"]
        assert live.source_version == "v2"
        assert memory_gateway.get_page(page.page.page_id).status == PageStatus.PUBLISHED
        assert publisher.get_published_tree("about", "fi") == fi_tree

    def test_republish_refreshes_live_copy(self, publisher, memory_gateway, page, node_store):
        page_id = page.page.page_id
        publisher.publish(page_id)
        memory_gateway.write_all(page_id, {"fi": node_store.empty_tree()}, {}, page.version)

        live = publisher.publish(page_id)

        assert live.source_version == "v3"
        assert list(publisher.get_published_tree("about", "fi")) == ["ROOT"]

    def test_invalid_locale_is_left_out(self, publisher, page, mocker):
        original = publisher.node_store.validate

        def validate(node_map):
            if node_map["T1"].props["text"] == "Tervetuloa":
                raise IntegrityError("broken", "T1")
            return original(node_map)

        mocker.patch.object(publisher.node_store, "validate", side_effect=validate)

        live = publisher.publish(page.page.page_id)

        assert list(live.trees) == ["en"]

    def test_no_valid_locale(self, publisher, page, mocker):
        mocker.patch.object(
            publisher.node_store, "validate", side_effect=IntegrityError("broken")
        )

        with pytest.raises(PublishError, match="no locale"):
            publisher.publish(page.page.page_id)

    def test_publish_checks_version(self, publisher, memory_gateway, page, mocker):
        """A write between reading and publishing must not be published."""
        mocker.patch.object(
            memory_gateway, "write_live",
            side_effect=ConflictError(page.page.page_id, "v2", "v3"),
        )

        with pytest.raises(ConflictError):
            publisher.publish(page.page.page_id)


class TestUnpublish:
    """Test cases for Publisher.unpublish() and get_published_tree()."""

    def test_unpublish(self, publisher, page):
        publisher.publish(page.page.page_id)

        result = publisher.unpublish(page.page.page_id)

        assert result.status == PageStatus.DRAFT
        with pytest.raises(PublishError):
            publisher.get_published_tree("about", "en")

    def test_unpublish_draft(self, publisher, page):
        with pytest.raises(PublishError, match="not published"):
            publisher.unpublish(page.page.page_id)

    def test_draft_is_not_served(self, publisher, page):
        with pytest.raises(PublishError):
            publisher.get_published_tree("about", "en")

    def test_unknown_slug(self, publisher):
        with pytest.raises(PageNotFoundError):
            publisher.get_published_tree("missing", "en")

    def test_unpublished_locale(self, publisher, page):
        publisher.publish(page.page.page_id)

        with pytest.raises(LocaleContentNotFoundError):
            publisher.get_published_tree("about", "sv")
