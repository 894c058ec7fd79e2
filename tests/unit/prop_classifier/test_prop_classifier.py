"""Unit tests for prop_classifier module."""

import pytest

from src.node_store.models import Node
from src.prop_classifier.errors import UnknownPropError
from src.prop_classifier.models import PropKind, UnknownPropPolicy
from src.prop_classifier.prop_classifier import PropClassifier
from src.prop_classifier.registry import COMPONENT_REGISTRY
from tests.fixtures.page_trees import sample_page_wire, tree, wire_node


class TestClassify:
    """Test cases for PropClassifier.classify()."""

    @pytest.mark.parametrize("component_type,prop_name,expected", [
        ("Text", "text", PropKind.TRANSLATABLE),
        ("Text", "fontSize", PropKind.STRUCTURAL),
        ("Button", "href", PropKind.STRUCTURAL),
        ("Section", "padding", PropKind.STRUCTURAL),
        ("ImageBlock", "src", PropKind.OPAQUE),
        ("ImageBlock", "alt", PropKind.TRANSLATABLE),
        ("HeroSection", "backgroundImage", PropKind.OPAQUE),
        ("FAQSection", "faqs", PropKind.TRANSLATABLE),
    ])
    def test_registered_props(self, classifier, component_type, prop_name, expected):
        assert classifier.classify(component_type, prop_name) == expected

    def test_unknown_prop_is_structural(self, classifier):
        """Unknown props are copied across locales, never dropped."""
        assert classifier.classify("Text", "shadow") == PropKind.STRUCTURAL

    def test_unknown_component_is_structural(self, classifier):
        assert classifier.classify("Marquee", "text") == PropKind.STRUCTURAL

    def test_classify_props_covers_every_prop(self, classifier):
        node = Node("B1", "Button", {"text": "Go", "href": "/go"})

        values = classifier.classify_props(node)

        assert values["text"].kind == PropKind.TRANSLATABLE
        assert values["href"].kind == PropKind.STRUCTURAL
        assert values["href"].value == "/go"


class TestSplitProps:
    """Test cases for PropClassifier.split_props()."""

    def test_splits_shared_and_translatable(self, classifier):
        node = Node("I1", "ImageBlock", {"src": "/a.png", "alt": "A cat", "width": 200})

        shared, translatable = classifier.split_props(node)

        assert shared == {"src": "/a.png", "width": 200}
        assert translatable == {"alt": "A cat"}


class TestTextAccess:
    """Test cases for translatable_text() and map_text()."""

    def test_translatable_text_of_plain_prop(self, classifier):
        assert list(classifier.translatable_text("Text", "text", "Hello")) == ["Hello"]

    def test_translatable_text_of_structural_prop_is_empty(self, classifier):
        assert list(classifier.translatable_text("Button", "href", "/about")) == []

    def test_translatable_text_visits_item_fields_only(self, classifier):
        items = [{"id": "i1", "text": "First"}, {"id": "i2", "text": "Second"}]

        assert list(classifier.translatable_text("List", "items", items)) == ["First", "Second"]

    def test_translatable_text_of_table_data(self, classifier):
        data = {"headers": ["Name", "Role"], "rows": [["Ada", "Engineer"]], "id": "t"}

        assert list(classifier.translatable_text("Table", "data", data)) == [
            "Name", "Role", "Ada", "Engineer",
        ]

    def test_map_text_keeps_non_text_fields(self, classifier):
        faqs = [{"id": "q1", "question": "Why?", "answer": "Because."}]

        result = classifier.map_text("FAQSection", "faqs", faqs, str.upper)

        assert result == [{"id": "q1", "question": "WHY?", "answer": "BECAUSE."}]
        assert faqs[0]["question"] == "Why?"

    def test_map_text_leaves_team_member_images(self, classifier):
        members = [{"name": "Ada", "role": "CTO", "bio": "Builds", "image": "/ada.png"}]

        result = classifier.map_text("TeamSection", "teamMembers", members, lambda t: "x")

        assert result == [{"name": "Ada", "role": "x", "bio": "x", "image": "/ada.png"}]

    def test_map_text_copies_structural_values(self, classifier):
        value = {"top": 4}

        result = classifier.map_text("Section", "padding", value, str.upper)

        assert result == value
        assert result is not value


class TestCheckTree:
    """Test cases for the unknown-prop policy."""

    def test_structural_policy_accepts_unknown_props(self, classifier):
        wire = sample_page_wire()
        wire["T1"]["props"]["shadow"] = "lg"
        wire["X1"] = wire_node("Marquee", {"speed": 3}, "S1")
        wire["S1"]["nodes"].append("X1")

        classifier.check_tree(tree(wire))

    def test_reject_policy_refuses_unknown_prop(self):
        classifier = PropClassifier(unknown_prop_policy=UnknownPropPolicy.REJECT)
        wire = sample_page_wire()
        wire["T1"]["props"]["shadow"] = "lg"

        with pytest.raises(UnknownPropError) as exc_info:
            classifier.check_tree(tree(wire))

        assert exc_info.value.node_id == "T1"
        assert exc_info.value.prop_name == "shadow"

    def test_reject_policy_refuses_unknown_component(self):
        classifier = PropClassifier(unknown_prop_policy=UnknownPropPolicy.REJECT)
        wire = sample_page_wire()
        wire["X1"] = wire_node("Marquee", {}, "S1")
        wire["S1"]["nodes"].append("X1")

        with pytest.raises(UnknownPropError) as exc_info:
            classifier.check_tree(tree(wire))

        assert exc_info.value.component_type == "Marquee"
        assert exc_info.value.prop_name is None

    def test_reject_policy_accepts_registered_tree(self):
        classifier = PropClassifier(unknown_prop_policy=UnknownPropPolicy.REJECT)

        classifier.check_tree(tree(sample_page_wire()))


class TestRegistry:
    """Sanity checks on the component registry."""

    @pytest.mark.parametrize("component_type", [
        "Container", "Section", "Row", "Column", "InlineGroup", "CTABlock",
    ])
    def test_layout_components_are_canvases(self, component_type):
        assert COMPONENT_REGISTRY[component_type].is_canvas

    def test_prop_groups_do_not_overlap(self):
        for spec in COMPONENT_REGISTRY.values():
            assert not spec.translatable & spec.opaque, spec.component_type
            assert not spec.translatable & spec.structural, spec.component_type
            assert not spec.opaque & spec.structural, spec.component_type

    def test_item_fields_belong_to_translatable_props(self):
        for spec in COMPONENT_REGISTRY.values():
            assert set(spec.item_fields) <= spec.translatable, spec.component_type
