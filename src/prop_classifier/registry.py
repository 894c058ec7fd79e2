"""Static registry of the block palette and how each prop is classified.

One ComponentSpec per component type available in the page editor. The
registry is built once at import time and is the single source of truth for
both the tree differ and the sync engine.
"""

from typing import Dict, Iterable, Mapping, Optional, Tuple

from .models import ComponentSpec

MARGINS = ("marginTop", "marginBottom", "marginLeft", "marginRight")
PADDINGS = ("paddingTop", "paddingBottom", "paddingLeft", "paddingRight")
SECTION_COLORS = ("backgroundColor", "titleColor", "textColor", "accentColor")
BUTTON_COLORS = (
    "primaryButtonColor",
    "primaryButtonHoverColor",
    "buttonTextColor",
    "secondaryButtonColor",
    "secondaryButtonHoverColor",
    "secondaryButtonTextColor",
)


def _spec(
    component_type: str,
    translatable: Iterable[str] = (),
    opaque: Iterable[str] = (),
    structural: Iterable[str] = (),
    item_fields: Optional[Mapping[str, Tuple[str, ...]]] = None,
    is_canvas: bool = False,
) -> ComponentSpec:
    return ComponentSpec(
        component_type=component_type,
        translatable=frozenset(translatable),
        opaque=frozenset(opaque),
        structural=frozenset(structural),
        item_fields=dict(item_fields or {}),
        is_canvas=is_canvas,
    )


_SPECS = [
    # Layout
    _spec(
        "Container",
        structural=("background", "flexDirection") + PADDINGS + MARGINS,
        is_canvas=True,
    ),
    _spec("Section", structural=("backgroundColor", "padding"), is_canvas=True),
    _spec("Row", structural=("layout", "gap"), is_canvas=True),
    _spec("Column", structural=("width", "background", "padding"), is_canvas=True),
    _spec(
        "InlineGroup",
        structural=("justifyContent", "alignItems", "gap", "wrap"),
        is_canvas=True,
    ),
    _spec("Separator", structural=("orientation", "decorative")),

    # Basic blocks
    _spec(
        "Text",
        translatable=("text",),
        structural=("fontSize", "textAlign", "color", "bold", "italic", "maxWidth")
        + MARGINS,
    ),
    _spec(
        "TextArea",
        translatable=("placeholder", "value"),
        structural=("rows", "disabled"),
    ),
    _spec(
        "Button",
        translatable=("text",),
        structural=("variant", "size", "href") + MARGINS,
    ),
    _spec("Badge", translatable=("text",), structural=("variant",)),
    _spec(
        "Alert",
        translatable=("title", "description"),
        structural=("variant", "icon", "maxWidth") + MARGINS,
    ),
    _spec(
        "ImageBlock",
        translatable=("alt",),
        opaque=("src",),
        structural=("width", "height"),
    ),
    _spec(
        "CardBlock",
        translatable=("title", "description", "content", "footer"),
    ),

    # Composite blocks
    _spec(
        "List",
        translatable=("items",),
        structural=("ordered", "style", "maxWidth") + MARGINS,
        item_fields={"items": ("text",)},
    ),
    _spec(
        "Accordion",
        translatable=("items",),
        structural=("type", "maxWidth") + MARGINS,
        item_fields={"items": ("title", "content")},
    ),
    _spec(
        "Table",
        translatable=("data",),
        structural=("striped",),
        item_fields={"data": ("headers", "rows")},
    ),
    _spec(
        "Carousel",
        translatable=("slides",),
        structural=("autoplay", "showControls"),
        item_fields={"slides": ("caption",)},
    ),

    # Sections
    _spec(
        "CTABlock",
        translatable=("title", "description", "primaryButtonText", "secondaryButtonText"),
        structural=("primaryButtonUrl", "secondaryButtonUrl", "backgroundColor",
                    "textColor", "variant") + BUTTON_COLORS,
        is_canvas=True,
    ),
    _spec(
        "HeroSection",
        translatable=("title", "subtitle", "description",
                      "primaryButtonText", "secondaryButtonText"),
        opaque=("backgroundImage",),
        structural=("primaryButtonUrl", "secondaryButtonUrl", "overlay",
                    "textAlign", "textColor") + BUTTON_COLORS,
    ),
    _spec(
        "FAQSection",
        translatable=("title", "subtitle", "faqs"),
        structural=SECTION_COLORS,
        item_fields={"faqs": ("question", "answer")},
    ),
    _spec(
        "TeamSection",
        translatable=("title", "subtitle", "description", "teamMembers"),
        structural=SECTION_COLORS,
        item_fields={"teamMembers": ("role", "bio")},
    ),
    _spec(
        "StatsSection",
        translatable=("title", "subtitle", "description", "stats"),
        structural=("backgroundColor", "titleColor", "textColor"),
        item_fields={"stats": ("label", "description")},
    ),
    _spec(
        "TestimonialsSection",
        translatable=("title", "subtitle", "testimonials"),
        structural=SECTION_COLORS,
        item_fields={"testimonials": ("quote", "role")},
    ),
    _spec(
        "NewsletterSection",
        translatable=("title", "subtitle", "description", "placeholder", "buttonText"),
        structural=SECTION_COLORS + ("inputBgColor", "buttonColor",
                                     "buttonTextColor", "variant"),
    ),
    _spec(
        "HeritageHero",
        translatable=("title", "subtitle", "tagline", "description",
                      "joinButtonText", "learnButtonText"),
        opaque=("image",),
        structural=("joinButtonUrl", "learnButtonUrl"),
    ),
    _spec("NewsSection", translatable=("title",), structural=("showCount",)),
    _spec("EventsSection", translatable=("title",), structural=("showCount",)),
    _spec(
        "CampaignsSection",
        translatable=("title", "subtitle"),
        structural=("showCount",),
    ),
]

COMPONENT_REGISTRY: Dict[str, ComponentSpec] = {
    spec.component_type: spec for spec in _SPECS
}
