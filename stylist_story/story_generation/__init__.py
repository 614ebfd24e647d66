"""
Narrative synthesis and story templates for stylist makeover stories.
"""

from .narrative import (
    NarrativeRecord,
    NarrativeSynthesizer,
    extract_json_object,
    fallback_narrative,
    normalize_narrative,
)
from .prompting import NarrativePrompt, build_narrative_prompt
from .slides import (
    BadgePosition,
    LayoutTable,
    SlideLayout,
    SlideType,
    TextPosition,
    coerce_slide_type,
)
from .templates import (
    DEFAULT_TEMPLATE_ID,
    TEMPLATES,
    ArcShot,
    SlideBlueprint,
    StoryArc,
    StoryTemplate,
    get_template,
)

__all__ = [
    "ArcShot",
    "BadgePosition",
    "DEFAULT_TEMPLATE_ID",
    "LayoutTable",
    "NarrativePrompt",
    "NarrativeRecord",
    "NarrativeSynthesizer",
    "SlideBlueprint",
    "SlideLayout",
    "SlideType",
    "StoryArc",
    "StoryTemplate",
    "TEMPLATES",
    "TextPosition",
    "build_narrative_prompt",
    "coerce_slide_type",
    "extract_json_object",
    "fallback_narrative",
    "get_template",
    "normalize_narrative",
]
