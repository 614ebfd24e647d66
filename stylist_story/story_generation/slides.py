"""
Slide vocabulary and layout tables shared by templates and the result assembler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class SlideType(str, Enum):
    """Narrative beat played by a slide."""

    PROBLEM = "problem"
    BELIEF = "belief"
    TWIST = "twist"
    PRINCIPLE = "principle"
    PROCESS = "process"
    RESULT = "result"
    INSIGHT = "insight"
    CTA = "cta"


class TextPosition(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class BadgePosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


@dataclass(frozen=True)
class SlideLayout:
    """Where the caption and the slide-type badge sit on top of the image."""

    text_position: TextPosition
    badge_position: BadgePosition


DEFAULT_TYPE_LAYOUTS: Mapping[SlideType, SlideLayout] = {
    SlideType.PROBLEM: SlideLayout(TextPosition.TOP, BadgePosition.BOTTOM_LEFT),
    SlideType.BELIEF: SlideLayout(TextPosition.TOP, BadgePosition.BOTTOM_RIGHT),
    # Close-up of the face: caption goes under the chin, never across it.
    SlideType.TWIST: SlideLayout(TextPosition.BOTTOM, BadgePosition.TOP_RIGHT),
    SlideType.PRINCIPLE: SlideLayout(TextPosition.MIDDLE, BadgePosition.TOP_LEFT),
    SlideType.PROCESS: SlideLayout(TextPosition.TOP, BadgePosition.BOTTOM_LEFT),
    SlideType.RESULT: SlideLayout(TextPosition.BOTTOM, BadgePosition.TOP_LEFT),
    SlideType.INSIGHT: SlideLayout(TextPosition.TOP, BadgePosition.BOTTOM_RIGHT),
    SlideType.CTA: SlideLayout(TextPosition.BOTTOM, BadgePosition.TOP_RIGHT),
}

FALLBACK_LAYOUT = SlideLayout(TextPosition.BOTTOM, BadgePosition.TOP_LEFT)


@dataclass(frozen=True)
class LayoutTable:
    """
    Explicit mapping from ``(slide_index, slide_type)`` to a :class:`SlideLayout`.

    Index overrides win over the per-type defaults; anything unmatched falls back
    to :data:`FALLBACK_LAYOUT`.
    """

    by_type: Mapping[SlideType, SlideLayout] = field(
        default_factory=lambda: dict(DEFAULT_TYPE_LAYOUTS)
    )
    index_overrides: Mapping[int, SlideLayout] = field(default_factory=dict)

    def resolve(self, slide_index: int, slide_type: SlideType) -> SlideLayout:
        if slide_index in self.index_overrides:
            return self.index_overrides[slide_index]
        return self.by_type.get(slide_type, FALLBACK_LAYOUT)


def coerce_slide_type(value: SlideType | str) -> SlideType:
    if isinstance(value, SlideType):
        return value
    try:
        return SlideType(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unknown slide type: {value!r}") from exc
