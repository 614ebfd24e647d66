"""
Assembly of raw image responses into the final ordered slide deck.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from stylist_story.ai_generation import ImageResponse, PromptPlan
from stylist_story.common import IncompleteGenerationError, encode_data_uri
from stylist_story.story_generation import (
    BadgePosition,
    LayoutTable,
    NarrativeRecord,
    SlideType,
    TextPosition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlideResult:
    """One finished slide: image, caption, beat and overlay layout."""

    image: str
    text: str
    type: SlideType
    text_position: TextPosition
    badge_position: BadgePosition

    def as_dict(self, *, include_image: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": self.text,
            "type": self.type.value,
            "text_position": self.text_position.value,
            "badge_position": self.badge_position.value,
        }
        if include_image:
            payload["image"] = self.image
        return payload


@dataclass(frozen=True)
class StoryResult:
    """Complete story returned to the caller; slides are in slide order."""

    slides: tuple[SlideResult, ...]
    persona_name: str
    style_type: str

    def to_dict(self, *, include_images: bool = True) -> dict[str, Any]:
        return {
            "persona_name": self.persona_name,
            "style_type": self.style_type,
            "slides": [slide.as_dict(include_image=include_images) for slide in self.slides],
        }


def extract_image_data_uri(response: ImageResponse) -> str:
    """
    Return the first inline image of the first candidate as a data URI, or ``""``.
    """
    if not response.candidates:
        return ""
    for part in response.candidates[0].parts:
        if part.inline_data:
            return encode_data_uri(part.inline_data, mime_type=part.mime_type)
    return ""


class ResultAssembler:
    """
    Validates that every slide has an image and attaches captions and layout.
    """

    def assemble(
        self,
        responses: Sequence[ImageResponse],
        plans: Sequence[PromptPlan],
        record: NarrativeRecord,
        *,
        layout: LayoutTable,
        style_type: str,
    ) -> StoryResult:
        if len(responses) != len(plans):
            raise ValueError(
                f"Expected one response per plan, got {len(responses)} responses for {len(plans)} plans."
            )
        if len(record.captions) != len(plans):
            raise ValueError(
                f"Expected one caption per plan, got {len(record.captions)} captions for {len(plans)} plans."
            )

        images = [extract_image_data_uri(response) for response in responses]
        missing = [plan.slide_index for plan, image in zip(plans, images) if not image]
        if missing:
            logger.warning("Slides without an image: %s", ", ".join(str(index + 1) for index in missing))
            raise IncompleteGenerationError(missing)

        slides: list[SlideResult] = []
        for position, (plan, image) in enumerate(zip(plans, images)):
            slide_layout = layout.resolve(plan.slide_index, plan.slide_type)
            slides.append(
                SlideResult(
                    image=image,
                    text=record.captions[position],
                    type=plan.slide_type,
                    text_position=slide_layout.text_position,
                    badge_position=slide_layout.badge_position,
                )
            )

        return StoryResult(
            slides=tuple(slides),
            persona_name=record.persona_name,
            style_type=style_type,
        )
