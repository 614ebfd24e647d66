"""
Reviewable story drafts: narrative and prompts before any image is rendered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from stylist_story.ai_generation import PromptPlan
from stylist_story.story_generation import NarrativeRecord, SlideType, coerce_slide_type


@dataclass
class DraftSlide:
    """
    One editable slide of a draft. ``visual_prompt`` is rendered exactly as stored.
    """

    type: SlideType
    caption: str
    visual_prompt: str
    uses_reference_photo: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "caption": self.caption,
            "visual_prompt": self.visual_prompt,
            "uses_reference_photo": self.uses_reference_photo,
        }


@dataclass
class StoryDraft:
    """
    Narrative plus composed prompts, produced before rendering so a human can review it.
    """

    slides: list[DraftSlide]
    persona_name: str
    style_type: str
    template_id: str
    outfit_descriptions: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_plans(
        cls,
        record: NarrativeRecord,
        plans: Sequence[PromptPlan],
        *,
        template_id: str,
        style_type: str,
    ) -> "StoryDraft":
        if len(record.captions) != len(plans):
            raise ValueError(
                f"Draft needs one caption per plan, got {len(record.captions)} for {len(plans)} plans."
            )
        slides = [
            DraftSlide(
                type=plan.slide_type,
                caption=caption,
                visual_prompt=plan.visual_prompt,
                uses_reference_photo=plan.uses_reference_photo,
            )
            for plan, caption in zip(plans, record.captions)
        ]
        return cls(
            slides=slides,
            persona_name=record.persona_name,
            style_type=style_type,
            template_id=template_id,
            outfit_descriptions=dict(record.outfit_descriptions),
        )

    def edit_caption(self, slide_index: int, caption: str) -> None:
        if not 0 <= slide_index < len(self.slides):
            raise IndexError(f"Draft has no slide {slide_index}.")
        text = caption.strip()
        if not text:
            raise ValueError("Caption must be a non-empty string.")
        self.slides[slide_index].caption = text

    def to_prompt_plans(self) -> list[PromptPlan]:
        return [
            PromptPlan(
                slide_index=index,
                visual_prompt=slide.visual_prompt,
                uses_reference_photo=slide.uses_reference_photo,
                slide_type=slide.type,
            )
            for index, slide in enumerate(self.slides)
        ]

    def to_narrative_record(self) -> NarrativeRecord:
        return NarrativeRecord(
            persona_name=self.persona_name,
            captions=tuple(slide.caption for slide in self.slides),
            outfit_descriptions=dict(self.outfit_descriptions),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "persona_name": self.persona_name,
            "style_type": self.style_type,
            "outfit_descriptions": dict(self.outfit_descriptions),
            "slides": [slide.to_dict() for slide in self.slides],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StoryDraft":
        for key in ("template_id", "style_type", "slides"):
            if key not in payload:
                raise ValueError(f"Story draft payload must include '{key}'.")

        slides: list[DraftSlide] = []
        for entry in payload.get("slides") or []:
            try:
                slide_type = coerce_slide_type(entry["type"])
                caption = str(entry["caption"]).strip()
                visual_prompt = str(entry["visual_prompt"])
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"Invalid draft slide entry: {entry}") from exc
            if not visual_prompt.strip():
                raise ValueError(f"Draft slide entry has an empty visual_prompt: {entry}")
            slides.append(
                DraftSlide(
                    type=slide_type,
                    caption=caption,
                    visual_prompt=visual_prompt,
                    uses_reference_photo=bool(entry.get("uses_reference_photo", True)),
                )
            )
        if not slides:
            raise ValueError("Story draft must contain at least one slide.")

        outfits = payload.get("outfit_descriptions") or {}
        return cls(
            slides=slides,
            persona_name=str(payload.get("persona_name", "")).strip(),
            style_type=str(payload["style_type"]).strip(),
            template_id=str(payload["template_id"]).strip(),
            outfit_descriptions={str(key): str(value) for key, value in dict(outfits).items()},
        )

    @classmethod
    def from_yaml(cls, source: str | Path) -> "StoryDraft":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("Story draft YAML must deserialize to a mapping.")
        return cls.from_dict(data)
