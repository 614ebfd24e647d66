"""
Prompt construction utilities for the per-slide image generation requests.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from stylist_story.story_generation import (
    NarrativeRecord,
    SlideBlueprint,
    SlideType,
    StoryTemplate,
    TextPosition,
)
from stylist_story.story_generation.templates import ArcShot

IDENTITY_CLAUSE = (
    "Keep the exact facial identity of the woman in the reference photo: same face shape, eyes, nose, "
    "mouth, skin tone, hair colour and hairline. Do not beautify, slim, age or alter her features."
)

STYLE_CLAUSES: tuple[str, ...] = (
    "Photorealistic smartphone photo, natural skin texture, true-to-life colours, no filters.",
    "Generate a single image only. No split screen, no collage, no grid, no borders.",
    "No text, captions, logos or watermarks anywhere in the image.",
)

TEXT_SPACE_RULES: Mapping[TextPosition, str] = {
    TextPosition.TOP: "Leave the top third of the frame calm and uncluttered for a text overlay.",
    TextPosition.MIDDLE: "Keep the middle band of the frame uncluttered for a text overlay.",
    TextPosition.BOTTOM: "Leave the bottom third of the frame calm and uncluttered for a text overlay.",
}


@dataclass(frozen=True)
class PromptPlan:
    """
    One image generation request, ready to send.
    """

    slide_index: int
    visual_prompt: str
    uses_reference_photo: bool
    slide_type: SlideType

    def as_dict(self) -> dict[str, Any]:
        return {
            "slide_index": self.slide_index,
            "visual_prompt": self.visual_prompt,
            "uses_reference_photo": self.uses_reference_photo,
            "slide_type": self.slide_type.value,
        }


def select_arc(
    template: StoryTemplate,
    *,
    arc_id: str | None = None,
    rng: random.Random | None = None,
) -> str:
    """
    Pick the arc for a story: an explicit ``arc_id`` wins, otherwise draw from ``rng``.
    """
    if arc_id is not None:
        return template.arc(arc_id).arc_id
    if rng is None:
        raise ValueError("select_arc needs either an arc_id or a seeded random.Random instance.")
    return rng.choice(template.arc_ids)


class PromptComposer:
    """
    Expands a narrative record into one image prompt per slide.

    Pure and deterministic: the same record, template and arc id always yield
    identical plans.
    """

    def __init__(
        self,
        *,
        identity_clause: str = IDENTITY_CLAUSE,
        style_clauses: Sequence[str] = STYLE_CLAUSES,
    ) -> None:
        self._identity_clause = identity_clause
        self._style_clauses = tuple(style_clauses)

    @property
    def identity_clause(self) -> str:
        return self._identity_clause

    def compose(
        self,
        record: NarrativeRecord,
        template: StoryTemplate,
        arc_id: str,
    ) -> list[PromptPlan]:
        if len(record.captions) != template.slide_count:
            raise ValueError(
                f"Narrative has {len(record.captions)} captions but template "
                f"'{template.template_id}' needs {template.slide_count}."
            )

        arc = template.arc(arc_id)
        plans: list[PromptPlan] = []
        for index, blueprint in enumerate(template.slides):
            shot = arc.shot_for(blueprint.slide_type)
            scene = _scene_for(record, template, index)
            outfit = record.outfit_descriptions.get(blueprint.outfit_slot) or template.outfit_defaults[
                blueprint.outfit_slot
            ]
            text_position = template.layout.resolve(index, blueprint.slide_type).text_position

            if blueprint.uses_reference_photo:
                prompt = self._person_prompt(
                    index=index,
                    template=template,
                    record=record,
                    blueprint=blueprint,
                    shot=shot,
                    scene=scene,
                    outfit=outfit,
                    text_position=text_position,
                )
            else:
                prompt = self._object_prompt(
                    index=index,
                    template=template,
                    blueprint=blueprint,
                    shot=shot,
                    scene=scene,
                    outfit=outfit,
                    text_position=text_position,
                )

            plans.append(
                PromptPlan(
                    slide_index=index,
                    visual_prompt=prompt,
                    uses_reference_photo=blueprint.uses_reference_photo,
                    slide_type=blueprint.slide_type,
                )
            )
        return plans

    def _person_prompt(
        self,
        *,
        index: int,
        template: StoryTemplate,
        record: NarrativeRecord,
        blueprint: SlideBlueprint,
        shot: ArcShot,
        scene: str,
        outfit: str,
        text_position: TextPosition,
    ) -> str:
        task = (
            f"TASK\nEdit the reference photo into slide {index + 1} of {template.slide_count} of one "
            f"continuous vertical photo story about {record.persona_name}: a realistic photo of the same "
            "woman, taken in the same photo session as every other slide."
        )
        sections = [
            task,
            _format_bullet_section("SCENE", [scene, f"She {blueprint.action}.", f"Setting: {shot.setting}."]),
            _format_bullet_section(
                f"OUTFIT ({blueprint.outfit_slot})",
                [outfit, "Clothing comes from this description only; ignore the outfit in the reference photo."],
            ),
            _camera_section(shot),
            _format_bullet_section(
                "CONSISTENCY",
                [f"{template.consistency_anchor} is visible in her hand, bag or on a nearby surface."],
            ),
            _format_bullet_section(
                "COMPOSITION",
                [*blueprint.composition, TEXT_SPACE_RULES[text_position], *self._style_clauses],
            ),
            _format_bullet_section("IDENTITY LOCK", [self._identity_clause]),
        ]
        return "\n\n".join(sections)

    def _object_prompt(
        self,
        *,
        index: int,
        template: StoryTemplate,
        blueprint: SlideBlueprint,
        shot: ArcShot,
        scene: str,
        outfit: str,
        text_position: TextPosition,
    ) -> str:
        task = (
            f"TASK\nCreate slide {index + 1} of {template.slide_count} of one continuous vertical photo story: "
            "a styled still-life photo with no person in it, from the same photo session as every other slide."
        )
        sections = [
            task,
            _format_bullet_section("SCENE", [scene, f"Show {blueprint.action}.", f"Setting: {shot.setting}."]),
            _format_bullet_section(
                "ITEMS",
                [outfit, f"{template.consistency_anchor} placed near the edge of the arrangement."],
            ),
            _camera_section(shot),
            _format_bullet_section(
                "COMPOSITION",
                [*blueprint.composition, TEXT_SPACE_RULES[text_position], *self._style_clauses],
            ),
        ]
        return "\n\n".join(sections)


def _scene_for(record: NarrativeRecord, template: StoryTemplate, index: int) -> str:
    if index < len(record.scene_descriptions) and record.scene_descriptions[index].strip():
        return record.scene_descriptions[index].strip()
    return template.slides[index].default_scene


def _camera_section(shot: ArcShot) -> str:
    return _format_bullet_section(
        "CAMERA & LIGHT",
        [
            f"Vertical frame, {shot.framing}.",
            f"Lighting: {shot.lighting}.",
            f"Vibe: {shot.vibe}.",
        ],
    )


def _format_bullet_section(title: str, lines: Sequence[str]) -> str:
    bullet_block = "\n".join(f"- {line}" for line in lines if line.strip())
    return f"{title}\n{bullet_block}"
