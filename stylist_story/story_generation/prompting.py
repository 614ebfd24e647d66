"""
Prompt construction utilities for the narrative synthesis request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .templates import VOICE_GUIDANCE, StoryTemplate, outfit_slot_guidance

DEFAULT_LANGUAGE = "English"


@dataclass(frozen=True)
class NarrativePrompt:
    """
    Container for the system and user prompts passed to the text model.
    """

    system: str
    user: str


def describe_json_shape(template: StoryTemplate) -> str:
    """
    Render the exact JSON object the model must return for this template.
    """
    count = template.slide_count
    example = {
        "personaName": "string, a believable first name for the woman in the photo",
        "captions": [f"string, caption for slide {index + 1}" for index in range(count)],
        "sceneDescriptions": [
            f"string, one-sentence visual moment for slide {index + 1}" for index in range(count)
        ],
        "outfits": {slot: "string, concrete visual outfit description in English" for slot in template.outfit_slots},
    }
    return json.dumps(example, indent=2, ensure_ascii=False)


def build_narrative_prompt(
    template: StoryTemplate,
    *,
    language: str = DEFAULT_LANGUAGE,
    has_reference_photo: bool = False,
) -> NarrativePrompt:
    """
    Build the prompt pair used to request the story narrative as JSON.
    """
    count = template.slide_count

    beats = "\n".join(
        f"{index + 1}. [{blueprint.slide_type.value}] {blueprint.beat}"
        for index, blueprint in enumerate(template.slides)
    )

    outfit_lines = "\n".join(
        f"- {slot}: {outfit_slot_guidance(slot)}" for slot in template.outfit_slots
    )

    pinned_lines = ""
    if template.pinned_captions:
        pinned = ", ".join(str(index + 1) for index in sorted(template.pinned_captions))
        pinned_lines = (
            f"\n- Slide(s) {pinned} use a fixed branded line; still return a caption there, it will be replaced."
        )

    photo_instruction = (
        "Look at the attached photo and fit the persona, age range and outfits to the woman in it."
        if has_reference_photo
        else "No photo is attached; invent a believable everyday woman."
    )

    system_prompt = f"""You are a personal stylist and social media storyteller.
You write short, scroll-stopping makeover stories for vertical slide carousels. Each story follows a fixed arc of beats, one caption per slide, and ships with visual notes an image model will use to photograph the same woman across every slide.

Writing directives:
- {VOICE_GUIDANCE[template.voice]}
- Write captions in {language}. Keep every caption under 20 words and make each one readable on its own.
- Follow the beats in order; caption N must play beat N.
- Scene descriptions and outfits are for the image model: write them in English, visual and concrete, no emotions the camera cannot see.
- Never mention body size as the problem; the story is about cut, proportion and colour.
- Do not include hashtags, emojis, slide numbers or quotation marks around captions.

Output format:
Respond with a single valid JSON object matching this shape exactly, with exactly {count} captions and exactly {count} scene descriptions:
{describe_json_shape(template)}

Do not include commentary outside the JSON."""

    user_prompt = f"""{photo_instruction}

Story beats ({count} slides):
{beats}

Outfit slots to describe:
{outfit_lines}

Checklist:
- Exactly {count} captions and {count} scene descriptions, in beat order.
- Every outfit slot above is present and describes colours, fabrics, cut and shoes.
- The same woman, the same persona name, start to finish.{pinned_lines}

Respond with the JSON object only."""

    return NarrativePrompt(system=system_prompt, user=user_prompt)
