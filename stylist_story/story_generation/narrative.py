"""
Narrative synthesis: one structured text request turned into a complete, shape-valid record.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from stylist_story.common import (
    JSON_RESPONSE_FORMAT,
    ChatResult,
    CompletionCallable,
    NarrativeGenerationError,
    ReferencePhoto,
    build_user_content,
    complete_chat,
)

from .prompting import DEFAULT_LANGUAGE, NarrativePrompt, build_narrative_prompt
from .templates import StoryTemplate

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini/gemini-2.5-flash"

_CODE_FENCE_PATTERN = re.compile(r"```[a-zA-Z0-9_-]*\s*(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class NarrativeRecord:
    """
    Canonical narrative for one story request.

    ``captions`` and ``scene_descriptions`` are indexed by slide; both always
    match the template's slide count once they leave the synthesizer.
    """

    persona_name: str
    captions: tuple[str, ...]
    scene_descriptions: tuple[str, ...] = ()
    outfit_descriptions: Mapping[str, str] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "persona_name": self.persona_name,
            "captions": list(self.captions),
            "scene_descriptions": list(self.scene_descriptions),
            "outfit_descriptions": dict(self.outfit_descriptions),
        }


class NarrativeParseError(ValueError):
    """Raised when no JSON object can be recovered from the model output."""


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """
    Recover a JSON object from free-form model output.

    Strips a Markdown code fence if present, then slices from the first ``{``
    to the last ``}`` before parsing, so prose around the object is tolerated.
    """
    text = (raw_text or "").strip()
    if not text:
        raise NarrativeParseError("Narrative response was empty.")

    fenced = _CODE_FENCE_PATTERN.search(text)
    if fenced:
        text = fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise NarrativeParseError("Narrative response does not contain a JSON object.")

    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise NarrativeParseError("Failed to parse narrative response as JSON.") from exc

    if not isinstance(parsed, dict):
        raise NarrativeParseError("Narrative JSON must be an object.")
    return parsed


def fallback_narrative(template: StoryTemplate) -> NarrativeRecord:
    """
    Hardcoded canonical record for a template, used when the model output is unusable.
    """
    return normalize_narrative({}, template, use_fallback_captions=True)


def normalize_narrative(
    payload: Mapping[str, Any],
    template: StoryTemplate,
    *,
    use_fallback_captions: bool = False,
) -> NarrativeRecord:
    """
    Coerce a parsed payload into a record that satisfies the template's shape.

    Short caption and scene lists are padded per index with the template's
    canonical copy, addressed to the record's persona; extra entries are
    dropped; pinned captions are applied last; missing outfit slots fall back
    to the template defaults.
    """
    count = template.slide_count
    persona_name = str(_first_present(payload, "personaName", "persona_name", "name") or "").strip()
    persona_name = persona_name or template.fallback_persona_name

    captions = [] if use_fallback_captions else _string_list(
        _first_present(payload, "captions", "slides")
    )
    if len(captions) > count:
        logger.debug("Dropping %d extra caption(s) from narrative.", len(captions) - count)
    padded_captions = [
        captions[index]
        if index < len(captions) and captions[index]
        else template.filler_caption(index, persona_name)
        for index in range(count)
    ]
    for index, pinned in template.pinned_captions.items():
        padded_captions[index] = pinned

    scenes = _string_list(_first_present(payload, "sceneDescriptions", "scene_descriptions", "scenes"))
    padded_scenes = [
        scenes[index] if index < len(scenes) and scenes[index] else template.slides[index].default_scene
        for index in range(count)
    ]

    raw_outfits = _first_present(payload, "outfits", "outfitDescriptions", "outfit_descriptions")
    outfits: dict[str, str] = {}
    for slot, default in template.outfit_defaults.items():
        value = raw_outfits.get(slot) if isinstance(raw_outfits, Mapping) else None
        text = str(value).strip() if value is not None else ""
        outfits[slot] = text or default

    return NarrativeRecord(
        persona_name=persona_name,
        captions=tuple(padded_captions),
        scene_descriptions=tuple(padded_scenes),
        outfit_descriptions=outfits,
    )


class NarrativeSynthesizer:
    """
    Issues the narrative request and always hands back a complete record.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
        language: str | None = None,
        json_mode: bool = True,
    ) -> None:
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("STYLIST_STORY_TEXT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_TEXT_MODEL
        )
        self._completion_fn: CompletionCallable = completion_fn or complete_chat
        self._language = language or DEFAULT_LANGUAGE
        self._json_mode = json_mode

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    async def synthesize(
        self,
        template: StoryTemplate,
        reference_photo: ReferencePhoto | None = None,
        *,
        temperature: float = 0.9,
        max_output_tokens: int | None = 2000,
        **response_kwargs: Any,
    ) -> NarrativeRecord:
        """
        Request the narrative for ``template`` and normalize it.

        Only a failing completion call raises (:class:`NarrativeGenerationError`);
        malformed output is recovered with the template's canonical record.
        """
        prompt: NarrativePrompt = build_narrative_prompt(
            template,
            language=self._language,
            has_reference_photo=reference_photo is not None,
        )

        messages = [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": build_user_content(prompt.user, reference_photo)},
        ]

        if self._json_mode:
            response_kwargs.setdefault("response_format", dict(JSON_RESPONSE_FORMAT))

        try:
            result: ChatResult = await self._completion_fn(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=self._api_key,
                **response_kwargs,
            )
        except Exception as exc:
            raise NarrativeGenerationError(f"Narrative generation request failed: {exc}") from exc

        return self.parse(result.text, template)

    @staticmethod
    def parse(raw_text: str, template: StoryTemplate) -> NarrativeRecord:
        try:
            payload = extract_json_object(raw_text)
        except NarrativeParseError as exc:
            logger.warning(
                "Recovered malformed narrative for template '%s' with the canonical fallback: %s",
                template.template_id,
                exc,
            )
            return fallback_narrative(template)

        if not _string_list(_first_present(payload, "captions", "slides")):
            logger.warning(
                "Narrative for template '%s' had no usable captions; using the canonical fallback.",
                template.template_id,
            )
            return fallback_narrative(template)

        record = normalize_narrative(payload, template)
        returned = len(_string_list(_first_present(payload, "captions", "slides")))
        if returned < template.slide_count:
            logger.warning(
                "Narrative returned %d of %d captions; padded with filler.",
                returned,
                template.slide_count,
            )
        return record


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _string_list(value: Any) -> list[str]:
    """
    Keep the positional slots of a list, blanking non-string entries so indices stay aligned.
    """
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []

    items: list[str] = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("caption") or item.get("text") or item.get("description")
        items.append(str(item).strip() if item is not None else "")

    while items and not items[-1]:
        items.pop()
    return items
