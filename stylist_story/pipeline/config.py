"""
Pipeline-wide configuration resolved once per process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from stylist_story.ai_generation import DEFAULT_ASPECT_RATIO
from stylist_story.story_generation import DEFAULT_TEMPLATE_ID
from stylist_story.story_generation.prompting import DEFAULT_LANGUAGE


@dataclass(frozen=True)
class StoryPipelineConfig:
    """
    Configuration knobs for a story run.

    Attributes
    ----------
    template_id:
        Default story template used when a call does not name one.
    aspect_ratio:
        Output aspect ratio shared by every slide image in a story.
    language:
        Language of the captions.
    narrative_temperature:
        Sampling temperature for the narrative request.
    max_output_tokens:
        Token cap for the narrative request.
    """

    template_id: str = DEFAULT_TEMPLATE_ID
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    language: str = DEFAULT_LANGUAGE
    narrative_temperature: float = 0.9
    max_output_tokens: int = 2000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StoryPipelineConfig":
        env = environ if environ is not None else os.environ
        defaults = cls()
        temperature_text = env.get("STYLIST_STORY_TEMPERATURE")
        try:
            temperature = float(temperature_text) if temperature_text else defaults.narrative_temperature
        except ValueError as exc:
            raise ValueError(
                f"STYLIST_STORY_TEMPERATURE must be a number, got {temperature_text!r}."
            ) from exc
        return cls(
            template_id=env.get("STYLIST_STORY_TEMPLATE") or defaults.template_id,
            aspect_ratio=env.get("STYLIST_STORY_ASPECT_RATIO") or defaults.aspect_ratio,
            language=env.get("STYLIST_STORY_LANGUAGE") or defaults.language,
            narrative_temperature=temperature,
            max_output_tokens=defaults.max_output_tokens,
        )
