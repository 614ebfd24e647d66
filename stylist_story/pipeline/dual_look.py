"""
Dual look: a studio shot of a stand-in model plus a casual "before" snapshot of the same model.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

from stylist_story.ai_generation import (
    DEFAULT_ASPECT_RATIO,
    MATCH_INPUT_ASPECT_RATIO,
    ImageGenerator,
    ImageResponse,
    ReplicateImageGenerator,
)
from stylist_story.common import (
    ChatResult,
    CompletionCallable,
    CredentialGate,
    EnvironmentCredentialGate,
    ImageGenerationError,
    IncompleteGenerationError,
    MissingCredentialError,
    MissingReferencePhotoError,
    NarrativeGenerationError,
    ReferencePhoto,
    StoryPipelineError,
    complete_chat,
    decode_data_uri,
)
from stylist_story.story_generation.narrative import DEFAULT_TEXT_MODEL

from .assembler import extract_image_data_uri

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)

FALLBACK_CASUAL_OUTFIT = (
    "a faded oversized grey hoodie, shapeless black leggings and worn white sneakers, "
    "clean but unflattering and a little mismatched"
)

STUDIO_SWAP_PROMPT = (
    "Replace the woman in this photo with a different woman of a similar age. "
    "Preserve the exact outfit, every accessory, the background, the pose and the lighting. "
    "Only the person changes; the clothes must look identical."
)

CASUAL_OUTFIT_REQUEST = (
    "Describe, in one short sentence, a clean but unflattering everyday outfit a woman might wear "
    "before a styling session: ill-fitting cuts, dull colours, no coordination. "
    "Reply with the outfit description only."
)

CASUAL_SNAPSHOT_TEMPLATE = (
    "Same woman as in the reference image, same face and hair. "
    "She now wears {outfit}. Place her in an ordinary everyday environment such as a kitchen, "
    "a hallway or a supermarket aisle. "
    "Single image, amateur smartphone snapshot, flat indoor lighting, slightly off-centre framing, "
    "no studio look."
)


@dataclass(frozen=True)
class DualLookResult:
    """Both looks as data URIs, plus the outfit description used for the casual shot."""

    studio: str
    casual: str
    casual_outfit: str = FALLBACK_CASUAL_OUTFIT

    def as_dict(self) -> dict[str, str]:
        return {"studio": self.studio, "casual": self.casual, "casual_outfit": self.casual_outfit}


class DualLookGenerator:
    """
    Chains a studio swap, a casual outfit description and a casual snapshot.
    """

    def __init__(
        self,
        *,
        image_generator: ImageGenerator | None = None,
        completion_fn: CompletionCallable | None = None,
        credential_gate: CredentialGate | None = None,
        text_model: str | None = None,
        text_api_key: str | None = None,
        image_model: str | None = None,
        image_api_token: str | None = None,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
    ) -> None:
        self._image_generator = image_generator
        self._image_model = image_model
        self._image_api_token = image_api_token
        self._completion_fn: CompletionCallable = completion_fn or complete_chat
        self._credential_gate = credential_gate or EnvironmentCredentialGate()
        self._text_model = (
            text_model
            or os.getenv("STYLIST_STORY_TEXT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_TEXT_MODEL
        )
        self._text_api_key = text_api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._aspect_ratio = aspect_ratio

    async def generate(
        self,
        reference_photo: ReferencePhoto | None,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> DualLookResult:
        if reference_photo is None:
            raise MissingReferencePhotoError()
        if not await self._credential_gate.has_valid_credential():
            raise MissingCredentialError()

        self._notify(progress_callback, "dual_look:studio")
        studio_uri = await self._render(
            STUDIO_SWAP_PROMPT,
            reference_photo,
            aspect_ratio=MATCH_INPUT_ASPECT_RATIO,
            slide_index=0,
        )

        self._notify(progress_callback, "dual_look:outfit")
        outfit = await self._describe_casual_outfit()

        self._notify(progress_callback, "dual_look:casual", outfit=outfit)
        studio_bytes, studio_mime = decode_data_uri(studio_uri)
        casual_uri = await self._render(
            CASUAL_SNAPSHOT_TEMPLATE.format(outfit=outfit),
            ReferencePhoto(data=studio_bytes, mime_type=studio_mime),
            aspect_ratio=self._aspect_ratio,
            slide_index=1,
        )

        self._notify(progress_callback, "dual_look:complete")
        return DualLookResult(studio=studio_uri, casual=casual_uri, casual_outfit=outfit)

    def _generator(self) -> ImageGenerator:
        if self._image_generator is None:
            self._image_generator = ReplicateImageGenerator(
                api_token=self._image_api_token,
                model_identifier=self._image_model,
            )
        return self._image_generator

    async def _render(
        self,
        prompt: str,
        reference: ReferencePhoto,
        *,
        aspect_ratio: str,
        slide_index: int,
    ) -> str:
        generator = self._generator()
        try:
            response: ImageResponse = await generator.generate_image(
                prompt=prompt,
                reference_image=reference,
                aspect_ratio=aspect_ratio,
            )
        except StoryPipelineError:
            raise
        except Exception as exc:
            raise ImageGenerationError(
                f"Dual look image {slide_index + 1} failed: {exc}",
                slide_index=slide_index,
            ) from exc

        image = extract_image_data_uri(response)
        if not image:
            raise IncompleteGenerationError([slide_index])
        return image

    async def _describe_casual_outfit(self) -> str:
        messages = [{"role": "user", "content": CASUAL_OUTFIT_REQUEST}]
        try:
            result: ChatResult = await self._completion_fn(
                model=self._text_model,
                messages=messages,
                temperature=0.9,
                max_tokens=200,
                api_key=self._text_api_key,
            )
        except Exception as exc:
            raise NarrativeGenerationError(f"Casual outfit request failed: {exc}") from exc

        outfit = " ".join((result.text or "").split()).strip().strip('"')
        if not outfit:
            logger.warning("Casual outfit description was empty; using the fallback outfit.")
            return FALLBACK_CASUAL_OUTFIT
        return outfit

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
