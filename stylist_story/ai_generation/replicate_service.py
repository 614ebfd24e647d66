"""
Integration with Replicate for slide image generation.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable as IterableABC
from typing import Any, Callable

import replicate
import requests
from replicate.exceptions import ModelError

from stylist_story.common import ReferencePhoto, decode_data_uri

from .responses import DEFAULT_ASPECT_RATIO, ImageCandidate, ImagePart, ImageResponse

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "google/nano-banana"

DOWNLOAD_TIMEOUT_SECONDS = 60


def _build_nano_banana_input(
    *,
    prompt: str,
    image_input: str | None,
    aspect_ratio: str,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "output_format": "png",
    }
    if image_input is not None:
        payload["image_input"] = [image_input]
    return payload


def _build_flux_kontext_input(
    *,
    prompt: str,
    image_input: str | None,
    aspect_ratio: str,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": False,
        "aspect_ratio": aspect_ratio,
    }
    if image_input is not None:
        payload["input_image"] = image_input
    return payload


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "google/nano-banana": _build_nano_banana_input,
    "google/nano-banana-pro": _build_nano_banana_input,
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
}


def build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: str,
    image_input: str | None,
    aspect_ratio: str,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, image_input=image_input, aspect_ratio=aspect_ratio)


class ReplicateImageGenerator:
    """
    Async wrapper around the Replicate client for slide image generation.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Falls back to
        ``STYLIST_STORY_IMAGE_MODEL``, then ``REPLICATE_MODEL``, then ``google/nano-banana``.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier
            or os.getenv("STYLIST_STORY_IMAGE_MODEL")
            or os.getenv("REPLICATE_MODEL")
            or DEFAULT_IMAGE_MODEL
        )

        self._client = client or replicate.Client(api_token=self._api_token)

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    async def generate_image(
        self,
        *,
        prompt: str,
        reference_image: ReferencePhoto | None,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        **model_kwargs: Any,
    ) -> ImageResponse:
        """
        Run the configured model once and normalize its output into an :class:`ImageResponse`.

        A model-side failure (typically a safety filter rejection) yields an empty
        response rather than an exception, so the caller can treat it as a missing
        image. Transport and authentication errors propagate.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")

        replicate_input = build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt,
            image_input=reference_image.to_data_uri() if reference_image is not None else None,
            aspect_ratio=aspect_ratio,
        )
        # Allow the caller to tweak model-specific knobs (e.g., seed).
        replicate_input.update(model_kwargs)

        try:
            output = await self._client.async_run(self._model_identifier, input=replicate_input)
        except ModelError as exc:
            logger.warning("Replicate model '%s' produced no image: %s", self._model_identifier, exc)
            return ImageResponse.empty()

        candidates: list[ImageCandidate] = []
        for item in _flatten_outputs(output):
            part = await _read_output_item(item)
            if part is not None:
                candidates.append(ImageCandidate(parts=(part,)))
        return ImageResponse(candidates=tuple(candidates))


def _flatten_outputs(raw: Any) -> list[Any]:
    """
    Flatten whatever Replicate returned (single item, list, nested lists) into a list.
    """
    if raw is None:
        return []

    if isinstance(raw, (str, bytes)) or hasattr(raw, "read") or hasattr(raw, "aread"):
        return [raw]

    if isinstance(raw, IterableABC):
        flattened: list[Any] = []
        for item in raw:
            flattened.extend(_flatten_outputs(item))
        return flattened

    return [raw]


async def _read_output_item(item: Any) -> ImagePart | None:
    if isinstance(item, bytes):
        return ImagePart(inline_data=item) if item else None

    if hasattr(item, "aread"):
        data = await item.aread()
        return ImagePart(inline_data=data) if data else None

    if hasattr(item, "read"):
        data = await asyncio.to_thread(item.read)
        return ImagePart(inline_data=data) if data else None

    text = str(item).strip()
    if not text:
        return None
    if text.startswith("data:"):
        data, mime_type = decode_data_uri(text)
        return ImagePart(inline_data=data, mime_type=mime_type)
    if text.lower().startswith(("http://", "https://")):
        data, mime_type = await asyncio.to_thread(_download_image, text)
        return ImagePart(inline_data=data, mime_type=mime_type)
    return ImagePart(text=text)


def _download_image(url: str) -> tuple[bytes, str]:
    response = requests.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
    response.raise_for_status()
    mime_type = response.headers.get("Content-Type", "image/png").split(";", 1)[0].strip()
    return response.content, mime_type or "image/png"
