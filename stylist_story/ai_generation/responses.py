"""
Provider-neutral shape of an image generation response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from stylist_story.common import ReferencePhoto

DEFAULT_ASPECT_RATIO = "9:16"

# Keeps the reference photo's own framing for edit-in-place requests.
MATCH_INPUT_ASPECT_RATIO = "match_input_image"


@dataclass(frozen=True)
class ImagePart:
    """A single response part; image parts carry ``inline_data``, text parts carry ``text``."""

    inline_data: bytes | None = None
    mime_type: str = "image/png"
    text: str | None = None


@dataclass(frozen=True)
class ImageCandidate:
    parts: tuple[ImagePart, ...] = ()


@dataclass(frozen=True)
class ImageResponse:
    """
    Raw result of one image call: zero or more candidates, each with zero or more parts.
    """

    candidates: tuple[ImageCandidate, ...] = ()

    @classmethod
    def from_images(cls, *images: bytes, mime_type: str = "image/png") -> "ImageResponse":
        return cls(
            candidates=tuple(
                ImageCandidate(parts=(ImagePart(inline_data=data, mime_type=mime_type),))
                for data in images
            )
        )

    @classmethod
    def empty(cls) -> "ImageResponse":
        return cls(candidates=())


class ImageGenerator(Protocol):
    """
    Remote image capability: one prompt, an optional reference photo, one aspect ratio.
    """

    async def generate_image(
        self,
        *,
        prompt: str,
        reference_image: ReferencePhoto | None,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        **model_kwargs: Any,
    ) -> ImageResponse:
        ...
