"""
Shared fixtures: fake text and image backends standing in for LiteLLM and Replicate.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import Any, Sequence
from unittest.mock import AsyncMock

import pytest

from stylist_story.ai_generation import ImageResponse
from stylist_story.common import ChatResult, ReferencePhoto, StaticCredentialGate
from stylist_story.pipeline import StoryPipelineConfig, StylistStoryOrchestrator
from stylist_story.story_generation import get_template

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-slide"


class FakeImageGenerator:
    """
    Records every call and returns one PNG per call.

    ``delays`` is consumed in call order so tests can force out-of-order completion;
    ``empty_calls`` lists call positions that come back with no candidates.
    """

    def __init__(
        self,
        *,
        delays: Sequence[float] = (),
        empty_calls: Sequence[int] = (),
        fail_calls: Sequence[int] = (),
    ) -> None:
        self.calls: list[dict[str, Any]] = []
        self.completion_order: list[int] = []
        self._delays = list(delays)
        self._empty_calls = set(empty_calls)
        self._fail_calls = set(fail_calls)

    async def generate_image(
        self,
        *,
        prompt: str,
        reference_image: ReferencePhoto | None,
        aspect_ratio: str = "9:16",
        **model_kwargs: Any,
    ) -> ImageResponse:
        position = len(self.calls)
        self.calls.append(
            {
                "prompt": prompt,
                "reference_image": reference_image,
                "aspect_ratio": aspect_ratio,
                "model_kwargs": model_kwargs,
            }
        )
        if position < len(self._delays):
            await asyncio.sleep(self._delays[position])
        if position in self._fail_calls:
            raise ConnectionError("upstream reset")
        self.completion_order.append(position)
        if position in self._empty_calls:
            return ImageResponse.empty()
        return ImageResponse.from_images(self.image_for(prompt))

    @staticmethod
    def image_for(prompt: str) -> bytes:
        return PNG_BYTES + hashlib.sha256(prompt.encode("utf-8")).digest()[:8]


def narrative_json(
    *,
    persona_name: str = "Sofia",
    captions: Sequence[str] | None = None,
    count: int = 8,
    outfits: dict[str, str] | None = None,
) -> str:
    payload: dict[str, Any] = {
        "personaName": persona_name,
        "captions": list(captions) if captions is not None else [f"Model caption {n}" for n in range(1, count + 1)],
        "sceneDescriptions": [f"Model scene {n}" for n in range(1, count + 1)],
        "outfits": outfits or {"before_1": "a baggy brown cardigan", "after_1": "a fitted olive jumpsuit"},
    }
    return json.dumps(payload)


def completion_returning(text: str) -> AsyncMock:
    return AsyncMock(return_value=ChatResult(text=text, raw={"choices": []}))


@pytest.fixture
def reference_photo() -> ReferencePhoto:
    return ReferencePhoto(data=b"\xff\xd8\xffclient-photo", mime_type="image/jpeg")


@pytest.fixture
def standard_template():
    return get_template("standard")


@pytest.fixture
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator wired to fakes; keyword overrides replace any default."""

    def _factory(
        *,
        completion_text: str | None = None,
        completion_fn: AsyncMock | None = None,
        image_generator: FakeImageGenerator | None = None,
        has_credential: bool = True,
        config: StoryPipelineConfig | None = None,
    ) -> StylistStoryOrchestrator:
        return StylistStoryOrchestrator(
            config=config or StoryPipelineConfig(),
            completion_fn=completion_fn or completion_returning(completion_text or narrative_json()),
            image_generator=image_generator or FakeImageGenerator(),
            credential_gate=StaticCredentialGate(has_credential),
            text_api_key="test-key",
        )

    return _factory
