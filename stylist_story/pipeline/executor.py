"""
Concurrent execution of the per-slide image generation calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Sequence

from stylist_story.ai_generation import DEFAULT_ASPECT_RATIO, ImageGenerator, ImageResponse, PromptPlan
from stylist_story.common import (
    ImageGenerationError,
    MissingReferencePhotoError,
    ReferencePhoto,
    StoryPipelineError,
)

logger = logging.getLogger(__name__)

SlideDoneCallback = Callable[[int, int], None]


class ImageBatchExecutor:
    """
    Issues one image call per plan, all at once, and returns responses in plan order.

    The aspect ratio is fixed for the whole batch. The first failing call aborts
    the batch with :class:`ImageGenerationError`; nothing is retried here.
    """

    def __init__(
        self,
        image_generator: ImageGenerator,
        *,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        model_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self._image_generator = image_generator
        self._aspect_ratio = aspect_ratio
        self._model_kwargs = dict(model_kwargs or {})

    @property
    def aspect_ratio(self) -> str:
        return self._aspect_ratio

    async def execute(
        self,
        plans: Sequence[PromptPlan],
        reference_photo: ReferencePhoto | None,
        *,
        on_slide_done: SlideDoneCallback | None = None,
    ) -> list[ImageResponse]:
        plans = list(plans)
        if any(plan.uses_reference_photo for plan in plans) and reference_photo is None:
            raise MissingReferencePhotoError()

        total = len(plans)
        logger.info("Issuing %d image generation calls (aspect ratio %s).", total, self._aspect_ratio)

        async def _run(position: int, plan: PromptPlan) -> tuple[int, ImageResponse]:
            photo = reference_photo if plan.uses_reference_photo else None
            try:
                response = await self._image_generator.generate_image(
                    prompt=plan.visual_prompt,
                    reference_image=photo,
                    aspect_ratio=self._aspect_ratio,
                    **self._model_kwargs,
                )
            except StoryPipelineError:
                raise
            except Exception as exc:
                raise ImageGenerationError(
                    f"Image generation failed for slide {plan.slide_index + 1}: {exc}",
                    slide_index=plan.slide_index,
                ) from exc
            logger.debug("Slide %d image call completed.", plan.slide_index + 1)
            if on_slide_done is not None:
                on_slide_done(plan.slide_index, total)
            return position, response

        completed = await asyncio.gather(*(_run(position, plan) for position, plan in enumerate(plans)))

        return [response for _, response in sorted(completed, key=lambda pair: pair[0])]
