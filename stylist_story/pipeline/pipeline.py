"""
Orchestrates the stylist story pipeline from reference photo to finished slide deck.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Mapping

from stylist_story.ai_generation import (
    ImageGenerator,
    PromptComposer,
    PromptPlan,
    ReplicateImageGenerator,
    select_arc,
)
from stylist_story.common import (
    CompletionCallable,
    CredentialGate,
    EnvironmentCredentialGate,
    MissingCredentialError,
    MissingReferencePhotoError,
    ReferencePhoto,
)
from stylist_story.story_generation import (
    NarrativeRecord,
    NarrativeSynthesizer,
    StoryTemplate,
    get_template,
)

from .assembler import ResultAssembler, StoryResult
from .config import StoryPipelineConfig
from .drafts import StoryDraft
from .executor import ImageBatchExecutor

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


class StylistStoryOrchestrator:
    """
    High-level coordinator that chains narrative, prompt, image, and assembly stages.

    Every call is independent: nothing is cached between stories, and the
    credential gate is checked before each run.
    """

    def __init__(
        self,
        *,
        config: StoryPipelineConfig | None = None,
        synthesizer: NarrativeSynthesizer | None = None,
        composer: PromptComposer | None = None,
        image_generator: ImageGenerator | None = None,
        executor: ImageBatchExecutor | None = None,
        assembler: ResultAssembler | None = None,
        credential_gate: CredentialGate | None = None,
        text_model: str | None = None,
        text_api_key: str | None = None,
        image_model: str | None = None,
        image_api_token: str | None = None,
        completion_fn: CompletionCallable | None = None,
        image_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self._config = config or StoryPipelineConfig.from_env()
        self._synthesizer = synthesizer or NarrativeSynthesizer(
            api_key=text_api_key,
            model=text_model,
            completion_fn=completion_fn,
            language=self._config.language,
        )
        self._composer = composer or PromptComposer()
        self._executor = executor
        self._image_generator = image_generator
        self._image_model = image_model
        self._image_api_token = image_api_token
        self._image_kwargs = dict(image_kwargs or {})
        self._assembler = assembler or ResultAssembler()
        self._credential_gate = credential_gate or EnvironmentCredentialGate()

    @property
    def config(self) -> StoryPipelineConfig:
        return self._config

    async def generate_story(
        self,
        reference_photo: ReferencePhoto | None,
        *,
        template_id: str | None = None,
        arc_id: str | None = None,
        seed: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryResult:
        """
        Complete pipeline from reference photo to an assembled story.
        """
        template = get_template(template_id or self._config.template_id)
        await self._preflight(reference_photo)

        record, plans, chosen_arc = await self._prepare(
            reference_photo,
            template=template,
            arc_id=arc_id,
            seed=seed,
            progress_callback=progress_callback,
        )
        return await self._render(
            plans,
            record,
            reference_photo,
            template=template,
            style_type=chosen_arc,
            progress_callback=progress_callback,
        )

    async def create_draft(
        self,
        reference_photo: ReferencePhoto | None,
        *,
        template_id: str | None = None,
        arc_id: str | None = None,
        seed: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryDraft:
        """
        Run narrative synthesis and prompt composition only, for human review.
        """
        template = get_template(template_id or self._config.template_id)
        await self._preflight(reference_photo)

        record, plans, chosen_arc = await self._prepare(
            reference_photo,
            template=template,
            arc_id=arc_id,
            seed=seed,
            progress_callback=progress_callback,
        )
        draft = StoryDraft.from_plans(
            record,
            plans,
            template_id=template.template_id,
            style_type=chosen_arc,
        )
        self._notify(
            progress_callback,
            "draft:ready",
            total_slides=len(draft.slides),
            persona_name=draft.persona_name,
            style_type=draft.style_type,
        )
        return draft

    async def render_from_draft(
        self,
        draft: StoryDraft,
        reference_photo: ReferencePhoto | None,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryResult:
        """
        Render images for an approved draft, using its prompts exactly as stored.
        """
        template = get_template(draft.template_id)
        await self._preflight(reference_photo)

        if len(draft.slides) != template.slide_count:
            raise ValueError(
                f"Draft has {len(draft.slides)} slides but template '{template.template_id}' "
                f"needs {template.slide_count}."
            )

        return await self._render(
            draft.to_prompt_plans(),
            draft.to_narrative_record(),
            reference_photo,
            template=template,
            style_type=draft.style_type,
            progress_callback=progress_callback,
        )

    def _batch_executor(self) -> ImageBatchExecutor:
        # Built on first render, after the credential gate has passed.
        if self._executor is None:
            generator = self._image_generator or ReplicateImageGenerator(
                api_token=self._image_api_token,
                model_identifier=self._image_model,
            )
            self._executor = ImageBatchExecutor(
                generator,
                aspect_ratio=self._config.aspect_ratio,
                model_kwargs=self._image_kwargs,
            )
        return self._executor

    async def _preflight(self, reference_photo: ReferencePhoto | None) -> None:
        if reference_photo is None:
            raise MissingReferencePhotoError()
        if not await self._credential_gate.has_valid_credential():
            raise MissingCredentialError()

    async def _prepare(
        self,
        reference_photo: ReferencePhoto | None,
        *,
        template: StoryTemplate,
        arc_id: str | None,
        seed: int | None,
        progress_callback: ProgressCallback | None,
    ) -> tuple[NarrativeRecord, list[PromptPlan], str]:
        chosen_arc = self._choose_arc(template, arc_id=arc_id, seed=seed)

        self._notify(
            progress_callback,
            "narrative:generating",
            template_id=template.template_id,
            total_slides=template.slide_count,
        )
        record = await self._synthesizer.synthesize(
            template,
            reference_photo,
            temperature=self._config.narrative_temperature,
            max_output_tokens=self._config.max_output_tokens,
        )
        self._notify(
            progress_callback,
            "narrative:ready",
            persona_name=record.persona_name,
            total_captions=len(record.captions),
        )

        plans = self._composer.compose(record, template, chosen_arc)
        self._notify(
            progress_callback,
            "prompts:composed",
            arc_id=chosen_arc,
            total_slides=len(plans),
        )
        return record, plans, chosen_arc

    async def _render(
        self,
        plans: list[PromptPlan],
        record: NarrativeRecord,
        reference_photo: ReferencePhoto | None,
        *,
        template: StoryTemplate,
        style_type: str,
        progress_callback: ProgressCallback | None,
    ) -> StoryResult:
        self._notify(progress_callback, "images:generating", total_slides=len(plans))

        def _slide_done(slide_index: int, total: int) -> None:
            self._notify(
                progress_callback,
                "image:done",
                slide_number=slide_index + 1,
                total_slides=total,
            )

        responses = await self._batch_executor().execute(
            plans,
            reference_photo,
            on_slide_done=_slide_done,
        )

        self._notify(progress_callback, "story:assembling", total_slides=len(responses))
        story = self._assembler.assemble(
            responses,
            plans,
            record,
            layout=template.layout,
            style_type=style_type,
        )
        self._notify(
            progress_callback,
            "story:complete",
            total_slides=len(story.slides),
            persona_name=story.persona_name,
        )
        return story

    @staticmethod
    def _choose_arc(template: StoryTemplate, *, arc_id: str | None, seed: int | None) -> str:
        if arc_id is not None:
            return select_arc(template, arc_id=arc_id)
        chosen = select_arc(template, rng=random.Random(seed))
        logger.info("Selected arc '%s' for template '%s' (seed=%s).", chosen, template.template_id, seed)
        return chosen

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
