"""
End-to-end tests for the orchestrator with fake text and image backends.
"""

import pytest

from conftest import FakeImageGenerator, completion_returning, narrative_json
from stylist_story import StoryDraft
from stylist_story.common import (
    IncompleteGenerationError,
    MissingCredentialError,
    MissingReferencePhotoError,
    StaticCredentialGate,
)
from stylist_story.pipeline import StoryPipelineConfig, StylistStoryOrchestrator
from stylist_story.story_generation import SlideType, get_template


class TestGenerateStory:
    @pytest.mark.asyncio
    async def test_standard_story_has_eight_slides(self, make_orchestrator, reference_photo):
        orchestrator = make_orchestrator()

        story = await orchestrator.generate_story(reference_photo, arc_id="city_chic")

        assert len(story.slides) == 8
        assert story.slides[7].type is SlideType.CTA
        assert story.style_type == "city_chic"
        assert story.persona_name == "Sofia"
        assert [slide.text for slide in story.slides] == [f"Model caption {n}" for n in range(1, 9)]

    @pytest.mark.asyncio
    async def test_truncated_narrative_is_padded_and_still_renders(self, make_orchestrator, reference_photo):
        captions = [f"Real caption {n}" for n in range(1, 6)]
        orchestrator = make_orchestrator(completion_text=narrative_json(captions=captions))

        story = await orchestrator.generate_story(reference_photo, arc_id="city_chic")

        template = get_template("standard")
        assert len(story.slides) == 8
        assert [slide.text for slide in story.slides[:5]] == captions
        assert [slide.text for slide in story.slides[5:]] == [
            template.filler_caption(index, story.persona_name) for index in range(5, 8)
        ]

    @pytest.mark.asyncio
    async def test_blocked_slide_fails_whole_story(self, make_orchestrator, reference_photo):
        generator = FakeImageGenerator(empty_calls=[3])
        orchestrator = make_orchestrator(image_generator=generator)

        with pytest.raises(IncompleteGenerationError) as excinfo:
            await orchestrator.generate_story(reference_photo, arc_id="city_chic")

        assert excinfo.value.missing_slides == (3,)
        assert len(generator.calls) == 8

    @pytest.mark.asyncio
    async def test_slides_keep_order_when_images_finish_out_of_order(self, make_orchestrator, reference_photo):
        generator = FakeImageGenerator(delays=[0.05, 0.0, 0.04, 0.01, 0.03, 0.0, 0.02, 0.0])
        orchestrator = make_orchestrator(image_generator=generator)

        story = await orchestrator.generate_story(reference_photo, arc_id="weekend_market")

        assert generator.completion_order != list(range(8))
        assert [slide.text for slide in story.slides] == [f"Model caption {n}" for n in range(1, 9)]
        assert list(story.slides[i].type for i in range(8)) == list(get_template().slide_types)

    @pytest.mark.asyncio
    async def test_missing_photo_fails_before_any_call(self, make_orchestrator):
        completion = completion_returning(narrative_json())
        generator = FakeImageGenerator()
        orchestrator = make_orchestrator(completion_fn=completion, image_generator=generator)

        with pytest.raises(MissingReferencePhotoError):
            await orchestrator.generate_story(None)

        completion.assert_not_awaited()
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_any_call(self, make_orchestrator, reference_photo):
        completion = completion_returning(narrative_json())
        generator = FakeImageGenerator()
        orchestrator = make_orchestrator(
            completion_fn=completion, image_generator=generator, has_credential=False
        )

        with pytest.raises(MissingCredentialError):
            await orchestrator.generate_story(reference_photo)

        completion.assert_not_awaited()
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_seed_makes_arc_choice_reproducible(self, make_orchestrator, reference_photo):
        first = await make_orchestrator().generate_story(reference_photo, seed=11)
        second = await make_orchestrator().generate_story(reference_photo, seed=11)
        assert first.style_type == second.style_type

    @pytest.mark.asyncio
    async def test_template_from_config(self, make_orchestrator, reference_photo):
        generator = FakeImageGenerator()
        orchestrator = make_orchestrator(
            completion_text=narrative_json(count=6),
            image_generator=generator,
            config=StoryPipelineConfig(template_id="quick", aspect_ratio="4:5"),
        )

        story = await orchestrator.generate_story(reference_photo, arc_id="office_glow")

        assert len(story.slides) == 6
        assert {call["aspect_ratio"] for call in generator.calls} == {"4:5"}

    @pytest.mark.asyncio
    async def test_case_study_pins_closing_caption(self, make_orchestrator, reference_photo):
        story = await make_orchestrator().generate_story(
            reference_photo, template_id="case_study", arc_id="city_chic"
        )
        assert story.slides[7].text == "Save this and book your own style session."

    @pytest.mark.asyncio
    async def test_progress_stages(self, make_orchestrator, reference_photo):
        stages = []
        await make_orchestrator().generate_story(
            reference_photo,
            arc_id="city_chic",
            progress_callback=lambda stage, payload: stages.append(stage),
        )

        assert stages[:4] == ["narrative:generating", "narrative:ready", "prompts:composed", "images:generating"]
        assert stages.count("image:done") == 8
        assert stages[-2:] == ["story:assembling", "story:complete"]


class TestDrafts:
    @pytest.mark.asyncio
    async def test_draft_prompts_are_rendered_unchanged(self, make_orchestrator, reference_photo):
        generator = FakeImageGenerator()
        orchestrator = make_orchestrator(image_generator=generator)

        draft = await orchestrator.create_draft(reference_photo, arc_id="city_chic")
        assert generator.calls == []

        await orchestrator.render_from_draft(draft, reference_photo)

        assert [call["prompt"] for call in generator.calls] == [slide.visual_prompt for slide in draft.slides]

    @pytest.mark.asyncio
    async def test_caption_edit_changes_only_text(self, make_orchestrator, reference_photo):
        orchestrator = make_orchestrator()
        draft = await orchestrator.create_draft(reference_photo, arc_id="city_chic")
        original = await orchestrator.render_from_draft(draft, reference_photo)

        draft.edit_caption(2, "My stylist changed everything.")
        edited = await orchestrator.render_from_draft(draft, reference_photo)

        assert edited.slides[2].text == "My stylist changed everything."
        assert edited.slides[2].image == original.slides[2].image
        assert [s.text for i, s in enumerate(edited.slides) if i != 2] == [
            s.text for i, s in enumerate(original.slides) if i != 2
        ]

    @pytest.mark.asyncio
    async def test_draft_survives_yaml_round_trip(self, make_orchestrator, reference_photo, tmp_path):
        orchestrator = make_orchestrator()
        draft = await orchestrator.create_draft(reference_photo, template_id="quick", arc_id="office_glow")

        path = tmp_path / "draft.yaml"
        path.write_text(draft.to_yaml(), encoding="utf-8")
        restored = StoryDraft.from_yaml(path)

        assert restored == draft
        story = await orchestrator.render_from_draft(restored, reference_photo)
        assert len(story.slides) == 6
        assert story.style_type == "office_glow"

    def test_edit_caption_rejects_bad_input(self):
        draft = StoryDraft.from_dict(
            {
                "template_id": "standard",
                "style_type": "city_chic",
                "slides": [{"type": "problem", "caption": "hi", "visual_prompt": "a prompt"}],
            }
        )
        with pytest.raises(IndexError):
            draft.edit_caption(5, "text")
        with pytest.raises(ValueError):
            draft.edit_caption(0, "   ")

    def test_from_dict_requires_prompts(self):
        with pytest.raises(ValueError):
            StoryDraft.from_dict(
                {
                    "template_id": "standard",
                    "style_type": "city_chic",
                    "slides": [{"type": "problem", "caption": "hi", "visual_prompt": "  "}],
                }
            )

    @pytest.mark.asyncio
    async def test_render_rejects_draft_with_wrong_slide_count(self, make_orchestrator, reference_photo):
        draft = StoryDraft.from_dict(
            {
                "template_id": "standard",
                "style_type": "city_chic",
                "slides": [{"type": "problem", "caption": "hi", "visual_prompt": "a prompt"}],
            }
        )
        with pytest.raises(ValueError, match="needs 8"):
            await make_orchestrator().render_from_draft(draft, reference_photo)


class TestImageBackendConstruction:
    @pytest.fixture
    def no_replicate_token(self, monkeypatch):
        monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)

    @staticmethod
    def build(has_credential):
        return StylistStoryOrchestrator(
            config=StoryPipelineConfig(),
            completion_fn=completion_returning(narrative_json()),
            credential_gate=StaticCredentialGate(has_credential),
            text_api_key="test-key",
        )

    @pytest.mark.asyncio
    async def test_missing_credential_reported_before_replicate_is_built(self, no_replicate_token, reference_photo):
        orchestrator = self.build(has_credential=False)

        with pytest.raises(MissingCredentialError):
            await orchestrator.generate_story(reference_photo, arc_id="city_chic")

    @pytest.mark.asyncio
    async def test_draft_needs_no_image_token(self, no_replicate_token, reference_photo):
        draft = await self.build(has_credential=True).create_draft(reference_photo, arc_id="city_chic")

        assert len(draft.slides) == 8

    @pytest.mark.asyncio
    async def test_render_without_token_names_the_variable(self, no_replicate_token, reference_photo):
        orchestrator = self.build(has_credential=True)
        draft = await orchestrator.create_draft(reference_photo, arc_id="city_chic")

        with pytest.raises(ValueError, match="REPLICATE_API_TOKEN"):
            await orchestrator.render_from_draft(draft, reference_photo)
