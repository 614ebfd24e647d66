"""
Tests for concurrent image execution and final story assembly.
"""

import pytest

from conftest import FakeImageGenerator
from stylist_story.ai_generation import (
    ImageCandidate,
    ImagePart,
    ImageResponse,
    PromptComposer,
)
from stylist_story.common import (
    ImageGenerationError,
    IncompleteGenerationError,
    MissingReferencePhotoError,
    decode_data_uri,
)
from stylist_story.pipeline import ImageBatchExecutor, ResultAssembler, extract_image_data_uri
from stylist_story.story_generation import BadgePosition, TextPosition, fallback_narrative


@pytest.fixture
def plans(standard_template):
    return PromptComposer().compose(fallback_narrative(standard_template), standard_template, "city_chic")


class TestImageBatchExecutor:
    @pytest.mark.asyncio
    async def test_responses_follow_plan_order_despite_completion_order(self, plans, reference_photo):
        # Later slides finish first.
        generator = FakeImageGenerator(delays=[0.08, 0.07, 0.06, 0.05, 0.04, 0.03, 0.02, 0.01])
        executor = ImageBatchExecutor(generator)

        responses = await executor.execute(plans, reference_photo)

        assert generator.completion_order[0] == 7
        for plan, response in zip(plans, responses):
            assert response.candidates[0].parts[0].inline_data == FakeImageGenerator.image_for(plan.visual_prompt)

    @pytest.mark.asyncio
    async def test_reference_photo_only_on_person_slides(self, plans, reference_photo):
        generator = FakeImageGenerator()
        await ImageBatchExecutor(generator).execute(plans, reference_photo)

        for plan, call in zip(plans, generator.calls):
            expected = reference_photo if plan.uses_reference_photo else None
            assert call["reference_image"] is expected

    @pytest.mark.asyncio
    async def test_aspect_ratio_is_shared_across_batch(self, plans, reference_photo):
        generator = FakeImageGenerator()
        await ImageBatchExecutor(generator, aspect_ratio="4:5", model_kwargs={"seed": 3}).execute(
            plans, reference_photo
        )

        assert {call["aspect_ratio"] for call in generator.calls} == {"4:5"}
        assert all(call["model_kwargs"] == {"seed": 3} for call in generator.calls)

    @pytest.mark.asyncio
    async def test_missing_photo_raises_before_any_call(self, plans):
        generator = FakeImageGenerator()
        with pytest.raises(MissingReferencePhotoError):
            await ImageBatchExecutor(generator).execute(plans, None)
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_transport_failure_is_wrapped_with_slide_index(self, plans, reference_photo):
        generator = FakeImageGenerator(fail_calls=[4])
        with pytest.raises(ImageGenerationError) as excinfo:
            await ImageBatchExecutor(generator).execute(plans, reference_photo)
        assert excinfo.value.slide_index == 4

    @pytest.mark.asyncio
    async def test_progress_callback_fires_per_slide(self, plans, reference_photo):
        seen = []
        await ImageBatchExecutor(FakeImageGenerator()).execute(
            plans, reference_photo, on_slide_done=lambda index, total: seen.append((index, total))
        )
        assert sorted(seen) == [(index, 8) for index in range(8)]


class TestExtractImageDataUri:
    def test_first_inline_part_of_first_candidate(self):
        response = ImageResponse(
            candidates=(
                ImageCandidate(parts=(ImagePart(text="here"), ImagePart(inline_data=b"abc", mime_type="image/jpeg"))),
                ImageCandidate(parts=(ImagePart(inline_data=b"zzz"),)),
            )
        )
        assert decode_data_uri(extract_image_data_uri(response)) == (b"abc", "image/jpeg")

    def test_text_only_or_empty_response(self):
        assert extract_image_data_uri(ImageResponse.empty()) == ""
        text_only = ImageResponse(candidates=(ImageCandidate(parts=(ImagePart(text="refused"),)),))
        assert extract_image_data_uri(text_only) == ""


class TestResultAssembler:
    def test_assembles_slides_with_captions_and_layout(self, plans, standard_template):
        record = fallback_narrative(standard_template)
        responses = [ImageResponse.from_images(b"img%d" % n) for n in range(8)]

        story = ResultAssembler().assemble(
            responses, plans, record, layout=standard_template.layout, style_type="city_chic"
        )

        assert len(story.slides) == 8
        assert story.style_type == "city_chic"
        assert story.persona_name == record.persona_name
        assert [slide.text for slide in story.slides] == list(record.captions)
        assert story.slides[0].text_position is TextPosition.TOP
        assert story.slides[0].badge_position is BadgePosition.BOTTOM_LEFT
        assert story.slides[3].image.startswith("data:image/png;base64,")

    def test_any_missing_image_fails_the_story(self, plans, standard_template):
        record = fallback_narrative(standard_template)
        responses = [ImageResponse.from_images(b"img") for _ in range(8)]
        responses[2] = ImageResponse.empty()
        responses[6] = ImageResponse.empty()

        with pytest.raises(IncompleteGenerationError) as excinfo:
            ResultAssembler().assemble(
                responses, plans, record, layout=standard_template.layout, style_type="city_chic"
            )

        assert excinfo.value.missing_slides == (2, 6)
        assert "3, 7" in str(excinfo.value)

    def test_length_mismatch_raises(self, plans, standard_template):
        with pytest.raises(ValueError):
            ResultAssembler().assemble(
                [ImageResponse.empty()],
                plans,
                fallback_narrative(standard_template),
                layout=standard_template.layout,
                style_type="city_chic",
            )

    def test_to_dict_can_omit_images(self, plans, standard_template):
        story = ResultAssembler().assemble(
            [ImageResponse.from_images(b"img") for _ in range(8)],
            plans,
            fallback_narrative(standard_template),
            layout=standard_template.layout,
            style_type="city_chic",
        )
        payload = story.to_dict(include_images=False)
        assert "image" not in payload["slides"][0]
        assert payload["slides"][0]["type"] == "problem"
