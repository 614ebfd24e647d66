"""
Tests for narrative parsing, normalization and the synthesizer request.
"""

import json

import pytest

from conftest import completion_returning, narrative_json
from stylist_story.common import NarrativeGenerationError, ReferencePhoto
from stylist_story.story_generation import (
    TEMPLATES,
    NarrativeSynthesizer,
    extract_json_object,
    fallback_narrative,
    get_template,
    normalize_narrative,
)
from stylist_story.story_generation.narrative import NarrativeParseError


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"personaName": "Mia"}') == {"personaName": "Mia"}

    def test_code_fenced_object(self):
        raw = 'Here you go:\n```json\n{"captions": ["a", "b"]}\n```\nEnjoy!'
        assert extract_json_object(raw) == {"captions": ["a", "b"]}

    def test_surrounding_prose_is_ignored(self):
        raw = 'Sure! {"personaName": "Lena", "captions": []} Hope that helps.'
        assert extract_json_object(raw)["personaName"] == "Lena"

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "{broken", "[1, 2, 3]"])
    def test_unusable_output_raises(self, raw):
        with pytest.raises(NarrativeParseError):
            extract_json_object(raw)


def expected_filler(template, index, persona_name):
    return template.pinned_captions.get(index, template.filler_caption(index, persona_name))


class TestNormalizeNarrative:
    @pytest.mark.parametrize("template_id", sorted(TEMPLATES))
    def test_short_caption_list_is_padded_with_template_filler(self, template_id):
        template = get_template(template_id)
        payload = {"personaName": "Mia", "captions": ["one", "two"]}

        record = normalize_narrative(payload, template)

        assert len(record.captions) == template.slide_count
        assert record.captions[:2] == ("one", "two")
        assert record.captions[2:] == tuple(
            expected_filler(template, index, "Mia") for index in range(2, template.slide_count)
        )

    def test_extra_captions_are_dropped(self, standard_template):
        payload = {"captions": [f"c{n}" for n in range(12)]}

        record = normalize_narrative(payload, standard_template)

        assert record.captions == tuple(f"c{n}" for n in range(8))

    @pytest.mark.parametrize("template_id", sorted(TEMPLATES))
    def test_blank_entries_fall_back_per_index(self, template_id):
        template = get_template(template_id)
        captions = ["one", "", "three", None] + ["more"] * (template.slide_count - 4)

        record = normalize_narrative({"captions": captions}, template)

        assert record.captions[1] == expected_filler(template, 1, template.fallback_persona_name)
        assert record.captions[3] == expected_filler(template, 3, template.fallback_persona_name)
        assert record.captions[2] == "three"

    def test_filler_is_addressed_to_the_records_persona(self):
        template = get_template("case_study")
        payload = {"personaName": "Lena", "captions": ["", "b", "c"]}

        record = normalize_narrative(payload, template)

        assert record.persona_name == "Lena"
        assert record.captions[0].startswith("Meet Lena.")
        assert "Ana" not in record.captions[0]

    def test_missing_outfit_slots_use_defaults(self, standard_template):
        payload = {"captions": ["x"] * 8, "outfits": {"after_1": "a red trench coat"}}

        record = normalize_narrative(payload, standard_template)

        assert record.outfit_descriptions["after_1"] == "a red trench coat"
        assert record.outfit_descriptions["before_1"] == standard_template.outfit_defaults["before_1"]
        assert set(record.outfit_descriptions) == set(standard_template.outfit_slots)

    def test_pinned_caption_overrides_model_output(self):
        template = get_template("case_study")
        payload = {"captions": [f"caption {n}" for n in range(8)]}

        record = normalize_narrative(payload, template)

        assert record.captions[7] == "Save this and book your own style session."
        assert record.captions[6] == "caption 6"

    def test_missing_persona_name_uses_template_fallback(self, standard_template):
        record = normalize_narrative({"captions": ["x"] * 8}, standard_template)
        assert record.persona_name == standard_template.fallback_persona_name

    @pytest.mark.parametrize("template_id", sorted(TEMPLATES))
    def test_fallback_narrative_is_canonical(self, template_id):
        template = get_template(template_id)

        record = fallback_narrative(template)

        assert record.persona_name == template.fallback_persona_name
        assert record.captions == tuple(
            expected_filler(template, index, template.fallback_persona_name)
            for index in range(template.slide_count)
        )
        assert record.scene_descriptions == tuple(blueprint.default_scene for blueprint in template.slides)
        assert dict(record.outfit_descriptions) == dict(template.outfit_defaults)


class TestNarrativeSynthesizer:
    @pytest.mark.asyncio
    async def test_well_formed_response(self, standard_template):
        completion = completion_returning(narrative_json(persona_name="Mia"))
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)

        record = await synthesizer.synthesize(standard_template)

        assert record.persona_name == "Mia"
        assert record.captions == tuple(f"Model caption {n}" for n in range(1, 9))
        assert record.outfit_descriptions["before_1"] == "a baggy brown cardigan"

    @pytest.mark.asyncio
    async def test_request_uses_json_mode_and_model(self, standard_template):
        completion = completion_returning(narrative_json())
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)

        await synthesizer.synthesize(standard_template, temperature=0.4, max_output_tokens=900)

        kwargs = completion.await_args.kwargs
        assert kwargs["model"] == "gemini/test"
        assert kwargs["api_key"] == "k"
        assert kwargs["temperature"] == 0.4
        assert kwargs["max_tokens"] == 900
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_reference_photo_is_attached_as_image_part(self, standard_template):
        completion = completion_returning(narrative_json())
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)
        photo = ReferencePhoto(data=b"photo-bytes", mime_type="image/jpeg")

        await synthesizer.synthesize(standard_template, photo)

        user_content = completion.await_args.kwargs["messages"][1]["content"]
        assert isinstance(user_content, list)
        assert user_content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_malformed_response_recovers_with_fallback(self, standard_template):
        completion = completion_returning("I'm sorry, I can't help with that.")
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)

        record = await synthesizer.synthesize(standard_template)

        assert record == fallback_narrative(standard_template)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("template_id", sorted(TEMPLATES))
    async def test_empty_caption_list_recovers_with_fallback(self, template_id):
        template = get_template(template_id)
        completion = completion_returning(json.dumps({"personaName": "Mia", "captions": []}))
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)

        record = await synthesizer.synthesize(template)

        assert record == fallback_narrative(template)
        assert record.persona_name == template.fallback_persona_name

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self, standard_template):
        completion = completion_returning("")
        completion.side_effect = ConnectionError("network down")
        synthesizer = NarrativeSynthesizer(api_key="k", model="gemini/test", completion_fn=completion)

        with pytest.raises(NarrativeGenerationError, match="network down"):
            await synthesizer.synthesize(standard_template)
