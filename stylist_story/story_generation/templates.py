"""
Story templates and arcs for makeover transformation stories.

A template fixes the narrative beats, outfit slots, layout, and canonical
fallback copy for every slide. An arc supplies the location, camera framing,
lighting, and vibe for each slide type, so any template can be shot in any arc.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .slides import LayoutTable, SlideLayout, SlideType, TextPosition, BadgePosition

DEFAULT_TEMPLATE_ID = "standard"

CONSISTENCY_ANCHOR = "a slim rose-gold smartphone in a clear case with a thin tan leather wrist strap"

VOICE_GUIDANCE: Mapping[str, str] = {
    "persona": (
        "Write every caption in the first person, as the woman in the photo telling her own story "
        "(\"I used to...\", \"I learned...\"). Warm, honest, a little self-deprecating, never preachy."
    ),
    "case_study": (
        "Write every caption in the third person, as her stylist presenting a client case study "
        "(\"She believed...\", \"Her new rule...\"). Calm, expert, encouraging."
    ),
}

OUTFIT_SLOT_GUIDANCE: Mapping[str, str] = {
    "before": (
        "Clean, decent, everyday clothes that do NOT flatter her: shapeless or ill-fitting cuts, dated "
        "patterns, dull beige or grey tones, thick knits hiding her shape, practical unattractive shoes. "
        "Absolutely no dirt, stains or rips; the fail is in the style and the fit."
    ),
    "after": (
        "A flattering, modern, realistic outfit on a normal budget: defined waist, balanced proportions, "
        "one colour near the face that suits her colouring, simple accessories."
    ),
}

BEFORE_COMPOSITION = (
    "Amateur phone snapshot look: no glamour, no styling, nothing polished.",
)

PERSON_COMPOSITION = (
    "Show her head and face completely; do not crop the top of the head.",
)


@dataclass(frozen=True)
class SlideBlueprint:
    """
    Fixed per-slide shape of a template.

    Attributes
    ----------
    slide_type:
        The narrative beat this slide plays.
    beat:
        Instruction for the narrative model describing what the caption must convey.
    action:
        What the subject (or the camera, for object shots) is doing in the image.
    default_scene:
        Scene description used when the narrative omits one for this slide.
    outfit_slot:
        Outfit slot id interpolated into the image prompt.
    uses_reference_photo:
        Whether the image call receives the reference photo. ``False`` marks a shot
        with no person in it.
    composition:
        Extra composition rules specific to this slide.
    """

    slide_type: SlideType
    beat: str
    action: str
    default_scene: str
    outfit_slot: str
    uses_reference_photo: bool = True
    composition: tuple[str, ...] = ()


@dataclass(frozen=True)
class ArcShot:
    setting: str
    framing: str
    lighting: str
    vibe: str


@dataclass(frozen=True)
class StoryArc:
    """A named photo-session look: one shot description per slide type."""

    arc_id: str
    label: str
    shots: Mapping[SlideType, ArcShot]

    def shot_for(self, slide_type: SlideType) -> ArcShot:
        try:
            return self.shots[slide_type]
        except KeyError as exc:
            raise ValueError(
                f"Arc '{self.arc_id}' does not define a shot for slide type '{slide_type.value}'."
            ) from exc


@dataclass(frozen=True)
class StoryTemplate:
    """
    Complete specification of one story variant.

    ``fallback_captions`` doubles as the deterministic filler used when the
    narrative model returns too few captions; a ``{persona_name}`` placeholder in
    it is filled with the story's persona. ``pinned_captions`` maps slide
    indices to copy that always replaces whatever the model wrote.
    """

    template_id: str
    label: str
    voice: str
    slides: tuple[SlideBlueprint, ...]
    fallback_persona_name: str
    fallback_captions: tuple[str, ...]
    outfit_defaults: Mapping[str, str]
    arcs: Mapping[str, StoryArc]
    layout: LayoutTable = field(default_factory=LayoutTable)
    pinned_captions: Mapping[int, str] = field(default_factory=dict)
    consistency_anchor: str = CONSISTENCY_ANCHOR

    def __post_init__(self) -> None:
        if self.voice not in VOICE_GUIDANCE:
            raise ValueError(f"Template '{self.template_id}' uses unknown voice '{self.voice}'.")
        if len(self.fallback_captions) != len(self.slides):
            raise ValueError(
                f"Template '{self.template_id}' needs {len(self.slides)} fallback captions, "
                f"got {len(self.fallback_captions)}."
            )
        for index in self.pinned_captions:
            if not 0 <= index < len(self.slides):
                raise ValueError(
                    f"Template '{self.template_id}' pins caption {index}, outside its slide range."
                )
        for blueprint in self.slides:
            if blueprint.outfit_slot not in self.outfit_defaults:
                raise ValueError(
                    f"Template '{self.template_id}' has no default for outfit slot "
                    f"'{blueprint.outfit_slot}'."
                )
        for index in range(len(self.fallback_captions)):
            try:
                self.filler_caption(index)
            except (KeyError, IndexError, ValueError) as exc:
                raise ValueError(
                    f"Template '{self.template_id}' fallback caption {index} has an unknown placeholder."
                ) from exc
        if not self.arcs:
            raise ValueError(f"Template '{self.template_id}' must define at least one arc.")
        for arc in self.arcs.values():
            for blueprint in self.slides:
                arc.shot_for(blueprint.slide_type)

    @property
    def slide_count(self) -> int:
        return len(self.slides)

    @property
    def slide_types(self) -> tuple[SlideType, ...]:
        return tuple(blueprint.slide_type for blueprint in self.slides)

    @property
    def outfit_slots(self) -> tuple[str, ...]:
        return tuple(self.outfit_defaults)

    @property
    def arc_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self.arcs))

    def filler_caption(self, index: int, persona_name: str | None = None) -> str:
        return self.fallback_captions[index].format(
            persona_name=persona_name or self.fallback_persona_name
        )

    def arc(self, arc_id: str) -> StoryArc:
        try:
            return self.arcs[arc_id]
        except KeyError as exc:
            supported = ", ".join(self.arc_ids)
            raise ValueError(
                f"Unknown arc '{arc_id}' for template '{self.template_id}'. Supported arcs: {supported}."
            ) from exc


def outfit_slot_guidance(slot: str) -> str:
    prefix = slot.split("_", 1)[0]
    return OUTFIT_SLOT_GUIDANCE.get(prefix, OUTFIT_SLOT_GUIDANCE["after"])


ARCS: Mapping[str, StoryArc] = {
    "city_chic": StoryArc(
        arc_id="city_chic",
        label="City Chic",
        shots={
            SlideType.PROBLEM: ArcShot(
                setting="a narrow apartment hallway with a full-length mirror and coats on hooks",
                framing="full-body shot at eye level, phone-camera height",
                lighting="flat overhead ceiling light with a slightly greenish cast",
                vibe="mundane weekday morning, tired",
            ),
            SlideType.BELIEF: ArcShot(
                setting="a small bedroom with an unmade bed covered in a pile of clothes",
                framing="medium-wide shot from a slightly high angle",
                lighting="dim window light on an overcast day",
                vibe="doubtful, stuck",
            ),
            SlideType.TWIST: ArcShot(
                setting="a bright styling studio with a clothing rail softly out of focus behind her",
                framing="tight close-up from the shoulders up, eye level, 85mm portrait look",
                lighting="soft window light from the side",
                vibe="surprised, a first spark of hope",
            ),
            SlideType.PRINCIPLE: ArcShot(
                setting="a light oak table top next to a sunny window",
                framing="top-down flat-lay, camera directly overhead",
                lighting="soft diffused daylight with gentle shadows",
                vibe="clean, editorial, organised",
            ),
            SlideType.PROCESS: ArcShot(
                setting="a boutique fitting room with a linen curtain and a tall mirror",
                framing="medium shot from the waist up, slightly angled",
                lighting="warm boutique spotlights",
                vibe="focused, curious, experimenting",
            ),
            SlideType.RESULT: ArcShot(
                setting="a sunlit cobblestone street in an old European city centre",
                framing="full-body shot at eye level, she fills two thirds of the frame height",
                lighting="golden hour sun from behind with a soft rim light",
                vibe="confident, light, a fresh start",
            ),
            SlideType.INSIGHT: ArcShot(
                setting="a terrace cafe table on a lively city square",
                framing="candid medium shot, slightly off-axis",
                lighting="warm late-afternoon light",
                vibe="joyful, relaxed, seen",
            ),
            SlideType.CTA: ArcShot(
                setting="a quiet street corner with pastel-coloured building facades",
                framing="three-quarter body shot, looking straight into the lens",
                lighting="soft open shade, even and flattering",
                vibe="warm, inviting, self-assured",
            ),
        },
    ),
    "weekend_market": StoryArc(
        arc_id="weekend_market",
        label="Weekend Market",
        shots={
            SlideType.PROBLEM: ArcShot(
                setting="a cluttered kitchen with a fluorescent tube light over the counter",
                framing="full-body shot at eye level, phone-camera height",
                lighting="harsh fluorescent light, flat and cold",
                vibe="ordinary Saturday chores, bored",
            ),
            SlideType.BELIEF: ArcShot(
                setting="a living room sofa next to a basket of unfolded laundry",
                framing="medium-wide shot, slightly high angle",
                lighting="grey daylight from a small window",
                vibe="resigned, scrolling for answers",
            ),
            SlideType.TWIST: ArcShot(
                setting="a market stall draped in colourful fabric rolls, softly blurred behind her",
                framing="tight close-up from the shoulders up, eye level",
                lighting="bright open shade under a canvas awning",
                vibe="curious, a lightbulb moment",
            ),
            SlideType.PRINCIPLE: ArcShot(
                setting="the flat top of a rustic wooden market crate",
                framing="top-down flat-lay, camera directly overhead",
                lighting="dappled morning sunlight",
                vibe="simple, handpicked, intentional",
            ),
            SlideType.PROCESS: ArcShot(
                setting="a vintage clothing stall with a freestanding mirror",
                framing="medium shot from the waist up, slightly angled",
                lighting="warm morning sun through the stall awning",
                vibe="playful, testing options",
            ),
            SlideType.RESULT: ArcShot(
                setting="an open-air farmers market aisle lined with flower stalls",
                framing="full-body shot at eye level, mid-stride",
                lighting="late-morning sun with soft bounce from the pavement",
                vibe="easy confidence, weekend energy",
            ),
            SlideType.INSIGHT: ArcShot(
                setting="a wooden picnic bench with coffee cups and pastries",
                framing="candid medium shot, slightly off-axis",
                lighting="soft midday light under a tree canopy",
                vibe="warm, social, noticed",
            ),
            SlideType.CTA: ArcShot(
                setting="in front of a flower stand with buckets of tulips",
                framing="three-quarter body shot, looking straight into the lens",
                lighting="bright open shade, even skin tones",
                vibe="cheerful, inviting",
            ),
        },
    ),
    "office_glow": StoryArc(
        arc_id="office_glow",
        label="Office Glow",
        shots={
            SlideType.PROBLEM: ArcShot(
                setting="an open-plan office corridor under harsh ceiling panels",
                framing="full-body shot at eye level, phone-camera height",
                lighting="flat overhead panel light, no contrast",
                vibe="overlooked, another Monday",
            ),
            SlideType.BELIEF: ArcShot(
                setting="a cluttered desk with a laptop, sticky notes and a cold coffee",
                framing="medium shot from a slightly high angle",
                lighting="cool monitor glow mixed with grey window light",
                vibe="self-doubt, comparing herself to others",
            ),
            SlideType.TWIST: ArcShot(
                setting="a meeting room with glass walls softly blurred behind her",
                framing="tight close-up from the shoulders up, eye level",
                lighting="soft daylight from floor-to-ceiling windows",
                vibe="realisation, quiet surprise",
            ),
            SlideType.PRINCIPLE: ArcShot(
                setting="a white marble desk surface beside a closed notebook",
                framing="top-down flat-lay, camera directly overhead",
                lighting="clean, even studio-like daylight",
                vibe="minimal, structured, professional",
            ),
            SlideType.PROCESS: ArcShot(
                setting="a department store fitting room with neutral walls",
                framing="medium shot from the waist up, slightly angled",
                lighting="warm overhead spotlights",
                vibe="methodical, trying it properly",
            ),
            SlideType.RESULT: ArcShot(
                setting="a modern office lobby with tall windows and a polished floor",
                framing="full-body shot at eye level, walking in",
                lighting="bright morning light streaming through the windows",
                vibe="poised, ready for the day",
            ),
            SlideType.INSIGHT: ArcShot(
                setting="standing by a whiteboard while colleagues listen",
                framing="candid medium shot, slightly off-axis",
                lighting="natural office daylight",
                vibe="heard, respected, at ease",
            ),
            SlideType.CTA: ArcShot(
                setting="a rooftop terrace with a soft-focus city skyline",
                framing="three-quarter body shot, looking straight into the lens",
                lighting="soft early-evening light",
                vibe="accomplished, welcoming",
            ),
        },
    ),
}

OUTFIT_DEFAULTS: Mapping[str, str] = {
    "before_1": (
        "a clean but shapeless oversized grey hoodie, baggy faded high-waisted mom jeans "
        "and plain white orthopaedic sneakers"
    ),
    "before_2": (
        "a clean dated beige cable-knit sweater that hides her shape, loose straight-leg khaki "
        "trousers and flat grey slip-on shoes"
    ),
    "after_1": (
        "a fitted cream ribbed knit top tucked into high-waisted camel wide-leg trousers, "
        "a thin tan belt and pointed nude flats"
    ),
    "after_2": "a tailored navy blazer over a crisp white tee, straight dark-wash jeans and white leather sneakers",
    "after_3": "a deep emerald wrap midi dress with a defined waist and simple gold hoop earrings",
}

_PROBLEM = SlideBlueprint(
    slide_type=SlideType.PROBLEM,
    beat="The problem: she gets dressed every day and feels invisible, dated and unlike herself.",
    action="stands in front of a mirror, shoulders slightly slumped, looking at her reflection with mild disappointment",
    default_scene="An ordinary morning; she checks her outfit in the mirror before leaving and sighs.",
    outfit_slot="before_1",
    composition=BEFORE_COMPOSITION + PERSON_COMPOSITION + ("Full body visible from head to shoes.",),
)

_BELIEF = SlideBlueprint(
    slide_type=SlideType.BELIEF,
    beat="The false belief: she is sure looking good needs a smaller body, a bigger budget or being younger.",
    action="sits among a pile of unworn clothes, holding her phone and scrolling, looking doubtful",
    default_scene="She scrolls through perfect outfit photos, convinced they are not for someone like her.",
    outfit_slot="before_2",
    composition=BEFORE_COMPOSITION + PERSON_COMPOSITION,
)

_TWIST = SlideBlueprint(
    slide_type=SlideType.TWIST,
    beat="The twist: a stylist shows her the issue was proportion and colour, never her body.",
    action="listens with a slight surprised half-smile, eyebrows raised, as if hearing good news",
    default_scene="A stylist holds a colour swatch near her face and everything suddenly clicks.",
    outfit_slot="before_2",
    composition=PERSON_COMPOSITION + ("Face fully visible, sharp, and centred in the upper half.",),
)

_PRINCIPLE = SlideBlueprint(
    slide_type=SlideType.PRINCIPLE,
    beat="The principle: the one simple styling rule she learns, stated clearly enough to remember.",
    action="the new outfit pieces laid out neatly side by side, folded and arranged with care",
    default_scene="The new capsule pieces laid out together: one fitted piece, one neutral base, one colour.",
    outfit_slot="after_1",
    uses_reference_photo=False,
    composition=("No people, no hands, no faces anywhere in the frame.",),
)

_PROCESS = SlideBlueprint(
    slide_type=SlideType.PROCESS,
    beat="The process: trying pieces on, testing fits and colours on a realistic budget.",
    action="adjusts the waist of the new outfit while checking the fit in a mirror, focused and curious",
    default_scene="She tries the first new combination on and studies the proportions in the mirror.",
    outfit_slot="after_1",
    composition=PERSON_COMPOSITION,
)

_RESULT = SlideBlueprint(
    slide_type=SlideType.RESULT,
    beat="The result: the first full new look out in the real world, and how it feels.",
    action="walks toward the camera mid-stride, relaxed and confident",
    default_scene="Her first day out in the new look; she walks with her head up.",
    outfit_slot="after_1",
    composition=PERSON_COMPOSITION + ("Full body visible from head to shoes.",),
)

_INSIGHT = SlideBlueprint(
    slide_type=SlideType.INSIGHT,
    beat="The insight: what really changed is how she feels and how others see her.",
    action="laughs naturally while talking with a friend just off-camera, a candid moment",
    default_scene="A friend compliments her and she laughs, realising the change goes deeper than clothes.",
    outfit_slot="after_2",
    composition=PERSON_COMPOSITION,
)

_CTA = SlideBlueprint(
    slide_type=SlideType.CTA,
    beat="The call to action: invite the viewer to try the rule, save the post or follow for more.",
    action="looks directly into the camera with a warm, confident smile, one hand resting on her hip",
    default_scene="She faces the viewer, confident and welcoming, in her favourite new outfit.",
    outfit_slot="after_3",
    composition=PERSON_COMPOSITION,
)

STANDARD_TEMPLATE = StoryTemplate(
    template_id="standard",
    label="Stylist story (first person, 8 slides)",
    voice="persona",
    slides=(_PROBLEM, _BELIEF, _TWIST, _PRINCIPLE, _PROCESS, _RESULT, _INSIGHT, _CTA),
    fallback_persona_name="Sofia",
    fallback_captions=(
        "I used to get dressed every morning and feel completely invisible.",
        "I was sure I needed a smaller body or a bigger budget to look good.",
        "Then my stylist said: it's not your body, it's the proportions.",
        "The rule: one fitted piece, one neutral base, one colour near your face.",
        "So I tested it. Same budget, just different cuts and colours.",
        "The first time I walked out like this, I felt like myself again.",
        "The clothes changed a little. The way people saw me changed a lot.",
        "Try the one-fitted-piece rule tomorrow and tell me how it feels.",
    ),
    outfit_defaults=OUTFIT_DEFAULTS,
    arcs=ARCS,
)

CASE_STUDY_TEMPLATE = StoryTemplate(
    template_id="case_study",
    label="Stylist case study (third person, 8 slides)",
    voice="case_study",
    slides=(_PROBLEM, _BELIEF, _TWIST, _PRINCIPLE, _PROCESS, _RESULT, _INSIGHT, _CTA),
    fallback_persona_name="Ana",
    fallback_captions=(
        "Meet {persona_name}. Every morning she got dressed and felt invisible.",
        "She believed looking good needed a smaller body or a bigger budget.",
        "The real issue? Proportions and colour, not her body.",
        "Her new rule: one fitted piece, one neutral base, one colour near the face.",
        "We tested it piece by piece. Same budget, new cuts.",
        "Week one: the first outfit that truly felt like her.",
        "The clothes changed a little. Her confidence changed a lot.",
        "Save this and book your own style session.",
    ),
    outfit_defaults=OUTFIT_DEFAULTS,
    arcs=ARCS,
    layout=LayoutTable(
        index_overrides={7: SlideLayout(TextPosition.MIDDLE, BadgePosition.TOP_LEFT)},
    ),
    pinned_captions={7: "Save this and book your own style session."},
)

QUICK_TEMPLATE = StoryTemplate(
    template_id="quick",
    label="Quick makeover (first person, 6 slides)",
    voice="persona",
    slides=(
        _PROBLEM,
        SlideBlueprint(
            slide_type=SlideType.TWIST,
            beat=_TWIST.beat,
            action=_TWIST.action,
            default_scene=_TWIST.default_scene,
            outfit_slot="before_1",
            composition=_TWIST.composition,
        ),
        _PRINCIPLE,
        _PROCESS,
        _RESULT,
        SlideBlueprint(
            slide_type=SlideType.CTA,
            beat=_CTA.beat,
            action=_CTA.action,
            default_scene=_CTA.default_scene,
            outfit_slot="after_2",
            composition=_CTA.composition,
        ),
    ),
    fallback_persona_name="Sofia",
    fallback_captions=(
        "I felt invisible in my own clothes.",
        "Then I learned it was never my body. It was the proportions.",
        "One fitted piece, one neutral base, one colour near the face.",
        "I tried it with clothes I could actually afford.",
        "This is the first outfit in years that feels like me.",
        "Save this and try the rule this week.",
    ),
    outfit_defaults={
        slot: OUTFIT_DEFAULTS[slot] for slot in ("before_1", "after_1", "after_2")
    },
    arcs=ARCS,
    layout=LayoutTable(
        index_overrides={1: SlideLayout(TextPosition.BOTTOM, BadgePosition.TOP_LEFT)},
    ),
)

TEMPLATES: Mapping[str, StoryTemplate] = {
    template.template_id: template
    for template in (STANDARD_TEMPLATE, CASE_STUDY_TEMPLATE, QUICK_TEMPLATE)
}


def get_template(template_id: str | None = None) -> StoryTemplate:
    """
    Look up a template by id, defaulting to the standard 8-slide story.
    """
    key = (template_id or DEFAULT_TEMPLATE_ID).strip().lower()
    template = TEMPLATES.get(key)
    if template is None:
        supported = ", ".join(sorted(TEMPLATES))
        raise ValueError(f"Unknown story template '{template_id}'. Supported templates: {supported}.")
    return template
