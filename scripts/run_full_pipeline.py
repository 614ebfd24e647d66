"""
CLI to run the stylist story pipeline end-to-end.

Usage:
    python scripts/run_full_pipeline.py \
        --reference-image example_images/client.jpg \
        --template case_study \
        --output-dir story_output

Review first, render later:
    python scripts/run_full_pipeline.py --reference-image client.jpg --draft-only --draft draft.yaml
    python scripts/run_full_pipeline.py --reference-image client.jpg --from-draft draft.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict

import yaml

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from stylist_story import StoryDraft, StoryPipelineConfig, StoryResult, StylistStoryOrchestrator
from stylist_story.common import ReferencePhoto, StoryPipelineError, decode_data_uri
from stylist_story.story_generation import TEMPLATES


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the story pipeline.
    """

    def __init__(self) -> None:
        self._slide_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "narrative:generating":
                template_id = payload.get("template_id", "standard")
                self._write(f"[1/4] Writing the {template_id} narrative...")
            case "narrative:ready":
                name = payload.get("persona_name") or "the client"
                self._write(f"[1/4] Narrative ready for {name}.")
            case "prompts:composed":
                arc = payload.get("arc_id")
                self._write(f"[2/4] Slide prompts composed (arc: {arc}).")
            case "draft:ready":
                total = payload.get("total_slides", 0)
                self._write(f"Draft ready with {total} slides.")
            case "images:generating":
                total = payload.get("total_slides", 0)
                self._write(f"[3/4] Generating {total} slide images...")
                self._slide_bar = tqdm(total=total, desc="Slides", unit="slide")
            case "image:done":
                if self._slide_bar is not None:
                    self._slide_bar.set_description(f"Slide {payload.get('slide_number')}")
                    self._slide_bar.update(1)
            case "story:assembling":
                self.close()
                self._write("[4/4] Assembling the story...")
            case "story:complete":
                self._write("[4/4] Story complete.")
                self.close()

    def close(self) -> None:
        if self._slide_bar is not None:
            self._slide_bar.close()
            self._slide_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a stylist makeover slide story.")
    parser.add_argument(
        "--reference-image",
        required=True,
        help="Path to the client's reference photo.",
    )
    parser.add_argument(
        "--template",
        choices=sorted(TEMPLATES),
        default=None,
        help="Story template (defaults to STYLIST_STORY_TEMPLATE or 'standard').",
    )
    parser.add_argument(
        "--arc",
        default=None,
        help="Visual arc id. A random arc is chosen when omitted.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for arc selection when --arc is not given.",
    )
    parser.add_argument(
        "--aspect-ratio",
        default=None,
        help="Override the slide aspect ratio (e.g. 9:16, 4:5).",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Caption language override.",
    )
    parser.add_argument(
        "--output-dir",
        default="story_output",
        help="Directory for slide images and the story manifest.",
    )
    parser.add_argument(
        "--draft-only",
        action="store_true",
        help="Stop after prompt composition and write the draft YAML.",
    )
    parser.add_argument(
        "--draft",
        default="story_draft.yaml",
        help="Where --draft-only writes the draft.",
    )
    parser.add_argument(
        "--from-draft",
        default=None,
        help="Render an existing (possibly edited) draft YAML instead of writing a new narrative.",
    )
    parser.add_argument(
        "--image-arg",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Additional key=value overrides forwarded to the Replicate model.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args()


def parse_image_kwargs(pairs: list[str]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid --image-arg '{pair}', expected KEY=VALUE.")
        key, value = pair.split("=", 1)
        kwargs[key] = value
    return kwargs


def build_config(args: argparse.Namespace) -> StoryPipelineConfig:
    config = StoryPipelineConfig.from_env()
    overrides: dict[str, Any] = {}
    if args.template:
        overrides["template_id"] = args.template
    if args.aspect_ratio:
        overrides["aspect_ratio"] = args.aspect_ratio
    if args.language:
        overrides["language"] = args.language
    return replace(config, **overrides) if overrides else config


def export_story(story: StoryResult, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest = story.to_dict(include_images=False)
    for number, (slide, entry) in enumerate(zip(story.slides, manifest["slides"]), start=1):
        data, mime_type = decode_data_uri(slide.image)
        extension = "jpg" if mime_type in {"image/jpeg", "image/jpg"} else mime_type.split("/")[-1]
        image_path = output_dir / f"slide_{number:02d}.{extension}"
        image_path.write_bytes(data)
        entry["image_file"] = image_path.name

    manifest_path = output_dir / "story.yaml"
    manifest_path.write_text(
        yaml.safe_dump(manifest, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return manifest_path


async def run(args: argparse.Namespace) -> int:
    photo = ReferencePhoto.from_path(args.reference_image)
    orchestrator = StylistStoryOrchestrator(
        config=build_config(args),
        image_kwargs=parse_image_kwargs(args.image_arg),
    )
    tracker = ProgressTracker()

    try:
        if args.draft_only:
            draft = await orchestrator.create_draft(
                photo,
                arc_id=args.arc,
                seed=args.seed,
                progress_callback=tracker,
            )
            draft_path = Path(args.draft)
            draft_path.write_text(draft.to_yaml(), encoding="utf-8")
            print(f"Saved story draft to {draft_path}")
            return 0

        if args.from_draft:
            draft = StoryDraft.from_yaml(args.from_draft)
            story = await orchestrator.render_from_draft(draft, photo, progress_callback=tracker)
        else:
            story = await orchestrator.generate_story(
                photo,
                arc_id=args.arc,
                seed=args.seed,
                progress_callback=tracker,
            )
    finally:
        tracker.close()

    manifest_path = export_story(story, Path(args.output_dir))
    print(f"Saved {len(story.slides)} slides and manifest to {manifest_path}")
    return 0


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except StoryPipelineError as exc:
        print(f"Story generation failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
