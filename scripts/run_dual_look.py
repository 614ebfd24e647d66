"""
CLI to produce the studio and casual looks of a stand-in model from one reference photo.

Usage:
    python scripts/run_dual_look.py --reference-image client.jpg --output-dir dual_look
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from stylist_story import DualLookGenerator
from stylist_story.common import ReferencePhoto, StoryPipelineError, decode_data_uri

_STAGE_MESSAGES = {
    "dual_look:studio": "[1/3] Swapping in the studio model...",
    "dual_look:outfit": "[2/3] Describing the casual outfit...",
    "dual_look:casual": "[3/3] Rendering the casual snapshot...",
    "dual_look:complete": "Dual look complete.",
}


def report_progress(stage: str, payload: Dict[str, Any]) -> None:
    message = _STAGE_MESSAGES.get(stage)
    if message:
        tqdm.write(message)
    if stage == "dual_look:casual" and payload.get("outfit"):
        tqdm.write(f"      Outfit: {payload['outfit']}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the dual look (studio + casual) images.")
    parser.add_argument("--reference-image", required=True, help="Path to the reference photo.")
    parser.add_argument("--output-dir", default="dual_look", help="Directory for the two images.")
    parser.add_argument("--aspect-ratio", default="9:16", help="Aspect ratio of both images.")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    photo = ReferencePhoto.from_path(args.reference_image)
    generator = DualLookGenerator(aspect_ratio=args.aspect_ratio)
    result = await generator.generate(photo, progress_callback=report_progress)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, uri in (("studio", result.studio), ("casual", result.casual)):
        data, mime_type = decode_data_uri(uri)
        extension = "jpg" if mime_type in {"image/jpeg", "image/jpg"} else mime_type.split("/")[-1]
        path = output_dir / f"{name}.{extension}"
        path.write_bytes(data)
        print(f"Saved {name} look to {path}")
    return 0


def main() -> int:
    args = parse_args()
    try:
        return asyncio.run(run(args))
    except StoryPipelineError as exc:
        print(f"Dual look failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
