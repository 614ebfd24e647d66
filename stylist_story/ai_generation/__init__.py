"""
AI image generation package: slide prompt composition and the Replicate backend.
"""

from .prompting import IDENTITY_CLAUSE, PromptComposer, PromptPlan, select_arc
from .replicate_service import ReplicateImageGenerator
from .responses import (
    DEFAULT_ASPECT_RATIO,
    MATCH_INPUT_ASPECT_RATIO,
    ImageCandidate,
    ImageGenerator,
    ImagePart,
    ImageResponse,
)

__all__ = [
    "DEFAULT_ASPECT_RATIO",
    "IDENTITY_CLAUSE",
    "MATCH_INPUT_ASPECT_RATIO",
    "ImageCandidate",
    "ImageGenerator",
    "ImagePart",
    "ImageResponse",
    "PromptComposer",
    "PromptPlan",
    "ReplicateImageGenerator",
    "select_arc",
]
