"""
Stylist story package: makeover slide stories generated from a single reference photo.
"""

from .pipeline import (
    DualLookGenerator,
    DualLookResult,
    StoryDraft,
    StoryPipelineConfig,
    StoryResult,
    StylistStoryOrchestrator,
)

__all__ = [
    "DualLookGenerator",
    "DualLookResult",
    "StoryDraft",
    "StoryPipelineConfig",
    "StoryResult",
    "StylistStoryOrchestrator",
]
