"""
End-to-end orchestration for stylist story generation.
"""

from .assembler import ResultAssembler, SlideResult, StoryResult, extract_image_data_uri
from .config import StoryPipelineConfig
from .drafts import DraftSlide, StoryDraft
from .dual_look import DualLookGenerator, DualLookResult
from .executor import ImageBatchExecutor
from .pipeline import StylistStoryOrchestrator

__all__ = [
    "DraftSlide",
    "DualLookGenerator",
    "DualLookResult",
    "ImageBatchExecutor",
    "ResultAssembler",
    "SlideResult",
    "StoryDraft",
    "StoryPipelineConfig",
    "StoryResult",
    "StylistStoryOrchestrator",
    "extract_image_data_uri",
]
