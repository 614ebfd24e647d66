"""
Exception hierarchy surfaced by the stylist story pipeline.
"""

from __future__ import annotations

from typing import Sequence


class StoryPipelineError(RuntimeError):
    """Base class for every error the pipeline surfaces to its caller."""


class MissingReferencePhotoError(StoryPipelineError, ValueError):
    """Raised before any work starts when a required reference photo is absent."""

    def __init__(self, message: str = "Please upload a reference photo first.") -> None:
        super().__init__(message)


class MissingCredentialError(StoryPipelineError):
    """Raised when the credential gate reports that no usable API credential is selected."""

    def __init__(
        self,
        message: str = "No valid API credential is selected. Select a paid API key and try again.",
    ) -> None:
        super().__init__(message)


class NarrativeGenerationError(StoryPipelineError):
    """Raised when the structured text generation call itself fails."""


class ImageGenerationError(StoryPipelineError):
    """Raised when an image generation call fails at the transport level."""

    def __init__(self, message: str, *, slide_index: int | None = None) -> None:
        super().__init__(message)
        self.slide_index = slide_index


class IncompleteGenerationError(StoryPipelineError):
    """
    Raised when one or more slides came back without an image.

    The pipeline never returns a partial story; ``missing_slides`` lists the
    zero-based indices that produced no image.
    """

    def __init__(self, missing_slides: Sequence[int], *, message: str | None = None) -> None:
        self.missing_slides = tuple(missing_slides)
        if message is None:
            numbers = ", ".join(str(index + 1) for index in self.missing_slides)
            message = (
                f"Image generation returned no image for slide(s) {numbers}. "
                "This is often a content-safety rejection; please try again with a different photo."
            )
        super().__init__(message)
