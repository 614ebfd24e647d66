"""
Common utilities shared across stylist story modules.
"""

from .credentials import CredentialGate, EnvironmentCredentialGate, StaticCredentialGate
from .errors import (
    ImageGenerationError,
    IncompleteGenerationError,
    MissingCredentialError,
    MissingReferencePhotoError,
    NarrativeGenerationError,
    StoryPipelineError,
)
from .images import ReferencePhoto, decode_data_uri, encode_data_uri
from .llm import (
    JSON_RESPONSE_FORMAT,
    ChatResult,
    CompletionCallable,
    build_user_content,
    complete_chat,
)

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "CredentialGate",
    "EnvironmentCredentialGate",
    "ImageGenerationError",
    "IncompleteGenerationError",
    "JSON_RESPONSE_FORMAT",
    "MissingCredentialError",
    "MissingReferencePhotoError",
    "NarrativeGenerationError",
    "ReferencePhoto",
    "StaticCredentialGate",
    "StoryPipelineError",
    "build_user_content",
    "complete_chat",
    "decode_data_uri",
    "encode_data_uri",
]
