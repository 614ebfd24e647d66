"""
In-memory image payload helpers shared by the narrative and image stages.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MIME_TYPE = "image/png"

PathLike = str | Path


@dataclass(frozen=True)
class ReferencePhoto:
    """
    Caller-owned reference image. Pipeline stages only ever read it.
    """

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("Reference photo payload must be non-empty bytes.")

    @classmethod
    def from_path(cls, path: PathLike) -> "ReferencePhoto":
        image_path = Path(path).expanduser()
        if not image_path.exists():
            raise FileNotFoundError(f"Reference photo not found at '{image_path}'.")
        mime_type, _ = mimetypes.guess_type(image_path.name)
        return cls(data=image_path.read_bytes(), mime_type=mime_type or DEFAULT_MIME_TYPE)

    @classmethod
    def from_data_uri(cls, data_uri: str) -> "ReferencePhoto":
        data, mime_type = decode_data_uri(data_uri)
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_base64(cls, payload: str, *, mime_type: str = DEFAULT_MIME_TYPE) -> "ReferencePhoto":
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Reference photo payload is not valid base64.") from exc
        return cls(data=data, mime_type=mime_type)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return encode_data_uri(self.data, mime_type=self.mime_type)


def encode_data_uri(data: bytes, *, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(data_uri: str) -> tuple[bytes, str]:
    """
    Split a ``data:<mime>;base64,<payload>`` string into raw bytes and MIME type.
    """
    if not data_uri.startswith("data:") or "," not in data_uri:
        raise ValueError("Expected a base64 data URI.")

    header, payload = data_uri.split(",", 1)
    meta = header[len("data:"):]
    if not meta.endswith(";base64"):
        raise ValueError("Only base64-encoded data URIs are supported.")

    mime_type = meta[: -len(";base64")] or DEFAULT_MIME_TYPE
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Data URI payload is not valid base64.") from exc
    return data, mime_type
