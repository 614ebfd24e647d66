"""
Chat completions through LiteLLM, reduced to the text the pipeline consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence

from litellm import acompletion

from .images import ReferencePhoto

ChatMessage = Mapping[str, Any]

JSON_RESPONSE_FORMAT: Mapping[str, str] = {"type": "json_object"}


@dataclass(frozen=True)
class ChatResult:
    """Text of the first choice, with the provider response kept for debugging."""

    text: str
    raw: Any


CompletionCallable = Callable[..., Awaitable[ChatResult]]


def _field(source: Any, name: str) -> Any:
    # litellm returns ModelResponse objects; tests and proxies may hand back plain dicts.
    if isinstance(source, Mapping):
        return source[name]
    try:
        return getattr(source, name)
    except AttributeError as exc:
        raise KeyError(name) from exc


def _message_text(response: Any) -> str:
    try:
        content = _field(_field(_field(response, "choices")[0], "message"), "content")
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Completion response has no first-choice message.") from exc

    if isinstance(content, list):
        content = "".join(
            str(part.get("text") or "") for part in content if isinstance(part, Mapping)
        )
    return str(content or "").strip()


async def complete_chat(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **provider_options: Any,
) -> ChatResult:
    """
    Send ``messages`` to ``model`` and return the first choice's text.

    Options left as ``None`` are not forwarded, so provider defaults apply.
    Raises ``RuntimeError`` when the response carries no message.
    """
    optional = {"temperature": temperature, "max_tokens": max_tokens, "api_key": api_key}
    request = {name: value for name, value in optional.items() if value is not None}
    request.update(provider_options)

    response = await acompletion(model=model, messages=list(messages), **request)
    return ChatResult(text=_message_text(response), raw=response)


def build_user_content(text: str, photo: ReferencePhoto | None = None) -> str | list[dict[str, Any]]:
    """
    Build a user message body, attaching the photo as an inline image part when given.
    """
    if photo is None:
        return text
    return [
        {"type": "text", "text": text},
        {"type": "image_url", "image_url": {"url": photo.to_data_uri()}},
    ]
