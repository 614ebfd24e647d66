"""
Credential gate consulted before any remote call is attempted.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Protocol, Sequence

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_GROUPS: tuple[tuple[str, ...], ...] = (
    ("GEMINI_API_KEY", "LITELLM_API_KEY"),
    ("REPLICATE_API_TOKEN",),
)


class CredentialGate(Protocol):
    """
    Narrow interface over the external credential selection flow.
    """

    async def has_valid_credential(self) -> bool:
        ...

    async def request_credential_selection(self) -> None:
        ...


class EnvironmentCredentialGate:
    """
    Reports a valid credential when every required group has at least one variable set.

    Parameters
    ----------
    required_groups:
        Sequence of alternatives; each inner tuple lists environment variables of which
        one must be non-empty (e.g. any text-model key plus the Replicate token).
    environ:
        Optional mapping used instead of ``os.environ``. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        required_groups: Sequence[Sequence[str]] = DEFAULT_REQUIRED_GROUPS,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._required_groups = tuple(tuple(group) for group in required_groups)
        self._environ = environ

    async def has_valid_credential(self) -> bool:
        return not self.missing_groups()

    async def request_credential_selection(self) -> None:
        missing = self.missing_groups()
        if not missing:
            return
        for group in missing:
            logger.warning("Set one of the following environment variables: %s", ", ".join(group))

    def missing_groups(self) -> list[tuple[str, ...]]:
        environ = self._environ if self._environ is not None else os.environ
        missing: list[tuple[str, ...]] = []
        for group in self._required_groups:
            if not any((environ.get(name) or "").strip() for name in group):
                missing.append(group)
        return missing


class StaticCredentialGate:
    """Gate with a fixed answer, for callers that manage credentials themselves."""

    def __init__(self, has_credential: bool = True) -> None:
        self._has_credential = has_credential

    async def has_valid_credential(self) -> bool:
        return self._has_credential

    async def request_credential_selection(self) -> None:
        self._has_credential = True
