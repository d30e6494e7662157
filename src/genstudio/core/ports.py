from __future__ import annotations
from typing import Any, Callable, Optional, Protocol

from .models import ToolRequest


class CredentialProvider(Protocol):
    """
    Anything that can hand out the currently active API key.
    Raises MissingCredentialError when none is configured.
    """

    def resolve(self) -> str:
        ...


class KeyStore(Protocol):
    """Session-scoped, user-supplied key storage."""

    def load(self) -> Optional[str]:
        ...

    def save(self, value: str) -> str:
        ...

    def clear(self) -> None:
        ...


class Transport(Protocol):
    """
    Interface the gateway uses to talk to the image model backend.
    """

    name: str

    async def generate(self, request: ToolRequest) -> Any:
        """
        Single outbound call. Returns the raw response (candidates -> content -> parts).
        Errors are raised as-is; classification happens in the retry layer.
        """
        ...


TransportFactory = Callable[[str], Transport]
