"""Port for the generative text service used by the assistant."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@runtime_checkable
class TextGenerator(Protocol):
    """Single request/response call returning JSON text shaped by ``schema``.

    Raises ``AIServiceError`` when the service fails or returns no text.
    """

    async def generate_json(self, prompt: str, schema: Mapping[str, object]) -> str: ...
