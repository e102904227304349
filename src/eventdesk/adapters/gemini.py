"""Gemini ``generateContent`` client returning schema-shaped JSON text."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from eventdesk.adapters.http_resilience import ResilientClient
from eventdesk.domain.errors import AIServiceError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from eventdesk.config.gemini import GeminiConfig
    from eventdesk.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class GeminiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Part(GeminiBaseModel):
    text: str | None = None


class Content(GeminiBaseModel):
    parts: list[Part] = Field(default_factory=list)
    role: str | None = None


class Candidate(GeminiBaseModel):
    content: Content | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GenerateContentResponse(GeminiBaseModel):
    candidates: list[Candidate] = Field(default_factory=list)

    @property
    def text(self) -> str:
        if not self.candidates or self.candidates[0].content is None:
            return ""
        return "".join(part.text or "" for part in self.candidates[0].content.parts)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def build_request(prompt: str, schema: Mapping[str, object]) -> dict[str, object]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": dict(schema),
        },
    }


class GeminiTextGenerator:
    def __init__(
        self,
        config: GeminiConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config
        self._client = client_factory(config.resilience)

    async def __aenter__(self) -> GeminiTextGenerator:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_json(self, prompt: str, schema: Mapping[str, object]) -> str:
        url = f"models/{self.config.model}:generateContent"
        try:
            response = await self._client.post(
                url,
                params={"key": self.config.api_key},
                json=build_request(prompt, schema),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AIServiceError(
                f"Gemini request failed with {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AIServiceError(f"Gemini request failed: {type(exc).__name__}") from exc

        try:
            payload = GenerateContentResponse.model_validate_json(response.content)
        except PydanticValidationError as exc:
            raise AIServiceError("Gemini returned an unexpected payload") from exc

        text = payload.text.strip()
        if not text:
            raise AIServiceError("Gemini returned no text")
        log.debug("Gemini %s returned %d characters", self.config.model, len(text))
        return text
