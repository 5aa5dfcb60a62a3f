"""
Summarize(text, instructions) -> text over an OpenRouter-compatible
chat-completions endpoint.

Failure modes all surface as SummarizationError (transport error, non-2xx,
missing content) or AINotConfiguredError (no API key). Nothing here retries:
the user or the next scheduled trigger does.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from monitorwatch.core.errors import AINotConfiguredError, SummarizationError

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def summarize(
        self,
        text: str,
        instructions: str,
        model: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        reason: Optional[str] = None,
    ) -> str:
        ...


class OpenRouterSummarizer:

    def __init__(
        self,
        api_key: str,
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        default_model: str = "google/gemini-2.0-flash-001",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.default_model = default_model
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "OpenRouterSummarizer":
        return cls(
            api_key=settings.OPENROUTER_API_KEY,
            url=settings.OPENROUTER_URL,
            default_model=settings.DAILY_MODEL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            client=client,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def summarize(
        self,
        text: str,
        instructions: str,
        model: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        reason: Optional[str] = None,
    ) -> str:
        if not self.api_key.strip():
            raise AINotConfiguredError(reason=reason)

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": "https://monitorwatch.app",
            "X-Title": "MonitorWatch",
        }
        body = {
            "model": model or self.default_model,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": text},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = await self._get_client().post(self.url, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error("AI request failed (%s): %s", reason or "unspecified", e)
            raise SummarizationError(f"AI request failed: {e}", reason=reason) from e

        if response.status_code >= 400:
            logger.error(
                "AI API error %d (%s): %s",
                response.status_code, reason or "unspecified", response.text[:500],
            )
            raise SummarizationError(
                f"AI API error: {response.status_code}",
                status_code=response.status_code,
                reason=reason,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Malformed AI response (%s)", reason or "unspecified")
            raise SummarizationError("Malformed AI response", reason=reason) from e

        if not content or not str(content).strip():
            logger.error("Empty AI response (%s)", reason or "unspecified")
            raise SummarizationError("No content in AI response", reason=reason)
        return str(content).strip()
