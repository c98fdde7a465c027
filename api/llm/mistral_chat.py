"""
Mistral chat-completion client.

Sends ``[{"role", "content"}, ...]`` messages to ``/chat/completions`` and
returns the first choice's text.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from api.errors import ChatCompletionError
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class MistralChatClient:
    """Async client for the Mistral chat-completion endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "open-mistral-7b",
        base_url: str = "https://api.mistral.ai/v1",
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> "MistralChatClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.mistral_api_key,
            model=settings.chat_model,
            base_url=settings.mistral_base_url,
            temperature=settings.chat_temperature,
            max_tokens=settings.chat_max_tokens,
            timeout=settings.http_timeout_seconds * 2,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _post(self, payload: dict) -> httpx.Response:
        return await self._client.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )

    async def complete(self, messages: Sequence[Dict[str, str]]) -> str:
        """Return the assistant's reply to ``messages``.

        Raises:
            ChatCompletionError: missing API key, HTTP failure or no choices.
        """
        if not self.api_key:
            raise ChatCompletionError("MOUSELAW_MISTRAL_API_KEY is not configured")

        payload = {
            "model": self.model,
            "messages": list(messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error("Chat completion request failed", error=str(e))
            raise ChatCompletionError(f"Chat completion request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Mistral chat completion failed",
                status=response.status_code,
                response=response.text[:200],
            )
            raise ChatCompletionError(f"Mistral API error: {response.status_code}")

        try:
            data = response.json()
            choices: List[dict] = data.get("choices") or []
            if not choices:
                raise ChatCompletionError("No response from Mistral API")
            content = choices[0]["message"]["content"]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ChatCompletionError(f"Malformed chat completion response: {e}") from e

        usage = data.get("usage") or {}
        logger.info(
            "Chat completion generated",
            model=self.model,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
        return content
