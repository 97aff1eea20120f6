"""
Google Gemini adapter.

This adapter calls the native ``generateContent`` endpoint of the Gemini API.
"""

import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .base import LLMAdapter, LLMError, LLMMessage, LLMResponse, MessageRole


class GeminiAdapter(LLMAdapter):
    """
    Adapter for Google Gemini API.

    Requires a Gemini API key, sent as the ``x-goog-api-key`` header.
    """

    provider = "gemini"

    API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_MODEL: str = "gemini-1.5-flash"
    DEFAULT_TIMEOUT: float = 45.0

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize Gemini adapter.

        Args:
            model: Gemini model identifier (e.g., "gemini-1.5-flash")
            api_key: Google API key (defaults to GOOGLE_API_KEY env var)
            http_client: Pre-built HTTP client
            **kwargs: Additional configuration (default_timeout)

        Raises:
            ValueError: If API key is not provided
        """
        api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("Gemini API key required (set GOOGLE_API_KEY env var)")

        super().__init__(model, api_key, http_client, **kwargs)

        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key or "",
        }

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                headers=headers,
                timeout=kwargs.get("default_timeout", self.DEFAULT_TIMEOUT),
            )
        else:
            self._http_client.headers.update(headers)

    def _convert_messages(
        self, messages: List[LLMMessage]
    ) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """
        Convert LLMMessage objects to Gemini ``contents``.

        Gemini separates the system instruction from the conversation turns.

        Returns:
            Tuple of (system_prompt, contents)
        """
        system_prompt: Optional[str] = None
        contents: List[Dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_prompt = msg.content
            else:
                contents.append({
                    "role": "user" if msg.role == MessageRole.USER else "model",
                    "parts": [{"text": msg.content}],
                })

        return system_prompt, contents

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a completion from Gemini.

        Raises:
            LLMError: If the request fails or the payload has no candidate text
            TimeoutError: If the request times out
        """
        system_prompt, contents = self._convert_messages(messages)
        payload: Dict[str, Any] = {"contents": contents}

        if system_prompt:
            payload["system_instruction"] = {"parts": [{"text": system_prompt}]}
        if max_tokens:
            payload["generationConfig"] = {"maxOutputTokens": max_tokens}

        request_timeout = timeout or self.config.get("default_timeout", self.DEFAULT_TIMEOUT)

        try:
            response = await self._http_client.post(
                f"{self.API_BASE_URL}/{self.model}:generateContent",
                json=payload,
                timeout=request_timeout,
            )

            if response.status_code != 200:
                error_detail = response.text
                try:
                    error_detail = response.json().get("error", {}).get("message", error_detail)
                except Exception:
                    pass
                raise LLMError(
                    f"Gemini API error ({response.status_code}): {error_detail}",
                    provider=self.provider,
                )

            data = response.json()
            candidates = data.get("candidates") or []
            parts = (candidates[0].get("content") or {}).get("parts") if candidates else None
            if not parts or "text" not in parts[0]:
                raise LLMError("Gemini response has no candidate text", provider=self.provider)

            usage = data.get("usageMetadata") or {}
            return LLMResponse(
                content=parts[0]["text"],
                finish_reason=str(candidates[0].get("finishReason", "STOP")).lower(),
                model=self.model,
                usage={
                    "prompt_tokens": usage.get("promptTokenCount", 0),
                    "completion_tokens": usage.get("candidatesTokenCount", 0),
                    "total_tokens": usage.get("totalTokenCount", 0),
                },
                raw_response=data,
            )

        except httpx.TimeoutException as e:
            raise TimeoutError(f"Gemini request timed out: {e}")
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(
                f"Gemini completion failed: {e}", provider=self.provider, original_error=e
            )
