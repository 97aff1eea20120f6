"""
OpenRouter adapter.

OpenRouter exposes an OpenAI-compatible chat completions API in front of
many hosted models (Llama, Grok and others).
"""

import os
from typing import Any, Dict, List, Optional

import httpx

from .base import LLMAdapter, LLMError, LLMMessage, LLMResponse, MessageRole


class OpenRouterAdapter(LLMAdapter):
    """Adapter for the OpenRouter chat completions API."""

    provider = "openrouter"

    API_BASE_URL: str = "https://openrouter.ai/api/v1"
    DEFAULT_MODEL: str = "meta-llama/llama-3.1-8b-instruct"
    DEFAULT_TIMEOUT: float = 45.0

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        referer: str = "http://localhost:5173",
        title: str = "MAIRE",
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize OpenRouter adapter.

        Args:
            model: OpenRouter model slug
            api_key: OpenRouter API key (defaults to OPENROUTER_API_KEY env var)
            referer: Value of the HTTP-Referer attribution header
            title: Value of the X-Title attribution header
            http_client: Pre-built HTTP client
            **kwargs: Additional configuration (default_timeout)
        """
        api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OpenRouter API key required (set OPENROUTER_API_KEY env var)")

        super().__init__(model, api_key, http_client, **kwargs)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": referer,
            "X-Title": title,
        }

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                headers=headers,
                timeout=kwargs.get("default_timeout", self.DEFAULT_TIMEOUT),
            )
        else:
            self._http_client.headers.update(headers)

    def _convert_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage objects to OpenAI-style message dicts."""
        result = []
        for msg in messages:
            # Role may be enum or plain string (use_enum_values)
            role = msg.role.value if isinstance(msg.role, MessageRole) else msg.role
            result.append({"role": role, "content": msg.content})
        return result

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate completion using the OpenRouter API.

        Raises:
            LLMError: On non-200 status or an unparseable payload
            TimeoutError: If the request times out
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        payload.update(kwargs)

        request_timeout = timeout or self.config.get("default_timeout", self.DEFAULT_TIMEOUT)

        try:
            response = await self._http_client.post(
                f"{self.API_BASE_URL}/chat/completions", json=payload, timeout=request_timeout
            )
            response.raise_for_status()
            data = response.json()

            choices = data.get("choices") or []
            if not choices:
                raise LLMError("OpenRouter response has no choices", provider=self.provider)

            choice = choices[0]
            content = (choice.get("message") or {}).get("content")
            if content is None:
                raise LLMError("OpenRouter choice has no message content", provider=self.provider)

            usage = data.get("usage") or {}
            return LLMResponse(
                content=content,
                finish_reason=choice.get("finish_reason") or "unknown",
                model=data.get("model", self.model),
                usage={
                    "prompt_tokens": usage.get("prompt_tokens", 0),
                    "completion_tokens": usage.get("completion_tokens", 0),
                    "total_tokens": usage.get("total_tokens", 0),
                },
                raw_response=data,
            )

        except httpx.TimeoutException as e:
            raise TimeoutError(f"OpenRouter request timed out: {e}")
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"OpenRouter API request failed ({e.response.status_code}): {e.response.text}",
                provider=self.provider,
                original_error=e,
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(
                f"Unexpected error calling OpenRouter API: {str(e)}",
                provider=self.provider,
                original_error=e,
            )
