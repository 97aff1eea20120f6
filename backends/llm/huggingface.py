"""
Hugging Face Inference API adapter.

Targets the hosted text-generation endpoint
(``api-inference.huggingface.co/models/<model>``).
"""

import os
from typing import Any, Dict, List, Optional

import httpx

from .base import LLMAdapter, LLMError, LLMMessage, LLMResponse


class HuggingFaceAdapter(LLMAdapter):
    """
    Adapter for the Hugging Face Inference API.

    The endpoint takes a single ``inputs`` string, so the conversation is
    flattened to the last user message. Hosted models often answer 503 while
    loading; that surfaces as an ``LLMError`` like any other non-200 status.
    """

    provider = "huggingface"

    API_BASE_URL: str = "https://api-inference.huggingface.co/models"
    DEFAULT_MODEL: str = "mistralai/Mixtral-8x7B-Instruct-v0.1"
    DEFAULT_MAX_NEW_TOKENS: int = 512
    DEFAULT_TIMEOUT: float = 60.0

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize Hugging Face adapter.

        Args:
            model: Hub model id served by the Inference API
            api_key: Hugging Face token (defaults to HF_API_KEY env var)
            http_client: Pre-built HTTP client
            **kwargs: Additional configuration (default_timeout)
        """
        api_key = api_key or os.getenv("HF_API_KEY")
        if not api_key:
            raise ValueError("Hugging Face API key required (set HF_API_KEY env var)")

        super().__init__(model, api_key, http_client, **kwargs)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                headers=headers,
                timeout=kwargs.get("default_timeout", self.DEFAULT_TIMEOUT),
            )
        else:
            self._http_client.headers.update(headers)

    @property
    def endpoint(self) -> str:
        return f"{self.API_BASE_URL}/{self.model}"

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate text with the Inference API.

        A JSON list carrying ``generated_text`` is the normal answer. Any
        other 200 body is returned verbatim as the content.

        Raises:
            LLMError: On non-200 status or transport failure
            TimeoutError: If the request times out
        """
        payload: Dict[str, Any] = {
            "inputs": self.last_user_content(messages),
            "parameters": {
                "max_new_tokens": max_tokens or self.DEFAULT_MAX_NEW_TOKENS,
                "return_full_text": False,
            },
        }

        request_timeout = timeout or self.config.get("default_timeout", self.DEFAULT_TIMEOUT)

        try:
            response = await self._http_client.post(
                self.endpoint, json=payload, timeout=request_timeout
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Hugging Face request timed out: {e}")
        except httpx.HTTPError as e:
            raise LLMError(
                f"Hugging Face request failed: {e}", provider=self.provider, original_error=e
            )

        if response.status_code != 200:
            raise LLMError(
                f"Hugging Face API error ({response.status_code}): {response.text}",
                provider=self.provider,
            )

        content = response.text
        raw: Any = None
        try:
            raw = response.json()
        except ValueError:
            pass

        if isinstance(raw, list) and raw and isinstance(raw[0], dict):
            generated = raw[0].get("generated_text")
            if isinstance(generated, str):
                content = generated

        return LLMResponse(
            content=content,
            model=self.model,
            usage={
                "prompt_tokens": self.count_tokens(payload["inputs"]),
                "completion_tokens": self.count_tokens(content),
                "total_tokens": self.count_tokens(payload["inputs"]) + self.count_tokens(content),
            },
            raw_response=raw,
        )
