"""
Abstract base adapter for agent backends.

This module defines the contract that every backend adapter implements,
so the invoker can treat OpenRouter, Hugging Face, Gemini and the local
stub interchangeably.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Message role in an LLM conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """A message in an LLM conversation."""

    model_config = ConfigDict(use_enum_values=True)

    role: MessageRole
    content: str


class LLMResponse(BaseModel):
    """Response from a backend."""

    content: str
    finish_reason: str = "stop"
    model: str
    usage: Dict[str, int] = Field(
        default_factory=lambda: {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    )
    raw_response: Optional[Any] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LLMAdapter(ABC):
    """
    Abstract base class for backend adapters.

    Concrete adapters own an ``httpx.AsyncClient``; one may be injected for
    testing or connection sharing.
    """

    provider: str = "base"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            model: Model identifier on the provider side
            api_key: API key for the provider (if required)
            http_client: Pre-built HTTP client (created by the adapter if omitted)
            **kwargs: Provider-specific configuration options
        """
        self.model = model
        self.api_key = api_key
        self.config = kwargs
        self._http_client = http_client

    @abstractmethod
    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a completion.

        Args:
            messages: Conversation history
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
            **kwargs: Provider-specific parameters

        Returns:
            Response with content and metadata

        Raises:
            LLMError: If the request fails or the payload cannot be parsed
            TimeoutError: If the request times out
        """

    async def complete_text(self, prompt: str, **kwargs: Any) -> str:
        """Single user-turn completion returning only the text."""
        messages = [LLMMessage(role=MessageRole.USER, content=prompt)]
        response = await self.complete(messages, **kwargs)
        return response.content

    async def aclose(self) -> None:
        """Close the underlying HTTP client, if any."""
        if self._http_client is not None:
            await self._http_client.aclose()

    def count_tokens(self, text: str) -> int:
        """
        Estimate token count for a text string.

        Simple heuristic of roughly four characters per token.
        """
        return len(text) // 4

    @staticmethod
    def last_user_content(messages: List[LLMMessage]) -> str:
        """Return the content of the last user message, or an empty string."""
        user_messages = [msg for msg in messages if msg.role == MessageRole.USER.value]
        return user_messages[-1].content if user_messages else ""


class LLMError(Exception):
    """Base exception for backend adapter errors."""

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        """
        Initialize backend error.

        Args:
            message: Error message
            provider: Provider name
            original_error: Original exception if wrapping another error
        """
        super().__init__(message)
        self.provider = provider
        self.original_error = original_error
