"""
Backend adapter factory.

Module: backends/llm/factory.py

Backends form a closed set (``BackendKind``). Agents are routed to a kind
by an explicit table at configuration time, never by inspecting the agent
name at call time.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

from .base import LLMAdapter

logger = logging.getLogger(__name__)


class BackendKind(str, Enum):
    """Supported backend variants."""

    OPENROUTER = "openrouter"
    HUGGINGFACE = "huggingface"
    GEMINI = "gemini"
    STUB = "stub"


def create_adapter(
    kind: Union[str, BackendKind],
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs: Any,
) -> LLMAdapter:
    """
    Create a backend adapter.

    Args:
        kind: Backend variant (openrouter, huggingface, gemini, stub)
        api_key: Credential for the backend (falls back to its env var)
        model: Model identifier (adapter default if omitted)
        **kwargs: Additional adapter options (default_timeout, http_client, ...)

    Returns:
        Configured adapter instance

    Raises:
        ValueError: If the kind is unknown or a required credential is missing
    """
    if isinstance(kind, str):
        kind = BackendKind(kind.lower())

    if model:
        kwargs["model"] = model

    logger.info(f"Creating {kind.value} adapter (model: {model or 'default'})")

    if kind == BackendKind.OPENROUTER:
        from .openrouter import OpenRouterAdapter

        return OpenRouterAdapter(api_key=api_key, **kwargs)

    elif kind == BackendKind.HUGGINGFACE:
        from .huggingface import HuggingFaceAdapter

        return HuggingFaceAdapter(api_key=api_key, **kwargs)

    elif kind == BackendKind.GEMINI:
        from .gemini import GeminiAdapter

        return GeminiAdapter(api_key=api_key, **kwargs)

    elif kind == BackendKind.STUB:
        from .stub import StubAdapter

        return StubAdapter(**kwargs)

    else:
        raise ValueError(f"Unsupported backend: {kind}")


__all__ = ["BackendKind", "create_adapter"]
