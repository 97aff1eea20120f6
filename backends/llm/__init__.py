"""
Backend adapter implementations for agent invocation.

Supported adapters:
- OpenRouterAdapter: OpenRouter chat completions (Llama, Grok, ...)
- HuggingFaceAdapter: Hugging Face Inference API
- GeminiAdapter: Google Gemini generateContent API
- StubAdapter: Deterministic local stub, no network

Factory:
- create_adapter(): Build an adapter for a BackendKind
"""

from backends.llm.base import LLMAdapter, LLMError, LLMMessage, LLMResponse, MessageRole
from backends.llm.factory import BackendKind, create_adapter
from backends.llm.gemini import GeminiAdapter
from backends.llm.huggingface import HuggingFaceAdapter
from backends.llm.openrouter import OpenRouterAdapter
from backends.llm.stub import StubAdapter

__all__ = [
    # Base classes
    "LLMAdapter",
    "LLMError",
    "LLMResponse",
    "LLMMessage",
    "MessageRole",
    # Adapters
    "OpenRouterAdapter",
    "HuggingFaceAdapter",
    "GeminiAdapter",
    "StubAdapter",
    # Factory
    "BackendKind",
    "create_adapter",
]
