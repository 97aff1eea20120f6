"""
Shared fixtures for MAIRE tests.

All fixtures route every agent to the local stub with no simulated latency,
so runs are fast and deterministic apart from timestamps.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from backends.llm import BackendKind, LLMAdapter, LLMError, LLMMessage, LLMResponse
from maire.service.config import MaireConfig
from maire.service.engine import OrchestrationEngine
from maire.service.invocation import AgentInvoker


class RecordingAdapter(LLMAdapter):
    """Adapter that answers ``<model>:<call number>`` and records prompts.

    ``reply`` replaces the numbered answer with fixed text.
    """

    provider = "recording"

    def __init__(
        self, model: str = "recording", fail: bool = False, reply: Optional[str] = None
    ) -> None:
        super().__init__(model)
        self.fail = fail
        self.reply = reply
        self.prompts: List[str] = []

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.prompts.append(self.last_user_content(messages))
        if self.fail:
            raise LLMError("backend unavailable", provider=self.provider)
        content = self.reply if self.reply is not None else f"{self.model}:{len(self.prompts)}"
        return LLMResponse(content=content, model=self.model)


@pytest.fixture
def stub_config() -> MaireConfig:
    """Configuration without credentials and without stub latency."""
    return MaireConfig(
        _env_file=None,
        openrouter_api_key=None,
        hf_api_key=None,
        google_api_key=None,
        stub_delay_ms=0,
        log_level="DEBUG",
    )


@pytest.fixture
def invoker(stub_config: MaireConfig) -> AgentInvoker:
    """Invoker that answers every agent with the stub."""
    return AgentInvoker(stub_config)


@pytest.fixture
def engine(stub_config: MaireConfig, invoker: AgentInvoker) -> OrchestrationEngine:
    """Engine wired to the stub-only invoker."""
    return OrchestrationEngine(invoker=invoker, config=stub_config)


@pytest.fixture
def recording_invoker(stub_config: MaireConfig) -> Tuple[AgentInvoker, RecordingAdapter]:
    """Invoker routing agents ``a`` and ``b`` to a recording OpenRouter stand-in."""
    routed = stub_config.model_copy(
        update={"agent_backends": {"a": BackendKind.OPENROUTER, "b": BackendKind.OPENROUTER}}
    )
    adapter = RecordingAdapter()
    adapters: Dict[BackendKind, LLMAdapter] = {BackendKind.OPENROUTER: adapter}
    return AgentInvoker(routed, adapters=adapters), adapter


@pytest.fixture
def failing_invoker(stub_config: MaireConfig) -> Tuple[AgentInvoker, RecordingAdapter]:
    """Invoker routing agent ``a`` to a backend that always raises LLMError."""
    routed = stub_config.model_copy(update={"agent_backends": {"a": BackendKind.GEMINI}})
    adapter = RecordingAdapter(model="gemini", fail=True)
    return AgentInvoker(routed, adapters={BackendKind.GEMINI: adapter}), adapter


@pytest.fixture
def silent_invoker(stub_config: MaireConfig) -> Tuple[AgentInvoker, RecordingAdapter]:
    """Invoker routing agents ``a`` and ``b`` to a backend that answers empty text."""
    routed = stub_config.model_copy(
        update={"agent_backends": {"a": BackendKind.OPENROUTER, "b": BackendKind.OPENROUTER}}
    )
    adapter = RecordingAdapter(reply="")
    return AgentInvoker(routed, adapters={BackendKind.OPENROUTER: adapter}), adapter
