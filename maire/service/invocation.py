"""
Agent invocation.

Turns ``(agent_id, prompt)`` into a usable response text. Backend routing is
fixed when the invoker is built from configuration; failures never reach the
caller, they are replaced by stub text and tagged on the result.
"""

import logging
from typing import Dict, List, Optional

from backends.llm import BackendKind, LLMAdapter, LLMError, StubAdapter, create_adapter

from .config import MaireConfig
from .models import InvocationResult, InvocationStatus

logger = logging.getLogger(__name__)


class AgentInvoker:
    """
    Routes agent identifiers to backend adapters.

    One adapter is created per backend whose credential is configured.
    Agents routed to a backend without a credential, and agents missing from
    the routing table, are answered by the local stub.
    """

    def __init__(
        self,
        config: MaireConfig,
        adapters: Optional[Dict[BackendKind, LLMAdapter]] = None,
        stub: Optional[StubAdapter] = None,
    ) -> None:
        """
        Initialize the invoker.

        Args:
            config: Service configuration (routing table, credentials, timeouts)
            adapters: Pre-built adapters per backend (built from config if omitted)
            stub: Stub used for fallbacks (built from config if omitted)
        """
        self.config = config
        self.routes: Dict[str, BackendKind] = dict(config.agent_backends)
        self.stub = stub or StubAdapter(
            delay_ms=config.stub_delay_ms, echo_chars=config.stub_echo_chars
        )
        self.adapters: Dict[BackendKind, LLMAdapter] = (
            adapters if adapters is not None else self._build_adapters()
        )
        self._timeouts: Dict[BackendKind, float] = {
            BackendKind.OPENROUTER: config.openrouter_timeout_seconds,
            BackendKind.HUGGINGFACE: config.huggingface_timeout_seconds,
            BackendKind.GEMINI: config.gemini_timeout_seconds,
        }

    def _build_adapters(self) -> Dict[BackendKind, LLMAdapter]:
        """Create adapters for every credentialed backend the routing table uses."""
        models = {
            BackendKind.OPENROUTER: (self.config.openrouter_model, self.config.openrouter_timeout_seconds),
            BackendKind.HUGGINGFACE: (self.config.huggingface_model, self.config.huggingface_timeout_seconds),
            BackendKind.GEMINI: (self.config.gemini_model, self.config.gemini_timeout_seconds),
        }
        adapters: Dict[BackendKind, LLMAdapter] = {}

        for kind in sorted(set(self.routes.values()), key=lambda k: k.value):
            api_key = self.config.credential_for(kind)
            if kind == BackendKind.STUB or not api_key:
                continue
            model, timeout = models[kind]
            adapters[kind] = create_adapter(
                kind, api_key=api_key, model=model, default_timeout=timeout
            )

        logger.info(
            f"Agent backends ready: {sorted(k.value for k in adapters) or ['stub only']}"
        )
        return adapters

    def backend_for(self, agent_id: str) -> BackendKind:
        """Backend variant routed for ``agent_id`` (stub when unrouted)."""
        return self.routes.get(agent_id.strip().lower(), BackendKind.STUB)

    def is_available(self, agent_id: str) -> bool:
        """Whether ``agent_id`` reaches a real, credentialed backend."""
        return self.backend_for(agent_id) in self.adapters

    def available_agents(self) -> List[str]:
        """Configured agent identifiers whose backend has a credential."""
        return [agent_id for agent_id in self.routes if self.is_available(agent_id)]

    async def invoke(self, agent_id: str, prompt: str) -> InvocationResult:
        """
        Invoke ``agent_id`` with ``prompt``.

        Never raises for backend problems: a missing backend yields stub text
        tagged FELL_BACK, a failing backend yields stub text tagged FAILED.
        """
        kind = self.backend_for(agent_id)
        adapter = self.adapters.get(kind)

        if adapter is None:
            text = await self.stub.reply(agent_id, prompt)
            return InvocationResult(
                agent_id=agent_id,
                text=text,
                status=InvocationStatus.FELL_BACK,
                backend=BackendKind.STUB,
            )

        try:
            text = await adapter.complete_text(prompt, timeout=self._timeouts.get(kind))
        except (LLMError, TimeoutError) as e:
            logger.warning(f"Agent '{agent_id}' via {kind.value} failed, using stub: {e}")
            return InvocationResult(
                agent_id=agent_id,
                text=self.stub.render(agent_id, prompt),
                status=InvocationStatus.FAILED,
                backend=kind,
            )

        return InvocationResult(
            agent_id=agent_id,
            text=text,
            status=InvocationStatus.SUCCEEDED,
            backend=kind,
        )

    async def aclose(self) -> None:
        """Close adapter HTTP clients."""
        for adapter in self.adapters.values():
            await adapter.aclose()
