"""
Local stub adapter.

Answers without any network call by echoing a truncated prompt tagged with
the agent id. Used whenever an agent has no usable backend, and as the
substitute text when a real backend call fails.
"""

from typing import Any, List, Optional

import anyio

from .base import LLMAdapter, LLMMessage, LLMResponse


class StubAdapter(LLMAdapter):
    """
    Deterministic stand-in for a real backend.

    The response depends only on ``agent_id`` and the prompt, so runs against
    the stub are reproducible apart from timestamps.
    """

    provider = "stub"

    def __init__(
        self,
        model: str = "local-stub",
        delay_ms: int = 180,
        echo_chars: int = 120,
        **kwargs: Any,
    ) -> None:
        """
        Initialize stub adapter.

        Args:
            model: Label reported in responses
            delay_ms: Simulated latency in milliseconds
            echo_chars: Prompt characters echoed before truncation
            **kwargs: Additional configuration
        """
        super().__init__(model, None, None, **kwargs)
        self.delay_ms = delay_ms
        self.echo_chars = echo_chars
        self.call_count = 0

    def render(self, agent_id: str, prompt: str) -> str:
        """Build the stub text for ``agent_id`` without sleeping."""
        short = prompt
        if len(short) > self.echo_chars:
            short = short[: self.echo_chars] + "…"
        return f"[{agent_id} - local stub]\n{short}"

    async def reply(self, agent_id: str, prompt: str) -> str:
        """Simulate latency, then return the stub text for ``agent_id``."""
        if self.delay_ms > 0:
            await anyio.sleep(self.delay_ms / 1000.0)
        self.call_count += 1
        return self.render(agent_id, prompt)

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a stub completion for the last user message.

        The agent id defaults to the adapter's model label and can be
        overridden with ``agent_id=...``.
        """
        prompt = self.last_user_content(messages)
        content = await self.reply(kwargs.get("agent_id", self.model), prompt)

        prompt_tokens = sum(self.count_tokens(msg.content) for msg in messages)
        completion_tokens = self.count_tokens(content)

        return LLMResponse(
            content=content,
            model=self.model,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            raw_response={"stub": True, "call_count": self.call_count},
        )
