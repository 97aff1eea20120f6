"""
Orchestration engine.

Validates a run request, selects the topology strategy, runs it and
aggregates the result.
"""

import logging
import time
from typing import List, Optional

from .config import MaireConfig, config as default_config
from .invocation import AgentInvoker
from .models import OrchestrationRequest, OrchestrationResult
from .topologies import TOPOLOGIES, select_topology

logger = logging.getLogger(__name__)


class OrchestrationError(Exception):
    """Base exception for orchestration errors."""

    pass


class EmptyAgentListError(OrchestrationError):
    """Raised when a request names no agents."""

    pass


class OrchestrationEngine:
    """
    Runs topology strategies against an agent invoker.

    Responsibilities:
    - Reject requests without agents before any ledger exists
    - Dispatch to the named topology (Chain for unknown names)
    - Return summary, steps and audit ledgers

    No retries: backend failures are already absorbed by the invoker.
    """

    def __init__(
        self,
        invoker: Optional[AgentInvoker] = None,
        config: Optional[MaireConfig] = None,
    ) -> None:
        """
        Initialize orchestration engine.

        Args:
            invoker: Agent invoker (built from config if not provided)
            config: Service configuration (global config if not provided)
        """
        self.config = config or default_config
        self.invoker = invoker or AgentInvoker(self.config)

    async def close(self) -> None:
        """Close backend HTTP clients and cleanup resources."""
        await self.invoker.aclose()

    def topologies(self) -> List[str]:
        """Registered topology identifiers."""
        return list(TOPOLOGIES)

    def available_agents(self) -> List[str]:
        """Agent identifiers currently backed by a credentialed backend."""
        return self.invoker.available_agents()

    async def run(self, request: OrchestrationRequest) -> OrchestrationResult:
        """
        Execute one orchestration run.

        Args:
            request: Prompt, topology identifier and ordered agent list

        Returns:
            Summary, ordered steps and ledger records

        Raises:
            EmptyAgentListError: If the request names no agents
        """
        if not request.agents:
            raise EmptyAgentListError("no agents given")

        strategy_cls = select_topology(request.topology)
        strategy = strategy_cls(self.invoker, self.config)

        logger.info(
            f"Starting {strategy.name} run with {len(request.agents)} agents: "
            f"{', '.join(request.agents)}"
        )
        started = time.monotonic()

        outcome = await strategy.run(request.original_prompt, request.agents)

        invocations = sum(1 for step in outcome.steps if not step.separator)
        logger.info(
            f"{strategy.name} run finished in {time.monotonic() - started:.2f}s "
            f"({invocations} invocations, {len(outcome.ledgers)} ledgers)"
        )

        return OrchestrationResult(
            summary=outcome.summary,
            steps=outcome.steps,
            topology=strategy.name,
            ledgers=outcome.ledgers,
        )
