"""
Topology strategies.

A topology decides the call order and concurrency of agent invocations:

- Chain (``standard-chain``): one sequential pass over the agents.
- Helix (``double-helix``): a forward and a reverse pass sharing one ledger.
- Star (``star-topology``): one relay arm per cyclic rotation of the agents,
  each with a private ledger, followed by a synthesis call to the anchor agent.

Every step follows the same cycle: snapshot the ledger, invoke the agent with
the snapshot as context, append the hashed response.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Type

from anyio import create_task_group

from .config import MaireConfig
from .invocation import AgentInvoker
from .ledger import Ledger
from .models import Direction, InvocationResult, LedgerRecord, Step

logger = logging.getLogger(__name__)


CHAIN_DIRECTIVE = "\n\n→ {agent}\nContinue and improve:"
HELIX_FORWARD_DIRECTIVE = "\n\n[Forward pass] You are {agent}"
HELIX_REVERSE_DIRECTIVE = "\n\n[Reverse pass] Critique as {agent}"
STAR_DIRECTIVE = "\n\nStar arm {arm} • step {step} • You are {agent}\n\nInput:\n{relay}"
STAR_SYNTHESIS_DIRECTIVE = (
    "\n\n[Synthesis] You are {agent}, the anchor agent. "
    "{count} relay arms each passed the original request through every agent. "
    "Their final answers follow. Reconcile them into one final, authoritative answer.\n"
)


def rotations(agents: Sequence[str]) -> List[List[str]]:
    """Every cyclic rotation of ``agents``; rotation ``i`` starts at ``agents[i]``."""
    n = len(agents)
    return [[agents[(start + offset) % n] for offset in range(n)] for start in range(n)]


def reverse_indices(n: int) -> range:
    """Indices ``n-1`` down to ``0``."""
    return range(n - 1, -1, -1)


@dataclass
class TopologyOutcome:
    """What a strategy hands back to the engine."""

    summary: str
    steps: List[Step] = field(default_factory=list)
    ledgers: List[LedgerRecord] = field(default_factory=list)


class TopologyStrategy(ABC):
    """Base class for topology strategies."""

    name: str = ""

    def __init__(self, invoker: AgentInvoker, config: MaireConfig) -> None:
        self.invoker = invoker
        self.config = config

    async def _step(
        self,
        ledger: Ledger,
        direction: Direction,
        step_index: int,
        agent_id: str,
        directive: str,
    ) -> InvocationResult:
        """Snapshot ``ledger``, invoke ``agent_id`` with it, append the response."""
        prompt = await ledger.snapshot() + directive
        result = await self.invoker.invoke(agent_id, prompt)
        await ledger.append(direction, step_index, agent_id, result.text, result.status)
        return result

    @abstractmethod
    async def run(self, original_prompt: str, agents: Sequence[str]) -> TopologyOutcome:
        """Execute the topology over a non-empty agent list."""


class ChainTopology(TopologyStrategy):
    """Sequential chain: each agent continues from the shared ledger."""

    name = "standard-chain"
    summary = "Standard chain complete"

    async def run(self, original_prompt: str, agents: Sequence[str]) -> TopologyOutcome:
        ledger = Ledger(original_prompt, scope="chain")
        steps: List[Step] = []

        for i, agent in enumerate(agents):
            result = await self._step(
                ledger, Direction.FORWARD, i, agent, CHAIN_DIRECTIVE.format(agent=agent)
            )
            steps.append(Step(label=agent, response_text=result.text))

        return TopologyOutcome(summary=self.summary, steps=steps, ledgers=[ledger.record()])


class HelixTopology(TopologyStrategy):
    """
    Double helix: forward and reverse passes over one shared ledger.

    The passes run as two concurrent tasks, so the ledger's append order
    follows completion order and differs between runs. Each pass's steps keep
    their own order; forward steps are reported before reverse steps.
    """

    name = "double-helix"
    summary = "Double Helix complete"

    async def run(self, original_prompt: str, agents: Sequence[str]) -> TopologyOutcome:
        ledger = Ledger(original_prompt, scope="helix")
        forward_steps: List[Step] = []
        reverse_steps: List[Step] = []

        async def forward_pass() -> None:
            for i in range(len(agents)):
                agent = agents[i]
                result = await self._step(
                    ledger, Direction.FORWARD, i, agent,
                    HELIX_FORWARD_DIRECTIVE.format(agent=agent),
                )
                forward_steps.append(Step(label=f"{agent} (forward)", response_text=result.text))

        async def reverse_pass() -> None:
            for i in reverse_indices(len(agents)):
                agent = agents[i]
                result = await self._step(
                    ledger, Direction.REVERSE, i, agent,
                    HELIX_REVERSE_DIRECTIVE.format(agent=agent),
                )
                reverse_steps.append(Step(label=f"{agent} (reverse)", response_text=result.text))

        if self.config.helix_serialized:
            await forward_pass()
            await reverse_pass()
        else:
            async with create_task_group() as tg:
                tg.start_soon(forward_pass)
                tg.start_soon(reverse_pass)

        return TopologyOutcome(
            summary=self.summary,
            steps=forward_steps + reverse_steps,
            ledgers=[ledger.record()],
        )


class StarTopology(TopologyStrategy):
    """
    Star: concurrent relay arms over every rotation of the agent list.

    Inside an arm each agent receives the previous agent's response as its
    input; the first agent receives the original prompt. Arms keep private
    ledgers. Once all arms have joined, the anchor agent (first agent of the
    unrotated list) synthesizes the arms' final answers.
    """

    name = "star-topology"

    async def run(self, original_prompt: str, agents: Sequence[str]) -> TopologyOutcome:
        arms = rotations(agents)
        arm_ledgers = [
            Ledger(original_prompt, scope=f"star-arm-{a + 1}") for a in range(len(arms))
        ]
        arm_steps: List[List[Step]] = [[] for _ in arms]
        final_answers: List[str] = [original_prompt for _ in arms]

        async def run_arm(a: int) -> None:
            relay = original_prompt
            for s, agent in enumerate(arms[a]):
                directive = STAR_DIRECTIVE.format(arm=a + 1, step=s + 1, agent=agent, relay=relay)
                result = await self._step(arm_ledgers[a], Direction.STAR, s, agent, directive)
                arm_steps[a].append(
                    Step(label=f"{agent} (arm {a + 1} • step {s + 1})", response_text=result.text)
                )
                relay = result.text
            final_answers[a] = relay

        async with create_task_group() as tg:
            for a in range(len(arms)):
                tg.start_soon(run_arm, a)

        steps: List[Step] = []
        for a, arm in enumerate(arms):
            if a > 0 and self.config.star_arm_separators:
                steps.append(
                    Step(label=f"── arm {a + 1}: {' → '.join(arm)} ──", separator=True)
                )
            steps.extend(arm_steps[a])

        anchor = agents[0]
        synthesis_ledger = Ledger(original_prompt, scope="star-synthesis")
        result = await self._step(
            synthesis_ledger, Direction.STAR, 0, anchor,
            self._synthesis_directive(anchor, arms, final_answers),
        )
        steps.append(Step(label=f"{anchor} (synthesis)", response_text=result.text))

        return TopologyOutcome(
            summary=f"Star Topology - {len(arms)} relay arms",
            steps=steps,
            ledgers=[ledger.record() for ledger in arm_ledgers] + [synthesis_ledger.record()],
        )

    @staticmethod
    def _synthesis_directive(
        anchor: str, arms: List[List[str]], final_answers: List[str]
    ) -> str:
        lines = [STAR_SYNTHESIS_DIRECTIVE.format(agent=anchor, count=len(arms))]
        for a, (arm, answer) in enumerate(zip(arms, final_answers)):
            lines.append(f"\nArm {a + 1} ({' → '.join(arm)}):\n{answer}\n")
        return "".join(lines)


TOPOLOGIES: Dict[str, Type[TopologyStrategy]] = {
    ChainTopology.name: ChainTopology,
    HelixTopology.name: HelixTopology,
    StarTopology.name: StarTopology,
}

DEFAULT_TOPOLOGY = ChainTopology.name


def select_topology(name: str) -> Type[TopologyStrategy]:
    """Strategy class registered under exactly ``name``; Chain for anything else."""
    strategy = TOPOLOGIES.get(name)
    if strategy is None:
        logger.warning(f"Unknown topology '{name}', falling back to {DEFAULT_TOPOLOGY}")
        return TOPOLOGIES[DEFAULT_TOPOLOGY]
    return strategy
