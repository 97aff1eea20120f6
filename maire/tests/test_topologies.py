"""
Tests for the Chain, Helix and Star topology strategies.

Module: maire/tests/test_topologies.py
"""

from typing import Any, List, Optional, Tuple

import anyio
import pytest

from backends.llm import BackendKind, LLMAdapter, LLMMessage, LLMResponse
from maire.service.config import MaireConfig
from maire.service.invocation import AgentInvoker
from maire.service.ledger import content_hash, verify_chain
from maire.service.models import Direction, InvocationStatus, Step
from maire.service.topologies import (
    ChainTopology,
    HelixTopology,
    StarTopology,
    TOPOLOGIES,
    reverse_indices,
    rotations,
    select_topology,
)

AGENT_LISTS = [["a"], ["a", "b"], ["grok", "claude", "gpt-4"], ["a", "a", "b", "c"]]


# ============================================================================
# Helpers
# ============================================================================


def test_rotations() -> None:
    """Test every cyclic rotation is produced in start order."""
    assert rotations(["a", "b", "c"]) == [["a", "b", "c"], ["b", "c", "a"], ["c", "a", "b"]]
    assert rotations(["a"]) == [["a"]]


def test_reverse_indices() -> None:
    """Test reverse index range."""
    assert list(reverse_indices(3)) == [2, 1, 0]
    assert list(reverse_indices(0)) == []


def test_select_topology_known_and_unknown() -> None:
    """Test registry lookup and the Chain fallback."""
    assert select_topology("standard-chain") is ChainTopology
    assert select_topology("double-helix") is HelixTopology
    assert select_topology("star-topology") is StarTopology
    assert select_topology("bogus") is ChainTopology
    assert select_topology("") is ChainTopology
    assert set(TOPOLOGIES) == {"standard-chain", "double-helix", "star-topology"}


def test_select_topology_matches_exact_name_only() -> None:
    """Test differently cased or padded names are unknown and run Chain."""
    assert select_topology("Double-Helix") is ChainTopology
    assert select_topology(" star-topology ") is ChainTopology
    assert select_topology("STANDARD-CHAIN") is ChainTopology


# ============================================================================
# Chain
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("agents", AGENT_LISTS)
async def test_chain_counts_and_indices(
    invoker: AgentInvoker, stub_config: MaireConfig, agents: list
) -> None:
    """Test Chain emits n steps and n forward entries indexed 0..n-1."""
    outcome = await ChainTopology(invoker, stub_config).run("X", agents)

    assert len(outcome.steps) == len(agents)
    assert [s.label for s in outcome.steps] == agents
    assert outcome.summary == "Standard chain complete"

    (record,) = outcome.ledgers
    assert record.scope == "chain"
    assert [e.direction for e in record.entries] == [Direction.FORWARD] * len(agents)
    assert [e.step_index for e in record.entries] == list(range(len(agents)))
    assert [e.agent_id for e in record.entries] == agents


@pytest.mark.asyncio
async def test_chain_prompts_carry_ledger_snapshot(
    recording_invoker: Tuple[AgentInvoker, object], stub_config: MaireConfig
) -> None:
    """Test each Chain prompt is the snapshot plus the continue directive."""
    invoker, adapter = recording_invoker
    outcome = await ChainTopology(invoker, stub_config).run("X", ["a", "b"])

    first, second = adapter.prompts
    assert first.startswith("<LEDGER>\nOriginal: X\n\n</LEDGER>\n")
    assert first.endswith("\n\n→ a\nContinue and improve:")
    assert f"F0 | a | {content_hash('recording:1')} | " in second
    assert second.endswith("\n\n→ b\nContinue and improve:")
    assert [s.response_text for s in outcome.steps] == ["recording:1", "recording:2"]
    assert all(e.status == InvocationStatus.SUCCEEDED for e in outcome.ledgers[0].entries)


@pytest.mark.asyncio
async def test_chain_hashes_step_text(invoker: AgentInvoker, stub_config: MaireConfig) -> None:
    """Test ledger hashes match the emitted step responses."""
    outcome = await ChainTopology(invoker, stub_config).run("X", ["a", "b"])

    hashes = [e.content_hash for e in outcome.ledgers[0].entries]
    assert hashes == [content_hash(s.response_text) for s in outcome.steps]
    assert all(e.status == InvocationStatus.FELL_BACK for e in outcome.ledgers[0].entries)


# ============================================================================
# Helix
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("agents", AGENT_LISTS)
@pytest.mark.parametrize("serialized", [False, True])
async def test_helix_counts_and_indices(
    invoker: AgentInvoker, stub_config: MaireConfig, agents: list, serialized: bool
) -> None:
    """Test Helix emits 2n steps and n forward plus n reverse entries."""
    config = stub_config.model_copy(update={"helix_serialized": serialized})
    outcome = await HelixTopology(invoker, config).run("X", agents)
    n = len(agents)

    assert len(outcome.steps) == 2 * n
    assert outcome.summary == "Double Helix complete"

    (record,) = outcome.ledgers
    assert len(record.entries) == 2 * n
    forward = [e for e in record.entries if e.direction == Direction.FORWARD]
    reverse = [e for e in record.entries if e.direction == Direction.REVERSE]
    assert [e.step_index for e in forward] == list(range(n))
    assert [e.step_index for e in reverse] == list(range(n - 1, -1, -1))


@pytest.mark.asyncio
async def test_helix_steps_forward_then_reverse(
    invoker: AgentInvoker, stub_config: MaireConfig
) -> None:
    """Test forward steps come first, each pass in its own order."""
    outcome = await HelixTopology(invoker, stub_config).run("X", ["a", "b", "c"])

    assert [s.label for s in outcome.steps] == [
        "a (forward)",
        "b (forward)",
        "c (forward)",
        "c (reverse)",
        "b (reverse)",
        "a (reverse)",
    ]


@pytest.mark.asyncio
async def test_helix_serialized_ledger_order(
    recording_invoker: Tuple[AgentInvoker, object], stub_config: MaireConfig
) -> None:
    """Test the serialized mode appends the whole forward pass first."""
    invoker, adapter = recording_invoker
    config = stub_config.model_copy(update={"helix_serialized": True})
    outcome = await HelixTopology(invoker, config).run("X", ["a", "b"])

    entries = outcome.ledgers[0].entries
    assert [(e.direction, e.step_index) for e in entries] == [
        (Direction.FORWARD, 0),
        (Direction.FORWARD, 1),
        (Direction.REVERSE, 1),
        (Direction.REVERSE, 0),
    ]
    assert adapter.prompts[0].endswith("[Forward pass] You are a")
    assert adapter.prompts[2].endswith("[Reverse pass] Critique as b")


# ============================================================================
# Star
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("agents", AGENT_LISTS)
async def test_star_counts(invoker: AgentInvoker, stub_config: MaireConfig, agents: list) -> None:
    """Test Star emits n arms of n relay steps plus one synthesis step."""
    outcome = await StarTopology(invoker, stub_config).run("X", agents)
    n = len(agents)

    assert len(outcome.steps) == n * n + 1
    assert outcome.summary == f"Star Topology - {n} relay arms"

    arm_records = outcome.ledgers[:-1]
    assert len(arm_records) == n
    for a, record in enumerate(arm_records):
        assert record.scope == f"star-arm-{a + 1}"
        assert [e.step_index for e in record.entries] == list(range(n))
        assert all(e.direction == Direction.STAR for e in record.entries)
        assert [e.agent_id for e in record.entries] == rotations(agents)[a]
    assert outcome.ledgers[-1].scope == "star-synthesis"
    assert len(outcome.ledgers[-1].entries) == 1


@pytest.mark.asyncio
async def test_star_two_agents_scenario(invoker: AgentInvoker, stub_config: MaireConfig) -> None:
    """Test [a, b] gives arms a→b and b→a plus the anchor synthesis."""
    outcome = await StarTopology(invoker, stub_config).run("X", ["a", "b"])

    assert [s.label for s in outcome.steps] == [
        "a (arm 1 • step 1)",
        "b (arm 1 • step 2)",
        "b (arm 2 • step 1)",
        "a (arm 2 • step 2)",
        "a (synthesis)",
    ]


@pytest.mark.asyncio
async def test_star_relays_previous_response(
    recording_invoker: Tuple[AgentInvoker, object], stub_config: MaireConfig
) -> None:
    """Test each arm feeds the previous response to the next agent."""
    invoker, adapter = recording_invoker
    outcome = await StarTopology(invoker, stub_config).run("X", ["a", "b"])

    arm_one = outcome.steps[:2]
    second_prompt = next(p for p in adapter.prompts if "Star arm 1 • step 2" in p)
    assert second_prompt.endswith(f"Input:\n{arm_one[0].response_text}")

    first_prompts = [p for p in adapter.prompts if "step 1 •" in p]
    assert len(first_prompts) == 2
    assert all(p.endswith("Input:\nX") for p in first_prompts)


@pytest.mark.asyncio
async def test_star_synthesis_uses_anchor_and_arm_answers(
    recording_invoker: Tuple[AgentInvoker, object], stub_config: MaireConfig
) -> None:
    """Test the anchor is invoked last with every arm's final answer."""
    invoker, adapter = recording_invoker
    outcome = await StarTopology(invoker, stub_config).run("X", ["a", "b"])

    synthesis_prompt = adapter.prompts[-1]
    assert "[Synthesis] You are a, the anchor agent." in synthesis_prompt
    assert f"Arm 1 (a → b):\n{outcome.steps[1].response_text}" in synthesis_prompt
    assert f"Arm 2 (b → a):\n{outcome.steps[3].response_text}" in synthesis_prompt
    assert outcome.ledgers[-1].entries[0].agent_id == "a"


@pytest.mark.asyncio
async def test_star_arm_ledgers_are_private(
    recording_invoker: Tuple[AgentInvoker, object], stub_config: MaireConfig
) -> None:
    """Test an arm's snapshots never show another arm's entries."""
    invoker, adapter = recording_invoker
    await StarTopology(invoker, stub_config).run("X", ["a", "b"])

    for prompt in adapter.prompts[:-1]:
        ledger_block = prompt.split("</LEDGER>")[0]
        assert ledger_block.count(" | ") <= 3


@pytest.mark.asyncio
async def test_star_separators(invoker: AgentInvoker, stub_config: MaireConfig) -> None:
    """Test optional separators sit between arms and are never hashed."""
    config = stub_config.model_copy(update={"star_arm_separators": True})
    outcome = await StarTopology(invoker, config).run("X", ["a", "b", "c"])

    separators = [s for s in outcome.steps if s.separator]
    assert len(outcome.steps) == 9 + 1 + 2
    assert [s.label for s in separators] == ["── arm 2: b → c → a ──", "── arm 3: c → a → b ──"]
    assert outcome.steps[3] is separators[0]
    total_entries = sum(len(record.entries) for record in outcome.ledgers)
    assert total_entries == 9 + 1
    assert all(s.response_text == "" for s in separators)
    assert not any(s.separator for s in outcome.steps if s not in separators)


def test_empty_response_is_not_a_separator() -> None:
    """Test an agent step with empty text stays an invocation step."""
    assert not Step(label="a", response_text="").separator


# ============================================================================
# Concurrency
# ============================================================================


class GatedAdapter(LLMAdapter):
    """
    Adapter that holds every call until ``parties`` calls have started.

    Sequential callers never reach the gate count, so they time out and the
    invoker records FAILED stub text instead of a response.
    """

    provider = "gated"

    def __init__(self, parties: int, model: str = "gated") -> None:
        super().__init__(model)
        self.parties = parties
        self.prompts: List[str] = []
        self.completed_before_start: List[int] = []
        self.completed = 0
        self._released = anyio.Event()

    async def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.prompts.append(self.last_user_content(messages))
        self.completed_before_start.append(self.completed)
        if len(self.prompts) >= self.parties:
            self._released.set()
        with anyio.fail_after(2):
            await self._released.wait()
        self.completed += 1
        return LLMResponse(content=f"{self.model}:{len(self.prompts)}", model=self.model)


def gated_invoker(
    stub_config: MaireConfig, agents: List[str], parties: int
) -> Tuple[AgentInvoker, GatedAdapter]:
    routed = stub_config.model_copy(
        update={"agent_backends": {agent: BackendKind.OPENROUTER for agent in agents}}
    )
    adapter = GatedAdapter(parties)
    return AgentInvoker(routed, adapters={BackendKind.OPENROUTER: adapter}), adapter


EMPTY_SNAPSHOT = "<LEDGER>\nOriginal: X\n\n</LEDGER>\n"


@pytest.mark.asyncio
async def test_helix_passes_run_concurrently(stub_config: MaireConfig) -> None:
    """Test both passes start against an empty shared ledger."""
    agents = ["a", "b", "c"]
    invoker, adapter = gated_invoker(stub_config, agents, parties=2)

    outcome = await HelixTopology(invoker, stub_config).run("X", agents)

    first_two = adapter.prompts[:2]
    assert all(p.startswith(EMPTY_SNAPSHOT) for p in first_two)
    assert sorted(p[len(EMPTY_SNAPSHOT):] for p in first_two) == [
        "\n\n[Forward pass] You are a",
        "\n\n[Reverse pass] Critique as c",
    ]
    assert adapter.completed_before_start[:2] == [0, 0]
    entries = outcome.ledgers[0].entries
    assert all(e.status == InvocationStatus.SUCCEEDED for e in entries)
    assert verify_chain(entries)


@pytest.mark.asyncio
@pytest.mark.parametrize("agents", [["a", "b"], ["a", "b", "c"]])
async def test_star_arms_run_concurrently(stub_config: MaireConfig, agents: List[str]) -> None:
    """Test every arm starts its first step before any arm step finishes."""
    n = len(agents)
    invoker, adapter = gated_invoker(stub_config, agents, parties=n)

    outcome = await StarTopology(invoker, stub_config).run("X", agents)

    first_prompts = adapter.prompts[:n]
    assert adapter.completed_before_start[:n] == [0] * n
    assert sorted(
        next(a for a in range(1, n + 1) if f"Star arm {a} • step 1 •" in p) for p in first_prompts
    ) == list(range(1, n + 1))
    assert all(p.startswith(EMPTY_SNAPSHOT) for p in first_prompts)
    assert all(
        e.status == InvocationStatus.SUCCEEDED for record in outcome.ledgers for e in record.entries
    )
