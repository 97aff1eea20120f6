"""
Pydantic models for the MAIRE service.

Defines ledger records, orchestration requests and results, and API contracts.
Field aliases keep the JSON shape used by the web client
(``models`` / ``final_response`` / ``header_stack``).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backends.llm import BackendKind


# ============================================================================
# Enums
# ============================================================================


class Direction(str, Enum):
    """Direction tag of a ledger entry, rendered as its one-letter value."""

    FORWARD = "F"
    REVERSE = "R"
    STAR = "S"


class InvocationStatus(str, Enum):
    """Provenance of an agent response."""

    SUCCEEDED = "succeeded"
    FELL_BACK = "fell_back"
    FAILED = "failed"


# ============================================================================
# Ledger Models
# ============================================================================


def render_line(
    direction: Direction, step_index: int, agent_id: str, content_hash: str, timestamp: str
) -> str:
    return f"{direction.value}{step_index} | {agent_id} | {content_hash} | {timestamp}"


class LedgerEntry(BaseModel):
    """One immutable step record in a ledger."""

    model_config = ConfigDict(frozen=True)

    direction: Direction = Field(..., description="Pass or arm direction tag")
    step_index: int = Field(..., ge=0, description="Logical index within the writer")
    agent_id: str = Field(..., description="Agent that produced the content")
    content_hash: str = Field(
        ..., pattern=r"^[0-9a-f]{12}$", description="First 12 hex chars of SHA-256"
    )
    timestamp: str = Field(..., description="UTC RFC 3339 append time")
    status: InvocationStatus = Field(
        default=InvocationStatus.SUCCEEDED, description="Provenance of the content"
    )
    chain_hash: str = Field(
        ...,
        pattern=r"^[0-9a-f]{64}$",
        description="SHA-256 over the previous entry's chain hash and this entry's line",
    )

    def render(self) -> str:
        """Snapshot line for this entry. Status and chain hash are not rendered."""
        return render_line(
            self.direction, self.step_index, self.agent_id, self.content_hash, self.timestamp
        )


class LedgerRecord(BaseModel):
    """Exported ledger of one run, pass pair or arm."""

    scope: str = Field(..., description="Ledger owner (chain, helix, star-arm-N, ...)")
    original_prompt: str
    entries: List[LedgerEntry] = Field(default_factory=list)


# ============================================================================
# Invocation Models
# ============================================================================


class InvocationResult(BaseModel):
    """Tagged outcome of one agent invocation. ``text`` is always usable."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    text: str
    status: InvocationStatus
    backend: BackendKind


# ============================================================================
# Orchestration Models
# ============================================================================


class Step(BaseModel):
    """User-facing record of one agent invocation (or a display separator)."""

    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(..., alias="model", description="Agent label for display")
    response_text: str = Field(default="", alias="response", description="Agent output")
    separator: bool = Field(
        default=False, description="Display-only grouping step with no invocation behind it"
    )


class OrchestrationRequest(BaseModel):
    """Request to run one topology over an ordered agent list."""

    original_prompt: str = Field(..., description="User prompt that starts the run")
    topology: str = Field(default="standard-chain", description="Topology identifier")
    agents: List[str] = Field(
        ...,
        validation_alias=AliasChoices("agents", "models"),
        description="Ordered agent identifiers (duplicates allowed)",
    )

    @field_validator("agents")
    @classmethod
    def validate_agent_ids(cls, v: List[str]) -> List[str]:
        """Agent identifiers must be non-blank."""
        cleaned = [agent.strip() for agent in v]
        if any(not agent for agent in cleaned):
            raise ValueError("agent identifiers must be non-empty strings")
        return cleaned


class OrchestrationResult(BaseModel):
    """Aggregated outcome of a topology run."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., alias="final_response", description="Completion summary")
    steps: List[Step] = Field(
        default_factory=list, alias="header_stack", description="Ordered steps"
    )
    topology: str = Field(..., description="Topology that actually ran")
    ledgers: List[LedgerRecord] = Field(
        default_factory=list, description="Audit ledgers of the run"
    )


# ============================================================================
# API Response Models
# ============================================================================


class AgentsResponse(BaseModel):
    """Agents that currently have a credentialed backend."""

    agents: List[str] = Field(default_factory=list)


class TopologiesResponse(BaseModel):
    """Registered topology identifiers."""

    topologies: List[str] = Field(default_factory=list)
    default: str


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status (healthy, degraded)")
    version: str = Field(..., description="Service version")
    backends: Dict[str, bool] = Field(
        ..., description="Whether each backend has a credential configured"
    )
    uptime_seconds: float = Field(..., ge=0.0, description="Service uptime")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional details")
