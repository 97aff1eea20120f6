"""
MAIRE - Multi-Agent Inference Relay Engine.

This package provides the orchestration service responsible for:
- Running agents across fixed topologies (chain, double helix, star)
- Keeping an append-only, hash-stamped ledger per run or arm
- Routing agents to backends, with a local stub fallback
- Exposing runs over HTTP
"""

__version__ = "1.0.0"

from .service.config import MaireConfig, config
from .service.engine import EmptyAgentListError, OrchestrationEngine, OrchestrationError
from .service.ledger import Ledger, content_hash
from .service.models import (
    Direction,
    InvocationStatus,
    LedgerEntry,
    OrchestrationRequest,
    OrchestrationResult,
    Step,
)

__all__ = [
    "MaireConfig",
    "config",
    "EmptyAgentListError",
    "OrchestrationEngine",
    "OrchestrationError",
    "Ledger",
    "content_hash",
    "Direction",
    "InvocationStatus",
    "LedgerEntry",
    "OrchestrationRequest",
    "OrchestrationResult",
    "Step",
]
