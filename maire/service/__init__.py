"""
MAIRE service implementation.

Contains the FastAPI application, orchestration engine, topologies and ledger.
"""

from .config import MaireConfig, config
from .engine import OrchestrationEngine
from .invocation import AgentInvoker
from .main import app
from .models import OrchestrationRequest, OrchestrationResult, Step

__all__ = [
    "app",
    "config",
    "MaireConfig",
    "AgentInvoker",
    "OrchestrationEngine",
    "OrchestrationRequest",
    "OrchestrationResult",
    "Step",
]
