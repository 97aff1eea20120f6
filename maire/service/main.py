"""
MAIRE Service - Main FastAPI Application.

Provides API endpoints for:
- Running an orchestration over a topology (chain, helix, star)
- Listing agents that currently reach a credentialed backend
- Listing registered topologies
- Service info and health
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backends.llm import BackendKind

from .config import config
from .engine import EmptyAgentListError, OrchestrationEngine, OrchestrationError
from .models import (
    AgentsResponse,
    ErrorResponse,
    HealthCheckResponse,
    OrchestrationRequest,
    OrchestrationResult,
    TopologiesResponse,
)
from .topologies import DEFAULT_TOPOLOGY

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# Track service start time for uptime
SERVICE_START_TIME = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown tasks.
    """
    logger.info("Starting MAIRE orchestration service...")
    app.state.engine = OrchestrationEngine(config=config)
    logger.info(f"Routed agents: {', '.join(config.agent_backends) or 'none'}")
    logger.info("MAIRE service started successfully")
    yield

    logger.info("Shutting down MAIRE service...")
    await app.state.engine.close()
    logger.info("MAIRE service shutdown complete")


app = FastAPI(
    title="MAIRE Orchestration Service",
    description="Multi-agent relay engine - chain, double helix and star topologies",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


def get_engine(request: Request) -> OrchestrationEngine:
    """Engine created at startup."""
    return request.app.state.engine


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(ValidationError)
async def validation_exception_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = [f"{err['loc']}: {err['msg']}" for err in exc.errors()]
    logger.warning(f"Validation error: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            message="Invalid request data",
            details={"errors": errors},
        ).model_dump(),
    )


@app.exception_handler(OrchestrationError)
async def orchestration_exception_handler(
    request: Request, exc: OrchestrationError
) -> JSONResponse:
    """Handle rejected orchestration requests."""
    logger.warning(f"Orchestration request rejected: {exc}")
    status_code = (
        status.HTTP_400_BAD_REQUEST
        if isinstance(exc, EmptyAgentListError)
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=type(exc).__name__, message=str(exc)).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error="HTTPException",
            message=exc.detail or "An error occurred",
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An internal server error occurred",
            details={"exception": str(exc)},
        ).model_dump(),
    )


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/", response_model=Dict[str, str])
async def root() -> Dict[str, str]:
    """Root endpoint with service information."""
    return {
        "service": "MAIRE",
        "version": SERVICE_VERSION,
        "status": "running",
        "run": "/maire/run",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """
    Health check endpoint.

    The service is healthy when at least one real backend has a credential;
    with none it still answers every run through the stub, reported as degraded.
    """
    backends = {
        kind.value: bool(config.credential_for(kind))
        for kind in BackendKind
        if kind != BackendKind.STUB
    }
    return HealthCheckResponse(
        status="healthy" if any(backends.values()) else "degraded",
        version=SERVICE_VERSION,
        backends=backends,
        uptime_seconds=time.time() - SERVICE_START_TIME,
    )


@app.post("/maire/run", response_model=OrchestrationResult)
async def run_orchestration(
    request: OrchestrationRequest,
    engine: OrchestrationEngine = Depends(get_engine),
) -> OrchestrationResult:
    """
    Run one orchestration.

    Args:
        request: Original prompt, topology identifier and ordered agents

    Returns:
        Summary, ordered steps (``header_stack``) and audit ledgers

    Raises:
        EmptyAgentListError: Mapped to HTTP 400 when no agents are given
    """
    logger.info(
        f"Received run request: topology={request.topology}, "
        f"agents={request.agents}, prompt_chars={len(request.original_prompt)}"
    )
    return await engine.run(request)


@app.get("/maire/agents", response_model=AgentsResponse)
async def list_agents(
    engine: OrchestrationEngine = Depends(get_engine),
) -> AgentsResponse:
    """Agents whose backend credential is configured."""
    return AgentsResponse(agents=engine.available_agents())


@app.get("/maire/topologies", response_model=TopologiesResponse)
async def list_topologies(
    engine: OrchestrationEngine = Depends(get_engine),
) -> TopologiesResponse:
    """Registered topology identifiers."""
    return TopologiesResponse(topologies=engine.topologies(), default=DEFAULT_TOPOLOGY)


def main() -> None:
    """Main entry point for running the service."""
    import uvicorn

    logger.info("Starting MAIRE service with uvicorn...")

    uvicorn.run(
        "maire.service.main:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
