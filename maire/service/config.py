"""
Configuration module for the MAIRE service.

Uses pydantic-settings for environment variable management with type validation.
"""

from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from backends.llm import BackendKind


def _default_agent_backends() -> Dict[str, BackendKind]:
    return {
        "grok": BackendKind.OPENROUTER,
        "llama": BackendKind.OPENROUTER,
        "claude": BackendKind.HUGGINGFACE,
        "mistral": BackendKind.HUGGINGFACE,
        "gpt-4": BackendKind.GEMINI,
        "gemini": BackendKind.GEMINI,
    }


class MaireConfig(BaseSettings):
    """Configuration for the MAIRE orchestration service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the service")
    port: int = Field(default=8080, description="Port to bind the service")
    reload: bool = Field(default=False, description="Enable auto-reload for development")
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Backend Credentials
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API key")
    hf_api_key: Optional[str] = Field(default=None, description="Hugging Face API token")
    google_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")

    # Backend Models
    openrouter_model: str = Field(
        default="meta-llama/llama-3.1-8b-instruct", description="OpenRouter model slug"
    )
    huggingface_model: str = Field(
        default="mistralai/Mixtral-8x7B-Instruct-v0.1",
        description="Hugging Face Inference API model id",
    )
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model id")

    # Per-call Timeouts
    openrouter_timeout_seconds: float = Field(default=45.0, gt=0)
    huggingface_timeout_seconds: float = Field(default=60.0, gt=0)
    gemini_timeout_seconds: float = Field(default=45.0, gt=0)

    # Local Stub
    stub_delay_ms: int = Field(default=180, ge=0, description="Simulated stub latency")
    stub_echo_chars: int = Field(
        default=120, ge=1, description="Prompt characters echoed by the stub"
    )

    # Agent Routing
    agent_backends: Dict[str, BackendKind] = Field(
        default_factory=_default_agent_backends,
        description="Agent identifier to backend variant (JSON object in env)",
    )

    # Topology Behaviour
    helix_serialized: bool = Field(
        default=False,
        description="Run the Double Helix reverse pass after the forward pass",
    )
    star_arm_separators: bool = Field(
        default=False, description="Emit empty separator steps between Star arms"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("agent_backends")
    @classmethod
    def normalize_agent_ids(cls, v: Dict[str, BackendKind]) -> Dict[str, BackendKind]:
        """Agent identifiers are matched case-insensitively."""
        return {agent_id.strip().lower(): kind for agent_id, kind in v.items()}

    def credential_for(self, kind: BackendKind) -> Optional[str]:
        """Credential configured for a backend variant (None for the stub)."""
        return {
            BackendKind.OPENROUTER: self.openrouter_api_key,
            BackendKind.HUGGINGFACE: self.hf_api_key,
            BackendKind.GEMINI: self.google_api_key,
        }.get(kind)


# Global config instance
config = MaireConfig()
