"""Configuration management for the taskweave orchestrator."""

from enum import Enum
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderName(str, Enum):
    """Supported completion providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TASKWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Provider selection
    provider: ProviderName = Field(ProviderName.OPENAI, description="Completion provider backend")
    anthropic_api_key: Optional[SecretStr] = Field(None, description="Anthropic API key")
    openai_api_key: Optional[SecretStr] = Field(None, description="OpenAI API key")

    # Models
    default_model: str = Field("gpt-4", description="Model used by the default agent profiles")
    selection_model: str = Field("gpt-4", description="Model used for provider-assisted agent selection")
    summary_model: str = Field("gpt-4", description="Model used by the summarize aggregation strategy")

    # Execution Settings
    max_concurrent_agents: int = Field(5, ge=1, description="Max tasks executed concurrently per wave")
    task_timeout_seconds: float = Field(60.0, gt=0, description="Per-task execution timeout")
    selection_timeout_seconds: float = Field(30.0, gt=0, description="Timeout for the agent ranking call")
    strict_agent_selection: bool = Field(
        False,
        description="Fail with AgentSelectionFailed instead of falling back to the first agent"
    )
    planner_agent_id: str = Field("planner", description="Agent used for goal decomposition")

    # Logging
    log_level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(False, description="Render logs as JSON")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
