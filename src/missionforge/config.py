"""Configuration settings for MissionForge."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or overrides."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, populate_by_name=True
    )

    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL"
    )
    openai_model: str = Field(default="gpt-4.1-mini", validation_alias="OPENAI_MODEL")
    worker_model: str | None = Field(default=None, validation_alias="WORKER_MODEL")
    openai_timeout_seconds: int = Field(
        default=30, validation_alias="OPENAI_TIMEOUT_SECONDS"
    )
    openai_extra_headers: str | None = Field(
        default=None, validation_alias="OPENAI_EXTRA_HEADERS"
    )
    openai_disable_tool_choice: bool = Field(
        default=False, validation_alias="OPENAI_DISABLE_TOOL_CHOICE"
    )
    openai_force_chatcompletions_path: str | None = Field(
        default=None, validation_alias="OPENAI_FORCE_CHATCOMPLETIONS_PATH"
    )
    openweather_api_key: str | None = Field(
        default=None, validation_alias="OPENWEATHER_API_KEY"
    )
    controller_mode: str = Field(default="dual", validation_alias="CONTROLLER_MODE")
    max_iterations: int = Field(default=10, validation_alias="MAX_ITERATIONS")
    memory_max_items: int = Field(default=100, validation_alias="MEMORY_MAX_ITEMS")
    max_tool_rounds: int = Field(default=6, validation_alias="MAX_TOOL_ROUNDS")
    workspace_dir: str = Field(default="./workspace", validation_alias="WORKSPACE_DIR")
    identity_path: str = Field(
        default="config/switch.json", validation_alias="IDENTITY_PATH"
    )
    instructions_path: str = Field(
        default="config/agent-instructions.json", validation_alias="INSTRUCTIONS_PATH"
    )
