"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Mindline configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    default_chat_model: str = Field(default="sonnet")
    default_fast_model: str = Field(default="haiku")

    # Mem0
    mem0_api_key: str = Field(default="")
    memory_search_limit: int = Field(default=5)
    memory_search_threshold: float = Field(default=0.3)
    memory_writes_enabled: bool = Field(default=True)

    # Knowledge base (embeddings + vector index)
    knowledge_base_enabled: bool = Field(default=True)
    openai_api_key: str = Field(default="")
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_dimensions: int = Field(default=1024)
    pinecone_api_key: str = Field(default="")
    pinecone_index_name: str = Field(default="")
    knowledge_top_k: int = Field(default=5)
    knowledge_min_score: float = Field(default=0.3)

    # Wearable (Fitbit)
    fitbit_api_base: str = Field(default="https://api.fitbit.com/1/user/-")
    wearable_history_days: int = Field(default=7)
    wellness_window_minutes: int = Field(default=30)
    wearable_request_timeout_s: float = Field(default=10.0)

    # Orchestration
    orchestration_timeout_ms: int = Field(default=8000)
    policy_timeout_s: float = Field(default=5.0)
    summary_passthrough_chars: int = Field(default=300)
    narrative_max_chars: int = Field(default=600)
    history_turns_for_policy: int = Field(default=2)
    history_turns_for_reply: int = Field(default=4)

    # Database
    database_path: Path = Field(default=Path("data/mindline.db"))

    # Turso (hosted libSQL) — when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Emergency alerts (SMTP)
    smtp_host: str = Field(default="")
    smtp_port: int = Field(default=587)
    smtp_username: str = Field(default="")
    smtp_password: str = Field(default="")
    smtp_from: str = Field(default="")
    alert_timezone: str = Field(default="Asia/Kolkata")

    # HTTP server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8080)
    session_ttl_hours: int = Field(default=24 * 7)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def orchestration_timeout_s(self) -> float:
        """Global orchestration ceiling in seconds."""
        return self.orchestration_timeout_ms / 1000

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_username and self.smtp_password)


settings = Settings()
