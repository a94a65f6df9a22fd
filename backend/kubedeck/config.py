from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ASSISTANT_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_ASSISTANT_MODEL = "llama-3.3-70b-versatile"


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=(".env",), env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    app_env: Literal["development", "production", "test"] = "development"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    kube_context: str | None = None
    kube_config_path: str | None = Field(default=None, alias="KUBE_CONFIG_PATH")
    # Pod replacement: how long to wait for a deleted pod's name to be released
    settle_timeout_seconds: float = Field(default=30.0, gt=0)
    settle_poll_interval_seconds: float = Field(default=0.5, gt=0)
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    # Manifest drafting assistant (OpenAI-compatible chat completions endpoint)
    groq_api_key: str | None = Field(default=None, alias="GROQ_API_KEY")
    assistant_url: str = DEFAULT_ASSISTANT_URL
    assistant_model: str = DEFAULT_ASSISTANT_MODEL
    assistant_timeout_seconds: float = 30.0

    @computed_field
    @property
    def is_debug(self) -> bool:
        return self.app_env == "development"

    @property
    def kubeconfig_file(self) -> Path:
        if self.kube_config_path:
            return Path(self.kube_config_path).expanduser()
        return Path.home() / ".kube" / "config"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
