from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    _project_root = Path(__file__).parent.parent

    model_config = SettingsConfigDict(
        env_file=str(_project_root / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # CORS
    cors_allow_origins: str = Field(
        "*",
        alias="CORS_ALLOW_ORIGINS",
        description="Allowed origins, comma separated; '*' allows any origin",
    )
    cors_allow_methods: str = Field(
        "GET,POST,OPTIONS",
        alias="CORS_ALLOW_METHODS",
        description="Allowed methods, comma separated; '*' allows all methods",
    )
    cors_allow_headers: str = Field(
        "Content-Type",
        alias="CORS_ALLOW_HEADERS",
        description="Allowed request headers, comma separated; '*' allows all headers",
    )

    # Session state storage
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis connection URL, e.g. 'redis://redis:6379/0'",
    )
    session_store_backend: Literal["redis", "memory"] = Field(
        "redis",
        alias="SESSION_STORE_BACKEND",
        description="Where session state lives: 'redis' or process-local 'memory'",
    )
    session_key_prefix: str = Field(
        "chatstate:session",
        alias="SESSION_KEY_PREFIX",
        description="Prefix for per-session Redis keys",
    )

    # Inference (Workers AI REST API)
    inference_base_url: str = Field(
        "https://api.cloudflare.com/client/v4/accounts/change-me/ai/run",
        alias="INFERENCE_BASE_URL",
        description="Base URL; the model name is appended as the last path segment",
    )
    inference_api_token: Optional[str] = Field(
        default=None,
        alias="INFERENCE_API_TOKEN",
        description="Bearer token for the inference service",
    )
    text_model: str = Field(
        "@cf/meta/llama-3.3-70b-instruct-fp8-fast", alias="TEXT_MODEL"
    )
    vision_model: str = Field("@cf/llava-hf/llava-1.5-7b-hf", alias="VISION_MODEL")
    system_prompt: str = Field("You are a helpful chatbot.", alias="SYSTEM_PROMPT")
    vision_max_tokens: int = Field(512, alias="VISION_MAX_TOKENS", ge=1)
    inference_timeout: float = Field(
        60.0,
        alias="INFERENCE_TIMEOUT",
        description="Default upper bound (seconds) for one inference call",
        gt=0,
    )

    # Application log level for our chatstate logger.
    log_level: str = Field(
        "INFO",
        alias="LOG_LEVEL",
        description="Application log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_timezone: Optional[str] = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="Timezone name for log timestamps, e.g. 'Europe/Berlin'. Defaults to system local time.",
    )
    log_dir: str = Field("logs", alias="LOG_DIR")

    @staticmethod
    def _split_csv(raw: str) -> List[str]:
        if raw.strip() == "*":
            return ["*"]
        return [item.strip() for item in raw.split(",") if item.strip()]

    def get_cors_origins(self) -> List[str]:
        return self._split_csv(self.cors_allow_origins)

    def get_cors_methods(self) -> List[str]:
        return self._split_csv(self.cors_allow_methods)

    def get_cors_headers(self) -> List[str]:
        return self._split_csv(self.cors_allow_headers)


settings = Settings()  # Reads from environment if available
