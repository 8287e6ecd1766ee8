import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON is the documented format; plain host lists are tolerated.
    if raw.startswith(("[", '"')):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw or raw == "[]":
                return []
            if raw == "*":
                return ["*"]

    origins: list[str] = []
    for part in re.split(r"[,\s]+", raw):
        if not part:
            continue
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
        else:
            # Browsers send the scheme in Origin, so accept both.
            origins.append(f"http://{part}")
            origins.append(f"https://{part}")

    return list(dict.fromkeys(origins))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - adds diagnostic detail to error responses
    debug: bool = False

    # Chat-completion endpoint
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_organization: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.7

    # Generation call policy
    generation_timeout: float = 30.0  # Hard wall-clock deadline per attempt
    generation_max_attempts: int = 3
    generation_backoff_base: float = 1.0  # Seconds; delay before attempt n is (n-1) * base

    # Shared HTTP client pool
    httpx_connect_timeout: float = 10.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Admission gate
    rate_limit_max_requests: int = 10
    rate_limit_window_ms: int = 60000
    rate_limit_sweep_interval_seconds: float = 300.0
    rate_limit_trust_forwarded_for: bool = False

    # Request body limit (bytes)
    max_body_size: int = 2 * 1024 * 1024

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # NoDecode keeps plain host values from failing JSON decoding at startup.
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "generation_max_attempts",
        "rate_limit_max_requests",
        "rate_limit_window_ms",
        "max_body_size",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate counters and sizes are at least 1."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator(
        "generation_timeout",
        "httpx_connect_timeout",
        "rate_limit_sweep_interval_seconds",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("generation_backoff_base")
    @classmethod
    def validate_backoff_base(cls, v: float) -> float:
        if v < 0:
            raise ValueError("generation_backoff_base must not be negative")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000.0

    @property
    def generation_configured(self) -> bool:
        """Whether a credential for the completion endpoint is present."""
        return bool(self.openai_api_key.strip())

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
