import pytest
from pydantic import ValidationError

from recruiter.app.core.config import Settings


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.model == "gpt-4o-mini"
    assert settings.generation_timeout == 30.0
    assert settings.generation_max_attempts == 3
    assert settings.generation_backoff_base == 1.0
    assert settings.rate_limit_max_requests == 10
    assert settings.rate_limit_window_seconds == 60.0
    assert settings.rate_limit_sweep_interval_seconds == 300.0
    assert settings.max_body_size == 2 * 1024 * 1024
    assert settings.generation_configured is False


def test_values_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("MODEL", "gpt-4o")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "1500")

    settings = Settings(_env_file=None)

    assert settings.generation_configured is True
    assert settings.model == "gpt-4o"
    assert settings.rate_limit_window_seconds == 1.5


def test_blank_api_key_is_not_configured() -> None:
    assert Settings(_env_file=None, openai_api_key="   ").generation_configured is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"generation_max_attempts": 0},
        {"rate_limit_max_requests": 0},
        {"rate_limit_window_ms": 0},
        {"generation_timeout": 0},
        {"generation_backoff_base": -1},
        {"temperature": 3.0},
    ],
)
def test_invalid_values_are_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_cors_origins_accepts_host_without_json(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "43.163.94.63")

    settings = Settings(_env_file=None)
    assert settings.cors_origins == ["http://43.163.94.63", "https://43.163.94.63"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["http://localhost:5173"]', ["http://localhost:5173"]),
        ("*", ["*"]),
        ("[]", []),
        ("", []),
        ("http://a.test, http://a.test http://b.test", ["http://a.test", "http://b.test"]),
    ],
)
def test_cors_origins_parsing_variants(monkeypatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("CORS_ORIGINS", raw)

    settings = Settings(_env_file=None)
    assert settings.cors_origins == expected
