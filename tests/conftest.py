"""Shared fixtures: a scripted provider and a recording sleep."""

from typing import Any, Dict, List

import pytest

from recruiter.app.core.config import Settings
from recruiter.app.providers.base import BaseProvider


def completion(content: str) -> Dict[str, Any]:
    """Minimal chat-completion response body carrying ``content``."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


class ScriptedProvider(BaseProvider):
    """Provider that replays a script of responses and exceptions.

    Each call consumes the next script item; the last item repeats once the
    script runs out.
    """

    def __init__(self, *script: Any):
        super().__init__("http://completions.test/v1", "test-key")
        self.script: List[Any] = list(script)
        self.calls: List[Dict[str, Any]] = []

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(payload)
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    """Drop-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="",
        model="gpt-test",
        rate_limit_max_requests=100,
        rate_limit_window_ms=60000,
    )
