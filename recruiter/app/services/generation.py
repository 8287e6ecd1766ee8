"""Generation client: one logical completion call with retries.

``GenerationClient.generate`` turns a system/user prompt pair into raw model
text (and, on request, a structured value recovered from it). Transient
failures are retried according to a ``RetryPolicy``; failure statuses from
the endpoint are surfaced at once.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from recruiter.app.core.config import Settings
from recruiter.app.core.logging import get_log_context, get_logger
from recruiter.app.exceptions import UpstreamError
from recruiter.app.providers.base import BaseProvider
from recruiter.app.providers.retry import RetryPolicy, SleepFunc, run_with_retry
from recruiter.app.services.extractor import extract_structured

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    expect_structured: bool = False


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a successful call.

    ``structured`` is None when structured output was not requested or
    could not be recovered; callers decide what absence means.
    """

    raw_text: str
    structured: Optional[Any] = None
    attempts: int = 1


class GenerationClient:
    """Issues completion calls against a provider.

    The client holds configuration only; each ``generate`` call owns its
    own retry state.
    """

    def __init__(
        self,
        provider: BaseProvider,
        model: str,
        temperature: float = 0.7,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        provider: BaseProvider,
        app_settings: Settings,
    ) -> "GenerationClient":
        return cls(
            provider,
            model=app_settings.model,
            temperature=app_settings.temperature,
            retry_policy=RetryPolicy(
                max_attempts=app_settings.generation_max_attempts,
                base_delay=app_settings.generation_backoff_base,
            ),
        )

    def build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": self.temperature,
        }

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run one logical generation call.

        Raises:
            UpstreamError: The endpoint rejected the request (not retried).
            ExhaustedRetriesError: Every attempt failed transiently.
        """
        payload = self.build_payload(request)
        started = time.perf_counter()

        async def attempt_call(attempt: int) -> str:
            logger.debug(
                f"Calling completion API (attempt {attempt})",
                extra=get_log_context(attempt=attempt, model=self.model),
            )
            data = await self.provider.chat_completion(payload)
            return self._message_content(data)

        raw_text, state = await run_with_retry(
            attempt_call, self.retry_policy, sleep=self._sleep
        )

        structured = None
        if request.expect_structured:
            structured = extract_structured(raw_text)
            if structured is None:
                logger.warning(
                    "No structured value could be recovered from model output",
                    extra=get_log_context(model=self.model, output_chars=len(raw_text)),
                )

        logger.info(
            f"Completion succeeded after {state.attempt} attempt(s)",
            extra=get_log_context(
                attempt=state.attempt,
                model=self.model,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            ),
        )
        return GenerationResult(raw_text=raw_text, structured=structured, attempts=state.attempt)

    @staticmethod
    def _message_content(data: Any) -> str:
        """Pull ``choices[0].message.content`` out of a completion body."""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise UpstreamError(502, "completion response has no message content")
        return content
