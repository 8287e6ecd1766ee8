"""Chat-completion providers and the retry policy that drives them."""

from recruiter.app.providers.base import BaseProvider
from recruiter.app.providers.openai import OpenAIProvider
from recruiter.app.providers.retry import RetryPolicy, RetryState, run_with_retry

__all__ = [
    "BaseProvider",
    "OpenAIProvider",
    "RetryPolicy",
    "RetryState",
    "run_with_retry",
]
