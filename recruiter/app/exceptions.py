"""Custom exceptions for the generation service."""

from typing import Optional


class RecruiterException(Exception):
    """Base class for service exceptions with HTTP status code.

    Subclasses define ``status_code`` and ``error_code``; the application's
    exception handlers turn them into ``{"error": error_code, ...}``
    responses with that status.
    """
    status_code: int = 500
    error_code: str = "internal_error"
    public_message: str = "An unexpected error occurred."

    def __init__(self, message: str = "Service error"):
        self.message = message
        super().__init__(message)


class ValidationError(RecruiterException):
    """Raised when caller input is malformed. Never retried.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error_code = "validation_failed"
    public_message = "Validation failed"

    def __init__(self, details: list[str]):
        self.details = list(details)
        super().__init__("; ".join(self.details) or "Validation failed")


class PayloadTooLargeError(RecruiterException):
    """Request body exceeds the configured size limit.

    Maps to HTTP 413 Content Too Large.
    """
    status_code = 413
    error_code = "payload_too_large"
    public_message = "Request body too large."

    def __init__(self, max_size: int):
        self.max_size = max_size
        super().__init__(f"Request body too large. Maximum allowed: {max_size} bytes")


class ServiceNotConfiguredError(RecruiterException):
    """Raised when no credential for the completion endpoint is configured.

    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error_code = "misconfigured_credential"
    public_message = "The AI service is not configured. Please contact support."

    def __init__(self, detail: str = "Completion API key is not configured"):
        super().__init__(detail)


class TransientError(RecruiterException):
    """Network-level failure (DNS, connection reset, timeout). Retryable.

    The generation client retries these; callers only see them wrapped in
    ``ExhaustedRetriesError``.
    """
    status_code = 503
    error_code = "upstream_unavailable"
    public_message = "The AI service is temporarily unavailable. Please try again later."

    def __init__(self, cause: Optional[BaseException] = None, timeout: bool = False):
        self.cause = cause
        self.timeout = timeout
        if timeout:
            message = "Completion request timed out"
        else:
            message = f"Completion request failed: {type(cause).__name__}: {cause}"
        super().__init__(message)


class UpstreamError(RecruiterException):
    """The completion endpoint answered with a failure status.

    Never retried. 401/403 answers are reported as a credential problem.
    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Completion API error {status}: {body[:500]}")

    @property
    def is_credential_error(self) -> bool:
        return self.status in (401, 403)

    @property
    def error_code(self) -> str:  # type: ignore[override]
        return "misconfigured_credential" if self.is_credential_error else "upstream_rejected"

    @property
    def public_message(self) -> str:  # type: ignore[override]
        if self.is_credential_error:
            return "The AI service rejected the configured credential. Please contact support."
        return "The AI service could not process the request. Please try again later."


class ExhaustedRetriesError(RecruiterException):
    """All generation attempts failed with transient errors.

    Maps to HTTP 504 when the last attempt timed out, 503 otherwise.
    """

    def __init__(self, last_cause: TransientError, attempts: int):
        self.last_cause = last_cause
        self.attempts = attempts
        super().__init__(
            f"Completion failed after {attempts} attempt(s): {last_cause.message}"
        )

    @property
    def timed_out(self) -> bool:
        return self.last_cause.timeout

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 504 if self.timed_out else 503

    @property
    def error_code(self) -> str:  # type: ignore[override]
        return "upstream_timeout" if self.timed_out else "upstream_unavailable"

    @property
    def public_message(self) -> str:  # type: ignore[override]
        if self.timed_out:
            return "The request took too long to process. Please try again."
        return "Unable to reach the AI service. Please try again later."


class RateLimitExceededError(RecruiterException):
    """Raised when a client exceeds the admission gate's ceiling.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, limit: int, window_seconds: float, retry_after: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded. Maximum {limit} requests per "
            f"{window_seconds:g} seconds."
        )

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message
