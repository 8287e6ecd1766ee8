"""OpenAI chat-completions provider.

Works with the OpenAI API and any endpoint that speaks the same
``/chat/completions`` protocol.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from recruiter.app.core.logging import get_logger
from recruiter.app.exceptions import TransientError, UpstreamError
from recruiter.app.providers.base import BaseProvider

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """OpenAI API provider with an enforced per-request deadline."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        organization: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.organization = organization

        if organization:
            self.headers["OpenAI-Organization"] = organization

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST ``payload`` to ``/chat/completions`` and return the JSON body.

        The whole exchange runs under ``asyncio.wait_for``; when the deadline
        passes the in-flight request is cancelled, which releases its pooled
        connection.
        """
        try:
            return await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TransientError(e, timeout=True) from e

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self._get_endpoint_url("/chat/completions")

        async with self._client_context() as client:
            try:
                resp = await client.post(url, headers=self.headers, json=payload)
            except httpx.TimeoutException as e:
                raise TransientError(e, timeout=True) from e
            except httpx.TransportError as e:
                # DNS resolution, refused or reset connections, protocol errors
                raise TransientError(e) from e

        if resp.is_error:
            logger.error(
                f"Completion API returned {resp.status_code}",
                extra={"status_code": resp.status_code},
            )
            raise UpstreamError(resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(resp.status_code, "response body is not valid JSON") from e
