"""Request body size limit middleware.

Rejects bodies larger than the configured limit with a JSON 413, both when
the client declares ``Content-Length`` and when it streams a chunked body.
"""

import json

from starlette.types import Message, Receive, Scope, Send

from recruiter.app.exceptions import PayloadTooLargeError


class BodyTooLargeError(Exception):
    """Raised from the wrapped receive callable once the limit is passed."""


class SizeLimitedReceive:
    """ASGI receive wrapper that counts body bytes as they arrive."""

    def __init__(self, receive: Receive, max_size: int):
        self._receive = receive
        self._max_size = max_size
        self._bytes_read = 0

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            self._bytes_read += len(message.get("body", b""))
            if self._bytes_read > self._max_size:
                raise BodyTooLargeError(
                    f"Request body too large. Maximum allowed: {self._max_size} bytes"
                )
        return message


class RequestSizeLimitMiddleware:
    """Raw ASGI middleware enforcing ``max_body_size``.

    Usage:
        app.add_middleware(RequestSizeLimitMiddleware, max_body_size=2 * 1024 * 1024)
    """

    def __init__(self, app, max_body_size: int = 2 * 1024 * 1024):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        for name, value in scope.get("headers", []):
            if name.lower() == b"content-length":
                try:
                    declared = int(value.decode())
                except ValueError:
                    break
                if declared > self.max_body_size:
                    await self._send_413(send)
                    return
                break

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, SizeLimitedReceive(receive, self.max_body_size), tracking_send)
        except BodyTooLargeError:
            if response_started:
                raise
            await self._send_413(send)

    async def _send_413(self, send: Send) -> None:
        error = PayloadTooLargeError(self.max_body_size)
        body = json.dumps(
            {"error": error.error_code, "message": error.public_message, "detail": error.message}
        ).encode()

        await send(
            {
                "type": "http.response.start",
                "status": 413,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
