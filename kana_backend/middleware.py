"""ASGI middlewares: request id, body size limit, access log, panic recovery."""
from __future__ import annotations

import logging
import sqlite3
import uuid

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import DEFAULT_MAX_REQUEST_SIZE
from .logs import RequestLogContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PAYLOAD_TOO_LARGE_BODY = {"error": "request body too large"}


def get_request_id(scope: Scope) -> str:
    return (scope.get("state") or {}).get("request_id", "")


class RequestIdMiddleware:
    """Reuse the caller's X-Request-ID or mint one; echo it on the response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: Message):
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_id)


class _PayloadTooLarge(Exception):
    pass


class RequestSizeLimitMiddleware:
    """Reject request bodies larger than `max_size` bytes with 413.

    A declared Content-Length over the limit is refused up front; otherwise the
    body stream is counted as it is read and aborted once it crosses the limit.
    """

    def __init__(self, app: ASGIApp, max_size: int = DEFAULT_MAX_REQUEST_SIZE):
        self.app = app
        self.max_size = max_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_size:
            await JSONResponse(PAYLOAD_TOO_LARGE_BODY, status_code=413)(scope, receive, send)
            return

        received = 0
        started = False

        async def bounded_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_size:
                    raise _PayloadTooLarge()
            return message

        async def track_send(message: Message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, bounded_receive, track_send)
        except _PayloadTooLarge:
            if started:
                raise
            await JSONResponse(PAYLOAD_TOO_LARGE_BODY, status_code=413)(scope, receive, send)


class AccessLogMiddleware:
    """Log every request and record it in the request_log table."""

    def __init__(self, app: ASGIApp, persist: bool = True):
        self.app = app
        self.persist = persist

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        ctx = RequestLogContext(scope["method"], scope["path"], get_request_id(scope) or None)
        ctx.set_query(scope.get("query_string", b"").decode("latin-1"))
        client = scope.get("client")
        ctx.set_client(client[0] if client else None, headers.get("user-agent"))
        status = 500

        async def capture_status(message: Message):
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        err = None
        try:
            await self.app(scope, receive, capture_status)
        except Exception as e:
            err = str(e)
            raise
        finally:
            logger.info(
                f"HTTP request request_id={ctx.request_id} method={ctx.method} path={ctx.path} "
                f"query={ctx.query or ''} status={status} duration_ms={ctx.elapsed_ms()} ip={ctx.client_ip}"
            )
            if self.persist:
                try:
                    await run_in_threadpool(ctx.write, status, err)
                except sqlite3.Error as e:
                    logger.warning(f"request_log write failed: {e}")


class RecoveryMiddleware:
    """Turn unhandled exceptions into a 500 JSON response and log them."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def track_send(message: Message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, track_send)
        except Exception:
            logger.exception(
                f"panic recovered request_id={get_request_id(scope)} method={scope['method']} path={scope['path']}"
            )
            if started:
                raise
            await JSONResponse({"error": "internal server error"}, status_code=500)(scope, receive, send)
