import logging
import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# SQL statements executed while serving the current request.
query_count_var: ContextVar[int] = ContextVar("query_count", default=0)


def install_query_counter(engine) -> None:
    """Count every statement *engine* executes into ``query_count_var``."""

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _on_execute(conn, cursor, statement, parameters, context, executemany):
        query_count_var.set(query_count_var.get() + 1)


def _diagnostic_headers(elapsed_ms: float, queries: int) -> list[tuple[bytes, bytes]]:
    return [
        (b"x-response-time-ms", f"{elapsed_ms:.2f}".encode()),
        (b"x-query-count", str(queries).encode()),
    ]


class TimingMiddleware:
    """
    Stamp each HTTP response with its latency and SQL statement count.

    Written as plain ASGI rather than ``BaseHTTPMiddleware`` so the
    endpoint shares this coroutine's context and its counter updates
    are visible here.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        query_count_var.set(0)
        started = time.perf_counter()

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                elapsed_ms = (time.perf_counter() - started) * 1000
                queries = query_count_var.get()
                message["headers"] = [
                    *message.get("headers", []),
                    *_diagnostic_headers(elapsed_ms, queries),
                ]
                logger.debug(
                    "%s %s %s %.2fms queries=%d",
                    scope["method"], scope["path"], message["status"], elapsed_ms, queries,
                )
            await send(message)

        await self.app(scope, receive, send_with_headers)
