"""
Per-request diagnostics: SQL statement counting and response timing.

``install_query_counter`` hooks an engine; ``RequestMetricsMiddleware``
opens a fresh ``RequestStats`` for each HTTP request, reports it in two
response headers and logs one line per request.
"""
import logging
import time
from contextvars import ContextVar
from dataclasses import dataclass, field

from sqlalchemy import event
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from minishop.config import settings

logger = logging.getLogger(__name__)

RESPONSE_TIME_HEADER = "X-Response-Time-Ms"
QUERY_COUNT_HEADER = "X-Query-Count"


@dataclass
class RequestStats:
    started: float = field(default_factory=time.perf_counter)
    queries: int = 0

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started) * 1000, 2)


_current_stats: ContextVar[RequestStats | None] = ContextVar("request_stats", default=None)


def install_query_counter(engine) -> None:
    """
    Count every statement *engine* sends to the database against the
    current request, selectinload follow-up SELECTs included.

    Call once per engine: the app engine in ``database.py`` and the test
    engine in ``conftest.py``.
    """

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _count_statement(conn, cursor, statement, parameters, context, executemany):
        stats = _current_stats.get()
        if stats is not None:
            stats.queries += 1


class RequestMetricsMiddleware:
    """
    Pure ASGI middleware. BaseHTTPMiddleware would run the endpoint in a
    child task whose ContextVar writes never reach this one.

    Responses get ``X-Response-Time-Ms`` (time until the response
    started) and ``X-Query-Count``. Requests slower than
    ``settings.SLOW_REQUEST_MS`` are logged as warnings.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        stats = RequestStats()
        token = _current_stats.set(stats)

        async def send_with_metrics(message: Message) -> None:
            if message["type"] == "http.response.start":
                elapsed = stats.elapsed_ms()
                headers = MutableHeaders(scope=message)
                headers.append(RESPONSE_TIME_HEADER, str(elapsed))
                headers.append(QUERY_COUNT_HEADER, str(stats.queries))
                level = logging.WARNING if elapsed >= settings.SLOW_REQUEST_MS else logging.INFO
                logger.log(
                    level,
                    "%s %s -> %d (%.2f ms, %d queries)",
                    scope["method"],
                    scope["path"],
                    message["status"],
                    elapsed,
                    stats.queries,
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_metrics)
        finally:
            _current_stats.reset(token)
