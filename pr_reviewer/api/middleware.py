"""HTTP middleware: request id, журнал запросов и таймаут."""

import asyncio
import time
import uuid

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pr_reviewer.core.config import settings
from pr_reviewer.core.logging import bind_request_id, clear_request_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def request_context_middleware(request: Request, call_next):
    """Присвоить запросу request_id и записать итог в лог."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    clear_request_context()
    bind_request_id(request_id)

    started = time.perf_counter()
    response = await call_next(request)

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


class RequestTimeoutMiddleware:
    """
    Ограничение времени обработки запроса.
    Обработчик выполняется в той же задаче, поэтому по истечении
    REQUEST_TIMEOUT отмена доходит до открытой транзакции и откатывает её.
    Ответ 504 отправляется, только если заголовки ответа ещё не ушли.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, send_wrapper), timeout=settings.REQUEST_TIMEOUT
            )
        except asyncio.TimeoutError:
            logger.error(
                "request_timeout",
                method=scope["method"],
                path=scope["path"],
                timeout=settings.REQUEST_TIMEOUT,
            )
            if response_started:
                raise
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"error": {"code": "TIMEOUT", "message": "request timed out"}},
            )
            await response(scope, receive, send)
