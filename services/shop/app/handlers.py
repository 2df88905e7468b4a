from __future__ import annotations

import json
import logging
import re
from http import HTTPStatus
from typing import Dict, Iterable, Optional

from libs.python.http_core import (
    Handler,
    HttpRequest,
    HttpResponse,
    RequestContext,
    Route,
    make_text_response,
)

GREETING_PATH = "/shop/greeting"
GREETING_TEXT = "Hello World"

logger = logging.getLogger(__name__)


def make_json_response(status: HTTPStatus | int, data: Dict[str, str]) -> HttpResponse:
    body = json.dumps(data).encode()
    headers = {
        "Content-Type": "application/json",
        "Content-Length": str(len(body)),
    }
    return HttpResponse(int(status), headers, body)


def json_error(status: HTTPStatus | int, message: str, *, extra_headers: Optional[Dict[str, str]] = None) -> HttpResponse:
    resp = make_json_response(status, {"error": message})
    if extra_headers:
        resp.headers.update(extra_headers)
    return resp


def not_found() -> HttpResponse:
    return json_error(HTTPStatus.NOT_FOUND, "Not Found")


class AbstractHandler(Handler):
    def __init__(self) -> None:
        self._next: Optional[Handler] = None

    def set_next(self, handler: Handler) -> Handler:
        self._next = handler
        return handler

    def _handle_next(self, ctx: RequestContext) -> HttpResponse:
        if self._next is None:
            if ctx.response is None:
                ctx.response = json_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Unhandled request")
            return ctx.response
        return self._next.handle(ctx)


class ErrorHandler(AbstractHandler):
    def handle(self, ctx: RequestContext) -> HttpResponse:  # noqa: D401
        try:
            return self._handle_next(ctx)
        except Exception:  # noqa: BLE001
            logger.exception("route %s failed", ctx.route.name if ctx.route else ctx.request.path)
            ctx.response = json_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")
            return ctx.response


class RoutingHandler(AbstractHandler):
    """Match the request path against the route table.

    Paths are matched exactly by each route's pattern. A path that matches
    but with a method the route does not accept gets ``405`` with an
    ``Allow`` header; anything else gets ``404``.
    """

    def __init__(self, routes: Iterable[Route]) -> None:
        super().__init__()
        self._routes = list(routes)

    def handle(self, ctx: RequestContext) -> HttpResponse:  # noqa: D401
        path = ctx.request.path
        request_method = ctx.request.method
        is_head = request_method == "HEAD"
        for route in self._routes:
            match = route.pattern.match(path)
            if not match:
                continue
            ctx.route = route
            ctx.params = match.groupdict()
            allowed = set(route.methods)
            if "GET" in route.methods:
                allowed.add("HEAD")
            method_to_check = "GET" if is_head and "GET" in route.methods else request_method
            if method_to_check not in route.methods:
                headers = {"Allow": ", ".join(sorted(allowed))}
                ctx.response = json_error(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed", extra_headers=headers)
                return ctx.response
            return self._handle_next(ctx)
        ctx.response = not_found()
        return ctx.response


class HeadHandler(AbstractHandler):
    def handle(self, ctx: RequestContext) -> HttpResponse:  # noqa: D401
        if ctx.request.method != "HEAD":
            return self._handle_next(ctx)
        if ctx.route is None:
            return self._handle_next(ctx)

        original_method = ctx.request.method
        ctx.request.method = "GET"
        try:
            response = self._handle_next(ctx)
        finally:
            ctx.request.method = original_method
        return response


class DispatchHandler(AbstractHandler):
    def handle(self, ctx: RequestContext) -> HttpResponse:  # noqa: D401
        if ctx.route is None:
            ctx.response = not_found()
            return ctx.response
        ctx.response = ctx.route.handler(ctx)
        return ctx.response


class RequestProcessor:
    """Facade executed by the manual HTTP server."""

    def __init__(self, entry: Handler) -> None:
        self._entry = entry

    def handle(self, request: HttpRequest) -> HttpResponse:
        ctx = RequestContext(request=request)
        response = self._entry.handle(ctx)
        response.ensure_content_length()
        return response


def build_pipeline(routes: Iterable[Route]) -> RequestProcessor:
    routes = list(routes)

    error_handler = ErrorHandler()
    routing_handler = RoutingHandler(routes)
    head_handler = HeadHandler()
    dispatch_handler = DispatchHandler()

    error_handler.set_next(routing_handler)
    routing_handler.set_next(head_handler)
    head_handler.set_next(dispatch_handler)

    return RequestProcessor(error_handler)


def build_handler(log_responses: bool = False) -> RequestProcessor:
    def handle_greeting(_: RequestContext) -> HttpResponse:
        response = make_text_response(HTTPStatus.OK, GREETING_TEXT)
        if log_responses:
            logger.info("Response: %s", GREETING_TEXT)
        return response

    routes: list[Route] = [
        Route("greeting", re.compile(rf"^{re.escape(GREETING_PATH)}$"), {"GET"}, handle_greeting),
    ]
    return build_pipeline(routes)


__all__ = [
    "GREETING_PATH",
    "GREETING_TEXT",
    "RequestProcessor",
    "build_handler",
    "build_pipeline",
]
