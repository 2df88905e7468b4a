"""Shared HTTP server primitives used across Python services."""

from .http import TEXT_PLAIN, Handler, HttpRequest, HttpResponse, RequestContext, Route, make_text_response
from .server import RequestHandler, create_listener, run_server, serve

__all__ = [
    "Handler",
    "HttpRequest",
    "HttpResponse",
    "RequestContext",
    "Route",
    "TEXT_PLAIN",
    "make_text_response",
    "RequestHandler",
    "create_listener",
    "run_server",
    "serve",
]
