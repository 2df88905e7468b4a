from __future__ import annotations

"""HTTP primitives shared by the socket server and the service handlers.

Services build their routes out of :class:`Route` objects and answer with
:class:`HttpResponse` instances; the server in :mod:`.server` owns parsing
and serialization.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Pattern, Tuple

TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass(slots=True)
class HttpRequest:
    """Represents an HTTP/1.1 request received by the server."""

    method: str
    target: str
    path: str
    query: str
    headers: Dict[str, str]
    body: bytes
    client: Optional[Tuple[str, int]] = None


@dataclass(slots=True)
class HttpResponse:
    """Represents an HTTP/1.1 response produced by the handlers."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def ensure_content_length(self) -> None:
        """Guarantee the ``Content-Length`` header is present."""

        if "Content-Length" not in self.headers:
            self.headers["Content-Length"] = str(len(self.body))


def make_text_response(status: int, text: str) -> HttpResponse:
    body = text.encode("utf-8")
    headers = {
        "Content-Type": TEXT_PLAIN,
        "Content-Length": str(len(body)),
    }
    return HttpResponse(int(status), headers, body)


class Handler:
    """Chain-of-responsibility handler interface."""

    def set_next(self, handler: "Handler") -> "Handler":
        raise NotImplementedError

    def handle(self, ctx: "RequestContext") -> HttpResponse:
        raise NotImplementedError


@dataclass(slots=True)
class RequestContext:
    """Per-request state passed across the handler chain."""

    request: HttpRequest
    response: Optional[HttpResponse] = None
    route: Optional["Route"] = None
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Route:
    """Metadata describing a single HTTP route."""

    name: str
    pattern: Pattern[str]
    methods: set[str]
    handler: Callable[["RequestContext"], HttpResponse]


__all__ = [
    "Handler",
    "HttpRequest",
    "HttpResponse",
    "RequestContext",
    "Route",
    "TEXT_PLAIN",
    "make_text_response",
]
