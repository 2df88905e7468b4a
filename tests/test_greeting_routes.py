from __future__ import annotations

import json
import logging
import re

import pytest

from libs.python.http_core import HttpRequest, HttpResponse, RequestContext, Route
from services.shop.app.handlers import GREETING_TEXT, RequestProcessor, RoutingHandler, build_handler, build_pipeline

HANDLER_LOGGER = "services.shop.app.handlers"


def _make_request(method: str, target: str) -> HttpRequest:
    return HttpRequest(
        method=method,
        target=target,
        path=target,
        query="",
        headers={},
        body=b"",
        client=("127.0.0.1", 0),
    )


def test_get_greeting_returns_hello_world() -> None:
    processor = build_handler()

    response = processor.handle(_make_request("GET", "/shop/greeting"))

    assert response.status == 200
    assert response.body == b"Hello World"
    assert len(response.body) == 11
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert response.headers["Content-Length"] == "11"


def test_repeated_requests_yield_identical_responses() -> None:
    processor = build_handler()

    responses = [processor.handle(_make_request("GET", "/shop/greeting")) for _ in range(25)]

    first = responses[0]
    for response in responses:
        assert (response.status, response.headers, response.body) == (first.status, first.headers, first.body)


def test_responses_are_not_shared_between_requests() -> None:
    processor = build_handler()

    first = processor.handle(_make_request("GET", "/shop/greeting"))
    first.headers["X-Mutated"] = "yes"
    second = processor.handle(_make_request("GET", "/shop/greeting"))

    assert first is not second
    assert "X-Mutated" not in second.headers


@pytest.mark.parametrize(
    "path",
    ["/shop/greeting/", "/Shop/Greeting", "/shop/greetings", "/shop", "/other", "/"],
)
def test_unmatched_paths_are_not_found(path: str) -> None:
    processor = build_handler()

    response = processor.handle(_make_request("GET", path))

    assert response.status == 404
    assert json.loads(response.body.decode()) == {"error": "Not Found"}


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
def test_other_methods_are_not_allowed(method: str) -> None:
    processor = build_handler()

    response = processor.handle(_make_request(method, "/shop/greeting"))

    assert response.status == 405
    assert response.headers["Allow"] == "GET, HEAD"


def test_head_reports_greeting_length() -> None:
    processor = build_handler()

    response = processor.handle(_make_request("HEAD", "/shop/greeting"))

    assert response.status == 200
    assert response.headers["Content-Length"] == "11"


def test_response_line_logged_when_enabled(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=HANDLER_LOGGER)
    processor = build_handler(log_responses=True)

    processor.handle(_make_request("GET", "/shop/greeting"))
    processor.handle(_make_request("GET", "/shop/greeting"))

    lines = [r.getMessage() for r in caplog.records if r.name == HANDLER_LOGGER]
    assert lines == [f"Response: {GREETING_TEXT}", f"Response: {GREETING_TEXT}"]


def test_response_line_not_logged_by_default(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=HANDLER_LOGGER)
    processor = build_handler()

    processor.handle(_make_request("GET", "/shop/greeting"))

    assert not [r for r in caplog.records if r.getMessage().startswith("Response:")]


def test_unmatched_requests_are_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=HANDLER_LOGGER)
    processor = build_handler(log_responses=True)

    processor.handle(_make_request("GET", "/other"))
    processor.handle(_make_request("POST", "/shop/greeting"))

    assert not [r for r in caplog.records if r.getMessage().startswith("Response:")]


def test_route_exception_becomes_internal_server_error(caplog: pytest.LogCaptureFixture) -> None:
    def explode(_: RequestContext) -> HttpResponse:
        raise RuntimeError("boom")

    processor = build_pipeline([Route("explode", re.compile(r"^/explode$"), {"GET"}, explode)])

    with caplog.at_level(logging.ERROR, logger=HANDLER_LOGGER):
        response = processor.handle(_make_request("GET", "/explode"))

    assert response.status == 500
    assert json.loads(response.body.decode()) == {"error": "Internal Server Error"}
    assert any("explode" in r.getMessage() for r in caplog.records)


def test_chain_without_terminal_handler_reports_unhandled_request() -> None:
    routing = RoutingHandler([Route("greeting", re.compile(r"^/shop/greeting$"), {"GET"}, lambda c: HttpResponse(200))])
    processor = RequestProcessor(routing)

    response = processor.handle(_make_request("GET", "/shop/greeting"))

    assert response.status == 500
    assert json.loads(response.body.decode()) == {"error": "Unhandled request"}
