from __future__ import annotations

import threading
from typing import Iterator

import pytest

from libs.python.http_core import create_listener, serve
from services.shop.app.handlers import build_handler


@pytest.fixture
def live_port() -> Iterator[int]:
    """Serve the greeting pipeline on an ephemeral loopback port."""

    sock = create_listener(0, host="127.0.0.1")
    stop = threading.Event()
    thread = threading.Thread(target=serve, args=(sock, build_handler(), stop), daemon=True)
    thread.start()
    try:
        yield sock.getsockname()[1]
    finally:
        stop.set()
        thread.join(timeout=2)
        sock.close()
