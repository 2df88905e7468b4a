from __future__ import annotations

import os
import urllib.error
import urllib.request

from services.shop.app.handlers import GREETING_PATH, GREETING_TEXT
from services.shop.config import Config


def probe(host: str, port: int, timeout: float) -> bool:
    url = f"http://{host}:{port}{GREETING_PATH}"
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:
            return resp.getcode() == 200 and resp.read().decode() == GREETING_TEXT
    except (urllib.error.URLError, OSError):
        return False


def main() -> None:
    host = os.environ.get("PROBE_HOST", "127.0.0.1")
    timeout = float(os.environ.get("PROBE_TIMEOUT", "2"))
    port = Config().port

    if not probe(host, port, timeout):
        raise SystemExit(f"no greeting from {host}:{port}{GREETING_PATH}")


if __name__ == "__main__":
    main()
