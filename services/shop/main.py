from __future__ import annotations

import logging
import sys

from libs.python.http_core import run_server
from .config import Config
from .app.handlers import GREETING_PATH, build_handler

logger = logging.getLogger(__name__)


def main() -> None:
    cfg = Config()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler = build_handler(log_responses=cfg.log_responses)
    logger.info("serving GET %s (response logging %s)", GREETING_PATH, "on" if cfg.log_responses else "off")
    run_server(handler, cfg.port, host=cfg.host)


def cli() -> None:
    try:
        main()
    except Exception as exc:  # noqa: BLE001
        print(f"[shop] fatal error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - cli entry point
    cli()
