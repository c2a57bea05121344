"""Module entrypoint for running the invoice API server."""

from __future__ import annotations

import logging
import os
import sys

from .config import LOG_LEVEL
from .server import DependencyError, run


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.getenv("FACTURA_HOST", "0.0.0.0")
    port = int(os.getenv("FACTURA_PORT", "8080"))
    try:
        run(host, port)
    except DependencyError as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
