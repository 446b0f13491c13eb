from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """Configure the root logger once per process.

    ``json`` emits one JSON object per line, for log shippers; anything else
    uses the plain text format.
    """
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter(_TEXT_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    # urllib3 logs every connection it opens.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(str(level).upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO
