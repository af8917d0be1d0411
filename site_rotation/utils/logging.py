"""
Log output for the ``site-rotation`` commands.

Each CLI command calls ``configure_logging`` once, right after the config is
loaded and before the state database is opened. Everything else logs through
``logging.getLogger(__name__)`` and leaves handler setup alone.

Records are written to stderr and, when ``log_file`` is set, appended to that
file. Command results are echoed to stdout, so ``export --out -`` can be piped
into another program without log lines mixed in.

With ``json_format = true`` each record becomes one JSON line::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING",
     "logger": "site_rotation.history.transfer",
     "msg": "Skipping history element #3: missing pointId."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from site_rotation.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``, ``extra=`` keys."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": created.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(
            (key, val)
            for key, val in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig", debug: bool = False) -> int:
    """Install the stderr (and optional file) handlers on the root logger.

    Args:
        config: The ``[logging]`` section of ``AppConfig``.
        debug:  ``AppConfig.debug``; forces ``DEBUG`` regardless of
                ``config.level``.

    Returns:
        The effective numeric log level.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level.upper(), logging.WARNING)
    formatter: logging.Formatter = (
        _JsonFormatter() if config.json_format else logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    return level
