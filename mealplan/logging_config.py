"""
Logging setup for the shopping-list service and its scripts.

Modules log with `logger = logging.getLogger(__name__)` and pass context as
`extra={"shopping_list_id": ..., "item_count": ...}`. `ContextFormatter`
appends those fields to the line as `key=value` pairs, so a plain stdout
handler still shows which list or recipe a message is about.
"""

import logging
import sys

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

QUIET_LOGGERS: tuple[str, ...] = ("werkzeug", "flask_limiter")


class ContextFormatter(logging.Formatter):
    """Formatter that renders `extra` context after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        return f"{line} | {pairs}"


def configure_logging(level: str = "INFO", stream=None) -> logging.Handler:
    """Install a single context-aware handler on the root logger.

    Safe to call again (e.g. from a script after the app module configured
    logging): the previous handler is replaced, not duplicated.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ContextFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    ))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
