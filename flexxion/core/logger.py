from __future__ import annotations

import logging

from .config import get_log_level


class LevelColorFormatter(logging.Formatter):
    """Colours the whole record according to its level."""

    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    fmt = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + fmt + reset,
        logging.INFO: grey + fmt + reset,
        logging.WARNING: yellow + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset,
    }

    def format(self, record: logging.LogRecord) -> str:
        formatter = logging.Formatter(self.FORMATS.get(record.levelno, self.fmt))
        return formatter.format(record)


def setup_logging() -> logging.Logger:
    log = logging.getLogger("flexxion")
    log.setLevel(get_log_level())
    # idempotent: the app factory may run more than once under tests
    if not any(getattr(h, "_flexxion", False) for h in log.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(LevelColorFormatter())
        handler._flexxion = True  # type: ignore[attr-defined]
        log.addHandler(handler)
    return log
