from __future__ import annotations

import logging


class CleanFormatter(logging.Formatter):
    """Console formatter: bare messages for INFO, markers for the rest."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno == logging.INFO:
            return message
        if record.levelno >= logging.ERROR:
            return f"❌ {message}"
        if record.levelno == logging.DEBUG:
            return f"🔍 {message}"
        return f"{record.levelname}: {message}"


def setup_logging(verbose: bool = False, *, quiet: bool = False) -> None:
    """Configure root logging for the CLI.

    ``verbose`` shows DEBUG records (resolution probes included); ``quiet``
    limits output to warnings and errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(CleanFormatter())
    logging.basicConfig(level=level, handlers=[console_handler], force=True)
