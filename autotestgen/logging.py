"""Logging utilities for autotestgen commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "autotestgen"


class ComponentFormatter(logging.Formatter):
    """Prefixes each message with the component that logged it (``watcher``, ``llm.openai``...)."""

    def format(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(f"{_LOGGER_NAME}."):
            record.component = name[len(_LOGGER_NAME) + 1 :]
        else:
            record.component = "main"
        return super().format(record)


CONSOLE_FORMAT = "[autotestgen:%(component)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(component)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the autotestgen hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send autotestgen records to the console and, when given, append them to ``log_file``.

    The file sink always records DEBUG so a long watch session can be
    inspected afterwards without rerunning in verbose mode.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.propagate = False

    # main() may run several times in one process (tests, the interactive menu).
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(console_level)
    stream_handler.setFormatter(ComponentFormatter(CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(ComponentFormatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    return logger


__all__ = ["ComponentFormatter", "configure_logging", "get_logger"]
