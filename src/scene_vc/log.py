"""Logging setup for scene-vc."""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "scene_vc"

_configured = False


def _level(value: Union[int, str]) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    console_level: Union[int, str, None] = None,
) -> logging.Logger:
    """Attach a rich console handler (and optionally a file) to the package logger.

    Only the first call installs handlers; later calls are no-ops.
    """
    global _configured

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _configured:
        return logger

    level = _level(level)
    console_level = level if console_level is None else _level(console_level)
    logger.setLevel(min(level, console_level))

    console_handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=True
    )
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s %(levelname)s %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Could not open log file %s: %s", log_file, e)

    logger.propagate = False
    _configured = True
    return logger
