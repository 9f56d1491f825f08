"""Loguru sink setup for the CLI entry points."""

import sys
from pathlib import Path

from loguru import logger

from acheron.config.schema import Config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
MESSAGE_FORMAT = "[{time:YYYY-MM-DDTHH:mm:ss.SSSZZ}] {message}"


def _is_message_record(record: dict) -> bool:
    return bool(record["extra"].get("message_log"))


def _is_regular_record(record: dict) -> bool:
    return not record["extra"].get("message_log")


def setup_logging(config: Config, verbose: bool = False) -> Path:
    """
    Replace loguru's default sink with Acheron's sinks.

    - stderr, at DEBUG when verbose, otherwise at the configured level
    - ``acheron.log`` in the log dir, rotated by size
    - ``messages.log``, one line per inbound text, fed by records
      bound with ``message_log=True``

    Returns:
        The log directory.
    """
    level = "DEBUG" if verbose else config.logging.level.upper()
    log_dir = config.log_path
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, filter=_is_regular_record)
    logger.add(
        log_dir / "acheron.log",
        level=level,
        rotation=config.logging.rotation,
        encoding="utf-8",
        filter=_is_regular_record,
    )

    if config.logging.message_log:
        logger.add(
            log_dir / "messages.log",
            level="INFO",
            format=MESSAGE_FORMAT,
            rotation=config.logging.rotation,
            encoding="utf-8",
            filter=_is_message_record,
        )

    logger.debug(f"Logging to {log_dir}")
    return log_dir
