"""Loguru sinks and structured log helpers."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "asyncio",
    "trafilatura",
    "readabilipy",
)


def configure_logging(
    level: str = "INFO",
    *,
    log_dir: str = "",
    noisy_level: str = "WARNING",
) -> None:
    """Install the stderr sink (and an optional daily file sink)."""
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level.upper(),
        colorize=True,
    )

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        logger.add(
            path / "websearch_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",  # New file at midnight
            retention="7 days",
            compression="zip",
        )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level.upper())


def log_model_attempt(
    model: str,
    *,
    caller: str,
    tokens: int = 0,
    duration_ms: int = 0,
    num_ctx: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """Record one generation attempt; failures are logged as warnings."""
    record = {
        "at": datetime.now(timezone.utc).isoformat(),
        "model": model,
        "caller": caller,
        "tokens": tokens,
        "duration_ms": duration_ms,
        "num_ctx": num_ctx,
        "ok": error is None,
    }
    if error is None:
        logger.info(f"MODEL_CALL: {record}")
    else:
        logger.warning(f"MODEL_CALL_FAILED: {record} error={error}")


def log_event(event_type: str, message: str, **fields) -> None:
    logger.info(f"EVENT[{event_type}]: {message} {fields}" if fields else f"EVENT[{event_type}]: {message}")
