"""
Logging service

Structured logging on top of loguru
"""
import sys
from pathlib import Path
from typing import Any

from loguru import logger


class LoggerService:
    """
    Logging service

    Usage:
        from rankfolio.core.logger import get_logger

        logger = get_logger(__name__)
        logger.info("backtest started")
        logger.warning("horizon skipped", horizon=4)
    """

    _configured: bool = False

    @classmethod
    def configure(
        cls,
        level: str = "INFO",
        log_dir: str = "./logs",
        log_format: str | None = None,
        file_enabled: bool = True,
        rotation: str = "10 MB",
        retention: str = "7 days",
    ) -> None:
        """
        Configure sinks

        Args:
            level: log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: directory for log files
            log_format: loguru format string (None uses the default)
            file_enabled: also write rotating log files
            rotation: rotation size for log files
            retention: how long rotated files are kept
        """
        if cls._configured:
            return

        logger.remove()

        if log_format is None:
            log_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            )

        logger.configure(extra={"name": "rankfolio"})

        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            colorize=True,
        )

        if file_enabled:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            logger.add(
                log_path / "rankfolio.log",
                format=log_format,
                level=level,
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
            )

            # errors only
            logger.add(
                log_path / "error.log",
                format=log_format,
                level="ERROR",
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
            )

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """Reset configuration (for tests)"""
        logger.remove()
        cls._configured = False


def get_logger(name: str) -> Any:
    """
    Return a logger bound to a module or class name

    Args:
        name: module name (usually __name__) or class name

    Returns:
        loguru logger instance
    """
    return logger.bind(name=name)


def setup_logger_from_config() -> None:
    """Initialise logging from the settings file"""
    try:
        from rankfolio.core.config import get_config

        config = get_config()
        logging_config = config.get_section("logging")

        LoggerService.configure(
            level=logging_config.get("level", "INFO"),
            log_dir=logging_config.get("log_dir", "./logs"),
            log_format=logging_config.get("format"),
            file_enabled=logging_config.get("file", {}).get("enabled", True),
            rotation=logging_config.get("file", {}).get("rotation", "10 MB"),
            retention=logging_config.get("file", {}).get("retention", "7 days"),
        )
    except Exception:
        # fall back to defaults when settings cannot be loaded
        LoggerService.configure()
