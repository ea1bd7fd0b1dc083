import sys
import logging
from typing import Any, Optional

from loguru import logger

from src.config.settings import AppSettings

SENSITIVE_KEYS = ["key", "token", "password", "secret"]


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:4] + "****" + value[-4:]
    return "********"


def make_sensitive_data_filter(discord_token: Optional[str] = None):
    """Builds a loguru filter that masks secrets in log records."""

    def sensitive_data_filter(record: dict[str, Any]) -> bool:
        extra = record.get("extra")
        if isinstance(extra, dict):
            for extra_key, extra_value in extra.items():
                if any(sk in extra_key.lower() for sk in SENSITIVE_KEYS) and isinstance(
                    extra_value, str
                ):
                    extra[extra_key] = _mask(extra_value)

        # The token itself must never reach a sink, whatever the message says
        if discord_token and discord_token in record["message"]:
            record["message"] = record["message"].replace(discord_token, "********")

        return True  # Keep the record after filtering/masking

    return sensitive_data_filter


class InterceptHandler(logging.Handler):
    """Routes standard logging records (discord.py, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(settings: AppSettings) -> None:
    """Configures Loguru logger based on application settings."""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,  # Locals may include the bot token
        filter=make_sensitive_data_filter(settings.discord_token),
    )

    logger.info(f"Logging initialized with level: {settings.log_level}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # discord.py is chatty at DEBUG; keep gateway noise at INFO and above
    logging.getLogger("discord").setLevel(logging.INFO)
    logger.info("Standard logging intercepted.")
