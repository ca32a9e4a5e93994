import logging

from .settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure application-wide logging from settings.

    The format includes timestamp, log level, logger name, and message.
    """
    level = getattr(logging, settings.MARATHON_LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # Keep uvicorn output at the same level as the application.
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(level)
