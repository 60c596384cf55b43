# attendance_hub/core/logging_config.py
import logging

from attendance_hub.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.

    The level defaults to `LOG_LEVEL` from settings. Calling this more than
    once only adjusts the level of the already configured root logger.
    """
    resolved = (level or get_settings().LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    root.setLevel(resolved)
