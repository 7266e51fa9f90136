"""Logging configuration for the application."""

import logging
import sys

from kontext.core.config import get_settings
from kontext.shared.context import get_request_id


class RequestIDLogFilter(logging.Filter):
    """Attach the current request ID (or "-") to every record as `request_id`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def setup_logging() -> None:
    """Configure application-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout; each line carries the request ID.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
        handlers=[handler],
    )
    # httpx logs every request at INFO; keep backend chatter at debug level.
    logging.getLogger("httpx").setLevel(logging.DEBUG if settings.debug else logging.WARNING)

