"""Console logging setup for the service process."""

from __future__ import annotations

import logging
import sys

from bonsai_auth.core.settings import Settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(application)s] %(name)s: %(message)s"


class _ApplicationFilter(logging.Filter):
    """Stamp every record with the application name."""

    def __init__(self, application: str) -> None:
        super().__init__()
        self._application = application

    def filter(self, record: logging.LogRecord) -> bool:
        record.application = self._application
        return True


class ConsoleHandler(logging.StreamHandler):
    """Stdout handler installed by `configure_logging`."""

    def __init__(self, application: str) -> None:
        super().__init__(sys.stdout)
        self.setFormatter(logging.Formatter(_LOG_FORMAT))
        self.addFilter(_ApplicationFilter(application))


def configure_logging(config: Settings) -> None:
    """Route all log records to stdout at the configured level.

    Calling this more than once replaces the previously installed handler.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, ConsoleHandler):
            root.removeHandler(handler)
            handler.close()

    root.addHandler(ConsoleHandler(config.app_name))
    root.setLevel(config.log_level.upper())
