"""Logging setup for the allocation engine and its sweeper process."""

import os
import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

# Client libraries that log every HTTP round trip to PostgREST
DATABASE_CLIENT_LOGGERS = ("httpx", "httpcore", "postgrest", "supabase")


class LoggingConfig:
    """Reads logging settings from the environment and installs one stdout handler."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_SERVICE_NAME = os.environ.get("LOG_SERVICE_NAME", "allocation-engine")
    LOG_DATABASE_CALLS = os.environ.get("LOG_DATABASE_CALLS", "false").lower() == "true"
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    @classmethod
    def setup_logging(cls, level: Optional[str] = None) -> None:
        """
        Configure the root logger.

        JSON records carry a "service" field so sweeper and API output can be
        told apart in the same log stream. Database client loggers stay at
        WARNING unless LOG_DATABASE_CALLS is set, in which case every RPC and
        table request is logged at DEBUG.
        """
        log_level = getattr(logging, (level or cls.LOG_LEVEL).upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.handlers.clear()

        # stdout so the host scheduler collects sweeper output
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

        if cls.LOG_FORMAT == "json":
            formatter = jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                timestamp=True,
                static_fields={"service": cls.LOG_SERVICE_NAME},
            )
        else:
            formatter = logging.Formatter(
                f"%(asctime)s - {cls.LOG_SERVICE_NAME} - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

        client_level = logging.DEBUG if cls.LOG_DATABASE_CALLS else logging.WARNING
        for name in DATABASE_CLIENT_LOGGERS:
            logging.getLogger(name).setLevel(client_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
