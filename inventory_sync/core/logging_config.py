# inventory_sync/core/logging_config.py
"""
Centralized logging configuration for the sync jobs.

This module configures logging levels to reduce noise from verbose libraries
while keeping job logs visible.
"""

import logging
import os


def configure_logging(log_level: str = None):
    """
    Configure logging for a job run.

    Sets appropriate log levels for different modules:
    - Job code: INFO (or DEBUG if LOG_LEVEL=DEBUG)
    - HTTP clients (urllib3, requests): WARNING only
    - Google API clients: WARNING only
    """

    # Get log level from environment, default to INFO
    log_level = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Quiet noisy HTTP client loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    # Quiet Google client loggers
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("google.auth").setLevel(logging.WARNING)
    logging.getLogger("google.cloud.pubsub_v1").setLevel(logging.WARNING)

    # Keep job loggers at configured level
    logging.getLogger("inventory_sync").setLevel(getattr(logging, log_level, logging.INFO))
    logging.getLogger("__main__").setLevel(getattr(logging, log_level, logging.INFO))

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at level: {log_level}")
