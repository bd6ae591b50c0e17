# file: HIVE/core/logger.py
import logging

import google.cloud.logging

from HIVE.core.config import ENABLE_CLOUD_LOGGING, LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(cloud: bool = ENABLE_CLOUD_LOGGING) -> None:
    """
    Route stdlib logging to Google Cloud Logging, or to stdout when running locally.
    """
    if cloud:
        client = google.cloud.logging.Client()
        client.setup_logging(log_level=getattr(logging, LOG_LEVEL, logging.INFO))
        return

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
    )


def log_to_cloud(category: str, severity: str, message: str, metadata: dict = None):
    logging.log(
        getattr(logging, severity.upper(), logging.INFO),
        f"[{category}] {message}",
        extra={"metadata": metadata or {}}
    )
