# common/logging_config.py
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(service_name: str) -> logging.Logger:
    """
    Configure root logging from LOG_LEVEL once per process.

    Returns the service's logger.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
    return logging.getLogger(service_name)
