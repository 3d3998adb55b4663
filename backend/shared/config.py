"""
Shared configuration module for the package store.

Provides logging setup and the Firestore settings
used when wiring a PackageStoreConnector.
"""

import os
import sys
import logging
from typing import Optional


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure logging to send INFO and DEBUG to stdout, WARNING+ to stderr.

    Args:
        level: Minimum logging level (default: logging.INFO)
    """
    root_logger = logging.getLogger()

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Handler for INFO and DEBUG -> stdout
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)
    stdout_handler.setFormatter(formatter)

    # Handler for WARNING and above -> stderr
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)


logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_COLLECTION = "package"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


# Environment variable helpers for connectors
def get_optional_env_var(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get an environment variable, falling back to default when unset or empty."""
    value = os.getenv(key)
    return value if value else default


def get_package_collection() -> str:
    """
    Get the Firestore collection holding package documents.

    Returns:
        str: Collection name (defaults to "package")
    """
    return get_optional_env_var("PACKAGE_COLLECTION", DEFAULT_PACKAGE_COLLECTION)


def get_request_timeout() -> float:
    """
    Get the per-request Firestore timeout in seconds.

    Raises:
        ValueError: If FIRESTORE_TIMEOUT_SECONDS is not a positive number
    """
    raw = get_optional_env_var("FIRESTORE_TIMEOUT_SECONDS")
    if raw is None:
        return DEFAULT_REQUEST_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"Invalid FIRESTORE_TIMEOUT_SECONDS: {raw!r} is not a number")
    if timeout <= 0:
        raise ValueError(f"Invalid FIRESTORE_TIMEOUT_SECONDS: {timeout} must be greater than 0")
    return timeout
