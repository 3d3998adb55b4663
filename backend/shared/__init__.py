"""Shared utilities package for config and logging setup."""

from .config import (
    configure_logging,
    get_optional_env_var,
    get_package_collection,
    get_request_timeout,
)

__all__ = [
    "configure_logging",
    "get_optional_env_var",
    "get_package_collection",
    "get_request_timeout",
]
