"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings
from .exceptions import (
    ClientCommandError,
    ContainerExitedError,
    ContainerStartError,
    HarnessError,
    ReadinessError,
    ReadinessTimeoutError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "HarnessError",
    "ContainerStartError",
    "ReadinessError",
    "ReadinessTimeoutError",
    "ContainerExitedError",
    "ClientCommandError",
    "get_logger",
    "setup_logging",
]
