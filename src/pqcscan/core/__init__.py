"""Core module - configuration, logging, and interfaces."""

from pqcscan.core.config import Settings, get_settings
from pqcscan.core.exceptions import (
    PQCScanError,
    FetchError,
    ToolError,
    ClassificationError,
    IntegrationError,
    PersistenceError,
    JobStateError,
)

__all__ = [
    "Settings",
    "get_settings",
    "PQCScanError",
    "FetchError",
    "ToolError",
    "ClassificationError",
    "IntegrationError",
    "PersistenceError",
    "JobStateError",
]
