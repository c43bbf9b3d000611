"""workctx core: shared types, config, errors, and logging."""
from __future__ import annotations

from workctx_core._version import __version__
from workctx_core.config import (
    BackendConfig,
    LoggingConfig,
    WorkctxConfig,
    WorkingContextConfig,
)
from workctx_core.errors import (
    BackendError,
    ConfigError,
    EntryError,
    EntryQueryError,
    EntryValidationError,
    StoreInUseError,
    WorkctxError,
)
from workctx_core.logging import get_logger, setup_logging, setup_logging_from
from workctx_core.types import (
    ContextEntry,
    CreateEntryInput,
    ManagerConfig,
    RecentQuery,
    SessionType,
)

__all__ = [
    # Config
    "BackendConfig",
    # Errors
    "BackendError",
    "ConfigError",
    # Types
    "ContextEntry",
    "CreateEntryInput",
    "EntryError",
    "EntryQueryError",
    "EntryValidationError",
    "LoggingConfig",
    "ManagerConfig",
    "RecentQuery",
    "SessionType",
    "StoreInUseError",
    "WorkctxConfig",
    "WorkctxError",
    "WorkingContextConfig",
    # Version
    "__version__",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from",
]
