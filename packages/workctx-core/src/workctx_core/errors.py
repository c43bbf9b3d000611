from __future__ import annotations


class WorkctxError(Exception):
    """Base exception for all workctx errors."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(WorkctxError):
    """Invalid or missing configuration."""


# ── Entry Errors ─────────────────────────────────────────────────────

class EntryError(WorkctxError):
    """Base for context-entry errors."""


class EntryValidationError(EntryError):
    """Input for a new context entry is invalid."""


class EntryQueryError(EntryError):
    """Filter or limit passed to an entry query is invalid."""


# ── Backend Errors ───────────────────────────────────────────────────

class BackendError(WorkctxError):
    """Error from a store backend."""


class StoreInUseError(BackendError):
    """Another store in this process already holds the database open."""
