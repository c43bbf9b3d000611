"""Protocol definitions for working-context storage adapters."""
from __future__ import annotations

from workctx_runtime.protocols.context_store import ContextStore

__all__ = ["ContextStore"]
