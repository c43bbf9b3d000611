"""T0 in-process backend: no persistence, for tests and throwaway runs."""
from __future__ import annotations

from workctx_runtime.backends.memory.context_store import InProcessContextStore

__all__ = ["InProcessContextStore"]
