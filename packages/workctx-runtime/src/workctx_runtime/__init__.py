"""workctx runtime: context stores, retention policy, prompt injection, capture."""
from __future__ import annotations

from workctx_runtime.builder import RuntimeBuilder
from workctx_runtime.capture import (
    AgentEvent,
    CaptureResult,
    CaptureStatus,
    ContextCapture,
)
from workctx_runtime.context import WorkctxRuntime
from workctx_runtime.injection import (
    estimate_tokens,
    format_for_system_prompt,
    make_char_estimator,
    select_within_budget,
)
from workctx_runtime.manager import WorkingContextManager
from workctx_runtime.protocols import ContextStore
from workctx_runtime.session_types import session_type_for_key

__all__ = [
    "AgentEvent",
    "CaptureResult",
    "CaptureStatus",
    "ContextCapture",
    "ContextStore",
    "RuntimeBuilder",
    "WorkctxRuntime",
    "WorkingContextManager",
    "estimate_tokens",
    "format_for_system_prompt",
    "make_char_estimator",
    "select_within_budget",
    "session_type_for_key",
]
