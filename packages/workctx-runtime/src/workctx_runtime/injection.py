"""Budgeted selection and rendering of context entries for a system prompt.

Token costs are estimated from text length, not counted with a tokenizer.
Callers may rely on longer text never costing less, nothing stronger. The
estimator is a parameter everywhere a budget applies, so a real tokenizer
can replace it without touching the algorithms.
"""
from __future__ import annotations

import math
from collections.abc import Callable
from typing import TYPE_CHECKING

from workctx_core.types import MS_PER_MINUTE, now_ms

if TYPE_CHECKING:
    from collections.abc import Sequence

    from workctx_core.types import ContextEntry

TokenEstimator = Callable[[str], int]

CHARS_PER_TOKEN = 4
DEFAULT_MAX_TOKENS = 2000

HEADER = "## Working Context (recent activity)\n"
TRUNCATION_MARKER = "- ... (older entries truncated)"


def make_char_estimator(chars_per_token: float) -> TokenEstimator:
    """Build an estimator charging one token per ``chars_per_token`` chars."""
    if chars_per_token <= 0:
        raise ValueError("chars_per_token must be positive")

    def _estimate(text: str) -> int:
        return math.ceil(len(text) / chars_per_token)

    return _estimate


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def select_within_budget(
    entries: Sequence[ContextEntry],
    max_tokens: int,
    estimate: TokenEstimator = estimate_tokens,
) -> list[ContextEntry]:
    """Return the longest prefix of *entries* whose summaries fit *max_tokens*.

    *entries* must already be in priority order. The first entry is kept
    even when it alone is over budget, so a non-empty input never yields
    an empty result.
    """
    selected: list[ContextEntry] = []
    used = 0
    for entry in entries:
        cost = estimate(entry.summary)
        if selected and used + cost > max_tokens:
            break
        selected.append(entry)
        used += cost
    return selected


def format_relative_time(timestamp_ms: int, now: int) -> str:
    minutes = (now - timestamp_ms) // MS_PER_MINUTE
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_entry(entry: ContextEntry, now: int) -> str:
    """Render one entry as a markdown bullet, e.g.

    ``- [5m ago, DM [pinned]] (task: auth-refactor) Started auth refactor``
    """
    when = format_relative_time(entry.created_at, now)
    pin = " [pinned]" if entry.pinned else ""
    task = f" (task: {entry.task_id})" if entry.task_id else ""
    return f"- [{when}, {entry.session_type.label}{pin}]{task} {entry.summary}"


def format_for_system_prompt(
    entries: Sequence[ContextEntry],
    *,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    now: int | None = None,
    estimate: TokenEstimator = estimate_tokens,
) -> str:
    """Render *entries* as the working-context section of a system prompt.

    Returns an empty string for an empty list; callers omit the section
    in that case. Lines are emitted in the given order until the next one
    would overrun the budget left after the header, at which point a single
    truncation marker line is appended. The marker is not charged against
    the budget and emitted lines are never dropped to make room for it.
    The first entry is always emitted.
    """
    if not entries:
        return ""

    now = now_ms() if now is None else now
    budget = max_tokens - estimate(HEADER)

    lines: list[str] = []
    for entry in entries:
        line = format_entry(entry, now)
        cost = estimate(line)
        if lines and budget - cost < 0:
            lines.append(TRUNCATION_MARKER)
            break
        lines.append(line)
        budget -= cost

    return HEADER + "\n".join(lines)
