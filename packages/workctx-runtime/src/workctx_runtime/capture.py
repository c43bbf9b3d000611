"""Automatic capture of finished agent turns into working context.

The host reports each turn as a stream of AgentEvents. Assistant text is
buffered per run; a lifecycle ``end`` event turns the buffer into a single
entry, a lifecycle ``error`` event throws it away. Either way the buffer
for that run is released. While working context is disabled, or
auto_capture is off, every event is skipped and nothing is buffered.

Capture is best-effort. ``ContextCapture.handle`` never raises for a
failed write: the failure is logged and reported as a CaptureResult with
status FAILED, and hosts are expected to drop that result. This is the
only place in workctx where errors are contained instead of propagated.
"""
from __future__ import annotations

import enum
import json
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from workctx_core.logging import get_logger
from workctx_core.types import CreateEntryInput

from workctx_runtime.session_types import session_type_for_key

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from workctx_core.types import ContextEntry

    from workctx_runtime.context import WorkctxRuntime

logger = get_logger("capture")

ASSISTANT_STREAM = "assistant"
LIFECYCLE_STREAM = "lifecycle"
PHASE_END = "end"
PHASE_ERROR = "error"

FALLBACK_SUMMARY = "Agent turn completed"
MAX_SUMMARY_CHARS = 200
MAX_PENDING_RUNS = 256


@dataclass(frozen=True, slots=True)
class AgentEvent:
    """One notification from the host's agent event stream."""
    run_id: str
    stream: str
    session_key: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def phase(self) -> str | None:
        if self.stream != LIFECYCLE_STREAM:
            return None
        phase = self.data.get("phase")
        return phase if isinstance(phase, str) else None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AgentEvent:
        data = raw.get("data")
        return cls(
            run_id=str(raw["run_id"]),
            stream=str(raw.get("stream", "")),
            session_key=raw.get("session_key") or None,
            data=data if isinstance(data, dict) else {},
        )

    @classmethod
    def from_json(cls, payload: bytes | str) -> AgentEvent:
        return cls.from_dict(json.loads(payload))


class CaptureStatus(enum.Enum):
    BUFFERED = "buffered"
    STORED = "stored"
    DISCARDED = "discarded"
    SKIPPED = "skipped"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CaptureResult:
    status: CaptureStatus
    run_id: str
    entry: ContextEntry | None = None
    error: str | None = None


@dataclass(slots=True)
class _RunBuffer:
    """Assistant text of one run, kept to at most ``limit`` characters.

    Leading whitespace is never stored. ``overflow`` records that non-blank
    text was cut off, which is all the summary needs to know about it.
    """
    limit: int
    session_key: str | None = None
    text: str = ""
    overflow: bool = False

    def replace(self, text: str) -> None:
        self.text = ""
        self.overflow = False
        self.append(text)

    def append(self, chunk: str) -> None:
        if not self.text:
            chunk = chunk.lstrip()
        room = self.limit - len(self.text)
        if len(chunk) > room:
            if chunk[room:].strip():
                self.overflow = True
            chunk = chunk[:room]
        self.text += chunk

    def summary(self) -> str:
        if self.overflow:
            return self.text[: self.limit - 3] + "..."
        return summarize_text(self.text, self.limit)


def summarize_text(text: str | None, max_chars: int = MAX_SUMMARY_CHARS) -> str:
    """Trimmed assistant text cut to *max_chars*, or the fallback summary."""
    text = (text or "").strip()
    if not text:
        return FALLBACK_SUMMARY
    if len(text) > max_chars:
        return text[: max_chars - 3] + "..."
    return text


class ContextCapture:
    """Turn finished agent runs into working-context entries."""

    def __init__(
        self,
        runtime: WorkctxRuntime,
        *,
        max_pending_runs: int = MAX_PENDING_RUNS,
        max_summary_chars: int = MAX_SUMMARY_CHARS,
    ) -> None:
        self._runtime = runtime
        self._max_pending_runs = max_pending_runs
        self._max_summary_chars = max_summary_chars
        self._buffers: OrderedDict[str, _RunBuffer] = OrderedDict()

    @property
    def pending_runs(self) -> int:
        return len(self._buffers)

    async def consume(self, events: AsyncIterable[AgentEvent]) -> None:
        """Feed every event of *events* through ``handle``.

        Results are dropped here on purpose: a capture outcome has no
        bearing on the agent turn that produced the events.
        """
        async for event in events:
            await self.handle(event)

    @property
    def active(self) -> bool:
        """Whether events are buffered and stored at all."""
        settings = self._runtime.config.working_context
        return (
            self._runtime.manager is not None
            and settings.enabled
            and settings.auto_capture
        )

    async def handle(self, event: AgentEvent) -> CaptureResult:
        if not self.active:
            self._buffers.pop(event.run_id, None)
            return CaptureResult(CaptureStatus.SKIPPED, event.run_id)

        if event.stream == ASSISTANT_STREAM:
            return self._buffer(event)

        phase = event.phase
        if phase == PHASE_ERROR:
            self._buffers.pop(event.run_id, None)
            return CaptureResult(CaptureStatus.DISCARDED, event.run_id)
        if phase != PHASE_END:
            return CaptureResult(CaptureStatus.IGNORED, event.run_id)

        buffer = self._buffers.pop(event.run_id, None) or self._new_buffer()
        return await self._store(event, buffer)

    def _buffer(self, event: AgentEvent) -> CaptureResult:
        text = event.data.get("text")
        delta = event.data.get("delta")
        if not isinstance(text, str) and not isinstance(delta, str):
            return CaptureResult(CaptureStatus.IGNORED, event.run_id)

        buffer = self._buffers.get(event.run_id)
        if buffer is None:
            buffer = self._buffers[event.run_id] = self._new_buffer()
            self._evict_overflow()
        if event.session_key:
            buffer.session_key = event.session_key

        # "text" is the cumulative reply so far; "delta" is an increment.
        if isinstance(text, str):
            buffer.replace(text)
        else:
            buffer.append(delta)
        return CaptureResult(CaptureStatus.BUFFERED, event.run_id)

    def _new_buffer(self) -> _RunBuffer:
        return _RunBuffer(limit=self._max_summary_chars)

    def _evict_overflow(self) -> None:
        while len(self._buffers) > self._max_pending_runs:
            run_id, _ = self._buffers.popitem(last=False)
            logger.debug("Dropped buffered text of unfinished run %s", run_id)

    async def _store(self, event: AgentEvent, buffer: _RunBuffer) -> CaptureResult:
        session_key = event.session_key or buffer.session_key
        if not session_key:
            return CaptureResult(CaptureStatus.DISCARDED, event.run_id)

        try:
            entry = await self._runtime.manager.add(CreateEntryInput(
                session_key=session_key,
                session_type=session_type_for_key(session_key),
                summary=buffer.summary(),
            ))
        except Exception as exc:
            logger.debug(
                "Working context capture failed for run %s",
                event.run_id, exc_info=True,
            )
            return CaptureResult(CaptureStatus.FAILED, event.run_id, error=str(exc))
        return CaptureResult(CaptureStatus.STORED, event.run_id, entry=entry)
