from __future__ import annotations

from workctx_core.types import MS_PER_MINUTE, CreateEntryInput, SessionType

NOW = 1_700_000_000_000


class FakeClock:
    """Settable ms-epoch clock for stores and builders."""

    def __init__(self, start: int = NOW) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, *, minutes: int = 0) -> None:
        self.now += ms + minutes * MS_PER_MINUTE


def make_input(**overrides) -> CreateEntryInput:
    fields = {
        "session_key": "agent:main:main",
        "session_type": SessionType.DM,
        "summary": "Started auth refactor task for ki-at-obv",
        "task_id": "auth-refactor",
    }
    fields.update(overrides)
    return CreateEntryInput(**fields)
