from __future__ import annotations

import pytest
from workctx_core.types import MS_PER_MINUTE, ContextEntry, SessionType
from workctx_runtime.injection import (
    HEADER,
    TRUNCATION_MARKER,
    estimate_tokens,
    format_entry,
    format_for_system_prompt,
    format_relative_time,
    make_char_estimator,
    select_within_budget,
)

from tests.helpers import NOW


def _entry(
    summary: str = "Started auth refactor task for ki-at-obv",
    *,
    age_minutes: int = 0,
    session_type: SessionType = SessionType.DM,
    task_id: str | None = None,
    pinned: bool = False,
    entry_id: str = "e1",
) -> ContextEntry:
    created = NOW - age_minutes * MS_PER_MINUTE
    return ContextEntry(
        id=entry_id,
        session_key="agent:main:main",
        session_type=session_type,
        summary=summary,
        created_at=created,
        expires_at=created + 120 * MS_PER_MINUTE,
        task_id=task_id,
        pinned=pinned,
    )


class TestEstimateTokens:
    def test_four_chars_per_token(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("x" * 400) == 100

    def test_longer_text_never_costs_less(self):
        costs = [estimate_tokens("x" * n) for n in range(50)]
        assert costs == sorted(costs)

    def test_char_estimator(self):
        estimate = make_char_estimator(2)
        assert estimate("abcd") == 2
        assert estimate("abcde") == 3

    @pytest.mark.parametrize("chars", [0, -1])
    def test_char_estimator_rejects_non_positive(self, chars):
        with pytest.raises(ValueError):
            make_char_estimator(chars)


class TestSelectWithinBudget:
    def test_empty(self):
        assert select_within_budget([], 100) == []

    def test_keeps_prefix_that_fits(self):
        entries = [_entry("x" * 40, entry_id=str(i)) for i in range(5)]  # 10 each
        selected = select_within_budget(entries, 25)
        assert [e.id for e in selected] == ["0", "1"]

    def test_stops_at_first_overflow(self):
        entries = [
            _entry("x" * 40, entry_id="a"),
            _entry("x" * 400, entry_id="b"),
            _entry("x" * 4, entry_id="c"),
        ]
        assert [e.id for e in select_within_budget(entries, 20)] == ["a"]

    def test_first_entry_kept_even_if_over_budget(self):
        entries = [_entry("x" * 400, entry_id="big"), _entry("small", entry_id="s")]
        assert [e.id for e in select_within_budget(entries, 5)] == ["big"]

    def test_custom_estimator(self):
        entries = [_entry(entry_id=str(i)) for i in range(4)]
        selected = select_within_budget(entries, 3, estimate=lambda text: 1)
        assert len(selected) == 3


class TestFormatRelativeTime:
    @pytest.mark.parametrize(
        ("age_ms", "expected"),
        [
            (0, "just now"),
            (59_999, "just now"),
            (MS_PER_MINUTE, "1m ago"),
            (5 * MS_PER_MINUTE, "5m ago"),
            (59 * MS_PER_MINUTE + 59_999, "59m ago"),
            (60 * MS_PER_MINUTE, "1h ago"),
            (3 * 60 * MS_PER_MINUTE + 30 * MS_PER_MINUTE, "3h ago"),
            (23 * 60 * MS_PER_MINUTE + 59 * MS_PER_MINUTE, "23h ago"),
            (24 * 60 * MS_PER_MINUTE, "1d ago"),
            (2 * 24 * 60 * MS_PER_MINUTE + 5 * MS_PER_MINUTE, "2d ago"),
        ],
    )
    def test_buckets(self, age_ms, expected):
        assert format_relative_time(NOW - age_ms, NOW) == expected

    def test_future_timestamp_is_just_now(self):
        assert format_relative_time(NOW + 10_000, NOW) == "just now"


class TestFormatEntry:
    def test_plain(self):
        line = format_entry(_entry(), NOW)
        assert line == "- [just now, DM] Started auth refactor task for ki-at-obv"

    def test_pinned_with_task(self):
        entry = _entry(age_minutes=5, pinned=True, task_id="auth-refactor")
        assert format_entry(entry, NOW) == (
            "- [5m ago, DM [pinned]] (task: auth-refactor) "
            "Started auth refactor task for ki-at-obv"
        )

    @pytest.mark.parametrize(
        ("session_type", "label"),
        [
            (SessionType.DM, "DM"),
            (SessionType.WEBHOOK, "Webhook"),
            (SessionType.CRON, "Cron"),
            (SessionType.GROUP, "Group"),
        ],
    )
    def test_labels(self, session_type, label):
        line = format_entry(_entry("x", session_type=session_type), NOW)
        assert line == f"- [just now, {label}] x"


class TestFormatForSystemPrompt:
    def test_empty_list_renders_nothing(self):
        assert format_for_system_prompt([], now=NOW) == ""

    def test_single_entry(self):
        text = format_for_system_prompt(
            [_entry(age_minutes=5, task_id="auth-refactor")], now=NOW
        )
        assert text == (
            "## Working Context (recent activity)\n"
            "- [5m ago, DM] (task: auth-refactor) "
            "Started auth refactor task for ki-at-obv"
        )

    def test_keeps_given_order(self):
        entries = [
            _entry("pinned", pinned=True, age_minutes=90, entry_id="p"),
            _entry("newest", entry_id="n"),
            _entry("older", age_minutes=10, entry_id="o"),
        ]
        lines = format_for_system_prompt(entries, now=NOW).splitlines()
        assert lines[0] == HEADER.strip()
        assert lines[1] == "- [1h ago, DM [pinned]] pinned"
        assert lines[2] == "- [just now, DM] newest"
        assert lines[3] == "- [10m ago, DM] older"
        assert TRUNCATION_MARKER not in lines

    def test_truncates_to_budget(self):
        entries = [
            _entry(f"Entry {i}: worked on something moderately interesting",
                   age_minutes=i, entry_id=str(i))
            for i in range(50)
        ]
        text = format_for_system_prompt(entries, max_tokens=200, now=NOW)
        lines = text.splitlines()

        assert text.startswith(HEADER)
        assert lines[-1] == TRUNCATION_MARKER
        entry_lines = lines[1:-1]
        assert 1 <= len(entry_lines) < 50
        assert entry_lines[0].endswith("Entry 0: worked on something moderately interesting")
        used = estimate_tokens(HEADER) + sum(estimate_tokens(line) for line in entry_lines)
        assert used <= 200

    def test_tiny_budget_still_emits_first_entry(self):
        entries = [_entry("first", entry_id="a"), _entry("second", entry_id="b")]
        lines = format_for_system_prompt(entries, max_tokens=1, now=NOW).splitlines()
        assert lines == [HEADER.strip(), "- [just now, DM] first", TRUNCATION_MARKER]

    def test_single_oversized_entry_has_no_marker(self):
        text = format_for_system_prompt([_entry("x" * 4000)], max_tokens=10, now=NOW)
        assert TRUNCATION_MARKER not in text
        assert text.endswith("x" * 4000)

    def test_custom_estimator(self):
        entries = [_entry(entry_id=str(i)) for i in range(5)]
        text = format_for_system_prompt(
            entries, max_tokens=3, now=NOW, estimate=lambda text: 1
        )
        lines = text.splitlines()
        # header costs 1, leaving room for two entries
        assert len(lines) == 4
        assert lines[-1] == TRUNCATION_MARKER
