from __future__ import annotations

import pytest
from workctx_core.types import SessionType
from workctx_runtime.session_types import session_type_for_key


@pytest.mark.parametrize(
    ("session_key", "expected"),
    [
        ("agent:main:main", SessionType.DM),
        ("agent:main:telegram:dm:42", SessionType.DM),
        ("agent:main:telegram:group:-12345", SessionType.GROUP),
        ("agent:main:discord:group:guild-1", SessionType.GROUP),
        ("agent:main:signal:group:abc", SessionType.GROUP),
        ("agent:main:slack:group:abc", SessionType.DM),
        ("hook:7f3c2a", SessionType.WEBHOOK),
        ("cron:nightly-report", SessionType.CRON),
        ("cron", SessionType.CRON),
        ("cli:manual", SessionType.DM),
        ("", SessionType.DM),
    ],
)
def test_session_type_for_key(session_key, expected):
    assert session_type_for_key(session_key) is expected
