"""Derive a SessionType from a host session key.

Session keys are colon-delimited, e.g.::

    agent:main:main                   -> dm
    agent:main:telegram:group:-12345  -> group
    hook:<uuid>                       -> webhook
    cron:<job-id>                     -> cron
"""
from __future__ import annotations

from workctx_core.types import SessionType

CRON_PREFIX = "cron"
WEBHOOK_PREFIX = "hook"

# Channel families whose keys carry a group marker in the fourth segment.
GROUP_CHANNELS = frozenset({"telegram", "discord", "signal"})


def session_type_for_key(session_key: str) -> SessionType:
    parts = session_key.split(":")
    if parts[0] == CRON_PREFIX:
        return SessionType.CRON
    if parts[0] == WEBHOOK_PREFIX:
        return SessionType.WEBHOOK
    if len(parts) >= 4 and parts[2] in GROUP_CHANNELS and parts[3] == "group":
        return SessionType.GROUP
    return SessionType.DM
