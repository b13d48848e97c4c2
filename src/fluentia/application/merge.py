"""
Last-writer-wins merge policy for progress records.

This is a pure computation module with no I/O.
"""

from fluentia.domain.models import ProgressRecord


def merge(local: ProgressRecord | None, remote: ProgressRecord | None) -> ProgressRecord:
    """
    Pick the authoritative record out of a local and a remote copy.

    Rules, in order:
    1. Only one side present -> that side.
    2. Later `updated_at` wins.
    3. Equal timestamps -> higher `version` wins; remote wins exact ties.

    Neither input is modified. With both sides absent, an empty record
    at version 0 is returned.
    """
    if local is None and remote is None:
        return ProgressRecord.empty()
    if remote is None:
        return local
    if local is None:
        return remote

    if remote.updated_at > local.updated_at:
        return remote
    if remote.updated_at < local.updated_at:
        return local
    if remote.version >= local.version:
        return remote
    return local
