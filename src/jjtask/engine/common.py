from __future__ import annotations

from typing import Sequence

from ..errors import NotATaskError
from ..flags import Flag, TaskDescription, parse_description, replace_flag
from ..store import WORKING_COPY, GraphStore


def default_revs(revs: Sequence[str] | None) -> list[str]:
    picked = [rev for rev in (revs or ()) if rev.strip()]
    return picked or [WORKING_COPY]


def read_task(store: GraphStore, rev: str) -> TaskDescription | None:
    return parse_description(store.get_description(rev))


def set_task_flag(store: GraphStore, rev: str, flag: Flag) -> str:
    """Rewrite the flag tag of ``rev`` and return the new description.

    The write is skipped when the flag already matches, so retries leave the
    operation log alone.
    """
    current = store.get_description(rev)
    task = parse_description(current)
    if task is None:
        raise NotATaskError(rev)
    if task.flag is flag:
        return current
    updated = replace_flag(current, flag, rev=rev)
    store.set_description(rev, updated)
    return updated


def is_task(store: GraphStore, rev: str) -> bool:
    return read_task(store, rev) is not None
