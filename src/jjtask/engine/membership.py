"""Start work on tasks by merging them into the working position."""

from __future__ import annotations

from typing import Sequence

from ..context import TaskContext
from ..errors import JJTaskError
from ..flags import Flag
from ..results import OperationResult, TaskOutcome
from ..store import WORKING_COPY, GraphStore
from .common import default_revs, set_task_flag


def add_parent(store: GraphStore, change_id: str) -> bool:
    """Make ``change_id`` an extra parent of ``@`` without touching ``@``'s diff.

    The root revision is never kept as a merge parent next to a real one. If
    the task currently descends from ``@`` only ``@`` is moved: the task
    slides down onto ``@``'s old parents and becomes ``@``'s sole parent,
    since every old parent is then already below it.
    Returns False when the task already is a parent.
    """
    parents = store.get_parents(WORKING_COPY)
    if change_id in parents:
        return False

    if store.is_ancestor_of(WORKING_COPY, change_id):
        store.rebase_revision(WORKING_COPY, [change_id])
        return True

    root_id = store.root_change_id()
    new_parents = [p for p in parents if p != root_id]
    new_parents.append(change_id)
    store.rebase_source(WORKING_COPY, new_parents)
    return True


def start_task(ctx: TaskContext, rev: str) -> TaskOutcome:
    store = ctx.store
    change_id = store.change_id(rev)
    outcome = TaskOutcome(rev=rev, change_id=change_id)

    set_task_flag(store, rev, Flag.WIP)

    if change_id == store.change_id(WORKING_COPY):
        outcome.detail = f"Marked {change_id} as wip (editing in place)"
        return outcome

    if add_parent(store, change_id):
        outcome.detail = f"Marked {change_id} as wip and merged it into @"
    else:
        outcome.detail = f"Marked {change_id} as wip (already a parent of @)"
    return outcome


def start_tasks(ctx: TaskContext, revs: Sequence[str] | None = None) -> OperationResult:
    """Flag each task ``wip`` and add it as a parent of ``@``, in order.

    Tasks are independent: a failure is recorded and the rest still run.
    """
    result = OperationResult(operation="wip")
    for rev in default_revs(revs):
        try:
            result.outcomes.append(start_task(ctx, rev))
        except JJTaskError as exc:
            result.outcomes.append(TaskOutcome(rev=rev, ok=False, error=str(exc)))
    result.message = f"{len(result.succeeded)} of {len(result.outcomes)} task(s) marked wip"
    return result
