"""Finish tasks and fold them into the working position's ancestry.

When a finished task is one of several parents of ``@``, the merge is
rewritten into a line::

    work... -> done task -> other tasks... -> @

Raw (untagged) work sits at the bottom, the finished task directly above it
and the remaining concurrent tasks above that. Every step re-reads the graph,
so running ``done`` again after a partial failure picks up where it stopped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..context import TaskContext
from ..errors import JJTaskError, StoreError
from ..flags import Flag
from ..results import (
    EMPTY_TASK,
    ORPHAN_TASK,
    UNCOMMITTED_CHANGES,
    OperationResult,
    TaskOutcome,
)
from ..revsets import Heads, refs
from ..store import WORKING_COPY, GraphStore
from .common import default_revs, is_task, set_task_flag


@dataclass
class ParentPartition:
    task_parents: list[str] = field(default_factory=list)
    work_parents: list[str] = field(default_factory=list)


def partition_parents(store: GraphStore, parents: Sequence[str]) -> ParentPartition:
    """Split merge parents into task revisions and plain work, keeping order."""
    out = ParentPartition()
    for parent in parents:
        if is_task(store, parent):
            out.task_parents.append(parent)
        else:
            out.work_parents.append(parent)
    return out


def find_work_tip(store: GraphStore, work_parents: Sequence[str]) -> str:
    """Head of the work parents.

    With several heads the first one the store returns wins; that order is
    whatever jj emits and is not otherwise meaningful. An empty or failed
    query falls back to the first work parent.
    """
    if len(work_parents) == 1:
        return work_parents[0]
    try:
        heads = store.query_ids(Heads(refs(work_parents)), limit=1)
    except StoreError:
        return work_parents[0]
    return heads[0] if heads else work_parents[0]


def _other_work_heads(store: GraphStore, work_parents: Sequence[str], tip: str) -> list[str]:
    """Work parents that are not below ``tip`` and so would drop out of ``@``."""
    return [
        parent
        for parent in work_parents
        if parent != tip and not store.is_ancestor_of(parent, tip)
    ]


def linearize(store: GraphStore, done_task: str, other_parents: Sequence[str]) -> str:
    """Rewrite ``@``'s merge of ``done_task`` and ``other_parents`` into a chain.

    Returns the new tip that ``@`` sits on. Work heads that are not
    ancestors of the chosen work tip stay as extra parents of ``@``, so ``@``
    can still be a merge afterwards.
    """
    partition = partition_parents(store, other_parents)

    if not partition.work_parents:
        tip = done_task
        for parent in other_parents:
            store.rebase_source(parent, [tip])
            tip = parent
        store.rebase_source(WORKING_COPY, [tip])
        return tip

    work_tip = find_work_tip(store, partition.work_parents)
    # Computed before any rebase: afterwards everything hangs off work_tip.
    side_work = _other_work_heads(store, partition.work_parents, work_tip)

    store.rebase_source(done_task, [work_tip])

    tip = done_task
    for parent in partition.task_parents:
        store.rebase_source(parent, [tip])
        tip = parent

    store.rebase_source(WORKING_COPY, [tip, *side_work])
    return tip


def _advise_before_done(ctx: TaskContext, result: OperationResult, change_id: str, at_id: str) -> None:
    store = ctx.store
    try:
        if store.is_empty(change_id):
            result.advise(
                EMPTY_TASK,
                f"Task {change_id} has no changes of its own; marking it done anyway",
                (change_id,),
            )
        if change_id != at_id and not store.is_empty(WORKING_COPY):
            result.advise(
                UNCOMMITTED_CHANGES,
                f"@ has changes that are not part of {change_id}; "
                "they stay in @ and are not recorded in the task",
                (change_id,),
            )
    except StoreError:
        # Advisories only; the operation proceeds without them.
        return


def finish_task(ctx: TaskContext, rev: str, result: OperationResult) -> tuple[TaskOutcome, bool]:
    """Mark one task done and linearize it. Returns the outcome and orphan state."""
    store = ctx.store
    change_id = store.change_id(rev)
    outcome = TaskOutcome(rev=rev, change_id=change_id)

    parents = store.get_parents(WORKING_COPY)
    is_parent = change_id in parents
    other_parents = [p for p in parents if p != change_id]

    _advise_before_done(ctx, result, change_id, store.change_id(WORKING_COPY))

    set_task_flag(store, rev, Flag.DONE)

    if is_parent and other_parents:
        try:
            tip = linearize(store, change_id, other_parents)
        except StoreError as exc:
            raise exc.within("linearizing") from exc
        outcome.detail = f"Marked {change_id} done and linearized @ onto {tip}"
    else:
        outcome.detail = f"Marked {change_id} done"

    try:
        orphan = not store.is_ancestor_of(change_id, WORKING_COPY)
    except StoreError:
        orphan = False
    return outcome, orphan


def orphan_message(orphans: Sequence[str]) -> str:
    return (
        f"{' '.join(orphans)} marked done but not in @'s ancestry (orphan tasks). "
        "These tasks were never 'wip', so their specs are not in the linear history."
    )


def finish_tasks(ctx: TaskContext, revs: Sequence[str] | None = None) -> OperationResult:
    result = OperationResult(operation="done")
    orphans: list[str] = []
    for rev in default_revs(revs):
        try:
            outcome, orphan = finish_task(ctx, rev, result)
        except JJTaskError as exc:
            result.outcomes.append(TaskOutcome(rev=rev, ok=False, error=f"failed to mark {rev} done: {exc}"))
            continue
        result.outcomes.append(outcome)
        if orphan and outcome.change_id:
            orphans.append(outcome.change_id)

    if orphans:
        result.advise(ORPHAN_TASK, orphan_message(orphans), tuple(orphans))
    result.message = f"{len(result.succeeded)} of {len(result.outcomes)} task(s) marked done"
    return result
