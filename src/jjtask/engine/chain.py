"""Task creation and auto-chaining below the deepest pending task."""

from __future__ import annotations

from typing import Sequence

from ..context import TaskContext
from ..errors import PreconditionError, StoreError
from ..flags import Flag, TaskDescription, format_description, parse_description
from ..results import WIP_SUGGESTION, OperationResult, TaskOutcome
from ..revsets import Children, Latest, Ref, pending_children, pending_descendants, tasks
from ..store import WORKING_COPY, GraphStore


def find_chain_tip(store: GraphStore, start: str) -> str | None:
    """Deepest pending task at or below ``start``, or None.

    Best effort: the first candidate (in store order) with no pending
    children wins, otherwise the last candidate.
    """
    try:
        candidates = _pending_only(store, store.query_ids(pending_descendants(start)))
    except StoreError:
        return None
    if not candidates:
        return None

    for candidate in candidates:
        try:
            children = _pending_only(store, store.query_ids(pending_children(candidate)))
        except StoreError:
            continue
        if not children:
            return candidate
    return candidates[-1]


def _pending_only(store: GraphStore, ids: list[str]) -> list[str]:
    kept = []
    for change_id in ids:
        task = parse_description(store.get_description(change_id))
        if task is not None and task.is_pending:
            kept.append(change_id)
    return kept


def _wip_suggestion(store: GraphStore, result: OperationResult) -> None:
    try:
        task = parse_description(store.get_description(WORKING_COPY))
        if task is None or task.flag is not Flag.WIP:
            return
        at_id = store.change_id(WORKING_COPY)
    except StoreError:
        return
    result.advise(
        WIP_SUGGESTION,
        f"Current revision ({at_id}) is a WIP task. "
        'Consider `jjtask create "title"` to create the task under @ instead.',
        (at_id,),
    )


def _resolve_created(store: GraphStore, parent: str) -> str | None:
    try:
        ids = store.query_ids(Latest(Children(Ref(parent)) & tasks()), limit=1)
    except StoreError:
        return None
    return ids[0] if ids else None


def create_task(
    ctx: TaskContext,
    title: str,
    *,
    body: str = "",
    parent: str | None = None,
    draft: bool = False,
    chain: bool = False,
) -> OperationResult:
    if not title.strip():
        raise PreconditionError("create requires a non-empty title")

    store = ctx.store
    result = OperationResult(operation="create")
    target = parent or WORKING_COPY

    if parent is not None and parent != WORKING_COPY:
        _wip_suggestion(store, result)

    if chain:
        target = find_chain_tip(store, target) or target

    flag = Flag.DRAFT if draft else Flag.TODO
    message = format_description(TaskDescription(flag=flag, title=title, body=body))
    store.new_child(target, message)

    change_id = _resolve_created(store, target)
    result.outcomes.append(TaskOutcome(rev=target, change_id=change_id, detail=message.partition("\n")[0]))
    if change_id:
        result.message = f"Created new commit {change_id} (empty) {flag.tag} {title}"
    else:
        result.message = f"Created task {flag.tag} {title}"
    return result


def create_parallel(
    ctx: TaskContext,
    titles: Sequence[str],
    *,
    parent: str = WORKING_COPY,
    draft: bool = False,
) -> OperationResult:
    """Create sibling tasks under one parent."""
    picked = [title for title in titles if title.strip()]
    if len(picked) < 2:
        raise PreconditionError("parallel requires at least two titles")

    store = ctx.store
    result = OperationResult(operation="parallel")
    flag = Flag.DRAFT if draft else Flag.TODO
    for title in picked:
        message = format_description(TaskDescription(flag=flag, title=title))
        try:
            store.new_child(parent, message)
        except StoreError as exc:
            result.outcomes.append(
                TaskOutcome(rev=parent, ok=False, error=f"failed to create task {title!r}: {exc}")
            )
            break
        result.outcomes.append(TaskOutcome(rev=parent, detail=message))
    result.message = f"Created {len(result.succeeded)} parallel task branches from {parent}"
    return result
