"""Flag edits and read-only task listings."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from ..context import TaskContext
from ..errors import JJTaskError, PreconditionError, StoreError
from ..flags import Flag, TaskDescription, parse_description, parse_flag
from ..results import SKIPPED, OperationResult, TaskOutcome
from ..revsets import Raw, Revset, category, stale
from ..store import WORKING_COPY, Revision
from ..util import CommandError, run_capture
from .common import default_revs, set_task_flag


def set_flag(ctx: TaskContext, flag: Flag | str, revs: Sequence[str] | None = None) -> OperationResult:
    """Change the flag of tasks without touching the graph shape."""
    target = parse_flag(flag)
    result = OperationResult(operation="flag")
    for rev in default_revs(revs):
        try:
            change_id = ctx.store.change_id(rev)
            set_task_flag(ctx.store, rev, target)
        except JJTaskError as exc:
            result.outcomes.append(TaskOutcome(rev=rev, ok=False, error=str(exc)))
            continue
        result.outcomes.append(TaskOutcome(rev=rev, change_id=change_id, detail=f"{change_id} -> {target}"))
    result.message = f"{len(result.succeeded)} of {len(result.outcomes)} task(s) flagged {target}"
    return result


def find_tasks(
    ctx: TaskContext,
    status: str = "pending",
    *,
    revset: str | None = None,
) -> list[Revision]:
    expr: Revset = category(status)
    if revset:
        expr = Raw(revset) & expr
    wanted = _category_filter(status)
    return [rev for rev in ctx.store.revisions(expr) if rev.task is not None and wanted(rev.task)]


def find_stale(ctx: TaskContext) -> list[Revision]:
    """Done tasks that are not ancestors of ``@``."""
    return [rev for rev in ctx.store.revisions(stale()) if rev.task is not None and rev.task.flag is Flag.DONE]


def _category_filter(status: str) -> Callable[[TaskDescription], bool]:
    # Only the leading tag counts; a body that mentions another tag does not.
    value = status.strip().lower()
    if value == "pending":
        return lambda task: task.is_pending
    if value == "all":
        return lambda task: True
    flag = parse_flag(value)
    return lambda task: task.flag is flag


def show_description(ctx: TaskContext, rev: str = WORKING_COPY) -> dict[str, Any]:
    store = ctx.store
    description = store.get_description(rev)
    task = parse_description(description)
    payload: dict[str, Any] = {
        "revision": rev,
        "change_id": store.change_id(rev),
        "description": description,
        "first_line": description.partition("\n")[0],
    }
    if task is not None:
        payload["task_flag"] = task.flag.value
    return payload


def batch_describe(ctx: TaskContext, sed_expr: str, revset: str | None) -> OperationResult:
    """Pipe every matching description through ``sed <expr>``."""
    if not revset or not revset.strip():
        raise PreconditionError("--revset is required")
    if not sed_expr.strip():
        raise PreconditionError("a sed expression is required")

    store = ctx.store
    result = OperationResult(operation="batch-desc")
    revs = store.query_ids(Raw(revset))
    if not revs:
        result.message = "No matching revisions"
        return result

    for rev in revs:
        try:
            description = store.get_description(rev)
        except StoreError as exc:
            result.advise(SKIPPED, f"failed to get description for {rev}: {exc}", (rev,))
            continue
        try:
            updated = run_capture(["sed", sed_expr], input_text=description)
        except CommandError as exc:
            result.advise(SKIPPED, f"sed failed for {rev}: {exc.detail}", (rev,))
            continue
        if updated == description:
            continue
        try:
            store.set_description(rev, updated)
        except StoreError as exc:
            result.advise(SKIPPED, f"failed to update {rev}: {exc}", (rev,))
            continue
        result.outcomes.append(TaskOutcome(rev=rev, change_id=rev, detail=f"Updated {rev}"))

    result.message = f"Modified {len(result.outcomes)} of {len(revs)} revisions"
    result.data["matched"] = len(revs)
    return result


def checkpoint(ctx: TaskContext, message: str | None = None) -> OperationResult:
    op_id = ctx.store.operation_id()
    result = OperationResult(operation="checkpoint")
    if message:
        result.message = f"Checkpoint '{message}' at operation: {op_id}"
    else:
        result.message = f"Checkpoint at operation: {op_id}"
    result.data["operation_id"] = op_id
    result.data["restore"] = f"jj op restore {op_id}"
    return result
