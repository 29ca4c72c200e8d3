from __future__ import annotations

from typing import Sequence

from ..context import TaskContext
from ..errors import JJTaskError, PreconditionError
from ..flags import Flag
from ..results import OperationResult, TaskOutcome
from ..revsets import Ancestors, Descendants, Ref
from ..store import WORKING_COPY
from .common import set_task_flag


def drop_task(ctx: TaskContext, rev: str, *, abandon: bool = False) -> TaskOutcome:
    store = ctx.store
    change_id = store.change_id(rev)
    outcome = TaskOutcome(rev=rev, change_id=change_id)

    if abandon:
        store.remove_from_merge(change_id)
        # Descendants that @ still builds on are kept; jj re-parents them.
        store.abandon(Ref(change_id) | (Descendants(Ref(change_id)) - Ancestors(Ref(WORKING_COPY))))
        outcome.detail = f"Abandoned {change_id}"
        return outcome

    set_task_flag(store, rev, Flag.STANDBY)
    if store.remove_from_merge(change_id):
        outcome.detail = f"Marked {change_id} as standby and removed it from @"
    else:
        outcome.detail = f"Marked {change_id} as standby"
    return outcome


def drop_tasks(
    ctx: TaskContext,
    revs: Sequence[str],
    *,
    abandon: bool = False,
) -> OperationResult:
    """Take tasks out of ``@``'s merge: park them as standby, or abandon them."""
    picked = [rev for rev in revs if rev.strip()]
    if not picked:
        raise PreconditionError("drop requires at least one task revision")

    result = OperationResult(operation="drop")
    for rev in picked:
        try:
            result.outcomes.append(drop_task(ctx, rev, abandon=abandon))
        except JJTaskError as exc:
            result.outcomes.append(TaskOutcome(rev=rev, ok=False, error=f"failed to drop {rev}: {exc}"))
    verb = "abandoned" if abandon else "set to standby"
    result.message = f"{len(result.succeeded)} of {len(result.outcomes)} task(s) {verb}"
    return result
