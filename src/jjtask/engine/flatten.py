from __future__ import annotations

from typing import Sequence

from ..context import TaskContext
from ..errors import StoreError
from ..flags import Flag, flag_of, replace_flag, strip_flag
from ..results import SKIPPED, OperationResult
from ..revsets import Parents, Ref
from ..store import WORKING_COPY

SQUASH_HEADER = "Squashed tasks:"


def combined_message(descriptions: Sequence[str]) -> str:
    """One bullet per description: its first line without the task tag."""
    lines = [SQUASH_HEADER]
    for description in descriptions:
        line = strip_flag(description)
        if line:
            lines.append(f"- {line}")
    return "\n".join(lines)


def squash_merge(ctx: TaskContext, *, keep_tasks: bool = False) -> OperationResult:
    """Flatten every parent of ``@`` into ``@`` as a single linear commit."""
    store = ctx.store
    result = OperationResult(operation="squash")

    parents = store.get_parents(WORKING_COPY)
    if not parents:
        result.message = "No parents to squash"
        return result
    if len(parents) == 1:
        result.message = "Only one parent, nothing to merge-squash"
        return result

    descriptions = [store.get_description(parent) for parent in parents]
    message = combined_message(descriptions)

    store.squash_into(Parents(Ref(WORKING_COPY)), WORKING_COPY, message)
    result.message = f"Squashed {len(parents)} tasks into linear commit"
    result.data["parents"] = list(parents)
    result.data["description"] = message

    if keep_tasks:
        return result

    for parent, before in zip(parents, descriptions):
        if flag_of(before) is not Flag.WIP:
            continue
        try:
            current = store.get_description(parent)
        except StoreError:
            # Squash abandons emptied parents; nothing left to flag.
            continue
        if flag_of(current) is not Flag.WIP:
            continue
        try:
            store.set_description(parent, replace_flag(current, Flag.DONE, rev=parent))
        except StoreError as exc:
            result.advise(SKIPPED, f"Not marking {parent} done: {exc}", (parent,))
    return result
