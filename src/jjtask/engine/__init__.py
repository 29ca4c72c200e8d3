from __future__ import annotations

from .chain import create_parallel, create_task, find_chain_tip
from .flatten import combined_message, squash_merge
from .linearize import (
    ParentPartition,
    find_work_tip,
    finish_task,
    finish_tasks,
    linearize,
    partition_parents,
)
from .membership import add_parent, start_task, start_tasks
from .removal import drop_task, drop_tasks
from .status import (
    batch_describe,
    checkpoint,
    find_stale,
    find_tasks,
    set_flag,
    show_description,
)

__all__ = [
    "ParentPartition",
    "add_parent",
    "batch_describe",
    "checkpoint",
    "combined_message",
    "create_parallel",
    "create_task",
    "drop_task",
    "drop_tasks",
    "find_chain_tip",
    "find_stale",
    "find_tasks",
    "find_work_tip",
    "finish_task",
    "finish_tasks",
    "linearize",
    "partition_parents",
    "set_flag",
    "show_description",
    "squash_merge",
    "start_task",
    "start_tasks",
]
