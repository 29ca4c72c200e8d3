from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "Flag",
    "JJStore",
    "OperationResult",
    "TaskContext",
    "TaskDescription",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .context import TaskContext
    from .flags import Flag, TaskDescription
    from .results import OperationResult
    from .store import JJStore


def __getattr__(name: str):
    if name in {"Flag", "TaskDescription"}:
        from .flags import Flag, TaskDescription

        return {"Flag": Flag, "TaskDescription": TaskDescription}[name]
    if name == "JJStore":
        from .store import JJStore

        return JJStore
    if name == "OperationResult":
        from .results import OperationResult

        return OperationResult
    if name == "TaskContext":
        from .context import TaskContext

        return TaskContext
    raise AttributeError(f"module 'jjtask' has no attribute {name!r}")
