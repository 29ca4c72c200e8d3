from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import JJTaskConfig
from .store import GraphStore, JJStore


@dataclass
class TaskContext:
    """Everything one engine invocation needs, passed explicitly."""

    store: GraphStore
    config: JJTaskConfig = field(default_factory=JJTaskConfig)

    @classmethod
    def for_repo(cls, repo: Path | None, config: JJTaskConfig) -> "TaskContext":
        store = JJStore(repo, binary=config.binary, timeout=config.timeout)
        return cls(store=store, config=config)
