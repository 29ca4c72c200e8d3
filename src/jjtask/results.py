from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Advisory kinds. None of them stop an operation.
EMPTY_TASK = "empty-task"
UNCOMMITTED_CHANGES = "uncommitted-changes"
ORPHAN_TASK = "orphan-task"
WIP_SUGGESTION = "wip-suggestion"
SKIPPED = "skipped"


@dataclass(frozen=True)
class Advisory:
    kind: str
    message: str
    revisions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "revisions": list(self.revisions)}


@dataclass
class TaskOutcome:
    rev: str
    change_id: str | None = None
    ok: bool = True
    detail: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rev": self.rev,
            "change_id": self.change_id,
            "ok": self.ok,
            "detail": self.detail,
            "error": self.error,
        }


@dataclass
class OperationResult:
    operation: str
    outcomes: list[TaskOutcome] = field(default_factory=list)
    advisories: list[Advisory] = field(default_factory=list)
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def succeeded(self) -> list[TaskOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[TaskOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def advise(self, kind: str, message: str, revisions: tuple[str, ...] = ()) -> None:
        self.advisories.append(Advisory(kind, message, revisions))

    def advisories_of(self, kind: str) -> list[Advisory]:
        return [advisory for advisory in self.advisories if advisory.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "operation": self.operation,
            "ok": self.ok,
            "message": self.message,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "advisories": [advisory.to_dict() for advisory in self.advisories],
        }
        if self.data:
            payload["data"] = self.data
        return payload
