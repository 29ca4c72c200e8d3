"""Graph store adapter: the one seam between the task engine and jj.

Every read and rewrite the engines perform goes through a :class:`GraphStore`.
:class:`JJStore` implements it by shelling out to the ``jj`` CLI; tests use an
in-memory graph with the same surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from .errors import StoreError
from .flags import TaskDescription, parse_description
from .revsets import Ancestors, Ref, Revset, Root, as_revset
from .util import CommandError, run_capture

WORKING_COPY = "@"

_ID_TEMPLATE = "change_id.shortest(8)"
_PARENTS_TEMPLATE = 'parents.map(|c| c.change_id().shortest(8)).join(",")'
_RECORD_TEMPLATE = (
    f'{_ID_TEMPLATE} ++ "\\t" ++ {_PARENTS_TEMPLATE} ++ "\\t" ++ description ++ "\\0"'
)


@dataclass(frozen=True)
class Revision:
    change_id: str
    description: str
    parents: tuple[str, ...] = field(default_factory=tuple)

    @property
    def task(self) -> TaskDescription | None:
        return parse_description(self.description)

    @property
    def first_line(self) -> str:
        return self.description.partition("\n")[0]


class GraphStore(Protocol):
    def change_id(self, rev: str) -> str: ...

    def root_change_id(self) -> str: ...

    def get_description(self, rev: str) -> str: ...

    def set_description(self, rev: str, text: str) -> None: ...

    def get_parents(self, rev: str) -> list[str]: ...

    def is_ancestor_of(self, ancestor: str, rev: str) -> bool: ...

    def is_empty(self, rev: str) -> bool: ...

    def query_ids(self, revset: Revset | str, *, limit: int | None = None) -> list[str]: ...

    def revisions(self, revset: Revset | str) -> list[Revision]: ...

    def rebase_source(self, source: str, onto: Sequence[str]) -> None: ...

    def rebase_revision(self, rev: str, onto: Sequence[str]) -> None: ...

    def new_child(self, parent: str, message: str) -> None: ...

    def abandon(self, revset: Revset | str) -> None: ...

    def squash_into(
        self,
        source: Revset | str,
        into: str,
        message: str,
        *,
        keep_emptied: bool = False,
    ) -> None: ...

    def remove_from_merge(self, rev: str) -> bool: ...

    def operation_id(self) -> str: ...

    def diff_stat(self, rev: str = WORKING_COPY) -> str: ...


def _parse_records(text: str) -> list[Revision]:
    out: list[Revision] = []
    for record in text.split("\0"):
        record = record.lstrip("\n")
        if not record:
            continue
        change_id, _, rest = record.partition("\t")
        parents, _, description = rest.partition("\t")
        out.append(
            Revision(
                change_id=change_id.strip(),
                description=description,
                parents=tuple(p for p in parents.split(",") if p),
            )
        )
    return out


class JJStore:
    """:class:`GraphStore` backed by the ``jj`` command line."""

    def __init__(
        self,
        repo: Path | None = None,
        *,
        binary: str = "jj",
        timeout: float | None = None,
    ) -> None:
        self.repo = repo
        self.binary = binary
        self.timeout = timeout
        self._root_id: str | None = None

    def _argv(self, args: Sequence[str]) -> list[str]:
        argv = [self.binary, "--no-pager", "--color", "never"]
        if self.repo is not None:
            argv.extend(["-R", str(self.repo)])
        argv.extend(args)
        return argv

    def query(self, args: Sequence[str], *, step: str = "querying", rev: str | None = None) -> str:
        """Run a read-only jj command and return its stdout."""
        try:
            return run_capture(self._argv(args), timeout=self.timeout)
        except CommandError as exc:
            raise StoreError(step, rev, cause=exc) from exc

    def run(
        self,
        args: Sequence[str],
        *,
        step: str = "running",
        rev: str | None = None,
        input_text: str | None = None,
    ) -> None:
        """Run a mutating jj command."""
        try:
            run_capture(self._argv(args), input_text=input_text, timeout=self.timeout)
        except CommandError as exc:
            raise StoreError(step, rev, cause=exc) from exc

    def _log(
        self,
        revset: Revset | str,
        template: str,
        *,
        limit: int | None = None,
        step: str = "querying",
        rev: str | None = None,
    ) -> str:
        args = ["log", "--no-graph", "-r", str(revset), "-T", template]
        if limit is not None:
            args.extend(["--limit", str(limit)])
        return self.query(args, step=step, rev=rev)

    def change_id(self, rev: str) -> str:
        out = self._log(rev, _ID_TEMPLATE + ' ++ "\\n"', step="resolving", rev=rev)
        ids = out.split()
        if not ids:
            raise StoreError("resolving", rev, detail="no matching revision")
        if len(ids) > 1:
            raise StoreError("resolving", rev, detail=f"resolves to {len(ids)} revisions")
        return ids[0]

    def root_change_id(self) -> str:
        if self._root_id is None:
            self._root_id = self.change_id(str(Root()))
        return self._root_id

    def get_description(self, rev: str) -> str:
        return self._log(rev, "description", step="reading description of", rev=rev)

    def set_description(self, rev: str, text: str) -> None:
        self.run(["describe", rev, "-m", text], step="describing", rev=rev)

    def get_parents(self, rev: str) -> list[str]:
        out = self._log(rev, _PARENTS_TEMPLATE, step="reading parents of", rev=rev)
        return [p for p in out.strip().split(",") if p]

    def is_ancestor_of(self, ancestor: str, rev: str) -> bool:
        expr = as_revset(ancestor) & Ancestors(Ref(rev))
        out = self._log(expr, _ID_TEMPLATE, limit=1, step="checking ancestry of", rev=ancestor)
        return bool(out.strip())

    def is_empty(self, rev: str) -> bool:
        out = self._log(rev, 'if(empty, "1", "0")', step="inspecting", rev=rev)
        return out.strip() == "1"

    def query_ids(self, revset: Revset | str, *, limit: int | None = None) -> list[str]:
        out = self._log(revset, _ID_TEMPLATE + ' ++ "\\n"', limit=limit)
        return out.split()

    def revisions(self, revset: Revset | str) -> list[Revision]:
        return _parse_records(self._log(revset, _RECORD_TEMPLATE))

    def _rebase(self, mode: str, rev: str, onto: Sequence[str]) -> None:
        if not onto:
            raise StoreError("rebasing", rev, detail="no destination given")
        args = ["rebase", mode, rev]
        for dest in onto:
            args.extend(["-o", dest])
        self.run(args, step="rebasing", rev=f"{rev} onto {', '.join(onto)}")

    def rebase_source(self, source: str, onto: Sequence[str]) -> None:
        """Move ``source`` and its descendants onto ``onto``."""
        self._rebase("-s", source, onto)

    def rebase_revision(self, rev: str, onto: Sequence[str]) -> None:
        """Move only ``rev``; its children are re-parented onto its old parents."""
        self._rebase("-r", rev, onto)

    def new_child(self, parent: str, message: str) -> None:
        self.run(["new", "--no-edit", parent, "-m", message], step="creating child of", rev=parent)

    def abandon(self, revset: Revset | str) -> None:
        self.run(["abandon", str(revset)], step="abandoning", rev=str(revset))

    def squash_into(
        self,
        source: Revset | str,
        into: str,
        message: str,
        *,
        keep_emptied: bool = False,
    ) -> None:
        args = ["squash", "--from", str(source), "--into", into, "-m", message]
        if keep_emptied:
            args.append("--keep-emptied")
        self.run(args, step="squashing into", rev=into)

    def remove_from_merge(self, rev: str) -> bool:
        """Detach ``rev`` from ``@``'s parents, keeping ``@``'s own changes.

        Returns False when ``rev`` was not a parent of ``@``. When it was the
        only parent, ``@`` moves onto ``rev``'s parents instead.
        """
        change_id = self.change_id(rev)
        parents = self.get_parents(WORKING_COPY)
        if change_id not in parents:
            return False
        remaining = [p for p in parents if p != change_id]
        if not remaining:
            remaining = self.get_parents(change_id) or [self.root_change_id()]
        self.rebase_source(WORKING_COPY, remaining)
        return True

    def operation_id(self) -> str:
        out = self.query(
            ["op", "log", "--no-graph", "-T", 'id.short() ++ "\\n"', "--limit", "1"],
            step="reading operation log",
        )
        return out.strip()

    def diff_stat(self, rev: str = WORKING_COPY) -> str:
        return self.query(["diff", "--stat", "-r", rev], step="reading diff of", rev=rev)
