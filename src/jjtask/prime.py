"""Session context summary: quick reference, current tasks, pending changes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from rich.console import Console

from .config import JJTaskConfig, RepoConfig
from .errors import StoreError
from .flags import TASK_FLAGS, Flag
from .revsets import flagged
from .store import GraphStore

StoreFactory = Callable[[RepoConfig], GraphStore]

_SECTIONS = (("WIP", Flag.WIP), ("Todo", Flag.TODO), ("Draft", Flag.DRAFT))

QUICK_REFERENCE = """\
## JJ TASK Quick Reference

Task flags: draft -> todo -> wip -> done (also: {side_flags})

### Revsets
description(regex:"^\\\\[task:<flag>\\\\]") matches tasks by their leading flag; `jjtask find -s STATUS` wraps it.

### Commands
jjtask create TITLE [-p REV] [--chain]  Create task as child of @ (or REV)
jjtask wip [TASKS...]                   Mark WIP, add as parents of @
jjtask done [TASKS...]                  Mark done, linearize into ancestry
jjtask drop TASKS... [--abandon]        Remove from @ (standby or abandon)
jjtask squash [--keep-tasks]            Flatten @ merge for push
jjtask find [-s STATUS] [-r REVSET]     List tasks (pending/done/all or a flag)
jjtask flag STATUS [-r REV]             Change task flag (defaults to @)
jjtask parallel T1 T2... [-p REV]       Create sibling tasks (defaults to @)
jjtask show-desc [-r REV]               Print revision description
jjtask batch-desc SED -r REVSET         Rewrite matching descriptions with sed
jjtask checkpoint [-m MSG]              Record operation id for recovery
jjtask stale                            Find done tasks not in @'s ancestry

### Workflow
1. `jjtask create 'task'`        # Plan tasks
2. `jjtask wip TASK`             # Start (single=edit, multi=merge)
3. `jj edit TASK` to work        # Work directly in task branch
4. `jjtask done`                 # Complete, linearizes into ancestry
5. `jjtask squash`               # Flatten for push

Key: @ is merge of WIP tasks. Work in task branches directly.

### Rules
- DAG = priority: parent tasks complete before children
- Chain related tasks: `jjtask create --chain 'Next step'`
- Read the full task description before editing; it is the task definition
- Never mark done unless ALL acceptance criteria pass
- Use `jjtask flag review/blocked/untested` if incomplete
"""

_SUMMARY_NUMBER_RE = re.compile(r"(\d+) (file|insertion|deletion)")


@dataclass
class ChangeSummary:
    name: str
    files: int = 0
    adds: int = 0
    dels: int = 0
    detail: list[str] = field(default_factory=list)


def quick_reference() -> str:
    side = [flag for flag in TASK_FLAGS if flag not in ("draft", "todo", "wip", "done")]
    return QUICK_REFERENCE.format(side_flags=", ".join(side))


def task_sections(store: GraphStore) -> list[tuple[str, list[tuple[str, str]]]]:
    """``(header, [(change_id, title), ...])`` for WIP, Todo and Draft."""
    sections: list[tuple[str, list[tuple[str, str]]]] = []
    for header, flag in _SECTIONS:
        try:
            revisions = store.revisions(flagged(flag))
        except StoreError:
            revisions = []
        rows = []
        for rev in revisions:
            task = rev.task
            if task is None or task.flag is not flag:
                continue
            title = task.title
            if task.body.strip():
                title = f"{title} [desc:{len(task.body.strip().splitlines())}L]"
            rows.append((rev.change_id, title))
        sections.append((header, rows))
    return sections


def render_tasks(console: Console, store: GraphStore, *, repo_name: str | None = None) -> bool:
    """Print aligned task sections. Returns True when anything was printed."""
    sections = task_sections(store)
    width = max((len(cid) for _, rows in sections for cid, _ in rows), default=0)

    if repo_name:
        console.print(f"--- {repo_name} ---", markup=False)

    printed = False
    for header, rows in sections:
        if not rows:
            continue
        if printed:
            console.print()
        printed = True
        console.print(f"{header}:", markup=False)
        for change_id, title in rows:
            console.print(f"{change_id.ljust(width)}  {title}", markup=False)
    if repo_name:
        console.print()
    return printed


def parse_diff_stat(name: str, text: str) -> ChangeSummary | None:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    if not lines:
        return None

    summary = ChangeSummary(name=name)
    for count, kind in _SUMMARY_NUMBER_RE.findall(lines[-1]):
        if kind == "file":
            summary.files = int(count)
        elif kind == "insertion":
            summary.adds = int(count)
        else:
            summary.dels = int(count)

    for line in lines[:-1]:
        path, sep, stat = line.partition("|")
        if not sep:
            continue
        file_name = path.strip().rsplit("/", 1)[-1]
        adds = stat.count("+")
        dels = stat.count("-")
        marks = (f"+{adds}" if adds else "") + (f"-{dels}" if dels else "")
        summary.detail.append(f"{file_name} {marks}" if marks else file_name)
    return summary


def render_changes(console: Console, summaries: list[ChangeSummary], *, multi: bool) -> None:
    files = sum(s.files for s in summaries)
    adds = sum(s.adds for s in summaries)
    dels = sum(s.dels for s in summaries)
    console.print(f"### Changes ({files} files +{adds} -{dels})", markup=False)
    if files == 0:
        return
    if multi:
        for summary in summaries:
            if summary.files == 0:
                continue
            console.print(f"--- {summary.name} ---", markup=False)
            console.print(" | ".join(summary.detail), markup=False)
    elif summaries and summaries[0].detail:
        console.print(" | ".join(summaries[0].detail), markup=False)


def render_prime(console: Console, config: JJTaskConfig, store_for: StoreFactory) -> int:
    custom = config.read_prime_content()
    console.print()
    if custom:
        console.print(custom.rstrip("\n"), markup=False)
    else:
        console.print(quick_reference().rstrip("\n"), markup=False)

    console.print()
    console.print("### Current Tasks", markup=False)
    console.print()

    repos = config.workspace_repos()
    multi = len(repos) > 1
    has_tasks = False
    summaries: list[ChangeSummary] = []
    for repo in repos:
        store = store_for(repo)
        if render_tasks(console, store, repo_name=repo.display_name if multi else None):
            has_tasks = True
        try:
            summary = parse_diff_stat(repo.display_name, store.diff_stat())
        except StoreError:
            summary = None
        if summary is not None:
            summaries.append(summary)

    if not has_tasks:
        console.print("No tasks. Create one with: jjtask create 'Task title'", markup=False)

    if custom is None:
        console.print()
        render_changes(console, summaries, multi=multi)
    return 0
