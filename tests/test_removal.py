from __future__ import annotations

import pytest

from fake_graph import ROOT_ID, FakeGraph
from jjtask.context import TaskContext
from jjtask.engine import drop_tasks, start_tasks
from jjtask.errors import PreconditionError
from jjtask.flags import Flag, flag_of
from jjtask.revsets import Raw


def _setup(graph: FakeGraph) -> None:
    graph.add("base", "initial", delta={"app.py": "v1"})
    graph.add("t1", "[task:wip] One", ["base"], delta={"one.py": "1"})
    graph.add("t2", "[task:wip] Two", ["base"], delta={"two.py": "2"})
    graph.add("at", "", ["t1", "t2"], delta={"scratch": "s"})
    graph.edit("at")


def test_drop_parks_task_as_standby_and_detaches_it(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    result = drop_tasks(ctx, ["t1"])

    assert result.ok
    assert flag_of(graph.description_of("t1")) is Flag.STANDBY
    assert graph.parents_of("@") == ["t2"]
    assert graph.revs["at"].delta == {"scratch": "s"}
    assert graph.exists("t1")


def test_dropping_sole_parent_moves_working_copy_to_its_base(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("base", "initial")
    graph.add("t1", "[task:wip] One", ["base"])
    graph.add("at", "", ["t1"])
    graph.edit("at")

    drop_tasks(ctx, ["t1"])

    assert graph.parents_of("@") == ["base"]


def test_drop_of_task_outside_merge_only_changes_flag(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    graph.add("t3", "[task:todo] Later", ["base"])

    result = drop_tasks(ctx, ["t3"])

    assert result.outcomes[0].detail == "Marked t3 as standby"
    assert graph.parents_of("@") == ["t1", "t2"]


def test_standby_task_can_be_merged_again(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    drop_tasks(ctx, ["t1"])

    start_tasks(ctx, ["t1"])

    assert graph.parents_of("@") == ["t2", "t1"]
    assert flag_of(graph.description_of("t1")) is Flag.WIP


def test_abandon_removes_task_and_private_descendants(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    graph.add("t1a", "[task:todo] Follow-up", ["t1"])

    result = drop_tasks(ctx, ["t1"], abandon=True)

    assert result.ok
    assert not graph.exists("t1")
    assert not graph.exists("t1a")
    assert graph.parents_of("@") == ["t2"]
    assert flag_of(graph.description_of("t2")) is Flag.WIP


def test_abandon_keeps_descendants_the_working_copy_builds_on(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:done] Bottom")
    graph.add("t2", "[task:wip] Middle", ["t1"])
    graph.add("at", "", ["t2"])
    graph.edit("at")

    drop_tasks(ctx, ["t1"], abandon=True)

    assert not graph.exists("t1")
    assert graph.exists("t2")
    assert graph.is_ancestor_of("t2", "@")


def test_drop_without_revisions_is_rejected_before_any_change(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    with pytest.raises(PreconditionError):
        drop_tasks(ctx, ["", " "])
    assert graph.calls == []


def test_drop_failure_is_reported_per_task(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    result = drop_tasks(ctx, ["base", "t2"])

    assert [o.ok for o in result.outcomes] == [False, True]
    assert "failed to drop base" in (result.outcomes[0].error or "")
    assert graph.parents_of("@") == ["t1"]


def test_abandon_leaves_the_root_without_parents(graph: FakeGraph) -> None:
    graph.add("t1", "[task:todo] One")
    graph.add("t2", "[task:todo] Two", ["t1"])

    graph.abandon(Raw("t1"))

    assert graph.parents_of("root()") == []
    assert graph.parents_of("t2") == [ROOT_ID]
    assert graph.content("t2") == {}
