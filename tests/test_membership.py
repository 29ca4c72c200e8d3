from __future__ import annotations

from fake_graph import ROOT_ID, FakeGraph
from jjtask.context import TaskContext
from jjtask.engine import add_parent, start_tasks
from jjtask.flags import Flag, flag_of


def _setup(graph: FakeGraph) -> None:
    graph.add("base", "initial work", delta={"app.py": "v1"})
    graph.add("at", "", ["base"], delta={"scratch.txt": "notes"})
    graph.add("t1", "[task:todo] One", ["base"], delta={"one.py": "1"})
    graph.add("t2", "[task:todo] Two\n\nacceptance notes\n", ["base"], delta={"two.py": "2"})
    graph.edit("at")


def test_wip_adds_task_as_extra_parent(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    result = start_tasks(ctx, ["t1"])

    assert result.ok
    assert graph.parents_of("@") == ["base", "t1"]
    assert flag_of(graph.description_of("t1")) is Flag.WIP


def test_merge_arity_grows_by_one_per_task(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    assert len(graph.parents_of("@")) == 1

    start_tasks(ctx, ["t1", "t2"])

    assert graph.parents_of("@") == ["base", "t1", "t2"]


def test_wip_keeps_working_copy_delta_and_task_body(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    start_tasks(ctx, ["t2"])

    assert graph.revs["at"].delta == {"scratch.txt": "notes"}
    assert graph.content("@") == {"app.py": "v1", "two.py": "2", "scratch.txt": "notes"}
    assert graph.description_of("t2") == "[task:wip] Two\n\nacceptance notes\n"


def test_wip_on_working_copy_only_changes_the_flag(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    graph.edit("t1")

    result = start_tasks(ctx)

    assert result.ok
    assert "editing in place" in result.outcomes[0].detail
    assert graph.parents_of("t1") == ["base"]
    assert flag_of(graph.description_of("t1")) is Flag.WIP


def test_rerunning_wip_does_not_rewrite_anything(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    start_tasks(ctx, ["t1"])
    calls = len(graph.calls)

    result = start_tasks(ctx, ["t1"])

    assert result.ok
    assert len(graph.calls) == calls
    assert graph.parents_of("@") == ["base", "t1"]


def test_task_created_below_working_copy_becomes_sole_parent(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)
    graph.add("child", "[task:todo] Child of @", ["at"])

    start_tasks(ctx, ["child"])

    assert graph.parents_of("@") == ["child"]
    assert graph.parents_of("child") == ["base"]


def test_root_is_not_kept_as_merge_parent(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("at")
    graph.add("t1", "[task:todo] First")
    graph.edit("at")
    assert graph.parents_of("@") == [ROOT_ID]

    start_tasks(ctx, ["t1"])

    assert graph.parents_of("@") == ["t1"]


def test_batch_continues_after_a_failed_task(graph: FakeGraph, ctx: TaskContext) -> None:
    _setup(graph)

    result = start_tasks(ctx, ["base", "t1"])

    assert not result.ok
    assert [o.rev for o in result.failed] == ["base"]
    assert "not a task" in (result.failed[0].error or "")
    assert graph.parents_of("@") == ["base", "t1"]
    assert result.message == "1 of 2 task(s) marked wip"


def test_add_parent_reports_existing_parent(graph: FakeGraph) -> None:
    _setup(graph)

    assert add_parent(graph, "base") is False
    assert add_parent(graph, "t1") is True
    assert add_parent(graph, "t1") is False
