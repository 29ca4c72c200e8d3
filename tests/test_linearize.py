from __future__ import annotations

from fake_graph import ROOT_ID, FakeGraph
from jjtask.context import TaskContext
from jjtask.engine import create_task, find_work_tip, finish_tasks, start_tasks
from jjtask.flags import Flag, flag_of
from jjtask.results import EMPTY_TASK, ORPHAN_TASK, UNCOMMITTED_CHANGES


def _merge(graph: FakeGraph, *parents: str, delta: dict[str, str] | None = None) -> None:
    graph.add("at", "", list(parents), delta=delta)
    graph.edit("at")


def test_create_wip_done_scenario_yields_linear_chain(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("at")
    graph.edit("at")

    task_a = create_task(ctx, "A").outcomes[0].change_id
    assert task_a is not None
    start_tasks(ctx, [task_a])
    assert graph.parents_of("@") == [task_a]

    task_b = create_task(ctx, "B", parent="root()").outcomes[0].change_id
    assert task_b is not None
    start_tasks(ctx, [task_b])
    assert graph.parents_of("@") == [task_a, task_b]

    result = finish_tasks(ctx, [task_a])

    assert result.ok
    assert flag_of(graph.description_of(task_a)) is Flag.DONE
    assert graph.parents_of("@") == [task_b]
    assert graph.parents_of(task_b) == [task_a]
    assert graph.is_ancestor_of(task_a, task_b)
    assert not result.advisories_of(ORPHAN_TASK)


def test_done_on_all_task_merge_reduces_arity_to_one(graph: FakeGraph, ctx: TaskContext) -> None:
    for name in ("t1", "t2", "t3"):
        graph.add(name, f"[task:wip] {name}", delta={f"{name}.py": name})
    _merge(graph, "t1", "t2", "t3")

    finish_tasks(ctx, ["t2"])

    assert len(graph.parents_of("@")) == 1
    for other in ("t1", "t3", "@"):
        assert graph.is_ancestor_of("t2", other)
    assert graph.parents_of("t1") == ["t2"]
    assert graph.parents_of("t3") == ["t1"]
    assert graph.parents_of("@") == ["t3"]


def test_tasks_are_stacked_above_plain_work(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("w1", "refactor helpers", delta={"lib.py": "x"})
    graph.add("t1", "[task:wip] Feature", delta={"feature.py": "f"})
    graph.add("t2", "[task:wip] Docs", delta={"docs.md": "d"})
    _merge(graph, "w1", "t1", "t2", delta={"scratch": "s"})
    before = graph.content("@")

    result = finish_tasks(ctx, ["t1"])

    assert result.ok
    assert graph.parents_of("t1") == ["w1"]
    assert graph.parents_of("t2") == ["t1"]
    assert graph.parents_of("@") == ["t2"]
    assert graph.revs["at"].delta == {"scratch": "s"}
    assert graph.content("@") == before


def test_work_tip_is_the_head_of_work_parents(graph: FakeGraph) -> None:
    graph.add("w1", "base work")
    graph.add("w2", "more work", ["w1"])

    assert find_work_tip(graph, ["w1", "w2"]) == "w2"
    assert find_work_tip(graph, ["w1"]) == "w1"


def test_work_tip_falls_back_to_first_parent_when_query_fails(graph: FakeGraph) -> None:
    graph.add("w1", "a")
    graph.add("w2", "b")
    graph.fail_on("query_ids")

    assert find_work_tip(graph, ["w1", "w2"]) == "w1"


def test_unrelated_work_heads_stay_below_working_copy(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("w1", "left work", delta={"l": "1"})
    graph.add("w3", "right work", delta={"r": "1"})
    graph.add("t1", "[task:wip] Task", delta={"t": "1"})
    _merge(graph, "w1", "w3", "t1")

    result = finish_tasks(ctx, ["t1"])

    assert result.ok
    parents = graph.parents_of("@")
    assert parents[0] == "t1"
    assert len(parents) == 2
    assert graph.parents_of("t1")[0] in {"w1", "w3"}
    assert graph.is_ancestor_of("w1", "@")
    assert graph.is_ancestor_of("w3", "@")
    assert graph.content("@") == {"l": "1", "r": "1", "t": "1"}


def test_done_is_resumable_after_a_failed_rebase(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:wip] One")
    graph.add("t2", "[task:wip] Two")
    _merge(graph, "t1", "t2")
    graph.fail_on("rebase_source", "@")

    first = finish_tasks(ctx, ["t1"])

    assert not first.ok
    assert "linearizing" in (first.failed[0].error or "")
    assert flag_of(graph.description_of("t1")) is Flag.DONE
    assert graph.parents_of("t2") == ["t1"]
    assert graph.parents_of("@") == ["t1", "t2"]

    second = finish_tasks(ctx, ["t1"])

    assert second.ok
    assert graph.parents_of("@") == ["t2"]
    assert graph.parents_of("t2") == ["t1"]


def test_task_never_merged_is_reported_as_orphan(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:todo] Side quest", delta={"side": "1"})
    _merge(graph, ROOT_ID)

    result = finish_tasks(ctx, ["t1"])

    assert result.ok
    assert flag_of(graph.description_of("t1")) is Flag.DONE
    orphans = result.advisories_of(ORPHAN_TASK)
    assert len(orphans) == 1
    assert orphans[0].revisions == ("t1",)
    assert "orphan tasks" in orphans[0].message


def test_failed_orphan_check_is_not_reported(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:todo] Side quest", delta={"side": "1"})
    _merge(graph, ROOT_ID)
    graph.fail_on("is_ancestor_of", "t1")

    result = finish_tasks(ctx, ["t1"])

    assert result.ok
    assert not result.advisories_of(ORPHAN_TASK)


def test_done_on_working_copy_defaults_and_is_not_orphan(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:wip] In place", delta={"x": "1"})
    graph.edit("t1")

    result = finish_tasks(ctx)

    assert result.ok
    assert result.outcomes[0].change_id == "t1"
    assert not result.advisories


def test_empty_task_and_uncommitted_changes_are_advisories(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:wip] Nothing yet")
    graph.add("t2", "[task:wip] Other", delta={"b": "1"})
    _merge(graph, "t1", "t2", delta={"dirty": "1"})

    result = finish_tasks(ctx, ["t1"])

    assert result.ok
    assert result.advisories_of(EMPTY_TASK)
    assert result.advisories_of(UNCOMMITTED_CHANGES)
    assert flag_of(graph.description_of("t1")) is Flag.DONE


def test_batch_records_failures_and_continues(graph: FakeGraph, ctx: TaskContext) -> None:
    graph.add("t1", "[task:wip] One", delta={"a": "1"})
    _merge(graph, "t1")

    result = finish_tasks(ctx, ["missing", "t1"])

    assert [o.ok for o in result.outcomes] == [False, True]
    assert "failed to mark missing done" in (result.outcomes[0].error or "")
    assert flag_of(graph.description_of("t1")) is Flag.DONE
    assert result.message == "1 of 2 task(s) marked done"
