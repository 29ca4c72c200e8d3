from __future__ import annotations

import pytest

from fake_graph import FakeGraph
from jjtask.context import TaskContext


@pytest.fixture
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def ctx(graph: FakeGraph) -> TaskContext:
    return TaskContext(store=graph)
