"""Unit tests for flow isolation and flow state."""

import pytest

from drillgraph.core.errors import FlowNotFoundError
from drillgraph.core.types import Flow
from drillgraph.flows.isolator import FlowIsolator, FlowState, animation_schedule
from drillgraph.model.enrich import enrich


@pytest.fixture
def chain():
    nodes = [{"id": n, "type": "File"} for n in ("A", "B", "C", "D")]
    edges = [
        {"source": "A", "target": "B", "relationship": "imports"},
        {"source": "C", "target": "B", "relationship": "uses"},
        {"source": "C", "target": "D", "relationship": "imports"},
    ]
    return enrich(nodes, edges)


class TestFlowIsolator:
    def test_isolate_keeps_flow_files_and_their_edges(self, chain):
        flow = Flow(id="f", files=["A", "B", "C"])
        isolated = FlowIsolator().isolate(flow, chain)

        assert isolated.node_ids == ["A", "B", "C"]
        assert {(e.source, e.target) for e in isolated.edges} == {("A", "B"), ("C", "B")}

    def test_isolate_keeps_symbols_of_flow_files(self, snapshot, login_flow):
        isolated = FlowIsolator().isolate(login_flow, snapshot)
        assert set(isolated.node_ids) == {"header", "auth", "user", "auth.AuthService", "auth.login"}

    def test_include_neighbors(self, chain):
        flow = Flow(id="f", files=["A"])
        isolated = FlowIsolator().isolate(flow, chain, include_neighbors=True)
        assert set(isolated.node_ids) == {"A", "B"}

    def test_ordered_path_accepts_reverse_edges(self, chain):
        flow = Flow(id="f", files=["A", "B", "C"])
        path = FlowIsolator().ordered_path(flow, chain)

        assert [(e.source, e.target) for e in path] == [("A", "B"), ("C", "B")]

    def test_missing_hops_are_skipped(self, chain):
        flow = Flow(id="f", files=["A", "D", "C", "C"])
        path = FlowIsolator().ordered_path(flow, chain)
        assert [(e.source, e.target) for e in path] == [("C", "D")]

    def test_strongest_parallel_edge_wins(self):
        graph = enrich(
            [{"id": "A", "type": "File"}, {"id": "B", "type": "File"}],
            [
                {"source": "A", "target": "B", "relationship": "references"},
                {"source": "A", "target": "B", "relationship": "extends"},
            ],
        )
        path = FlowIsolator().ordered_path(Flow(id="f", files=["A", "B"]), graph)
        assert path[0].relationship.value == "extends"

    def test_animation_schedule_is_staggered(self, chain):
        flow = Flow(id="f", files=["A", "B", "C"])
        steps = animation_schedule(FlowIsolator().ordered_path(flow, chain))

        assert [s.index for s in steps] == [0, 1]
        assert steps[1].start == pytest.approx(0.3)
        assert steps[1].end == pytest.approx(1.8)
        assert animation_schedule([]) == []


class TestFlowState:
    @pytest.fixture
    def state(self):
        return FlowState([Flow(id="a", files=["A"]), Flow(id="b", files=["B"])])

    def test_toggle(self, state):
        assert state.toggle("a").value == frozenset({"a"})
        assert state.toggle("b").value == frozenset({"a", "b"})
        assert state.toggle("a").value == frozenset({"b"})

    def test_isolate_makes_flow_the_only_active_one(self, state):
        state.toggle("a")
        result = state.isolate("b")

        assert result.value.id == "b"
        assert state.active == {"b"}
        assert state.isolated_flow.id == "b"

    def test_toggle_clears_isolation(self, state):
        state.isolate("a")
        state.toggle("b")
        assert state.isolated is None

    def test_unknown_flow(self, state):
        for result in (state.toggle("zzz"), state.isolate("zzz")):
            assert result.is_err()
            assert isinstance(result.error, FlowNotFoundError)

    def test_set_flows_drops_stale_ids(self, state):
        state.isolate("a")
        state.set_flows([Flow(id="b", files=["B"])])

        assert state.active == set()
        assert state.isolated is None

    def test_active_file_ids(self, state):
        state.toggle("a")
        state.toggle("b")
        assert state.active_file_ids() == {"A", "B"}
