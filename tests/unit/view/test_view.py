"""Unit tests for the GraphView facade."""

import asyncio
import math

import pytest

from drillgraph.core.errors import InvalidOptionError, NodeNotFoundError, PatchError
from drillgraph.core.types import LayoutStrategy, Level, NodeKind
from drillgraph.events import (
    Event,
    FlowChanged,
    GraphUpdated,
    LayoutSettled,
    LayoutTicked,
    NavigationChanged,
    NodeSelected,
)
from drillgraph.view import GraphView


@pytest.fixture
def view(raw_nodes, raw_edges, login_flow):
    return GraphView(raw_nodes, raw_edges, flows=[login_flow])


@pytest.fixture
def events(view):
    received = []
    view.bus.subscribe(Event, received.append)
    return received


def node_ids(frame):
    return {n.id for n in frame.nodes}


class TestFrames:
    def test_project_frame(self, view):
        frame = view.frame()

        assert not frame.empty
        assert node_ids(frame) == {
            "layer-presentation",
            "layer-business",
            "layer-data",
            "layer-infrastructure",
        }
        assert len(frame.edges) == 3
        assert frame.strategy == LayoutStrategy.HIERARCHICAL
        assert frame.navigation.level == Level.PROJECT
        assert len(frame.breadcrumbs) == 1
        for node in frame.nodes:
            assert math.isfinite(node.x) and math.isfinite(node.y)

    def test_empty_graph_gives_empty_frame(self):
        frame = GraphView().frame()
        assert frame.empty
        assert frame.to_dict()["empty"] is True

    def test_frame_never_raises(self, view, monkeypatch):
        def broken():
            raise RuntimeError("renderer bug")

        monkeypatch.setattr(view, "_build_frame", broken)
        frame = view.frame()
        assert frame.empty
        assert frame.navigation == view.state

    def test_layout_mode_override(self, view):
        view.open(Level.FILE, "auth")
        assert view.set_layout_mode("clustered").is_ok()
        assert view.frame().strategy == LayoutStrategy.CLUSTERED
        assert view.set_layout_mode("smart").is_ok()
        assert view.frame().strategy == LayoutStrategy.CIRCULAR

    def test_invalid_options(self, view):
        for result in (view.set_layout_mode("spiral"), view.set_color_mode("rainbow"), view.set_bounds(0, 10)):
            assert result.is_err()
            assert isinstance(result.error, InvalidOptionError)

    def test_color_mode_applies(self, view):
        view.open(Level.FILE, "auth")
        view.set_color_mode("complexity")
        colors = {n.id: n.color for n in view.frame().nodes}
        assert colors["auth"] != colors["user"]

    def test_pinned_node_stays_put(self, view):
        view.open(Level.FILE, "auth")
        assert view.pin_node("auth", 100.0, 120.0).is_ok()

        frame = view.frame()
        auth = next(n for n in frame.nodes if n.id == "auth")
        assert (auth.x, auth.y) == (100.0, 120.0)
        assert view.unpin_node("auth")
        assert not view.unpin_node("auth")

    def test_positions_are_stable_across_patches(self, view):
        view.open(Level.FILE, "auth")
        before = {n.id: (n.x, n.y) for n in view.frame().nodes}

        view.apply_patch({"type": "node_modified", "data": {"id": "http", "metadata": {"complexity": 4}}})
        after = {n.id: (n.x, n.y) for n in view.frame().nodes}

        assert set(after) == set(before)


class TestNavigation:
    def test_drill_down_by_id(self, view, events):
        result = asyncio.run(view.drill_down("layer-business"))

        assert result.is_ok()
        assert view.state.level == Level.MODULE
        assert view.visible_graph().node_ids == ["auth"]
        assert any(isinstance(e, NavigationChanged) for e in events)

    def test_drill_down_unknown_node(self, view):
        result = asyncio.run(view.drill_down("ghost"))
        assert result.is_err()
        assert isinstance(result.error, NodeNotFoundError)

    def test_drill_to_symbols_and_back(self, view):
        view.open(Level.FILE, "auth")
        asyncio.run(view.drill_down("auth"))

        assert view.state.level == Level.SYMBOL
        assert set(view.visible_graph().node_ids) == {"auth.AuthService", "auth.login"}

        view.drill_up()
        assert view.state.level == Level.FILE

    def test_jump_to_breadcrumb(self, view):
        asyncio.run(view.drill_down("layer-business"))
        asyncio.run(view.drill_down("auth"))

        state = view.jump_to_breadcrumb(0)
        assert state.level == Level.PROJECT
        assert state.history == ()

    def test_reset_clears_focus_state(self, view):
        view.open(Level.FILE, "auth")
        view.select_node("auth")
        view.isolate_flow("login")

        state = view.reset()
        assert state.level == Level.PROJECT
        assert view.selected == set()
        assert view.flows.isolated is None

    def test_open_rejects_unknown_level(self, view):
        assert view.open("galaxy").is_err()


class TestInteraction:
    def test_search_filters_visible_nodes(self, view):
        view.open(Level.FILE, "auth")
        view.set_search_term("auth")

        assert view.visible_graph().node_ids == ["auth"]
        frame = view.frame()
        assert frame.nodes[0].relevance == pytest.approx(0.9)

        view.set_search_term("")
        assert len(view.visible_graph().nodes) == 4

    def test_kind_filter(self, view):
        view.open(Level.FILE, "auth")
        assert view.set_filter("widget").is_err()
        assert view.set_filter("file").value == NodeKind.FILE
        assert len(view.visible_graph().nodes) == 4
        assert view.set_filter(None).value is None

    def test_selection_creates_focus_halo(self, view, events):
        view.open(Level.FILE, "auth")
        result = view.select_node("auth")

        assert result.value == ("auth",)
        assert isinstance(events[-1], NodeSelected)
        scores = {n.id: n for n in view.frame().nodes}
        assert scores["auth"].halo and scores["auth"].importance == 25.0
        assert scores["header"].halo

    def test_additive_selection(self, view):
        view.select_node("auth")
        assert view.select_node("user", additive=True).value == ("auth", "user")
        assert view.select_node("ghost").is_err()

    def test_hover(self, view):
        view.open(Level.FILE, "auth")
        assert view.hover_node("auth").is_ok()
        assert view.hover_node("ghost").is_err()
        assert view.hover_edge("header", "auth").value == ("header", "auth")
        assert view.hover_edge("user", "header").is_err()
        assert view.hover_edge(None).value is None


class TestFlows:
    def test_isolate_flow(self, view, events):
        result = view.isolate_flow("login")
        assert result.is_ok()

        frame = view.frame()
        assert node_ids(frame) == {"header", "auth", "user", "auth.AuthService", "auth.login"}
        assert all(n.opacity == 1.0 for n in frame.nodes)
        assert frame.isolated_flow == "login"
        assert [(s.source, s.target) for s in frame.flow_path] == [("header", "auth"), ("auth", "user")]
        assert frame.flow_path[1].start == pytest.approx(0.3)
        assert any(isinstance(e, FlowChanged) for e in events)

    def test_active_flow_dims_other_nodes(self, view):
        view.open(Level.FILE, "auth")
        view.toggle_flow("login")

        opacity = {n.id: n.opacity for n in view.frame().nodes}
        assert opacity["auth"] == 1.0
        assert opacity["http"] == 0.3

    def test_active_flow_at_project_level_highlights_layers(self, view):
        view.toggle_flow("login")
        opacity = {n.id: n.opacity for n in view.frame().nodes}

        assert opacity["layer-business"] == 1.0
        assert opacity["layer-infrastructure"] == 0.3

    def test_clear_isolation(self, view):
        view.isolate_flow("login")
        view.clear_isolation()
        assert view.frame().isolated_flow is None
        assert view.state.level == Level.PROJECT

    def test_unknown_flow(self, view):
        assert view.toggle_flow("nope").is_err()
        assert view.isolate_flow("nope").is_err()


class TestPatches:
    def test_apply_patch_emits_graph_updated(self, view, events):
        result = view.apply_patch({"type": "node_added", "data": {"id": "cart", "type": "File", "path": "src/services/cart.ts"}})

        assert result.is_ok()
        updated = [e for e in events if isinstance(e, GraphUpdated)]
        assert updated[-1].version == 1
        assert updated[-1].node_count == 8
        assert view.snapshot.has_node("cart")

    def test_malformed_patch(self, view):
        result = view.apply_patch({"type": "explode"})
        assert result.is_err()
        assert isinstance(result.error, PatchError)

    def test_symbol_change_invalidates_cached_symbols(self, view):
        view.open(Level.FILE, "auth")
        asyncio.run(view.drill_down("auth"))
        assert "auth" in view.navigator.symbols

        view.apply_patch({"type": "symbol_changed", "data": {"id": "auth.login", "metadata": {"complexity": 9}}})
        assert "auth" not in view.navigator.symbols


class TestSimulation:
    def test_step_emits_ticks_until_settled(self, view, events):
        view.open(Level.FILE, "auth")
        handle = view.simulate()

        taken = view.step(1000)
        assert taken > 0
        assert not handle.active
        assert any(isinstance(e, LayoutTicked) for e in events)
        settled = [e for e in events if isinstance(e, LayoutSettled)]
        assert settled[-1].generation == handle.generation
        assert view.step() == 0

    def test_visible_change_cancels_running_simulation(self, view):
        view.open(Level.FILE, "auth")
        handle = view.simulate()
        view.step(1)

        view.set_search_term("auth")
        assert not handle.is_current
        assert handle.tick() is None
        assert view.step(5) == 0

    def test_frame_uses_live_simulation(self, view):
        view.open(Level.FILE, "auth")
        handle = view.simulate()
        view.step(2)

        frame = view.frame()
        assert node_ids(frame) == set(handle.positions())
