"""Unit tests for incremental graph updates."""

from drillgraph.core.errors import PatchError
from drillgraph.core.types import ComplexityClass, PatchEvent, PatchType
from drillgraph.incremental.patches import IncrementalGraph


def event(kind, **data):
    return PatchEvent(type=kind, data=data)


class TestIncrementalGraph:
    def test_initial_snapshot(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        assert graph.version == 0
        assert len(graph.snapshot.nodes) == 7

    def test_node_added(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        result = graph.apply(event(PatchType.NODE_ADDED, id="cart", type="File", path="src/services/cart.ts"))

        assert result.is_ok()
        outcome = result.value
        assert outcome.added_nodes == ("cart",)
        assert outcome.snapshot.version == 1
        assert outcome.snapshot.has_node("cart")

    def test_node_added_without_id_is_rejected(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        result = graph.apply(event(PatchType.NODE_ADDED, type="File"))

        assert result.is_err()
        assert isinstance(result.error, PatchError)
        assert graph.version == 0

    def test_node_modified_keeps_ids_and_reenriches(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        before = graph.snapshot.node_ids

        result = graph.apply(event(PatchType.NODE_MODIFIED, id="footer", metadata={"complexity": 40}))

        assert result.is_ok()
        assert graph.snapshot.node_ids == before
        footer = graph.snapshot.node("footer")
        assert footer.complexity_class == ComplexityClass.CRITICAL
        # untouched metadata survives the merge
        assert footer.metadata.line_count == 40

    def test_node_modified_cannot_change_identity(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        graph.apply(event(PatchType.NODE_MODIFIED, nodeId="footer", id="footer", name="Renamed.tsx"))

        assert graph.snapshot.node("footer").name == "Renamed.tsx"
        assert len(graph.snapshot.nodes) == 7

    def test_node_modified_unknown_id(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        assert graph.apply(event(PatchType.NODE_MODIFIED, id="ghost")).is_err()

    def test_edge_added(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        graph.apply(event(PatchType.EDGE_ADDED, source="user", target="http", relationship="uses"))

        assert len(graph.snapshot.edges) == 7
        assert graph.snapshot.index().has_edge("user", "http")

    def test_dangling_edge_patch_is_dropped_by_enrichment(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        result = graph.apply(event(PatchType.EDGE_ADDED, source="user", target="ghost"))

        assert result.is_ok()
        assert len(graph.snapshot.edges) == 6

    def test_symbol_changed_invalidates_owning_file(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        result = graph.apply(event(PatchType.SYMBOL_CHANGED, id="auth.login", metadata={"complexity": 20}))

        assert result.value.invalidated_file_id == "auth"
        assert graph.snapshot.node("auth.login").metadata.complexity == 20

    def test_symbol_changed_with_explicit_file(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        result = graph.apply(event(PatchType.SYMBOL_CHANGED, fileId="user"))
        assert result.value.invalidated_file_id == "user"

    def test_symbol_changed_without_target(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        assert graph.apply(event(PatchType.SYMBOL_CHANGED)).is_err()

    def test_apply_all_collects_failures(self, raw_nodes, raw_edges):
        graph = IncrementalGraph(raw_nodes, raw_edges)
        report = graph.apply_all([
            event(PatchType.NODE_ADDED, id="cart", type="File"),
            event(PatchType.NODE_MODIFIED, id="ghost"),
            event(PatchType.EDGE_ADDED, source="cart", target="auth", relationship="imports"),
        ])

        assert report.applied == 2
        assert len(report.failures) == 1
        assert report.snapshot.version == 2

    def test_alias_id_keys(self):
        graph = IncrementalGraph([{"node_id": "a", "type": "File"}], [])
        assert graph.snapshot.has_node("a")
        assert graph.raw_node("a")["id"] == "a"

    def test_patch_event_from_dict(self):
        parsed = PatchEvent.model_validate({"type": "node_added", "data": {"id": "x"}})
        assert parsed.type == PatchType.NODE_ADDED
