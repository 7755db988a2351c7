"""Unit tests for graph enrichment."""

import pytest

from drillgraph.config import ScoringConfig
from drillgraph.core.types import (
    ArchitecturalLayer,
    ComplexityClass,
    NodeKind,
    Relationship,
    RelationshipType,
    SemanticGroup,
)
from drillgraph.model.enrich import GraphModel, detect_layer, enrich, make_label


class TestEnrichment:
    def test_counts_and_version(self, raw_nodes, raw_edges):
        snapshot = GraphModel().enrich(raw_nodes, raw_edges, version=3)

        assert len(snapshot.nodes) == 7
        assert len(snapshot.edges) == 6
        assert snapshot.version == 3

    def test_complexity_classes(self, snapshot):
        classes = {n.id: n.complexity_class for n in snapshot.nodes}

        assert classes["footer"] == ComplexityClass.LOW
        assert classes["header"] == ComplexityClass.MEDIUM
        assert classes["auth"] == ComplexityClass.HIGH
        assert classes["auth.login"] == ComplexityClass.MEDIUM

    def test_critical_class_above_high_threshold(self):
        snapshot = enrich([{"id": "big", "type": "File", "metadata": {"complexity": 40}}], [])
        assert snapshot.node("big").complexity_class == ComplexityClass.CRITICAL

    def test_importance_is_capped(self, snapshot):
        # 6 refs * 2 + public 5 + tested 3 = 20
        assert snapshot.node("auth").importance_score == 20.0
        # 2 refs * 2 + public 5 + callable 2
        assert snapshot.node("auth.login").importance_score == 11.0
        assert snapshot.node("footer").importance_score == 5.0

    def test_private_node_loses_public_bonus(self):
        snapshot = enrich([{"id": "x", "type": "Variable", "metadata": {"isPublic": False}}], [])
        assert snapshot.node("x").importance_score == 0.0

    def test_semantic_score_blend(self, snapshot):
        # complexity 12/30*4 + (1 child per 300 lines)/10*3 + degree 4/10*3
        assert snapshot.node("auth").semantic_score == pytest.approx(1.6 + 0.1 + 1.2)

    def test_semantic_score_without_lines_uses_child_count(self):
        nodes = [
            {"id": "m", "type": "Module"},
            {"id": "a", "type": "Function"},
            {"id": "b", "type": "Function"},
        ]
        edges = [
            {"source": "m", "target": "a", "relationship": "contains"},
            {"source": "m", "target": "b", "relationship": "contains"},
        ]
        snapshot = enrich(nodes, edges)
        # density 2/10*3, relations 2/10*3
        assert snapshot.node("m").semantic_score == pytest.approx(0.6 + 0.6)

    def test_size_is_clamped(self, snapshot):
        config = ScoringConfig()
        for node in snapshot.nodes:
            assert config.size_min <= node.size <= config.size_max
        assert snapshot.node("auth").size == config.size_max
        assert snapshot.node("header").size == pytest.approx(25.0 * 1.0 * (1 + 11 / 40))

    def test_groups_and_file_ids(self, snapshot):
        assert snapshot.node("header").group == SemanticGroup.FOUNDATION
        assert snapshot.node("auth.AuthService").group == SemanticGroup.STRUCTURE
        assert snapshot.node("auth.login").group == SemanticGroup.ACTION

        assert snapshot.node("header").file_id == "header"
        assert snapshot.node("auth.login").file_id == "auth"

    def test_layers_from_paths(self, snapshot):
        layers = {n.id: n.layer for n in snapshot.nodes}
        assert layers["header"] == ArchitecturalLayer.PRESENTATION
        assert layers["auth"] == ArchitecturalLayer.BUSINESS
        assert layers["user"] == ArchitecturalLayer.DATA
        assert layers["http"] == ArchitecturalLayer.INFRASTRUCTURE

    def test_edge_metrics(self, snapshot):
        edge = next(e for e in snapshot.edges if e.source == "header")
        assert edge.relationship == Relationship.IMPORTS
        assert edge.relationship_type == RelationshipType.STRUCTURAL
        assert edge.semantic_strength == pytest.approx(3.5)
        assert not edge.is_circular

    def test_circular_edges_are_discounted(self, raw_nodes, raw_edges):
        raw_edges.append({"source": "user", "target": "auth", "relationship": "imports"})
        snapshot = enrich(raw_nodes, raw_edges)

        circular = {(e.source, e.target) for e in snapshot.edges if e.is_circular}
        assert circular == {("auth", "user"), ("user", "auth")}
        edge = next(e for e in snapshot.edges if (e.source, e.target) == ("auth", "user"))
        assert edge.semantic_strength == pytest.approx(1.75)

    def test_weight_scales_strength(self):
        nodes = [{"id": "a", "type": "File"}, {"id": "b", "type": "File"}]
        heavy = enrich(nodes, [{"source": "a", "target": "b", "relationship": "uses", "weight": 3}])
        # uses 2.0 * min(1 + 2 * 0.25, 1.5)
        assert heavy.edges[0].semantic_strength == pytest.approx(3.0)

    def test_enrichment_is_deterministic(self, raw_nodes, raw_edges):
        assert enrich(raw_nodes, raw_edges) == enrich(raw_nodes, raw_edges)


class TestGracefulDegradation:
    def test_malformed_and_duplicate_nodes_are_skipped(self, caplog):
        nodes = [
            {"id": "a", "type": "File"},
            {"type": "File"},
            "not a node",
            {"id": "a", "type": "Function"},
        ]
        snapshot = enrich(nodes, [])

        assert snapshot.node_ids == ["a"]
        assert snapshot.node("a").kind == NodeKind.FILE
        assert "Duplicate node id" in caplog.text

    def test_unknown_kind_becomes_file(self, caplog):
        snapshot = enrich([{"id": "x", "type": "Widget"}], [])
        assert snapshot.node("x").kind == NodeKind.FILE
        assert "Unknown kind" in caplog.text

    def test_dangling_edges_are_dropped(self, caplog):
        snapshot = enrich(
            [{"id": "a", "type": "File"}],
            [{"source": "a", "target": "ghost", "relationship": "uses"}],
        )
        assert snapshot.edges == ()
        assert "dangling" in caplog.text

    def test_unknown_relationship_becomes_references(self):
        snapshot = enrich(
            [{"id": "a", "type": "File"}, {"id": "b", "type": "File"}],
            [{"from_node_id": "a", "to_node_id": "b", "relationship": "calls"}],
        )
        assert snapshot.edges[0].relationship == Relationship.REFERENCES

    def test_empty_input(self):
        snapshot = enrich([], [])
        assert snapshot.is_empty
        assert snapshot.edges == ()

    def test_negative_metadata_is_clamped(self):
        snapshot = enrich([{"id": "a", "type": "File", "metadata": {"complexity": -5, "lineCount": None}}], [])
        assert snapshot.node("a").metadata.complexity == 0.0
        assert snapshot.node("a").metadata.line_count == 0.0


class TestLayerDetection:
    def test_directory_keywords(self):
        assert detect_layer("src/components/Header.tsx") == ArchitecturalLayer.PRESENTATION
        assert detect_layer("src/services/auth.ts") == ArchitecturalLayer.BUSINESS
        assert detect_layer("app/repositories/orders.py") == ArchitecturalLayer.DATA
        assert detect_layer("lib/utilities/x.py") == ArchitecturalLayer.INFRASTRUCTURE

    def test_file_name_is_not_a_hint(self):
        assert detect_layer("src/service.ts") == ArchitecturalLayer.UNKNOWN

    def test_leftmost_segment_wins(self):
        assert detect_layer("components/services/x.ts") == ArchitecturalLayer.PRESENTATION

    def test_explicit_layer_wins(self):
        assert detect_layer("src/components/x.ts", explicit="Data") == ArchitecturalLayer.DATA

    def test_unknown_explicit_layer_falls_back_to_path(self):
        assert detect_layer("src/models/x.ts", explicit="bogus") == ArchitecturalLayer.DATA

    def test_empty_path(self):
        assert detect_layer(None) == ArchitecturalLayer.UNKNOWN


class TestLabels:
    config = ScoringConfig()

    def test_short_names_are_kept(self):
        assert make_label("Header.tsx", NodeKind.FILE, self.config) == "Header.tsx"

    def test_file_names_keep_extension(self):
        label = make_label("VeryLongComponentName.tsx", NodeKind.FILE, self.config)
        assert label.endswith(".tsx")
        assert "..." in label
        assert len(label) <= 20

    def test_camel_case_keeps_first_and_last_word(self):
        label = make_label("handleUserAuthenticationRequest", NodeKind.FUNCTION, self.config)
        assert label == "handleRequest"

    def test_plain_names_are_truncated(self):
        label = make_label("averyveryverylongname", NodeKind.VARIABLE, self.config)
        assert label == "averyveryver..."
        assert len(label) == 15


class TestSummary:
    def test_summarize(self, snapshot):
        summary = GraphModel().summarize(snapshot)

        assert summary["total_nodes"] == 7
        assert summary["total_edges"] == 6
        assert summary["orphans"] == 0
        assert summary["circular_edges"] == 0
        assert summary["nodes_by_kind"] == {"File": 5, "Class": 1, "Function": 1}
        assert summary["edges_by_relationship"]["imports"] == 3
        assert summary["layers"]["presentation"] == 2
