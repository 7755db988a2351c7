"""Unit tests for context-dependent scoring."""

import pytest

from drillgraph.scoring.engine import ScoringContext, ScoringEngine


class TestRelevance:
    def test_name_and_content_match(self, snapshot):
        engine = ScoringEngine()
        assert engine.relevance(snapshot.node("auth"), "auth") == pytest.approx(0.9)

    def test_content_only_match(self, snapshot):
        # "services" only appears in the path
        engine = ScoringEngine()
        assert engine.relevance(snapshot.node("auth"), "services") == pytest.approx(0.3)

    def test_kind_match(self, snapshot):
        engine = ScoringEngine()
        assert engine.relevance(snapshot.node("user"), "file") == pytest.approx(0.1)

    def test_empty_term_scores_zero(self, snapshot):
        engine = ScoringEngine()
        assert engine.relevance(snapshot.node("auth"), "   ") == 0.0

    def test_case_insensitive(self, snapshot):
        engine = ScoringEngine()
        node = snapshot.node("header")
        assert engine.relevance(node, "HEADER") == engine.relevance(node, "header")

    def test_metadata_description_is_searched(self):
        from drillgraph.model.enrich import enrich

        snapshot = enrich([{"id": "a", "type": "File", "metadata": {"description": "Token refresh"}}], [])
        assert ScoringEngine().relevance(snapshot.node("a"), "refresh") == pytest.approx(0.3)


class TestImportance:
    def test_selected_node_gets_boost_and_halo(self, snapshot):
        engine = ScoringEngine(index=snapshot.index())
        importance, halo = engine.importance(snapshot.node("auth"), frozenset({"auth"}))

        # 20 + 5 capped at 25
        assert importance == 25.0
        assert halo

    def test_neighbours_get_smaller_boost(self, snapshot):
        engine = ScoringEngine(index=snapshot.index())
        importance, halo = engine.importance(snapshot.node("header"), frozenset({"auth"}))

        assert importance == pytest.approx(11.0 + 3.0)
        assert halo

    def test_unrelated_nodes_are_unchanged(self, snapshot):
        engine = ScoringEngine(index=snapshot.index())
        importance, halo = engine.importance(snapshot.node("footer"), frozenset({"auth"}))

        assert importance == snapshot.node("footer").importance_score
        assert not halo

    def test_without_index_only_selected_nodes_are_boosted(self, snapshot):
        engine = ScoringEngine()
        _, halo = engine.importance(snapshot.node("header"), frozenset({"auth"}))
        assert not halo


class TestScoring:
    def test_scores_are_deterministic(self, snapshot):
        engine = ScoringEngine(index=snapshot.index())
        context = ScoringContext(search_term=" auth ", selected_node_ids=frozenset({"user"}))

        first = engine.score_all(snapshot.nodes, context)
        second = engine.score_all(snapshot.nodes, context)
        assert first == second
        assert context.search_term == "auth"

    def test_rank_orders_by_relevance_then_importance(self, snapshot):
        engine = ScoringEngine(index=snapshot.index())
        ranked = engine.rank(snapshot.nodes, ScoringContext(search_term="auth"))

        assert ranked[0].node_id == "auth"
        relevances = [s.relevance for s in ranked]
        assert relevances == sorted(relevances, reverse=True)
