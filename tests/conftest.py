"""Shared fixtures for drillgraph tests."""

import pytest

from drillgraph.core.types import Flow
from drillgraph.model.enrich import GraphModel


def make_file(node_id, path, **metadata):
    return {"id": node_id, "type": "File", "name": path.rsplit("/", 1)[-1], "path": path, "metadata": metadata}


def make_symbol(node_id, kind, file_id, name=None, **metadata):
    return {
        "id": node_id,
        "type": kind,
        "name": name or node_id.rsplit(".", 1)[-1],
        "file": file_id,
        "metadata": metadata,
    }


@pytest.fixture
def raw_nodes():
    return [
        make_file("header", "src/components/Header.tsx", complexity=4, referenceCount=3, lineCount=120),
        make_file("footer", "src/components/Footer.tsx", complexity=1, lineCount=40),
        make_file("auth", "src/services/auth.ts", complexity=12, referenceCount=6, lineCount=300, hasTests=True),
        make_file("user", "src/models/user.ts", complexity=2, lineCount=60),
        make_file("http", "src/utils/http.ts", complexity=3, referenceCount=2, lineCount=80),
        make_symbol("auth.AuthService", "Class", "auth", complexity=8),
        make_symbol("auth.login", "Function", "auth", complexity=5, referenceCount=2),
    ]


@pytest.fixture
def raw_edges():
    return [
        {"source": "header", "target": "auth", "relationship": "imports"},
        {"source": "auth", "target": "user", "relationship": "imports"},
        {"source": "auth", "target": "http", "relationship": "imports"},
        {"source": "footer", "target": "header", "relationship": "uses"},
        {"source": "auth", "target": "auth.AuthService", "relationship": "defines"},
        {"source": "auth.AuthService", "target": "auth.login", "relationship": "contains"},
    ]


@pytest.fixture
def snapshot(raw_nodes, raw_edges):
    return GraphModel().enrich(raw_nodes, raw_edges)


@pytest.fixture
def login_flow():
    return Flow(id="login", name="Login", orderedFileIds=["header", "auth", "user"], isCritical=True)


@pytest.fixture
def sample_graph_json(raw_nodes, raw_edges):
    return {"nodes": raw_nodes, "edges": raw_edges}
