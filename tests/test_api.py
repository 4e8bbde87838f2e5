"""Tests for the HTTP routes."""

import uuid

import pytest
from fastapi.testclient import TestClient

from app import app


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def process_id():
    return str(uuid.uuid4())


def add_step(client, process_id, number, name, step_type="task"):
    response = client.post(
        f"/api/oe-processes/{process_id}/steps",
        json={"step_number": number, "step_name": name, "step_type": step_type},
    )
    assert response.status_code == 201
    return response.json()


def add_edge(client, process_id, source, target, priority=0, label=None):
    return client.post(
        f"/api/oe-processes/{process_id}/edges",
        json={"from_step_id": source["id"], "to_step_id": target["id"], "priority": priority, "label": label},
    )


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestStepRoutes:
    """Step CRUD over HTTP."""

    def test_create_update_delete(self, client, process_id):
        step = add_step(client, process_id, 1, "Collect")

        response = client.put(f"/api/process-steps/{step['id']}", json={"step_details": "From intake"})
        assert response.status_code == 200
        assert response.json()["step_details"] == "From intake"

        assert client.delete(f"/api/process-steps/{step['id']}").status_code == 200
        assert client.get(f"/api/oe-processes/{process_id}/steps").json() == []

    def test_missing_step_is_404(self, client):
        assert client.put("/api/process-steps/nope", json={"step_name": "x"}).status_code == 404
        assert client.delete("/api/process-steps/nope").status_code == 404

    def test_invalid_step_type_rejected(self, client, process_id):
        response = client.post(
            f"/api/oe-processes/{process_id}/steps",
            json={"step_number": 1, "step_name": "X", "step_type": "loop"},
        )
        assert response.status_code == 422


class TestEdgeRoutes:
    """Edge creation and deletion over HTTP."""

    def test_edge_to_other_process_is_400(self, client, process_id):
        a = add_step(client, process_id, 1, "A")
        b = add_step(client, str(uuid.uuid4()), 1, "B")

        assert add_edge(client, process_id, a, b).status_code == 400

    def test_delete_edge(self, client, process_id):
        a = add_step(client, process_id, 1, "A")
        b = add_step(client, process_id, 2, "B")
        edge = add_edge(client, process_id, a, b).json()

        assert client.delete(f"/api/process-step-edges/{edge['id']}").status_code == 200
        assert client.delete(f"/api/process-step-edges/{edge['id']}").status_code == 404


class TestDecisionTreeRoutes:
    """Graph and layout endpoints."""

    def test_graph(self, client, process_id):
        a = add_step(client, process_id, 1, "A", "start")
        b = add_step(client, process_id, 2, "B")
        add_edge(client, process_id, a, b)

        graph = client.get(f"/api/oe-processes/{process_id}/graph").json()
        assert [n["step_name"] for n in graph["nodes"]] == ["A", "B"]
        assert len(graph["edges"]) == 1

    def test_decision_tree_fan_out(self, client, process_id):
        d = add_step(client, process_id, 1, "Approved?", "decision")
        yes = add_step(client, process_id, 2, "Ship")
        no = add_step(client, process_id, 3, "Reject", "end")
        maybe = add_step(client, process_id, 4, "Escalate")
        add_edge(client, process_id, d, no, priority=2, label="No")
        add_edge(client, process_id, d, yes, priority=0, label="Yes")
        add_edge(client, process_id, d, maybe, priority=1)

        result = client.get(f"/api/oe-processes/{process_id}/decision-tree").json()
        xs = {n["data"]["stepName"]: n["position"]["x"] for n in result["nodes"]}

        assert xs == {"Approved?": 400, "Ship": 100, "Escalate": 400, "Reject": 700}
        assert [e["label"] for e in result["edges"]] == ["Yes", None, "No"]

    def test_decision_tree_zoom(self, client, process_id):
        add_step(client, process_id, 1, "Only")

        result = client.get(f"/api/oe-processes/{process_id}/decision-tree", params={"zoom": 0.5}).json()

        assert result["nodes"][0]["position"] == {"x": 200, "y": 25}
        assert result["metadata"]["zoomPercent"] == 50

    def test_empty_process(self, client, process_id):
        result = client.get(f"/api/oe-processes/{process_id}/decision-tree").json()

        assert result["empty"] is True
        assert result["message"] == "No decision tree data to display"

    def test_posted_graph_with_cycle_is_400(self, client):
        graph = {
            "nodes": [
                {"id": "A", "step_number": 1, "step_name": "A"},
                {"id": "B", "step_number": 2, "step_name": "B"},
                {"id": "C", "step_number": 3, "step_name": "C"},
            ],
            "edges": [
                {"id": "1", "from_step_id": "A", "to_step_id": "B"},
                {"id": "2", "from_step_id": "B", "to_step_id": "C"},
                {"id": "3", "from_step_id": "C", "to_step_id": "B"},
            ],
        }
        response = client.post("/api/decision-tree/layout", json=graph)

        assert response.status_code == 400
        assert "cycle" in response.json()["detail"]

    def test_posted_graph_ignores_dangling_edge(self, client):
        graph = {
            "nodes": [{"id": "A", "step_number": 1, "step_name": "A"}],
            "edges": [{"id": "1", "from_step_id": "A", "to_step_id": "ghost"}],
        }
        result = client.post("/api/decision-tree/layout", json=graph).json()

        assert len(result["nodes"]) == 1
        assert result["edges"] == []


class TestLayoutLimits:
    """Oversized or deep graphs posted for layout."""

    def test_deep_chain_lays_out(self, client):
        count = 1200
        graph = {
            "nodes": [{"id": f"S{i}", "step_number": i, "step_name": f"S{i}"} for i in range(count)],
            "edges": [{"id": f"e{i}", "from_step_id": f"S{i}", "to_step_id": f"S{i + 1}"} for i in range(count - 1)],
        }
        response = client.post("/api/decision-tree/layout", json=graph)

        assert response.status_code == 200
        assert len(response.json()["nodes"]) == count

    def test_exploding_graph_is_400(self, client):
        nodes = [{"id": "S0", "step_number": 0, "step_name": "S0"}]
        edges = []
        for i in range(16):
            for name in (f"A{i}", f"B{i}", f"S{i + 1}"):
                nodes.append({"id": name, "step_number": len(nodes), "step_name": name})
            edges += [
                {"id": f"sa{i}", "from_step_id": f"S{i}", "to_step_id": f"A{i}"},
                {"id": f"sb{i}", "from_step_id": f"S{i}", "to_step_id": f"B{i}", "priority": 1},
                {"id": f"an{i}", "from_step_id": f"A{i}", "to_step_id": f"S{i + 1}"},
                {"id": f"bn{i}", "from_step_id": f"B{i}", "to_step_id": f"S{i + 1}"},
            ]
        response = client.post("/api/decision-tree/layout", json={"nodes": nodes, "edges": edges})

        assert response.status_code == 400
        assert "tree nodes" in response.json()["detail"]
