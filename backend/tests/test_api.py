"""
Test Suite for the HTTP API.

Tests:
- Health endpoints
- Convert, validate and analyze endpoints
- Mapping tables and coverage
- User mapping CRUD
"""
import pytest


@pytest.fixture
def client(monkeypatch):
    """Test client over fresh global stores so tests do not share user mappings."""
    from fastapi.testclient import TestClient

    from flowbridge.services.converter import orchestrator
    from flowbridge.services.mappings import mapping_database, user_mappings

    monkeypatch.setattr(user_mappings, "_store", user_mappings.UserMappingStore())
    monkeypatch.setattr(mapping_database, "_database", None)
    monkeypatch.setattr(orchestrator, "_converter", None)

    from flowbridge.main import app

    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Tests for health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_details(self, client):
        data = client.get("/api/health").json()

        assert data["mappings"]["n8nToMake"] > 40
        assert data["user_mappings"] == 0


class TestConvertEndpoint:
    """Tests for POST /api/convert."""

    def test_convert_n8n_to_make(self, client, http_workflow):
        response = client.post("/api/convert", json={
            "workflow": http_workflow,
            "sourcePlatform": "n8n",
            "targetPlatform": "make",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["convertedWorkflow"]["flow"][0]["module"] == "http:ActionSendData"
        assert data["unmappedNodes"] == []
        assert data["debug"]["direction"] == "n8nToMake"

    def test_malformed_options_fall_back(self, client, http_workflow):
        response = client.post("/api/convert", json={
            "workflow": http_workflow,
            "options": {"mappingAccuracy": "high", "moduleRef": "first", "expressionContext": [1]},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["convertedWorkflow"]["flow"][0]["module"] == "http:ActionSendData"
        warnings = [log["message"] for log in data["logs"] if log["type"] == "warning"]
        assert any("mappingAccuracy" in message for message in warnings)
        assert any("moduleRef" in message for message in warnings)
        assert any("expressionContext" in message for message in warnings)

    def test_convert_make_to_n8n_with_options(self, client, router_scenario):
        response = client.post("/api/convert", json={
            "workflow": router_scenario,
            "options": {"preserveIds": True},
        })

        nodes = response.json()["convertedWorkflow"]["nodes"]
        assert [node["id"] for node in nodes] == ["1", "2", "3", "4"]

    def test_conversion_problems_do_not_fail_the_request(self, client):
        response = client.post("/api/convert", json={"workflow": None, "sourcePlatform": "n8n"})

        assert response.status_code == 200
        log = response.json()["logs"][0]
        assert log["type"] == "error"
        assert log["message"] == "Source workflow is empty"

    def test_document_too_large(self, client, monkeypatch, http_workflow):
        from flowbridge.core.config import settings

        monkeypatch.setattr(settings, "max_document_size_mb", 0.0001)

        response = client.post("/api/convert", json={"workflow": http_workflow})

        assert response.status_code == 413
        assert response.json()["detail"]["error"] == "E1005"


class TestInspectionEndpoints:
    """Tests for validate, analyze, node-mappings and coverage."""

    def test_validate(self, client):
        data = client.post("/api/validate", json={"workflow": {"nodes": [{}], "connections": {}}}).json()

        assert not data["valid"]
        assert data["platform"] == "n8n"

    def test_analyze(self, client, router_scenario):
        data = client.post("/api/analyze", json={"workflow": router_scenario}).json()

        assert data["nodes"][0]["issues"][0]["ruleId"] == "webhook-node"

    def test_node_mappings(self, client):
        data = client.get("/api/node-mappings").json()

        slack = data["mappings"]["n8nToMake"]["n8n-nodes-base.slack"]
        assert slack["type"] == "slack:CreateMessage"
        assert slack["origin"] == "base"
        assert data["counts"]["makeToN8n"] == len(data["mappings"]["makeToN8n"])
        assert {plugin["id"] for plugin in data["plugins"]} >= {"notion-integration"}

    def test_coverage(self, client):
        data = client.get("/api/coverage").json()

        assert set(data) == {"n8nToMake", "makeToN8n"}
        assert "n8n-nodes-base.splitInBatches" in data["n8nToMake"]["unmappedNodes"]
        assert "n8n-nodes-base.if" not in data["n8nToMake"]["unmappedNodes"]


class TestUserMappingEndpoints:
    """Tests for user mapping CRUD."""

    MAPPING = {
        "name": "Custom Slack",
        "sourceType": "n8n-nodes-base.slack",
        "targetType": "custom:Chat",
        "direction": "n8nToMake",
        "parameterMap": {"text": "message"},
    }

    def test_create_list_delete(self, client):
        created = client.post("/api/user-mappings", json=self.MAPPING)

        assert created.status_code == 201
        mapping_id = created.json()["id"]
        assert [m["id"] for m in client.get("/api/user-mappings").json()["mappings"]] == [mapping_id]

        assert client.delete(f"/api/user-mappings/{mapping_id}").json() == {"deleted": mapping_id}
        assert client.get("/api/user-mappings").json()["mappings"] == []

    def test_user_mapping_is_used_by_convert(self, client):
        client.post("/api/user-mappings", json=self.MAPPING)
        workflow = {
            "name": "Chat",
            "nodes": [{"id": "1", "name": "Say", "type": "n8n-nodes-base.slack", "parameters": {"text": "hi"}}],
            "connections": {},
        }

        data = client.post("/api/convert", json={"workflow": workflow}).json()

        module = data["convertedWorkflow"]["flow"][0]
        assert module["module"] == "custom:Chat"
        assert module["parameters"] == {"message": "hi"}
        assert data["debug"]["nodes"][0]["mappingSource"] == "user"

    def test_invalid_mapping(self, client):
        response = client.post("/api/user-mappings", json={"sourceType": "x"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "E2002"

    def test_delete_missing(self, client):
        response = client.delete("/api/user-mappings/nope")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "E2003"
