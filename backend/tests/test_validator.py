"""
Test Suite for Workflow Validation.

Tests:
- Document shape and platform checks
- n8n node and connection checks
- Make.com module, id and route checks
"""
import pytest

from flowbridge.validation import ValidationLevel, validate_workflow


class TestDocumentShape:
    """Tests for top-level checks."""

    @pytest.mark.parametrize("document", [None, {}, []])
    def test_empty(self, document):
        result = validate_workflow(document)

        assert not result.valid
        assert result.errors[0].message == "Workflow is empty"

    def test_not_a_workflow(self):
        result = validate_workflow({"name": "x"})

        assert not result.valid
        assert "Not a workflow" in result.errors[0].message

    def test_platform_mismatch(self, router_scenario):
        result = validate_workflow(router_scenario, "n8n")

        assert not result.valid
        assert result.errors[0].message == "Expected a n8n workflow, got a make workflow"

    def test_unsupported_platform(self, http_workflow):
        result = validate_workflow(http_workflow, "zapier")

        assert result.errors[0].message == "Unsupported platform: zapier"


class TestN8nValidation:
    """Tests for n8n workflows."""

    def test_valid_workflow(self, http_workflow):
        result = validate_workflow(http_workflow)

        assert result.valid
        assert result.platform.value == "n8n"
        assert result.summary == "Workflow valid (n8n, 0 warnings)"

    def test_missing_fields_and_duplicates(self, http_workflow):
        http_workflow["nodes"].append({"name": "HTTP Request", "parameters": []})

        result = validate_workflow(http_workflow)

        messages = [issue.message for issue in result.errors]
        assert "Duplicate node name 'HTTP Request'" in messages
        assert "Missing required property: type" in messages
        assert "Parameters must be an object" in messages
        assert [issue.message for issue in result.warnings] == ["Missing property: id"]

    def test_connection_targets(self, http_workflow):
        http_workflow["connections"] = {
            "HTTP Request": {"main": [[{"node": "Ghost"}, {"type": "main"}]]},
            "Nobody": {"main": []},
        }

        result = validate_workflow(http_workflow)

        assert [str(issue) for issue in result.issues] == [
            "[WARNING] connections.HTTP Request.main[0] Connection target 'Ghost' is not a node",
            "[ERROR] connections.HTTP Request.main[0] Connection target has no node",
            "[WARNING] connections.Nobody Connection source 'Nobody' is not a node",
        ]
        assert not result.valid


class TestMakeValidation:
    """Tests for Make.com scenarios."""

    def test_valid_scenario(self, router_scenario):
        result = validate_workflow(router_scenario, "make")

        assert result.valid
        assert result.issues == []

    def test_duplicate_ids_across_routes(self, router_scenario):
        router_scenario["flow"][1]["routes"][1]["flow"][0]["id"] = 3

        result = validate_workflow(router_scenario)

        assert not result.valid
        assert result.errors[0].path == "flow[1].routes[1].flow[0]"
        assert result.errors[0].message == "Duplicate module id 3"

    def test_module_checks(self):
        scenario = {
            "flow": [
                {"module": "slack:CreateMessage"},
                {"id": "2", "mapper": "text"},
                {"id": 3, "module": "x:y", "metadata": {"designer": {"x": "left"}}, "routes": {}},
            ]
        }

        result = validate_workflow(scenario)

        assert [(i.level, i.path, i.message) for i in result.issues] == [
            (ValidationLevel.WARNING, "name", "Scenario has no name"),
            (ValidationLevel.ERROR, "flow[0]", "Missing required property: id"),
            (ValidationLevel.WARNING, "flow[1]", "Module id should be an integer"),
            (ValidationLevel.ERROR, "flow[1]", "Missing required property: module"),
            (ValidationLevel.ERROR, "flow[1].mapper", "Parameters must be an object"),
            (ValidationLevel.WARNING, "flow[2].metadata.designer", "Designer position must have numeric x and y"),
            (ValidationLevel.ERROR, "flow[2].routes", "Routes must be a list"),
        ]
        assert result.summary == "Workflow invalid: 4 errors, 3 warnings"

    def test_legacy_blueprint_is_validated(self):
        legacy = {"blueprint": {"name": "Old"}, "modules": [{"id": 1, "module": "slack:CreateMessage"}]}

        result = validate_workflow(legacy)

        assert result.valid
        assert result.platform.value == "make"
