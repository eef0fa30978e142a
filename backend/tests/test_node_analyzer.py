"""
Test Suite for the Node Analyzer.

Tests:
- Default rules on n8n workflows
- Make.com scenarios (nested routes included)
- Custom and failing rules
"""


def _rule_ids(result):
    return [issue.rule_id for issue in result.issues]


class TestDefaultRules:
    """Tests for the default rule set."""

    def test_n8n_workflow(self):
        from flowbridge.services.converter.node_analyzer import NodeAnalyzer

        workflow = {
            "nodes": [
                {"id": "1", "name": "Custom", "type": "custom-nodes-base.customNode",
                 "credentials": {"customApi": {"id": "1"}}},
                {"id": "2", "name": "Hook", "type": "n8n-nodes-base.webhook", "parameters": {"path": "x"}},
                {"id": "3", "name": "Set", "type": "n8n-nodes-base.set",
                 "parameters": {"values": {"a": "={{ $json.a ? 1 : 2 }}"}}},
                {"id": "4", "name": "Fetch", "type": "n8n-nodes-base.httpRequest",
                 "parameters": {"url": "https://example.com/image.png"}},
            ],
            "connections": {},
        }

        results = NodeAnalyzer().analyze_workflow(workflow)

        assert [_rule_ids(result) for result in results] == [
            ["custom-node", "credentials-node"],
            ["webhook-node"],
            ["complex-expression"],
            ["binary-data"],
        ]
        assert results[0].issues[1].severity.value == "info"

    def test_clean_node(self, http_workflow):
        from flowbridge.services.converter.node_analyzer import NodeAnalyzer

        results = NodeAnalyzer().analyze_workflow(http_workflow)

        assert len(results) == 1
        assert results[0].issues == []
        assert results[0].to_dict()["nodeName"] == "HTTP Request"

    def test_make_scenario(self, router_scenario):
        """Route modules are analyzed; the custom node rule is n8n only."""
        from flowbridge.services.converter.node_analyzer import NodeAnalyzer

        router_scenario["flow"][1]["routes"][0]["flow"][0]["parameters"] = {"__IMTCONN__": 5}

        results = NodeAnalyzer().analyze_workflow(router_scenario)

        assert [result.node_name for result in results] == ["Hook", "Route", "Post A", "Post B"]
        assert _rule_ids(results[0]) == ["webhook-node"]
        assert _rule_ids(results[2]) == ["credentials-node"]
        assert results[3].issues == []

    def test_unknown_shape(self):
        from flowbridge.services.converter.node_analyzer import NodeAnalyzer

        assert NodeAnalyzer().analyze_workflow({"name": "x"}) == []


class TestRuleManagement:
    """Tests for adding and removing rules."""

    def test_failing_rule_is_reported(self, http_workflow):
        from flowbridge.services.converter.node_analyzer import AnalysisRule, NodeAnalyzer

        def broken(node):
            raise KeyError("missing")

        analyzer = NodeAnalyzer(rules=[])
        analyzer.add_rule(AnalysisRule("broken", "Broken", "Always fails", broken, "n/a"))

        result = analyzer.analyze_workflow(http_workflow)[0]

        assert _rule_ids(result) == ["rule-error"]
        assert result.issues[0].rule_name == "Rule Error: Broken"

    def test_remove_rule(self):
        from flowbridge.services.converter.node_analyzer import NodeAnalyzer

        analyzer = NodeAnalyzer()
        analyzer.remove_rule("webhook-node")

        workflow = {
            "nodes": [{"id": "1", "name": "Hook", "type": "n8n-nodes-base.webhook"}],
            "connections": {},
        }

        assert analyzer.analyze_workflow(workflow)[0].issues == []
