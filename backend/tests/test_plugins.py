"""
Test Suite for Converter Plugins.

Tests:
- Plugin registry and hook threading
- Bundled Notion, Google Sheets and Weather plugins
"""
import pytest

from flowbridge.models.workflow_models import Direction
from flowbridge.services.mappings.plugins.base import ConverterPlugin


class _FailingPlugin(ConverterPlugin):
    id = "failing"
    name = "Failing"

    def get_node_mappings(self):
        return {}

    def after_conversion(self, workflow, direction):
        raise RuntimeError("boom")

    def after_node_mapping(self, source_node, target_node, direction):
        raise RuntimeError("node boom")


class _TaggingPlugin(ConverterPlugin):
    id = "tagging"
    name = "Tagging"

    def get_node_mappings(self):
        return {"n8nToMake": {"n8n-nodes-base.slack": {"type": "tag:Slack", "parameterMap": {}}}}

    def after_conversion(self, workflow, direction):
        workflow["tagged"] = True
        return workflow


class TestPluginRegistry:
    """Tests for PluginRegistry."""

    def test_build_registry_skips_unknown_ids(self):
        from flowbridge.services.mappings.plugins.registry import build_registry

        registry = build_registry(["notion-integration", "does-not-exist"])

        assert [plugin.id for plugin in registry.all()] == ["notion-integration"]

    def test_failing_plugin_is_skipped(self):
        """A hook that raises is logged and the next plugin still runs."""
        from flowbridge.services.mappings.plugins.registry import PluginRegistry

        registry = PluginRegistry()
        registry.register(_FailingPlugin())
        registry.register(_TaggingPlugin())

        result = registry.execute_hook("after_conversion", {"name": "x"}, Direction.N8N_TO_MAKE)

        assert result == {"name": "x", "tagged": True}

    def test_failures_are_passed_to_on_error(self):
        from flowbridge.services.mappings.plugins.registry import PluginRegistry

        registry = PluginRegistry()
        registry.register(_FailingPlugin())
        failures = []

        registry.execute_hook("after_conversion", {"name": "x"}, Direction.N8N_TO_MAKE, on_error=failures.append)

        assert failures == ["Plugin failing failed in after_conversion: boom"]

    def test_failures_appear_in_conversion_logs(self, converter, plugin_registry, http_workflow):
        """Hook failures during a conversion are reported as warnings of that conversion."""
        from flowbridge.models.workflow_models import LogLevel

        plugin_registry.register(_FailingPlugin())

        result = converter.convert_sync(http_workflow, "n8n", "make")

        warnings = [log.message for log in result.logs if log.type == LogLevel.WARNING]
        assert "Plugin failing failed in after_node_mapping: node boom" in warnings
        assert "Plugin failing failed in after_conversion: boom" in warnings
        assert result.converted_workflow["flow"][0]["module"] == "http:ActionSendData"

    def test_unknown_hook(self):
        from flowbridge.services.mappings.plugins.registry import PluginRegistry

        with pytest.raises(ValueError):
            PluginRegistry().execute_hook("on_everything", {})

    def test_invalid_plugin_mappings_are_rejected(self):
        from flowbridge.core.errors import MappingConfigError
        from flowbridge.services.mappings.plugins.registry import PluginRegistry

        class Broken(ConverterPlugin):
            id = "broken"

            def get_node_mappings(self):
                return {"n8nToMake": {"a": {"parameterMap": {}}}}

        registry = PluginRegistry()
        with pytest.raises(MappingConfigError):
            registry.register(Broken())
        assert registry.all() == []

    def test_later_plugin_wins(self):
        from flowbridge.services.mappings.plugins.registry import PluginRegistry

        registry = PluginRegistry()
        registry.register(_TaggingPlugin())

        entry = registry.get_node_mappings()[Direction.N8N_TO_MAKE]["n8n-nodes-base.slack"]

        assert entry.target_type == "tag:Slack"
        assert entry.origin == "plugin:tagging"

    def test_plugin_description(self):
        from flowbridge.services.mappings.plugins.notion import NotionPlugin

        info = NotionPlugin().to_dict()

        assert info["id"] == "notion-integration"
        assert info["mappingCount"] == {"n8nToMake": 2, "makeToN8n": 2}


class TestGoogleSheetsPlugin:
    """Tests for the Google Sheets plugin."""

    @pytest.mark.parametrize("column,key", [("A", "0"), ("C", "2"), ("Z", "25"), ("AA", "26")])
    def test_column_helpers(self, column, key):
        from flowbridge.services.mappings.plugins.google_sheets import column_to_index, index_to_column

        assert column_to_index(column) == key
        assert index_to_column(key) == column

    def test_to_make(self):
        from flowbridge.services.mappings.plugins.google_sheets import GoogleSheetsPlugin

        source = {
            "type": "n8n-nodes-base.googleSheets",
            "parameters": {"documentId": "abc", "sheetName": "Sheet1", "values": {"A": "x", "B": "y"}},
        }
        module = {"parameters": {"spreadsheetId": "abc", "sheetId": "Sheet1"}, "mapper": {}}

        result = GoogleSheetsPlugin().after_node_mapping(source, module, Direction.N8N_TO_MAKE)

        assert result["parameters"] == {}
        assert result["mapper"]["spreadsheetId"] == "/abc"
        assert result["mapper"]["sheetId"] == "Sheet1"
        assert result["mapper"]["values"] == {"0": "x", "1": "y"}
        assert result["mapper"]["valueInputOption"] == "USER_ENTERED"

    def test_to_n8n(self):
        from flowbridge.services.mappings.plugins.google_sheets import GoogleSheetsPlugin

        source = {
            "module": "google-sheets:addRow",
            "mapper": {"values": {"0": "x"}, "valueInputOption": "RAW"},
        }
        node = {"parameters": {"documentId": "/abc"}}

        result = GoogleSheetsPlugin().after_node_mapping(source, node, Direction.MAKE_TO_N8N)

        assert result["parameters"] == {
            "documentId": "abc",
            "operation": "append",
            "values": {"A": "x"},
            "options": {"valueInputMode": "RAW"},
        }


class TestNotionPlugin:
    """Tests for the Notion plugin."""

    def test_properties_become_a_list(self):
        from flowbridge.services.mappings.plugins.notion import NotionPlugin

        source = {"type": "n8n-nodes-base.notion", "parameters": {"properties": {"Name": "Ada", "Age": 36}}}

        result = NotionPlugin().after_node_mapping(source, {"mapper": {}}, Direction.N8N_TO_MAKE)

        assert result["mapper"]["properties"] == [
            {"name": "Name", "value": "Ada"},
            {"name": "Age", "value": 36},
        ]

    def test_other_nodes_untouched(self):
        from flowbridge.services.mappings.plugins.notion import NotionPlugin

        target = {"mapper": {}}

        assert NotionPlugin().after_node_mapping({"type": "x"}, target, Direction.N8N_TO_MAKE) == {"mapper": {}}


class TestWeatherPlugin:
    """Tests for the Weather plugin."""

    def test_n8n_defaults(self):
        from flowbridge.services.mappings.plugins.weather import WeatherPlugin

        source = {"module": "weather:ActionGetCurrentWeather"}
        node = {"parameters": {"units": "imperial"}}

        result = WeatherPlugin().after_node_mapping(source, node, Direction.MAKE_TO_N8N)

        assert result["parameters"] == {
            "units": "imperial",
            "resource": "currentWeather",
            "authentication": "apiKey",
        }

    def test_make_defaults(self):
        from flowbridge.services.mappings.plugins.weather import WeatherPlugin

        source = {"type": "n8n-nodes-base.openWeatherMap"}

        result = WeatherPlugin().after_node_mapping(source, {"mapper": {"city": "Oslo"}}, Direction.N8N_TO_MAKE)

        assert result["mapper"] == {"city": "Oslo", "type": "name"}
