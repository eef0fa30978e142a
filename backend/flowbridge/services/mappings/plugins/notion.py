"""Notion pages, databases and the database trigger."""
import copy
from typing import Any, Dict

from flowbridge.models.workflow_models import Direction
from flowbridge.services.mappings.plugins.base import ConverterPlugin


class NotionPlugin(ConverterPlugin):
    id = "notion-integration"
    name = "Notion Integration"
    description = "Provides mappings for Notion nodes and modules"

    def get_node_mappings(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            "n8nToMake": {
                "n8n-nodes-base.notion": {
                    "type": "notion:ActionCreateDatabaseItem",
                    "parameterMap": {
                        "resource": "resource",
                        "operation": "operation",
                        "databaseId": "database",
                        "pageId": "page",
                        "title": "title",
                        "properties": "properties",
                    },
                    "description": "Notion node for database and page operations",
                },
                "n8n-nodes-base.notionTrigger": {
                    "type": "notion:watchDatabaseItems",
                    "parameterMap": {
                        "databaseId": "database",
                        "limit": "limit",
                        "event": "select",
                    },
                    "description": "Notion trigger for watching database changes",
                },
            },
            "makeToN8n": {
                "notion:ActionCreateDatabaseItem": {
                    "type": "n8n-nodes-base.notion",
                    "parameterMap": {
                        "resource": "resource",
                        "operation": "operation",
                        "database": "databaseId",
                        "page": "pageId",
                        "title": "title",
                        "properties": "properties",
                    },
                    "description": "Notion module for database and page operations",
                },
                "notion:watchDatabaseItems": {
                    "type": "n8n-nodes-base.notionTrigger",
                    "parameterMap": {
                        "database": "databaseId",
                        "limit": "limit",
                        "select": "event",
                    },
                    "description": "Notion trigger module for watching database changes",
                },
            },
        }

    def after_node_mapping(self, source_node, target_node, direction):
        # Make.com expects database properties as a name/value list
        if direction != Direction.N8N_TO_MAKE or source_node.get("type") != "n8n-nodes-base.notion":
            return target_node
        properties = (source_node.get("parameters") or {}).get("properties")
        if isinstance(properties, dict):
            mapper = target_node.setdefault("mapper", {})
            mapper["properties"] = [
                {"name": key, "value": copy.deepcopy(value)} for key, value in properties.items()
            ]
        return target_node
