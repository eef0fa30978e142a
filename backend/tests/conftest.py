"""Pytest configuration and fixtures for converter tests."""
import copy
from pathlib import Path
from typing import Any, Dict

import pytest

from flowbridge.services.converter.orchestrator import WorkflowConverter
from flowbridge.services.mappings.base_mappings import BaseMappingRegistry
from flowbridge.services.mappings.mapping_database import MappingDatabase
from flowbridge.services.mappings.plugins.registry import build_registry
from flowbridge.services.mappings.resolver import NodeMappingResolver
from flowbridge.services.mappings.user_mappings import UserMappingStore


ALL_PLUGINS = ["notion-integration", "google-sheets-integration", "weather-integration"]


# ==================== Mapping fixtures ====================

@pytest.fixture
def plugin_registry():
    """Fresh registry with every bundled plugin."""
    return build_registry(ALL_PLUGINS)


@pytest.fixture
def user_store(tmp_path: Path) -> UserMappingStore:
    """User mapping store backed by a temporary JSON file."""
    return UserMappingStore(tmp_path / "user_mappings.json")


@pytest.fixture
def database(plugin_registry, user_store) -> MappingDatabase:
    return MappingDatabase(BaseMappingRegistry(), plugin_registry, user_store)


@pytest.fixture
def resolver(database) -> NodeMappingResolver:
    return NodeMappingResolver(database.snapshot())


@pytest.fixture
def converter(database) -> WorkflowConverter:
    """Converter isolated from the global registries."""
    return WorkflowConverter(database)


# ==================== Workflow fixtures ====================

HTTP_N8N_WORKFLOW = {
    "name": "HTTP Workflow",
    "nodes": [
        {
            "id": "1",
            "name": "HTTP Request",
            "type": "n8n-nodes-base.httpRequest",
            "typeVersion": 1,
            "position": [250, 300],
            "parameters": {
                "url": "https://example.com/api",
                "method": "POST",
                "headers": {"Content-Type": "application/json"},
                "body": {"key": "value"},
            },
        }
    ],
    "connections": {},
}

SET_N8N_WORKFLOW = {
    "name": "Set Workflow",
    "nodes": [
        {
            "id": "1",
            "name": "Set",
            "type": "n8n-nodes-base.set",
            "typeVersion": 1,
            "position": [250, 300],
            "parameters": {
                "values": {
                    "name": "={{ $json.name }}",
                    "count": "={{ $json.count * 2 }}",
                    "active": "={{ $json.active === true }}",
                    "message": "=Hello, {{ $json.name }}!",
                }
            },
        }
    ],
    "connections": {},
}

ROUTER_MAKE_SCENARIO = {
    "name": "Router Scenario",
    "flow": [
        {
            "id": 1,
            "module": "webhooks:CustomWebhook",
            "version": 1,
            "parameters": {"url": "incoming"},
            "mapper": {},
            "metadata": {"designer": {"x": 0, "y": 0, "name": "Hook"}},
        },
        {
            "id": 2,
            "module": "builtin:BasicRouter",
            "version": 1,
            "parameters": {},
            "mapper": {},
            "metadata": {"designer": {"x": 300, "y": 0, "name": "Route"}},
            "routes": [
                {
                    "condition": {"operator": "eq", "left": "{{1.kind}}", "right": "a"},
                    "flow": [
                        {
                            "id": 3,
                            "module": "slack:CreateMessage",
                            "version": 1,
                            "parameters": {},
                            "mapper": {"channelId": "#a", "text": "A"},
                            "metadata": {"designer": {"x": 600, "y": -150, "name": "Post A"}},
                        }
                    ],
                },
                {
                    "condition": {"operator": "neq", "left": "{{1.kind}}", "right": "a"},
                    "flow": [
                        {
                            "id": 4,
                            "module": "slack:CreateMessage",
                            "version": 1,
                            "parameters": {},
                            "mapper": {"channelId": "#b", "text": "B"},
                            "metadata": {"designer": {"x": 600, "y": 150, "name": "Post B"}},
                        }
                    ],
                },
            ],
        },
    ],
}


@pytest.fixture
def http_workflow() -> Dict[str, Any]:
    return copy.deepcopy(HTTP_N8N_WORKFLOW)


@pytest.fixture
def set_workflow() -> Dict[str, Any]:
    return copy.deepcopy(SET_N8N_WORKFLOW)


@pytest.fixture
def router_scenario() -> Dict[str, Any]:
    return copy.deepcopy(ROUTER_MAKE_SCENARIO)
