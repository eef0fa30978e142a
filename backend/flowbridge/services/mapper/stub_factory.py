"""
Stub Factory - placeholders for nodes that could not be converted.

A stub keeps the original type, id, name and the full original parameter
tree so nothing is lost and the node can be rebuilt by hand:

- n8n target: a `n8n-nodes-base.noOp` node with `parameters.__stubInfo`
- Make.com target: a `helper:Note` module with `mapper.__stubInfo`
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from flowbridge.models.workflow_models import Platform, StubInfo

logger = logging.getLogger(__name__)

N8N_STUB_TYPE = "n8n-nodes-base.noOp"
MAKE_STUB_TYPE = "helper:Note"
STUB_NOTE_COLOR = "#FF9800"


def stub_name_for(module_type: Any) -> str:
    """Default n8n name of a stub: TODO_<module type with ':' replaced>."""
    return f"TODO_{str(module_type or 'unknown').replace(':', '_')}"


def is_stub(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    if node.get("type") == N8N_STUB_TYPE and "__stubInfo" in (node.get("parameters") or {}):
        return True
    return node.get("module") == MAKE_STUB_TYPE and "__stubInfo" in (node.get("mapper") or {})


def get_stub_info(node: Any) -> Optional[Dict[str, Any]]:
    if not is_stub(node):
        return None
    if node.get("type") == N8N_STUB_TYPE:
        return node["parameters"]["__stubInfo"]
    return node["mapper"]["__stubInfo"]


class StubFactory:
    """Builds stub nodes and modules."""

    def create_make_stub(
        self,
        source_node: Dict[str, Any],
        module_id: int,
        designer: Dict[str, Any],
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stub module for an n8n node."""
        node_type = source_node.get("type") or "unknown"
        info = StubInfo(
            original_type=node_type,
            original_id=source_node.get("id"),
            original_name=source_node.get("name") or "",
            original_parameters=copy.deepcopy(source_node.get("parameters") or {}),
            conversion_note=note or (
                "This module was created as a stub during conversion. "
                "Please replace with appropriate Make.com module."
            ),
        )
        credentials = source_node.get("credentials")
        stub_info = info.to_dict(Platform.N8N)
        if credentials:
            stub_info["originalCredentials"] = copy.deepcopy(credentials)

        return {
            "id": module_id,
            "module": MAKE_STUB_TYPE,
            "version": 1,
            "parameters": {
                "note": f"TODO: Replace this stub. Original n8n node type: {node_type}",
            },
            "mapper": {"__stubInfo": stub_info},
            "metadata": {
                "designer": dict(designer),
                "note": {
                    "text": (
                        "## Manual Conversion Required\n"
                        f"This is a stub for an n8n node of type \"{node_type}\" that couldn't be "
                        "automatically converted.\n\n"
                        "Please review the original node data in the mapper.__stubInfo property "
                        "and replace with an appropriate Make.com module."
                    ),
                    "color": STUB_NOTE_COLOR,
                },
            },
        }

    def create_n8n_stub(
        self,
        source_module: Dict[str, Any],
        node_id: str,
        name: str,
        position: List[float],
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stub node for a Make.com module."""
        module_type = source_module.get("module") or "unknown"
        designer = (source_module.get("metadata") or {}).get("designer") or {}
        info = StubInfo(
            original_type=module_type,
            original_id=source_module.get("id"),
            original_name=designer.get("name") or "",
            original_parameters=copy.deepcopy(source_module.get("parameters") or {}),
            conversion_note=note or (
                "This node was created as a stub during conversion. "
                "Please replace with appropriate n8n node."
            ),
            original_mapper=copy.deepcopy(source_module.get("mapper") or {}),
        )
        stub_info = info.to_dict(Platform.MAKE)

        return {
            "id": node_id,
            "name": name,
            "type": N8N_STUB_TYPE,
            "typeVersion": 1,
            "position": list(position),
            "parameters": {
                "__stubInfo": stub_info,
                "displayName": f"TODO: Replace {module_type}",
                "notes": (
                    "## Manual Conversion Required\n"
                    f"This is a stub for a Make.com module of type \"{module_type}\" that couldn't be "
                    "automatically converted.\n\n"
                    "Please review the original module data in the __stubInfo parameter "
                    "and replace with an appropriate n8n node."
                ),
            },
        }
