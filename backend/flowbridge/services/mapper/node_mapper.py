"""
Node Mapper - converts one source node into one target node.

Flow per node:
1. Resolve the mapping entry for the source type
2. Rename parameters through the entry's parameter map
3. Apply declared value transforms (after renaming)
4. Rewrite expressions for the target platform, or evaluate them
5. Carry credentials, position and router routes
6. Run plugin `after_node_mapping` hooks

Unmapped types never raise: they become stubs built by the StubFactory.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from flowbridge.models.workflow_models import (
    ConversionOptions,
    Direction,
    MappingStatus,
    NodeMappingEntry,
)
from flowbridge.services.mapper.stub_factory import StubFactory, stub_name_for
from flowbridge.services.mappings.base_mappings import (
    CONDITION_NODE_OUTPUTS,
    MAKE_ROUTER_TYPE,
    N8N_ROUTER_TYPE,
)
from flowbridge.services.mappings.plugins.registry import PluginRegistry
from flowbridge.services.mappings.resolver import NodeMappingResolver
from flowbridge.services.mappings.transforms import apply_transform
from flowbridge.services.parameters.parameter_processor import ParameterProcessor, evaluate_parameters

logger = logging.getLogger(__name__)

CREDENTIAL_PREFIX = "__IMTCONN__"


# n8n switch operator -> Make.com route condition operator
N8N_TO_MAKE_OPERATORS = {
    "equal": "eq",
    "notEqual": "neq",
    "contains": "contains",
    "larger": "gt",
    "smaller": "lt",
}
MAKE_TO_N8N_OPERATORS = {value: key for key, value in N8N_TO_MAKE_OPERATORS.items()}

# IF/Filter (v2) operation -> switch operator
CONDITION_OPERATORS = {
    "equals": "equal",
    "notEquals": "notEqual",
    "gt": "larger",
    "lt": "smaller",
}
# IF/Filter (v1) condition groups
CONDITION_GROUPS = ("string", "number", "boolean", "dateTime")

# Default canvas layout for nodes without a position
MAKE_X_SPACING = 300
N8N_X_START = 250
N8N_X_SPACING = 200
N8N_Y = 300


def is_router_type(node_type: Any) -> bool:
    return node_type in (N8N_ROUTER_TYPE, MAKE_ROUTER_TYPE)


@dataclass
class NodeConversion:
    """Outcome of converting one node."""
    node: Dict[str, Any]
    stub: bool
    mapping: Optional[NodeMappingEntry] = None
    dropped_parameters: List[str] = field(default_factory=list)
    review_paths: List[str] = field(default_factory=list)
    review_reasons: Dict[str, List[str]] = field(default_factory=dict)
    plugin_errors: List[str] = field(default_factory=list)

    @property
    def status(self) -> MappingStatus:
        if self.stub:
            return MappingStatus.STUB
        if self.dropped_parameters:
            return MappingStatus.PARTIAL
        return MappingStatus.FULL


class NodeMapper:
    """
    Converts single nodes and modules between n8n and Make.com.

    `node_refs` (n8n node name -> Make.com module id) and `module_names`
    (Make.com module id -> n8n node name) let expressions that point at other
    nodes be rewritten to the target's identifiers.
    """

    def __init__(
        self,
        resolver: NodeMappingResolver,
        options: Optional[ConversionOptions] = None,
        plugins: Optional[PluginRegistry] = None,
        stub_factory: Optional[StubFactory] = None,
        node_refs: Optional[Dict[str, str]] = None,
        module_names: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.resolver = resolver
        self.options = options or ConversionOptions()
        self.plugins = plugins
        self.stub_factory = stub_factory or StubFactory()
        self.node_refs = node_refs or {}
        self.module_names = module_names or {}
        self.context = context if context is not None else (self.options.expression_context or {})

    # ==================== Public API ====================

    def convert(
        self,
        source_node: Dict[str, Any],
        direction: Direction,
        target_id: Any = None,
        name: Optional[str] = None,
        index: int = 0,
        module_ref: Optional[int] = None,
        upstream_ref: Optional[str] = None,
    ) -> NodeConversion:
        """
        Convert one node.

        Args:
            source_node: n8n node or Make.com module (read only)
            direction: conversion direction
            target_id: id of the new node; defaults to a value derived from `index`
            name: n8n name of the new node (Make.com to n8n only)
            index: position of the node in the source document
            module_ref: Make.com id that `$json` refers to (n8n to Make.com)
            upstream_ref: Make.com id of the module feeding this one (Make.com to n8n)
        """
        direction = Direction(direction)
        source_type = self.source_type(source_node, direction)
        entry = self.resolver.resolve(source_type, direction)
        if entry is None and direction == Direction.N8N_TO_MAKE:
            entry = self._condition_entry(source_type)

        if entry is None:
            logger.debug(f"No mapping for {source_type}, creating stub")
            return NodeConversion(
                node=self.build_stub(source_node, direction, target_id, name, index),
                stub=True,
            )

        if direction == Direction.N8N_TO_MAKE:
            conversion = self._to_make(source_node, entry, target_id, index, module_ref)
        else:
            conversion = self._to_n8n(source_node, entry, target_id, name, index, upstream_ref)

        if self.plugins is not None:
            conversion.node = self.plugins.execute_hook(
                "after_node_mapping", source_node, conversion.node, direction,
                on_error=conversion.plugin_errors.append,
            )
        return conversion

    def build_stub(
        self,
        source_node: Dict[str, Any],
        direction: Direction,
        target_id: Any = None,
        name: Optional[str] = None,
        index: int = 0,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Placeholder for a node that has no mapping or failed to convert."""
        if Direction(direction) == Direction.N8N_TO_MAKE:
            module_id = target_id if target_id is not None else index + 1
            designer = self._make_designer(source_node, index)
            return self.stub_factory.create_make_stub(source_node, module_id, designer, note)

        node_id = target_id if target_id is not None else str(source_node.get("id", index))
        return self.stub_factory.create_n8n_stub(
            source_node,
            node_id,
            name or self.target_name(source_node),
            self._n8n_position(source_node, index),
            note,
        )

    def target_name(self, module: Dict[str, Any]) -> str:
        """n8n name for a Make.com module, before uniqueness is applied."""
        designer = (module.get("metadata") or {}).get("designer") or {}
        if designer.get("name"):
            return str(designer["name"])
        entry = self.resolver.resolve(module.get("module"), Direction.MAKE_TO_N8N)
        if entry is not None and entry.display_name:
            return entry.display_name
        return stub_name_for(module.get("module"))

    def _condition_entry(self, source_type: Any) -> Optional[NodeMappingEntry]:
        """IF and Filter nodes convert through the switch/router mapping."""
        if not isinstance(source_type, str) or source_type not in CONDITION_NODE_OUTPUTS:
            return None
        router = self.resolver.resolve(N8N_ROUTER_TYPE, Direction.N8N_TO_MAKE)
        if router is None:
            return None
        return replace(router, source_type=source_type)

    @staticmethod
    def source_type(source_node: Dict[str, Any], direction: Direction) -> Any:
        if Direction(direction) == Direction.N8N_TO_MAKE:
            return source_node.get("type")
        return source_node.get("module")

    @staticmethod
    def merged_parameters(module: Dict[str, Any]) -> Dict[str, Any]:
        """One logical parameter set for a Make.com module; `parameters` wins over `mapper`."""
        mapper = module.get("mapper")
        parameters = module.get("parameters")
        merged: Dict[str, Any] = {}
        if isinstance(mapper, dict):
            merged.update(mapper)
        if isinstance(parameters, dict):
            merged.update(parameters)
        return copy.deepcopy(merged)

    # ==================== n8n -> Make.com ====================

    def _to_make(
        self,
        source_node: Dict[str, Any],
        entry: NodeMappingEntry,
        target_id: Any,
        index: int,
        module_ref: Optional[int],
    ) -> NodeConversion:
        source_params = source_node.get("parameters")
        source_params = copy.deepcopy(source_params) if isinstance(source_params, dict) else {}
        router = is_router_type(entry.target_type)
        outputs = CONDITION_NODE_OUTPUTS.get(entry.source_type) if router else None
        if outputs is not None:
            routes = self._condition_routes(
                source_params.pop("conditions", None),
                source_params.pop("combineOperation", None),
                outputs,
            )
        elif router:
            fallback = source_params.pop("fallbackOutput", None)
            routes = [
                {"flow": [], "condition": self._route_condition(condition)}
                for condition in self._conditions(source_params.pop("rules", None))
            ]
            if isinstance(fallback, int) and not isinstance(fallback, bool) and fallback >= 0:
                while len(routes) <= fallback:
                    routes.append({"flow": []})
                routes[fallback]["fallback"] = True

        renamed, dropped = self._rename(source_params, entry)
        processor = ParameterProcessor(
            direction=Direction.N8N_TO_MAKE,
            module_ref=module_ref if module_ref is not None else self.options.module_ref,
            node_refs=self.node_refs,
        )
        parameters, review = self._expressions(renamed, processor)

        for credential_name, credential in (source_node.get("credentials") or {}).items():
            credential_id = credential.get("id") if isinstance(credential, dict) else credential
            parameters[f"{CREDENTIAL_PREFIX}{credential_name}"] = credential_id

        module: Dict[str, Any] = {
            "id": target_id if target_id is not None else index + 1,
            "module": entry.target_type,
            "version": 1,
            "parameters": parameters,
            "mapper": {},
            "metadata": {"designer": self._make_designer(source_node, index)},
        }

        if router:
            converted, route_review = self._expressions({"routes": routes}, processor)
            module["routes"] = converted["routes"]
            review.extend(route_review)

        return NodeConversion(
            node=module,
            stub=False,
            mapping=entry,
            dropped_parameters=dropped,
            review_paths=review,
            review_reasons=dict(processor.reasons),
        )

    # ==================== Make.com -> n8n ====================

    def _to_n8n(
        self,
        source_module: Dict[str, Any],
        entry: NodeMappingEntry,
        target_id: Any,
        name: Optional[str],
        index: int,
        upstream_ref: Optional[str],
    ) -> NodeConversion:
        source_params = self.merged_parameters(source_module)
        credentials = self._pop_credentials(source_params, source_module.get("module") or "")

        renamed, dropped = self._rename(source_params, entry)
        processor = ParameterProcessor(
            direction=Direction.MAKE_TO_N8N,
            module_names=self.module_names,
            upstream_ref=upstream_ref,
        )
        parameters, review = self._expressions(renamed, processor)

        if is_router_type(entry.target_type):
            conditions = []
            for k, route in enumerate(source_module.get("routes") or []):
                if not isinstance(route, dict):
                    continue
                if route.get("fallback"):
                    parameters["fallbackOutput"] = k
                condition = route.get("condition")
                if isinstance(condition, dict) and isinstance(condition.get("conditions"), list):
                    conditions.extend(
                        self._switch_condition(c, k) for c in condition["conditions"] if isinstance(c, dict)
                    )
                elif isinstance(condition, dict):
                    conditions.append(self._switch_condition(condition, k))
            if conditions:
                converted, rule_review = self._expressions({"rules": {"conditions": conditions}}, processor)
                parameters["rules"] = converted["rules"]
                review.extend(rule_review)

        node: Dict[str, Any] = {
            "id": target_id if target_id is not None else str(source_module.get("id", index)),
            "name": name or self.target_name(source_module),
            "type": entry.target_type,
            "typeVersion": 1,
            "position": self._n8n_position(source_module, index),
            "parameters": parameters,
        }
        if credentials:
            node["credentials"] = credentials

        return NodeConversion(
            node=node,
            stub=False,
            mapping=entry,
            dropped_parameters=dropped,
            review_paths=review,
            review_reasons=dict(processor.reasons),
        )

    # ==================== Helpers ====================

    @staticmethod
    def _rename(params: Dict[str, Any], entry: NodeMappingEntry) -> Tuple[Dict[str, Any], List[str]]:
        """Rename through the parameter map, then apply the declared transforms."""
        renamed: Dict[str, Any] = {}
        dropped: List[str] = []
        for key, value in params.items():
            if key.startswith(CREDENTIAL_PREFIX):
                continue
            target_key = entry.parameter_map.get(key)
            if target_key is None:
                dropped.append(key)
                continue
            renamed[target_key] = value

        for target_key, transform in entry.transforms.items():
            if target_key in renamed:
                renamed[target_key] = apply_transform(transform, renamed[target_key])
        return renamed, dropped

    def _expressions(self, tree: Dict[str, Any], processor: ParameterProcessor) -> Tuple[Dict[str, Any], List[str]]:
        """Rewrite (or evaluate) expressions; returns the new tree and the paths to review."""
        if not self.options.evaluate_expressions:
            before = len(processor.ambiguous_paths)
            converted = processor.convert(tree)
            return converted, list(processor.ambiguous_paths[before:])

        evaluated, review = evaluate_parameters(tree, self.context)
        for path in review:
            processor.reasons[path] = ["expression could not be evaluated"]
        return evaluated, review

    @staticmethod
    def _pop_credentials(params: Dict[str, Any], module_type: str) -> Dict[str, Dict[str, Any]]:
        credentials = {}
        for key in [k for k in params if k.startswith(CREDENTIAL_PREFIX)]:
            value = params.pop(key)
            credential_name = key[len(CREDENTIAL_PREFIX):] or module_type.split(":")[0]
            credentials[credential_name] = {"id": str(value), "name": credential_name}
        return credentials

    @staticmethod
    def _conditions(rules: Any) -> List[Dict[str, Any]]:
        if not isinstance(rules, dict):
            return []
        conditions = rules.get("conditions")
        if not isinstance(conditions, list):
            return []
        return [c for c in conditions if isinstance(c, dict)]

    @classmethod
    def _condition_routes(cls, conditions: Any, combine_operation: Any, outputs: int) -> List[Dict[str, Any]]:
        """
        Router routes for an IF node (true route, fallback false route) or a
        Filter node (one route for the kept items).
        """
        rules, combinator = cls._if_conditions(conditions, combine_operation)
        route_conditions = [cls._route_condition(rule) for rule in rules]
        route: Dict[str, Any] = {"flow": []}
        if len(route_conditions) == 1:
            route["condition"] = route_conditions[0]
        elif route_conditions:
            route["condition"] = {"combinator": combinator, "conditions": route_conditions}
        routes = [route]
        if outputs > 1:
            routes.append({"flow": [], "fallback": True})
        return routes

    @staticmethod
    def _if_conditions(conditions: Any, combine_operation: Any) -> Tuple[List[Dict[str, Any]], str]:
        """Switch-style rules from IF/Filter conditions, typed groups (v1) or a flat list (v2)."""
        if not isinstance(conditions, dict):
            return [], "and"

        rules: List[Dict[str, Any]] = []
        if isinstance(conditions.get("conditions"), list):
            for condition in conditions["conditions"]:
                if not isinstance(condition, dict):
                    continue
                operator = condition.get("operator")
                operation = operator.get("operation") if isinstance(operator, dict) else operator
                rules.append({
                    "leftValue": condition.get("leftValue"),
                    "operator": CONDITION_OPERATORS.get(operation, operation),
                    "rightValue": condition.get("rightValue"),
                })
            return rules, str(conditions.get("combinator") or "and")

        for group in CONDITION_GROUPS:
            for condition in conditions.get(group) or []:
                if isinstance(condition, dict):
                    rules.append({
                        "leftValue": condition.get("value1"),
                        "operator": condition.get("operation", "equal"),
                        "rightValue": condition.get("value2"),
                    })
        return rules, "or" if combine_operation == "any" else "and"

    @staticmethod
    def _route_condition(condition: Dict[str, Any]) -> Dict[str, Any]:
        operator = condition.get("operator", "equal")
        return {
            "operator": N8N_TO_MAKE_OPERATORS.get(operator, operator),
            "left": copy.deepcopy(condition.get("leftValue")),
            "right": copy.deepcopy(condition.get("rightValue")),
        }

    @staticmethod
    def _switch_condition(condition: Dict[str, Any], output: int) -> Dict[str, Any]:
        operator = condition.get("operator", "eq")
        return {
            "output": output,
            "leftValue": copy.deepcopy(condition.get("left")),
            "operator": MAKE_TO_N8N_OPERATORS.get(operator, operator),
            "rightValue": copy.deepcopy(condition.get("right")),
        }

    @staticmethod
    def _make_designer(source_node: Dict[str, Any], index: int) -> Dict[str, Any]:
        position = source_node.get("position")
        if isinstance(position, (list, tuple)) and len(position) >= 2:
            designer = {"x": position[0], "y": position[1]}
        else:
            designer = {"x": index * MAKE_X_SPACING, "y": 0}
        if source_node.get("name"):
            designer["name"] = source_node["name"]
        return designer

    @staticmethod
    def _n8n_position(source_module: Dict[str, Any], index: int) -> List[Any]:
        designer = (source_module.get("metadata") or {}).get("designer") or {}
        if "x" in designer and "y" in designer:
            return [designer["x"], designer["y"]]
        return [N8N_X_START + index * N8N_X_SPACING, N8N_Y]
