"""
Workflow conversion models.

Dataclass-based models shared by the mapping layer, the node mapper and the
conversion orchestrator. Every model serializes to the camelCase wire format
used by workflow documents and the HTTP API.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Platform(str, Enum):
    """Workflow automation platforms."""
    N8N = "n8n"
    MAKE = "make"

    @classmethod
    def parse(cls, value: Any) -> Optional["Platform"]:
        """Parse a platform name, returning None when unknown."""
        if isinstance(value, Platform):
            return value
        if not isinstance(value, str):
            return None
        name = value.strip().lower()
        if name in ("n8n",):
            return cls.N8N
        if name in ("make", "make.com", "integromat"):
            return cls.MAKE
        return None


class Direction(str, Enum):
    """Conversion direction between the two platforms."""
    N8N_TO_MAKE = "n8nToMake"
    MAKE_TO_N8N = "makeToN8n"

    @classmethod
    def between(cls, source: Platform, target: Platform) -> "Direction":
        if source == target:
            raise ValueError(f"No conversion direction from {source.value} to itself")
        return cls.N8N_TO_MAKE if source == Platform.N8N else cls.MAKE_TO_N8N

    @property
    def source(self) -> Platform:
        return Platform.N8N if self == Direction.N8N_TO_MAKE else Platform.MAKE

    @property
    def target(self) -> Platform:
        return Platform.MAKE if self == Direction.N8N_TO_MAKE else Platform.N8N

    def reverse(self) -> "Direction":
        return Direction.MAKE_TO_N8N if self == Direction.N8N_TO_MAKE else Direction.N8N_TO_MAKE


class LogLevel(str, Enum):
    """Severity of a conversion log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ConversionState(str, Enum):
    """States of a single conversion run."""
    VALIDATING = "validating"
    CONVERTING_NODES = "converting_nodes"
    CONVERTING_CONNECTIONS = "converting_connections"
    ASSEMBLING = "assembling"
    DONE = "done"
    ERRORED = "errored"


class MappingStatus(str, Enum):
    """How completely a node was converted."""
    FULL = "full"          # every source parameter had a target
    PARTIAL = "partial"    # mapped, but some parameters were dropped
    STUB = "stub"          # no mapping, placeholder created
    FAILED = "failed"      # conversion raised, placeholder created


@dataclass
class ConversionLog:
    """Single entry of the conversion log."""
    type: LogLevel
    message: str
    timestamp: Optional[str] = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        result = {"type": self.type.value, "message": self.message}
        if self.timestamp:
            result["timestamp"] = self.timestamp
        return result


@dataclass
class ParameterReview:
    """Parameters of one node that need manual review."""
    node_id: str
    node_name: str
    parameters: List[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "parameters": list(self.parameters),
            "reason": self.reason,
        }


@dataclass
class StubInfo:
    """Original data attached to a placeholder node or module."""
    original_type: str
    original_id: Any
    original_name: str
    original_parameters: Dict[str, Any]
    conversion_note: str
    original_mapper: Optional[Dict[str, Any]] = None

    def to_dict(self, source: Platform) -> Dict[str, Any]:
        """Serialize using the vocabulary of the source platform."""
        if source == Platform.N8N:
            return {
                "originalNodeType": self.original_type,
                "originalNodeId": self.original_id,
                "originalNodeName": self.original_name,
                "conversionNote": self.conversion_note,
                "originalParameters": self.original_parameters,
            }
        return {
            "originalModuleType": self.original_type,
            "originalModuleId": self.original_id,
            "originalModuleName": self.original_name,
            "conversionNote": self.conversion_note,
            "originalParameters": self.original_parameters,
            "originalMapper": self.original_mapper or {},
        }


@dataclass(frozen=True)
class NodeMappingEntry:
    """Rule translating one node type and its parameter names to the other platform."""
    source_type: str
    target_type: str
    parameter_map: Dict[str, str] = field(default_factory=dict)
    transforms: Dict[str, str] = field(default_factory=dict)  # target param -> transform name
    display_name: Optional[str] = None
    description: Optional[str] = None
    user_defined: bool = False
    origin: str = "base"
    accuracy: int = 100

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.target_type,
            "parameterMap": dict(self.parameter_map),
        }
        if self.transforms:
            result["transforms"] = dict(self.transforms)
        if self.display_name:
            result["displayName"] = self.display_name
        if self.description:
            result["description"] = self.description
        if self.user_defined:
            result["userDefined"] = True
        result["accuracy"] = self.accuracy
        return result

    @classmethod
    def from_dict(cls, source_type: str, data: Dict[str, Any], origin: str = "base") -> "NodeMappingEntry":
        """Build an entry from the `{type, parameterMap, ...}` wire form."""
        return cls(
            source_type=source_type,
            target_type=data["type"],
            parameter_map=dict(data.get("parameterMap") or {}),
            transforms=dict(data.get("transforms") or {}),
            display_name=data.get("displayName"),
            description=data.get("description"),
            user_defined=bool(data.get("userDefined", False)),
            origin=origin,
            accuracy=int(data.get("accuracy", 100)),
        )


@dataclass
class ConversionOptions:
    """Options recognized by the conversion entry point."""
    preserve_ids: bool = False
    strict_mode: bool = False
    mapping_accuracy: int = 0
    evaluate_expressions: bool = False
    expression_context: Optional[Dict[str, Any]] = None
    module_ref: int = 1
    # values that were rejected while parsing, as log messages
    warnings: List[str] = field(default_factory=list, repr=False, compare=False)

    _ALIASES = {
        "preserveIds": "preserve_ids",
        "strictMode": "strict_mode",
        "mappingAccuracy": "mapping_accuracy",
        "evaluateExpressions": "evaluate_expressions",
        "expressionContext": "expression_context",
        "moduleRef": "module_ref",
    }

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        defaults: Optional["ConversionOptions"] = None,
    ) -> "ConversionOptions":
        """
        Build options from camelCase or snake_case keys; unknown keys are ignored.

        A value of the wrong type falls back to `defaults` (or the class
        default) and is described in `warnings`.
        """
        if isinstance(data, ConversionOptions):
            return data
        fallback = defaults or cls()
        options = replace(fallback, warnings=[])
        if data is not None and not isinstance(data, dict):
            options.warnings.append(f"Ignored options: expected an object, got {type(data).__name__}")
            data = None
        for key, value in (data or {}).items():
            name = cls._ALIASES.get(key, key)
            if name not in cls._ALIASES.values() or value is None:
                continue
            setattr(options, name, value)

        options.mapping_accuracy = max(0, min(100, options._integer(
            "mappingAccuracy", options.mapping_accuracy, fallback.mapping_accuracy
        )))
        options.module_ref = options._integer("moduleRef", options.module_ref, fallback.module_ref)
        if options.expression_context is not None and not isinstance(options.expression_context, dict):
            options.warnings.append(
                f"Ignored option expressionContext: expected an object, "
                f"got {type(options.expression_context).__name__}"
            )
            options.expression_context = fallback.expression_context
        return options

    def _integer(self, key: str, value: Any, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            self.warnings.append(f"Ignored option {key}: {value!r} is not a number, using {default}")
            return default

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preserveIds": self.preserve_ids,
            "strictMode": self.strict_mode,
            "mappingAccuracy": self.mapping_accuracy,
            "evaluateExpressions": self.evaluate_expressions,
            "expressionContext": self.expression_context,
            "moduleRef": self.module_ref,
        }


@dataclass
class ConversionResult:
    """Converted document plus diagnostics."""
    converted_workflow: Any
    logs: List[ConversionLog] = field(default_factory=list)
    unmapped_nodes: List[str] = field(default_factory=list)
    parameters_needing_review: List[ParameterReview] = field(default_factory=list)
    debug: Dict[str, Any] = field(default_factory=dict)

    def logs_of(self, level: LogLevel) -> List[ConversionLog]:
        return [log for log in self.logs if log.type == level]

    @property
    def errors(self) -> List[ConversionLog]:
        return self.logs_of(LogLevel.ERROR)

    @property
    def warnings(self) -> List[ConversionLog]:
        return self.logs_of(LogLevel.WARNING)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "convertedWorkflow": self.converted_workflow,
            "logs": [log.to_dict() for log in self.logs],
            "unmappedNodes": list(self.unmapped_nodes),
            "parametersNeedingReview": [r.to_dict() for r in self.parameters_needing_review],
            "debug": self.debug,
        }
