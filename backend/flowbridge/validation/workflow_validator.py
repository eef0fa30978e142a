"""
Workflow Validator.

Structural checks of n8n workflows and Make.com scenarios before conversion:
- Required top-level containers (nodes/connections, flow)
- Required node and module fields
- Unique node names and module ids
- Connection endpoints that resolve to nodes
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from flowbridge.models.workflow_models import Platform
from flowbridge.services.converter.platform_detector import detect_platform, normalize_make_document

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Severity level of validation issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Single validation issue."""
    level: ValidationLevel
    path: Optional[str]
    message: str

    def __str__(self) -> str:
        parts = [f"[{self.level.value.upper()}]"]
        if self.path:
            parts.append(self.path)
        parts.append(self.message)
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level.value, "path": self.path, "message": self.message}


@dataclass
class ValidationResult:
    """Result of workflow validation."""
    valid: bool
    platform: Optional[Platform] = None
    issues: List[ValidationIssue] = field(default_factory=list)
    summary: str = ""

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.level == ValidationLevel.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.level == ValidationLevel.WARNING]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "platform": self.platform.value if self.platform else None,
            "issues": [issue.to_dict() for issue in self.issues],
            "summary": self.summary,
        }


class WorkflowValidator:
    """Validates the structure of a workflow document of either platform."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []

    def validate(self, document: Any, platform: Any = None) -> ValidationResult:
        """
        Validate a document.

        Args:
            document: parsed workflow JSON
            platform: expected platform; detected from the shape when omitted
        """
        self.issues = []
        expected = Platform.parse(platform)
        detected = detect_platform(document)

        if not isinstance(document, dict) or not document:
            self._add_issue(ValidationLevel.ERROR, None, "Workflow is empty")
        elif platform is not None and expected is None:
            self._add_issue(ValidationLevel.ERROR, None, f"Unsupported platform: {platform}")
        elif detected is None:
            self._add_issue(
                ValidationLevel.ERROR, None,
                "Not a workflow: expected n8n 'nodes' and 'connections' or a Make.com 'flow'",
            )
        elif expected is not None and detected != expected:
            self._add_issue(
                ValidationLevel.ERROR, None,
                f"Expected a {expected.value} workflow, got a {detected.value} workflow",
            )
        elif detected == Platform.N8N:
            self._validate_n8n(document)
        else:
            self._validate_make(normalize_make_document(document))

        valid = not any(i.level == ValidationLevel.ERROR for i in self.issues)
        result = ValidationResult(valid=valid, platform=expected or detected, issues=list(self.issues))
        result.summary = self._generate_summary(result)
        logger.debug(result.summary)
        return result

    # ==================== n8n ====================

    def _validate_n8n(self, workflow: Dict[str, Any]):
        names: Set[str] = set()
        for index, node in enumerate(workflow["nodes"]):
            path = f"nodes[{index}]"
            if not isinstance(node, dict):
                self._add_issue(ValidationLevel.ERROR, path, "Node must be an object")
                continue
            name = node.get("name")
            if not isinstance(name, str) or not name:
                self._add_issue(ValidationLevel.ERROR, path, "Missing required property: name")
            elif name in names:
                self._add_issue(ValidationLevel.ERROR, path, f"Duplicate node name '{name}'")
            else:
                names.add(name)
            if not isinstance(node.get("type"), str) or not node.get("type"):
                self._add_issue(ValidationLevel.ERROR, path, "Missing required property: type")
            if "id" not in node:
                self._add_issue(ValidationLevel.WARNING, path, "Missing property: id")
            self._check_parameters(node.get("parameters"), f"{path}.parameters")
            position = node.get("position")
            if position is not None and not self._is_point(position):
                self._add_issue(ValidationLevel.WARNING, f"{path}.position", "Position must be [x, y] numbers")

        for source, by_type in workflow["connections"].items():
            path = f"connections.{source}"
            if source not in names:
                self._add_issue(ValidationLevel.WARNING, path, f"Connection source '{source}' is not a node")
            if not isinstance(by_type, dict):
                self._add_issue(ValidationLevel.ERROR, path, "Connections must be an object")
                continue
            for output, targets in enumerate(by_type.get("main") or []):
                for target in targets or []:
                    node_name = target.get("node") if isinstance(target, dict) else None
                    if node_name is None:
                        self._add_issue(ValidationLevel.ERROR, f"{path}.main[{output}]", "Connection target has no node")
                    elif node_name not in names:
                        self._add_issue(
                            ValidationLevel.WARNING, f"{path}.main[{output}]",
                            f"Connection target '{node_name}' is not a node",
                        )

    # ==================== Make.com ====================

    def _validate_make(self, scenario: Dict[str, Any]):
        if not isinstance(scenario.get("name"), str):
            self._add_issue(ValidationLevel.WARNING, "name", "Scenario has no name")
        self._validate_flow(scenario["flow"], "flow", set())

    def _validate_flow(self, flow: Any, path: str, ids: Set[str]):
        if not isinstance(flow, list):
            self._add_issue(ValidationLevel.ERROR, path, "Flow must be a list")
            return
        for index, module in enumerate(flow):
            module_path = f"{path}[{index}]"
            if not isinstance(module, dict):
                self._add_issue(ValidationLevel.ERROR, module_path, "Module must be an object")
                continue
            module_id = module.get("id")
            if module_id is None:
                self._add_issue(ValidationLevel.ERROR, module_path, "Missing required property: id")
            elif str(module_id) in ids:
                self._add_issue(ValidationLevel.ERROR, module_path, f"Duplicate module id {module_id}")
            else:
                ids.add(str(module_id))
                if not isinstance(module_id, int):
                    self._add_issue(ValidationLevel.WARNING, module_path, "Module id should be an integer")
            if not isinstance(module.get("module"), str) or not module.get("module"):
                self._add_issue(ValidationLevel.ERROR, module_path, "Missing required property: module")
            self._check_parameters(module.get("parameters"), f"{module_path}.parameters")
            self._check_parameters(module.get("mapper"), f"{module_path}.mapper")
            designer = (module.get("metadata") or {}).get("designer")
            if designer is not None and not self._is_point([designer.get("x"), designer.get("y")]):
                self._add_issue(
                    ValidationLevel.WARNING, f"{module_path}.metadata.designer",
                    "Designer position must have numeric x and y",
                )
            routes = module.get("routes")
            if routes is None:
                continue
            if not isinstance(routes, list):
                self._add_issue(ValidationLevel.ERROR, f"{module_path}.routes", "Routes must be a list")
                continue
            for k, route in enumerate(routes):
                route_flow = route.get("flow") if isinstance(route, dict) else None
                self._validate_flow(route_flow, f"{module_path}.routes[{k}].flow", ids)

    # ==================== Helpers ====================

    def _check_parameters(self, parameters: Any, path: str):
        if parameters is not None and not isinstance(parameters, dict):
            self._add_issue(ValidationLevel.ERROR, path, "Parameters must be an object")

    @staticmethod
    def _is_point(value: Any) -> bool:
        return (
            isinstance(value, (list, tuple))
            and len(value) == 2
            and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
        )

    def _add_issue(self, level: ValidationLevel, path: Optional[str], message: str):
        self.issues.append(ValidationIssue(level=level, path=path, message=message))

    @staticmethod
    def _generate_summary(result: ValidationResult) -> str:
        if result.valid:
            platform = result.platform.value if result.platform else "unknown"
            return f"Workflow valid ({platform}, {len(result.warnings)} warnings)"
        return f"Workflow invalid: {len(result.errors)} errors, {len(result.warnings)} warnings"


# ==================== Public API ====================

def validate_workflow(document: Any, platform: Any = None) -> ValidationResult:
    """Validate a workflow document."""
    return WorkflowValidator().validate(document, platform)
