"""
Node Analyzer

Rule engine that flags nodes likely to need manual work after conversion:
custom nodes, complex expressions, credentials, webhooks and binary data.
Works on both n8n workflows and Make.com scenarios.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from flowbridge.models.workflow_models import Direction, LogLevel, Platform
from flowbridge.services.converter.connection_mapper import ConnectionMapper
from flowbridge.services.converter.platform_detector import detect_platform, normalize_make_document
from flowbridge.services.expression.expressions import analyze_expression, contains_expression
from flowbridge.services.mapper.node_mapper import CREDENTIAL_PREFIX, NodeMapper
from flowbridge.services.parameters.parameter_processor import iter_leaves

logger = logging.getLogger(__name__)

COMPLEX_EXPRESSION_PATTERN = re.compile(r'\(|\?|\bfilter\b|\bmap\b|\breduce\b')
BINARY_PATTERN = re.compile(r'binary|file|image', re.IGNORECASE)


@dataclass
class AnalyzedNode:
    """Platform-neutral view of a node or module."""
    id: Any
    name: str
    type: str
    platform: Platform
    parameters: Dict[str, Any] = field(default_factory=dict)
    credentials: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnalysisRule:
    """Single analysis rule."""
    id: str
    name: str
    description: str
    check: Callable[[AnalyzedNode], bool]
    suggestion: str
    severity: LogLevel = LogLevel.WARNING


@dataclass
class AnalysisIssue:
    rule_id: str
    rule_name: str
    suggestion: str
    severity: LogLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "suggestion": self.suggestion,
            "severity": self.severity.value,
        }


@dataclass
class NodeAnalysisResult:
    node_id: Any
    node_name: str
    node_type: str
    issues: List[AnalysisIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "nodeType": self.node_type,
            "issues": [issue.to_dict() for issue in self.issues],
        }


# ==================== Default rule checks ====================

def _is_custom_node(node: AnalyzedNode) -> bool:
    return node.platform == Platform.N8N and not node.type.startswith("n8n-nodes-base.")


def _has_complex_expression(node: AnalyzedNode) -> bool:
    direction = Direction.N8N_TO_MAKE if node.platform == Platform.N8N else Direction.MAKE_TO_N8N
    for _, value in iter_leaves(node.parameters):
        if not contains_expression(value):
            continue
        if COMPLEX_EXPRESSION_PATTERN.search(value) or analyze_expression(value, direction).ambiguous:
            return True
    return False


def _has_credentials(node: AnalyzedNode) -> bool:
    return bool(node.credentials)


def _is_webhook(node: AnalyzedNode) -> bool:
    lowered = node.type.lower()
    return "webhook" in lowered or "trigger" in lowered


def _handles_binary_data(node: AnalyzedNode) -> bool:
    return any(
        isinstance(value, str) and BINARY_PATTERN.search(value)
        for _, value in iter_leaves(node.parameters)
    )


def default_rules() -> List[AnalysisRule]:
    return [
        AnalysisRule(
            id="custom-node",
            name="Custom Node Detected",
            description="Detects nodes that are not part of the standard n8n library",
            check=_is_custom_node,
            suggestion="This node appears to be a custom node. Make sure to create a custom mapping for it.",
        ),
        AnalysisRule(
            id="complex-expression",
            name="Complex Expression Detected",
            description="Detects nodes with complex expressions that might not convert properly",
            check=_has_complex_expression,
            suggestion="This node contains complex expressions that might not convert properly. "
                       "Review after conversion.",
        ),
        AnalysisRule(
            id="credentials-node",
            name="Credentials Detected",
            description="Detects nodes that use credentials which need to be reconfigured after conversion",
            check=_has_credentials,
            suggestion="This node uses credentials that will need to be reconfigured in the target platform.",
            severity=LogLevel.INFO,
        ),
        AnalysisRule(
            id="webhook-node",
            name="Webhook Node Detected",
            description="Detects webhook nodes which may have platform-specific configurations",
            check=_is_webhook,
            suggestion="Webhook configurations are platform-specific. "
                       "Manual configuration may be required after conversion.",
        ),
        AnalysisRule(
            id="binary-data",
            name="Binary Data Handling",
            description="Detects nodes that process binary data which may be handled differently across platforms",
            check=_handles_binary_data,
            suggestion="This node processes binary data which may be handled differently in the target platform.",
        ),
    ]


class NodeAnalyzer:
    """Applies analysis rules to every node of a workflow."""

    def __init__(self, rules: Optional[List[AnalysisRule]] = None):
        self.rules = list(rules) if rules is not None else default_rules()

    def add_rule(self, rule: AnalysisRule) -> None:
        self.rules.append(rule)

    def remove_rule(self, rule_id: str) -> None:
        self.rules = [rule for rule in self.rules if rule.id != rule_id]

    def analyze_node(self, node: AnalyzedNode) -> NodeAnalysisResult:
        result = NodeAnalysisResult(node.id, node.name, node.type)
        for rule in self.rules:
            try:
                matched = rule.check(node)
            except Exception as e:
                logger.warning(f"Error applying rule {rule.id} to node {node.id}: {e}")
                result.issues.append(AnalysisIssue(
                    "rule-error",
                    f"Rule Error: {rule.name}",
                    f"This rule could not be applied due to an error: {e}",
                    LogLevel.WARNING,
                ))
                continue
            if matched:
                result.issues.append(AnalysisIssue(rule.id, rule.name, rule.suggestion, rule.severity))
        return result

    def analyze_workflow(self, workflow: Any) -> List[NodeAnalysisResult]:
        """Analyze every node of an n8n workflow or Make.com scenario; unknown shapes give []."""
        platform = detect_platform(workflow)
        if platform == Platform.N8N:
            nodes = [self._from_n8n(node) for node in workflow["nodes"] if isinstance(node, dict)]
        elif platform == Platform.MAKE:
            flow = normalize_make_document(workflow)["flow"]
            nodes = [self._from_make(module) for module in ConnectionMapper().flatten_make_flow(flow)]
        else:
            return []
        logger.info(f"Analyzing {platform.value} workflow with {len(nodes)} nodes")
        return [self.analyze_node(node) for node in nodes]

    @staticmethod
    def _from_n8n(node: Dict[str, Any]) -> AnalyzedNode:
        parameters = node.get("parameters")
        return AnalyzedNode(
            id=node.get("id"),
            name=str(node.get("name") or f"Node {node.get('id')}"),
            type=str(node.get("type") or "unknown-type"),
            platform=Platform.N8N,
            parameters=parameters if isinstance(parameters, dict) else {},
            credentials=dict(node.get("credentials") or {}),
        )

    @staticmethod
    def _from_make(module: Dict[str, Any]) -> AnalyzedNode:
        parameters = NodeMapper.merged_parameters(module)
        credentials = {key: parameters.pop(key) for key in list(parameters) if key.startswith(CREDENTIAL_PREFIX)}
        designer = (module.get("metadata") or {}).get("designer") or {}
        return AnalyzedNode(
            id=module.get("id"),
            name=str(designer.get("name") or f"Module {module.get('id')}"),
            type=str(module.get("module") or "unknown-type"),
            platform=Platform.MAKE,
            parameters=parameters,
            credentials=credentials,
        )
