"""
Parameter Processor.

Walks nested parameter trees (dicts, lists, scalars) and applies the
expression translator to every string leaf that carries an expression.
All functions here build new trees and never modify their input.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from flowbridge.models.workflow_models import Direction
from flowbridge.services.expression.expressions import (
    analyze_expression,
    contains_expression,
    evaluate_expression,
    evaluate_template,
)
from flowbridge.services.expression.translator import (
    is_single_expression,
    translate_make_to_n8n,
    translate_n8n_to_make,
    TranslationResult,
)

logger = logging.getLogger(__name__)


def _as_direction(direction: Any) -> Direction:
    if isinstance(direction, Direction):
        return direction
    return Direction(direction)


def iter_leaves(tree: Any, path: str = '') -> Iterator[Tuple[str, Any]]:
    """
    Yield (dotted path, value) for every leaf, depth first in document order.

    List items are addressed as `path[i]`.
    """
    if isinstance(tree, dict):
        for key, value in tree.items():
            child = f"{path}.{key}" if path else str(key)
            yield from iter_leaves(value, child)
    elif isinstance(tree, list):
        for index, value in enumerate(tree):
            yield from iter_leaves(value, f"{path}[{index}]")
    else:
        yield path, tree


@dataclass
class ParameterProcessor:
    """
    Rewrites the expressions of one node's parameters for the target platform.

    Ambiguous expression paths found during `convert` are collected in
    `ambiguous_paths` so the caller can report them for review.
    """
    direction: Direction
    module_ref: int = 1
    node_refs: Optional[Dict[str, str]] = None
    module_names: Optional[Dict[str, str]] = None
    upstream_ref: Optional[str] = None
    ambiguous_paths: List[str] = field(default_factory=list)
    reasons: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self):
        self.direction = _as_direction(self.direction)

    def translate(self, value: str) -> TranslationResult:
        if self.direction == Direction.N8N_TO_MAKE:
            return translate_n8n_to_make(value, self.module_ref, self.node_refs)
        return translate_make_to_n8n(value, self.module_names, self.upstream_ref)

    def convert(self, tree: Any) -> Dict[str, Any]:
        """Rewrite every expression leaf; None gives {} and scalars are wrapped."""
        if tree is None:
            return {}
        if not isinstance(tree, dict):
            return {'value': self._convert_value(tree, 'value')}
        return {key: self._convert_value(value, str(key)) for key, value in tree.items()}

    def _convert_value(self, value: Any, path: str) -> Any:
        if isinstance(value, str):
            if not contains_expression(value):
                return value
            result = self.translate(value)
            if result.ambiguous:
                self.ambiguous_paths.append(path)
                self.reasons[path] = result.reasons
            return result.text
        if isinstance(value, dict):
            return {
                key: self._convert_value(item, f"{path}.{key}")
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [self._convert_value(item, f"{path}[{i}]") for i, item in enumerate(value)]
        return value


# ==================== Module API ====================

def convert_parameters_across_platforms(
    tree: Any,
    direction: Any,
    module_ref: int = 1,
    node_refs: Optional[Dict[str, str]] = None,
    module_names: Optional[Dict[str, str]] = None,
    upstream_ref: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Rewrite the expressions in a parameter tree for the other platform.

    Example:
        >>> convert_parameters_across_platforms(
        ...     {"url": "={{ $json.url }}", "method": "GET"}, "n8nToMake")
        {'url': '{{1.url}}', 'method': 'GET'}
    """
    processor = ParameterProcessor(
        direction=direction,
        module_ref=module_ref,
        node_refs=node_refs,
        module_names=module_names,
        upstream_ref=upstream_ref,
    )
    return processor.convert(tree)


def identify_expressions_for_review(tree: Any) -> List[str]:
    """Dotted paths of every leaf that contains an expression."""
    if tree is None:
        return []
    return [path for path, value in iter_leaves(tree) if contains_expression(value)]


def find_ambiguous_expressions(tree: Any, direction: Any) -> List[str]:
    """Dotted paths of expression leaves that cannot be translated with confidence."""
    if tree is None:
        return []
    direction = _as_direction(direction)
    return [
        path for path, value in iter_leaves(tree)
        if contains_expression(value) and analyze_expression(value, direction).ambiguous
    ]


def evaluate_expressions(tree: Any, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Evaluate every expression leaf against `context`, keeping the tree shape."""
    return evaluate_parameters(tree, context)[0]


def evaluate_parameters(tree: Any, context: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], List[str]]:
    """
    Evaluate a parameter tree for evaluate mode.

    Whole expressions are replaced by their value (None when they cannot be
    evaluated). Templates that embed expressions in literal text get each
    segment substituted, and keep their original text when a segment fails.
    Returns the new tree and the paths of leaves that could not be evaluated.
    """
    unresolved: List[str] = []

    def _evaluate(value: Any, path: str) -> Any:
        if isinstance(value, dict):
            return {
                key: _evaluate(item, f"{path}.{key}" if path else str(key))
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [_evaluate(item, f"{path}[{i}]") for i, item in enumerate(value)]
        if not contains_expression(value):
            return value
        if is_single_expression(value):
            result = evaluate_expression(value, context)
            if result is None:
                unresolved.append(path)
            return result
        text, failed = evaluate_template(value, context)
        if failed:
            unresolved.append(path)
        return text

    if tree is None:
        return {}, []
    if not isinstance(tree, dict):
        tree = {'value': tree}
    return _evaluate(tree, ''), unresolved
