"""
Expression helpers used by the parameter processor and the node mapper.

Recognizes both delimiter styles:
    n8n       ={{ $json.name }}
    Make.com  {{1.name}}
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .evaluator import EvaluationError, evaluate_ast
from .functions import to_text
from .parser import parse
from .translator import (
    analyze_body,
    body_of,
    convert_make_to_n8n_expression,
    convert_n8n_to_make_expression,
    translate_make_to_n8n,
    translate_n8n_to_make,
    TranslationResult,
)

logger = logging.getLogger(__name__)


EXPRESSION_PATTERN = re.compile(r'^=?\{\{[\s\S]*\}\}$')
EMBEDDED_PATTERN = re.compile(r'\{\{[\s\S]*?\}\}')


def is_expression(value: Any) -> bool:
    """True when `value` is a string wrapped in expression delimiters."""
    if not isinstance(value, str):
        return False
    return bool(EXPRESSION_PATTERN.match(value))


def contains_expression(value: Any) -> bool:
    """True when `value` is a string with an expression anywhere inside it."""
    if not isinstance(value, str):
        return False
    return bool(EMBEDDED_PATTERN.search(value))


def extract_expression_content(value: Optional[str]) -> str:
    """
    Inner text of an expression, trimmed.

    Delimiter layers are stripped until the text is no longer an expression,
    so extracting twice gives the same result as extracting once.
    Non-expressions are returned unchanged.
    """
    if not value:
        return ''
    if not isinstance(value, str):
        return value
    if not is_expression(value):
        return value
    content = value
    while is_expression(content):
        content = body_of(content).strip()
    return content


def evaluate_expression(value: Any, context: Optional[Dict[str, Any]] = None) -> Any:
    """
    Evaluate an expression against a context.

    Returns None for non-expressions, empty bodies and anything that fails to
    parse or evaluate.
    """
    if not is_expression(value):
        return None
    body = extract_expression_content(value)
    if not body:
        return None
    try:
        return evaluate_ast(parse(body), context or {})
    except (SyntaxError, EvaluationError, TypeError, ValueError,
            ArithmeticError, IndexError, KeyError, AttributeError) as e:
        logger.debug(f"Could not evaluate {value!r}: {e}")
        return None


def evaluate_template(value: str, context: Optional[Dict[str, Any]] = None) -> Tuple[str, List[str]]:
    """
    Substitute every embedded `{{ ... }}` segment of a template with its value.

    Returns the rendered text and the segments that could not be evaluated.
    When any segment fails the template is returned as written, so a partly
    rendered string never replaces the original.

    Example:
        >>> evaluate_template("{{1.first}} {{1.last}}", {"$json": {"first": "A", "last": "B"}})
        ('A B', [])
    """
    failed: List[str] = []

    def _segment(match: 're.Match') -> str:
        result = evaluate_expression(match.group(0), context)
        if result is None:
            failed.append(match.group(0))
            return match.group(0)
        return to_text(result)

    template = value[1:] if value.startswith('=') else value
    rendered = EMBEDDED_PATTERN.sub(_segment, template)
    if failed:
        return value, failed
    return rendered, failed


def process_value_with_possible_expression(value: Any, context: Optional[Dict[str, Any]] = None) -> Any:
    """Evaluate `value` if it is an expression, otherwise return it unchanged."""
    if is_expression(value):
        return evaluate_expression(value, context)
    return value


def process_object_with_expressions(tree: Any, context: Optional[Dict[str, Any]] = None) -> Any:
    """Evaluate every expression leaf of a nested structure, keeping its shape."""
    if tree is None:
        return None
    if isinstance(tree, dict):
        return {key: process_object_with_expressions(item, context) for key, item in tree.items()}
    if isinstance(tree, list):
        return [process_object_with_expressions(item, context) for item in tree]
    return process_value_with_possible_expression(tree, context)


def analyze_expression(value: Any, direction: str = 'n8nToMake') -> TranslationResult:
    """
    Check whether an expression can be translated with confidence.

    `direction` is the conversion direction the value is read in: n8n
    expressions for `n8nToMake`, Make.com expressions for `makeToN8n`.
    The returned result carries the translated text and the review reasons.
    """
    if not contains_expression(value):
        return TranslationResult(value)
    if getattr(direction, 'value', direction) == 'makeToN8n':
        return translate_make_to_n8n(value)
    return translate_n8n_to_make(value)


def is_ambiguous_expression(value: Any, direction: str = 'n8nToMake') -> bool:
    return analyze_expression(value, direction).ambiguous


__all__ = [
    'analyze_body',
    'analyze_expression',
    'contains_expression',
    'convert_make_to_n8n_expression',
    'convert_n8n_to_make_expression',
    'evaluate_expression',
    'evaluate_template',
    'extract_expression_content',
    'is_ambiguous_expression',
    'is_expression',
    'process_object_with_expressions',
    'process_value_with_possible_expression',
]
