"""
Expression Package.

Parses, evaluates and translates n8n and Make.com expressions.
"""
from .context_builder import ExpressionContextBuilder
from .expressions import (
    analyze_expression,
    contains_expression,
    convert_make_to_n8n_expression,
    convert_n8n_to_make_expression,
    evaluate_expression,
    evaluate_template,
    extract_expression_content,
    is_ambiguous_expression,
    is_expression,
    process_object_with_expressions,
    process_value_with_possible_expression,
)
from .parser import ExpressionParser, parse
from .translator import TranslationResult

__all__ = [
    'ExpressionContextBuilder',
    'ExpressionParser',
    'TranslationResult',
    'analyze_expression',
    'contains_expression',
    'convert_make_to_n8n_expression',
    'convert_n8n_to_make_expression',
    'evaluate_expression',
    'evaluate_template',
    'extract_expression_content',
    'is_ambiguous_expression',
    'is_expression',
    'parse',
    'process_object_with_expressions',
    'process_value_with_possible_expression',
]
