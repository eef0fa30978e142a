"""
Expression Evaluator.

Evaluates parsed expression ASTs against an expression context
(`{"$json": ..., "$env": ..., "$workflow": ...}`).
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from .ast_nodes import (
    Node, Literal, Variable, Identifier, ModuleRef, MemberAccess,
    IndexAccess, Call, BinaryOp, UnaryOp, qualified_name
)
from .functions import (
    FUNCTIONS, LIST_METHODS, STRING_METHODS, call_function,
    is_number, normalize_number, to_text
)

logger = logging.getLogger(__name__)


# Make.com namespaces and the context namespace they read
MAKE_NAMESPACES = {
    'env': '$env',
    'scenario': '$workflow',
    'binary': '$binary',
    'parameters': '$parameter',
}


class EvaluationError(ValueError):
    """Raised when an expression cannot be evaluated."""


class ExpressionEvaluator:
    """Evaluates expression ASTs against a context."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}

    def evaluate(self, node: Node) -> Any:
        """Dispatch on node type."""
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Variable):
            return self._variable(node.name)

        if isinstance(node, Identifier):
            return self._identifier(node.name)

        if isinstance(node, ModuleRef):
            modules = self.context.get('$modules') or {}
            if node.ref in modules:
                return modules[node.ref]
            return self.context.get('$json')

        if isinstance(node, MemberAccess):
            return self._member(self.evaluate(node.obj), node.name)

        if isinstance(node, IndexAccess):
            return self._index(self.evaluate(node.obj), self.evaluate(node.index))

        if isinstance(node, Call):
            return self._call(node)

        if isinstance(node, UnaryOp):
            operand = self.evaluate(node.operand)
            if not is_number(operand):
                raise EvaluationError(f"Cannot negate {operand!r}")
            return -operand

        if isinstance(node, BinaryOp):
            return self._binary(node.op, self.evaluate(node.left), self.evaluate(node.right))

        raise EvaluationError(f"Unsupported node: {node!r}")

    # ==================== References ====================

    def _variable(self, name: str) -> Any:
        if name in self.context:
            return self.context[name]
        if name == '$now':
            return datetime.now().isoformat()
        if name == '$today':
            return date.today().isoformat()
        return None

    def _identifier(self, name: str) -> Any:
        if name in MAKE_NAMESPACES:
            return self.context.get(MAKE_NAMESPACES[name])
        if name == 'now':
            return datetime.now().isoformat()
        if name in self.context:
            return self.context[name]
        # Make.com named module reference: Name.field
        nodes = self.context.get('$node') or {}
        if isinstance(nodes, dict) and name in nodes:
            data = nodes[name]
            return data.get('json', data) if isinstance(data, dict) else data
        return None

    @staticmethod
    def _member(value: Any, name: str) -> Any:
        if isinstance(value, dict):
            return value.get(name)
        if isinstance(value, (str, list, tuple)) and name == 'length':
            return len(value)
        return None

    @staticmethod
    def _index(value: Any, index: Any) -> Any:
        if isinstance(value, dict):
            return value.get(to_text(index))
        if isinstance(value, (list, tuple, str)) and is_number(index):
            position = int(index)
            if -len(value) <= position < len(value):
                return value[position]
        return None

    # ==================== Calls ====================

    def _call(self, node: Call) -> Any:
        name = qualified_name(node.callee)
        args = [self.evaluate(arg) for arg in node.args]

        if name is not None and name in FUNCTIONS:
            return call_function(name, args)

        # Method call on a computed value: $json.name.toUpperCase()
        if isinstance(node.callee, MemberAccess):
            target = self.evaluate(node.callee.obj)
            method = node.callee.name
            if isinstance(target, str) and method in STRING_METHODS:
                return STRING_METHODS[method](target, *args)
            if isinstance(target, list) and method in LIST_METHODS:
                return LIST_METHODS[method](target, *args)

        raise EvaluationError(f"Unknown function: {name or node.callee!r}")

    # ==================== Operators ====================

    @staticmethod
    def _binary(op: str, left: Any, right: Any) -> Any:
        if op == '+' and (isinstance(left, str) or isinstance(right, str)):
            # String concatenation, left to right, never numeric coercion
            return to_text(left) + to_text(right)

        if left is None or right is None:
            return None

        if not (is_number(left) and is_number(right)):
            raise EvaluationError(f"Unsupported operands for {op}: {left!r}, {right!r}")

        if op == '+':
            return normalize_number(left + right)
        if op == '-':
            return normalize_number(left - right)
        if op == '*':
            return normalize_number(left * right)
        if op in ('/', '%'):
            if right == 0:
                raise EvaluationError("Division by zero")
            result = left / right if op == '/' else left % right
            return normalize_number(result)

        raise EvaluationError(f"Unknown operator: {op}")


def evaluate_ast(node: Node, context: Optional[Dict[str, Any]] = None) -> Any:
    """Evaluate a parsed expression."""
    return ExpressionEvaluator(context).evaluate(node)
