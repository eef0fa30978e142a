"""
Expression AST Nodes.

Abstract Syntax Tree nodes shared by n8n and Make.com expression bodies.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Union


@dataclass
class Literal:
    """Number, string, boolean or null literal."""
    value: Any

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


@dataclass
class Variable:
    """n8n `$`-prefixed variable: $json, $env, $workflow, $node, $"""
    name: str

    def __repr__(self) -> str:
        return f"Variable({self.name!r})"


@dataclass
class Identifier:
    """Bare identifier: Make.com namespace, named module or function name."""
    name: str

    def __repr__(self) -> str:
        return f"Identifier({self.name!r})"


@dataclass
class ModuleRef:
    """Make.com numeric module reference: the `1` in `1.field`."""
    ref: str

    def __repr__(self) -> str:
        return f"ModuleRef({self.ref!r})"


@dataclass
class MemberAccess:
    """Dotted member access: obj.name"""
    obj: Any  # Node
    name: str

    def __repr__(self) -> str:
        return f"MemberAccess({self.obj}, {self.name!r})"


@dataclass
class IndexAccess:
    """Bracket access: obj[index]"""
    obj: Any  # Node
    index: Any  # Node

    def __repr__(self) -> str:
        return f"IndexAccess({self.obj}, {self.index})"


@dataclass
class Call:
    """Function or method call: callee(arg1, arg2, ...)"""
    callee: Any  # Node
    args: List[Any]  # List[Node]

    def __repr__(self) -> str:
        return f"Call({self.callee}, {self.args})"


@dataclass
class BinaryOp:
    """Binary operation: left op right"""
    left: Any  # Node
    op: str
    right: Any  # Node

    def __repr__(self) -> str:
        return f"BinaryOp({self.left}, {self.op!r}, {self.right})"


@dataclass
class UnaryOp:
    """Unary operation: op operand"""
    op: str
    operand: Any  # Node

    def __repr__(self) -> str:
        return f"UnaryOp({self.op!r}, {self.operand})"


# Type alias for any AST node
Node = Union[Literal, Variable, Identifier, ModuleRef, MemberAccess, IndexAccess, Call, BinaryOp, UnaryOp]


def qualified_name(node: Any) -> Optional[str]:
    """
    Dotted name of a callee, e.g. `$str.upper` or `formatDate`.

    Returns None for callees that are not plain names (calls on computed values).
    """
    if isinstance(node, (Variable, Identifier)):
        return node.name
    if isinstance(node, MemberAccess):
        base = qualified_name(node.obj)
        if base is not None:
            return f"{base}.{node.name}"
    return None


def walk(node: Any):
    """Yield every node of the tree, parents first."""
    yield node
    if isinstance(node, MemberAccess):
        yield from walk(node.obj)
    elif isinstance(node, IndexAccess):
        yield from walk(node.obj)
        yield from walk(node.index)
    elif isinstance(node, Call):
        yield from walk(node.callee)
        for arg in node.args:
            yield from walk(arg)
    elif isinstance(node, BinaryOp):
        yield from walk(node.left)
        yield from walk(node.right)
    elif isinstance(node, UnaryOp):
        yield from walk(node.operand)
