"""Minimal syntax node contract and helpers shared by the analyzer.

The analyzer never imports a concrete tree implementation. Any object that
looks like a tree-sitter ``Node`` is accepted.
"""
from typing import Any, Iterator, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..errors import HostContractError


@runtime_checkable
class SyntaxNode(Protocol):
    """What the engine needs from a host tree node."""

    type: str
    children: Sequence[Any]
    named_children: Sequence[Any]
    parent: Optional[Any]
    start_byte: int
    end_byte: int
    start_point: Tuple[int, int]
    end_point: Tuple[int, int]
    text: Optional[bytes]

    def child_by_field_name(self, name: str) -> Optional[Any]:
        ...


# (kind, start_byte, end_byte)
NodeKey = Tuple[str, int, int]

FUNCTION_KINDS = frozenset({
    'function_declaration',
    'generator_function_declaration',
    'function_expression',
    'function',
    'generator_function',
    'arrow_function',
    'method_definition',
})

# Function-like nodes that may appear as an argument value
FUNCTION_LITERAL_KINDS = frozenset({
    'function_expression',
    'function',
    'generator_function',
    'arrow_function',
})

CALL_KIND = 'call_expression'

_REQUIRED_ATTRIBUTES = ('type', 'children', 'start_byte', 'end_byte', 'start_point', 'end_point')


def ensure_syntax_node(node: Any) -> SyntaxNode:
    """Fail fast when the host hands over something that is not a tree node.

    Raises:
        HostContractError: If ``node`` lacks the attributes of the contract
    """
    if node is None:
        raise HostContractError("expected a syntax tree node, got None")

    # A tree-sitter Tree is handed over often enough to be worth unwrapping
    root = getattr(node, 'root_node', None)
    if root is not None and not hasattr(node, 'type'):
        node = root

    missing = [attr for attr in _REQUIRED_ATTRIBUTES if not hasattr(node, attr)]
    if missing:
        raise HostContractError(
            f"expected a syntax tree node, {type(node).__name__} is missing "
            f"{', '.join(missing)}"
        )
    if not isinstance(node.type, str):
        raise HostContractError(f"node kind must be a string, got {type(node.type).__name__}")
    return node


def node_key(node) -> NodeKey:
    """Stable identity for a node across wrapper objects."""
    return (node.type, node.start_byte, node.end_byte)


def node_text(node) -> str:
    """Source text of a node, or an empty string when unavailable."""
    if node is None:
        return ''
    text = getattr(node, 'text', None)
    if text is None:
        return ''
    if isinstance(text, bytes):
        return text.decode('utf-8', errors='replace')
    return str(text)


def field(node, name: str):
    """``child_by_field_name`` that tolerates nodes without fields."""
    getter = getattr(node, 'child_by_field_name', None)
    if getter is None:
        return None
    return getter(name)


def named_children(node) -> List[Any]:
    children = getattr(node, 'named_children', None)
    if children is None:
        children = [c for c in getattr(node, 'children', ()) if getattr(c, 'is_named', True)]
    return list(children)


def function_body(node):
    """Body of a function-like node.

    Arrow functions with an expression body return that expression.
    """
    if node is None:
        return None
    return field(node, 'body')


def function_name(node) -> Optional[str]:
    name_node = field(node, 'name')
    if name_node is None:
        return None
    return node_text(name_node) or None


def callee_node(call):
    return field(call, 'function')


def callee_name(call) -> Optional[str]:
    """Name a call expression invokes.

    ``foo()`` is ``foo``, ``a.b.clone()`` is ``clone``. Calls on computed
    callees (``fns[i]()``, ``make()()``) have no name.
    """
    callee = callee_node(call)
    if callee is None:
        return None
    if callee.type == 'parenthesized_expression':
        inner = named_children(callee)
        if len(inner) != 1:
            return None
        callee = inner[0]
    if callee.type == 'identifier':
        return node_text(callee)
    if callee.type == 'member_expression':
        prop = field(callee, 'property')
        if prop is not None and prop.type in ('property_identifier', 'private_property_identifier'):
            return node_text(prop)
    return None


def call_arguments(call) -> List[Any]:
    args = field(call, 'arguments')
    if args is None:
        return []
    return named_children(args)


def function_literal_arguments(call) -> List[Any]:
    """Arguments of ``call`` that are written as function literals."""
    return [arg for arg in call_arguments(call) if arg.type in FUNCTION_LITERAL_KINDS]


def iter_ancestors(node) -> Iterator[Any]:
    current = getattr(node, 'parent', None)
    while current is not None:
        yield current
        current = getattr(current, 'parent', None)


def source_range(node) -> Tuple[int, int, int, int]:
    """1-based line, 0-based column range as reported in diagnostics."""
    start_row, start_col = node.start_point[0], node.start_point[1]
    end_row, end_col = node.end_point[0], node.end_point[1]
    return start_row + 1, start_col, end_row + 1, end_col
