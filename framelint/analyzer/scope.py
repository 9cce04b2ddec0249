"""Lexical scopes and bindings for one JavaScript/TypeScript file.

The tracker makes a single pass over the tree, pushing a scope for every
function, class body and block, and declaring bindings as it meets them.
Nothing is resolved during that pass: by the time anyone calls ``resolve``
every scope is complete, which gives function hoisting and forward
references to later ``const`` helpers for free.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .syntax import (
    FUNCTION_KINDS,
    FUNCTION_LITERAL_KINDS,
    NodeKey,
    call_arguments,
    callee_name,
    callee_node,
    ensure_syntax_node,
    field,
    function_name,
    iter_ancestors,
    named_children,
    node_key,
    node_text,
)
from .walker import TreeWalker, iter_preorder
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ScopeKind(Enum):
    PROGRAM = "program"
    FUNCTION = "function"
    CLASS = "class"
    BLOCK = "block"


class BindingKind(Enum):
    FUNCTION = "function"
    METHOD = "method"
    PARAMETER = "parameter"
    VARIABLE = "variable"
    CLASS = "class"
    IMPORT = "import"


# Calls that return the function literal they wrap
FUNCTION_WRAPPERS = frozenset({'useCallback'})

BLOCK_SCOPE_KINDS = frozenset({
    'statement_block',
    'for_statement',
    'for_in_statement',
    'catch_clause',
    'switch_body',
})

CLASS_KINDS = frozenset({'class_declaration', 'abstract_class_declaration', 'class'})

FIELD_KINDS = frozenset({'field_definition', 'public_field_definition'})


@dataclass(eq=False)
class Binding:
    """An identifier bound in a scope.

    ``function`` is the function-like node whose body runs when the binding is
    called (FUNCTION and METHOD bindings only). ``alias_of`` names another
    identifier the binding was initialized from (``const tick = helper``).
    """
    name: str
    kind: BindingKind
    node: Any
    scope: 'Scope'
    function: Any = None
    alias_of: Optional[str] = None
    init_callee: Optional[str] = None  # callee of the initializer call, if any
    pattern_index: Optional[int] = None  # position in an array pattern
    source_module: Optional[str] = None  # IMPORT only
    imported_name: Optional[str] = None  # IMPORT only

    @property
    def is_callable(self) -> bool:
        return self.kind in (BindingKind.FUNCTION, BindingKind.METHOD) and self.function is not None


class Scope:
    """Bindings introduced by one scope node plus a link to the enclosing scope."""

    def __init__(self, kind: ScopeKind, node, parent: Optional['Scope'] = None):
        self.kind = kind
        self.node = node
        self.key: NodeKey = node_key(node)
        self.parent = parent
        self.bindings: Dict[str, Binding] = {}

    def declare(self, binding: Binding) -> Binding:
        # Later declarations replace earlier ones, as redeclared functions do
        self.bindings[binding.name] = binding
        return binding

    def lookup_local(self, name: str) -> Optional[Binding]:
        return self.bindings.get(name)

    def chain(self) -> Iterator['Scope']:
        scope = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def nearest(self, *kinds: ScopeKind) -> Optional['Scope']:
        for scope in self.chain():
            if scope.kind in kinds:
                return scope
        return None

    def __repr__(self):
        return f"Scope({self.kind.value}, line {self.node.start_point[0] + 1}, {sorted(self.bindings)})"


class ScopeTracker:
    """Builds and queries the scope table of one file.

    Usage:
        tracker = ScopeTracker().build(tree.root_node)
        binding = tracker.resolve_callee(call_node)
    """

    MAX_ALIAS_LINKS = 8

    def __init__(self):
        self.root_scope: Optional[Scope] = None
        self.scopes: Dict[NodeKey, Scope] = {}
        self.bindings: List[Binding] = []
        self._scope_of: Dict[NodeKey, Scope] = {}
        self._stack: List[Scope] = []

        enter = {'program': self._enter_program}
        leave = {'program': self._leave_scope}
        for kind in FUNCTION_KINDS:
            enter[kind] = self._enter_function
            leave[kind] = self._leave_scope
        for kind in CLASS_KINDS:
            enter[kind] = self._enter_class
        for kind in BLOCK_SCOPE_KINDS:
            enter[kind] = self._enter_block
            leave[kind] = self._leave_scope
        for kind in FIELD_KINDS:
            enter[kind] = self._enter_field
        enter['class_body'] = self._enter_class_body
        leave['class_body'] = self._leave_scope
        enter['variable_declarator'] = self._enter_declarator
        enter['import_statement'] = self._enter_import

        self._walker = TreeWalker(enter=enter, leave=leave, each=self._record_scope)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def build(self, root) -> 'ScopeTracker':
        """Populate the scope table for the tree under ``root``.

        Raises:
            HostContractError: If ``root`` is not a syntax tree node
        """
        root = ensure_syntax_node(root)
        self._stack = []
        # Trees that do not start at a program node still get a root scope
        if root.type != 'program':
            self._push(ScopeKind.PROGRAM, root)
        self._walker.walk(root)
        if self.root_scope is None:
            self.root_scope = self._push(ScopeKind.PROGRAM, root)
        self._stack = []
        logger.debug("built %d scopes, %d bindings", len(self.scopes), len(self.bindings))
        return self

    @property
    def current(self) -> Scope:
        return self._stack[-1]

    def _push(self, kind: ScopeKind, node) -> Scope:
        parent = self._stack[-1] if self._stack else None
        scope = Scope(kind, node, parent)
        self.scopes[scope.key] = scope
        if self.root_scope is None:
            self.root_scope = scope
        self._stack.append(scope)
        return scope

    def _leave_scope(self, node):
        # Only pop what this node pushed; a handler that failed never pushed
        if len(self._stack) > 1 and self._stack[-1].key == node_key(node):
            self._stack.pop()

    def _record_scope(self, node):
        if self._stack:
            self._scope_of[node_key(node)] = self._stack[-1]

    def _declare(self, scope: Scope, name: str, kind: BindingKind, node, **extra) -> Optional[Binding]:
        if not name:
            return None
        binding = Binding(name=name, kind=kind, node=node, scope=scope, **extra)
        self.bindings.append(binding)
        return scope.declare(binding)

    def _enter_program(self, node):
        if not self._stack:
            self._push(ScopeKind.PROGRAM, node)

    def _enter_function(self, node):
        name = function_name(node)
        enclosing = self.current

        if node.type in ('function_declaration', 'generator_function_declaration'):
            self._declare(enclosing, name, BindingKind.FUNCTION, node, function=node)
        elif node.type == 'method_definition' and enclosing.kind is ScopeKind.CLASS:
            self._declare(enclosing, name, BindingKind.METHOD, node, function=node)

        scope = self._push(ScopeKind.FUNCTION, node)

        # A named function expression sees its own name
        if node.type in FUNCTION_LITERAL_KINDS and name:
            self._declare(scope, name, BindingKind.FUNCTION, node, function=node)

        params = field(node, 'parameters')
        if params is not None:
            for param in named_children(params):
                self._declare_pattern(scope, param, BindingKind.PARAMETER)
        else:
            single = field(node, 'parameter')
            if single is not None:
                self._declare_pattern(scope, single, BindingKind.PARAMETER)

    def _enter_class(self, node):
        name = function_name(node)
        if name and node.type != 'class':
            self._declare(self.current, name, BindingKind.CLASS, node)

    def _enter_class_body(self, node):
        self._push(ScopeKind.CLASS, node)

    def _enter_block(self, node):
        parent = getattr(node, 'parent', None)
        # A function body shares the function's scope
        if node.type == 'statement_block' and parent is not None and parent.type in FUNCTION_KINDS:
            return
        scope = self._push(ScopeKind.BLOCK, node)

        if node.type == 'catch_clause':
            param = field(node, 'parameter')
            if param is not None:
                self._declare_pattern(scope, param, BindingKind.PARAMETER)
        elif node.type == 'for_in_statement':
            left = field(node, 'left')
            # for (x of xs) assigns, only for (const x of xs) declares
            if left is not None and field(node, 'kind') is not None:
                self._declare_pattern(scope, left, BindingKind.VARIABLE)

    def _enter_field(self, node):
        if self.current.kind is not ScopeKind.CLASS:
            return
        name_node = field(node, 'property')
        if name_node is None:
            name_node = field(node, 'name')
        value = field(node, 'value')
        if name_node is None or value is None or value.type not in FUNCTION_LITERAL_KINDS:
            return
        self._declare(self.current, node_text(name_node), BindingKind.METHOD, node, function=value)

    def _enter_declarator(self, node):
        name_node = field(node, 'name')
        if name_node is None:
            return
        value = field(node, 'value')

        scope = self.current
        parent = getattr(node, 'parent', None)
        if parent is not None and parent.type == 'variable_declaration':
            # var is function scoped
            scope = scope.nearest(ScopeKind.FUNCTION, ScopeKind.PROGRAM) or scope

        if name_node.type != 'identifier':
            init_callee = callee_name(value) if value is not None and value.type == 'call_expression' else None
            self._declare_pattern(scope, name_node, BindingKind.VARIABLE, init_callee=init_callee)
            return

        name = node_text(name_node)
        value = _unwrap(value)
        if value is None:
            self._declare(scope, name, BindingKind.VARIABLE, node)
        elif value.type in FUNCTION_LITERAL_KINDS:
            self._declare(scope, name, BindingKind.FUNCTION, node, function=value)
        elif value.type == 'identifier':
            self._declare(scope, name, BindingKind.VARIABLE, node, alias_of=node_text(value))
        elif value.type == 'call_expression':
            wrapped = _wrapped_function(value)
            if wrapped is not None:
                self._declare(scope, name, BindingKind.FUNCTION, node, function=wrapped)
            else:
                self._declare(scope, name, BindingKind.VARIABLE, node, init_callee=callee_name(value))
        elif value.type == 'class':
            self._declare(scope, name, BindingKind.CLASS, node)
        else:
            self._declare(scope, name, BindingKind.VARIABLE, node)

    def _enter_import(self, node):
        source = field(node, 'source')
        module = node_text(source).strip('"\'`') if source is not None else None
        scope = self.current

        clause = None
        for child in named_children(node):
            if child.type == 'import_clause':
                clause = child
                break
        if clause is None:
            return

        for child in named_children(clause):
            if child.type == 'identifier':
                self._declare(scope, node_text(child), BindingKind.IMPORT, child,
                              source_module=module, imported_name='default')
            elif child.type == 'namespace_import':
                for ns_child in named_children(child):
                    if ns_child.type == 'identifier':
                        self._declare(scope, node_text(ns_child), BindingKind.IMPORT, ns_child,
                                      source_module=module)
            elif child.type == 'named_imports':
                for specifier in named_children(child):
                    if specifier.type != 'import_specifier':
                        continue
                    original = node_text(field(specifier, 'name'))
                    alias = field(specifier, 'alias')
                    local = node_text(alias) if alias is not None else original
                    self._declare(scope, local, BindingKind.IMPORT, specifier,
                                  source_module=module, imported_name=original)

    def _declare_pattern(self, scope: Scope, pattern, kind: BindingKind, init_callee: str = None):
        """Declare every identifier a (possibly destructuring) pattern binds."""
        for name, name_node, index in _pattern_names(pattern):
            self._declare(scope, name, kind, name_node, init_callee=init_callee, pattern_index=index)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def scope_for(self, node) -> Scope:
        """Innermost scope in effect at ``node``."""
        scope = self._scope_of.get(node_key(node))
        if scope is not None:
            return scope
        for ancestor in iter_ancestors(node):
            scope = self._scope_of.get(node_key(ancestor))
            if scope is not None:
                return scope
        return self.root_scope

    def walk(self, root) -> Iterator[Tuple[Any, Scope]]:
        """Yield (node, innermost scope) pairs in pre-order under ``root``."""
        for node in iter_preorder(ensure_syntax_node(root)):
            yield node, self.scope_for(node)

    def resolve(self, name: str, scope: Scope, include_methods: bool = False) -> Optional[Binding]:
        """Innermost binding of ``name`` visible from ``scope``.

        Class members are not lexical names, so METHOD bindings are skipped
        unless ``include_methods`` is set.
        """
        if scope is None:
            return None
        for current in scope.chain():
            binding = current.bindings.get(name)
            if binding is None:
                continue
            if binding.kind is BindingKind.METHOD and not include_methods:
                continue
            return binding
        return None

    def resolve_function(self, name: str, scope: Scope) -> Optional[Binding]:
        """Resolve ``name`` to a callable local binding, following aliases."""
        binding = self.resolve(name, scope)
        seen = set()
        for _ in range(self.MAX_ALIAS_LINKS):
            if binding is None:
                return None
            if binding.is_callable:
                return binding
            if binding.alias_of is None or id(binding) in seen:
                return None
            seen.add(id(binding))
            binding = self.resolve(binding.alias_of, binding.scope)
        return None

    def resolve_callee(self, call) -> Optional[Binding]:
        """Local function or method a call expression invokes, if any."""
        callee = callee_node(call)
        if callee is None:
            return None
        scope = self.scope_for(call)

        if callee.type == 'identifier':
            return self.resolve_function(node_text(callee), scope)

        if callee.type == 'member_expression':
            obj = field(callee, 'object')
            prop = field(callee, 'property')
            if obj is None or prop is None or obj.type != 'this':
                return None
            class_scope = scope.nearest(ScopeKind.CLASS) if scope is not None else None
            if class_scope is None:
                return None
            binding = class_scope.lookup_local(node_text(prop))
            if binding is not None and binding.is_callable:
                return binding
        return None

    def resolve_identifier(self, node) -> Optional[Binding]:
        """Binding an identifier node refers to."""
        if node is None or node.type != 'identifier':
            return None
        return self.resolve(node_text(node), self.scope_for(node))


def _unwrap(value):
    """Strip parentheses and TypeScript ``as``/``satisfies``/``!`` wrappers."""
    while value is not None and value.type in ('parenthesized_expression', 'as_expression',
                                               'satisfies_expression', 'non_null_expression'):
        inner = named_children(value)
        if not inner:
            return value
        value = inner[0]
    return value


def _wrapped_function(call):
    """Function literal passed to a wrapper like ``useCallback``."""
    if callee_name(call) not in FUNCTION_WRAPPERS:
        return None
    args = call_arguments(call)
    if args and args[0].type in FUNCTION_LITERAL_KINDS:
        return args[0]
    return None


def _pattern_names(pattern, index: Optional[int] = None):
    """Yield (name, node, array index) for identifiers bound by a pattern."""
    if pattern is None:
        return
    kind = pattern.type

    if kind in ('identifier', 'shorthand_property_identifier_pattern'):
        yield node_text(pattern), pattern, index
    elif kind in ('required_parameter', 'optional_parameter'):
        yield from _pattern_names(field(pattern, 'pattern'), index)
    elif kind in ('assignment_pattern', 'object_assignment_pattern'):
        yield from _pattern_names(field(pattern, 'left'), index)
    elif kind == 'pair_pattern':
        yield from _pattern_names(field(pattern, 'value'), index)
    elif kind == 'rest_pattern':
        for child in named_children(pattern):
            yield from _pattern_names(child, index)
    elif kind == 'array_pattern':
        position = 0
        for child in pattern.children:
            if child.type == ',':
                position += 1
            elif getattr(child, 'is_named', True):
                yield from _pattern_names(child, position)
    elif kind == 'object_pattern':
        for child in named_children(pattern):
            yield from _pattern_names(child, index)
