"""Match banned operations and allocation literals on hot paths."""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .call_graph import CallGraphResolver
from .syntax import CALL_KIND, NodeKey, callee_name, field, node_text
from .walker import NODE_ERRORS
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Literal kinds that can be disallowed, with the name used in messages
LITERAL_KINDS = {
    'new_expression': 'new',
    'object': 'object literal',
    'array': 'array literal',
}


@dataclass(frozen=True)
class Hazard:
    """A banned operation found on a hot path."""
    node: Any
    operation: str
    kind: str  # 'call', 'literal' or a rule specific tag
    depth: int
    region: NodeKey
    chain: Tuple[str, ...] = ()

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1


def literal_label(node) -> str:
    """``new THREE.Vector3`` for new expressions, the generic name otherwise."""
    if node.type == 'new_expression':
        constructor = field(node, 'constructor')
        name = node_text(constructor)
        return f"new {name}" if name else 'new'
    return LITERAL_KINDS.get(node.type, node.type)


class HazardMatcher:
    """Scan hot nodes for banned calls and disallowed literals.

    Each node is reported at most once whatever the number of hot paths
    reaching it, with the smallest depth it was reached at.
    """

    def __init__(self, banned_operations: Iterable[str] = (), disallowed_literals: Iterable[str] = ()):
        self.banned_operations = frozenset(banned_operations)
        self.disallowed_literals = frozenset(disallowed_literals)

    def classify(self, node) -> Optional[Tuple[str, str]]:
        if node.type == CALL_KIND and self.banned_operations:
            name = callee_name(node)
            if name in self.banned_operations:
                return 'call', name
        if node.type in self.disallowed_literals:
            return 'literal', literal_label(node)
        return None

    def match(self, resolver: CallGraphResolver) -> List[Hazard]:
        # Literals only count when written in a root callback itself
        return [hazard for hazard in collect(resolver, self.classify)
                if hazard.kind != 'literal' or hazard.depth == 0]


def collect(resolver: CallGraphResolver, predicate: Callable[[Any], Optional[Tuple[str, str]]]) -> List[Hazard]:
    """Hazards for every hot node ``predicate`` classifies, in source order.

    ``predicate`` returns ``(kind, operation)`` or None.
    """
    chains: Dict[NodeKey, Tuple[str, ...]] = {}
    hazards = []
    for mark in resolver.nodes:
        try:
            found = predicate(mark.node)
        except NODE_ERRORS as exc:
            logger.debug("hazard check skipped %s at %s: %s",
                         mark.node.type, getattr(mark.node, 'start_point', '?'), exc)
            continue
        if found is None:
            continue
        kind, operation = found
        if mark.region not in chains:
            chains[mark.region] = tuple(resolver.chain(mark.region))
        hazards.append(Hazard(
            node=mark.node,
            operation=operation,
            kind=kind,
            depth=mark.depth,
            region=mark.region,
            chain=chains[mark.region],
        ))
    return hazards
