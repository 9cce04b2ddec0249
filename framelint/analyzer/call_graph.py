"""Propagate hot-path classification through a file's local call graph.

Starting from the roots (depth 0), every call inside a hot body that resolves
to a locally declared function makes that function's body hot at depth + 1,
as long as the depth stays within ``max_call_depth``. The worklist is
processed breadth first, so the first depth a function is marked with is
its smallest one; marks are never raised or removed afterwards. That
monotonic depth map is also what makes recursion terminate: a function
already marked at a depth <= the candidate is not queued again.

The calls explored on the way are recorded in a ``networkx.DiGraph`` whose
nodes are function keys, plus a virtual source node linked to every root.
"""
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from .frame_loop import HotRoot
from .scope import Binding, ScopeTracker
from .syntax import (
    CALL_KIND,
    FUNCTION_KINDS,
    NodeKey,
    function_body,
    node_key,
)
from .walker import NODE_ERRORS, iter_preorder
from ..utils.logger import get_logger

logger = get_logger(__name__)

HOT_SOURCE: NodeKey = ('<hot-path>', -1, -1)


@dataclass
class HotMark:
    """A node known to run on a hot path.

    ``depth`` is the number of local call hops from the nearest root and
    ``region`` the key of the function whose body made the node hot.
    """
    node: Any
    depth: int
    region: NodeKey


class HotMarkTable:
    """Node -> smallest hot depth. Marks only ever get smaller."""

    def __init__(self):
        self._marks: Dict[NodeKey, HotMark] = {}

    def mark(self, node, depth: int, region: NodeKey) -> bool:
        """Mark ``node`` hot at ``depth``.

        Returns:
            True if the node was unmarked or is now marked at a smaller depth
        """
        key = node_key(node)
        existing = self._marks.get(key)
        if existing is not None and existing.depth <= depth:
            return False
        self._marks[key] = HotMark(node=node, depth=depth, region=region)
        return True

    def get(self, node) -> Optional[HotMark]:
        return self._marks.get(node_key(node))

    def depth_of(self, node) -> Optional[int]:
        mark = self.get(node)
        return mark.depth if mark is not None else None

    def __contains__(self, node) -> bool:
        return node_key(node) in self._marks

    def __len__(self) -> int:
        return len(self._marks)

    def __iter__(self) -> Iterator[HotMark]:
        # Pre-order: by start offset, outer nodes before inner ones
        return iter(sorted(self._marks.values(),
                           key=lambda m: (m.node.start_byte, -m.node.end_byte, m.node.type)))


class CallGraphResolver:
    """Fixed-point hot-path propagation over one file.

    Usage:
        resolver = CallGraphResolver(tracker, max_call_depth=5)
        resolver.propagate(roots)
        resolver.functions.depth_of(helper_node)
    """

    def __init__(self, tracker: ScopeTracker, max_call_depth: int = 5):
        self.tracker = tracker
        self.max_call_depth = max_call_depth
        self.graph = nx.DiGraph()
        self.functions = HotMarkTable()  # function-like nodes whose bodies are hot
        self.nodes = HotMarkTable()  # every node inside a hot body
        self.roots: List[HotRoot] = []

    def propagate(self, roots: Iterable[HotRoot]) -> 'CallGraphResolver':
        queue: Deque[Tuple[Any, int]] = deque()
        self.graph.add_node(HOT_SOURCE, label='hot path')

        for root in roots:
            self.roots.append(root)
            key = node_key(root.function)
            self.graph.add_node(key, label=root.label, line=root.function.start_point[0] + 1)
            self.graph.add_edge(HOT_SOURCE, key)
            if self.functions.mark(root.function, 0, key):
                queue.append((root.function, 0))

        while queue:
            function, depth = queue.popleft()
            mark = self.functions.get(function)
            if mark is None or mark.depth < depth:
                continue  # a shorter path got there first

            caller = node_key(function)
            for call, binding in self._scan(function, depth):
                callee = binding.function
                callee_key = node_key(callee)
                self._record_edge(caller, callee_key, binding, call)

                next_depth = depth + 1
                if next_depth > self.max_call_depth:
                    logger.debug("not following %s() at line %d: depth %d exceeds %d",
                                 binding.name, call.start_point[0] + 1, next_depth, self.max_call_depth)
                    continue
                if self.functions.mark(callee, next_depth, callee_key):
                    logger.debug("%s is hot at depth %d", binding.name, next_depth)
                    queue.append((callee, next_depth))

        return self

    def _scan(self, function, depth: int) -> List[Tuple[Any, Binding]]:
        """Mark a function's body hot and collect its calls to local functions."""
        body = function_body(function)
        if body is None:
            return []
        region = node_key(function)
        local_calls = []

        for node in iter_preorder(body):
            self.nodes.mark(node, depth, region)
            try:
                if node.type in FUNCTION_KINDS:
                    # Nested callbacks run with their parent; mark so a call
                    # to them later does not rescan at a larger depth
                    self.functions.mark(node, depth, region)
                elif node.type == CALL_KIND:
                    binding = self.tracker.resolve_callee(node)
                    if binding is not None:
                        local_calls.append((node, binding))
            except NODE_ERRORS as exc:
                logger.debug("call resolution skipped %s at %s: %s",
                             node.type, getattr(node, 'start_point', '?'), exc)
        return local_calls

    def _record_edge(self, caller: NodeKey, callee: NodeKey, binding: Binding, call) -> None:
        if callee not in self.graph:
            self.graph.add_node(callee, label=binding.name,
                                line=binding.function.start_point[0] + 1)
        if self.graph.has_edge(caller, callee):
            self.graph[caller][callee]['lines'].append(call.start_point[0] + 1)
        else:
            self.graph.add_edge(caller, callee, lines=[call.start_point[0] + 1])

    def chain(self, region: NodeKey) -> List[str]:
        """Labels along the shortest call chain from a root to ``region``."""
        if region not in self.graph or not nx.has_path(self.graph, HOT_SOURCE, region):
            return []
        path = nx.shortest_path(self.graph, HOT_SOURCE, region)
        return [self.graph.nodes[key]['label'] for key in path[1:]]

    def cycles(self) -> List[List[str]]:
        """Recursive call cycles among the explored functions, as label lists."""
        return [
            [self.graph.nodes[key]['label'] for key in cycle]
            for cycle in nx.simple_cycles(self.graph)
        ]
