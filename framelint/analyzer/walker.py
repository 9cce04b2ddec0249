"""Depth-first traversal over host syntax trees.

Traversal is iterative (explicit stack) so deeply nested JSX or long
promise chains cannot hit the recursion limit. Node kinds without a handler
are walked through their children like any other node.
"""
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from .syntax import ensure_syntax_node
from ..utils.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], None]

# Exceptions a handler may raise on an odd node without aborting the walk
NODE_ERRORS = (AttributeError, TypeError, ValueError, UnicodeDecodeError, IndexError)


class Event(Enum):
    ENTER = "enter"
    LEAVE = "leave"


def iter_preorder(root, skip: Callable[[Any], bool] = None) -> Iterator[Any]:
    """Yield ``root`` and its descendants in pre-order.

    Args:
        root: Subtree root
        skip: Optional predicate; a node for which it returns True is yielded
              but its children are not visited
    """
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if skip is not None and node is not root and skip(node):
            continue
        children = getattr(node, 'children', None) or ()
        stack.extend(reversed(children))


def iter_events(root) -> Iterator[Tuple[Event, Any]]:
    """Yield (ENTER, node) and (LEAVE, node) pairs, pre-order then post-order."""
    stack = [(root, False)]
    while stack:
        node, visited = stack.pop()
        if visited:
            yield Event.LEAVE, node
            continue
        yield Event.ENTER, node
        stack.append((node, True))
        children = getattr(node, 'children', None) or ()
        for child in reversed(children):
            stack.append((child, False))


class TreeWalker:
    """Walk a tree and dispatch enter/leave handlers by node kind.

    Handler tables map a node kind (``'call_expression'``) to a callable taking
    the node. A handler that trips over a malformed node is logged and skipped;
    the walk always continues with the node's children.
    """

    def __init__(self,
                 enter: Optional[Mapping[str, Handler]] = None,
                 leave: Optional[Mapping[str, Handler]] = None,
                 each: Optional[Handler] = None):
        self.enter_handlers: Dict[str, Handler] = dict(enter or {})
        self.leave_handlers: Dict[str, Handler] = dict(leave or {})
        # Called on every node after its kind handler
        self.each = each

    def walk(self, root) -> None:
        root = ensure_syntax_node(root)
        for event, node in iter_events(root):
            if event is Event.ENTER:
                handler = self.enter_handlers.get(node.type)
            else:
                handler = self.leave_handlers.get(node.type)
            if handler is not None:
                self._dispatch(handler, node, event)
            if event is Event.ENTER and self.each is not None:
                self._dispatch(self.each, node, event)

    def _dispatch(self, handler: Handler, node, event: Event) -> None:
        try:
            handler(node)
        except NODE_ERRORS as exc:
            logger.debug("skipped %s handler for %s at %s: %s",
                         event.value, node.type, getattr(node, 'start_point', '?'), exc)
