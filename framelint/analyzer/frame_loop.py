"""Detect hot-path roots: callbacks that run once per frame (or as often).

A root is a function literal handed directly to a subscription call such as
``useFrame((state, delta) => { ... })``. A callback passed by name
(``useFrame(update)``) is not a root here; ``update`` becomes hot only if a
root calls it.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from .scope import BindingKind, ScopeTracker
from .syntax import (
    CALL_KIND,
    FUNCTION_LITERAL_KINDS,
    callee_name,
    callee_node,
    function_literal_arguments,
    named_children,
    node_text,
)
from .walker import NODE_ERRORS, iter_preorder
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HotRoot:
    """A callback body that starts a hot path at depth 0."""
    function: Any
    origin: str  # API or event name that registered the callback
    site: Any  # call expression or JSX attribute doing the registering
    category: str = "frame"

    @property
    def label(self) -> str:
        return f"{self.origin} callback"


class RootDetector:
    """Base class for hot-path root detectors."""

    category = "frame"

    def detect(self, root, tracker: ScopeTracker) -> List[HotRoot]:
        roots = []
        for node in iter_preorder(root):
            try:
                roots.extend(self.roots_at(node, tracker))
            except NODE_ERRORS as exc:
                logger.debug("root detection skipped %s at %s: %s",
                             node.type, getattr(node, 'start_point', '?'), exc)
        return roots

    def roots_at(self, node, tracker: ScopeTracker) -> Iterable[HotRoot]:
        raise NotImplementedError


class SubscriptionDetector(RootDetector):
    """Function literals passed to calls of a configured set of API names.

    An imported alias of an API (``import { useFrame as onFrame }``) counts as
    the API itself.
    """

    def __init__(self, apis: Iterable[str]):
        self.apis = frozenset(apis)

    def api_name(self, call, tracker: ScopeTracker) -> Optional[str]:
        name = callee_name(call)
        if name is None:
            return None
        if name in self.apis:
            return name
        callee = callee_node(call)
        if callee is not None and callee.type == 'identifier':
            binding = tracker.resolve_identifier(callee)
            if (binding is not None and binding.kind is BindingKind.IMPORT
                    and binding.imported_name in self.apis):
                return binding.imported_name
        return None

    def roots_at(self, node, tracker: ScopeTracker) -> Iterable[HotRoot]:
        if node.type != CALL_KIND:
            return ()
        api = self.api_name(node, tracker)
        if api is None:
            return ()
        return [
            HotRoot(function=callback, origin=api, site=node, category=self.category)
            for callback in function_literal_arguments(node)
        ]


class FrameLoopDetector(SubscriptionDetector):
    """Callbacks registered with the render loop (``useFrame`` by default)."""

    category = "frame"


class TimerLoopDetector(SubscriptionDetector):
    """Callbacks of repeating timers such as ``setInterval``."""

    category = "timer"


class FastEventDetector(RootDetector):
    """Inline JSX handlers for events that fire at pointer rate.

    ``<mesh onPointerMove={(e) => ...} />`` makes the arrow a root.
    """

    category = "event"

    def __init__(self, events: Iterable[str]):
        self.events = frozenset(events)

    def roots_at(self, node, tracker: ScopeTracker) -> Iterable[HotRoot]:
        if node.type != 'jsx_attribute':
            return ()
        parts = named_children(node)
        if len(parts) < 2:
            return ()
        event = node_text(parts[0])
        if event not in self.events or parts[1].type != 'jsx_expression':
            return ()
        return [
            HotRoot(function=expr, origin=event, site=node, category=self.category)
            for expr in named_children(parts[1])
            if expr.type in FUNCTION_LITERAL_KINDS
        ]


def detect_roots(root, tracker: ScopeTracker, detectors: Iterable[RootDetector]) -> List[HotRoot]:
    """Run every detector and return the roots in source order."""
    found = []
    for detector in detectors:
        found.extend(detector.detect(root, tracker))
    found.sort(key=lambda r: (r.function.start_byte, r.function.end_byte))
    return found
