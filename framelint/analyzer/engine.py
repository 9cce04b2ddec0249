"""One analysis pass: scopes, roots, propagation, matching.

Every call to ``analyze`` builds its own scope table, marks and call graph
and drops them when it returns; an engine instance only holds configuration
and can be shared between threads.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .call_graph import CallGraphResolver
from .frame_loop import FrameLoopDetector, HotRoot, RootDetector, detect_roots
from .hazards import Hazard, HazardMatcher
from .scope import ScopeTracker
from .syntax import ensure_syntax_node
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisResult:
    hazards: List[Hazard]
    roots: List[HotRoot]
    tracker: ScopeTracker
    resolver: CallGraphResolver


class HotPathEngine:
    """Find hazards on the hot paths of one syntax tree."""

    def __init__(self, detectors: Sequence[RootDetector], matcher: HazardMatcher = None,
                 max_call_depth: int = 5):
        self.detectors = tuple(detectors)
        self.matcher = matcher
        self.max_call_depth = max_call_depth

    def propagate(self, root) -> AnalysisResult:
        """Scope building, root detection and propagation, without matching.

        Raises:
            HostContractError: If ``root`` is not a syntax tree node
        """
        root = ensure_syntax_node(root)
        tracker = ScopeTracker().build(root)
        roots = detect_roots(root, tracker, self.detectors)
        resolver = CallGraphResolver(tracker, self.max_call_depth).propagate(roots)
        logger.debug("%d roots, %d hot functions, %d hot nodes",
                     len(roots), len(resolver.functions), len(resolver.nodes))
        if logger.isEnabledFor(logging.DEBUG):
            for cycle in resolver.cycles():
                logger.debug("recursive call cycle: %s", " → ".join(cycle))
        return AnalysisResult(hazards=[], roots=roots, tracker=tracker, resolver=resolver)

    def analyze(self, root) -> AnalysisResult:
        result = self.propagate(root)
        if self.matcher is not None:
            result.hazards = self.matcher.match(result.resolver)
        return result


def analyze(root, frame_loop_apis: Iterable[str] = ('useFrame',),
            banned_operations: Iterable[str] = ('clone',),
            max_call_depth: int = 5,
            disallowed_literals: Iterable[str] = ()) -> List[Hazard]:
    """Hazards in ``root`` for a frame-loop configuration.

    Shortcut for callers that do not go through a rule.
    """
    engine = HotPathEngine(
        detectors=[FrameLoopDetector(frame_loop_apis)],
        matcher=HazardMatcher(banned_operations, disallowed_literals),
        max_call_depth=max_call_depth,
    )
    return engine.analyze(root).hazards
