"""Rule module contract shared by every framelint rule.

A rule is a class with a static ``meta`` and a ``create(context)`` method
returning a listener map: node kind -> callable taking the node. The host
walks the tree once and calls the listeners; hot-path rules register a single
``program`` listener and run their own analysis over the whole file.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence

from ..analyzer.engine import HotPathEngine
from ..analyzer.frame_loop import FrameLoopDetector, RootDetector
from ..analyzer.hazards import HazardMatcher
from ..analyzer.reporter import Diagnostic, DiagnosticReporter
from .options import RuleOptions

Listener = Callable[[Any], None]

PLUGIN_NAME = 'framelint'

ALLOCATION_ADVICE = ("Instead, create once in a useMemo or a single, shared reference "
                     "outside of the component.")


def docs_url(rule_id: str) -> str:
    return f"docs/rules/{rule_id}.md"


@dataclass(frozen=True)
class RuleMeta:
    id: str
    description: str
    messages: Mapping[str, str]
    recommended: bool = False
    options: FrozenSet[str] = frozenset()  # user-facing option names
    defaults: RuleOptions = field(default_factory=RuleOptions)

    @property
    def url(self) -> str:
        return docs_url(self.id)

    @property
    def qualified_id(self) -> str:
        return f"{PLUGIN_NAME}/{self.id}"


class RuleContext:
    """What a rule sees of the host for one file."""

    def __init__(self, rule_id: str, options: RuleOptions, source: bytes = b'',
                 file_path: str = None, severity: str = 'error'):
        self.rule_id = rule_id
        self.options = options
        self.source = source
        self.file_path = file_path
        self.severity = severity
        self.diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def get_text(self, node) -> str:
        return self.source[node.start_byte:node.end_byte].decode('utf-8', errors='replace')


class Rule:
    """Base class for rules.

    Options are validated in ``__init__``; a bad option raises
    ``ConfigurationError`` before any file is analyzed.
    """

    meta: RuleMeta

    def __init__(self, options: Optional[Mapping[str, Any]] = None, defaults: RuleOptions = None):
        self.options = RuleOptions.from_mapping(
            options,
            defaults=defaults if defaults is not None else self.meta.defaults,
            recognized=self.meta.options,
            rule_id=self.meta.id,
        )

    def create(self, context: RuleContext) -> Dict[str, Listener]:
        raise NotImplementedError


class HotPathRule(Rule):
    """Rule reporting hazards found by the hot-path engine."""

    message_id: str
    loop_label = 'the frame loop'

    def detectors(self) -> Sequence[RootDetector]:
        return [FrameLoopDetector(self.options.frame_loop_apis)]

    def matcher(self) -> HazardMatcher:
        raise NotImplementedError

    def engine(self) -> HotPathEngine:
        return HotPathEngine(self.detectors(), self.matcher(), self.options.max_call_depth)

    def create(self, context: RuleContext) -> Dict[str, Listener]:
        engine = self.engine()
        reporter = DiagnosticReporter(self.meta.id, self.message_id,
                                      self.meta.messages[self.message_id], self.loop_label)

        def program(node):
            reporter.report(context, engine.analyze(node).hazards)

        return {'program': program}
