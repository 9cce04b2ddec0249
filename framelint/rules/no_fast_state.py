"""no-fast-state: no React state updates at frame or pointer rate.

Setting state re-renders the component. Doing it from a frame loop or an
interval timer without a guard re-renders every tick; doing it from a
pointer-move handler re-renders on every event. Both should mutate a ref.

    useFrame(() => {
      setX((x) => x + 0.1)                        // noUnconditionalSet
      if (ref.current.position.x > 200) setOut(true)  // fine, guarded
    })

    <mesh onPointerMove={(e) => setX(e.point.x)} />  // noFastEventSet
"""
import re
from typing import Dict, Optional, Set, Tuple

from ..analyzer.engine import HotPathEngine
from ..analyzer.frame_loop import FastEventDetector, FrameLoopDetector, TimerLoopDetector
from ..analyzer.hazards import collect
from ..analyzer.reporter import DiagnosticReporter
from ..analyzer.scope import BindingKind, ScopeTracker
from ..analyzer.syntax import (
    CALL_KIND,
    FUNCTION_KINDS,
    callee_node,
    field,
    iter_ancestors,
    node_key,
    node_text,
)
from .base import Listener, Rule, RuleContext, RuleMeta

SETTER_NAME = re.compile(r'^set[A-Z]')

# Globals that look like setters but are not
TIMER_GLOBALS = frozenset({'setTimeout', 'setInterval', 'setImmediate'})

CONDITIONAL_KINDS = frozenset({
    'if_statement',
    'else_clause',
    'ternary_expression',
    'switch_case',
    'switch_default',
    'catch_clause',
})

SHORT_CIRCUIT_OPERATORS = frozenset({'&&', '||', '??'})


class NoFastState(Rule):
    meta = RuleMeta(
        id='no-fast-state',
        description="Disallow setting React state at frame rate or in fast pointer events.",
        messages={
            'noUnconditionalSet': (
                "Setting state with `{operation}()` unconditionally in {context} "
                "re-renders the component on every tick. Mutate a ref instead, or only "
                "set state when the value changes."),
            'noFastEventSet': (
                "Setting state with `{operation}()` in {context} re-renders the "
                "component on every event. Mutate a ref instead."),
        },
        recommended=False,
        options=frozenset({'frameLoopApis', 'timerApis', 'fastEvents', 'stateHooks', 'maxCallDepth'}),
    )

    def create(self, context: RuleContext) -> Dict[str, Listener]:
        opts = self.options
        loop_engine = HotPathEngine(
            [FrameLoopDetector(opts.frame_loop_apis), TimerLoopDetector(opts.timer_apis)],
            max_call_depth=opts.max_call_depth,
        )
        event_engine = HotPathEngine([FastEventDetector(opts.fast_events)],
                                     max_call_depth=opts.max_call_depth)
        loop_reporter = DiagnosticReporter(self.meta.id, 'noUnconditionalSet',
                                           self.meta.messages['noUnconditionalSet'],
                                           loop='a frame or interval callback')
        event_reporter = DiagnosticReporter(self.meta.id, 'noFastEventSet',
                                            self.meta.messages['noFastEventSet'],
                                            loop='a fast pointer event handler')

        def program(node):
            loop = loop_engine.propagate(node)
            loop_hazards = collect(
                loop.resolver,
                lambda n: self._unconditional_set(n, loop.tracker),
            )
            loop_reporter.report(context, loop_hazards)

            reported: Set = {node_key(h.node) for h in loop_hazards}
            events = event_engine.propagate(node)
            event_hazards = [
                h for h in collect(events.resolver, lambda n: self._state_set(n, events.tracker))
                if node_key(h.node) not in reported
            ]
            event_reporter.report(context, event_hazards)

        return {'program': program}

    def setter_name(self, call, tracker: ScopeTracker) -> Optional[str]:
        """Name of the state setter ``call`` invokes, if it invokes one.

        A setter is the second element destructured from a state hook
        (``const [x, setX] = useState()``). An identifier with no local
        binding counts when it is named like one (``setX``), since state is
        often declared in a parent component and passed down.
        """
        if call.type != CALL_KIND:
            return None
        callee = callee_node(call)
        if callee is None or callee.type != 'identifier':
            return None
        name = node_text(callee)

        binding = tracker.resolve_identifier(callee)
        if binding is not None:
            if (binding.kind is BindingKind.VARIABLE and binding.pattern_index == 1
                    and binding.init_callee in self.options.state_hooks):
                return name
            if binding.kind is BindingKind.PARAMETER and SETTER_NAME.match(name):
                return name
            return None

        if SETTER_NAME.match(name) and name not in TIMER_GLOBALS and name not in self.options.timer_apis:
            return name
        return None

    def _state_set(self, node, tracker: ScopeTracker) -> Optional[Tuple[str, str]]:
        name = self.setter_name(node, tracker)
        if name is None:
            return None
        return 'state', name

    def _unconditional_set(self, node, tracker: ScopeTracker) -> Optional[Tuple[str, str]]:
        found = self._state_set(node, tracker)
        if found is None or is_guarded(node):
            return None
        return found


def is_guarded(node) -> bool:
    """True if a conditional sits between ``node`` and its function boundary."""
    child = node
    for ancestor in iter_ancestors(node):
        if ancestor.type in FUNCTION_KINDS:
            return False
        if ancestor.type in CONDITIONAL_KINDS:
            # The condition of an if/ternary itself always runs
            condition = field(ancestor, 'condition')
            if condition is None or node_key(condition) != node_key(child):
                return True
        elif ancestor.type == 'binary_expression':
            operator = node_text(field(ancestor, 'operator'))
            right = field(ancestor, 'right')
            if (operator in SHORT_CIRCUIT_OPERATORS and right is not None
                    and node_key(right) == node_key(child)):
                return True
        child = ancestor
    return False
