"""no-new-in-loop: no object instantiation on the frame loop.

Flags ``new`` expressions by default. Object and array literals can be
added with ``disallowedLiterals: ["new_expression", "object", "array"]``;
``bannedOperations`` adds factory calls (``makeVector()``) to the check.
"""
from ..analyzer.hazards import HazardMatcher
from .base import HotPathRule, RuleMeta, ALLOCATION_ADVICE
from .options import RuleOptions


class NoNewInLoop(HotPathRule):
    meta = RuleMeta(
        id='no-new-in-loop',
        description=("Disallow instantiating new objects in the frame loop which can "
                     "cause performance problems."),
        messages={
            'noNew': ("Allocating `{operation}` in {context} can cause performance "
                      "problems. " + ALLOCATION_ADVICE),
        },
        recommended=True,
        options=frozenset({'frameLoopApis', 'disallowedLiterals', 'bannedOperations', 'maxCallDepth'}),
        defaults=RuleOptions(
            banned_operations=frozenset(),
            disallowed_literals=frozenset({'new_expression'}),
        ),
    )
    message_id = 'noNew'

    def matcher(self) -> HazardMatcher:
        return HazardMatcher(
            banned_operations=self.options.banned_operations,
            disallowed_literals=self.options.disallowed_literals,
        )
