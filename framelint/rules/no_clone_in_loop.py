"""no-clone-in-loop: no duplication calls on the frame loop.

    useFrame(() => {
      ref.current.position.copy(target.clone())   // reported
    })
"""
from ..analyzer.hazards import HazardMatcher
from .base import HotPathRule, RuleMeta, ALLOCATION_ADVICE
from .options import RuleOptions


class NoCloneInLoop(HotPathRule):
    meta = RuleMeta(
        id='no-clone-in-loop',
        description=("Disallow cloning vectors in the frame loop which can cause "
                     "performance problems."),
        messages={
            'noClone': ("Calling `{operation}()` in {context} can cause performance "
                        "problems. " + ALLOCATION_ADVICE),
        },
        recommended=True,
        options=frozenset({'frameLoopApis', 'bannedOperations', 'maxCallDepth'}),
        defaults=RuleOptions(banned_operations=frozenset({'clone'})),
    )
    message_id = 'noClone'

    def matcher(self) -> HazardMatcher:
        return HazardMatcher(banned_operations=self.options.banned_operations)
