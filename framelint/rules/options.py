"""Validated rule options.

Users write options in camelCase, the way the rules are documented:

    {"frameLoopApis": ["useFrame"], "bannedOperations": ["clone"], "maxCallDepth": 5}

``RuleOptions.from_mapping`` checks them once, when the rule is built, so a
bad value fails the whole run up front instead of every file.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from ..analyzer.hazards import LITERAL_KINDS
from ..errors import ConfigurationError

DEFAULT_MAX_CALL_DEPTH = 5

# User-facing name -> RuleOptions attribute
OPTION_NAMES: Dict[str, str] = {
    'frameLoopApis': 'frame_loop_apis',
    'bannedOperations': 'banned_operations',
    'maxCallDepth': 'max_call_depth',
    'disallowedLiterals': 'disallowed_literals',
    'timerApis': 'timer_apis',
    'fastEvents': 'fast_events',
    'stateHooks': 'state_hooks',
}


@dataclass(frozen=True)
class RuleOptions:
    frame_loop_apis: FrozenSet[str] = frozenset({'useFrame'})
    banned_operations: FrozenSet[str] = frozenset({'clone'})
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    disallowed_literals: FrozenSet[str] = frozenset()
    timer_apis: FrozenSet[str] = frozenset({'setInterval'})
    fast_events: FrozenSet[str] = frozenset({'onPointerMove'})
    state_hooks: FrozenSet[str] = frozenset({'useState', 'useReducer'})

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]], defaults: 'RuleOptions' = None,
                     recognized: Iterable[str] = None, rule_id: str = None) -> 'RuleOptions':
        """Validate user options on top of ``defaults``.

        Args:
            raw: Options as written by the user (None or empty for defaults)
            defaults: Values for options the user left out
            recognized: User-facing option names this rule accepts
            rule_id: Rule the options belong to, for error messages

        Raises:
            ConfigurationError: On unknown options or invalid values
        """
        base = defaults if defaults is not None else cls()
        if raw is None:
            return base
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"options must be an object, got {type(raw).__name__}", rule_id)

        allowed = set(recognized) if recognized is not None else set(OPTION_NAMES)
        changes = {}
        for name, value in raw.items():
            if name not in allowed:
                known = ', '.join(sorted(allowed))
                raise ConfigurationError(f"unknown option {name!r} (expected one of: {known})", rule_id)
            attr = OPTION_NAMES[name]
            if attr == 'max_call_depth':
                changes[attr] = _depth(name, value, rule_id)
            else:
                changes[attr] = _name_set(name, value, rule_id)

        literals = changes.get('disallowed_literals')
        if literals:
            unknown = sorted(literals - set(LITERAL_KINDS))
            if unknown:
                raise ConfigurationError(
                    f"disallowedLiterals: unsupported kind(s) {', '.join(unknown)} "
                    f"(supported: {', '.join(sorted(LITERAL_KINDS))})", rule_id)

        return replace(base, **changes)

    def to_mapping(self) -> Dict[str, Any]:
        out = {}
        for user_name, attr in OPTION_NAMES.items():
            value = getattr(self, attr)
            out[user_name] = sorted(value) if isinstance(value, frozenset) else value
        return out


def _depth(name: str, value: Any, rule_id: str) -> int:
    # bool is an int subclass; "maxCallDepth": true is a mistake, not 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", rule_id)
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {value}", rule_id)
    return value


def _name_set(name: str, value: Any, rule_id: str) -> FrozenSet[str]:
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigurationError(f"{name} must be a list of names, got {value!r}", rule_id)
    for item in value:
        if not isinstance(item, str) or not item:
            raise ConfigurationError(f"{name} entries must be non-empty strings, got {item!r}", rule_id)
    return frozenset(value)
