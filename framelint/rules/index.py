"""The rules framelint ships, keyed by rule id."""
from typing import Dict, Type

from .base import PLUGIN_NAME, Rule
from .no_clone_in_loop import NoCloneInLoop
from .no_fast_state import NoFastState
from .no_new_in_loop import NoNewInLoop

RULES: Dict[str, Type[Rule]] = {
    rule.meta.id: rule
    for rule in (NoCloneInLoop, NoNewInLoop, NoFastState)
}


def rule_id(name: str) -> str:
    """``framelint/no-clone-in-loop`` -> ``no-clone-in-loop``."""
    prefix = f"{PLUGIN_NAME}/"
    return name[len(prefix):] if name.startswith(prefix) else name


def get_rule(name: str) -> Type[Rule]:
    """Rule class for a plain or plugin-qualified rule id.

    Raises:
        KeyError: If no rule has that id
    """
    return RULES[rule_id(name)]
