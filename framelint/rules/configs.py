"""Preset rule configurations.

``ALL`` turns every rule on as an error. ``RECOMMENDED`` turns on the rules
whose meta is marked recommended, as warnings.
"""
from .base import PLUGIN_NAME
from .index import RULES

ALL = {
    'plugins': [PLUGIN_NAME],
    'rules': {
        f"{PLUGIN_NAME}/{rule_id}": 'error'
        for rule_id in RULES
    },
}

RECOMMENDED = {
    'plugins': [PLUGIN_NAME],
    'rules': {
        f"{PLUGIN_NAME}/{rule_id}": 'warn'
        for rule_id, rule in RULES.items()
        if rule.meta.recommended
    },
}

PRESETS = {
    'all': ALL,
    'recommended': RECOMMENDED,
}
