"""Exception types raised by framelint.

Only whole-invocation failures surface as exceptions. Anything that goes wrong
on a single node is absorbed by the analyzer and at worst costs a diagnostic.
"""


class FrameLintError(Exception):
    """Base class for framelint failures."""


class ConfigurationError(FrameLintError, ValueError):
    """Invalid rule options or rule configuration.

    Raised once, when a rule is constructed, never per analyzed file.
    """

    def __init__(self, message: str, rule_id: str = None):
        self.rule_id = rule_id
        if rule_id:
            message = f"{rule_id}: {message}"
        super().__init__(message)


class HostContractError(FrameLintError, TypeError):
    """The host handed the engine something that is not a syntax tree node."""
