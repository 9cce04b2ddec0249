"""Turn hazards into diagnostics and hand them to the host."""
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, Iterable, List, Optional

from .hazards import Hazard
from .syntax import source_range


@dataclass(frozen=True)
class Diagnostic:
    """One finding. Lines are 1-based, columns 0-based."""
    rule_id: str
    message: str
    line: int
    column: int
    end_line: int
    end_column: int
    severity: str = 'error'
    message_id: Optional[str] = None
    file_path: Optional[str] = None
    data: Dict[str, Any] = dataclass_field(default_factory=dict, compare=False, hash=False)

    @property
    def sort_key(self):
        return (self.file_path or '', self.line, self.column, self.rule_id, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ruleId': self.rule_id,
            'messageId': self.message_id,
            'message': self.message,
            'severity': self.severity,
            'line': self.line,
            'column': self.column,
            'endLine': self.end_line,
            'endColumn': self.end_column,
            'filePath': self.file_path,
        }


def describe_context(hazard: Hazard, loop: str = 'the frame loop') -> str:
    """Where a hazard runs: ``the frame loop`` or the call chain leading there."""
    if hazard.depth == 0:
        return loop
    hops = 'call' if hazard.depth == 1 else 'calls'
    if hazard.chain:
        return f"{loop} (via {' → '.join(hazard.chain)}, {hazard.depth} local {hops} deep)"
    return f"{loop} ({hazard.depth} local {hops} deep)"


class DiagnosticReporter:
    """Format hazards with a message template and report them.

    Templates are ``str.format`` strings that may use ``{operation}`` and
    ``{context}`` (see ``describe_context``).
    """

    def __init__(self, rule_id: str, message_id: str, template: str, loop: str = 'the frame loop'):
        self.rule_id = rule_id
        self.message_id = message_id
        self.template = template
        self.loop = loop

    def to_diagnostic(self, hazard: Hazard, severity: str = 'error', file_path: str = None) -> Diagnostic:
        line, column, end_line, end_column = source_range(hazard.node)
        context = describe_context(hazard, self.loop)
        return Diagnostic(
            rule_id=self.rule_id,
            message=self.template.format(operation=hazard.operation, context=context),
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            severity=severity,
            message_id=self.message_id,
            file_path=file_path,
            data={'operation': hazard.operation, 'depth': hazard.depth, 'chain': list(hazard.chain)},
        )

    def report(self, context, hazards: Iterable[Hazard]) -> List[Diagnostic]:
        """Report each hazard through ``context.report`` in traversal order."""
        diagnostics = []
        for hazard in hazards:
            diagnostic = self.to_diagnostic(hazard, context.severity, context.file_path)
            context.report(diagnostic)
            diagnostics.append(diagnostic)
        return diagnostics
