"""Reference host: parse files, run rules, collect diagnostics.

This is the piece a linting framework would normally provide. It builds
every configured rule once (so option errors surface before any file is
read), then for each file parses with tree-sitter, walks the tree a single
time dispatching the rules' listener maps, and gathers what they report.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .analyzer.parser import LanguageParser
from .analyzer.reporter import Diagnostic
from .analyzer.syntax import ensure_syntax_node
from .analyzer.walker import TreeWalker
from .errors import ConfigurationError
from .rules.base import Rule, RuleContext
from .rules.configs import PRESETS
from .rules.index import RULES, rule_id as plain_rule_id
from .utils.logger import get_logger

logger = get_logger(__name__)

SEVERITY_LEVELS = {
    'off': None, 0: None,
    'warn': 'warning', 'warning': 'warning', 1: 'warning',
    'error': 'error', 2: 'error',
}

# Directories never worth linting
EXCLUDED_DIRS = {
    'node_modules', 'dist', 'build', 'out', 'coverage',
    '.git', '.next', '.turbo', '.cache', 'vendor', '__pycache__',
}


@dataclass
class RuleEntry:
    rule: Rule
    severity: str


@dataclass
class LintReport:
    """Diagnostics of one run over a set of files."""
    diagnostics: List[Diagnostic] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (file, reason)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == 'error']

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == 'warning']

    @property
    def has_errors(self) -> bool:
        return any(d.severity == 'error' for d in self.diagnostics)

    def by_file(self) -> Dict[str, List[Diagnostic]]:
        grouped: Dict[str, List[Diagnostic]] = {}
        for diagnostic in self.diagnostics:
            grouped.setdefault(diagnostic.file_path or '<input>', []).append(diagnostic)
        return grouped


def parse_rule_entry(name: str, entry: Any) -> Tuple[Optional[str], Optional[Mapping[str, Any]]]:
    """Split an ESLint-style rule entry into (severity, options).

    ``"warn"``, ``2`` and ``["error", {"maxCallDepth": 3}]`` are all accepted.
    A severity of None means the rule is off.

    Raises:
        ConfigurationError: On an unknown severity or malformed entry
    """
    options = None
    if isinstance(entry, (list, tuple)):
        if not entry or len(entry) > 2:
            raise ConfigurationError(f"expected [severity] or [severity, options], got {entry!r}", name)
        if len(entry) == 2:
            options = entry[1]
        entry = entry[0]
    if isinstance(entry, bool) or not isinstance(entry, (str, int)) or entry not in SEVERITY_LEVELS:
        raise ConfigurationError(f"unknown severity {entry!r} (use off, warn or error)", name)
    return SEVERITY_LEVELS[entry], options


class Linter:
    """Runs a fixed set of configured rules over sources."""

    def __init__(self, rules: Mapping[str, Any], max_call_depth: Optional[int] = None):
        """Build every enabled rule.

        Args:
            rules: Rule id (plain or ``framelint/``-qualified) -> entry
            max_call_depth: ``maxCallDepth`` for rules whose options leave it unset

        Raises:
            ConfigurationError: On unknown rules, severities or bad options
        """
        self.entries: List[RuleEntry] = []
        for name, entry in rules.items():
            rid = plain_rule_id(name)
            rule_cls = RULES.get(rid)
            if rule_cls is None:
                raise ConfigurationError(f"unknown rule (available: {', '.join(sorted(RULES))})", name)
            severity, options = parse_rule_entry(name, entry)
            if severity is None:
                continue
            defaults = rule_cls.meta.defaults
            if max_call_depth is not None:
                defaults = replace(defaults, max_call_depth=max_call_depth)
            self.entries.append(RuleEntry(rule_cls(options, defaults=defaults), severity))

    @classmethod
    def from_config(cls, config: Mapping[str, Any] = None, preset: str = 'recommended',
                    max_call_depth: Optional[int] = None) -> 'Linter':
        """Linter for a project config layered on a preset.

        ``config['extends']`` overrides ``preset``; ``config['rules']`` entries
        override the preset's.
        """
        config = config or {}
        preset = config.get('extends', preset)
        if preset not in PRESETS:
            raise ConfigurationError(f"unknown preset {preset!r} (available: {', '.join(PRESETS)})")
        rules: Dict[str, Any] = {plain_rule_id(k): v for k, v in PRESETS[preset]['rules'].items()}
        for name, entry in (config.get('rules') or {}).items():
            rules[plain_rule_id(name)] = entry
        return cls(rules, max_call_depth=max_call_depth)

    @property
    def rule_ids(self) -> List[str]:
        return [entry.rule.meta.id for entry in self.entries]

    def lint_tree(self, root, source: bytes = b'', file_path: str = None) -> List[Diagnostic]:
        """Run the rules over an already parsed tree.

        Raises:
            HostContractError: If ``root`` is not a syntax tree node
        """
        root = ensure_syntax_node(root)
        contexts = []
        listeners: Dict[str, List[Callable]] = {}
        for entry in self.entries:
            context = RuleContext(entry.rule.meta.id, entry.rule.options, source,
                                  file_path, entry.severity)
            contexts.append(context)
            for kind, listener in entry.rule.create(context).items():
                listeners.setdefault(kind, []).append(listener)

        def dispatcher(callbacks):
            def dispatch(node):
                for callback in callbacks:
                    callback(node)
            return dispatch

        TreeWalker(enter={kind: dispatcher(cbs) for kind, cbs in listeners.items()}).walk(root)

        diagnostics = [d for context in contexts for d in context.diagnostics]
        diagnostics.sort(key=lambda d: d.sort_key)
        return diagnostics

    def lint_source(self, source: bytes | str, file_path: str = None,
                    language: str = None) -> List[Diagnostic]:
        if isinstance(source, str):
            source = source.encode('utf-8')
        if language is None:
            language = LanguageParser.language_for(file_path) if file_path else None
        parser = LanguageParser(language or 'javascript')
        tree = parser.parse_source(source)
        return self.lint_tree(tree.root_node, source, file_path)

    def lint_file(self, file_path: str | Path) -> List[Diagnostic]:
        """Lint one file.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the extension is not a supported language
        """
        file_path = Path(file_path)
        language = LanguageParser.language_for(file_path)
        if language is None:
            raise ValueError(f"Unsupported file type: {file_path.suffix}")
        source = file_path.read_bytes()
        return self.lint_source(source, str(file_path), language)

    def lint_paths(self, paths: Iterable[str | Path]) -> LintReport:
        report = LintReport()
        for file_path in discover_files(paths):
            report.files.append(str(file_path))
            try:
                report.diagnostics.extend(self.lint_file(file_path))
            except (OSError, ValueError) as exc:
                logger.warning("skipping %s: %s", file_path, exc)
                report.failures.append((str(file_path), str(exc)))
        report.diagnostics.sort(key=lambda d: d.sort_key)
        return report


def discover_files(paths: Iterable[str | Path]) -> List[Path]:
    """Supported source files under ``paths``, sorted, without vendored code."""
    found = set()
    for path in paths:
        path = Path(path)
        if path.is_file():
            found.add(path)
            continue
        if not path.is_dir():
            logger.warning("path does not exist: %s", path)
            continue
        for candidate in path.rglob('*'):
            if not candidate.is_file() or LanguageParser.language_for(candidate) is None:
                continue
            if candidate.name.endswith('.d.ts'):
                continue
            relative = candidate.relative_to(path)
            if any(part in EXCLUDED_DIRS for part in relative.parts[:-1]):
                continue
            found.add(candidate)
    return sorted(found)
