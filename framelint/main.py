"""framelint CLI - find allocation and state hazards on the render loop."""
import json
from pathlib import Path
from typing import List, Optional

import typer
import click
from rich.markup import escape
from rich.table import Table

from .config import __version__, get_config, load_project_config
from .errors import ConfigurationError
from .linter import Linter, LintReport, parse_rule_entry
from .rules.configs import PRESETS
from .rules.index import RULES, rule_id as plain_rule_id
from .utils.logger import configure_logging
from .utils.safe_console import SafeConsole

app = typer.Typer(
    name="framelint",
    help="Find expensive allocations and state updates on the render loop",
    add_completion=False
)
console = SafeConsole()


def _version_callback(value: bool):
    if value:
        console.print(f"framelint {__version__}")
        raise typer.Exit()


def _build_linter(preset: Optional[str], config_file: Optional[Path], rules: List[str],
                  max_call_depth: Optional[int], frame_apis: List[str],
                  banned: List[str]) -> Linter:
    """Assemble the linter from env, project config and command-line overrides.

    Precedence, highest first: command line, project config, environment.
    """
    config = get_config()
    project = load_project_config(config_file or config.config_file)

    if max_call_depth is None:
        max_call_depth = config.max_call_depth

    preset = (preset or project.get('extends') or config.preset).lower()
    if preset not in PRESETS:
        raise ConfigurationError(f"unknown preset {preset!r} (available: {', '.join(PRESETS)})")
    entries = {plain_rule_id(k): v for k, v in PRESETS[preset]['rules'].items()}
    entries.update({plain_rule_id(k): v for k, v in (project.get('rules') or {}).items()})

    if rules:
        # Explicit rule selection replaces the presets, keeping configured options
        selected = {}
        for name in rules:
            rid = plain_rule_id(name)
            if rid not in RULES:
                raise ConfigurationError(f"unknown rule (available: {', '.join(sorted(RULES))})", name)
            _, options = parse_rule_entry(rid, entries.get(rid, 'error'))
            selected[rid] = ['error', options or {}]
        entries = selected

    if frame_apis or banned:
        for rid, entry in list(entries.items()):
            severity, options = parse_rule_entry(rid, entry)
            if severity is None or rid not in RULES:
                continue
            recognized = RULES[rid].meta.options
            options = dict(options or {})
            if frame_apis and 'frameLoopApis' in recognized:
                options['frameLoopApis'] = list(frame_apis)
            if banned and 'bannedOperations' in recognized:
                options['bannedOperations'] = list(banned)
            entries[rid] = [severity, options]

    # Presets are already folded into entries
    return Linter(entries, max_call_depth=max_call_depth)


def _print_table(report: LintReport):
    for file_path, diagnostics in report.by_file().items():
        table = Table(title=escape(file_path), title_justify="left", show_header=True,
                      header_style="bold cyan")
        table.add_column("Line", justify="right", style="dim")
        table.add_column("Severity")
        table.add_column("Rule", style="magenta", no_wrap=True)
        table.add_column("Message", no_wrap=False)

        for d in diagnostics:
            severity = "[bold red]error[/bold red]" if d.severity == 'error' else "[yellow]warning[/yellow]"
            table.add_row(f"{d.line}:{d.column + 1}", severity, d.rule_id, escape(d.message))
        console.print(table)

    for file_path, reason in report.failures:
        console.print(f"[bold yellow]Skipped:[/bold yellow] {escape(file_path)} ({escape(reason)})")

    errors, warnings = len(report.errors), len(report.warnings)
    if errors or warnings:
        console.print(f"\n[bold]{errors + warnings} problem(s)[/bold] "
                      f"([red]{errors} error(s)[/red], [yellow]{warnings} warning(s)[/yellow]) "
                      f"in {len(report.files)} file(s)")
    else:
        console.print(f"[bold green]✓ No problems found[/bold green] in {len(report.files)} file(s)")


@app.command()
def lint(
    paths: List[Path] = typer.Argument(..., help="Files or directories to lint"),
    preset: Optional[str] = typer.Option(
        None, "--preset", "-p",
        click_type=click.Choice(sorted(PRESETS), case_sensitive=False),
        help="Preset to start from (default: FRAMELINT_PRESET or recommended)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
    rules: List[str] = typer.Option([], "--rule", "-r", help="Only run these rules (repeatable)"),
    max_call_depth: Optional[int] = typer.Option(None, "--max-call-depth", min=0,
                                                 help="Local call hops to follow from a frame callback"),
    frame_apis: List[str] = typer.Option([], "--frame-api", help="Frame loop subscription API (repeatable)"),
    banned: List[str] = typer.Option([], "--banned", help="Banned operation name (repeatable)"),
    output_format: str = typer.Option(
        "table", "--format", "-f",
        click_type=click.Choice(["table", "json"], case_sensitive=False),
        help="Output format"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log propagation details"),
):
    """Lint JavaScript/TypeScript sources for render-loop hazards."""
    configure_logging("DEBUG" if verbose else get_config().log_level)

    try:
        linter = _build_linter(preset, config_file, rules, max_call_depth, frame_apis, banned)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(2)

    report = linter.lint_paths(paths)

    if output_format.lower() == "json":
        typer.echo(json.dumps([d.to_dict() for d in report.diagnostics], indent=2, ensure_ascii=False))
    else:
        _print_table(report)

    if report.has_errors:
        raise typer.Exit(1)


def _option_defaults(rule) -> dict:
    """Documented options of ``rule`` with their default values."""
    defaults = rule.meta.defaults.to_mapping()
    return {name: defaults[name] for name in sorted(rule.meta.options)}


@app.command("rules")
def list_rules(
    output_format: str = typer.Option(
        "table", "--format", "-f",
        click_type=click.Choice(["table", "json"], case_sensitive=False),
        help="Output format"),
):
    """List the available rules and their option defaults."""
    if output_format.lower() == "json":
        typer.echo(json.dumps([
            {
                'ruleId': rule.meta.qualified_id,
                'description': rule.meta.description,
                'recommended': rule.meta.recommended,
                'docs': rule.meta.url,
                'options': _option_defaults(rule),
            }
            for _, rule in sorted(RULES.items())
        ], indent=2))
        return

    table = Table(title="framelint rules", show_header=True, header_style="bold cyan")
    table.add_column("Rule", style="magenta", no_wrap=True)
    table.add_column("Recommended", justify="center")
    table.add_column("Options (defaults)", style="dim")
    table.add_column("Description", no_wrap=False)

    for rid, rule in sorted(RULES.items()):
        options = "\n".join(f"{name}={json.dumps(value)}"
                            for name, value in _option_defaults(rule).items())
        table.add_row(
            rid,
            "yes" if rule.meta.recommended else "",
            escape(options),
            rule.meta.description,
        )
    console.print(table)


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """framelint - render-loop hazard linter for React Three Fiber style code."""


if __name__ == "__main__":
    app()
