"""
plancheck CLI - classify captured EXPLAIN output against plan rules.

Usage:
    plancheck check plan.txt --backend postgres
    plancheck check explain_rows.json --backend mysql --rule row_count -t 500
    plancheck rules
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from plancheck import __version__
from plancheck.checker import CheckOutcome, PlanChecker, RawPlan, StaticPlanSource
from plancheck.config import get_config
from plancheck.db.explain import render_plan_text
from plancheck.exceptions import ConfigurationError
from plancheck.models import BackendKind
from plancheck.rules import get_registry


class BackendOption(str, Enum):
    """Backends selectable on the command line."""
    mysql = "mysql"
    postgres = "postgres"
    sqlite = "sqlite"
    generic = "generic"


app = typer.Typer(
    name="plancheck",
    help="Classify query execution plans against plan rules",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"plancheck version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Logging level (defaults to PLANCHECK_LOG_LEVEL or WARNING)",
        ),
    ] = None,
) -> None:
    """plancheck - execution plan classifier."""
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_plan_file(path: Path, backend: BackendKind) -> RawPlan:
    """
    Read captured EXPLAIN output.

    A JSON list of objects is taken as structured EXPLAIN rows and rendered
    to text; anything else is taken as raw plan text.
    """
    content = path.read_text()
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError:
        return RawPlan(backend=backend, text=content)

    if isinstance(data, list) and data and all(isinstance(row, dict) for row in data):
        return RawPlan(backend=backend, text=render_plan_text(backend, data), rows=data)
    return RawPlan(backend=backend, text=content)


def _print_outcomes(outcomes: list[CheckOutcome], backend: BackendKind) -> None:
    table = Table(title=f"Plan checks ({backend.value})")
    table.add_column("Rule", style="bold")
    table.add_column("Verdict")
    table.add_column("Detail")

    for outcome in outcomes:
        if outcome.error is not None:
            table.add_row(outcome.rule_id, "[magenta]ERROR[/magenta]", outcome.error.message)
        elif outcome.passed:
            table.add_row(outcome.rule_id, "[green]PASS[/green]", "")
        else:
            assert outcome.result is not None
            table.add_row(outcome.rule_id, "[red]FAIL[/red]", outcome.result.message)

    console.print(table)

    failed = [o for o in outcomes if o.evaluated and not o.passed]
    if not failed:
        console.print(Panel("[green]Plan passed every check.[/green]", border_style="green"))


@app.command()
def check(
    plan_file: Annotated[
        Path,
        typer.Argument(
            help="File with EXPLAIN output (text, or JSON list of EXPLAIN rows)",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    backend: Annotated[
        BackendOption,
        typer.Option("--backend", "-b", help="Database backend the plan came from"),
    ] = BackendOption.generic,
    rule: Annotated[
        Optional[list[str]],
        typer.Option("--rule", "-r", help="Rule to run (repeatable, default: all)"),
    ] = None,
    threshold: Annotated[
        Optional[int],
        typer.Option("--threshold", "-t", help="Row threshold for the row count rule"),
    ] = None,
    sql: Annotated[
        str,
        typer.Option("--sql", help="Query text to include in messages"),
    ] = "",
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output results as JSON"),
    ] = False,
) -> None:
    """
    Classify captured EXPLAIN output.

    Exits 1 if any rule fails, 2 if the input or options are invalid.

    Examples:

        $ psql -At -c "EXPLAIN SELECT * FROM users WHERE id = 1" > plan.txt
        $ plancheck check plan.txt -b postgres

        $ plancheck check rows.json -b mysql -r row_count -t 500
    """
    backend_kind = BackendKind(backend.value)

    try:
        raw_plan = load_plan_file(plan_file, backend_kind)
        checker = PlanChecker(StaticPlanSource(raw_plan))
        outcomes = checker.check_all(sql, rules=rule, threshold=threshold)
    except (OSError, UnicodeDecodeError) as e:
        error_console.print(f"[red]Error:[/red] could not read {plan_file}: {e}")
        raise typer.Exit(code=2)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=2)

    if json_output:
        console.print_json(json.dumps({
            "backend": backend_kind.value,
            "outcomes": [o.to_dict() for o in outcomes],
        }))
    else:
        _print_outcomes(outcomes, backend_kind)

    if any(o.error is not None for o in outcomes):
        raise typer.Exit(code=2)
    if any(not o.passed for o in outcomes):
        raise typer.Exit(code=1)


@app.command("rules")
def list_rules() -> None:
    """List available rules and the names they answer to."""
    registry = get_registry()
    config = get_config()

    table = Table(title="plancheck rules")
    table.add_column("Rule", style="bold")
    table.add_column("Aliases")
    table.add_column("Error kind")
    table.add_column("Enabled")
    table.add_column("Description")

    for rule_cls in registry.all():
        enabled = config.is_rule_enabled(rule_cls.rule_id)
        table.add_row(
            rule_cls.rule_id,
            ", ".join(a.lower() for a in registry.aliases_for(rule_cls.rule_id)),
            rule_cls.error_kind.value,
            "[green]yes[/green]" if enabled else "[red]no[/red]",
            rule_cls.description,
        )

    console.print(table)


if __name__ == "__main__":
    app()
