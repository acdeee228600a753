from collections.abc import Sequence
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from builder_gen.core.expand import Expansion, expand_file, expand_source, render_expansions, write_expansion
from builder_gen.errors import UnsupportedRecordError
from builder_gen.ir import GeneratedUnit
from builder_gen.render.rust import format_diagnostic

console = Console()
err_console = Console(stderr=True)


def _report_diagnostics(expansions: Sequence[Expansion], path: str | None) -> int:
    failures = 0
    for expansion in expansions:
        if expansion.diagnostic is not None:
            failures += 1
            err_console.print(f"[red]{escape(format_diagnostic(expansion.diagnostic, path))}[/red]", highlight=False)
    return failures


def _load(path: str, code: str | None) -> list[Expansion]:
    try:
        if code is not None:
            return expand_source(code)
        return expand_file(path)
    except (FileNotFoundError, ValueError) as exc:
        # UnsupportedRecordError is a ValueError
        label = "Unsupported record" if isinstance(exc, UnsupportedRecordError) else "Error"
        err_console.print(f"[red]{label}:[/red] {exc}", highlight=False)
        raise typer.Exit(code=2) from None


def expand(
    path: Annotated[str, typer.Argument(help="Path to a Rust source file.")] = "src/lib.rs",
    code: Annotated[str | None, typer.Option(help="Rust source string to expand instead of a file path.")] = None,
    output: Annotated[
        Path | None, typer.Option(help="Directory to write <stem>_builders.rs into instead of printing.")
    ] = None,
) -> None:
    """Generate builder code for every struct deriving Builder."""
    if output is not None and code is None:
        try:
            target, expansions = write_expansion(path, output)
        except (FileNotFoundError, ValueError) as exc:
            err_console.print(f"[red]Error:[/red] {exc}", highlight=False)
            raise typer.Exit(code=2) from None
        if expansions:
            console.print(f"[green]Wrote[/green] {len(expansions)} builder(s) to {target}")
    else:
        expansions = _load(path, code)
        if expansions:
            console.print(Syntax(render_expansions(expansions), "rust", theme="ansi_dark"))

    if not expansions:
        console.print("No structs derive Builder.")
    if _report_diagnostics(expansions, None if code is not None else path):
        raise typer.Exit(code=1)


def _method_summary(unit: GeneratedUnit, field: str) -> str:
    return ", ".join(f"{m.name}()" for m in unit.methods if m.field == field)


def check(
    path: Annotated[str, typer.Argument(help="Path to a Rust source file.")] = "src/lib.rs",
    code: Annotated[str | None, typer.Option(help="Rust source string to check instead of a file path.")] = None,
) -> None:
    """Show how each field of each Builder struct is classified."""
    expansions = _load(path, code)

    table = Table(show_lines=False)
    for header in ("record", "field", "type", "storage", "methods"):
        table.add_column(header)
    for expansion in expansions:
        unit = expansion.unit
        if unit is None:
            continue
        slots = {slot.name: slot for slot in unit.storage_fields}
        for field in expansion.record.fields:
            slot = slots[field.name]
            table.add_row(
                unit.record_name,
                field.name,
                field.declared_type.text,
                slot.kind.value,
                _method_summary(unit, field.name),
            )
    console.print(table)
    console.print(f"({len(expansions)} records)")

    if _report_diagnostics(expansions, None if code is not None else path):
        raise typer.Exit(code=1)
