import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from builder_gen.core.expand import output_path_for, write_expansion
from builder_gen.core.ports.watcher import SourceWatcherPort
from builder_gen.render.rust import format_diagnostic
from builder_gen.watcher.watchfiles_adapter import create_watcher

console = Console()
logger = logging.getLogger(__name__)


async def regenerate(paths: set[Path], output: Path | None = None) -> None:
    for path in sorted(paths):
        if not path.exists():
            stale = output_path_for(path, output)
            if stale.exists():
                stale.unlink()
                console.print(f"[yellow]Removed[/yellow] {stale}")
            continue
        try:
            target, expansions = write_expansion(path, output)
        except ValueError as exc:
            console.print(f"[red]{path}:[/red] {exc}", highlight=False)
            continue
        for expansion in expansions:
            if expansion.diagnostic is not None:
                console.print(f"[red]{escape(format_diagnostic(expansion.diagnostic, path))}[/red]", highlight=False)
        if expansions:
            console.print(f"[green]Regenerated[/green] {target}")


def watch(
    directory: Annotated[Path, typer.Argument(help="Directory to watch for .rs changes.")] = Path("src"),
    output: Annotated[Path | None, typer.Option(help="Directory to write generated files into.")] = None,
) -> None:
    """Regenerate builders whenever Rust sources change."""

    async def _on_change(paths: set[Path]) -> None:
        await regenerate(paths, output)

    async def _run() -> None:
        watcher: SourceWatcherPort = create_watcher(directory, _on_change)
        await regenerate(watcher.sources(), output)
        await watcher.start()
        console.print(f"[green]Watching[/green] {watcher.directory} (Ctrl+C to stop)")
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Watch interrupted")
