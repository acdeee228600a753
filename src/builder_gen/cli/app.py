import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from builder_gen.cli.expand import check, expand
from builder_gen.cli.watch import watch
from builder_gen.settings import get_settings

app = typer.Typer(
    name="builder-gen",
    help="Builder-gen CLI — derive builder types for Rust structs.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output.")] = False,
) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(message)s", handlers=[RichHandler(show_path=False)], force=True)


app.command("expand")(expand)
app.command("check")(check)
app.command("watch")(watch)


def main() -> None:
    app()
