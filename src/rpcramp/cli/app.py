"""The ``rpcramp`` command: a typer app with ``run`` and ``init``."""

from __future__ import annotations

import typer

from rpcramp import __version__
from rpcramp.cli.init_cmd import init_cmd
from rpcramp.cli.run import run_cmd

_ENV_HELP = (
    "Defaults can be set with RPCRAMP_TIMEOUT_MS, RPCRAMP_MIN_BODY_BYTES, "
    "RPCRAMP_QUEUE_SIZE and RPCRAMP_OUTPUT."
)

app = typer.Typer(
    name="rpcramp",
    help="Ramp up concurrent load against JSON-RPC endpoints.",
    epilog=_ENV_HELP,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Ramp connections against JSON-RPC endpoints and export a CSV.")(
    run_cmd
)
app.command("init", help="Write a sample JSON-RPC request template.")(init_cmd)


def _show_version(requested: bool) -> None:
    if not requested:
        return
    typer.echo(f"rpcramp {__version__}")
    raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Print the rpcramp version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Concurrent JSON-RPC load generator with stepped connection ramps."""
