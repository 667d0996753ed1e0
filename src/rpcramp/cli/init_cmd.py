"""``rpcramp init``: write a sample request template."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

console = Console(stderr=True)


def init_cmd(
    name: str = typer.Argument(
        "request",
        help="File name for the template (without the .json suffix).",
    ),
    method: str = typer.Option(
        "eth_blockNumber",
        "--method",
        "-m",
        help="JSON-RPC method of the sample request.",
    ),
) -> None:
    """Write a JSON-RPC request template in the current directory."""
    safe_name = "".join(c if c.isalnum() or c in "_-" else "_" for c in name) or "request"
    filename = f"{safe_name}.json"

    target = Path.cwd() / filename
    if target.exists():
        console.print(f"[red]File already exists:[/red] {filename}")
        raise typer.Exit(code=1)

    template = {"id": 1, "jsonrpc": "2.0", "method": method, "params": []}
    target.write_text(json.dumps(template, indent=2) + "\n")
    console.print(f"[green]Created request template:[/green] {filename}")
    console.print(f"Run with: rpcramp run -u http://localhost:8545 -c 10 -r 100 -f {filename}")
