"""``rpcramp run``: ramp up load against JSON-RPC endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rpcramp._internal.config import load_config
from rpcramp._internal.errors import RpcRampError
from rpcramp._internal.logging import level_from_verbosity, setup_logging
from rpcramp.engine.config import LoadTestConfig
from rpcramp.engine.endpoints import parse_endpoints
from rpcramp.engine.ramp import ramp_sequence
from rpcramp.engine.runner import LoadTestRunner
from rpcramp.metrics.export import write_results_csv
from rpcramp.rpc.request import load_request_file

if TYPE_CHECKING:
    from rpcramp.metrics.models import LoadTestResult, RunResult
    from rpcramp.rpc.request import JsonRpcRequest

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


def _print_step_summary(result: RunResult) -> None:
    """Print the summary table and error breakdown of one ramp step."""
    table = Table(
        title=f"Results for {result.connections} Connections",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total requests", str(result.total_requests))
    table.add_row("Successful requests", str(result.successful_requests))
    table.add_row("Failed requests", str(result.failed_requests))
    table.add_row("Timeout requests", str(result.timeout_requests))
    table.add_row("Avg requests per second", f"{result.average_requests_per_second:.2f}")
    table.add_row("Average response time", f"{result.average_response_time:.2f} ms")
    table.add_row("p50 / p95 / p99", (
        f"{result.latency_p50:.1f} / {result.latency_p95:.1f} / "
        f"{result.latency_p99:.1f} ms"
    ))
    table.add_row("Elapsed time", f"{result.elapsed_time:.2f} s")
    console.print(table)

    if result.errors:
        err_table = Table(
            title="Error Breakdown",
            show_header=True,
            header_style="bold red",
        )
        err_table.add_column("Error")
        err_table.add_column("Count", justify="right")
        for error, count in sorted(result.errors.items(), key=lambda item: -item[1]):
            err_table.add_row(error, str(count))
        console.print(err_table)


def _print_outcome(result: LoadTestResult) -> None:
    if result.parse_failures:
        console.print(
            f"[yellow]{result.parse_failures} streamed line(s) could not be parsed.[/yellow]"
        )
    if result.interrupted:
        console.print(
            f"[yellow]Interrupted after {len(result.steps)} ramp step(s).[/yellow]"
        )


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    urls: list[str] = typer.Option(
        ...,
        "--url",
        "-u",
        help="Server URL. Repeat the option or separate URLs with commas.",
    ),
    connections: int = typer.Option(
        ...,
        "--connections",
        "-c",
        help="Number of concurrent connections (maximum when ramping).",
        min=1,
    ),
    requests: int = typer.Option(
        0,
        "--requests",
        "-r",
        help="Requests per connection (0 for a time-based test).",
        min=0,
    ),
    step: int = typer.Option(
        0,
        "--step",
        "-s",
        help="Connection step size: run 1, 1+step, ... up to --connections.",
        min=0,
    ),
    request_file: Path | None = typer.Option(
        None,
        "--file",
        "-f",
        help="Path to the file containing the JSON-RPC request.",
    ),
    duration: float = typer.Option(
        0.0,
        "--duration",
        "-d",
        help="Duration of each step in seconds (0 for no limit).",
        min=0.0,
    ),
    timeout: int | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Request timeout in milliseconds [default: 15000].",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output filename for the results (CSV) [default: results.csv].",
    ),
    pipe: bool = typer.Option(
        False,
        "--pipe",
        "-p",
        help="Read line-delimited JSON-RPC requests from stdin.",
    ),
    min_body_bytes: int | None = typer.Option(
        None,
        "--min-body-bytes",
        help=(
            "Successful responses shorter than this are counted as JSON-RPC "
            "errors [default: 1000]."
        ),
    ),
    endpoint_selection: str = typer.Option(
        "random",
        "--endpoint-selection",
        help=(
            "How each request picks its endpoint: random (uniform, default) or "
            "round-robin (even per-endpoint load)."
        ),
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity (-v info, -vv debug).",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit logs as JSON lines.",
    ),
) -> None:
    """Ramp up concurrent load against JSON-RPC endpoints."""
    log_level = level_from_verbosity(verbose)
    setup_logging(level=log_level, json_format=log_json)

    try:
        defaults = load_config()
        config = LoadTestConfig(
            endpoints=parse_endpoints(urls),
            max_connections=connections,
            connections_step=step,
            requests_per_connection=requests,
            duration_seconds=duration,
            timeout_ms=timeout if timeout is not None else defaults.timeout_ms,
            min_body_bytes=(
                min_body_bytes if min_body_bytes is not None else defaults.min_body_bytes
            ),
            stream=pipe,
            request_file=request_file,
            output=output if output is not None else Path(defaults.output),
            endpoint_strategy=endpoint_selection,  # type: ignore[arg-type]
            queue_size=defaults.queue_size,
        )
        template: JsonRpcRequest | None = None
        if not config.stream and config.request_file is not None:
            template = load_request_file(config.request_file)
    except RpcRampError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    source_label = "stdin" if config.stream else str(config.request_file)
    console.print(
        Panel(
            f"[bold]Endpoints:[/bold]   {', '.join(config.endpoints)}\n"
            f"[bold]Requests:[/bold]    {source_label}\n"
            f"[bold]Ramp:[/bold]        {ramp_sequence(connections, step)}\n"
            f"[bold]Per step:[/bold]    {requests or 'unlimited'} request(s) per connection, "
            f"{f'{duration:g}s' if duration else 'no time limit'}\n"
            f"[bold]Timeout:[/bold]     {config.timeout_ms} ms",
            title="rpcramp",
            border_style="cyan",
        )
    )

    try:
        runner = LoadTestRunner(
            config,
            template=template,
            on_step=_print_step_summary,
        )
        result = runner.run()
    except RpcRampError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_outcome(result)

    try:
        written = write_results_csv(config.output, result.steps)
    except RpcRampError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[green]Results have been exported to {written}[/green]")
