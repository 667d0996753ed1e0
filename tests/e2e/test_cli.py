"""End-to-end tests for the rpcramp CLI."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from rpcramp import __version__
from rpcramp.cli.app import app

if TYPE_CHECKING:
    from conftest import RpcServer

runner = CliRunner()


def _read_rows(path: Path) -> list[list[str]]:
    with path.open(newline="") as fh:
        return list(csv.reader(fh))


# ---------------------------------------------------------------------------
# Tests: version and help
# ---------------------------------------------------------------------------


def test_version_flag():
    """--version prints version and exits 0."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_version_short_flag():
    """-V also prints version."""
    result = runner.invoke(app, ["-V"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_output():
    """--help shows usage information."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "rpcramp" in result.output.lower()


def test_run_help():
    """rpcramp run --help shows run options."""
    result = runner.invoke(app, ["run", "--help"])
    assert result.exit_code == 0
    for option in ("--url", "--connections", "--requests", "--step", "--pipe", "--timeout"):
        assert option in result.output


# ---------------------------------------------------------------------------
# Tests: rpcramp init
# ---------------------------------------------------------------------------


def test_init_creates_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """rpcramp init writes a loadable request template in cwd."""
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init", "balance", "--method", "eth_getBalance"])
    assert result.exit_code == 0

    generated = tmp_path / "balance.json"
    assert json.loads(generated.read_text()) == {
        "id": 1,
        "jsonrpc": "2.0",
        "method": "eth_getBalance",
        "params": [],
    }


def test_init_default_name(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """rpcramp init with no name writes request.json."""
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / "request.json").exists()


def test_init_rejects_existing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """rpcramp init refuses to overwrite an existing file."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "existing.json").write_text("{}")
    result = runner.invoke(app, ["init", "existing"])
    assert result.exit_code == 1
    assert (tmp_path / "existing.json").read_text() == "{}"


# ---------------------------------------------------------------------------
# Tests: rpcramp run
# ---------------------------------------------------------------------------


@pytest.mark.timeout(30)
def test_run_writes_results(sync_rpc_server: RpcServer, request_file: Path, tmp_path: Path):
    """A request-bounded run prints a summary and writes one CSV row."""
    output = tmp_path / "results.csv"
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            f"{sync_rpc_server.url}/rpc",
            "-c",
            "1",
            "-r",
            "5",
            "-f",
            str(request_file),
            "-o",
            str(output),
        ],
    )
    assert result.exit_code == 0, f"output: {result.output}"
    assert "Results for 1 Connections" in result.output
    assert "exported" in result.output

    rows = _read_rows(output)
    assert rows[0][0] == "connections"
    assert len(rows) == 2
    assert rows[1][:4] == ["1", "5", "5", "0"]
    assert rows[1][7] == "0"


@pytest.mark.timeout(30)
def test_run_ramp_steps(sync_rpc_server: RpcServer, request_file: Path, tmp_path: Path):
    """--step produces one row per connection count."""
    output = tmp_path / "ramp.csv"
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            f"{sync_rpc_server.url}/rpc",
            "-c",
            "5",
            "-s",
            "2",
            "-r",
            "2",
            "-f",
            str(request_file),
            "-o",
            str(output),
        ],
    )
    assert result.exit_code == 0, f"output: {result.output}"

    rows = _read_rows(output)
    assert [row[0] for row in rows[1:]] == ["1", "3", "5"]
    assert [row[1] for row in rows[1:]] == ["2", "6", "10"]


@pytest.mark.timeout(30)
def test_run_reports_error_breakdown(
    sync_rpc_server: RpcServer, request_file: Path, tmp_path: Path
):
    """Compact JSON-RPC errors are failures and show up in the breakdown."""
    output = tmp_path / "errors.csv"
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            f"{sync_rpc_server.url}/rpc-error",
            "-c",
            "1",
            "-r",
            "2",
            "-f",
            str(request_file),
            "-o",
            str(output),
        ],
    )
    assert result.exit_code == 0, f"output: {result.output}"
    assert "Error Breakdown" in result.output

    rows = _read_rows(output)
    assert rows[1][:4] == ["1", "2", "0", "2"]


@pytest.mark.timeout(30)
def test_run_streams_from_stdin(sync_rpc_server: RpcServer, tmp_path: Path):
    """--pipe dispatches each valid stdin line once."""
    output = tmp_path / "stream.csv"
    lines = "".join(
        json.dumps({"id": i, "jsonrpc": "2.0", "method": f"m{i}", "params": []}) + "\n"
        for i in range(3)
    )
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            f"{sync_rpc_server.url}/rpc",
            "-c",
            "2",
            "-p",
            "-o",
            str(output),
        ],
        input=lines + "not json\n",
    )
    assert result.exit_code == 0, f"output: {result.output}"
    assert "could not be parsed" in result.output
    assert sorted(sync_rpc_server.received) == ["m0", "m1", "m2"]

    rows = _read_rows(output)
    assert rows[1][:2] == ["2", "3"]


def test_run_missing_request_file(tmp_path: Path):
    """A missing request file aborts before any request is sent."""
    output = tmp_path / "results.csv"
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            "http://127.0.0.1:8545",
            "-c",
            "1",
            "-r",
            "1",
            "-f",
            str(tmp_path / "missing.json"),
            "-o",
            str(output),
        ],
    )
    assert result.exit_code == 1
    assert "Error" in result.output
    assert not output.exists()


def test_run_requires_file_or_pipe(tmp_path: Path):
    result = runner.invoke(app, ["run", "-u", "http://127.0.0.1:8545", "-c", "1", "-r", "1"])
    assert result.exit_code == 1
    assert "request file is required" in result.output


def test_run_rejects_bad_url(request_file: Path):
    result = runner.invoke(
        app, ["run", "-u", "localhost:8545", "-c", "1", "-r", "1", "-f", str(request_file)]
    )
    assert result.exit_code == 1
    assert "http://" in result.output


def test_run_rejects_unknown_selection(request_file: Path):
    result = runner.invoke(
        app,
        [
            "run",
            "-u",
            "http://127.0.0.1:8545",
            "-c",
            "1",
            "-f",
            str(request_file),
            "--endpoint-selection",
            "fastest",
        ],
    )
    assert result.exit_code == 1
    assert "Unknown endpoint strategy" in result.output


def test_run_rejects_zero_connections(request_file: Path):
    result = runner.invoke(
        app, ["run", "-u", "http://127.0.0.1:8545", "-c", "0", "-f", str(request_file)]
    )
    assert result.exit_code != 0


def test_run_rejects_bad_env_timeout(request_file: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RPCRAMP_TIMEOUT_MS", "soon")
    result = runner.invoke(
        app, ["run", "-u", "http://127.0.0.1:8545", "-c", "1", "-f", str(request_file)]
    )
    assert result.exit_code == 1
    assert "RPCRAMP_TIMEOUT_MS" in result.output


@pytest.mark.timeout(30)
def test_repeated_runs_log_to_their_own_output(
    sync_rpc_server: RpcServer, request_file: Path, tmp_path: Path
):
    """Each invocation's JSON log lines land in that invocation's output."""
    args = [
        "run",
        "-u",
        f"{sync_rpc_server.url}/rpc",
        "-c",
        "1",
        "-r",
        "1",
        "-f",
        str(request_file),
        "-v",
        "--log-json",
    ]
    for attempt in range(2):
        result = runner.invoke(app, [*args, "-o", str(tmp_path / f"run{attempt}.csv")])
        assert result.exit_code == 0, f"output: {result.output}"

        entries = [
            json.loads(line)
            for line in result.output.splitlines()
            if line.startswith('{"timestamp"')
        ]
        steps = [e for e in entries if e["message"].startswith("Starting step")]
        assert len(steps) == 1
        assert steps[0]["connections"] == 1
