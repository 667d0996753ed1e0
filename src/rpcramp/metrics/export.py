"""CSV export of ramp step summaries."""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING

from rpcramp._internal.errors import ReportError
from rpcramp._internal.logging import get_logger
from rpcramp.metrics.models import RESULT_HEADER

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from rpcramp.metrics.models import RunResult

logger = get_logger("metrics.export")


def write_results_csv(path: Path, results: Sequence[RunResult]) -> Path:
    """Write the header and one row per ramp step to *path*.

    Args:
        path: Destination file. Overwritten if it exists.
        results: Step summaries, in ramp order.

    Returns:
        The path written.

    Raises:
        ReportError: If the file cannot be created or written.
    """
    logger.info("Exporting %d result row(s) to %s", len(results), path)
    try:
        with path.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(RESULT_HEADER)
            for result in results:
                writer.writerow(result.as_row())
    except OSError as exc:
        msg = f"Cannot write results to {path}: {exc}"
        raise ReportError(msg) from exc
    return path
