from __future__ import annotations

from pathlib import Path
from typing import NamedTuple
import logging

import numpy as np
import pandas as pd

from ..geometry import Calculator
from .common import RecordWriter, atomic_output, identifier_line, metadata_lines, round_half_away

logger = logging.getLogger(__name__)

DEFAULT_PIPE_HEIGHT = 0.2

_HEADER = [
    "**DATA_FORMAT:           1,ASCII",
    None,  # identifier
    "**FIELD:                 3,FLOW,DEPTH,VELOCITY",
    "**UNITS:                 3,L/S,MM,M/S",
    "**FORMAT:                3,2I5,F5,[5]",
    "**RECORD_LENGTH:         I2,75",
    "**CONSTANTS:             6,HEIGHT,MIN_VEL,MANHOLE_NO,",
    "*+START,END,INTERVAL",
    "**C_UNITS:               6,MM,M/S,,GMT,GMT,MIN",
    "**C_FORMAT:              10,I5,1X,F5,1X,A20/D10,1X,D10,1X,I2",
    "*CSTART",
    None,  # pipe height constant
]


class NullCounts(NamedTuple):
    depth: int
    velocity: int


def flow_header(site_name: str, pipe_height: float | None = None) -> list[str]:
    lines = list(_HEADER)
    lines[1] = identifier_line(site_name)
    height = DEFAULT_PIPE_HEIGHT if pipe_height is None else pipe_height
    lines[11] = f"{height:7.3f} UNKNOWN"
    return lines


def depth_in_mm(column: str) -> bool:
    """Millimetre depth channels are rescaled to metres; level channels are not."""
    lc = column.lower()
    return "mm" in lc and "level" not in lc


def _channel(data: pd.DataFrame, column: str | None, label: str, log) -> tuple[np.ndarray, int]:
    if column is None or column not in data.columns:
        log.error("%s column %r not found; using 0.0 for all values", label, column)
        return np.zeros(len(data), dtype=float), 0
    values = pd.to_numeric(data[column], errors="coerce")
    nulls = int(values.isna().sum())
    return values.fillna(0.0).to_numpy(dtype=float), nulls


def flow_records(depth_m: np.ndarray, velocity: np.ndarray, calculator: Calculator):
    """Yield ``(flow, depth_m, velocity)``; zero depth or velocity short-circuits to zero flow."""
    for d, v in zip(depth_m, velocity):
        d = float(d)
        v = float(v)
        if d == 0.0 or v == 0.0:
            yield 0.0, d, v
        else:
            yield calculator.compute(d, v), d, v


def write_flow_fdv(
    data: pd.DataFrame,
    out_path: Path | str,
    *,
    depth_column: str | None,
    velocity_column: str | None,
    calculator: Calculator,
    site_name: str,
    start,
    end,
    interval_minutes: int,
    pipe_height: float | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> NullCounts:
    """Write a flow/depth/velocity FDV file.

    Depth and velocity nulls are counted, then treated as zero. A missing
    channel is replaced by zeros (logged as an error) rather than failing.
    Each record is ``%5.0f`` flow [L/s], ``%5.0f`` depth [mm] and ``%5.2f``
    velocity [m/s], five records per line.

    Returns
    -------
    NullCounts
        Null readings found in the depth and velocity channels.
    """
    log = log or logger
    depth, depth_nulls = _channel(data, depth_column, "Depth", log)
    velocity, velocity_nulls = _channel(data, velocity_column, "Velocity", log)
    if depth_column is not None and depth_column in data.columns and depth_in_mm(depth_column):
        depth = depth / 1000.0

    out_path = Path(out_path)
    with atomic_output(out_path) as fh:
        for line in flow_header(site_name, pipe_height) + metadata_lines(start, end, interval_minutes):
            fh.write(line + "\n")
        records = RecordWriter(fh)
        for flow, d, v in flow_records(depth, velocity, calculator):
            records.write(f"{flow:5.0f}{round_half_away(d * 1000.0):5.0f}{v:5.2f}")
        records.finish()

    log.info(
        "Wrote %s (%d records, null depth=%d velocity=%d)",
        out_path.name,
        records.count,
        depth_nulls,
        velocity_nulls,
    )
    return NullCounts(depth_nulls, velocity_nulls)


__all__ = [
    "DEFAULT_PIPE_HEIGHT",
    "NullCounts",
    "flow_header",
    "depth_in_mm",
    "flow_records",
    "write_flow_fdv",
]
