from __future__ import annotations

from pathlib import Path
from typing import Callable, List
import logging

import pandas as pd

from ..errors import InvalidParameter
from .common import RecordWriter, atomic_output, identifier_line, metadata_lines

logger = logging.getLogger(__name__)

# Tipping-bucket redistribution constants.
ZERO_THRESHOLD = 1.0e-5
MAX_BACK_SCAN = 4
SLOT_CAP_MM = 6.0
BUFFER_SIZE = 10

_ANT_RAIN = [f"{i}_ANT_RAIN" for i in range(3, 31)]
_MINUS_ONES = "-1.0 " * 15

_HEADER = (
    [
        "**DATA_FORMAT:           1,ASCII",
        None,  # identifier
        "**FIELD:                 1,INTENSITY",
        "**UNITS:                 1,MM/HR",
        "**FORMAT:                2,F15.1,[5]",
        "**RECORD_LENGTH:         I2,75",
        "**CONSTANTS:             35,LOCATION,0_ANT_RAIN,1_ANT_RAIN,2_ANT_RAIN,",
    ]
    + ["*+                       " + ",".join(_ANT_RAIN[i:i + 4]) + "," for i in range(0, len(_ANT_RAIN), 4)]
    + [
        "*+                       START,END,INTERVAL",
        "**C_UNITS:               35, ,MM,MM,MM,MM,MM,MM,MM,MM,MM,MM,",
        "**C_UNITS:               MM,MM,MM,MM,MM,MM,MM,MM,MM,MM,MM,",
        "**C_UNITS:               MM,MM,MM,MM,MM,MM,MM,MM,MM,MM,GMT,GMT,MIN",
        "**C_FORMAT:              8,A20,F7.2/15F5.1/15F5.1/D10,2X,D10,I4",
        "*CSTART",
        "UNKNOWN              -1.0 ",
        _MINUS_ONES,
        _MINUS_ONES,
    ]
)


def rainfall_header(site_name: str) -> list[str]:
    lines = list(_HEADER)
    lines[1] = identifier_line(site_name)
    return lines


class RainfallSmoother:
    """Spread bucket tips back over the preceding dry intervals.

    Samples are held in a buffer of :data:`BUFFER_SIZE` values before being
    emitted. When a non-zero sample arrives, up to :data:`MAX_BACK_SCAN`
    immediately preceding near-zero buffered values are found; the sample is
    shared evenly between them and the current slot. If the sample exceeds
    :data:`SLOT_CAP_MM`, those slots share exactly the cap and the current
    slot keeps the remainder.
    """

    def __init__(self, emit: Callable[[float], None], buffer_size: int = BUFFER_SIZE):
        self.emit = emit
        self.buffer_size = buffer_size
        self.buffer: List[float] = []

    def push(self, sample: float) -> None:
        value = sample
        if sample > ZERO_THRESHOLD:
            count = 0
            idx = len(self.buffer) - 1
            while idx >= 0 and count < MAX_BACK_SCAN and self.buffer[idx] < ZERO_THRESHOLD:
                count += 1
                idx -= 1
            divisor = count + 1
            if count > 0 and sample > SLOT_CAP_MM:
                spread = SLOT_CAP_MM / (divisor - 1)
                value = sample - SLOT_CAP_MM
            else:
                spread = value = sample / divisor
            for i in range(idx + 1, len(self.buffer)):
                self.buffer[i] = spread
        self.buffer.append(value)
        if len(self.buffer) >= self.buffer_size:
            self.drain(self.buffer_size)

    def drain(self, keep: int = 0) -> None:
        """Emit the oldest values until at most ``keep`` remain."""
        while len(self.buffer) > keep:
            self.emit(self.buffer.pop(0))


def smooth_rainfall(samples) -> list[float]:
    """Run ``samples`` through :class:`RainfallSmoother` and return the emitted values."""
    out: list[float] = []
    smoother = RainfallSmoother(out.append)
    for s in samples:
        smoother.push(float(s))
    smoother.drain(0)
    return out


def write_rainfall_fdv(
    data: pd.DataFrame,
    out_path: Path | str,
    *,
    rainfall_column: str | None,
    site_name: str,
    start,
    end,
    interval_minutes: int,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> int:
    """Write a rainfall intensity FDV file and return the null reading count."""
    log = log or logger
    if not rainfall_column or rainfall_column not in data.columns:
        raise InvalidParameter(f"Rainfall column not found: {rainfall_column!r}")
    values = pd.to_numeric(data[rainfall_column], errors="coerce")
    nulls = int(values.isna().sum())

    out_path = Path(out_path)
    with atomic_output(out_path) as fh:
        for line in rainfall_header(site_name) + metadata_lines(start, end, interval_minutes):
            fh.write(line + "\n")
        records = RecordWriter(fh)
        smoother = RainfallSmoother(lambda v: records.write(f"{v:15.1f}"))
        for s in values.fillna(0.0).to_numpy(dtype=float):
            smoother.push(float(s))
        smoother.drain(0)
        records.finish()

    log.info("Wrote %s (%d values, %d null readings)", out_path.name, records.count, nulls)
    return nulls


__all__ = [
    "ZERO_THRESHOLD",
    "MAX_BACK_SCAN",
    "SLOT_CAP_MM",
    "BUFFER_SIZE",
    "rainfall_header",
    "RainfallSmoother",
    "smooth_rainfall",
    "write_rainfall_fdv",
]
