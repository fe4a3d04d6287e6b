"""Timestamp detection and regularization of logger time series."""

from __future__ import annotations

from typing import Iterable, Sequence
import logging

import numpy as np
import pandas as pd

from .errors import ParseError, TimestampColumnNotFound, TimestampFormatNotIdentified

logger = logging.getLogger(__name__)

TIMESTAMP_KEYWORDS: tuple[str, ...] = ("timestamp", "time stamp", "time", "date", "datetime")

# Priority order matters: it is the tie-break for the format vote.
TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y %H:%M",
    "%m/%d/%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%Y%m%d%H%M%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)

FORMAT_SAMPLE_ROWS = 100


def find_timestamp_column(headers: Iterable[str], keywords: Sequence[str] = TIMESTAMP_KEYWORDS) -> str:
    """Return the first header containing one of ``keywords`` (case-insensitive)."""
    for h in headers:
        lh = str(h).lower()
        if any(k in lh for k in keywords):
            return h
    raise TimestampColumnNotFound()


def parse_timestamps(values: pd.Series, fmt: str) -> pd.Series:
    """Parse ``values`` with ``fmt``; unparsable cells become ``NaT``."""
    text = values.astype(str).str.strip()
    return pd.to_datetime(text, format=fmt, errors="coerce")


def format_votes(
    values: pd.Series,
    formats: Sequence[str] = TIMESTAMP_FORMATS,
    sample_rows: int = FORMAT_SAMPLE_ROWS,
) -> dict[str, int]:
    """Count, per format, the sampled values it is the first to parse."""
    sample = values.iloc[:sample_rows]
    claimed = pd.Series(False, index=sample.index)
    votes: dict[str, int] = {}
    for fmt in formats:
        ok = parse_timestamps(sample, fmt).notna() & ~claimed
        votes[fmt] = int(ok.sum())
        claimed |= ok
    return votes


def identify_timestamp_format(
    values: pd.Series,
    formats: Sequence[str] = TIMESTAMP_FORMATS,
    sample_rows: int = FORMAT_SAMPLE_ROWS,
) -> str:
    """Majority vote over the first ``sample_rows`` values.

    Ties go to the format listed first. Malformed rows simply cast no vote.
    """
    votes = format_votes(values, formats, sample_rows)
    best, best_count = None, 0
    for fmt in formats:
        if votes[fmt] > best_count:
            best, best_count = fmt, votes[fmt]
    if best is None:
        raise TimestampFormatNotIdentified(getattr(values, "name", None))
    logger.debug("Timestamp format votes: %s -> %s", votes, best)
    return best


def mode_interval(timestamps: pd.Series) -> pd.Timedelta:
    """Most frequent spacing between consecutive (sorted) timestamps.

    Duplicate timestamps contribute no spacing. On a tie the spacing that
    occurs first in time order wins.
    """
    ts = pd.Series(timestamps).dropna().sort_values(kind="mergesort")
    deltas = ts.diff().dropna()
    deltas = deltas[deltas > pd.Timedelta(0)]
    if deltas.empty:
        raise ParseError("Could not determine a mode interval")
    counts = deltas.groupby(deltas, sort=False).size()
    return pd.Timedelta(counts.idxmax())


def regularize(
    raw: pd.DataFrame,
    time_column: str,
    timestamps: pd.Series,
    interval: pd.Timedelta,
) -> tuple[pd.DataFrame, pd.DatetimeIndex]:
    """Rebuild ``raw`` on an evenly spaced grid.

    Parameters
    ----------
    raw:
        Untyped table as read from disk.
    time_column:
        Name of the timestamp column in ``raw``.
    timestamps:
        Parsed timestamps aligned with ``raw`` (``NaT`` for invalid cells).
    interval:
        Grid spacing.

    Returns
    -------
    DataFrame
        One row per grid step from the first to the last valid timestamp.
        Rows with invalid or off-grid timestamps are dropped; for duplicate
        timestamps the last row wins. Missing grid steps are empty rows.
    DatetimeIndex
        The synthesized (gap) timestamps.
    """
    if interval <= pd.Timedelta(0):
        raise ParseError(f"Invalid sampling interval: {interval}")
    valid = raw.loc[timestamps.notna()].copy()
    if valid.empty:
        raise ParseError("No valid timestamps found")
    valid[time_column] = timestamps[timestamps.notna()]
    valid = valid.drop_duplicates(subset=time_column, keep="last").set_index(time_column)

    grid = pd.date_range(valid.index.min(), valid.index.max(), freq=interval)
    gaps = grid.difference(valid.index)
    out = valid.reindex(grid)
    out.index.name = time_column
    out = out.reset_index()[list(raw.columns)]
    if len(gaps):
        logger.info("Regularized %d rows, inserted %d gap rows", len(out), len(gaps))
    return out, gaps


def materialize(frame: pd.DataFrame, time_column: str) -> pd.DataFrame:
    """Timestamp column to datetime, every other column to float (NaN if unparsable)."""
    out = pd.DataFrame(index=frame.index)
    for col in frame.columns:
        s = frame[col]
        if col == time_column:
            out[col] = pd.to_datetime(s, errors="coerce")
            continue
        s = s.astype(object).map(lambda v: v.strip() if isinstance(v, str) else v)
        out[col] = pd.to_numeric(s, errors="coerce").astype(np.float64)
    return out


__all__ = [
    "TIMESTAMP_KEYWORDS",
    "TIMESTAMP_FORMATS",
    "FORMAT_SAMPLE_ROWS",
    "find_timestamp_column",
    "parse_timestamps",
    "format_votes",
    "identify_timestamp_format",
    "mode_interval",
    "regularize",
    "materialize",
]
