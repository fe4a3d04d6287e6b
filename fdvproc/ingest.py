"""Ingestion pipeline: read -> detect timestamps -> regularize -> classify -> identify."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import logging

import pandas as pd

from .channels import COLUMN_PATTERNS, ColumnMapping, canonical_column, classify_columns, mapping_to_json
from .errors import ParseError
from .io import CANONICAL_TS_FORMAT, convert_excel_timestamps, read_table
from .site_info import SiteInfo, infer_site_info
from .timeseries import (
    FORMAT_SAMPLE_ROWS,
    TIMESTAMP_FORMATS,
    TIMESTAMP_KEYWORDS,
    find_timestamp_column,
    identify_timestamp_format,
    materialize,
    mode_interval,
    parse_timestamps,
    regularize,
)

logger = logging.getLogger(__name__)

# accepted by reslice() for user supplied bounds
USER_TS_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M")


@dataclass
class IngestConfig:
    """Detection settings; the defaults match the field loggers we support."""

    timestamp_keywords: tuple[str, ...] = TIMESTAMP_KEYWORDS
    timestamp_formats: tuple[str, ...] = TIMESTAMP_FORMATS
    format_sample_rows: int = FORMAT_SAMPLE_ROWS
    column_patterns: Dict[str, str] = field(default_factory=lambda: dict(COLUMN_PATTERNS))


@dataclass
class IngestResult:
    """A regularized dataset plus everything detected about it.

    ``data`` holds the timestamp column (``datetime64``) and float channels in
    the original header order, one row per ``interval`` from ``start`` to
    ``end``. ``gaps`` lists the timestamps that were synthesized.
    """

    data: pd.DataFrame
    time_column: str
    start: pd.Timestamp
    end: pd.Timestamp
    interval: Optional[pd.Timedelta]
    gaps: pd.DatetimeIndex
    columns: ColumnMapping
    site: SiteInfo
    source: Optional[Path] = None
    timestamp_format: Optional[str] = None

    @property
    def gap_count(self) -> int:
        return len(self.gaps)

    @property
    def interval_seconds(self) -> int:
        return int(self.interval.total_seconds()) if self.interval is not None else 0

    @property
    def interval_minutes(self) -> int:
        return self.interval_seconds // 60

    def column(self, role: str) -> str | None:
        return canonical_column(self.columns, role)

    def summary(self) -> Dict[str, Any]:
        return {
            "columnMapping": mapping_to_json(self.columns),
            "monitorType": self.site.monitor_type.value,
            "startTimestamp": self.start.strftime(CANONICAL_TS_FORMAT),
            "endTimestamp": self.end.strftime(CANONICAL_TS_FORMAT),
            "interval": self.interval_seconds,
            "siteId": self.site.site_id,
            "siteName": self.site.site_name,
            "gaps": self.gap_count,
            "rows": int(len(self.data)),
            "timestampFormat": self.timestamp_format,
        }


def process_file(
    path: Path | str,
    config: IngestConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> IngestResult:
    """Ingest one logger export into an :class:`IngestResult`.

    Structural problems (unsupported extension, no timestamp column, no
    recognisable timestamp format, fewer than two timestamps) raise; bad
    individual cells become ``NaT``/``NaN`` and show up as gaps or nulls.
    """
    log = log or logger
    cfg = config or IngestConfig()
    path = Path(path)

    raw = read_table(path)
    time_col = find_timestamp_column(raw.columns, cfg.timestamp_keywords)
    if path.suffix.lower() == ".xlsx":
        raw = convert_excel_timestamps(raw, time_col)

    fmt = identify_timestamp_format(raw[time_col], cfg.timestamp_formats, cfg.format_sample_rows)
    stamps = parse_timestamps(raw[time_col], fmt)
    invalid = int(stamps.isna().sum())
    if invalid:
        log.warning("%s: %d row(s) with invalid timestamps dropped", path.name, invalid)

    interval = mode_interval(stamps)
    seconds = int(interval.total_seconds()) if interval is not None else 0
    if seconds % 60:
        log.warning(
            "%s: interval of %ds is not a whole number of minutes; FDV headers will record %d min",
            path.name,
            seconds,
            seconds // 60,
        )
    regular, gaps = regularize(raw, time_col, stamps, interval)
    data = materialize(regular, time_col)

    mapping = classify_columns(list(raw.columns), time_col, cfg.column_patterns)
    site = infer_site_info(path, mapping)

    result = IngestResult(
        data=data,
        time_column=time_col,
        start=data[time_col].iloc[0],
        end=data[time_col].iloc[-1],
        interval=interval,
        gaps=gaps,
        columns=mapping,
        site=site,
        source=path,
        timestamp_format=fmt,
    )
    log.info(
        "Processed %s: %s %s..%s every %s, %d rows, %d gaps",
        path.name,
        site.monitor_type.value,
        result.start,
        result.end,
        interval,
        len(data),
        result.gap_count,
    )
    return result


def parse_user_timestamp(value) -> pd.Timestamp:
    if isinstance(value, (datetime, pd.Timestamp)):
        return pd.Timestamp(value)
    text = str(value).strip()
    for fmt in USER_TS_FORMATS:
        try:
            return pd.Timestamp(datetime.strptime(text, fmt))
        except ValueError:
            continue
    raise ParseError(f"Failed to parse timestamp: {value!r}")


def reslice(result: IngestResult, start, end) -> IngestResult:
    """Restrict ``result`` to ``start``..``end`` (inclusive).

    The interval is kept when known and otherwise recomputed from the slice.
    Reslicing to a result's own range keeps the same rows.
    """
    t0 = parse_user_timestamp(start)
    t1 = parse_user_timestamp(end)
    if t0 >= t1:
        raise ParseError("Start time must be before end time")

    tc = result.time_column
    stamps = result.data[tc]
    sliced = result.data.loc[(stamps >= t0) & (stamps <= t1)].reset_index(drop=True)
    if sliced.empty:
        raise ParseError("No data in the specified time range")

    interval = result.interval if result.interval is not None else mode_interval(sliced[tc])
    gaps = result.gaps[(result.gaps >= t0) & (result.gaps <= t1)]
    return replace(
        result,
        data=sliced,
        start=sliced[tc].iloc[0],
        end=sliced[tc].iloc[-1],
        interval=interval,
        gaps=gaps,
    )


__all__ = [
    "IngestConfig",
    "IngestResult",
    "USER_TS_FORMATS",
    "process_file",
    "parse_user_timestamp",
    "reslice",
]
