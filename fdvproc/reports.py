"""Interim, daily and rainfall-total tables for an ingested dataset."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping

import pandas as pd

from . import channels
from .errors import InvalidParameter
from .ingest import IngestResult
from .site_info import MonitorType

# (column, source, aggregation); source None means the monitor's value column
INTERIM_STATS = {
    MonitorType.FLOW: [
        ("Total Flow(m3)", "m3", "sum"),
        ("Max Flow(l/s)", None, "max"),
        ("Min Flow(l/s)", None, "min"),
    ],
    MonitorType.DEPTH: [
        ("Average Level(m)", None, "mean"),
        ("Max Level(m)", None, "max"),
        ("Min Level(m)", None, "min"),
    ],
    MonitorType.RAINFALL: [
        ("Total Rainfall(mm)", None, "sum"),
        ("Max Rainfall(mm)", None, "max"),
        ("Min Rainfall(mm)", None, "min"),
    ],
}

DAILY_STATS = {
    MonitorType.FLOW: [
        ("Average Flow(l/s)", None, "mean"),
        ("Max Flow(l/s)", None, "max"),
        ("Min Flow(l/s)", None, "min"),
        ("Flow (m3)", "m3", "sum"),
    ],
    MonitorType.DEPTH: INTERIM_STATS[MonitorType.DEPTH],
    MonitorType.RAINFALL: INTERIM_STATS[MonitorType.RAINFALL],
}

_VALUE_ROLE = {
    MonitorType.FLOW: channels.FLOW,
    MonitorType.DEPTH: channels.DEPTH,
    MonitorType.RAINFALL: channels.RAINFALL,
}

WINDOW_DAYS = 7
DAILY_DATE_FORMAT = "%d/%m/%Y"


def _value_column(result: IngestResult) -> str:
    monitor = result.site.monitor_type
    if monitor not in _VALUE_ROLE:
        raise InvalidParameter(f"No report available for monitor type: {monitor.value}")
    col = result.column(_VALUE_ROLE[monitor])
    if col is None or col not in result.data.columns:
        raise InvalidParameter(f"No {_VALUE_ROLE[monitor]} column detected for {monitor.value} report")
    return col


def with_volumes(result: IngestResult) -> pd.DataFrame:
    """Copy of ``result.data``; Flow data gains litres (``L``) and ``m3`` per interval."""
    frame = result.data.copy()
    if result.site.monitor_type == MonitorType.FLOW:
        frame["L"] = frame[_value_column(result)] * result.interval_seconds
        frame["m3"] = frame["L"] / 1000.0
    return frame


def _stats(frame: pd.DataFrame, stats, column: str) -> Dict[str, float]:
    return {name: float(frame[src or column].agg(how)) for name, src, how in stats}


def interim_summaries(result: IngestResult) -> pd.DataFrame:
    """Seven-day windows from the first day at midnight, plus a ``Grand Total`` row.

    Each window ends at 23:59:59 on its seventh day (exclusive); windows
    with no rows are skipped and do not consume an ``Interim N`` number.
    The grand total sums totals, averages averages and takes the extreme
    of the maxima/minima.
    """
    column = _value_column(result)
    stats = INTERIM_STATS[result.site.monitor_type]
    frame = with_volumes(result)
    stamps = frame[result.time_column]

    current = stamps.min().normalize()
    last = stamps.max().normalize() + pd.Timedelta(hours=23, minutes=59, seconds=59)
    rows = []
    while current <= last:
        week_end = current + pd.Timedelta(days=WINDOW_DAYS - 1, hours=23, minutes=59, seconds=59)
        window = frame.loc[(stamps >= current) & (stamps < week_end)]
        if not window.empty:
            row = {
                "Interim Period": f"Interim {len(rows) + 1}",
                "Date Range": f"{current:%Y-%m-%d} - {week_end:%Y-%m-%d}",
            }
            row.update(_stats(window, stats, column))
            rows.append(row)
        current = week_end + pd.Timedelta(seconds=1)

    columns = ["Interim Period", "Date Range"] + [name for name, _, _ in stats]
    table = pd.DataFrame(rows, columns=columns)
    grand = {"Interim Period": "Grand Total", "Date Range": ""}
    grand.update({name: float(table[name].agg(how)) for name, _, how in stats})
    return pd.concat([table, pd.DataFrame([grand], columns=columns)], ignore_index=True)


def daily_summary(result: IngestResult) -> pd.DataFrame:
    column = _value_column(result)
    frame = with_volumes(result)
    days = frame[result.time_column].dt.normalize().rename("Date")
    grouped = frame.groupby(days)
    daily = pd.DataFrame(
        {name: grouped[src or column].agg(how) for name, src, how in DAILY_STATS[result.site.monitor_type]}
    ).reset_index()
    daily["Date"] = daily["Date"].dt.strftime(DAILY_DATE_FORMAT)
    return daily


def rainfall_totals(result: IngestResult) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Daily and ISO-weekly rainfall totals in mm.

    Intensities are converted to depth by dividing each day's sum by the
    number of readings per hour (``3600 // interval``).

    Returns
    -------
    (daily, weekly)
        ``Date``/``Daily Total (mm)`` and ``Week Starting``/``Weekly Total (mm)``.
    """
    if result.site.monitor_type != MonitorType.RAINFALL:
        raise InvalidParameter("Rainfall totals are only available for Rainfall monitors")
    column = _value_column(result)
    seconds = result.interval_seconds
    if seconds <= 0:
        raise InvalidParameter(f"Invalid interval for rainfall totals: {seconds}s")
    readings_per_hour = 3600 // seconds
    if readings_per_hour == 0:
        raise InvalidParameter(f"Interval longer than an hour: {seconds}s")

    frame = result.data
    days = frame[result.time_column].dt.normalize().rename("Date")
    daily = (frame.groupby(days)[column].sum() / readings_per_hour).rename("Daily Total (mm)").reset_index()

    iso = daily["Date"].dt.isocalendar()
    weekly = (
        daily.groupby([iso["year"], iso["week"]])
        .agg(**{"Week Starting": ("Date", "min"), "Weekly Total (mm)": ("Daily Total (mm)", "sum")})
        .sort_values("Week Starting")
        .reset_index(drop=True)
    )
    return daily, weekly


def generate_report(result: IngestResult) -> Dict[str, pd.DataFrame]:
    """All tables for ``result`` keyed by the stem they are written under."""
    tables = {
        "interim_summary": interim_summaries(result),
        "daily_summary": daily_summary(result),
        "data": with_volumes(result),
    }
    if result.site.monitor_type == MonitorType.RAINFALL:
        tables["rainfall_daily_totals"], tables["rainfall_weekly_totals"] = rainfall_totals(result)
    return tables


def write_report_tables(tables: Mapping[str, pd.DataFrame], outdir: Path | str) -> list[str]:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    files = []
    for stem, table in tables.items():
        path = outdir / f"{stem}.csv"
        table.to_csv(path, index=False)
        files.append(str(path))
    return files


__all__ = [
    "INTERIM_STATS",
    "DAILY_STATS",
    "with_volumes",
    "interim_summaries",
    "daily_summary",
    "rainfall_totals",
    "generate_report",
    "write_report_tables",
]
