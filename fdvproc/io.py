from __future__ import annotations

from datetime import date, datetime, time, timedelta
from pathlib import Path
import logging
import math
import zipfile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
import pandas as pd

from .errors import EmptyData, InputFileNotFound, ParseError, SheetNotFound, UnsupportedFormat

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")
EXCEL_EPOCH = datetime(1899, 12, 30)
CANONICAL_TS_FORMAT = "%Y-%m-%d %H:%M:%S"


def read_table(path: Path | str) -> pd.DataFrame:
    """Read a logger export as an all-string table (first row = headers).

    Dispatches on the file extension: ``.csv`` via :func:`pandas.read_csv`
    and ``.xlsx`` via ``openpyxl`` (first worksheet). Cells are kept as text;
    empty cells become ``""``.
    """
    path = Path(path)
    ext = path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        logger.error("Unsupported file format: %s", path.suffix or "Unknown")
        raise UnsupportedFormat(path.suffix or "Unknown")
    if not path.is_file():
        raise InputFileNotFound(path)
    if ext == ".csv":
        raw = _read_csv(path)
    else:
        raw = _read_xlsx(path)
    if raw.empty:
        logger.error("File has no data rows: %s", path)
        raise EmptyData(path)
    return raw


def _read_csv(path: Path) -> pd.DataFrame:
    logger.info("Reading CSV file: %s", path)
    try:
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise EmptyData(path) from e
    except UnicodeDecodeError as e:
        raise ParseError(f"{path.name} is not UTF-8 text: {e.reason} at byte {e.start}") from e
    except pd.errors.ParserError as e:
        raise ParseError(f"Malformed CSV {path.name}: {e}") from e
    except OSError as e:
        raise InputFileNotFound(path) from e


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(CANONICAL_TS_FORMAT)
    if isinstance(value, date):
        return datetime.combine(value, time()).strftime(CANONICAL_TS_FORMAT)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _read_xlsx(path: Path) -> pd.DataFrame:
    logger.info("Reading Excel file: %s", path)
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        # unreadable/corrupt workbook
        raise InputFileNotFound(path) from e
    try:
        if not wb.worksheets:
            raise SheetNotFound(path)
        rows = list(wb.worksheets[0].values)
    finally:
        wb.close()
    if not rows:
        raise EmptyData(path)
    headers = [_cell_text(h) for h in rows[0]]
    width = len(headers)
    body = [[_cell_text(v) for v in row[:width]] + [""] * (width - len(row)) for row in rows[1:]]
    # read-only sheets may report trailing blank rows
    body = [r for r in body if any(r)]
    return pd.DataFrame(body, columns=headers, dtype=str)


def _round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def excel_serial_to_text(value: str) -> str:
    """Convert a spreadsheet serial date (days since 1899-12-30) to text.

    Values that are not numbers are returned unchanged.
    """
    try:
        serial = float(value)
    except (TypeError, ValueError):
        return value
    if not math.isfinite(serial):
        return value
    days = math.trunc(serial)
    seconds = _round_half_away((serial - days) * 86400.0)
    stamp = EXCEL_EPOCH + timedelta(days=days, seconds=seconds)
    return stamp.strftime(CANONICAL_TS_FORMAT)


def convert_excel_timestamps(raw: pd.DataFrame, column: str) -> pd.DataFrame:
    out = raw.copy()
    out[column] = out[column].map(excel_serial_to_text)
    return out


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "EXCEL_EPOCH",
    "CANONICAL_TS_FORMAT",
    "read_table",
    "excel_serial_to_text",
    "convert_excel_timestamps",
]
