from pathlib import Path
import logging

import openpyxl
import pandas as pd
import pytest

from fdvproc.errors import EmptyData, InputFileNotFound, ParseError, UnsupportedFormat
from fdvproc.ingest import process_file, reslice
from fdvproc.io import excel_serial_to_text
from fdvproc.site_info import MonitorType

from conftest import DEPTH_MM, FLOW, RAIN, VELOCITY


def test_process_flow_csv(flow_csv: Path):
    res = process_file(flow_csv)
    summary = res.summary()
    assert summary["siteId"] == "SiteA1"
    assert summary["siteName"] == "SiteA1"
    assert summary["monitorType"] == "Flow"
    assert summary["interval"] == 300
    assert summary["gaps"] == 1
    assert summary["rows"] == 5
    assert summary["startTimestamp"] == "2024-01-01 00:00:00"
    assert summary["endTimestamp"] == "2024-01-01 00:20:00"
    assert summary["timestampFormat"] == "%d/%m/%Y %H:%M"
    assert summary["columnMapping"]["depth"][0] == [DEPTH_MM, 1, "100", "1"]
    assert summary["columnMapping"]["timestamp"][0][:2] == ["Timestamp", 0]

    assert res.column("velocity") == VELOCITY
    assert res.column("flow") == FLOW
    assert res.data[DEPTH_MM].isna().tolist() == [False, True, True, False, False]


def test_process_xlsx_serial_dates(tmp_path: Path):
    path = tmp_path / "rg_north.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Timestamp", RAIN])
    ws.append([45292.0, 0.0])
    ws.append([45292.0 + 300 / 86400, 1.5])
    ws.append([45292.0 + 600 / 86400, 0.0])
    wb.save(path)

    res = process_file(path)
    assert res.site.monitor_type == MonitorType.RAINFALL
    assert res.site.site_id == "200"
    assert res.start == pd.Timestamp("2024-01-01 00:00:00")
    assert res.end == pd.Timestamp("2024-01-01 00:10:00")
    assert res.interval_seconds == 300
    assert res.data[RAIN].tolist() == [0.0, 1.5, 0.0]


def test_excel_serial_to_text():
    assert excel_serial_to_text("45292.5") == "2024-01-01 12:00:00"
    assert excel_serial_to_text("01/01/2024 00:00") == "01/01/2024 00:00"


def test_structural_errors(tmp_path: Path):
    with pytest.raises(UnsupportedFormat):
        process_file(tmp_path / "data.txt")
    with pytest.raises(InputFileNotFound):
        process_file(tmp_path / "missing.csv")
    empty = tmp_path / "empty.csv"
    empty.write_text("Timestamp,Depth\n")
    with pytest.raises(EmptyData):
        process_file(empty)


def test_undecodable_csv_is_a_parse_error(tmp_path: Path):
    path = tmp_path / "Site9.csv"
    path.write_bytes("Timestamp,Temp|\u00b0C\n2024-01-01 00:00:00,1\n".encode("latin-1"))
    with pytest.raises(ParseError, match="not UTF-8"):
        process_file(path)


def test_ragged_csv_is_a_parse_error(tmp_path: Path):
    path = tmp_path / "Site8.csv"
    path.write_text(
        "Timestamp,Depth|mm\n"
        "2024-01-01 00:00:00,1\n"
        "2024-01-01 00:05:00,2,3\n"
    )
    with pytest.raises(ParseError, match="Malformed CSV"):
        process_file(path)


def test_sub_minute_interval_is_logged(tmp_path: Path, caplog):
    path = tmp_path / "RG2.csv"
    path.write_text(
        "Timestamp,Rainfall|mm\n"
        "2024-01-01 00:00:00,0\n"
        "2024-01-01 00:00:30,1\n"
        "2024-01-01 00:01:00,0\n"
    )
    with caplog.at_level(logging.WARNING, logger="fdvproc.ingest"):
        res = process_file(path)
    assert res.interval_seconds == 30
    assert res.interval_minutes == 0
    assert "not a whole number of minutes" in caplog.text


def test_reslice(flow_csv: Path):
    res = process_file(flow_csv)
    same = reslice(res, "2024-01-01 00:00:00", "2024-01-01 00:20:00")
    assert len(same.data) == len(res.data)
    assert same.gap_count == 1

    part = reslice(res, "2024-01-01T00:12", "2024-01-01 00:20")
    assert part.start == pd.Timestamp("2024-01-01 00:15:00")
    assert len(part.data) == 2
    assert part.gap_count == 0
    assert part.interval_seconds == 300

    with pytest.raises(ParseError):
        reslice(res, "2024-01-01 00:20:00", "2024-01-01 00:00:00")
    with pytest.raises(ParseError):
        reslice(res, "2030-01-01 00:00:00", "2030-01-02 00:00:00")
    with pytest.raises(ParseError):
        reslice(res, "yesterday", "2024-01-01 00:20:00")
