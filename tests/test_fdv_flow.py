from pathlib import Path

import numpy as np
import pandas as pd

from fdvproc.fdv.common import RecordWriter, atomic_output
from fdvproc.fdv.flow import depth_in_mm, flow_header, write_flow_fdv
from fdvproc.geometry import Circular, Rectangular, TwoCirclesAndRectangle

import pytest


def _frame(depth, velocity, depth_col="Depth|mm", velocity_col="Velocity|m/s"):
    n = len(depth)
    return pd.DataFrame({
        "Time": pd.date_range("2024-01-01", periods=n, freq="5min"),
        depth_col: np.asarray(depth, dtype=float),
        velocity_col: np.asarray(velocity, dtype=float),
    })


def _write(tmp_path, data, calculator, **kw):
    out = tmp_path / "out.fdv"
    kw.setdefault("depth_column", "Depth|mm")
    kw.setdefault("velocity_column", "Velocity|m/s")
    nulls = write_flow_fdv(
        data,
        out,
        calculator=calculator,
        site_name=kw.pop("site_name", "SiteA1"),
        start=data["Time"].iloc[0],
        end=data["Time"].iloc[-1],
        interval_minutes=5,
        **kw,
    )
    return nulls, out.read_text().split("\n")


def test_header_and_records(tmp_path: Path):
    data = _frame([150.0, np.nan, 300.0], [1.0, 0.5, np.nan])
    nulls, lines = _write(tmp_path, data, Circular(0.15), pipe_height=0.3)
    assert (nulls.depth, nulls.velocity) == (1, 1)
    assert lines[0] == "**DATA_FORMAT:           1,ASCII"
    assert lines[1] == "**IDENTIFIER:            1,SITEA1"
    assert lines[2] == "**FIELD:                 3,FLOW,DEPTH,VELOCITY"
    assert lines[11] == "  0.300 UNKNOWN"
    assert lines[12] == "202401010000 202401010010   5"
    assert lines[13] == "*CEND"
    assert lines[14] == "   35  150 1.00    0    0 0.50    0  300 0.00"
    assert lines[15:] == ["", "*END", ""]


def test_default_pipe_height_and_long_site_name(tmp_path: Path):
    data = _frame([10.0], [0.1])
    _, lines = _write(tmp_path, data, Rectangular(1.0), site_name="a very long site name")
    assert lines[1] == "**IDENTIFIER:            1,A VERY LONG SIT"
    assert lines[11] == "  0.200 UNKNOWN"


def test_five_records_per_line(tmp_path: Path):
    data = _frame([100.0] * 5, [1.0] * 5)
    _, lines = _write(tmp_path, data, Rectangular(1.0))
    assert lines[14] == "  100  100 1.00" * 5
    # full last line: no extra terminator before the blank line
    assert lines[15:] == ["", "*END", ""]


def test_reverse_velocity_writes_zero_flow(tmp_path: Path):
    data = _frame([1500.0] * 3, [1.0, -0.1, 1.0])
    _, lines = _write(tmp_path, data, TwoCirclesAndRectangle(width_m=1.0, height_m=3.0))
    assert lines[14] == " 1393 1500 1.00    0 1500-0.10 1393 1500 1.00"
    assert lines[15:] == ["", "*END", ""]


def test_metre_depth_and_missing_velocity(tmp_path: Path):
    data = _frame([0.25], [2.0], depth_col="Level|m")
    nulls, lines = _write(tmp_path, data, Rectangular(1.0), depth_column="Level|m", velocity_column="nope")
    assert nulls.velocity == 0
    assert lines[14] == "    0  250 0.00"


def test_depth_in_mm():
    assert depth_in_mm("100_1|Pipe|Depth|mm")
    assert depth_in_mm("DEPTH MM")
    assert not depth_in_mm("100_1|Pipe|Level|mm")
    assert not depth_in_mm("Depth|m")


def test_flow_header_identifier():
    assert flow_header("north")[1] == "**IDENTIFIER:            1,NORTH"


def test_record_writer_tail():
    class Buf(list):
        write = list.append

    buf = Buf()
    w = RecordWriter(buf)
    for _ in range(7):
        w.write("x")
    w.finish()
    assert "".join(buf) == "xxxxx\nxx\n\n*END\n"


def test_atomic_output_removes_partial(tmp_path: Path):
    target = tmp_path / "site.fdv"
    with pytest.raises(RuntimeError):
        with atomic_output(target) as fh:
            fh.write("partial")
            raise RuntimeError("boom")
    assert not target.exists()
    assert list(tmp_path.iterdir()) == []
