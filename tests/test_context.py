from pathlib import Path

import pytest

from fdvproc.context import ProcessingContext, output_filename
from fdvproc.errors import InvalidParameter
from fdvproc.site_info import MonitorType


def test_requires_loaded_data(tmp_path: Path):
    ctx = ProcessingContext()
    with pytest.raises(InvalidParameter):
        ctx.create_fdv_flow(tmp_path / "x.fdv", "Circular", "300")
    with pytest.raises(InvalidParameter):
        ctx.update_site_name("North")


def test_flow_session(flow_csv: Path, tmp_path: Path):
    ctx = ProcessingContext()
    summary = ctx.process(flow_csv)
    assert summary["monitorType"] == "Flow"

    ctx.update_site_name("North")
    ctx.update_site_id("N-01")
    assert ctx.result.site.site_name == "North"
    assert ctx.result.site.site_id == "N-01"
    assert ctx.output_filename() == "North.fdv"

    window = ctx.update_timestamps("2024-01-01 00:05:00", "2024-01-01 00:20:00")
    assert window == {
        "startTimestamp": "2024-01-01 00:05:00",
        "endTimestamp": "2024-01-01 00:20:00",
        "interval": 300,
        "rowCount": 4,
    }

    out = tmp_path / "out" / ctx.output_filename()
    nulls = ctx.create_fdv_flow(out, "Circular", "300")
    # 00:05 has no depth; 00:10 is a synthesized gap row
    assert (nulls.depth, nulls.velocity) == (2, 2)
    text = out.read_text()
    assert "**IDENTIFIER:            1,NORTH\n" in text
    assert "202401010005 202401010020   5\n" in text


def test_rainfall_session(rain_csv: Path, tmp_path: Path):
    ctx = ProcessingContext()
    ctx.process(rain_csv)
    assert ctx.output_filename() == "RG1.r"
    assert ctx.create_rainfall(tmp_path / "RG1.r") == 0
    with pytest.raises(InvalidParameter):
        ctx.create_fdv_flow(tmp_path / "RG1.fdv", "Circular", "300")


def test_output_filename():
    assert output_filename("S1", MonitorType.RAINFALL) == "S1.r"
    assert output_filename("S1", MonitorType.DEPTH) == "S1.fdv"
    assert output_filename("../North/East", MonitorType.FLOW) == "_North_East.fdv"
    assert output_filename("a\\b", MonitorType.RAINFALL) == "a_b.r"


def test_calculate_r3():
    assert ProcessingContext.calculate_r3(0.6, 0.9, "Egg Type 1") == pytest.approx(0.9)
