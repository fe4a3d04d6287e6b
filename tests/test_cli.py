import json
import zipfile
from pathlib import Path

from fdvproc import cli


def _run(capsys, args):
    rc = cli.main(args)
    return rc, json.loads(capsys.readouterr().out)


def test_cli_inspect(flow_csv: Path, capsys):
    rc, data = _run(capsys, ["inspect", str(flow_csv), "--start", "2024-01-01 00:05:00"])
    assert rc == 0
    assert data["ok"] is True
    assert data["siteId"] == "SiteA1"
    assert data["startTimestamp"] == "2024-01-01 00:05:00"
    assert data["rows"] == 4


def test_cli_flow(flow_csv: Path, tmp_path: Path, capsys):
    out = tmp_path / "out.fdv"
    rc, data = _run(capsys, [
        "flow", str(flow_csv), "--shape", "Circular", "--size", "300",
        "--out", str(out), "--site-name", "North",
    ])
    assert rc == 0
    assert data == {"ok": True, "out": str(out), "nullDepth": 2, "nullVelocity": 2}
    assert "1,NORTH\n" in out.read_text()


def test_cli_rainfall_default_output(rain_csv: Path, capsys):
    rc, data = _run(capsys, ["rainfall", str(rain_csv)])
    assert rc == 0
    assert Path(data["out"]) == rain_csv.parent / "RG1.r"
    assert data["nullRainfall"] == 0


def test_cli_batch(flow_csv: Path, tmp_path: Path, capsys):
    jobs = tmp_path / "jobs.json"
    jobs.write_text(json.dumps([{"filepath": str(flow_csv), "pipeshape": "Circular", "pipesize": "300"}]))
    rc, data = _run(capsys, ["batch", str(jobs), "--out-dir", str(tmp_path / "out")])
    assert rc == 0
    with zipfile.ZipFile(data["archive"]) as zf:
        assert zf.namelist() == ["SiteA1.fdv"]


def test_cli_r3(capsys):
    rc, data = _run(capsys, ["r3", "--width", "0.6", "--height", "0.9", "--shape", "Egg Type 1"])
    assert rc == 0
    assert abs(data["r3"] - 0.9) < 1e-9

    rc, data = _run(capsys, ["r3", "--width", "1.0", "--height", "0.8", "--shape", "Egg Type 1"])
    assert rc == 1
    assert data["ok"] is False
    assert data["r3"] == -1.0


def test_cli_report(rain_csv: Path, tmp_path: Path, capsys):
    rc, data = _run(capsys, ["report", str(rain_csv), "--outdir", str(tmp_path / "rep")])
    assert rc == 0
    assert data["monitorType"] == "Rainfall"
    assert (tmp_path / "rep" / "rainfall_weekly_totals.csv").exists()


def test_cli_error_is_reported(tmp_path: Path, capsys):
    rc, data = _run(capsys, ["inspect", str(tmp_path / "notes.txt")])
    assert rc == 1
    assert data == {"ok": False, "error": "Unsupported file format: .txt"}


def test_cli_reports_undecodable_csv(tmp_path: Path, capsys):
    path = tmp_path / "Site9.csv"
    path.write_bytes("Timestamp,Temp|°C\n2024-01-01 00:00:00,1\n".encode("latin-1"))
    rc, data = _run(capsys, ["inspect", str(path)])
    assert rc == 1
    assert data["ok"] is False
    assert "not UTF-8" in data["error"]
