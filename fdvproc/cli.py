from __future__ import annotations
import argparse, json, logging
from pathlib import Path
from .batch import load_jobs, run_batch
from .context import ProcessingContext
from .errors import FdvError
from .geometry import PIPE_SHAPES
from .ingest import process_file, reslice
from .reports import generate_report, write_report_tables
from .solver import EGG_FORMS, r3_for_shape

logger = logging.getLogger("fdvproc")


def build_parser():
    p = argparse.ArgumentParser(prog="fdvproc", description="Flow survey logger exports -> FDV / rainfall files")
    p.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = p.add_subparsers(dest="cmd", required=True)

    i0 = sub.add_parser("inspect", help="Ingest a CSV/XLSX export and print what was detected")
    i0.add_argument("file", type=Path)
    i0.add_argument("--start", default=None, help="Reslice start, e.g. '2024-01-01 00:00:00'")
    i0.add_argument("--end", default=None, help="Reslice end")

    i1 = sub.add_parser("flow", help="Write a flow/depth/velocity FDV file")
    i1.add_argument("file", type=Path)
    i1.add_argument("--shape", required=True, choices=PIPE_SHAPES)
    i1.add_argument("--size", required=True,
                    help="Diameter/width in mm (Circular, Rectangular) or comma-separated metres (egg shapes)")
    i1.add_argument("--out", type=Path, default=None, help="Output file (default <site name>.fdv beside the input)")
    i1.add_argument("--site-name", default=None)
    i1.add_argument("--site-id", default=None)
    i1.add_argument("--start", default=None)
    i1.add_argument("--end", default=None)
    i1.add_argument("--depth-col", default=None, help="Override the detected depth column")
    i1.add_argument("--velocity-col", default=None, help="Override the detected velocity column")

    i2 = sub.add_parser("rainfall", help="Write a rainfall intensity (.r) file")
    i2.add_argument("file", type=Path)
    i2.add_argument("--out", type=Path, default=None, help="Output file (default <site name>.r beside the input)")
    i2.add_argument("--site-name", default=None)
    i2.add_argument("--site-id", default=None)
    i2.add_argument("--start", default=None)
    i2.add_argument("--end", default=None)
    i2.add_argument("--rainfall-col", default=None, help="Override the detected rainfall column")

    i3 = sub.add_parser("batch", help="Convert every job in a JSON job list and zip the outputs")
    i3.add_argument("jobs", type=Path, help='JSON list of {"filepath", "pipeshape", "pipesize", ...}')
    i3.add_argument("--out-dir", type=Path, required=True)
    i3.add_argument("--workers", type=int, default=None)

    i4 = sub.add_parser("r3", help="Solve the throat radius of an egg-shaped section")
    i4.add_argument("--width", type=float, required=True, help="Width [m]")
    i4.add_argument("--height", type=float, required=True, help="Height [m]")
    i4.add_argument("--shape", required=True, choices=list(EGG_FORMS))

    i5 = sub.add_parser("report", help="Write interim/daily summary CSVs")
    i5.add_argument("file", type=Path)
    i5.add_argument("--outdir", type=Path, required=True)
    return p


def _load(a) -> ProcessingContext:
    ctx = ProcessingContext()
    ctx.process(a.file)
    if a.site_id:
        ctx.update_site_id(a.site_id)
    if a.site_name:
        ctx.update_site_name(a.site_name)
    if a.start or a.end:
        res = ctx.result
        ctx.update_timestamps(a.start or res.start, a.end or res.end)
    return ctx


def _run(a) -> dict:
    if a.cmd == "inspect":
        res = process_file(a.file)
        if a.start or a.end:
            res = reslice(res, a.start or res.start, a.end or res.end)
        return {"ok": True, **res.summary()}
    if a.cmd == "flow":
        ctx = _load(a)
        out = a.out or a.file.parent / ctx.output_filename()
        nulls = ctx.create_fdv_flow(out, a.shape, a.size, a.depth_col, a.velocity_col)
        return {"ok": True, "out": str(out), "nullDepth": nulls.depth, "nullVelocity": nulls.velocity}
    if a.cmd == "rainfall":
        ctx = _load(a)
        out = a.out or a.file.parent / ctx.output_filename()
        nulls = ctx.create_rainfall(out, a.rainfall_col)
        return {"ok": True, "out": str(out), "nullRainfall": nulls}
    if a.cmd == "batch":
        archive = run_batch(load_jobs(a.jobs), a.out_dir, max_workers=a.workers)
        return {"ok": True, "archive": str(archive)}
    if a.cmd == "r3":
        try:
            r3 = r3_for_shape(a.shape, a.width, a.height)
        except FdvError as e:
            # the converter UI shows -1 for an unsolvable section
            return {"ok": False, "r3": -1.0, "error": str(e)}
        return {"ok": True, "r3": r3}
    if a.cmd == "report":
        res = process_file(a.file)
        files = write_report_tables(generate_report(res), a.outdir)
        return {"ok": True, "monitorType": res.site.monitor_type.value, "files": files}
    raise ValueError(a.cmd)


def main(argv=None):
    ap = build_parser()
    a = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(a.log_level).upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        res = _run(a)
    except FdvError as e:
        logger.debug("%s failed", a.cmd, exc_info=True)
        res = {"ok": False, "error": str(e)}
    print(json.dumps(res, indent=2))
    return 0 if res["ok"] else 1

if __name__ == "__main__":
    raise SystemExit(main())
