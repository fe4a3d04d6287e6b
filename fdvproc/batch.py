"""Batch conversion: ingest + encode many files in parallel, then zip the outputs."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import json
import logging
import time
import zipfile

from .context import ProcessingContext
from .errors import BatchError, InputFileNotFound, InvalidParameter
from .ingest import IngestConfig
from .site_info import MonitorType

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "processed_files.zip"


@dataclass
class BatchJob:
    """One input file plus the monitor-specific parameters it needs.

    ``pipeshape``/``pipesize`` are required when the file turns out to be a
    Flow or Depth monitor; see :func:`fdvproc.geometry.make_calculator` for the
    size format per shape.
    """

    filepath: Path
    pipeshape: Optional[str] = None
    pipesize: Optional[str] = None
    site_id: Optional[str] = None
    site_name: Optional[str] = None

    def __post_init__(self):
        self.filepath = Path(self.filepath)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BatchJob":
        fp = d.get("filepath")
        if not fp:
            raise InvalidParameter(f"Invalid filepath in job: {d!r}")
        size = d.get("pipesize")
        return cls(
            filepath=Path(fp),
            pipeshape=d.get("pipeshape") or None,
            pipesize=None if size in (None, "") else str(size),
            site_id=d.get("site_id") or None,
            site_name=d.get("site_name") or None,
        )


def load_jobs(path: Path | str) -> List[BatchJob]:
    """Read job descriptors from JSON (a list, or ``{"jobs": [...]}``)."""
    with open(path) as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("jobs", [])
    return [BatchJob.from_dict(d) for d in payload]


class _JobLog(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['job']}] {msg}", kwargs


def run_job(
    job: BatchJob,
    output_dir: Path,
    config: IngestConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> Path:
    """Ingest and encode a single job with its own :class:`ProcessingContext`."""
    jlog = _JobLog(log or logger, {"job": job.filepath.name})
    if not job.filepath.is_file():
        raise InputFileNotFound(job.filepath)
    jlog.info("Processing file: %s", job.filepath)

    ctx = ProcessingContext(config, log=jlog)
    ctx.process(job.filepath)
    if job.site_id:
        ctx.update_site_id(job.site_id)
    if job.site_name:
        ctx.update_site_name(job.site_name)

    monitor_type = ctx.result.site.monitor_type
    out_path = Path(output_dir) / ctx.output_filename()
    if monitor_type in (MonitorType.FLOW, MonitorType.DEPTH):
        if not job.pipeshape or not job.pipesize:
            raise InvalidParameter("Pipe shape and size are required for flow/depth conversion")
        ctx.create_fdv_flow(out_path, job.pipeshape, job.pipesize)
    elif monitor_type == MonitorType.RAINFALL:
        ctx.create_rainfall(out_path)
    else:
        raise InvalidParameter(f"Unsupported monitor type: {monitor_type.value}")
    return out_path


def build_archive(paths: Iterable[Path], zip_path: Path) -> Path:
    """Deflate ``paths`` into ``zip_path`` by base name."""
    paths = [Path(p) for p in paths]
    for p in paths:
        if not p.is_file():
            raise InputFileNotFound(p)
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for p in paths:
            logger.debug("Adding %s to %s", p.name, zip_path.name)
            zf.write(p, arcname=p.name)
    return zip_path


def run_batch(
    jobs: Iterable[Union[BatchJob, Dict[str, Any]]],
    output_dir: Path | str,
    *,
    max_workers: int | None = None,
    archive_name: str = ARCHIVE_NAME,
    config: IngestConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> Path:
    """Convert every job concurrently and bundle the outputs.

    Fail-fast: the first failing job cancels the jobs that have not started,
    the outputs already written by this batch are removed and
    :class:`BatchError` is raised; no archive is created.

    Returns
    -------
    Path
        ``<output_dir>/<archive_name>``
    """
    log = log or logger
    t0 = time.perf_counter()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    jobs = [j if isinstance(j, BatchJob) else BatchJob.from_dict(j) for j in jobs]
    log.info("Starting batch of %d file(s) into %s", len(jobs), output_dir)

    outputs: Dict[int, Path] = {}
    failure: tuple[BatchJob, Exception] | None = None
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(run_job, job, output_dir, config, log): i for i, job in enumerate(jobs)}
        for fut in as_completed(futures):
            if fut.cancelled():
                continue
            i = futures[fut]
            try:
                outputs[i] = fut.result()
                log.info("Converted %s -> %s", jobs[i].filepath.name, outputs[i].name)
            except Exception as e:
                log.error("Job failed for %s: %s", jobs[i].filepath, e)
                if failure is None:
                    failure = (jobs[i], e)
                    for other in futures:
                        other.cancel()

    if failure is not None:
        for p in outputs.values():
            p.unlink(missing_ok=True)
        job, err = failure
        raise BatchError(job, err) from err

    paths: List[Path] = []
    for i in sorted(outputs):
        if outputs[i] in paths:
            log.warning("Duplicate output %s; later job overwrote it", outputs[i].name)
            continue
        paths.append(outputs[i])
    zip_path = build_archive(paths, output_dir / archive_name)
    log.info("Archived %d file(s) to %s in %.2fs", len(paths), zip_path, time.perf_counter() - t0)
    return zip_path


__all__ = ["ARCHIVE_NAME", "BatchJob", "load_jobs", "run_job", "build_archive", "run_batch"]
