from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import re

from .channels import DEPTH, RAINFALL, VELOCITY
from .errors import InvalidParameter
from .fdv.flow import NullCounts, write_flow_fdv
from .fdv.rainfall import write_rainfall_fdv
from .geometry import make_calculator, pipe_dimension
from .ingest import IngestConfig, IngestResult, process_file, reslice
from .site_info import MonitorType
from .solver import r3_for_shape

logger = logging.getLogger(__name__)

OUTPUT_EXTENSIONS = {MonitorType.RAINFALL: "r"}
DEFAULT_EXTENSION = "fdv"


def output_filename(site_name: str, monitor_type: MonitorType) -> str:
    """Output file name for a site; path separators in the name become ``_``."""
    stem = re.sub(r"[\\/]", "_", site_name).strip(".") or "site"
    return f"{stem}.{OUTPUT_EXTENSIONS.get(monitor_type, DEFAULT_EXTENSION)}"


class ProcessingContext:
    """Ingestion and encoding state for one file.

    Every caller (an interactive session, a batch job) owns its own context;
    nothing here is shared between threads.
    """

    def __init__(
        self,
        config: IngestConfig | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.config = config or IngestConfig()
        self.log = log or logger
        self.result: Optional[IngestResult] = None

    def reset(self) -> None:
        self.result = None

    def _loaded(self) -> IngestResult:
        if self.result is None:
            raise InvalidParameter("No data loaded; call process() first")
        return self.result

    def process(self, path: Path | str) -> Dict[str, Any]:
        self.result = process_file(path, self.config, log=self.log)
        return self.result.summary()

    def update_site_id(self, site_id: str) -> None:
        res = self._loaded()
        self.result = replace(res, site=res.site.with_overrides(site_id=site_id))

    def update_site_name(self, site_name: str) -> None:
        res = self._loaded()
        self.result = replace(res, site=res.site.with_overrides(site_name=site_name))

    def update_timestamps(self, start, end) -> Dict[str, Any]:
        """Reslice the loaded data to ``start``..``end``."""
        self.result = reslice(self._loaded(), start, end)
        res = self.result
        return {
            "startTimestamp": res.start.strftime("%Y-%m-%d %H:%M:%S"),
            "endTimestamp": res.end.strftime("%Y-%m-%d %H:%M:%S"),
            "interval": res.interval_seconds,
            "rowCount": int(len(res.data)),
        }

    def output_filename(self) -> str:
        res = self._loaded()
        return output_filename(res.site.site_name, res.site.monitor_type)

    def create_fdv_flow(
        self,
        out_path: Path | str,
        shape: str,
        size,
        depth_column: str | None = None,
        velocity_column: str | None = None,
    ) -> NullCounts:
        res = self._loaded()
        depth = depth_column or res.column(DEPTH)
        if depth is None:
            raise InvalidParameter("Depth column name not provided and none was detected")
        velocity = velocity_column or res.column(VELOCITY)
        calculator = make_calculator(shape, size)
        return write_flow_fdv(
            res.data,
            out_path,
            depth_column=depth,
            velocity_column=velocity,
            calculator=calculator,
            site_name=res.site.site_name,
            start=res.start,
            end=res.end,
            interval_minutes=res.interval_minutes,
            pipe_height=pipe_dimension(shape, size),
            log=self.log,
        )

    def create_rainfall(self, out_path: Path | str, rainfall_column: str | None = None) -> int:
        res = self._loaded()
        column = rainfall_column or res.column(RAINFALL)
        if column is None:
            raise InvalidParameter("Rainfall column name not provided and none was detected")
        return write_rainfall_fdv(
            res.data,
            out_path,
            rainfall_column=column,
            site_name=res.site.site_name,
            start=res.start,
            end=res.end,
            interval_minutes=res.interval_minutes,
            log=self.log,
        )

    @staticmethod
    def calculate_r3(width: float, height: float, shape: str) -> float:
        return r3_for_shape(shape, width, height)


__all__ = ["OUTPUT_EXTENSIONS", "output_filename", "ProcessingContext"]
