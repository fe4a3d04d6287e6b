"""
fdvproc - flow survey logger ingestion, pipe hydraulics & FDV/rainfall file writer.
"""

__version__ = "0.1.0"

from .errors import (
    FdvError,
    UnsupportedFormat,
    InputFileNotFound,
    EmptyData,
    SheetNotFound,
    TimestampColumnNotFound,
    TimestampFormatNotIdentified,
    ParseError,
    InvalidParameter,
    CalculationError,
    MathDomainError,
    ConvergenceError,
    BatchError,
)
from .geometry import (
    PIPE_SHAPES,
    Circular,
    Rectangular,
    TwoCirclesAndRectangle,
    EggType1,
    EggType2,
    EggType2a,
    make_calculator,
    wetted_area,
)
from .solver import solve_r3, r3_for_shape
from .site_info import MonitorType, SiteInfo
from .ingest import IngestConfig, IngestResult, process_file, reslice
from .fdv import NullCounts, write_flow_fdv, smooth_rainfall, write_rainfall_fdv
from .context import ProcessingContext
from .batch import BatchJob, load_jobs, run_batch
from .reports import interim_summaries, daily_summary, rainfall_totals, write_report_tables

__all__ = [
    "__version__",
    "FdvError", "UnsupportedFormat", "InputFileNotFound", "EmptyData", "SheetNotFound",
    "TimestampColumnNotFound", "TimestampFormatNotIdentified", "ParseError",
    "InvalidParameter", "CalculationError", "MathDomainError", "ConvergenceError", "BatchError",
    "PIPE_SHAPES", "Circular", "Rectangular", "TwoCirclesAndRectangle",
    "EggType1", "EggType2", "EggType2a", "make_calculator", "wetted_area",
    "solve_r3", "r3_for_shape",
    "MonitorType", "SiteInfo",
    "IngestConfig", "IngestResult", "process_file", "reslice",
    "NullCounts", "write_flow_fdv", "smooth_rainfall", "write_rainfall_fdv",
    "ProcessingContext",
    "BatchJob", "load_jobs", "run_batch",
    "interim_summaries", "daily_summary", "rainfall_totals", "write_report_tables",
]
