"""Fixed-width ASCII FDV writers (flow/depth/velocity and rainfall)."""

from .flow import NullCounts, write_flow_fdv
from .rainfall import RainfallSmoother, smooth_rainfall, write_rainfall_fdv

__all__ = [
    "NullCounts",
    "write_flow_fdv",
    "RainfallSmoother",
    "smooth_rainfall",
    "write_rainfall_fdv",
]
