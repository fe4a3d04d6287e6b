from pathlib import Path

import pandas as pd
import pytest

DEPTH_MM = "100_1|Pipe|Depth|mm"
VELOCITY = "100_1|Pipe|Velocity|m/s"
FLOW = "100_1|Pipe|Flow|l/s"
RAIN = "200_3|Gauge|Rainfall|mm"


@pytest.fixture
def flow_csv(tmp_path: Path) -> Path:
    """SiteA1 flow monitor, 5 minute data with the 00:10 reading missing."""
    df = pd.DataFrame({
        "Timestamp": [
            "01/01/2024 00:00",
            "01/01/2024 00:05",
            "01/01/2024 00:15",
            "01/01/2024 00:20",
        ],
        DEPTH_MM: ["150", "", "300", "75"],
        VELOCITY: ["1.0", "0.5", "", "0.25"],
        FLOW: ["35.3", "0", "0", "3.1"],
    })
    path = tmp_path / "SiteA1.csv"
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def rain_csv(tmp_path: Path) -> Path:
    df = pd.DataFrame({
        "Date Time": [
            "2024-01-01 00:00:00",
            "2024-01-01 00:05:00",
            "2024-01-01 00:10:00",
            "2024-01-01 00:15:00",
        ],
        RAIN: ["0", "0", "0", "8.0"],
    })
    path = tmp_path / "RG1.csv"
    df.to_csv(path, index=False)
    return path
