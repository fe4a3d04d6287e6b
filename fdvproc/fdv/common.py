"""Framing shared by the flow and rainfall FDV writers."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator
import math
import os
import tempfile

import pandas as pd

IDENTIFIER_PREFIX = "**IDENTIFIER:            1,"
SITE_NAME_WIDTH = 15
VALUES_PER_LINE = 5
FDV_TS_FORMAT = "%Y%m%d%H%M"


def identifier_line(site_name: str) -> str:
    return IDENTIFIER_PREFIX + str(site_name)[:SITE_NAME_WIDTH].upper()


def metadata_lines(start, end, interval_minutes: int) -> list[str]:
    """``START END   INTERVAL`` record followed by the ``*CEND`` marker."""
    t0 = pd.Timestamp(start).strftime(FDV_TS_FORMAT)
    t1 = pd.Timestamp(end).strftime(FDV_TS_FORMAT)
    return [f"{t0} {t1}   {int(interval_minutes)}", "*CEND"]


def round_half_away(x: float) -> float:
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


class RecordWriter:
    """Writes fixed-width values, breaking the line after every fifth one."""

    def __init__(self, fh: IO[str], per_line: int = VALUES_PER_LINE):
        self.fh = fh
        self.per_line = per_line
        self.count = 0

    def write(self, text: str) -> None:
        self.fh.write(text)
        self.count += 1
        if self.count % self.per_line == 0:
            self.fh.write("\n")

    def finish(self) -> None:
        """Terminate a partial record line, then the blank line and ``*END``."""
        if self.count % self.per_line:
            self.fh.write("\n")
        self.fh.write("\n*END\n")


@contextmanager
def atomic_output(path: Path | str) -> Iterator[IO[str]]:
    """Open ``path`` for writing through a temporary ``.part`` sibling.

    The target only appears once the block completes; on error the partial
    file is removed and the exception propagates.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    tmp = Path(tmp_name)
    fh = open(fd, "w", encoding="ascii", errors="replace", newline="\n")
    try:
        yield fh
    except BaseException:
        fh.close()
        tmp.unlink(missing_ok=True)
        raise
    fh.close()
    os.replace(tmp, path)


__all__ = [
    "VALUES_PER_LINE",
    "identifier_line",
    "metadata_lines",
    "round_half_away",
    "RecordWriter",
    "atomic_output",
]
