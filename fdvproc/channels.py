from __future__ import annotations

from typing import Iterable, NamedTuple, Optional
import re

TIMESTAMP = "timestamp"
DEPTH = "depth"
FLOW = "flow"
VELOCITY = "velocity"
RAINFALL = "rainfall"

CHANNEL_ROLES = (DEPTH, FLOW, VELOCITY, RAINFALL)

# "<logger>_<pin>|<label>|<quantity>|<unit>", e.g. "100_1|Pipe|Depth|mm"
COLUMN_PATTERNS: dict[str, str] = {
    DEPTH: r"(\d+)_(\d+)\|.*(Depth|Level)\|(m|mm)",
    FLOW: r"(\d+)_(\d+)\|.*Flow\|(l/s|m3/s)",
    VELOCITY: r"(\d+)_(\d+)\|.*Velocity\|m/s",
    RAINFALL: r"(\d+)_(\d+)\|.*Rainfall\|mm",
}


class ColumnEntry(NamedTuple):
    name: str
    index: int
    logger_id: Optional[str] = None
    pin_id: Optional[str] = None


ColumnMapping = dict[str, list[ColumnEntry]]


def classify_columns(
    headers: Iterable[str],
    time_column: str,
    patterns: dict[str, str] | None = None,
) -> ColumnMapping:
    """Assign each header to the channel roles whose pattern it matches.

    The timestamp column is recorded under ``"timestamp"`` without sub-ids.
    A header may match more than one role. Roles without a match are absent
    from the result; the first entry of each role is the canonical one.
    """
    compiled = {
        role: re.compile(rx, re.IGNORECASE)
        for role, rx in (patterns or COLUMN_PATTERNS).items()
    }
    mapping: ColumnMapping = {}
    for idx, name in enumerate(headers):
        if name == time_column:
            mapping.setdefault(TIMESTAMP, []).append(ColumnEntry(name, idx))
            continue
        for role, rx in compiled.items():
            m = rx.search(name)
            if m:
                mapping.setdefault(role, []).append(ColumnEntry(name, idx, m.group(1), m.group(2)))
    return mapping


def canonical_column(mapping: ColumnMapping, role: str) -> str | None:
    entries = mapping.get(role)
    return entries[0].name if entries else None


def mapping_to_json(mapping: ColumnMapping) -> dict[str, list[list]]:
    return {role: [list(e) for e in entries] for role, entries in mapping.items()}


__all__ = [
    "TIMESTAMP",
    "DEPTH",
    "FLOW",
    "VELOCITY",
    "RAINFALL",
    "CHANNEL_ROLES",
    "COLUMN_PATTERNS",
    "ColumnEntry",
    "ColumnMapping",
    "classify_columns",
    "canonical_column",
    "mapping_to_json",
]
