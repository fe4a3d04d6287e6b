from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
import re

from .channels import CHANNEL_ROLES, DEPTH, FLOW, RAINFALL, VELOCITY, ColumnMapping

UNKNOWN = "Unknown"

_SITE_NAME_RX = re.compile(r"^([A-Za-z]+\d+)$")
_SITE_ID_RX = re.compile(r"^(\d+)$")


class MonitorType(str, Enum):
    FLOW = "Flow"
    DEPTH = "Depth"
    RAINFALL = "Rainfall"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


# filename substrings, checked in this order
_FILENAME_HINTS = (
    (("dm", "depth"), MonitorType.DEPTH),
    (("fm", "flow"), MonitorType.FLOW),
    (("rg", "rain"), MonitorType.RAINFALL),
)


@dataclass(frozen=True)
class SiteInfo:
    """Identity of the monitored site, derived once per ingested file."""

    site_id: str = UNKNOWN
    site_name: str = UNKNOWN
    monitor_type: MonitorType = MonitorType.UNKNOWN

    def with_overrides(self, site_id: str | None = None, site_name: str | None = None) -> "SiteInfo":
        """User override of id/name; blank values leave the field untouched."""
        changes = {}
        if site_id:
            changes["site_id"] = site_id
        if site_name:
            changes["site_name"] = site_name
        return replace(self, **changes)


def monitor_type_from_filename(filename: str) -> MonitorType | None:
    lower = filename.lower()
    for hints, mtype in _FILENAME_HINTS:
        if any(h in lower for h in hints):
            return mtype
    return None


def monitor_type_from_columns(mapping: ColumnMapping) -> MonitorType:
    if RAINFALL in mapping:
        return MonitorType.RAINFALL
    if FLOW in mapping or (DEPTH in mapping and VELOCITY in mapping):
        return MonitorType.FLOW
    if DEPTH in mapping:
        return MonitorType.DEPTH
    return MonitorType.UNKNOWN


def infer_site_info(path: Path | str, mapping: ColumnMapping) -> SiteInfo:
    """Derive site id/name and monitor type from the file name and channels.

    * stem ``<letters><digits>`` (e.g. ``SiteA1``) sets both id and name
    * an all-digit stem sets the id only
    * otherwise the first logger id captured from the channel headers
    * the name falls back to the id
    """
    path = Path(path)
    stem = path.stem
    site_id = site_name = UNKNOWN

    m = _SITE_NAME_RX.match(stem)
    if m:
        site_id = site_name = m.group(1)
    else:
        m = _SITE_ID_RX.match(stem)
        if m:
            site_id = m.group(1)

    if site_id == UNKNOWN:
        for role in CHANNEL_ROLES:
            ids = [e.logger_id for e in mapping.get(role, []) if e.logger_id]
            if ids:
                site_id = ids[0]
                break

    monitor_type = monitor_type_from_filename(path.name) or monitor_type_from_columns(mapping)

    if site_name == UNKNOWN and site_id != UNKNOWN:
        site_name = site_id
    return SiteInfo(site_id, site_name, monitor_type)


__all__ = [
    "UNKNOWN",
    "MonitorType",
    "SiteInfo",
    "monitor_type_from_filename",
    "monitor_type_from_columns",
    "infer_site_info",
]
