from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, NamedTuple, Union
import math
import numpy as np

from .errors import InvalidParameter

# Shape tags as they appear in job descriptors and the CLI.
CIRCULAR = "Circular"
RECTANGULAR = "Rectangular"
EGG_TYPE_1 = "Egg Type 1"
EGG_TYPE_2 = "Egg Type 2"
EGG_TYPE_2A = "Egg Type 2a"
TWO_CIRCLES_AND_RECTANGLE = "Two Circles and a Rectangle"

PIPE_SHAPES = (
    CIRCULAR,
    RECTANGULAR,
    EGG_TYPE_1,
    EGG_TYPE_2,
    EGG_TYPE_2A,
    TWO_CIRCLES_AND_RECTANGLE,
)

# wetted area is evaluated just below the crown to keep acos() in range
CROWN_CLAMP = 0.9999


def _flow(area: float, velocity: float) -> float:
    """Area [m^2] x velocity [m/s] -> flow [L/s]."""
    return area * velocity * 1000.0


def _floor_zero(value: float) -> float:
    # NaN compares false and collapses to zero as well
    return float(value) if value > 0.0 else 0.0


def segment_area(radius: float, height: float) -> float:
    """Area of the circular segment of ``height`` cut from a circle of ``radius``."""
    t = radius - height
    with np.errstate(invalid="ignore", divide="ignore"):
        half_chord = np.sqrt(radius**2 - t**2)
        theta = 2.0 * np.arctan2(half_chord, t)
        return float(radius**2 * (theta - np.sin(theta)) / 2.0)


def _require(name: str, value: float, *, positive: bool = False) -> float:
    value = float(value)
    if math.isnan(value):
        raise InvalidParameter(f"{name} is NaN")
    if positive and value <= 0.0:
        raise InvalidParameter(f"{name} must be > 0 (got {value})")
    return value


@dataclass(frozen=True)
class Circular:
    radius_m: float
    shape: ClassVar[str] = CIRCULAR

    def __post_init__(self):
        _require("pipe radius", self.radius_m, positive=True)

    @property
    def circle_area(self) -> float:
        return math.pi * self.radius_m**2

    def compute(self, depth: float, velocity: float) -> float:
        r = self.radius_m
        if depth > r:
            if depth < 2.0 * r:
                # full circle minus the dry segment above the water line
                wet = self.circle_area - segment_area(r, 2.0 * r - depth)
                return _flow(wet, velocity)
            return _flow(self.circle_area, velocity)
        if depth == r:
            return _flow(self.circle_area / 2.0, velocity)
        if depth > 0.0:
            return _flow(segment_area(r, depth), velocity)
        return 0.0


@dataclass(frozen=True)
class Rectangular:
    width_m: float
    shape: ClassVar[str] = RECTANGULAR

    def __post_init__(self):
        _require("channel width", self.width_m, positive=True)

    def compute(self, depth: float, velocity: float) -> float:
        return _floor_zero(depth * velocity * self.width_m * 1000.0)


@dataclass(frozen=True)
class TwoCirclesAndRectangle:
    """Two half circles of diameter ``width`` joined by a straight barrel."""

    width_m: float
    height_m: float
    shape: ClassVar[str] = TWO_CIRCLES_AND_RECTANGLE

    def __post_init__(self):
        _require("width", self.width_m, positive=True)
        _require("height", self.height_m, positive=True)

    def compute(self, depth: float, velocity: float) -> float:
        # negative or NaN depth is a dry section; reverse flow floors to zero
        if not depth > 0.0:
            return 0.0
        return _floor_zero(_flow(self.area(depth), velocity))

    def area(self, depth: float) -> float:
        w, h = self.width_m, self.height_m
        r1 = w / 2.0
        half_circle = math.pi * r1**2 / 2.0
        barrel = (h - w) * w
        if depth < r1:
            return segment_area(r1, depth)
        if depth < h - r1:
            return half_circle + (depth - r1) * w
        if depth < h:
            above_barrel = depth - r1 - (h - w)
            return half_circle + barrel + half_circle - segment_area(r1, r1 - above_barrel)
        return 2.0 * half_circle + barrel


class EggProfile(NamedTuple):
    """Precomputed constants of an ovoid section (metres)."""

    height: float
    r1: float  # invert
    r2: float  # crown
    r3: float  # throat (side arcs)
    offset: float
    h1: float  # invert -> throat transition
    h2: float  # throat -> crown transition


def _egg_profile(height: float, r1: float, r2: float, r3: float, offset: float) -> EggProfile:
    h2 = height - r2
    with np.errstate(invalid="ignore", divide="ignore"):
        h1 = float(h2 - r3 * np.sin(np.arctan((h2 - r1) / np.float64(offset))))
    return EggProfile(height, r1, r2, r3, offset, h1, h2)


def wetted_area(
    height: float,
    r1: float,
    r2: float,
    r3: float,
    h1: float,
    h2: float,
    offset: float,
    depth: float,
) -> tuple[float, float]:
    """Wetted area and perimeter of an egg-shaped section at ``depth``.

    Three regimes are evaluated:

    * ``depth <= h1`` - segment of the invert circle (radius ``r1``)
    * ``h1 < depth <= h2`` - invert segment plus the two throat arcs (``r3``)
      up to the water line
    * ``depth > h2`` - full invert and throat sections plus the wetted part of
      the crown circle (``r2``)

    Depth is clamped to ``0.9999 * height``. Depths outside the section's
    domain yield NaN (and therefore zero flow downstream) instead of raising.

    Returns
    -------
    tuple
        ``(area_m2, perimeter_m)``
    """
    area = 0.0
    perimeter = 0.0
    height, r1, r2, r3, h1, h2, offset, depth = (
        np.float64(x) for x in (height, r1, r2, r3, h1, h2, offset, depth)
    )
    d = height * CROWN_CLAMP if depth > height * CROWN_CLAMP else depth

    with np.errstate(invalid="ignore", divide="ignore"):
        psi = np.arctan((h2 - r1) / offset)
        area1 = 0.25 * r3**2 * (2.0 * psi - np.sin(2.0 * psi))
        inner_rect = np.sqrt(r1**2 - (r1 - h1) ** 2)

        if d <= h1:
            half_angle = np.arccos((r1 - d) / r1)
            theta = 2.0 * half_angle
            area = 0.5 * (theta - np.sin(theta)) * r1**2
            perimeter = 2.0 * r1 * half_angle
        elif h1 < d <= h2:
            z = h2 - d
            phi = np.arcsin(z / r3)
            area2 = 0.25 * r3**2 * (2.0 * phi - np.sin(2.0 * phi))
            x1 = np.sqrt(r3**2 - z**2)
            p = x1 - offset - inner_rect
            area3 = (d - h1) * inner_rect
            area4 = p * (h2 - d)
            area5 = area1 - area2 - area4
            invert_half = np.arccos((r1 - h1) / r1)
            theta = 2.0 * invert_half
            lower = 0.5 * (theta - np.sin(theta)) * r1**2
            area = lower + 2.0 * (area5 + area3)
            perimeter = 2.0 * r1 * invert_half + r3 * (psi - phi) * 2.0
        elif d > h2:
            middle = 2.0 * (area1 + (d - h1) * inner_rect)
            invert_half = np.arccos((r1 - h1) / r1)
            theta = 2.0 * invert_half
            lower = 0.5 * (theta - np.sin(theta)) * r1**2
            half_crown = math.pi * r2**2 / 2.0
            z = r2 * 2.0 - (d - h2 + r2)
            gamma = 2.0 * np.arccos((r2 - z) / r2)
            upper = math.pi * r2**2 - r2**2 * (gamma - np.sin(gamma)) / 2.0 - half_crown
            area = lower + middle + upper
            perimeter = 2.0 * r1 * invert_half + r3 * psi * 2.0 + (math.pi * r2 - r2 * gamma)

    return float(area), float(perimeter)


def _egg_flow(profile: EggProfile, depth: float, velocity: float) -> float:
    area, _ = wetted_area(
        profile.height,
        profile.r1,
        profile.r2,
        profile.r3,
        profile.h1,
        profile.h2,
        profile.offset,
        depth,
    )
    return _floor_zero(_flow(area, velocity))


@dataclass(frozen=True)
class EggType1:
    width_m: float
    height_m: float
    r3_m: float
    profile: EggProfile = field(init=False, repr=False, compare=False)
    shape: ClassVar[str] = EGG_TYPE_1

    def __post_init__(self):
        w = _require("width", self.width_m)
        h = _require("height", self.height_m)
        r3 = _require("r3", self.r3_m)
        r2 = w / 2.0
        object.__setattr__(self, "profile", _egg_profile(h, (h - w) / 2.0, r2, r3, r3 - r2))

    def compute(self, depth: float, velocity: float) -> float:
        return _egg_flow(self.profile, depth, velocity)


@dataclass(frozen=True)
class EggType2:
    """Standard egg defined by its height alone (fixed proportions)."""

    height_m: float
    profile: EggProfile = field(init=False, repr=False, compare=False)
    shape: ClassVar[str] = EGG_TYPE_2

    def __post_init__(self):
        h = _require("height", self.height_m)
        object.__setattr__(
            self,
            "profile",
            _egg_profile(h, h / 12.0, h / 3.0, 8.0 * h / 9.0, 5.0 * h / 9.0),
        )

    def compute(self, depth: float, velocity: float) -> float:
        return _egg_flow(self.profile, depth, velocity)


@dataclass(frozen=True)
class EggType2a:
    height_m: float
    width_m: float
    r3_m: float
    profile: EggProfile = field(init=False, repr=False, compare=False)
    shape: ClassVar[str] = EGG_TYPE_2A

    def __post_init__(self):
        h = _require("height", self.height_m, positive=True)
        w = _require("width", self.width_m, positive=True)
        r3 = _require("r3", self.r3_m, positive=True)
        r2 = w / 2.0
        object.__setattr__(self, "profile", _egg_profile(h, (h - w) / 4.0, r2, r3, r3 - r2))

    def compute(self, depth: float, velocity: float) -> float:
        return _egg_flow(self.profile, depth, velocity)


Calculator = Union[Circular, Rectangular, TwoCirclesAndRectangle, EggType1, EggType2, EggType2a]


SIZE_FIELDS: dict[str, tuple[str, ...]] = {
    CIRCULAR: ("diameter_mm",),
    RECTANGULAR: ("width_mm",),
    EGG_TYPE_1: ("width_m", "height_m", "r3_m"),
    EGG_TYPE_2: ("height_m",),
    EGG_TYPE_2A: ("height_m", "width_m", "r3_m"),
    TWO_CIRCLES_AND_RECTANGLE: ("height_m", "width_m"),
}


def _parse_size(shape: str, size) -> list[float]:
    """Split a ``"a,b,c"`` size parameter into one float per :data:`SIZE_FIELDS` entry."""
    fields = SIZE_FIELDS[shape]
    if isinstance(size, (int, float)):
        parts = [size]
    elif isinstance(size, (list, tuple)):
        parts = list(size)
    else:
        parts = [p.strip() for p in str(size).split(",")]
    if len(parts) != len(fields):
        raise InvalidParameter(f"{shape} size must be {','.join(fields)}, got {size!r}")
    try:
        return [float(p) for p in parts]
    except (TypeError, ValueError) as e:
        raise InvalidParameter(f"Invalid pipe size for {shape}: {size!r}") from e


def make_calculator(shape: str, size) -> Calculator:
    """Build the calculator for ``shape`` from a UI-style size parameter.

    Circular and rectangular sizes are millimetres (diameter / width); egg and
    two-circle sizes are comma-separated metres in the order listed in
    :data:`SIZE_FIELDS`.
    """
    if shape == CIRCULAR:
        (dia_mm,) = _parse_size(shape, size)
        return Circular(dia_mm / 1000.0 / 2.0)
    if shape == RECTANGULAR:
        (width_mm,) = _parse_size(shape, size)
        return Rectangular(width_mm / 1000.0)
    if shape == EGG_TYPE_1:
        w, h, r3 = _parse_size(shape, size)
        return EggType1(w, h, r3)
    if shape == EGG_TYPE_2A:
        h, w, r3 = _parse_size(shape, size)
        return EggType2a(h, w, r3)
    if shape == EGG_TYPE_2:
        (h,) = _parse_size(shape, size)
        return EggType2(h)
    if shape == TWO_CIRCLES_AND_RECTANGLE:
        h, w = _parse_size(shape, size)
        return TwoCirclesAndRectangle(width_m=w, height_m=h)
    raise InvalidParameter(f"Unsupported pipe type: {shape}")


def pipe_dimension(shape: str, size) -> float | None:
    """HEIGHT constant for the FDV header in metres (circular/rectangular only)."""
    if shape in (CIRCULAR, RECTANGULAR):
        try:
            (mm,) = _parse_size(shape, size)
        except InvalidParameter:
            return None
        if mm > 0:
            return mm / 1000.0
    return None


__all__ = [
    "PIPE_SHAPES",
    "SIZE_FIELDS",
    "CIRCULAR",
    "RECTANGULAR",
    "EGG_TYPE_1",
    "EGG_TYPE_2",
    "EGG_TYPE_2A",
    "TWO_CIRCLES_AND_RECTANGLE",
    "Calculator",
    "Circular",
    "Rectangular",
    "TwoCirclesAndRectangle",
    "EggProfile",
    "EggType1",
    "EggType2",
    "EggType2a",
    "segment_area",
    "wetted_area",
    "make_calculator",
    "pipe_dimension",
]
