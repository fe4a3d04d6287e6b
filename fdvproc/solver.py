"""Fixed-point solver for the throat radius (r3) of egg-shaped sections."""

from __future__ import annotations

import logging
import math

from .errors import ConvergenceError, InvalidParameter, MathDomainError
from .geometry import EGG_TYPE_1, EGG_TYPE_2, EGG_TYPE_2A

MAX_ITERATIONS = 1000
PRECISION = 1e-5

# egg family selector used by the radius-1 formula
EGG_FORMS: dict[str, int] = {
    EGG_TYPE_1: 1,
    EGG_TYPE_2: 2,
    EGG_TYPE_2A: 2,
}

logger = logging.getLogger(__name__)


def solve_r3(width: float, height: float, egg_form: int = 1) -> float:
    """Solve the throat radius so the side arcs meet the invert tangentially.

    Starting from ``r3 = height`` the radius is nudged by a tenth of the
    residual between the crown offset ``r3 - r2`` and the horizontal offset
    implied by the chord constraint, until the residual is within
    :data:`PRECISION`.

    Raises
    ------
    MathDomainError
        The chord constraint has no real solution for these dimensions
        (e.g. ``width >= height``).
    ConvergenceError
        :data:`MAX_ITERATIONS` was reached.
    """
    r2 = width / 2.0
    r1 = (height - width) / (2.0 if egg_form == 1 else 4.0)
    h2 = height - r2
    r3 = height
    for _ in range(MAX_ITERATIONS):
        offset = r3 - r2
        square_term = (r3 - r1) ** 2 - (h2 - r1) ** 2
        if square_term < 0.0:
            raise MathDomainError(
                f"No throat radius for width={width} height={height} (form {egg_form})"
            )
        diff = offset - math.sqrt(square_term)
        if abs(diff) <= PRECISION:
            return r3
        r3 += diff / 10.0
    raise ConvergenceError(f"r3 did not converge within {MAX_ITERATIONS} iterations")


def r3_for_shape(shape: str, width: float, height: float) -> float:
    """:func:`solve_r3` keyed by the egg shape tag instead of the form number."""
    try:
        form = EGG_FORMS[shape]
    except KeyError:
        raise InvalidParameter(f"r3 is only defined for egg shapes, not {shape!r}") from None
    r3 = solve_r3(width, height, form)
    logger.debug("Solved r3=%.6f for %s (w=%s h=%s)", r3, shape, width, height)
    return r3


__all__ = ["MAX_ITERATIONS", "PRECISION", "EGG_FORMS", "solve_r3", "r3_for_shape"]
