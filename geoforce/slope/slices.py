"""Slice generation for the method of slices.

Vertical slices of uniform width are created between the entry and exit
points of a trial circle with the ground profile.  Each slice carries
the geometric and load data needed by the LEM solvers.  Slices are
immutable and built fresh for every circle; a slice is identified by
its position in the returned sequence.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from geoforce.slope.errors import InvalidGeometryError
from geoforce.slope.forces import base_length, pore_pressure, slice_weight

MIN_SLICES = 3


@dataclass(frozen=True)
class Slice:
    """A single vertical slice for limit-equilibrium analysis.

    Attributes:
        index: 1-based position, left to right.
        x: Horizontal midpoint of the slice (m).
        width: Slice width b (m).
        height: Height of the ground above the base at the midpoint (m).
        alpha: Inclination of the base from horizontal (rad).
            Positive = base rises to the right.
        base_length: Length of the base ℓ = b / cos α (m).
        weight: Weight W = γ h b (kN/m).
        pore_pressure: Pore pressure u = rᵤ γ h at the base (kPa).
        y_base: Elevation of the slip surface at the midpoint.
        y_top: Ground elevation at the midpoint.
    """

    index: int
    x: float
    width: float
    height: float
    alpha: float
    base_length: float
    weight: float
    pore_pressure: float
    y_base: float
    y_top: float

    @property
    def base_angle(self) -> float:
        """Base inclination in degrees."""
        return math.degrees(self.alpha)

    @property
    def x_left(self) -> float:
        return self.x - self.width / 2

    @property
    def x_right(self) -> float:
        return self.x + self.width / 2


def generate_slices(
    profile: Any,
    circle: Any,
    n_slices: int | None = None,
    slice_width: float | None = None,
) -> tuple[Slice, ...]:
    """Discretise the mass above a trial circle into vertical slices.

    Args:
        profile: A :class:`~geoforce.slope.profile.SlopeProfile`.
        circle: A :class:`~geoforce.slope.surfaces.TrialCircle`.
        n_slices: Number of slices.  Defaults to the slope's
            ``n_slices``.
        slice_width: Target slice width (m).  When given, overrides
            *n_slices* with ``ceil(span / slice_width)`` (at least 3).

    Returns:
        Slices ordered left to right.  Slices whose height is not
        positive are dropped.

    Raises:
        InvalidGeometryError: If the circle does not cut the ground
            twice or fewer than three slices remain.
    """
    slope = profile.slope
    ee = circle.entry_exit(profile)
    if ee is None:
        raise InvalidGeometryError(
            "Slip circle does not intersect the ground profile."
        )
    x_entry, x_exit = ee
    span = x_exit - x_entry

    if slice_width is not None:
        if slice_width <= 0:
            raise InvalidGeometryError(f"slice_width must be > 0, got {slice_width}")
        n = max(MIN_SLICES, int(math.ceil(span / slice_width)))
    else:
        n = slope.n_slices if n_slices is None else int(n_slices)
    if n < MIN_SLICES:
        raise InvalidGeometryError(f"At least {MIN_SLICES} slices are required, got {n}")

    x_bounds = np.linspace(x_entry, x_exit, n + 1)
    widths = np.diff(x_bounds)
    x_mid = 0.5 * (x_bounds[:-1] + x_bounds[1:])
    y_top = profile.surface_elevation(x_mid)
    y_base = circle.y_at(x_mid)
    heights = y_top - y_base
    alphas = circle.base_angle(x_mid)

    slices: list[Slice] = []
    for i in np.flatnonzero(heights > 0):
        h = float(heights[i])
        b = float(widths[i])
        alpha = float(alphas[i])
        slices.append(Slice(
            index=len(slices) + 1,
            x=float(x_mid[i]),
            width=b,
            height=h,
            alpha=alpha,
            base_length=base_length(b, alpha),
            weight=slice_weight(slope.gamma, h, b),
            pore_pressure=pore_pressure(slope.ru, slope.gamma, h),
            y_base=float(y_base[i]),
            y_top=float(y_top[i]),
        ))

    if len(slices) < MIN_SLICES:
        raise InvalidGeometryError(
            f"Slip circle yields {len(slices)} valid slice(s); "
            f"at least {MIN_SLICES} are required."
        )
    return tuple(slices)
