"""Trial circular slip surfaces.

A :class:`TrialCircle` is defined by its centre and radius in the local
frame of :class:`~geoforce.slope.profile.SlopeProfile`.  Only the lower
arc is used as a slip surface; the sliding mass lies between that arc
and the ground.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy.optimize import brentq

from geoforce.slope.errors import InvalidInputError


# Samples used to bracket arc/ground crossings before polishing with brentq.
_N_BRACKET = 400


@dataclass(frozen=True)
class TrialCircle:
    """Circular slip surface.

    Args:
        xc: x-coordinate of the arc centre.
        yc: y-coordinate of the arc centre.
        radius: Arc radius R (m), > 0.
    """

    xc: float
    yc: float
    radius: float

    def __post_init__(self) -> None:
        for name in ("xc", "yc", "radius"):
            if not np.isfinite(getattr(self, name)):
                raise InvalidInputError(f"Circle {name} must be finite")
        if self.radius <= 0:
            raise InvalidInputError(f"Circle radius must be > 0, got {self.radius}")

    @classmethod
    def from_request(cls, circle: Any) -> TrialCircle:
        """Build a circle from ``{"center": {"x", "y"}, "radius"}``,
        ``{"x", "y", "radius"}`` or an ``(xc, yc, R)`` triple."""
        if isinstance(circle, TrialCircle):
            return circle
        if isinstance(circle, dict):
            center = circle.get("center", circle)
            try:
                return cls(
                    xc=float(center["x"]),
                    yc=float(center["y"]),
                    radius=float(circle.get("radius", circle.get("R"))),
                )
            except (KeyError, TypeError) as exc:
                raise InvalidInputError(f"Malformed circle: {circle!r}") from exc
        try:
            xc, yc, r = circle
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Malformed circle: {circle!r}") from exc
        return cls(xc=float(xc), yc=float(yc), radius=float(r))

    def y_at(self, x: float | np.ndarray) -> float | np.ndarray:
        """Lower-arc elevation at *x*.

        Returns ``nan`` where *x* lies outside ``[xc - R, xc + R]``.
        """
        dx = np.asarray(x, dtype=float) - self.xc
        r2 = self.radius ** 2
        under = r2 - dx ** 2
        # Round-off at the arc ends.
        under = np.where((under < 0) & (under > -1e-12 * r2), 0.0, under)
        y = np.where(under >= 0, self.yc - np.sqrt(np.abs(under)), np.nan)
        if np.ndim(y) == 0:
            return float(y)
        return y

    def base_angle(self, x: float | np.ndarray) -> float | np.ndarray:
        """Inclination α of the arc base at *x* (radians).

        α = arcsin((x − xc) / R); positive where the base rises to the
        right of the centre.
        """
        ratio = np.clip((np.asarray(x, dtype=float) - self.xc) / self.radius, -1.0, 1.0)
        alpha = np.arcsin(ratio)
        if np.ndim(alpha) == 0:
            return float(alpha)
        return alpha

    def entry_exit(self, profile: Any) -> tuple[float, float] | None:
        """Entry (left) and exit (right) x of the arc with the ground.

        The arc span is sampled to bracket sign changes of
        ``ground − arc``; each crossing is then polished with
        :func:`scipy.optimize.brentq`.  The first and last crossings are
        returned.

        Args:
            profile: A :class:`~geoforce.slope.profile.SlopeProfile`.

        Returns:
            ``(x_entry, x_exit)`` or ``None`` if the arc does not cut
            the ground twice.
        """
        x_lo = self.xc - self.radius
        x_hi = self.xc + self.radius
        xs = np.linspace(x_lo, x_hi, _N_BRACKET)

        def depth(x: float) -> float:
            return profile.surface_elevation(x) - self.y_at(x)

        diff = profile.surface_elevation(xs) - self.y_at(xs)
        inside = diff > 0
        changes = np.flatnonzero(inside[:-1] != inside[1:])
        if len(changes) < 2:
            return None

        # The arc must dive under the ground at the entry and come back
        # out at the exit.
        i_entry, i_exit = changes[0], changes[-1]
        if inside[i_entry] or not inside[i_exit]:
            return None

        def polish(i: int) -> float:
            if diff[i] == 0.0:
                return float(xs[i])
            return float(brentq(depth, xs[i], xs[i + 1], xtol=1e-10))

        return (polish(i_entry), polish(i_exit))

    def chord_sag(self, x_entry: float, x_exit: float) -> tuple[float, float]:
        """Chord length and maximum sag of the arc between two x.

        The sag is the largest distance from the arc to the straight
        chord joining its end points: R minus the distance from the
        centre to the chord.

        Returns:
            ``(chord_length, sag)``.
        """
        x1, y1 = x_entry, float(self.y_at(x_entry))
        x2, y2 = x_exit, float(self.y_at(x_exit))
        chord = float(np.hypot(x2 - x1, y2 - y1))
        if chord <= 0:
            return 0.0, 0.0
        # Perpendicular distance from the centre to the chord line.
        h = abs((x2 - x1) * (y1 - self.yc) - (x1 - self.xc) * (y2 - y1)) / chord
        return chord, max(self.radius - h, 0.0)
