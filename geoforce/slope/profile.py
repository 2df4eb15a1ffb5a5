"""Slope input and ground profile.

A :class:`SlopeInput` carries the soil and geometry parameters of a
simple slope; a :class:`SlopeProfile` turns it into ground geometry in
the local frame used by every other module:

* toe at ``(0, 0)``, horizontal ground ``y = 0`` to the left;
* planar face rising at angle β up to the crest ``(L, H)`` where
  ``L = H / tan β`` is the horizontal run;
* horizontal ground ``y = H`` to the right of the crest.

Units follow the usual geotechnical convention: m, kN/m³, kPa, degrees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from geoforce.slope.errors import InvalidInputError


# Request keys (camelCase, as sent by the web layer) and their snake_case
# aliases.
_REQUEST_KEYS: dict[str, tuple[str, ...]] = {
    "height": ("height", "H"),
    "slope_angle": ("slopeAngle", "slope_angle", "beta"),
    "gamma": ("gamma", "unit_weight"),
    "cohesion": ("cohesion", "c"),
    "friction_angle": ("frictionAngle", "friction_angle", "phi"),
    "ru": ("ru",),
    "kh": ("kh",),
    "n_slices": ("nSlices", "n_slices"),
}

_REQUIRED = ("height", "slope_angle", "gamma", "cohesion", "friction_angle")


@dataclass(frozen=True)
class SlopeInput:
    """Soil and geometry parameters of a simple slope.

    Validated on construction.  Values outside their physical range raise
    :class:`~geoforce.slope.errors.InvalidInputError`; nothing is clamped.

    Args:
        height: Slope height H (m), > 0.
        slope_angle: Face inclination β (degrees), 0 < β < 90.
        gamma: Unit weight γ (kN/m³), > 0.
        cohesion: Cohesion c (kPa), ≥ 0.
        friction_angle: Friction angle φ (degrees), 0 ≤ φ < 90.
        ru: Pore-pressure ratio rᵤ, 0 ≤ rᵤ ≤ 1.
        kh: Horizontal seismic coefficient kₕ, 0 ≤ kₕ < 1.
        n_slices: Number of slices per trial surface, ≥ 3.
    """

    height: float
    slope_angle: float
    gamma: float
    cohesion: float
    friction_angle: float
    ru: float = 0.0
    kh: float = 0.0
    n_slices: int = 30

    def __post_init__(self) -> None:
        for name in ("height", "slope_angle", "gamma", "cohesion",
                     "friction_angle", "ru", "kh"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
                raise InvalidInputError(f"{name} must be a number, got {value!r}")
            if not np.isfinite(value):
                raise InvalidInputError(f"{name} must be finite, got {value!r}")

        if self.height <= 0:
            raise InvalidInputError(f"height must be > 0, got {self.height}")
        if not 0 < self.slope_angle < 90:
            raise InvalidInputError(
                f"slope_angle must be in (0, 90) degrees, got {self.slope_angle}"
            )
        if self.gamma <= 0:
            raise InvalidInputError(f"gamma must be > 0, got {self.gamma}")
        if self.cohesion < 0:
            raise InvalidInputError(f"cohesion must be >= 0, got {self.cohesion}")
        if not 0 <= self.friction_angle < 90:
            raise InvalidInputError(
                f"friction_angle must be in [0, 90) degrees, got {self.friction_angle}"
            )
        if not 0 <= self.ru <= 1:
            raise InvalidInputError(f"ru must be in [0, 1], got {self.ru}")
        if not 0 <= self.kh < 1:
            raise InvalidInputError(f"kh must be in [0, 1), got {self.kh}")
        if isinstance(self.n_slices, bool) or not isinstance(self.n_slices, (int, np.integer)):
            raise InvalidInputError(f"n_slices must be an integer, got {self.n_slices!r}")
        if self.n_slices < 3:
            raise InvalidInputError(f"n_slices must be >= 3, got {self.n_slices}")

    @classmethod
    def from_request(cls, request: Mapping[str, Any]) -> SlopeInput:
        """Build an input from a request mapping.

        Accepts the camelCase keys of the web request
        (``height``, ``slopeAngle``, ``gamma``, ``cohesion``,
        ``frictionAngle``, ``ru``, ``kh``, ``nSlices``) or their
        snake_case equivalents.  Unknown keys are ignored.
        """
        values: dict[str, Any] = {}
        for field_name, aliases in _REQUEST_KEYS.items():
            for key in aliases:
                if key in request and request[key] is not None:
                    values[field_name] = request[key]
                    break

        missing = [name for name in _REQUIRED if name not in values]
        if missing:
            raise InvalidInputError(f"Missing required input(s): {', '.join(missing)}")
        return cls(**values)

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def beta_rad(self) -> float:
        return float(np.radians(self.slope_angle))

    @property
    def phi_rad(self) -> float:
        return float(np.radians(self.friction_angle))

    @property
    def tan_phi(self) -> float:
        return float(np.tan(self.phi_rad))

    @property
    def run(self) -> float:
        """Horizontal run L = H / tan β of the slope face (m)."""
        return float(self.height / np.tan(self.beta_rad))

    @property
    def seismic(self) -> bool:
        return self.kh > 0


class SlopeProfile:
    """Ground surface of a :class:`SlopeInput` in the local frame.

    The surface is stored as the two face vertices; :func:`numpy.interp`
    clamps outside them, which gives the horizontal toe and crest
    grounds for free.

    Example::

        profile = SlopeProfile(SlopeInput(
            height=10, slope_angle=30, gamma=18, cohesion=25,
            friction_angle=25,
        ))
        profile.surface_elevation(5.0)   # on the face
        profile.surface_elevation(-3.0)  # 0.0, toe ground
    """

    def __init__(self, slope: SlopeInput) -> None:
        self.slope = slope
        self.height = slope.height
        self.run = slope.run
        self.surface = np.array([(0.0, 0.0), (self.run, self.height)], dtype=float)

    # ------------------------------------------------------------------
    # Interpolation helpers
    # ------------------------------------------------------------------

    def surface_elevation(self, x: float | np.ndarray) -> float | np.ndarray:
        """Ground elevation at *x* (scalar or array)."""
        y = np.interp(x, self.surface[:, 0], self.surface[:, 1])
        if np.ndim(y) == 0:
            return float(y)
        return y

    def distance_to_ground(self, x: float, y: float) -> float:
        """Shortest distance from *(x, y)* to the ground surface."""
        L, H = self.run, self.height

        # Toe ground: the ray y = 0, x <= 0.
        d_toe = abs(y) if x <= 0 else float(np.hypot(x, y))
        # Crest ground: the ray y = H, x >= L.
        d_crest = abs(y - H) if x >= L else float(np.hypot(x - L, y - H))
        # Face segment from (0, 0) to (L, H).
        t = (x * L + y * H) / (L * L + H * H)
        t = min(max(t, 0.0), 1.0)
        d_face = float(np.hypot(x - t * L, y - t * H))

        return min(d_toe, d_crest, d_face)

    @property
    def toe(self) -> tuple[float, float]:
        return (0.0, 0.0)

    @property
    def crest(self) -> tuple[float, float]:
        return (self.run, self.height)
