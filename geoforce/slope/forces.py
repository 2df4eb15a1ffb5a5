"""Per-slice force terms.

Every quantity here depends on one slice only, so slices can be
evaluated independently.  :func:`evaluate_forces` gathers them into
column arrays for the vectorised solvers in :mod:`geoforce.slope.lem`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from geoforce.slope.slices import Slice
    from geoforce.slope.surfaces import TrialCircle


def slice_weight(gamma: float, height: float, width: float) -> float:
    """W = γ h b (kN/m)."""
    return gamma * height * width


def base_length(width: float, alpha: float) -> float:
    """ℓ = b / cos α."""
    return width / max(float(np.cos(alpha)), 1e-10)


def pore_pressure(ru: float, gamma: float, height: float) -> float:
    """u = rᵤ γ h at the slice base (kPa)."""
    return ru * gamma * height


@dataclass(frozen=True)
class SliceForces:
    """Column view of a slice sequence.

    Attributes:
        width: b (m).
        weight: W (kN/m).
        alpha: α (rad).
        sin_a, cos_a, tan_a: Trigonometric functions of α.
        base_length: ℓ (m).
        pore_pressure: u (kPa).
        seismic_arm: Height d of the circle centre above each slice
            centroid, the lever arm of the horizontal force kₕ W.
        radius: Circle radius R.
    """

    width: np.ndarray
    weight: np.ndarray
    alpha: np.ndarray
    sin_a: np.ndarray
    cos_a: np.ndarray
    tan_a: np.ndarray
    base_length: np.ndarray
    pore_pressure: np.ndarray
    seismic_arm: np.ndarray
    radius: float

    @property
    def driving(self) -> np.ndarray:
        """W sin α per slice."""
        return self.weight * self.sin_a

    @property
    def normal(self) -> np.ndarray:
        """W cos α per slice."""
        return self.weight * self.cos_a

    def seismic_driving(self, kh: float) -> np.ndarray:
        """kₕ W d / R per slice (moment of the horizontal force over R)."""
        return kh * self.weight * self.seismic_arm / self.radius


def evaluate_forces(slices: Sequence[Slice], circle: TrialCircle) -> SliceForces:
    """Collect the force terms of *slices* on *circle*."""
    width = np.array([s.width for s in slices])
    weight = np.array([s.weight for s in slices])
    alpha = np.array([s.alpha for s in slices])
    y_mid = np.array([0.5 * (s.y_base + s.y_top) for s in slices])
    return SliceForces(
        width=width,
        weight=weight,
        alpha=alpha,
        sin_a=np.sin(alpha),
        cos_a=np.cos(alpha),
        tan_a=np.tan(alpha),
        base_length=np.array([s.base_length for s in slices]),
        pore_pressure=np.array([s.pore_pressure for s in slices]),
        seismic_arm=circle.yc - y_mid,
        radius=circle.radius,
    )
