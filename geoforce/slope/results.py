"""Result packaging for slope stability analyses.

A :class:`SlopeResult` bundles the factor of safety of the governing
circle, its stability classification and per-slice diagnostics.
:meth:`SlopeResult.to_dict` produces the plain nested record consumed by
the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from geoforce.slope.lem import EquilibriumSolution
from geoforce.slope.slices import Slice

# Thresholds on FS.
UNSTABLE_BELOW = 1.0
STABLE_STATIC = 1.5
STABLE_SEISMIC = 1.1

STATUS_LABELS = {
    "stable": "Stable",
    "marginal": "Marginal",
    "unstable": "Unstable",
}

METHOD_NAMES = {
    "bishop": "Bishop Simplified",
    "janbu": "Janbu Simplified",
    "fellenius": "Fellenius (Ordinary)",
}


def classify_stability(fs: float, seismic: bool = False) -> str:
    """Stability status for *fs*.

    ``"unstable"`` below 1.0, ``"stable"`` at or above 1.5 (1.1 under
    seismic loading), ``"marginal"`` in between.
    """
    if fs < UNSTABLE_BELOW:
        return "unstable"
    if fs >= (STABLE_SEISMIC if seismic else STABLE_STATIC):
        return "stable"
    return "marginal"


@dataclass(frozen=True)
class SliceDiagnostic:
    """Per-slice output record."""

    index: int
    x: float
    width: float
    weight: float
    base_angle: float
    base_length: float

    @classmethod
    def from_slice(cls, s: Slice) -> SliceDiagnostic:
        return cls(
            index=s.index,
            x=s.x,
            width=s.width,
            weight=s.weight,
            base_angle=s.base_angle,
            base_length=s.base_length,
        )

    def to_dict(self, digits: int = 2) -> dict[str, float]:
        return {
            "index": self.index,
            "x": round(self.x, digits),
            "width": round(self.width, digits),
            "weight": round(self.weight, digits),
            "baseAngle": round(self.base_angle, digits),
            "baseLength": round(self.base_length, digits),
        }


@dataclass(frozen=True)
class SlopeResult:
    """Outcome of one method invocation.

    Attributes:
        method: Method key (``"bishop"``, ``"janbu"``, ``"fellenius"``).
        fs: Factor of safety, unrounded.
        status: ``"unstable"``, ``"marginal"`` or ``"stable"``.
        critical_center: Centre (x, y) of the governing circle.
        critical_radius: Radius of the governing circle.
        slices: Diagnostics of the governing circle's slices.
        converged: ``False`` when the iteration cap was reached.
        iterations: Fixed-point iterations of the governing solve.
        seismic: Whether kₕ > 0 (selects the stable threshold).
        exhausted: The search budget ran out; ``fs`` is the best value
            found before it did.
    """

    method: str
    fs: float
    status: str
    critical_center: tuple[float, float]
    critical_radius: float
    slices: tuple[SliceDiagnostic, ...]
    converged: bool = True
    iterations: int = 0
    seismic: bool = False
    exhausted: bool = False

    @property
    def method_name(self) -> str:
        return METHOD_NAMES.get(self.method, self.method)

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    def to_dict(self) -> dict[str, Any]:
        """Response record with display rounding (FS to 3 decimals,
        geometry to 2)."""
        return {
            "method": self.method_name,
            "FS": round(self.fs, 3),
            "status": self.status,
            "statusLabel": self.status_label,
            "converged": self.converged,
            "exhausted": self.exhausted,
            "criticalCenter": {
                "x": round(self.critical_center[0], 2),
                "y": round(self.critical_center[1], 2),
            },
            "criticalRadius": round(self.critical_radius, 2),
            "slices": [s.to_dict() for s in self.slices],
        }


def build_result(
    method: str,
    solution: EquilibriumSolution,
    circle: Any,
    slices: Sequence[Slice],
    seismic: bool = False,
    exhausted: bool = False,
) -> SlopeResult:
    """Assemble a :class:`SlopeResult` for the governing circle."""
    return SlopeResult(
        method=method,
        fs=solution.fs,
        status=classify_stability(solution.fs, seismic),
        critical_center=(float(circle.xc), float(circle.yc)),
        critical_radius=float(circle.radius),
        slices=tuple(SliceDiagnostic.from_slice(s) for s in slices),
        converged=solution.converged,
        iterations=solution.iterations,
        seismic=seismic,
        exhausted=exhausted,
    )
