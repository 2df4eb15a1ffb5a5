"""Limit Equilibrium Methods — method of slices.

Implements three formulations for the factor of safety (FOS) of a
circular slip surface:

fellenius_ordinary
    Ordinary method of slices.  Ignores interslice forces; closed form.

bishop_simplified
    Moment equilibrium with horizontal interslice forces.  Implicit in
    FOS, solved by fixed-point iteration started from Fellenius.

janbu_simplified
    Horizontal force equilibrium.  Same iteration as Bishop, followed
    by the empirical correction factor f₀.

Seismic loading is pseudo-static: a horizontal force kₕ W at each slice
centroid adds kₕ W d / R to the driving term (kₕ W for Janbu's force
balance).

References
----------
- Fellenius (1927), *Erdstatische Berechnungen*, Ernst & Sohn.
- Bishop (1955), The use of the slip circle in the stability analysis
  of slopes, *Géotechnique* 5(1).
- Janbu (1954), Application of composite slip surfaces for stability
  analysis.
- Duncan, Wright & Brandon (2014), *Soil Strength and Slope Stability*,
  2nd ed., Wiley.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import numpy as np

from geoforce.slope.errors import InvalidInputError, SurfaceRejectedError
from geoforce.slope.forces import SliceForces, evaluate_forces
from geoforce.slope.slices import Slice, generate_slices

logger = logging.getLogger(__name__)

# Relative size below which the driving term counts as zero.
_DRIVING_EPS = 1e-9


@dataclass(frozen=True)
class SolverSettings:
    """Iteration controls shared by the implicit methods.

    Attributes:
        tolerance: Convergence tolerance on |FSₙ − FSₙ₋₁|.
        max_iterations: Iteration cap; reaching it is reported, not
            raised.
        min_m_alpha: Smallest admissible m_α at the converged FS
            (Whitman & Bailey).  Surfaces below it are rejected.
    """

    tolerance: float = 1e-4
    max_iterations: int = 100
    min_m_alpha: float = 0.2

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise InvalidInputError(f"tolerance must be > 0, got {self.tolerance}")
        if self.max_iterations < 1:
            raise InvalidInputError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )


DEFAULT_SETTINGS = SolverSettings()


@dataclass(frozen=True)
class EquilibriumSolution:
    """Factor of safety of one surface.

    Attributes:
        fs: Factor of safety (Janbu: after the f₀ correction).
        converged: ``False`` when the iteration cap was hit first.
        iterations: Fixed-point iterations performed (0 for Fellenius).
        correction: Janbu f₀; 1.0 for the other methods.
    """

    fs: float
    converged: bool = True
    iterations: int = 0
    correction: float = 1.0

    @property
    def uncorrected_fs(self) -> float:
        return self.fs / self.correction


def iterate_fixed_point(
    update: Callable[[float], float],
    fs0: float,
    tolerance: float = 1e-4,
    max_iterations: int = 100,
) -> tuple[float, bool, int]:
    """Solve ``FS = update(FS)`` by Picard iteration.

    Args:
        update: Maps the current estimate to the next one.
        fs0: Initial estimate.
        tolerance: Stop when |FSₙ − FSₙ₋₁| < *tolerance*.
        max_iterations: Hard cap on the number of updates.

    Returns:
        ``(fs, converged, iterations)``.  On non-convergence *fs* is the
        last estimate.
    """
    fs = fs0
    for iteration in range(1, max_iterations + 1):
        fs_new = update(fs)
        if abs(fs_new - fs) < tolerance:
            return fs_new, True, iteration
        fs = fs_new
    return fs, False, max_iterations


# ======================================================================
# Shared helpers
# ======================================================================


def _prepare(
    profile: Any,
    circle: Any,
    slices: Sequence[Slice] | None,
) -> tuple[Sequence[Slice], SliceForces]:
    if slices is None:
        slices = generate_slices(profile, circle)
    return slices, evaluate_forces(slices, circle)


def _check_driving(static: float, total: float, weight: float) -> None:
    if static <= _DRIVING_EPS * weight or total <= _DRIVING_EPS * weight:
        raise SurfaceRejectedError(
            f"Driving force is zero or reversed (sum = {static:.6g}); "
            "the factor of safety is undefined."
        )


def _check_fs(fs: float) -> float:
    if not np.isfinite(fs) or fs <= 0:
        raise SurfaceRejectedError(f"Non-positive or non-finite factor of safety: {fs!r}")
    return float(fs)


def _m_alpha(f: SliceForces, tan_phi: float, fs: float) -> np.ndarray:
    """m_α = cos α + sin α tan φ / FS = cos α (1 + tan α tan φ / FS)."""
    m = f.cos_a + f.sin_a * tan_phi / fs
    if np.any(m <= 0):
        raise SurfaceRejectedError(
            f"m_alpha vanishes on the surface (min = {m.min():.4g} at FS = {fs:.4g})."
        )
    return m


def _check_m_alpha(m: np.ndarray, settings: SolverSettings) -> None:
    if m.min() < settings.min_m_alpha:
        raise SurfaceRejectedError(
            f"m_alpha = {m.min():.4g} below {settings.min_m_alpha} at the solution."
        )


def _log_unconverged(method: str, fs: float, settings: SolverSettings) -> None:
    logger.warning(
        "%s did not converge within %d iterations (tolerance %g); "
        "returning last estimate FS=%.4f",
        method, settings.max_iterations, settings.tolerance, fs,
    )


# ======================================================================
# Fellenius
# ======================================================================


def fellenius_ordinary(
    profile: Any,
    circle: Any,
    slices: Sequence[Slice] | None = None,
    settings: SolverSettings | None = None,
) -> EquilibriumSolution:
    """Ordinary Method of Slices (Fellenius).

    FOS = Σ [c ℓ + (W cos α − u ℓ) tan φ] / Σ [W sin α + kₕ W d / R]

    The effective normal force W cos α − u ℓ is floored at zero.

    Args:
        profile: Slope profile.
        circle: Trial circle.
        slices: Pre-computed slices of *circle*; generated if omitted.
        settings: Unused; accepted for a uniform solver signature.

    Returns:
        :class:`EquilibriumSolution` (always converged).

    Raises:
        SurfaceRejectedError: If the driving term vanishes.
    """
    slope = profile.slope
    slices, f = _prepare(profile, circle, slices)

    static = float(f.driving.sum())
    driving = static + float(f.seismic_driving(slope.kh).sum())
    _check_driving(static, driving, float(f.weight.sum()))

    n_eff = np.maximum(f.normal - f.pore_pressure * f.base_length, 0.0)
    resisting = slope.cohesion * f.base_length + n_eff * slope.tan_phi
    return EquilibriumSolution(fs=_check_fs(resisting.sum() / driving))


# ======================================================================
# Bishop Simplified
# ======================================================================


def bishop_simplified(
    profile: Any,
    circle: Any,
    slices: Sequence[Slice] | None = None,
    settings: SolverSettings | None = None,
) -> EquilibriumSolution:
    """Bishop Simplified method for circular slip surfaces.

    FOS = Σ [(c b + (W − u b) tan φ) / m_α] / Σ [W sin α + kₕ W d / R]

    where m_α = cos α + sin α tan φ / FOS.  Iterated from the
    Fellenius value.  With φ = 0, m_α = cos α and the result equals
    the Fellenius value.

    Args:
        profile: Slope profile.
        circle: Trial circle.
        slices: Pre-computed slices of *circle*; generated if omitted.
        settings: Iteration controls.

    Returns:
        :class:`EquilibriumSolution`.  ``converged`` is ``False`` when
        the iteration cap was reached.

    Raises:
        SurfaceRejectedError: Degenerate driving term, vanishing m_α or
            a non-positive FOS.
    """
    settings = settings or DEFAULT_SETTINGS
    slope = profile.slope
    slices, f = _prepare(profile, circle, slices)
    tan_phi = slope.tan_phi

    static = float(f.driving.sum())
    driving = static + float(f.seismic_driving(slope.kh).sum())
    _check_driving(static, driving, float(f.weight.sum()))

    base = slope.cohesion * f.width + (f.weight - f.pore_pressure * f.width) * tan_phi

    def update(fs: float) -> float:
        return _check_fs((base / _m_alpha(f, tan_phi, fs)).sum() / driving)

    fs0 = fellenius_ordinary(profile, circle, slices).fs
    fs, converged, iterations = iterate_fixed_point(
        update, fs0, settings.tolerance, settings.max_iterations,
    )
    _check_m_alpha(_m_alpha(f, tan_phi, fs), settings)
    if not converged:
        _log_unconverged("Bishop", fs, settings)
    return EquilibriumSolution(fs=fs, converged=converged, iterations=iterations)


# ======================================================================
# Janbu Simplified
# ======================================================================


def janbu_correction(profile: Any, circle: Any, slices: Sequence[Slice]) -> float:
    """Janbu correction factor f₀ = 1 + k (d/L − 1.4 (d/L)²).

    d is the maximum sag of the surface below its entry-exit chord and L
    the chord length.  k = 0.69 for purely cohesive soil (φ = 0), 0.31
    for purely frictional soil (c = 0) and 0.50 otherwise.
    """
    slope = profile.slope
    if slope.friction_angle == 0:
        k = 0.69
    elif slope.cohesion == 0:
        k = 0.31
    else:
        k = 0.50

    chord, sag = circle.chord_sag(slices[0].x_left, slices[-1].x_right)
    if chord <= 0:
        return 1.0
    d_over_l = sag / chord
    return 1.0 + k * (d_over_l - 1.4 * d_over_l ** 2)


def janbu_simplified(
    profile: Any,
    circle: Any,
    slices: Sequence[Slice] | None = None,
    settings: SolverSettings | None = None,
) -> EquilibriumSolution:
    """Janbu Simplified method — horizontal force equilibrium.

    F₀ = Σ [(c b + (W − u b) tan φ) / (cos α m_α)] / Σ [W tan α + kₕ W]

    with m_α = cos α (1 + tan α tan φ / F).  The corrected value is
    FOS = f₀ F₀ (see :func:`janbu_correction`).

    Args:
        profile: Slope profile.
        circle: Trial circle.
        slices: Pre-computed slices of *circle*; generated if omitted.
        settings: Iteration controls.

    Returns:
        :class:`EquilibriumSolution` with ``correction`` = f₀.

    Raises:
        SurfaceRejectedError: Degenerate driving term, vanishing m_α or
            a non-positive FOS.
    """
    settings = settings or DEFAULT_SETTINGS
    slope = profile.slope
    slices, f = _prepare(profile, circle, slices)
    tan_phi = slope.tan_phi

    static = float((f.weight * f.tan_a).sum())
    driving = static + slope.kh * float(f.weight.sum())
    _check_driving(static, driving, float(f.weight.sum()))

    base = slope.cohesion * f.width + (f.weight - f.pore_pressure * f.width) * tan_phi

    def update(fs: float) -> float:
        n_alpha = f.cos_a * _m_alpha(f, tan_phi, fs)
        return _check_fs((base / n_alpha).sum() / driving)

    fs0 = fellenius_ordinary(profile, circle, slices).fs
    fs, converged, iterations = iterate_fixed_point(
        update, fs0, settings.tolerance, settings.max_iterations,
    )
    _check_m_alpha(_m_alpha(f, tan_phi, fs), settings)
    if not converged:
        _log_unconverged("Janbu", fs, settings)

    f0 = janbu_correction(profile, circle, slices)
    return EquilibriumSolution(
        fs=_check_fs(fs * f0),
        converged=converged,
        iterations=iterations,
        correction=f0,
    )


# ======================================================================
# Registry
# ======================================================================


SOLVERS: dict[str, Callable[..., EquilibriumSolution]] = {
    "bishop": bishop_simplified,
    "janbu": janbu_simplified,
    "fellenius": fellenius_ordinary,
}


def get_solver(method: str) -> Callable[..., EquilibriumSolution]:
    """Return the solver registered under *method*."""
    try:
        return SOLVERS[method]
    except KeyError:
        raise InvalidInputError(
            f"Unknown method {method!r}. Choose from {list(SOLVERS)}"
        ) from None
