"""Critical slip surface search algorithms.

Provides a budgeted grid search (optionally polished by a Nelder-Mead
local descent) and a differential-evolution search for the circular
slip surface with the lowest FOS.

The grid is a lazy, restartable sequence of candidate circles
(:class:`CandidateGrid`); the search is a reduction over the
evaluations of those candidates.  Candidate evaluations are pure and
independent, so they may be mapped over a process pool.
"""

from __future__ import annotations

import functools
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, Sequence

import numpy as np
from scipy.optimize import differential_evolution, minimize

from geoforce.slope.errors import InvalidInputError
from geoforce.slope.lem import DEFAULT_SETTINGS, EquilibriumSolution, SolverSettings, get_solver
from geoforce.slope.profile import SlopeInput, SlopeProfile
from geoforce.slope.slices import Slice, generate_slices
from geoforce.slope.surfaces import TrialCircle

logger = logging.getLogger(__name__)

# Objective value of rejected circles in the continuous optimisers.
_PENALTY = 1e6

# Iteration cap multiplier when re-solving an unconverged winner.
_RESOLVE_FACTOR = 10


@dataclass(frozen=True)
class SearchConfig:
    """Grid and budget settings of the critical surface search.

    Centre coordinates and radii scale with the slope: H is the height
    and L the horizontal run of the face.

    Attributes:
        n_xc, n_yc, n_r: Grid points per parameter.
        xc_min_ratio: Leftmost centre x, as a multiple of H.
        xc_max_ratio: Rightmost centre x, as a multiple of L.
        yc_min_ratio, yc_max_ratio: Centre y range, as multiples of H.
        shallow_ratio: Smallest radius is the centre's distance to the
            ground plus ``shallow_ratio * H``.
        depth_ratio: Largest radius reaches ``depth_ratio * H`` below
            the toe.
        tie_tolerance: FS differences within this count as ties; ties
            go to the smaller radius.
        refine: Polish the best grid circle with Nelder-Mead.
        refine_max_evaluations: Evaluation cap of the polish.
        max_evaluations: Total circle evaluations allowed (``None`` for
            no cap).
        deadline: Wall-clock budget in seconds (``None`` for none).
        workers: Processes used for the grid evaluations; ``None`` or 1
            evaluates in the calling thread.
    """

    n_xc: int = 12
    n_yc: int = 10
    n_r: int = 10
    xc_min_ratio: float = -0.2
    xc_max_ratio: float = 1.2
    yc_min_ratio: float = 0.75
    yc_max_ratio: float = 2.5
    shallow_ratio: float = 0.05
    depth_ratio: float = 1.0
    tie_tolerance: float = 1e-6
    refine: bool = True
    refine_max_evaluations: int = 300
    max_evaluations: int | None = None
    deadline: float | None = None
    workers: int | None = None

    def __post_init__(self) -> None:
        for name in ("n_xc", "n_yc", "n_r"):
            if getattr(self, name) < 1:
                raise InvalidInputError(f"{name} must be >= 1")
        if self.yc_max_ratio < self.yc_min_ratio:
            raise InvalidInputError("yc_max_ratio must be >= yc_min_ratio")
        if self.depth_ratio < 0:
            raise InvalidInputError("depth_ratio must be >= 0")
        if self.max_evaluations is not None and self.max_evaluations < 1:
            raise InvalidInputError("max_evaluations must be >= 1")
        if self.deadline is not None and self.deadline <= 0:
            raise InvalidInputError("deadline must be > 0 seconds")


@dataclass(frozen=True)
class CircleEvaluation:
    """A circle that produced a valid factor of safety."""

    circle: TrialCircle
    solution: EquilibriumSolution
    slices: tuple[Slice, ...]

    @property
    def fs(self) -> float:
        return self.solution.fs


@dataclass
class SearchResult:
    """Result of a critical surface search.

    Attributes:
        method: LEM method key.
        best: Evaluation of the critical circle, ``None`` if no valid
            circle was found.
        evaluated: Circles evaluated (grid and refinement).
        rejected: Evaluated circles that were geometrically invalid or
            had undefined equilibrium.
        exhausted: The evaluation budget or deadline ran out; ``best``
            is the best found so far.
        refined: The local descent improved on the best grid circle.
    """

    method: str
    best: CircleEvaluation | None
    evaluated: int = 0
    rejected: int = 0
    exhausted: bool = False
    refined: bool = False

    @property
    def found(self) -> bool:
        return self.best is not None

    @property
    def fs(self) -> float:
        return self.best.fs if self.best is not None else float("inf")

    @property
    def circle(self) -> TrialCircle | None:
        return self.best.circle if self.best is not None else None


class CandidateGrid:
    """Finite, restartable sequence of candidate circles.

    Centres span ``xc ∈ [xc_min_ratio·H, xc_max_ratio·L]`` and
    ``yc ∈ [yc_min_ratio·H, yc_max_ratio·H]``.  For each centre, radii
    run from just beyond the centre's distance to the ground (a shallow
    circle) to the radius tangent to ``y = −depth_ratio·H``.  Centres
    for which that range is empty yield no circle.
    """

    def __init__(self, profile: SlopeProfile, config: SearchConfig | None = None) -> None:
        self.profile = profile
        self.config = config or SearchConfig()

    @property
    def xc_values(self) -> np.ndarray:
        H, L = self.profile.height, self.profile.run
        cfg = self.config
        return np.linspace(cfg.xc_min_ratio * H, cfg.xc_max_ratio * L, cfg.n_xc)

    @property
    def yc_values(self) -> np.ndarray:
        H = self.profile.height
        cfg = self.config
        return np.linspace(cfg.yc_min_ratio * H, cfg.yc_max_ratio * H, cfg.n_yc)

    def radius_range(self, xc: float, yc: float) -> tuple[float, float]:
        H = self.profile.height
        r_lo = self.profile.distance_to_ground(xc, yc) + self.config.shallow_ratio * H
        r_hi = yc + self.config.depth_ratio * H
        return r_lo, r_hi

    def radii(self, xc: float, yc: float) -> np.ndarray:
        r_lo, r_hi = self.radius_range(xc, yc)
        if r_hi <= r_lo:
            return np.empty(0)
        return np.linspace(r_lo, r_hi, self.config.n_r)

    def bounds(self) -> tuple[tuple[float, float], tuple[float, float], tuple[float, float]]:
        """Box ``((xc_lo, xc_hi), (yc_lo, yc_hi), (r_lo, r_hi))`` enclosing
        every candidate."""
        xs, ys = self.xc_values, self.yc_values
        r_lo = self.config.shallow_ratio * self.profile.height
        r_hi = float(ys.max()) + self.config.depth_ratio * self.profile.height
        return (
            (float(xs.min()), float(xs.max())),
            (float(ys.min()), float(ys.max())),
            (max(r_lo, 1e-6), r_hi),
        )

    def __iter__(self) -> Iterator[TrialCircle]:
        for xc in self.xc_values:
            for yc in self.yc_values:
                for r in self.radii(xc, yc):
                    yield TrialCircle(xc=float(xc), yc=float(yc), radius=float(r))


def _as_profile(slope: SlopeInput | SlopeProfile) -> SlopeProfile:
    if isinstance(slope, SlopeProfile):
        return slope
    return SlopeProfile(slope)


def evaluate_circle(
    profile: SlopeProfile,
    circle: TrialCircle,
    method: str = "bishop",
    settings: SolverSettings | None = None,
) -> CircleEvaluation | None:
    """Slice and solve one circle.

    Returns ``None`` when the circle is geometrically invalid or its
    equilibrium is undefined.
    """
    solver = get_solver(method)
    try:
        slices = generate_slices(profile, circle)
        solution = solver(profile, circle, slices, settings)
    except ValueError as exc:
        logger.debug("Rejected circle %s: %s", circle, exc)
        return None
    return CircleEvaluation(circle=circle, solution=solution, slices=slices)


def _is_better(candidate: CircleEvaluation, best: CircleEvaluation | None, tie: float) -> bool:
    if best is None:
        return True
    delta = candidate.fs - best.fs
    if delta < -tie:
        return True
    return abs(delta) <= tie and candidate.circle.radius < best.circle.radius


def reduce_minimum(
    evaluations: Iterable[CircleEvaluation | None],
    tie_tolerance: float = 1e-6,
) -> tuple[CircleEvaluation | None, int, int]:
    """Minimum-FS evaluation of a sequence.

    Returns:
        ``(best, evaluated, rejected)``; ``None`` entries count as
        rejected.
    """
    best = None
    evaluated = rejected = 0
    for ev in evaluations:
        evaluated += 1
        if ev is None:
            rejected += 1
        elif _is_better(ev, best, tie_tolerance):
            best = ev
    return best, evaluated, rejected


def _settle(
    best: CircleEvaluation | None,
    profile: SlopeProfile,
    method: str,
    settings: SolverSettings | None,
) -> CircleEvaluation | None:
    """Re-solve an unconverged winner with a larger iteration cap."""
    if best is None or best.solution.converged:
        return best
    settings = settings or DEFAULT_SETTINGS
    longer = replace(settings, max_iterations=settings.max_iterations * _RESOLVE_FACTOR)
    ev = evaluate_circle(profile, best.circle, method, longer)
    if ev is None:
        return best
    logger.info(
        "Re-solved unconverged %s winner with %d iterations: FS %.4f -> %.4f (converged=%s)",
        method, longer.max_iterations, best.fs, ev.fs, ev.solution.converged,
    )
    return ev


class _Budget:
    """Evaluation count and wall-clock allowance of one search."""

    def __init__(self, max_evaluations: int | None, deadline: float | None) -> None:
        self.max_evaluations = max_evaluations
        self.expires = None if deadline is None else time.monotonic() + deadline
        self.used = 0

    def remaining(self) -> int | None:
        if self.max_evaluations is None:
            return None
        return max(self.max_evaluations - self.used, 0)

    def spent(self) -> bool:
        if self.max_evaluations is not None and self.used >= self.max_evaluations:
            return True
        return self.expires is not None and time.monotonic() >= self.expires


class _BudgetSpent(Exception):
    pass


# ======================================================================
# Grid search
# ======================================================================


def grid_search(
    slope: SlopeInput | SlopeProfile,
    method: str = "bishop",
    config: SearchConfig | None = None,
    settings: SolverSettings | None = None,
) -> SearchResult:
    """Grid search for the critical circular slip surface.

    Evaluates every circle of the :class:`CandidateGrid` (within the
    budget), keeps the lowest FS and, if ``config.refine`` is set,
    polishes it with a Nelder-Mead descent in (xc, yc, R).

    Args:
        slope: Slope input or its profile.
        method: ``"bishop"``, ``"janbu"`` or ``"fellenius"``.
        config: Grid and budget settings.
        settings: Solver iteration controls.

    Returns:
        :class:`SearchResult`.  ``found`` is ``False`` when no candidate
        was valid.
    """
    get_solver(method)
    config = config or SearchConfig()
    profile = _as_profile(slope)
    grid = CandidateGrid(profile, config)
    budget = _Budget(config.max_evaluations, config.deadline)
    evaluate = functools.partial(evaluate_circle, profile, method=method, settings=settings)

    if config.workers is not None and config.workers > 1:
        best, evaluated, rejected, exhausted = _scan_parallel(grid, evaluate, budget, config)
    else:
        best, evaluated, rejected, exhausted = _scan(grid, evaluate, budget, config)

    result = SearchResult(
        method=method,
        best=best,
        evaluated=evaluated,
        rejected=rejected,
        exhausted=exhausted,
    )

    if config.refine and best is not None and not exhausted:
        _refine(result, grid, evaluate, budget, config)
    result.best = _settle(result.best, profile, method, settings)

    if result.found:
        c = result.circle
        logger.info(
            "%s search: FS=%.4f at (%.2f, %.2f) R=%.2f; %d evaluated, %d rejected%s",
            method, result.fs, c.xc, c.yc, c.radius, result.evaluated,
            result.rejected, " (budget exhausted)" if result.exhausted else "",
        )
    else:
        logger.info(
            "%s search found no valid circle (%d evaluated)", method, result.evaluated,
        )
    return result


def _scan(
    grid: CandidateGrid,
    evaluate: Any,
    budget: _Budget,
    config: SearchConfig,
) -> tuple[CircleEvaluation | None, int, int, bool]:
    exhausted = False

    def evaluations() -> Iterator[CircleEvaluation | None]:
        nonlocal exhausted
        for circle in grid:
            if budget.spent():
                exhausted = True
                return
            budget.used += 1
            yield evaluate(circle)

    best, evaluated, rejected = reduce_minimum(evaluations(), config.tie_tolerance)
    return best, evaluated, rejected, exhausted


def _scan_parallel(
    grid: CandidateGrid,
    evaluate: Any,
    budget: _Budget,
    config: SearchConfig,
) -> tuple[CircleEvaluation | None, int, int, bool]:
    circles = list(grid)
    remaining = budget.remaining()
    exhausted = remaining is not None and remaining < len(circles)
    if remaining is not None:
        circles = circles[:remaining]
    chunksize = max(1, len(circles) // (4 * config.workers))

    with ProcessPoolExecutor(max_workers=config.workers) as pool:

        def evaluations() -> Iterator[CircleEvaluation | None]:
            nonlocal exhausted
            for done, ev in enumerate(pool.map(evaluate, circles, chunksize=chunksize), 1):
                budget.used += 1
                yield ev
                if budget.spent() and done < len(circles):
                    exhausted = True
                    pool.shutdown(wait=False, cancel_futures=True)
                    return

        best, evaluated, rejected = reduce_minimum(evaluations(), config.tie_tolerance)
    return best, evaluated, rejected, exhausted


def _refine(
    result: SearchResult,
    grid: CandidateGrid,
    evaluate: Any,
    budget: _Budget,
    config: SearchConfig,
) -> None:
    """Nelder-Mead descent from the best grid circle; updates *result*."""
    start = result.best
    (xlo, xhi), (ylo, yhi), _ = grid.bounds()
    step_x = (xhi - xlo) / max(config.n_xc - 1, 1) / 2 or 0.1 * grid.profile.height
    step_y = (yhi - ylo) / max(config.n_yc - 1, 1) / 2 or 0.1 * grid.profile.height
    step_r = 0.05 * start.circle.radius
    x0 = np.array([start.circle.xc, start.circle.yc, start.circle.radius])
    simplex = np.array([
        x0,
        x0 + [step_x, 0.0, 0.0],
        x0 + [0.0, step_y, 0.0],
        x0 + [0.0, 0.0, step_r],
    ])

    best = start
    counts = {"evaluated": 0, "rejected": 0}

    def objective(params: np.ndarray) -> float:
        nonlocal best
        if budget.spent():
            raise _BudgetSpent
        xc, yc, r = (float(v) for v in params)
        budget.used += 1
        counts["evaluated"] += 1
        ev = evaluate(TrialCircle(xc=xc, yc=yc, radius=r)) if r > 0 else None
        if ev is None:
            counts["rejected"] += 1
            return _PENALTY
        if _is_better(ev, best, config.tie_tolerance):
            best = ev
        return ev.fs

    maxfev = config.refine_max_evaluations
    remaining = budget.remaining()
    if remaining is not None:
        maxfev = min(maxfev, remaining)
    if maxfev > 0:
        try:
            minimize(
                objective,
                x0,
                method="Nelder-Mead",
                options={
                    "initial_simplex": simplex,
                    "maxfev": maxfev,
                    "xatol": 1e-3 * grid.profile.height,
                    "fatol": 1e-5,
                },
            )
        except _BudgetSpent:
            result.exhausted = True
    else:
        result.exhausted = True

    result.evaluated += counts["evaluated"]
    result.rejected += counts["rejected"]
    if best is not start:
        result.best = best
        result.refined = True


# ======================================================================
# Differential evolution
# ======================================================================


def optimize_surface(
    slope: SlopeInput | SlopeProfile,
    method: str = "bishop",
    config: SearchConfig | None = None,
    settings: SolverSettings | None = None,
    bounds: Sequence[tuple[float, float]] | None = None,
    seed: int = 42,
    maxiter: int = 60,
) -> SearchResult:
    """Optimisation-based search for the critical circular surface.

    Uses ``scipy.optimize.differential_evolution`` over the box of the
    candidate grid (or *bounds*).  Rejected circles score a large
    penalty.

    Args:
        slope: Slope input or its profile.
        method: LEM method name.
        config: Grid settings used to derive the default bounds.
        settings: Solver iteration controls.
        bounds: ``((xc_lo, xc_hi), (yc_lo, yc_hi), (R_lo, R_hi))``.
        seed: Random seed; fixed for reproducible results.
        maxiter: Maximum generations.

    Returns:
        :class:`SearchResult`.
    """
    get_solver(method)
    config = config or SearchConfig()
    profile = _as_profile(slope)
    if bounds is None:
        bounds = CandidateGrid(profile, config).bounds()

    counts = {"evaluated": 0, "rejected": 0}

    def objective(params: np.ndarray) -> float:
        xc, yc, r = (float(v) for v in params)
        counts["evaluated"] += 1
        ev = evaluate_circle(profile, TrialCircle(xc=xc, yc=yc, radius=r), method, settings) if r > 0 else None
        if ev is None:
            counts["rejected"] += 1
            return _PENALTY
        return ev.fs

    de = differential_evolution(
        objective,
        bounds=list(bounds),
        seed=seed,
        maxiter=maxiter,
        tol=1e-4,
        polish=False,
    )

    best = None
    if de.fun < _PENALTY:
        xc, yc, r = (float(v) for v in de.x)
        best = evaluate_circle(profile, TrialCircle(xc=xc, yc=yc, radius=r), method, settings)
        best = _settle(best, profile, method, settings)
    return SearchResult(
        method=method,
        best=best,
        evaluated=counts["evaluated"],
        rejected=counts["rejected"],
    )


def iter_evaluations(
    slope: SlopeInput | SlopeProfile,
    method: str = "bishop",
    config: SearchConfig | None = None,
    settings: SolverSettings | None = None,
) -> Iterator[tuple[TrialCircle, CircleEvaluation | None]]:
    """Lazily evaluate every grid candidate, yielding ``(circle, evaluation)``."""
    profile = _as_profile(slope)
    for circle in CandidateGrid(profile, config):
        yield circle, evaluate_circle(profile, circle, method, settings)
