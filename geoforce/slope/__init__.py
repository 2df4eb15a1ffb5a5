"""Slope stability analysis.

Limit Equilibrium Methods (LEM) for the factor of safety of a simple
slope (toe flat, planar face, crest flat) on circular slip surfaces.

LEM — Method of Slices
~~~~~~~~~~~~~~~~~~~~~~
Divide the soil mass above a trial circle into vertical slices and
apply equilibrium equations.

Methods:
    - :func:`fellenius_ordinary` — ordinary method of slices, closed form
    - :func:`bishop_simplified` — moment equilibrium, iterative
    - :func:`janbu_simplified` — force equilibrium, iterative, with f₀

Critical surface search
~~~~~~~~~~~~~~~~~~~~~~~
:func:`grid_search` scans a grid of circles scaled to the slope and
polishes the best one; :func:`optimize_surface` uses differential
evolution instead.

Example::

    from geoforce.slope import (
        SlopeInput, SlopeProfile, TrialCircle, bishop_simplified,
        grid_search,
    )

    slope = SlopeInput(
        height=10, slope_angle=30, gamma=18, cohesion=25,
        friction_angle=25,
    )
    profile = SlopeProfile(slope)

    # Single surface
    circle = TrialCircle(xc=8, yc=18, radius=19)
    solution = bishop_simplified(profile, circle)

    # Critical surface search
    result = grid_search(profile, method="bishop")
    print(result.fs, result.circle)
"""

from geoforce.slope.errors import (
    SlopeStabilityError,
    InvalidInputError,
    InvalidGeometryError,
    SurfaceRejectedError,
    NoCriticalSurfaceError,
)
from geoforce.slope.profile import SlopeInput, SlopeProfile
from geoforce.slope.surfaces import TrialCircle
from geoforce.slope.slices import Slice, generate_slices
from geoforce.slope.forces import SliceForces, evaluate_forces
from geoforce.slope.lem import (
    SolverSettings,
    EquilibriumSolution,
    iterate_fixed_point,
    fellenius_ordinary,
    bishop_simplified,
    janbu_simplified,
    janbu_correction,
)
from geoforce.slope.search import (
    SearchConfig,
    SearchResult,
    CandidateGrid,
    evaluate_circle,
    grid_search,
    optimize_surface,
)
from geoforce.slope.results import SlopeResult, SliceDiagnostic, classify_stability
from geoforce.slope.engine import (
    analyze,
    analyze_circle,
    analyze_all,
    bishop,
    janbu,
    fellenius,
)

__all__ = [
    "SlopeStabilityError",
    "InvalidInputError",
    "InvalidGeometryError",
    "SurfaceRejectedError",
    "NoCriticalSurfaceError",
    "SlopeInput",
    "SlopeProfile",
    "TrialCircle",
    "Slice",
    "generate_slices",
    "SliceForces",
    "evaluate_forces",
    "SolverSettings",
    "EquilibriumSolution",
    "iterate_fixed_point",
    "fellenius_ordinary",
    "bishop_simplified",
    "janbu_simplified",
    "janbu_correction",
    "SearchConfig",
    "SearchResult",
    "CandidateGrid",
    "evaluate_circle",
    "grid_search",
    "optimize_surface",
    "SlopeResult",
    "SliceDiagnostic",
    "classify_stability",
    "analyze",
    "analyze_circle",
    "analyze_all",
    "bishop",
    "janbu",
    "fellenius",
]
