"""Function-call contract of the slope stability engine.

The presentation layer calls :func:`bishop`, :func:`janbu`,
:func:`fellenius` or :func:`analyze_all` with a request mapping and
gets back :class:`~geoforce.slope.results.SlopeResult` objects (use
``result.to_dict()`` for the plain response record).

Example::

    from geoforce.slope import bishop

    result = bishop({
        "height": 10, "slopeAngle": 30, "gamma": 18,
        "cohesion": 25, "frictionAngle": 25,
    })
    result.fs, result.status, result.to_dict()["criticalCenter"]
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from geoforce.slope.errors import NoCriticalSurfaceError
from geoforce.slope.lem import SolverSettings, get_solver
from geoforce.slope.profile import SlopeInput, SlopeProfile
from geoforce.slope.results import SlopeResult, build_result
from geoforce.slope.search import SearchConfig, grid_search
from geoforce.slope.slices import generate_slices
from geoforce.slope.surfaces import TrialCircle

logger = logging.getLogger(__name__)

Request = Union[SlopeInput, Mapping[str, Any]]


def _to_input(request: Request) -> SlopeInput:
    if isinstance(request, SlopeInput):
        return request
    return SlopeInput.from_request(request)


def analyze_circle(
    request: Request,
    circle: Any,
    method: str = "bishop",
    settings: SolverSettings | None = None,
) -> SlopeResult:
    """Factor of safety of one fixed circle.

    Args:
        request: Slope input or request mapping.
        circle: :class:`TrialCircle`, ``{"center": {"x", "y"},
            "radius"}`` or ``(xc, yc, R)``.
        method: ``"bishop"``, ``"janbu"`` or ``"fellenius"``.
        settings: Solver iteration controls.

    Raises:
        InvalidInputError: Invalid slope input or circle.
        InvalidGeometryError: The circle yields fewer than three slices.
        SurfaceRejectedError: Equilibrium is undefined on the circle.
    """
    slope = _to_input(request)
    solver = get_solver(method)
    circle = TrialCircle.from_request(circle)
    profile = SlopeProfile(slope)

    slices = generate_slices(profile, circle)
    solution = solver(profile, circle, slices, settings)
    return build_result(method, solution, circle, slices, slope.seismic)


def analyze(
    request: Request,
    method: str = "bishop",
    circle: Any = None,
    config: SearchConfig | None = None,
    settings: SolverSettings | None = None,
) -> SlopeResult:
    """Analyse a slope with one method.

    With *circle* the given surface is evaluated; without it the
    critical surface is searched for.

    Raises:
        InvalidInputError: Invalid input.
        InvalidGeometryError: The fixed circle cannot be discretised.
        NoCriticalSurfaceError: The search found no valid circle.
    """
    if circle is not None:
        return analyze_circle(request, circle, method, settings)

    slope = _to_input(request)
    search = grid_search(slope, method, config, settings)
    if not search.found:
        raise NoCriticalSurfaceError(method, search.evaluated, search.rejected)

    best = search.best
    if search.exhausted:
        logger.warning(
            "%s search budget exhausted after %d evaluations; "
            "reporting best circle found so far", method, search.evaluated,
        )
    return build_result(
        method, best.solution, best.circle, best.slices, slope.seismic,
        exhausted=search.exhausted,
    )


def bishop(request: Request, config: SearchConfig | None = None) -> SlopeResult:
    """Critical surface by Bishop simplified."""
    return analyze(request, "bishop", config=config)


def janbu(request: Request, config: SearchConfig | None = None) -> SlopeResult:
    """Critical surface by Janbu simplified."""
    return analyze(request, "janbu", config=config)


def fellenius(request: Request, config: SearchConfig | None = None) -> SlopeResult:
    """Critical surface by the ordinary method of slices."""
    return analyze(request, "fellenius", config=config)


def analyze_all(request: Request, config: SearchConfig | None = None) -> list[SlopeResult]:
    """Bishop, Janbu and Fellenius results for the same slope."""
    slope = _to_input(request)
    return [analyze(slope, method, config=config) for method in ("bishop", "janbu", "fellenius")]
