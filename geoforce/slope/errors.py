"""Exceptions raised by the slope stability engine.

Input problems are raised as :class:`ValueError` subclasses so callers
that already guard trial evaluations with ``except ValueError`` keep
working.  Soft conditions (non-convergence, exhausted search budget) are
never raised; they are reported as flags on the returned results.
"""

from __future__ import annotations


class SlopeStabilityError(Exception):
    """Base class for every error raised by :mod:`geoforce.slope`."""


class InvalidInputError(SlopeStabilityError, ValueError):
    """A slope input is outside its physically meaningful range."""


class InvalidGeometryError(SlopeStabilityError, ValueError):
    """A trial circle cannot be discretised into at least three slices."""


class SurfaceRejectedError(SlopeStabilityError, ValueError):
    """Equilibrium is undefined on a surface (degenerate driving force,
    vanishing ``m_alpha`` or a non-positive factor of safety)."""


class NoCriticalSurfaceError(SlopeStabilityError):
    """The critical surface search found no valid circle."""

    def __init__(self, method: str, evaluated: int, rejected: int) -> None:
        self.method = method
        self.evaluated = evaluated
        self.rejected = rejected
        super().__init__(
            f"No stable surface found for method {method!r}: "
            f"{rejected} of {evaluated} candidate circles were rejected."
        )
