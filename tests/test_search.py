"""Tests for the critical slip surface search.

Tests cover:
- Candidate grid layout and restartability
- Minimum reduction and tie-breaking
- Grid search against exhaustive evaluation of the same candidates
- Evaluation budget and deadline
- Parallel evaluation
- Differential evolution search
"""

import logging

import numpy as np
import pytest

from geoforce.slope.errors import InvalidInputError
from geoforce.slope.lem import EquilibriumSolution, SolverSettings, bishop_simplified
from geoforce.slope.profile import SlopeInput, SlopeProfile
from geoforce.slope.search import (
    CandidateGrid,
    CircleEvaluation,
    SearchConfig,
    evaluate_circle,
    grid_search,
    iter_evaluations,
    optimize_surface,
    reduce_minimum,
)
from geoforce.slope.surfaces import TrialCircle


def _slope(**overrides):
    params = dict(height=10.0, slope_angle=30.0, gamma=18.0, cohesion=25.0,
                  friction_angle=25.0)
    params.update(overrides)
    return SlopeInput(**params)


def _coarse(**overrides):
    """A small grid that keeps the tests fast."""
    params = dict(n_xc=6, n_yc=5, n_r=5, refine=False)
    params.update(overrides)
    return SearchConfig(**params)


def _evaluation(fs, radius):
    return CircleEvaluation(
        circle=TrialCircle(xc=5.0, yc=15.0, radius=radius),
        solution=EquilibriumSolution(fs=fs),
        slices=(),
    )


# ======================================================================
# Candidate grid
# ======================================================================


class TestCandidateGrid:
    def test_centre_ranges(self):
        profile = SlopeProfile(_slope())
        grid = CandidateGrid(profile)
        assert len(grid.xc_values) == 12
        assert len(grid.yc_values) == 10
        assert grid.xc_values[0] == pytest.approx(-2.0)
        assert grid.xc_values[-1] == pytest.approx(1.2 * profile.run)
        assert grid.yc_values[0] == pytest.approx(7.5)
        assert grid.yc_values[-1] == pytest.approx(25.0)

    def test_radii_scaled_to_ground(self):
        profile = SlopeProfile(_slope())
        grid = CandidateGrid(profile)
        xc, yc = 8.0, 18.0
        radii = grid.radii(xc, yc)
        assert len(radii) == 10
        assert radii[0] == pytest.approx(profile.distance_to_ground(xc, yc) + 0.5)
        assert radii[-1] == pytest.approx(yc + 10.0)
        assert np.all(np.diff(radii) > 0)

    def test_empty_radius_range(self):
        grid = CandidateGrid(SlopeProfile(_slope()), SearchConfig(shallow_ratio=100.0))
        assert len(grid.radii(8.0, 18.0)) == 0
        assert list(grid) == []

    def test_restartable(self):
        grid = CandidateGrid(SlopeProfile(_slope()), _coarse())
        first = list(grid)
        second = list(grid)
        assert first == second
        assert 0 < len(first) <= 6 * 5 * 5

    def test_bounds_enclose_candidates(self):
        grid = CandidateGrid(SlopeProfile(_slope()), _coarse())
        (xlo, xhi), (ylo, yhi), (rlo, rhi) = grid.bounds()
        for c in grid:
            assert xlo <= c.xc <= xhi
            assert ylo <= c.yc <= yhi
            assert rlo <= c.radius <= rhi + 1e-9


class TestSearchConfig:
    @pytest.mark.parametrize("kwargs", [
        dict(n_xc=0),
        dict(n_r=0),
        dict(yc_min_ratio=3.0, yc_max_ratio=1.0),
        dict(depth_ratio=-1.0),
        dict(max_evaluations=0),
        dict(deadline=0.0),
    ])
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(InvalidInputError):
            SearchConfig(**kwargs)


# ======================================================================
# Reduction
# ======================================================================


class TestReduceMinimum:
    def test_minimum(self):
        evs = [_evaluation(1.8, 10.0), _evaluation(1.5, 12.0), _evaluation(1.6, 9.0)]
        best, evaluated, rejected = reduce_minimum(evs)
        assert best.fs == 1.5
        assert evaluated == 3
        assert rejected == 0

    def test_rejected_counted(self):
        best, evaluated, rejected = reduce_minimum([None, _evaluation(2.0, 10.0), None])
        assert best.fs == 2.0
        assert evaluated == 3
        assert rejected == 2

    def test_all_rejected(self):
        best, evaluated, rejected = reduce_minimum([None, None])
        assert best is None
        assert evaluated == rejected == 2

    def test_tie_prefers_smaller_radius(self):
        evs = [_evaluation(1.5, 12.0), _evaluation(1.5 + 5e-7, 9.0), _evaluation(1.5, 11.0)]
        best, _, _ = reduce_minimum(evs, tie_tolerance=1e-6)
        assert best.circle.radius == 9.0

    def test_tie_independent_of_order(self):
        evs = [_evaluation(1.5, 12.0), _evaluation(1.5, 9.0), _evaluation(1.5, 11.0)]
        a, _, _ = reduce_minimum(evs)
        b, _, _ = reduce_minimum(reversed(evs))
        assert a.circle == b.circle


# ======================================================================
# Grid search
# ======================================================================


class TestGridSearch:
    def test_finds_surface(self):
        result = grid_search(_slope(), "bishop", _coarse())
        assert result.found
        assert np.isfinite(result.fs)
        assert result.circle is not None
        assert result.best.slices
        assert result.rejected < result.evaluated

    def test_minimum_over_candidates(self):
        """Without refinement the search FS is the grid minimum."""
        slope = _slope()
        config = _coarse()
        result = grid_search(slope, "bishop", config)
        fs_all = [ev.fs for _, ev in iter_evaluations(slope, "bishop", config) if ev is not None]
        assert result.fs == pytest.approx(min(fs_all))
        assert all(result.fs <= fs for fs in fs_all)
        assert result.evaluated == len(list(CandidateGrid(SlopeProfile(slope), config)))

    def test_refinement_does_not_worsen(self):
        slope = _slope()
        coarse = grid_search(slope, "bishop", _coarse())
        refined = grid_search(slope, "bishop", _coarse(refine=True))
        assert refined.fs <= coarse.fs
        assert refined.evaluated > coarse.evaluated

    def test_accepts_profile(self):
        slope = _slope()
        a = grid_search(slope, "janbu", _coarse())
        b = grid_search(SlopeProfile(slope), "janbu", _coarse())
        assert a.fs == b.fs
        assert a.circle == b.circle

    def test_deterministic(self):
        a = grid_search(_slope(), "bishop", _coarse(refine=True))
        b = grid_search(_slope(), "bishop", _coarse(refine=True))
        assert a.fs == b.fs
        assert a.circle == b.circle

    @pytest.mark.parametrize("method", ["bishop", "janbu", "fellenius"])
    def test_all_methods(self, method):
        result = grid_search(_slope(), method, _coarse())
        assert result.found
        assert result.method == method
        assert 0.5 < result.fs < 5.0

    def test_unknown_method(self):
        with pytest.raises(InvalidInputError):
            grid_search(_slope(), "spencer")

    def test_no_candidates(self):
        result = grid_search(_slope(), "bishop", SearchConfig(shallow_ratio=100.0))
        assert not result.found
        assert result.fs == float("inf")
        assert result.circle is None
        assert result.evaluated == 0

    def test_unconverged_winner_resolved(self, caplog):
        """One iteration never settles Bishop for φ > 0; the winner gets a
        larger cap."""
        settings = SolverSettings(max_iterations=1)
        with caplog.at_level(logging.INFO, logger="geoforce.slope.search"):
            result = grid_search(_slope(), "bishop", _coarse(), settings)
        assert result.best.solution.converged
        assert 1 < result.best.solution.iterations <= 10
        assert "Re-solved unconverged bishop winner" in caplog.text
        reference = bishop_simplified(SlopeProfile(_slope()), result.circle)
        assert result.fs == pytest.approx(reference.fs, abs=1e-3)

    def test_converged_winner_kept(self, caplog):
        with caplog.at_level(logging.INFO, logger="geoforce.slope.search"):
            result = grid_search(_slope(), "bishop", _coarse())
        assert result.best.solution.converged
        assert "Re-solved" not in caplog.text

    def test_logs_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="geoforce.slope.search"):
            grid_search(_slope(), "bishop", _coarse())
        assert "bishop search: FS=" in caplog.text


class TestSearchBudget:
    def test_max_evaluations(self):
        result = grid_search(_slope(), "bishop", _coarse(max_evaluations=10))
        assert result.evaluated == 10
        assert result.exhausted

    def test_max_evaluations_skips_refinement(self):
        result = grid_search(_slope(), "bishop", _coarse(max_evaluations=10, refine=True))
        assert result.evaluated == 10
        assert result.exhausted
        assert not result.refined

    def test_refinement_within_budget(self):
        config = _coarse(refine=True)
        n_grid = len(list(CandidateGrid(SlopeProfile(_slope()), config)))
        result = grid_search(_slope(), "bishop", _coarse(refine=True, max_evaluations=n_grid + 20))
        assert result.evaluated <= n_grid + 20

    def test_generous_budget_not_exhausted(self):
        result = grid_search(_slope(), "bishop", _coarse(max_evaluations=10_000))
        assert not result.exhausted

    def test_deadline(self):
        result = grid_search(_slope(), "bishop", _coarse(deadline=1e-9))
        assert result.exhausted
        assert result.evaluated < len(list(CandidateGrid(SlopeProfile(_slope()), _coarse())))


class TestParallelSearch:
    def test_matches_sequential(self):
        slope = _slope()
        sequential = grid_search(slope, "bishop", _coarse())
        parallel = grid_search(slope, "bishop", _coarse(workers=2))
        assert parallel.fs == pytest.approx(sequential.fs)
        assert parallel.circle == sequential.circle
        assert parallel.evaluated == sequential.evaluated
        assert parallel.rejected == sequential.rejected

    def test_budget(self):
        result = grid_search(_slope(), "bishop", _coarse(workers=2, max_evaluations=10))
        assert result.evaluated == 10
        assert result.exhausted


class TestEvaluateCircle:
    def test_valid(self):
        ev = evaluate_circle(SlopeProfile(_slope()), TrialCircle(8.0, 18.0, 19.0))
        assert ev is not None
        assert ev.fs > 0
        assert len(ev.slices) == 30

    def test_invalid_returns_none(self):
        assert evaluate_circle(SlopeProfile(_slope()), TrialCircle(8.0, 100.0, 5.0)) is None


# ======================================================================
# Differential evolution
# ======================================================================


class TestOptimizeSurface:
    def test_finds_surface(self):
        result = optimize_surface(_slope(), "bishop", maxiter=5)
        assert result.found
        assert 0.5 < result.fs < 5.0
        assert result.evaluated > 0

    def test_reproducible(self):
        a = optimize_surface(_slope(), "bishop", maxiter=5, seed=7)
        b = optimize_surface(_slope(), "bishop", maxiter=5, seed=7)
        assert a.fs == b.fs
        assert a.circle == b.circle

    def test_custom_bounds(self):
        bounds = ((4.0, 12.0), (14.0, 22.0), (15.0, 23.0))
        result = optimize_surface(_slope(), "fellenius", bounds=bounds, maxiter=5)
        assert result.found
        c = result.circle
        assert 4.0 <= c.xc <= 12.0
        assert 14.0 <= c.yc <= 22.0
        assert 15.0 <= c.radius <= 23.0
