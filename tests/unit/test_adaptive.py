"""
Tests for adaptive algorithm selection.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from core.vector_space import VectorN
from optimization import AdaptiveOptimizer, Constraint


def squared_distance(v):
    """Distance to the all-ones point."""
    return (v - VectorN.ones(v.dimension)).squared_norm


def squared_distance_gradient(v):
    return 2.0 * (v - VectorN.ones(v.dimension))


@pytest.fixture
def optimizer():
    return AdaptiveOptimizer()


class TestProblemAnalysis:
    """Test selection rules."""

    def test_inequality_selects_penalty_barrier(self, optimizer):
        """Test any inequality wins over everything else."""
        constraints = [
            Constraint.equality(lambda v: v.sum - 1.0),
            Constraint.inequality(lambda v: -v[0]),
        ]

        analysis = optimizer.analyze_problem(VectorN.zeros(100), constraints)

        assert analysis.algorithm == "Penalty-Barrier"
        assert analysis.has_inequalities
        assert analysis.equality_constraints == 1
        assert analysis.inequality_constraints == 1
        assert "inequality" in analysis.reason

    def test_equality_selects_augmented_lagrangian(self, optimizer):
        """Test equality-only problems use the augmented Lagrangian."""
        constraints = [Constraint.equality(lambda v: v.sum - 1.0)]

        analysis = optimizer.analyze_problem(VectorN.zeros(3), constraints)

        assert analysis.algorithm == "Augmented Lagrangian"
        assert analysis.has_constraints
        assert not analysis.has_inequalities

    def test_large_unconstrained_selects_adam(self, optimizer):
        """Test more than 50 variables selects Adam."""
        assert optimizer.analyze_problem(VectorN.zeros(51)).algorithm == "Adam"
        assert optimizer.analyze_problem(VectorN.zeros(50)).algorithm == "BFGS"

    def test_accuracy_preference_selects_newton(self):
        """Test small problems with prefer_accuracy use Newton."""
        optimizer = AdaptiveOptimizer(prefer_accuracy=True)

        assert optimizer.analyze_problem(VectorN.zeros(5)).algorithm == "Newton"
        assert optimizer.analyze_problem(VectorN.zeros(10)).algorithm == "BFGS"

    def test_default_is_bfgs(self, optimizer):
        """Test small unconstrained problems default to BFGS."""
        analysis = optimizer.analyze_problem(VectorN.zeros(5), has_gradient=True)

        assert analysis.algorithm == "BFGS"
        assert analysis.has_gradient
        assert not analysis.has_constraints


class TestAdaptiveMinimize:
    """Test that minimize() dispatches and labels the result."""

    def test_records_selection(self, optimizer):
        """Test algorithm and reason are recorded on the result."""
        result = optimizer.minimize(squared_distance, VectorN.zeros(3))

        assert result.converged
        assert result.algorithm == "BFGS"
        assert "Unconstrained" in result.selection_reason
        assert result.solution.to_list() == pytest.approx([1.0, 1.0, 1.0], abs=1e-5)

    def test_equality_problem(self, optimizer):
        """Test an equality-constrained problem is solved."""
        budget = Constraint.equality(lambda v: v.sum - 1.0)

        result = optimizer.minimize(squared_distance, VectorN.zeros(2), [budget])

        assert result.converged
        assert result.algorithm == "Augmented Lagrangian"
        assert result.solution.to_list() == pytest.approx([0.5, 0.5], abs=1e-5)

    def test_inequality_problem(self, optimizer):
        """Test an inequality-constrained problem is solved."""
        cap = Constraint.inequality(lambda v: v[0] - 0.25)

        result = optimizer.minimize(squared_distance, VectorN.zeros(2), [cap])

        assert result.converged
        assert result.algorithm == "Penalty-Barrier"
        assert result.solution[0] == pytest.approx(0.25, abs=1e-4)

    def test_large_problem_uses_adam(self):
        """Test a 60-variable problem runs through Adam."""
        optimizer = AdaptiveOptimizer(max_inner_iterations=3000, adam_learning_rate=0.05)

        result = optimizer.minimize(
            squared_distance, VectorN.zeros(60), gradient=squared_distance_gradient
        )

        assert result.algorithm == "Adam"
        assert max(abs(w - 1.0) for w in result.solution.to_list()) < 1e-2
