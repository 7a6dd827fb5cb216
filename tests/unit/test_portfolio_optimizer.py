"""
Tests for the portfolio optimizer and efficient frontier.
"""

import pytest
import numpy as np
import pandas as pd

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from core.exceptions import CovarianceError, DimensionMismatchError, InvalidInputError
from core.vector_space import VectorN
from optimization import OptimizerConfig
from portfolio import (
    ConstraintSet,
    OptimizationMethod,
    PortfolioOptimizer,
)
from portfolio.objectives import diversification_objective
from fixtures.sample_data import estimate_inputs, uncorrelated_inputs


@pytest.fixture
def optimizer():
    return PortfolioOptimizer(risk_free_rate=0.02)


@pytest.fixture
def two_asset_inputs():
    """σ = 20% and 30% with correlation 0.2."""
    expected_returns = np.array([0.06, 0.10])
    covariance = np.array([
        [0.040, 0.012],
        [0.012, 0.090],
    ])
    return expected_returns, covariance


class TestMinimumVariance:
    """Test minimum-variance portfolios."""

    def test_two_asset_diversification(self, optimizer, two_asset_inputs):
        """Test the minimum-variance mix is no riskier than either asset."""
        mu, cov = two_asset_inputs

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)

        assert portfolio.converged
        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert portfolio.volatility <= 0.2 + 1e-6
        assert portfolio.volatility <= 0.3 + 1e-6
        # Closed form: w₁ = (σ₂² - σ₁₂) / (σ₁² + σ₂² - 2σ₁₂)
        assert portfolio.weights[0] == pytest.approx(0.078 / 0.106, abs=1e-3)

    def test_identical_uncorrelated_assets(self, optimizer):
        """Test identical uncorrelated assets get equal weights."""
        mu, cov = uncorrelated_inputs([0.2, 0.2, 0.2], [0.1, 0.1, 0.1])

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)

        assert portfolio.converged
        for weight in portfolio.weights:
            assert weight == pytest.approx(1.0 / 3.0, abs=0.1)

    def test_weights_read_only(self, optimizer, two_asset_inputs):
        """Test reported weights cannot be modified in place."""
        mu, cov = two_asset_inputs

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)

        with pytest.raises(ValueError):
            portfolio.weights[0] = 0.5


class TestMaximumSharpe:
    """Test tangency portfolios."""

    def test_positive_sharpe(self, optimizer, three_asset_inputs):
        """Test the tangency portfolio beats equal weights."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.maximum_sharpe_portfolio(mu, cov)
        equal = optimizer.equal_weight_portfolio(mu, cov)

        assert portfolio.converged
        assert portfolio.method == OptimizationMethod.MAX_SHARPE
        assert portfolio.sharpe_ratio > 0
        assert portfolio.sharpe_ratio >= equal.sharpe_ratio - 1e-6
        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)

    def test_long_only_on_estimated_inputs(self, optimizer, sample_returns):
        """Test long-only weights on inputs estimated from returns."""
        mu, cov = estimate_inputs(sample_returns)

        portfolio = optimizer.maximum_sharpe_portfolio(mu, cov)

        assert portfolio.symbols == list(sample_returns.columns)
        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert np.all(portfolio.weights >= -1e-4)

    def test_long_short_leverage_cap_binds(self, optimizer, three_asset_inputs):
        """Test a gross-exposure cap below the unconstrained tangency leverage."""
        _, cov = three_asset_inputs
        # Bonds earn the risk-free rate, so the tangency shorts them (gross ≈ 1.3)
        mu = np.array([0.02, 0.12, 0.15])

        portfolio = optimizer.maximum_sharpe_portfolio(
            mu, cov, constraint_set=ConstraintSet.long_short(max_leverage=1.1)
        )

        leverage = np.abs(portfolio.weights).sum()
        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert leverage <= 1.1 + 1e-3
        assert leverage == pytest.approx(1.1, abs=5e-3)
        assert portfolio.weights[0] < 0

    def test_box_constraints_respected(self, optimizer, three_asset_inputs):
        """Test per-asset caps bind."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.maximum_sharpe_portfolio(
            mu, cov, constraint_set=ConstraintSet.box_constrained(0.0, 0.4)
        )

        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert np.all(portfolio.weights <= 0.4 + 1e-4)
        assert np.all(portfolio.weights >= -1e-4)

    def test_position_limit(self, optimizer, labelled_inputs):
        """Test a symbol-specific cap."""
        mu, cov = labelled_inputs
        constraint_set = ConstraintSet.long_only()
        constraint_set.add_position_limit('EM', max_weight=0.1)

        portfolio = optimizer.maximum_sharpe_portfolio(mu, cov, constraint_set=constraint_set)

        assert portfolio.allocation['EM'] <= 0.1 + 1e-4


class TestRiskParity:
    """Test equal risk contribution portfolios."""

    def test_equal_contributions(self, optimizer, three_asset_inputs):
        """Test every asset contributes about σ/n of the risk."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.risk_parity_portfolio(mu, cov)
        contributions = portfolio.risk_contributions
        share = portfolio.volatility / 3.0

        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert sum(contributions.values()) == pytest.approx(portfolio.volatility)
        for contribution in contributions.values():
            assert contribution == pytest.approx(share, rel=0.05)

    def test_low_volatility_gets_more_weight(self, optimizer):
        """Test inverse-volatility ordering for uncorrelated assets."""
        mu, cov = uncorrelated_inputs([0.1, 0.2, 0.4], [0.05, 0.08, 0.12])

        portfolio = optimizer.risk_parity_portfolio(mu, cov)

        assert portfolio.weights[0] > portfolio.weights[1] > portfolio.weights[2]


class TestMaximumDiversification:
    """Test maximum diversification portfolios."""

    def test_ratio_at_least_equal_weight(self, optimizer, three_asset_inputs):
        """Test the optimized diversification ratio beats equal weights."""
        mu, cov = three_asset_inputs
        ratio = lambda w: -diversification_objective(cov)(VectorN(w))

        portfolio = optimizer.maximum_diversification_portfolio(mu, cov)

        assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)
        assert ratio(portfolio.weights) >= ratio(np.full(3, 1.0 / 3.0)) - 1e-6


class TestTargetReturn:
    """Test target-return portfolios."""

    def test_target_met(self, optimizer, three_asset_inputs):
        """Test the solved return matches the target."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.target_return_portfolio(
            mu, cov, 0.11, constraint_set=ConstraintSet.unconstrained()
        )

        assert portfolio.converged
        assert portfolio.expected_return == pytest.approx(0.11, abs=1e-5)
        assert portfolio.target_return == 0.11

    def test_optimize_dispatch_requires_target(self, optimizer, three_asset_inputs):
        """Test TARGET_RETURN without a target is rejected."""
        mu, cov = three_asset_inputs

        with pytest.raises(InvalidInputError):
            optimizer.optimize(mu, cov, method=OptimizationMethod.TARGET_RETURN)

    def test_optimize_dispatch(self, optimizer, three_asset_inputs):
        """Test optimize() routes to the requested method."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.optimize(
            mu, cov, method=OptimizationMethod.TARGET_RETURN, target_return=0.1
        )

        assert portfolio.method == OptimizationMethod.TARGET_RETURN
        assert portfolio.expected_return == pytest.approx(0.1, abs=1e-4)


class TestEqualWeight:
    """Test the 1/n benchmark."""

    def test_equal_weights(self, optimizer, three_asset_inputs):
        mu, cov = three_asset_inputs

        portfolio = optimizer.optimize(mu, cov, method=OptimizationMethod.EQUAL_WEIGHT)

        assert portfolio.converged
        assert portfolio.iterations == 0
        np.testing.assert_allclose(portfolio.weights, [1.0 / 3.0] * 3)


class TestEfficientFrontier:
    """Test frontier generation."""

    def test_unconstrained_frontier(self, optimizer, three_asset_inputs):
        """Test targets span the asset returns and are met."""
        mu, cov = three_asset_inputs

        frontier = optimizer.efficient_frontier(
            mu, cov, number_of_points=5, constraint_set=ConstraintSet.unconstrained()
        )

        assert len(frontier) == 5
        assert frontier.target_returns[0] == pytest.approx(0.08)
        assert frontier.target_returns[-1] == pytest.approx(0.15)
        assert frontier.all_converged
        for target, portfolio in zip(frontier.target_returns, frontier):
            assert portfolio.expected_return == pytest.approx(target, abs=1e-5)
            assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)

    @pytest.mark.slow
    def test_long_only_frontier(self, optimizer, three_asset_inputs):
        """Test long-only frontier points track their targets."""
        mu, cov = three_asset_inputs

        frontier = optimizer.efficient_frontier(mu, cov, number_of_points=5)

        targets = frontier.target_returns
        assert all(a <= b for a, b in zip(targets, targets[1:]))
        for target, portfolio in zip(targets, frontier):
            assert portfolio.expected_return == pytest.approx(target, abs=1e-3)
            assert portfolio.weights.sum() == pytest.approx(1.0, abs=0.01)

    def test_frontier_summaries(self, optimizer, three_asset_inputs):
        """Test frontier accessors and table output."""
        mu, cov = three_asset_inputs

        frontier = optimizer.efficient_frontier(
            mu, cov, number_of_points=4, constraint_set=ConstraintSet.unconstrained()
        )
        table = frontier.to_dataframe()

        assert frontier.maximum_return_portfolio is frontier[-1]
        assert frontier.minimum_variance_portfolio.volatility == min(p.volatility for p in frontier)
        assert len(table) == 4
        assert {'target_return', 'volatility', 'asset_0'} <= set(table.columns)

    def test_warm_start_matches_cold_start(self, optimizer, three_asset_inputs):
        """Test warm-started solves reach the same frontier."""
        mu, cov = three_asset_inputs
        unconstrained = ConstraintSet.unconstrained()

        cold = optimizer.efficient_frontier(mu, cov, 4, constraint_set=unconstrained)
        warm = optimizer.efficient_frontier(mu, cov, 4, constraint_set=unconstrained, warm_start=True)

        for a, b in zip(cold, warm):
            np.testing.assert_allclose(a.weights, b.weights, atol=1e-4)

    def test_invalid_point_count(self, optimizer, three_asset_inputs):
        mu, cov = three_asset_inputs

        with pytest.raises(InvalidInputError):
            optimizer.efficient_frontier(mu, cov, number_of_points=0)


class TestInputValidation:
    """Test input checks before any solve."""

    def test_dimension_mismatch(self, optimizer):
        """Test three returns with a 2x2 covariance."""
        with pytest.raises(DimensionMismatchError):
            optimizer.minimum_variance_portfolio([0.1, 0.2, 0.3], np.eye(2) * 0.04)

    def test_non_psd_covariance(self, optimizer):
        """Test an indefinite covariance is rejected."""
        with pytest.raises(CovarianceError):
            optimizer.minimum_variance_portfolio([0.1, 0.2], [[0.04, 0.10], [0.10, 0.04]])

    def test_covariance_check_can_be_disabled(self):
        """Test validate_covariance=False skips the eigenvalue check."""
        optimizer = PortfolioOptimizer(config=OptimizerConfig(validate_covariance=False))

        portfolio = optimizer.equal_weight_portfolio([0.1, 0.2], [[0.04, 0.10], [0.10, 0.04]])

        assert portfolio.volatility > 0

    def test_non_finite_returns(self, optimizer):
        with pytest.raises(InvalidInputError):
            optimizer.equal_weight_portfolio([0.1, float('nan')], np.eye(2) * 0.04)

    def test_symbol_count(self, optimizer, three_asset_inputs):
        mu, cov = three_asset_inputs

        with pytest.raises(DimensionMismatchError):
            optimizer.equal_weight_portfolio(mu, cov, symbols=['A', 'B'])


class TestResults:
    """Test result labelling and determinism."""

    def test_pandas_labels(self, optimizer, labelled_inputs):
        """Test symbols are taken from pandas inputs."""
        mu, cov = labelled_inputs

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)
        series = portfolio.to_series()

        assert portfolio.symbols == ['BONDS', 'EQUITY', 'EM']
        assert set(portfolio.allocation) == {'BONDS', 'EQUITY', 'EM'}
        assert isinstance(series, pd.Series)
        assert list(series.index) == ['BONDS', 'EQUITY', 'EM']

    def test_deterministic(self, optimizer, three_asset_inputs):
        """Test repeated solves give identical weights."""
        mu, cov = three_asset_inputs

        first = optimizer.maximum_sharpe_portfolio(mu, cov)
        second = optimizer.maximum_sharpe_portfolio(mu, cov)

        np.testing.assert_array_equal(first.weights, second.weights)
        assert first.iterations == second.iterations

    def test_optimization_details_attached(self, optimizer, three_asset_inputs):
        """Test the raw optimizer result is kept for diagnostics."""
        mu, cov = three_asset_inputs

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)

        assert portfolio.optimization is not None
        assert portfolio.optimization.algorithm == "Penalty-Barrier"
        assert portfolio.variance == pytest.approx(portfolio.volatility ** 2)

    def test_adaptive_strategy(self, three_asset_inputs):
        """Test the adaptive strategy solves the same problem."""
        mu, cov = three_asset_inputs
        optimizer = PortfolioOptimizer(config=OptimizerConfig(strategy='adaptive'))

        portfolio = optimizer.minimum_variance_portfolio(mu, cov)
        reference = PortfolioOptimizer().minimum_variance_portfolio(mu, cov)

        np.testing.assert_allclose(portfolio.weights, reference.weights, atol=1e-4)
