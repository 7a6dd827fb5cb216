"""
Portfolio Optimizer - Mean-variance portfolio construction.

Builds objectives and constraint lists from expected returns and a
covariance matrix, solves them with the constrained optimizer chosen by the
strategy factory, and wraps the solution into OptimalPortfolio /
EfficientFrontier results.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
from enum import Enum
import numpy as np
import pandas as pd

from core import linalg
from core.exceptions import DimensionMismatchError, InvalidInputError
from core.vector_space import VectorN
from optimization.result import OptimizationResult
from optimization.strategy import OptimizerConfig, create_optimizer

from ..objectives import (
    diversification_objective,
    negative_sharpe_gradient,
    negative_sharpe_objective,
    portfolio_return,
    portfolio_volatility,
    risk_contributions,
    risk_parity_objective,
    sharpe_ratio,
    variance_gradient,
    variance_objective,
)
from .constraints import ConstraintSet, target_return_constraint

logger = logging.getLogger(__name__)


class OptimizationMethod(Enum):
    """Portfolio optimization methods."""
    MAX_SHARPE = "max_sharpe"
    MIN_VARIANCE = "min_variance"
    RISK_PARITY = "risk_parity"
    MAX_DIVERSIFICATION = "max_diversification"
    TARGET_RETURN = "target_return"
    EQUAL_WEIGHT = "equal_weight"


@dataclass
class OptimalPortfolio:
    """
    Portfolio optimization result.

    Weights are reported exactly as solved; they are not renormalized, so
    their sum reflects the achieved budget accuracy.
    """
    weights: np.ndarray
    method: OptimizationMethod
    expected_return: float
    volatility: float
    sharpe_ratio: float
    converged: bool
    iterations: int
    symbols: List[str]
    message: str = ""
    target_return: Optional[float] = None
    optimization: Optional[OptimizationResult] = None
    covariance: Optional[np.ndarray] = field(default=None, repr=False)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.converged

    @property
    def variance(self) -> float:
        return self.volatility ** 2

    @property
    def allocation(self) -> Dict[str, float]:
        """Symbol to weight mapping."""
        return {symbol: float(weight) for symbol, weight in zip(self.symbols, self.weights)}

    @property
    def risk_contributions(self) -> Dict[str, float]:
        """Symbol to volatility contribution; contributions sum to the volatility."""
        if self.covariance is None:
            return {}
        contributions = risk_contributions(self.weights, self.covariance)
        return {symbol: float(c) for symbol, c in zip(self.symbols, contributions)}

    def to_series(self) -> pd.Series:
        return pd.Series(self.weights, index=self.symbols, name='weight')


@dataclass
class EfficientFrontier:
    """
    Minimum-variance portfolios over a non-decreasing target-return grid.

    Usage:
        frontier = optimizer.efficient_frontier(returns, covariance, number_of_points=25)
        best = frontier.maximum_sharpe_portfolio
        table = frontier.to_dataframe()
    """
    portfolios: List[OptimalPortfolio]
    target_returns: List[float]

    def __len__(self) -> int:
        return len(self.portfolios)

    def __iter__(self) -> Iterator[OptimalPortfolio]:
        return iter(self.portfolios)

    def __getitem__(self, index: int) -> OptimalPortfolio:
        return self.portfolios[index]

    @property
    def minimum_variance_portfolio(self) -> Optional[OptimalPortfolio]:
        """Lowest-volatility frontier member."""
        best = None
        for portfolio in self.portfolios:
            if best is None or portfolio.volatility < best.volatility:
                best = portfolio
        return best

    @property
    def maximum_sharpe_portfolio(self) -> Optional[OptimalPortfolio]:
        """Highest-Sharpe frontier member."""
        best = None
        for portfolio in self.portfolios:
            if best is None or portfolio.sharpe_ratio > best.sharpe_ratio:
                best = portfolio
        return best

    @property
    def maximum_return_portfolio(self) -> Optional[OptimalPortfolio]:
        best = None
        for portfolio in self.portfolios:
            if best is None or portfolio.expected_return > best.expected_return:
                best = portfolio
        return best

    @property
    def all_converged(self) -> bool:
        return all(p.converged for p in self.portfolios)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per frontier point: target, return, volatility, Sharpe, weights."""
        rows = []
        for target, portfolio in zip(self.target_returns, self.portfolios):
            row = {
                'target_return': target,
                'expected_return': portfolio.expected_return,
                'volatility': portfolio.volatility,
                'sharpe_ratio': portfolio.sharpe_ratio,
                'converged': portfolio.converged,
            }
            row.update(portfolio.allocation)
            rows.append(row)
        return pd.DataFrame(rows)


class PortfolioOptimizer:
    """
    Portfolio optimizer with multiple methods.

    Every solve starts from equal weights and uses the constraint set given
    per call, falling back to the optimizer's default (long-only).

    Usage:
        optimizer = PortfolioOptimizer(risk_free_rate=0.02)

        portfolio = optimizer.optimize(
            expected_returns,
            covariance_matrix,
            method=OptimizationMethod.MAX_SHARPE
        )
    """

    def __init__(
        self,
        config: OptimizerConfig = None,
        risk_free_rate: float = 0.02,
        constraint_set: ConstraintSet = None
    ):
        """
        Initialize optimizer.

        Args:
            config: Optimizer configuration (strategy, budgets, tolerances)
            risk_free_rate: Risk-free rate for Sharpe ratios
            constraint_set: Default constraint set (long-only if None)
        """
        self.config = config or OptimizerConfig()
        self.risk_free_rate = risk_free_rate
        self.constraint_set = constraint_set or ConstraintSet.long_only()

    # Public API

    def optimize(
        self,
        expected_returns,
        covariance_matrix,
        symbols: Optional[Sequence[str]] = None,
        method: OptimizationMethod = OptimizationMethod.MAX_SHARPE,
        constraint_set: ConstraintSet = None,
        target_return: float = None
    ) -> OptimalPortfolio:
        """
        Optimize portfolio weights.

        Args:
            expected_returns: Expected returns for each asset
            covariance_matrix: Covariance matrix
            symbols: Asset labels (taken from pandas inputs if None)
            method: Optimization method
            constraint_set: Constraint set override
            target_return: Required for OptimizationMethod.TARGET_RETURN

        Returns:
            OptimalPortfolio
        """
        if method == OptimizationMethod.MAX_SHARPE:
            return self.maximum_sharpe_portfolio(expected_returns, covariance_matrix, constraint_set, symbols)
        elif method == OptimizationMethod.MIN_VARIANCE:
            return self.minimum_variance_portfolio(expected_returns, covariance_matrix, constraint_set, symbols)
        elif method == OptimizationMethod.RISK_PARITY:
            return self.risk_parity_portfolio(expected_returns, covariance_matrix, constraint_set, symbols)
        elif method == OptimizationMethod.MAX_DIVERSIFICATION:
            return self.maximum_diversification_portfolio(expected_returns, covariance_matrix, constraint_set, symbols)
        elif method == OptimizationMethod.TARGET_RETURN:
            if target_return is None:
                raise InvalidInputError("target_return is required for OptimizationMethod.TARGET_RETURN")
            return self.target_return_portfolio(
                expected_returns, covariance_matrix, target_return, constraint_set, symbols
            )
        else:  # EQUAL_WEIGHT
            return self.equal_weight_portfolio(expected_returns, covariance_matrix, symbols)

    def minimum_variance_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None
    ) -> OptimalPortfolio:
        """Minimize wᵀΣw."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        result = self._solve(
            variance_objective(cov), variance_gradient(cov), len(symbols),
            self._constraints(constraint_set, symbols)
        )
        return self._portfolio(result, mu, cov, symbols, OptimizationMethod.MIN_VARIANCE)

    def maximum_sharpe_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None
    ) -> OptimalPortfolio:
        """Maximize (wᵀμ - r_f) / σ by minimizing its negation."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        rf = self.risk_free_rate
        result = self._solve(
            negative_sharpe_objective(mu, cov, rf), negative_sharpe_gradient(mu, cov, rf), len(symbols),
            self._constraints(constraint_set, symbols)
        )
        return self._portfolio(result, mu, cov, symbols, OptimizationMethod.MAX_SHARPE)

    def risk_parity_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None
    ) -> OptimalPortfolio:
        """Risk parity optimization - equal risk contribution."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        result = self._solve(
            risk_parity_objective(cov), None, len(symbols), self._constraints(constraint_set, symbols)
        )
        return self._portfolio(result, mu, cov, symbols, OptimizationMethod.RISK_PARITY)

    def maximum_diversification_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None
    ) -> OptimalPortfolio:
        """Maximize diversification ratio Σwᵢσᵢ / σ."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        result = self._solve(
            diversification_objective(cov), None, len(symbols), self._constraints(constraint_set, symbols)
        )
        return self._portfolio(result, mu, cov, symbols, OptimizationMethod.MAX_DIVERSIFICATION)

    def target_return_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        target_return: float,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None,
        initial_weights: Optional[Sequence[float]] = None
    ) -> OptimalPortfolio:
        """Minimize variance subject to μᵀw = target_return."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        return self._target_return(mu, cov, symbols, target_return, constraint_set, initial_weights)

    def equal_weight_portfolio(
        self,
        expected_returns,
        covariance_matrix,
        symbols: Optional[Sequence[str]] = None
    ) -> OptimalPortfolio:
        """1/n in every asset; no optimization."""
        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        weights = np.full(len(symbols), 1.0 / len(symbols))
        return self._build_portfolio(
            weights, mu, cov, symbols, OptimizationMethod.EQUAL_WEIGHT,
            converged=True, iterations=0, message="Equal weights"
        )

    def efficient_frontier(
        self,
        expected_returns,
        covariance_matrix,
        number_of_points: int = 20,
        constraint_set: ConstraintSet = None,
        symbols: Optional[Sequence[str]] = None,
        warm_start: bool = False
    ) -> EfficientFrontier:
        """
        Generate efficient frontier.

        Target returns are spaced linearly between the smallest and largest
        expected asset return, inclusive. Each point is an independent
        target-return minimum-variance solve from equal weights; with
        warm_start each solve starts from the previous point's weights.

        Args:
            expected_returns: Expected returns
            covariance_matrix: Covariance matrix
            number_of_points: Number of frontier points
            constraint_set: Constraint set override
            symbols: Symbol names
            warm_start: Seed each solve with the previous solution

        Returns:
            EfficientFrontier in target-return order
        """
        if number_of_points < 1:
            raise InvalidInputError(f"number_of_points must be positive, got {number_of_points}")

        mu, cov, symbols = self._prepare(expected_returns, covariance_matrix, symbols)
        targets = [float(t) for t in np.linspace(mu.min(), mu.max(), number_of_points)]

        portfolios = []
        previous = None
        for target in targets:
            initial = previous.weights if warm_start and previous is not None else None
            portfolio = self._target_return(mu, cov, symbols, target, constraint_set, initial)
            portfolios.append(portfolio)
            previous = portfolio

        frontier = EfficientFrontier(portfolios=portfolios, target_returns=targets)
        if not frontier.all_converged:
            failed = sum(1 for p in portfolios if not p.converged)
            logger.warning(f"Efficient frontier: {failed}/{len(portfolios)} points did not converge")
        return frontier

    # Internals

    def _target_return(
        self,
        mu: np.ndarray,
        cov: np.ndarray,
        symbols: List[str],
        target: float,
        constraint_set: Optional[ConstraintSet],
        initial_weights: Optional[Sequence[float]] = None
    ) -> OptimalPortfolio:
        constraints = self._constraints(constraint_set, symbols)
        constraints.append(target_return_constraint(mu, target))
        result = self._solve(
            variance_objective(cov), variance_gradient(cov), len(symbols), constraints, initial_weights
        )
        return self._portfolio(result, mu, cov, symbols, OptimizationMethod.TARGET_RETURN, target)

    def _prepare(
        self,
        expected_returns,
        covariance_matrix,
        symbols: Optional[Sequence[str]]
    ) -> Tuple[np.ndarray, np.ndarray, List[str]]:
        """
        Validate inputs and resolve asset labels.

        Raises:
            DimensionMismatchError: If returns and covariance shapes disagree
            InvalidInputError: If inputs are empty or non-finite
            CovarianceError: If the covariance is not PSD (when validation is on)
        """
        if symbols is None:
            if isinstance(expected_returns, pd.Series):
                symbols = [str(s) for s in expected_returns.index]
            elif isinstance(covariance_matrix, pd.DataFrame):
                symbols = [str(s) for s in covariance_matrix.columns]

        mu = np.array(expected_returns, dtype=float)
        if mu.ndim != 1:
            raise DimensionMismatchError(f"Expected returns must be 1-dimensional, got shape {mu.shape}")
        if mu.shape[0] == 0:
            raise InvalidInputError("Expected returns are empty")
        if not np.all(np.isfinite(mu)):
            raise InvalidInputError("Expected returns contain NaN or infinite entries")

        cov = linalg.as_matrix(covariance_matrix, "covariance")
        n = mu.shape[0]
        if cov.shape != (n, n):
            raise DimensionMismatchError(
                f"Covariance shape {cov.shape} does not match {n} expected returns",
                expected=n,
                actual=cov.shape[0] if cov.shape[0] == cov.shape[1] else None
            )

        if self.config.validate_covariance:
            linalg.validate_covariance(cov)

        if symbols is None:
            symbols = [f"asset_{i}" for i in range(n)]
        symbols = list(symbols)
        if len(symbols) != n:
            raise DimensionMismatchError(f"Expected {n} symbols, got {len(symbols)}", expected=n, actual=len(symbols))

        mu.setflags(write=False)
        cov.setflags(write=False)
        return mu, cov, symbols

    def _constraints(self, constraint_set: Optional[ConstraintSet], symbols: List[str]):
        constraint_set = constraint_set or self.constraint_set
        return constraint_set.build(len(symbols), symbols)

    def _solve(
        self,
        objective,
        gradient,
        n_assets: int,
        constraints,
        initial_weights: Optional[Sequence[float]] = None
    ) -> OptimizationResult:
        if initial_weights is None:
            x0 = VectorN.equal_weights(n_assets)
        else:
            x0 = VectorN(initial_weights)
            if x0.dimension != n_assets:
                raise DimensionMismatchError(
                    f"Initial weights have {x0.dimension} entries, expected {n_assets}",
                    expected=n_assets,
                    actual=x0.dimension
                )

        optimizer = create_optimizer(self.config, constraints)
        return optimizer.minimize(objective, x0, constraints, gradient)

    def _portfolio(
        self,
        result: OptimizationResult,
        mu: np.ndarray,
        cov: np.ndarray,
        symbols: List[str],
        method: OptimizationMethod,
        target: Optional[float] = None
    ) -> OptimalPortfolio:
        portfolio = self._build_portfolio(
            result.solution.to_array(), mu, cov, symbols, method,
            converged=result.converged,
            iterations=result.iterations,
            message=result.message,
            target=target,
            optimization=result
        )
        if not result.converged:
            logger.warning(
                f"{method.value} portfolio did not converge "
                f"(violation {result.constraint_violation:.3e}, {result.iterations} iterations)"
            )
        return portfolio

    def _build_portfolio(
        self,
        weights: np.ndarray,
        mu: np.ndarray,
        cov: np.ndarray,
        symbols: List[str],
        method: OptimizationMethod,
        converged: bool,
        iterations: int,
        message: str = "",
        target: Optional[float] = None,
        optimization: Optional[OptimizationResult] = None
    ) -> OptimalPortfolio:
        weights = np.array(weights, dtype=float)
        weights.setflags(write=False)

        # Calculate metrics
        port_return = portfolio_return(weights, mu)
        port_vol = portfolio_volatility(weights, cov)
        sharpe = sharpe_ratio(weights, mu, cov, self.risk_free_rate)

        logger.info(
            f"{method.value} portfolio: return={port_return:.4f} vol={port_vol:.4f} "
            f"sharpe={sharpe:.3f} converged={converged}"
        )

        return OptimalPortfolio(
            weights=weights,
            method=method,
            expected_return=port_return,
            volatility=port_vol,
            sharpe_ratio=sharpe,
            converged=converged,
            iterations=iterations,
            symbols=symbols,
            message=message,
            target_return=target,
            optimization=optimization,
            covariance=cov
        )
