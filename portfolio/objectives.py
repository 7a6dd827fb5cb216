"""
Portfolio Objectives - Risk/return functions over weight vectors.

Objective builders close over read-only numpy copies of the inputs and
return plain callables of a VectorN of weights, ready for any optimizer.
Degenerate volatility (σ < 1e-10) yields a large finite sentinel instead of
Inf or NaN so gradients stay defined.
"""

from typing import Callable
import numpy as np

from core.vector_space import VectorN, VectorSpace

# Returned instead of a division by (near) zero volatility
SENTINEL = 1e10
MIN_VOLATILITY = 1e-10


def _weights(weights) -> np.ndarray:
    if isinstance(weights, VectorSpace):
        return weights.to_array()
    return np.asarray(weights, dtype=float)


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.setflags(write=False)
    return array


# Metrics

def portfolio_return(weights, expected_returns: np.ndarray) -> float:
    """wᵀμ"""
    return float(_weights(weights) @ np.asarray(expected_returns, dtype=float))


def portfolio_variance(weights, covariance: np.ndarray) -> float:
    """wᵀΣw"""
    w = _weights(weights)
    return float(w @ np.asarray(covariance, dtype=float) @ w)


def portfolio_volatility(weights, covariance: np.ndarray) -> float:
    """sqrt(wᵀΣw), clamped at zero for round-off."""
    return float(np.sqrt(max(portfolio_variance(weights, covariance), 0.0)))


def sharpe_ratio(
    weights,
    expected_returns: np.ndarray,
    covariance: np.ndarray,
    risk_free_rate: float = 0.0
) -> float:
    """(wᵀμ - r_f) / σ, zero when volatility vanishes."""
    volatility = portfolio_volatility(weights, covariance)
    if volatility < MIN_VOLATILITY:
        return 0.0
    return (portfolio_return(weights, expected_returns) - risk_free_rate) / volatility


def risk_contributions(weights, covariance: np.ndarray) -> np.ndarray:
    """
    Per-asset contribution wᵢ(Σw)ᵢ / σ to portfolio volatility.

    Contributions sum to σ. All zeros for a zero-volatility portfolio.
    """
    w = _weights(weights)
    cov = np.asarray(covariance, dtype=float)
    marginal = cov @ w
    volatility = float(np.sqrt(max(w @ marginal, 0.0)))
    if volatility < MIN_VOLATILITY:
        return np.zeros_like(w)
    return w * marginal / volatility


# Objective builders

def variance_objective(covariance: np.ndarray) -> Callable[[VectorSpace], float]:
    """f(w) = wᵀΣw"""
    cov = _frozen(covariance)

    def objective(weights: VectorSpace) -> float:
        w = weights.to_array()
        return float(w @ cov @ w)

    return objective


def variance_gradient(covariance: np.ndarray) -> Callable[[VectorSpace], VectorSpace]:
    """∇f(w) = (Σ + Σᵀ)w"""
    cov = _frozen(covariance)
    symmetric = cov + cov.T

    def gradient(weights: VectorSpace) -> VectorSpace:
        return VectorN(symmetric @ weights.to_array())

    return gradient


def negative_sharpe_objective(
    expected_returns: np.ndarray,
    covariance: np.ndarray,
    risk_free_rate: float = 0.0
) -> Callable[[VectorSpace], float]:
    """f(w) = -(wᵀμ - r_f) / sqrt(wᵀΣw), SENTINEL when σ < 1e-10."""
    mu = _frozen(expected_returns)
    cov = _frozen(covariance)

    def objective(weights: VectorSpace) -> float:
        w = weights.to_array()
        volatility = float(np.sqrt(max(w @ cov @ w, 0.0)))
        if volatility < MIN_VOLATILITY:
            return SENTINEL
        return -(float(w @ mu) - risk_free_rate) / volatility

    return objective


def negative_sharpe_gradient(
    expected_returns: np.ndarray,
    covariance: np.ndarray,
    risk_free_rate: float = 0.0
) -> Callable[[VectorSpace], VectorSpace]:
    """
    ∇f(w) = -μ/σ + (wᵀμ - r_f)·Σw/σ³

    Zero inside the sentinel region, matching the flat SENTINEL value there.
    """
    mu = _frozen(expected_returns)
    cov = _frozen(covariance)

    def gradient(weights: VectorSpace) -> VectorSpace:
        w = weights.to_array()
        marginal = 0.5 * (cov + cov.T) @ w
        volatility = float(np.sqrt(max(w @ cov @ w, 0.0)))
        if volatility < MIN_VOLATILITY:
            return VectorN.zeros(w.shape[0])
        excess = float(w @ mu) - risk_free_rate
        return VectorN(-mu / volatility + excess * marginal / volatility ** 3)

    return gradient


def risk_parity_objective(covariance: np.ndarray) -> Callable[[VectorSpace], float]:
    """
    f(w) = Σᵢ (wᵢ(Σw)ᵢ/σ - σ/n)²

    Zero exactly when every asset contributes σ/n of the risk.
    """
    cov = _frozen(covariance)

    def objective(weights: VectorSpace) -> float:
        w = weights.to_array()
        marginal = cov @ w
        volatility = float(np.sqrt(max(w @ marginal, 0.0)))
        if volatility < MIN_VOLATILITY:
            return SENTINEL
        contributions = w * marginal / volatility
        return float(np.sum((contributions - volatility / w.shape[0]) ** 2))

    return objective


def diversification_objective(covariance: np.ndarray) -> Callable[[VectorSpace], float]:
    """f(w) = -Σwᵢσᵢ / σ, the negated diversification ratio."""
    cov = _frozen(covariance)
    asset_volatility = np.sqrt(np.clip(np.diag(cov), 0.0, None))

    def objective(weights: VectorSpace) -> float:
        w = weights.to_array()
        volatility = float(np.sqrt(max(w @ cov @ w, 0.0)))
        if volatility < MIN_VOLATILITY:
            return SENTINEL
        return -float(w @ asset_volatility) / volatility

    return objective
