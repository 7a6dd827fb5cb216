"""
Portfolio Module - Objectives, constraint sets and portfolio optimization.
"""

from .objectives import (
    portfolio_return,
    portfolio_variance,
    portfolio_volatility,
    sharpe_ratio,
    risk_contributions,
    variance_objective,
    variance_gradient,
    negative_sharpe_objective,
    negative_sharpe_gradient,
    risk_parity_objective,
    diversification_objective,
)

from .optimization.constraints import (
    ConstraintSet,
    ConstraintSetKind,
    PositionLimit,
)

from .optimization.solver import (
    PortfolioOptimizer,
    OptimalPortfolio,
    EfficientFrontier,
    OptimizationMethod,
)


__all__ = [
    # Objectives
    'portfolio_return',
    'portfolio_variance',
    'portfolio_volatility',
    'sharpe_ratio',
    'risk_contributions',
    'variance_objective',
    'variance_gradient',
    'negative_sharpe_objective',
    'negative_sharpe_gradient',
    'risk_parity_objective',
    'diversification_objective',
    # Optimization
    'ConstraintSet',
    'ConstraintSetKind',
    'PositionLimit',
    'PortfolioOptimizer',
    'OptimalPortfolio',
    'EfficientFrontier',
    'OptimizationMethod',
]
