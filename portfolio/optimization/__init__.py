"""
Portfolio Optimization Module.
"""

from .constraints import (
    ConstraintSet,
    ConstraintSetKind,
    PositionLimit,
    budget_constraint,
    non_negativity_constraints,
    position_limit_constraint,
    position_minimum_constraint,
    box_constraints,
    target_return_constraint,
    leverage_limit_constraint,
)

from .solver import (
    PortfolioOptimizer,
    OptimalPortfolio,
    EfficientFrontier,
    OptimizationMethod,
)


__all__ = [
    'ConstraintSet',
    'ConstraintSetKind',
    'PositionLimit',
    'budget_constraint',
    'non_negativity_constraints',
    'position_limit_constraint',
    'position_minimum_constraint',
    'box_constraints',
    'target_return_constraint',
    'leverage_limit_constraint',
    'PortfolioOptimizer',
    'OptimalPortfolio',
    'EfficientFrontier',
    'OptimizationMethod',
]
