"""
Optimization Module - Generic multivariate optimizers.

Unconstrained: gradient descent, momentum, Adam, Newton, BFGS.
Constrained: augmented Lagrangian (equalities), penalty-barrier (any mix),
adaptive dispatch, and a strategy factory.
"""

from .constraint import (
    Constraint,
    ConstraintType,
    DEFAULT_TOLERANCE,
    split_constraints,
    violations,
    max_violation,
    all_satisfied,
)

from .result import IterationRecord, OptimizationResult

from .base import MultivariateOptimizer, UnconstrainedOptimizer, backtracking_line_search

from .gradient_descent import GradientDescentOptimizer, MomentumOptimizer, AdamOptimizer
from .newton import NewtonOptimizer, BFGSOptimizer

from .augmented_lagrangian import AugmentedLagrangianOptimizer
from .penalty_barrier import PenaltyBarrierOptimizer
from .adaptive import AdaptiveOptimizer, ProblemAnalysis

from .strategy import OptimizerStrategy, OptimizerConfig, create_optimizer

from .multi_period import (
    MultiPeriodConstraint,
    MultiPeriodConstraintKind,
    MultiPeriodOptimizer,
    MultiPeriodResult,
    budget_each_period,
    non_negativity_each_period,
    turnover_limit,
    terminal_minimum,
    average_minimum,
    flatten_trajectory,
    unflatten_trajectory,
)


__all__ = [
    # Constraints
    'Constraint',
    'ConstraintType',
    'DEFAULT_TOLERANCE',
    'split_constraints',
    'violations',
    'max_violation',
    'all_satisfied',

    # Results
    'IterationRecord',
    'OptimizationResult',

    # Optimizers
    'MultivariateOptimizer',
    'UnconstrainedOptimizer',
    'backtracking_line_search',
    'GradientDescentOptimizer',
    'MomentumOptimizer',
    'AdamOptimizer',
    'NewtonOptimizer',
    'BFGSOptimizer',
    'AugmentedLagrangianOptimizer',
    'PenaltyBarrierOptimizer',
    'AdaptiveOptimizer',
    'ProblemAnalysis',

    # Strategy
    'OptimizerStrategy',
    'OptimizerConfig',
    'create_optimizer',

    # Multi-period
    'MultiPeriodConstraint',
    'MultiPeriodConstraintKind',
    'MultiPeriodOptimizer',
    'MultiPeriodResult',
    'budget_each_period',
    'non_negativity_each_period',
    'turnover_limit',
    'terminal_minimum',
    'average_minimum',
    'flatten_trajectory',
    'unflatten_trajectory',
]
