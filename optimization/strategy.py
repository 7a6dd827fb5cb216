"""
Optimizer Strategy - Configuration and factory for constrained solvers.

Usage:
    from config.optimizer_params import get_params

    config = OptimizerConfig.from_params(get_params('inequality_capable'))
    optimizer = create_optimizer(config, constraints)
    result = optimizer.minimize(objective, x0, constraints)
"""

import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Sequence

from core.exceptions import ConfigurationError, UnsupportedConstraintsError

from .adaptive import AdaptiveOptimizer
from .augmented_lagrangian import AugmentedLagrangianOptimizer
from .base import MultivariateOptimizer
from .constraint import Constraint
from .penalty_barrier import PenaltyBarrierOptimizer

logger = logging.getLogger(__name__)


class OptimizerStrategy(Enum):
    """How create_optimizer picks an implementation."""
    AUTOMATIC = "automatic"                    # Inspect constraints
    EQUALITY_ONLY = "equality_only"            # Augmented Lagrangian
    INEQUALITY_CAPABLE = "inequality_capable"  # Penalty-barrier
    ADAPTIVE = "adaptive"                      # Dispatch at minimize() time


@dataclass
class OptimizerConfig:
    """Optimizer configuration."""
    strategy: OptimizerStrategy = OptimizerStrategy.AUTOMATIC
    max_iterations: int = 100
    max_inner_iterations: int = 500
    tolerance: float = 1e-6
    gradient_tolerance: float = 1e-6
    initial_penalty: float = 10.0
    penalty_increase: float = 10.0
    max_penalty: float = 1e8
    violation_reduction: float = 0.25
    finite_difference_step: float = 1e-6
    record_history: bool = False
    validate_covariance: bool = True

    def __post_init__(self):
        if isinstance(self.strategy, str):
            try:
                self.strategy = OptimizerStrategy(self.strategy.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown optimizer strategy: {self.strategy!r}")
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If any budget, tolerance or penalty is out of range
        """
        if self.max_iterations <= 0 or self.max_inner_iterations <= 0:
            raise ConfigurationError("Iteration budgets must be positive")
        if self.tolerance <= 0 or self.gradient_tolerance <= 0:
            raise ConfigurationError("Tolerances must be positive")
        if self.initial_penalty <= 0:
            raise ConfigurationError(f"initial_penalty must be positive, got {self.initial_penalty}")
        if self.penalty_increase <= 1:
            raise ConfigurationError(f"penalty_increase must exceed 1, got {self.penalty_increase}")
        if self.max_penalty < self.initial_penalty:
            raise ConfigurationError("max_penalty must be at least initial_penalty")
        if not 0 < self.violation_reduction < 1:
            raise ConfigurationError(f"violation_reduction must be in (0, 1), got {self.violation_reduction}")
        if self.finite_difference_step <= 0:
            raise ConfigurationError("finite_difference_step must be positive")

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> 'OptimizerConfig':
        """Build from a parameter dict such as config.optimizer_params.get_params()."""
        known = {f.name for f in fields(cls)}
        unknown = set(params) - known
        if unknown:
            raise ConfigurationError(f"Unknown optimizer parameters: {sorted(unknown)}")
        return cls(**params)

    def to_dict(self) -> Dict[str, Any]:
        params = asdict(self)
        params['strategy'] = self.strategy.value
        return params

    def solver_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments shared by the constrained optimizers."""
        return {
            'max_iterations': self.max_iterations,
            'max_inner_iterations': self.max_inner_iterations,
            'tolerance': self.tolerance,
            'gradient_tolerance': self.gradient_tolerance,
            'initial_penalty': self.initial_penalty,
            'penalty_increase': self.penalty_increase,
            'max_penalty': self.max_penalty,
            'violation_reduction': self.violation_reduction,
            'finite_difference_step': self.finite_difference_step,
            'record_history': self.record_history,
        }


def create_optimizer(
    config: OptimizerConfig = None,
    constraints: Sequence[Constraint] = ()
) -> MultivariateOptimizer:
    """
    Instantiate the optimizer the configured strategy calls for.

    Args:
        config: Optimizer configuration (defaults when None)
        constraints: Constraints of the problem to be solved

    Returns:
        AUTOMATIC: PenaltyBarrierOptimizer if any inequality is present,
        AugmentedLagrangianOptimizer otherwise. EQUALITY_ONLY and
        INEQUALITY_CAPABLE force one or the other; ADAPTIVE returns an
        AdaptiveOptimizer.

    Raises:
        UnsupportedConstraintsError: EQUALITY_ONLY with inequality constraints
    """
    config = config or OptimizerConfig()
    has_inequalities = any(c.is_inequality for c in constraints)
    strategy = config.strategy

    if strategy == OptimizerStrategy.ADAPTIVE:
        optimizer = AdaptiveOptimizer(**config.solver_kwargs())
    elif strategy == OptimizerStrategy.INEQUALITY_CAPABLE:
        optimizer = PenaltyBarrierOptimizer(**config.solver_kwargs())
    elif strategy == OptimizerStrategy.EQUALITY_ONLY:
        if has_inequalities:
            raise UnsupportedConstraintsError(
                "EQUALITY_ONLY strategy cannot handle inequality constraints"
            )
        optimizer = AugmentedLagrangianOptimizer(**config.solver_kwargs())
    elif has_inequalities:
        optimizer = PenaltyBarrierOptimizer(**config.solver_kwargs())
    else:
        optimizer = AugmentedLagrangianOptimizer(**config.solver_kwargs())

    logger.debug(f"Strategy {strategy.value}: {optimizer.name} for {len(constraints)} constraints")
    return optimizer
