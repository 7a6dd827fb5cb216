"""
Multi-Period Optimization - Trajectories of decisions over time.

A T-period problem over d-dimensional states is flattened into one
(T·d)-dimensional VectorN:

    [x₀ | x₁ | ... | x_{T-1}]

Per-period objectives are discounted by 1/(1+r)^t and summed; multi-period
constraints are flattened into ordinary constraints on the stacked vector,
after which any constrained optimizer from the factory applies.

Usage:
    optimizer = MultiPeriodOptimizer(n_periods=4, discount_rate=0.05)
    result = optimizer.optimize(
        lambda t, w: expected_return(w) - risk_aversion * variance(w),
        initial_state=VectorN.equal_weights(3),
        constraints=[budget_each_period(), turnover_limit(0.2)]
            + non_negativity_each_period(3)
    )
    weights_by_period = result.to_dataframe(labels=['SPY', 'TLT', 'GLD'])
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Type
import numpy as np
import pandas as pd

from core.exceptions import DimensionMismatchError, InvalidConstraintError, InvalidInputError
from core.vector_space import VectorN, VectorSpace, as_vector

from .constraint import DEFAULT_TOLERANCE, Constraint, ConstraintType
from .result import OptimizationResult
from .strategy import OptimizerConfig, create_optimizer

logger = logging.getLogger(__name__)


class MultiPeriodConstraintKind(Enum):
    """Where along the trajectory a constraint applies."""
    EACH_PERIOD = "each_period"  # f(t, x_t), one residual per period
    TRANSITION = "transition"    # f(t, x_t, x_{t+1}), one per consecutive pair
    TERMINAL = "terminal"        # f(x_T), one residual
    TRAJECTORY = "trajectory"    # f([x_0 .. x_T]), one residual


def flatten_trajectory(trajectory: Sequence[VectorSpace]) -> VectorN:
    """Concatenate period states into one VectorN."""
    if not trajectory:
        raise InvalidInputError("Trajectory must contain at least one period")
    return VectorN(np.concatenate([state.to_array() for state in trajectory]))


def unflatten_trajectory(
    flat: VectorSpace,
    n_periods: int,
    dimension: int,
    vector_type: Type[VectorSpace] = VectorN
) -> List[VectorSpace]:
    """Split a stacked vector back into n_periods states of the given type."""
    values = flat.to_array()
    if values.shape[0] != n_periods * dimension:
        raise DimensionMismatchError(
            f"Flat vector has {values.shape[0]} components, expected {n_periods} x {dimension}",
            expected=n_periods * dimension,
            actual=values.shape[0]
        )
    return [
        vector_type.from_array(values[t * dimension:(t + 1) * dimension])
        for t in range(n_periods)
    ]


@dataclass(frozen=True)
class MultiPeriodConstraint:
    """
    Constraint over a trajectory of states.

    The feasibility rule per residual is the same as for Constraint:
    |r| <= tol for equalities, r <= tol for inequalities.
    """
    kind: MultiPeriodConstraintKind
    function: Callable
    constraint_type: ConstraintType = ConstraintType.INEQUALITY
    name: str = ""

    @classmethod
    def each_period(cls, function: Callable[[int, VectorSpace], float],
                    equality: bool = False, name: str = "") -> 'MultiPeriodConstraint':
        return cls(MultiPeriodConstraintKind.EACH_PERIOD, function, _constraint_type(equality), name)

    @classmethod
    def transition(cls, function: Callable[[int, VectorSpace, VectorSpace], float],
                   equality: bool = False, name: str = "") -> 'MultiPeriodConstraint':
        return cls(MultiPeriodConstraintKind.TRANSITION, function, _constraint_type(equality), name)

    @classmethod
    def terminal(cls, function: Callable[[VectorSpace], float],
                 equality: bool = False, name: str = "") -> 'MultiPeriodConstraint':
        return cls(MultiPeriodConstraintKind.TERMINAL, function, _constraint_type(equality), name)

    @classmethod
    def trajectory(cls, function: Callable[[List[VectorSpace]], float],
                   equality: bool = False, name: str = "") -> 'MultiPeriodConstraint':
        return cls(MultiPeriodConstraintKind.TRAJECTORY, function, _constraint_type(equality), name)

    @property
    def is_equality(self) -> bool:
        return self.constraint_type == ConstraintType.EQUALITY

    @property
    def label(self) -> str:
        return self.name or f"{self.kind.value} {self.constraint_type.value} constraint"

    def _residual(self, trajectory: Sequence[VectorSpace], index: int) -> float:
        if self.kind == MultiPeriodConstraintKind.EACH_PERIOD:
            value = self.function(index, trajectory[index])
        elif self.kind == MultiPeriodConstraintKind.TRANSITION:
            value = self.function(index, trajectory[index], trajectory[index + 1])
        elif self.kind == MultiPeriodConstraintKind.TERMINAL:
            value = self.function(trajectory[-1])
        else:
            value = self.function(list(trajectory))

        value = float(value)
        if not math.isfinite(value):
            raise InvalidConstraintError(f"{self.label} evaluated to {value}", index=index)
        return value

    def residual_count(self, n_periods: int) -> int:
        if self.kind == MultiPeriodConstraintKind.EACH_PERIOD:
            return n_periods
        if self.kind == MultiPeriodConstraintKind.TRANSITION:
            return max(n_periods - 1, 0)
        return 1

    def evaluate(self, trajectory: Sequence[VectorSpace]) -> List[float]:
        """Residuals in period order."""
        if not trajectory:
            raise InvalidInputError("Trajectory must contain at least one period")
        return [self._residual(trajectory, i) for i in range(self.residual_count(len(trajectory)))]

    def is_satisfied(self, trajectory: Sequence[VectorSpace], tolerance: float = DEFAULT_TOLERANCE) -> bool:
        residuals = self.evaluate(trajectory)
        if self.is_equality:
            return all(abs(r) <= tolerance for r in residuals)
        return all(r <= tolerance for r in residuals)

    def flatten(
        self,
        n_periods: int,
        dimension: int,
        vector_type: Type[VectorSpace] = VectorN
    ) -> List[Constraint]:
        """Ordinary constraints on the stacked (n_periods·dimension) vector."""
        constraints = []
        for index in range(self.residual_count(n_periods)):
            def function(flat, index=index):
                trajectory = unflatten_trajectory(flat, n_periods, dimension, vector_type)
                return self._residual(trajectory, index)

            name = f"{self.label}[{index}]"
            if self.is_equality:
                constraints.append(Constraint.equality(function, name=name))
            else:
                constraints.append(Constraint.inequality(function, name=name))
        return constraints


def _constraint_type(equality: bool) -> ConstraintType:
    return ConstraintType.EQUALITY if equality else ConstraintType.INEQUALITY


# Common multi-period constraints

def budget_each_period(total: float = 1.0) -> MultiPeriodConstraint:
    """Σ x_t = total in every period."""
    return MultiPeriodConstraint.each_period(
        lambda t, x: float(np.sum(x.to_array())) - total,
        equality=True,
        name="budget"
    )


def non_negativity_each_period(dimension: int) -> List[MultiPeriodConstraint]:
    """x_t[i] >= 0 for every component and period."""
    return [
        MultiPeriodConstraint.each_period(lambda t, x, i=i: -x[i], name=f"non_negative[{i}]")
        for i in range(dimension)
    ]


def turnover_limit(max_turnover: float) -> MultiPeriodConstraint:
    """Σ|x_{t+1} - x_t| <= max_turnover between consecutive periods."""
    if max_turnover < 0:
        raise InvalidInputError(f"max_turnover must be non-negative, got {max_turnover}")
    return MultiPeriodConstraint.transition(
        lambda t, current, following: float(np.abs(following.to_array() - current.to_array()).sum()) - max_turnover,
        name="turnover"
    )


def terminal_minimum(index: int, value: float) -> MultiPeriodConstraint:
    """x_T[index] >= value."""
    return MultiPeriodConstraint.terminal(lambda x: value - x[index], name=f"terminal_min[{index}]")


def average_minimum(index: int, value: float) -> MultiPeriodConstraint:
    """Mean over periods of x_t[index] >= value."""
    return MultiPeriodConstraint.trajectory(
        lambda trajectory: value - float(np.mean([x[index] for x in trajectory])),
        name=f"average_min[{index}]"
    )


@dataclass
class MultiPeriodResult:
    """Outcome of a multi-period solve."""
    trajectory: List[VectorSpace]
    period_objectives: List[float]  # Undiscounted
    total_objective: float          # Discounted sum
    converged: bool
    iterations: int
    constraint_violations: List[float] = field(default_factory=list)  # Residuals, constraint order
    optimization: Optional[OptimizationResult] = None

    @property
    def n_periods(self) -> int:
        return len(self.trajectory)

    @property
    def initial_state(self) -> VectorSpace:
        return self.trajectory[0]

    @property
    def terminal_state(self) -> VectorSpace:
        return self.trajectory[-1]

    def to_dataframe(self, labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """States by period (rows) and component (columns)."""
        data = np.vstack([state.to_array() for state in self.trajectory])
        frame = pd.DataFrame(data, columns=list(labels) if labels is not None else None)
        frame.index.name = 'period'
        frame['objective'] = self.period_objectives
        return frame


class MultiPeriodOptimizer:
    """
    Optimizes a trajectory of states over a fixed horizon.

    Maximizes by default; the constrained optimizer is chosen by
    create_optimizer() with the given configuration.
    """

    def __init__(
        self,
        n_periods: int,
        discount_rate: float = 0.0,
        config: OptimizerConfig = None
    ):
        if n_periods <= 0:
            raise InvalidInputError(f"n_periods must be positive, got {n_periods}")
        if discount_rate < 0:
            raise InvalidInputError(f"discount_rate must be non-negative, got {discount_rate}")

        self.n_periods = n_periods
        self.discount_rate = discount_rate
        self.config = config or OptimizerConfig()

    @property
    def discount_factor(self) -> float:
        return 1.0 / (1.0 + self.discount_rate)

    def discount(self, period: int) -> float:
        return self.discount_factor ** period

    def optimize(
        self,
        objective: Callable[[int, VectorSpace], float],
        initial_state: VectorSpace,
        constraints: Sequence[MultiPeriodConstraint] = (),
        minimize: bool = False
    ) -> MultiPeriodResult:
        """
        Optimize Σ_t f(t, x_t) / (1+r)^t.

        Args:
            objective: Per-period objective f(t, x_t)
            initial_state: Starting state, repeated for every period
            constraints: Multi-period constraints
            minimize: Minimize instead of maximize

        Returns:
            MultiPeriodResult
        """
        initial_state = as_vector(initial_state)
        vector_type = type(initial_state)
        dimension = initial_state.dimension
        if dimension == 0:
            raise InvalidInputError("Initial state must have positive dimension")

        n_periods = self.n_periods
        discounts = [self.discount(t) for t in range(n_periods)]

        def total_objective(flat: VectorSpace) -> float:
            trajectory = unflatten_trajectory(flat, n_periods, dimension, vector_type)
            return sum(d * objective(t, x) for t, (d, x) in enumerate(zip(discounts, trajectory)))

        flat_constraints = []
        for constraint in constraints:
            flat_constraints.extend(constraint.flatten(n_periods, dimension, vector_type))

        initial_flat = flatten_trajectory([initial_state] * n_periods)
        optimizer = create_optimizer(self.config, flat_constraints)

        logger.debug(
            f"Multi-period solve: {n_periods} periods x {dimension} dims, "
            f"{len(flat_constraints)} flat constraints, {optimizer.name}"
        )

        if minimize:
            result = optimizer.minimize(total_objective, initial_flat, flat_constraints)
        else:
            result = optimizer.maximize(total_objective, initial_flat, flat_constraints)

        trajectory = unflatten_trajectory(result.solution, n_periods, dimension, vector_type)
        period_objectives = [float(objective(t, x)) for t, x in enumerate(trajectory)]
        total = float(sum(d * v for d, v in zip(discounts, period_objectives)))

        residuals = []
        for constraint in constraints:
            residuals.extend(constraint.evaluate(trajectory))

        if not result.converged:
            logger.warning(f"Multi-period optimization did not converge after {result.iterations} iterations")

        return MultiPeriodResult(
            trajectory=trajectory,
            period_objectives=period_objectives,
            total_objective=total,
            converged=result.converged,
            iterations=result.iterations,
            constraint_violations=residuals,
            optimization=result
        )

    def optimize_stationary(
        self,
        objective: Callable[[VectorSpace], float],
        initial_state: VectorSpace,
        constraints: Sequence[MultiPeriodConstraint] = (),
        minimize: bool = False
    ) -> MultiPeriodResult:
        """Optimize with the same objective f(x_t) in every period."""
        return self.optimize(lambda t, x: objective(x), initial_state, constraints, minimize)
