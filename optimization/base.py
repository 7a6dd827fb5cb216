"""
Multivariate Optimizer - Base classes and shared numerics.

Every optimizer exposes the same contract:

    result = optimizer.minimize(objective, initial_point, constraints, gradient)

returning an OptimizationResult. Gradients default to central differences.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple

from core.differentiation import GRADIENT_STEP, numerical_gradient
from core.exceptions import InvalidInputError, NonFiniteValueError, UnsupportedConstraintsError
from core.vector_space import VectorSpace, as_vector

from .constraint import Constraint
from .result import IterationRecord, OptimizationResult

logger = logging.getLogger(__name__)

Objective = Callable[[VectorSpace], float]
Gradient = Callable[[VectorSpace], VectorSpace]

# Armijo sufficient-decrease constant and backtracking factor
ARMIJO_C1 = 1e-4
BACKTRACK_FACTOR = 0.5
MAX_BACKTRACKS = 50


def backtracking_line_search(
    function: Objective,
    point: VectorSpace,
    value: float,
    slope: float,
    direction: VectorSpace,
    initial_step: float = 1.0
) -> Tuple[float, float]:
    """
    Armijo backtracking along a descent direction.

    Args:
        function: Objective
        point: Current point x
        value: f(x)
        slope: Directional derivative ∇f(x)ᵀd, negative for descent
        direction: Search direction d
        initial_step: First trial step

    Returns:
        (alpha, f(x + alpha·d)); alpha is 0.0 when no acceptable step exists
    """
    alpha = initial_step
    for _ in range(MAX_BACKTRACKS):
        trial_value = function(point + alpha * direction)
        # NaN trial values fail the comparison and are backtracked
        if trial_value <= value + ARMIJO_C1 * alpha * slope:
            return alpha, float(trial_value)
        alpha *= BACKTRACK_FACTOR
    return 0.0, value


class MultivariateOptimizer(ABC):
    """
    Abstract base class for all multivariate minimizers.

    Subclasses implement minimize(); maximize() is derived by minimizing -f.
    """

    name = "Multivariate Optimizer"

    def __init__(
        self,
        max_iterations: int = 1000,
        tolerance: float = 1e-6,
        finite_difference_step: float = GRADIENT_STEP,
        record_history: bool = False
    ):
        """
        Initialize optimizer.

        Args:
            max_iterations: Iteration budget
            tolerance: Gradient-norm convergence threshold
            finite_difference_step: Central-difference step for numeric gradients
            record_history: Keep per-iteration records on the result
        """
        if max_iterations <= 0:
            raise InvalidInputError(f"max_iterations must be positive, got {max_iterations}")
        if tolerance <= 0:
            raise InvalidInputError(f"tolerance must be positive, got {tolerance}")

        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.finite_difference_step = finite_difference_step
        self.record_history = record_history

    @abstractmethod
    def minimize(
        self,
        objective: Objective,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        gradient: Optional[Gradient] = None
    ) -> OptimizationResult:
        """
        Minimize objective starting from initial_point.

        Args:
            objective: Scalar function of a vector
            initial_point: Starting point (lists and arrays become VectorN)
            constraints: Constraints the solution must satisfy
            gradient: Optional analytic gradient of objective

        Returns:
            OptimizationResult
        """
        pass

    def maximize(
        self,
        objective: Objective,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        gradient: Optional[Gradient] = None
    ) -> OptimizationResult:
        """Maximize objective by minimizing its negation."""
        negated_gradient = None
        if gradient is not None:
            negated_gradient = lambda point: -gradient(point)

        result = self.minimize(
            lambda point: -objective(point),
            initial_point,
            constraints,
            negated_gradient
        )
        return result.negated()

    # Helpers shared by subclasses

    def _prepare_point(self, initial_point) -> VectorSpace:
        point = as_vector(initial_point)
        if point.dimension == 0:
            raise InvalidInputError("Initial point must have at least one component")
        if not point.is_finite:
            raise InvalidInputError(f"Initial point is not finite: {point!r}")
        return point

    def _gradient_function(self, objective: Objective, gradient: Optional[Gradient]) -> Gradient:
        if gradient is not None:
            return gradient
        step = self.finite_difference_step
        return lambda point: numerical_gradient(objective, point, step)

    @staticmethod
    def _check_gradient(gradient: VectorSpace) -> float:
        norm = gradient.norm
        if not math.isfinite(norm):
            raise NonFiniteValueError("Gradient norm is not finite")
        return norm

    def _record(
        self,
        history: Optional[List[IterationRecord]],
        iteration: int,
        point: VectorSpace,
        value: float,
        gradient_norm: float
    ) -> None:
        if history is not None:
            history.append(IterationRecord(iteration, point, value, gradient_norm))


class UnconstrainedOptimizer(MultivariateOptimizer):
    """
    Base class for minimizers that do not handle constraints.

    Handing such an optimizer a non-empty constraint list is an error.
    """

    def minimize(
        self,
        objective: Objective,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        gradient: Optional[Gradient] = None
    ) -> OptimizationResult:
        if constraints:
            raise UnsupportedConstraintsError(
                f"{self.name} does not support constraints ({len(constraints)} given). "
                "Use AugmentedLagrangianOptimizer or PenaltyBarrierOptimizer."
            )

        x0 = self._prepare_point(initial_point)
        gradient_function = self._gradient_function(objective, gradient)
        history = [] if self.record_history else None

        result = self._run(objective, gradient_function, x0, history)
        result.algorithm = self.name
        result.history = history
        return result

    @abstractmethod
    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        pass

    def _finish(
        self,
        objective: Objective,
        x: VectorSpace,
        iterations: int,
        converged: bool,
        gradient_norm: float,
        message: str,
        value: Optional[float] = None
    ) -> OptimizationResult:
        if value is None:
            value = float(objective(x))
        if not converged:
            logger.debug(f"{self.name} stopped without convergence: {message}")
        return OptimizationResult(
            solution=x,
            objective_value=value,
            converged=converged,
            iterations=iterations,
            gradient_norm=gradient_norm,
            message=message
        )
