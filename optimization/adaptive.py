"""
Adaptive Optimizer - Picks an algorithm from the shape of the problem.

Selection rules, first match wins:
    1. Any inequality constraint      -> PenaltyBarrierOptimizer
    2. Equality constraints only      -> AugmentedLagrangianOptimizer
    3. Unconstrained, dimension > 50  -> AdamOptimizer
    4. Unconstrained, small, accuracy -> NewtonOptimizer
    5. Unconstrained otherwise        -> BFGSOptimizer
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from core.differentiation import GRADIENT_STEP
from core.vector_space import VectorSpace, as_vector

from .augmented_lagrangian import AugmentedLagrangianOptimizer
from .base import Gradient, MultivariateOptimizer, Objective
from .constraint import Constraint, split_constraints
from .gradient_descent import AdamOptimizer
from .newton import BFGSOptimizer, NewtonOptimizer
from .penalty_barrier import PenaltyBarrierOptimizer
from .result import OptimizationResult

logger = logging.getLogger(__name__)

# Newton's O(n²) Hessian evaluations are only worth it below this size
NEWTON_DIMENSION_LIMIT = 10


@dataclass(frozen=True)
class ProblemAnalysis:
    """Algorithm choice for a problem, without solving it."""
    dimension: int
    equality_constraints: int
    inequality_constraints: int
    has_gradient: bool
    algorithm: str
    reason: str

    @property
    def has_constraints(self) -> bool:
        return self.equality_constraints + self.inequality_constraints > 0

    @property
    def has_inequalities(self) -> bool:
        return self.inequality_constraints > 0


class AdaptiveOptimizer(MultivariateOptimizer):
    """
    Dispatching optimizer.

    Unconstrained problems are solved with a budget of
    `max_inner_iterations`; constrained problems get the full outer/inner
    budgets of the selected method. The chosen algorithm and the reason
    are recorded on the result.

    Usage:
        optimizer = AdaptiveOptimizer()
        analysis = optimizer.analyze_problem(VectorN.zeros(3), constraints)
        result = optimizer.minimize(objective, VectorN.zeros(3), constraints)
        print(result.algorithm, result.selection_reason)
    """

    name = "Adaptive"

    def __init__(
        self,
        max_iterations: int = 100,
        max_inner_iterations: int = 500,
        tolerance: float = 1e-6,
        gradient_tolerance: float = 1e-6,
        initial_penalty: float = 10.0,
        penalty_increase: float = 10.0,
        max_penalty: float = 1e8,
        violation_reduction: float = 0.25,
        adam_dimension_threshold: int = 50,
        adam_learning_rate: float = 0.01,
        prefer_accuracy: bool = False,
        finite_difference_step: float = GRADIENT_STEP,
        record_history: bool = False
    ):
        super().__init__(
            max_iterations=max_iterations,
            tolerance=tolerance,
            finite_difference_step=finite_difference_step,
            record_history=record_history
        )
        self.max_inner_iterations = max_inner_iterations
        self.gradient_tolerance = gradient_tolerance
        self.initial_penalty = initial_penalty
        self.penalty_increase = penalty_increase
        self.max_penalty = max_penalty
        self.violation_reduction = violation_reduction
        self.adam_dimension_threshold = adam_dimension_threshold
        self.adam_learning_rate = adam_learning_rate
        self.prefer_accuracy = prefer_accuracy

    def analyze_problem(
        self,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        has_gradient: bool = False
    ) -> ProblemAnalysis:
        """Report which algorithm minimize() would use, and why."""
        dimension = as_vector(initial_point).dimension
        equalities, inequalities = split_constraints(list(constraints))

        if inequalities:
            algorithm = PenaltyBarrierOptimizer.name
            reason = (f"Problem has {len(inequalities)} inequality constraints - "
                      "using penalty-barrier method")
        elif equalities:
            algorithm = AugmentedLagrangianOptimizer.name
            reason = (f"Problem has {len(equalities)} equality constraints - "
                      "using augmented Lagrangian method")
        elif dimension > self.adam_dimension_threshold:
            algorithm = AdamOptimizer.name
            reason = f"Large unconstrained problem ({dimension} variables) - using Adam"
        elif self.prefer_accuracy and dimension < NEWTON_DIMENSION_LIMIT:
            algorithm = NewtonOptimizer.name
            reason = f"Accuracy preference with small problem ({dimension} variables) - using Newton"
        else:
            algorithm = BFGSOptimizer.name
            reason = f"Unconstrained problem ({dimension} variables) - using BFGS"

        return ProblemAnalysis(
            dimension=dimension,
            equality_constraints=len(equalities),
            inequality_constraints=len(inequalities),
            has_gradient=has_gradient,
            algorithm=algorithm,
            reason=reason
        )

    def _build(self, algorithm: str) -> MultivariateOptimizer:
        common = dict(
            finite_difference_step=self.finite_difference_step,
            record_history=self.record_history
        )
        if algorithm in (PenaltyBarrierOptimizer.name, AugmentedLagrangianOptimizer.name):
            optimizer_class = (PenaltyBarrierOptimizer if algorithm == PenaltyBarrierOptimizer.name
                               else AugmentedLagrangianOptimizer)
            return optimizer_class(
                max_iterations=self.max_iterations,
                max_inner_iterations=self.max_inner_iterations,
                tolerance=self.tolerance,
                gradient_tolerance=self.gradient_tolerance,
                initial_penalty=self.initial_penalty,
                penalty_increase=self.penalty_increase,
                max_penalty=self.max_penalty,
                violation_reduction=self.violation_reduction,
                **common
            )
        if algorithm == AdamOptimizer.name:
            return AdamOptimizer(
                learning_rate=self.adam_learning_rate,
                max_iterations=self.max_inner_iterations,
                tolerance=self.gradient_tolerance,
                **common
            )
        if algorithm == NewtonOptimizer.name:
            return NewtonOptimizer(
                max_iterations=self.max_inner_iterations,
                tolerance=self.gradient_tolerance,
                **common
            )
        return BFGSOptimizer(
            max_iterations=self.max_inner_iterations,
            tolerance=self.gradient_tolerance,
            **common
        )

    def minimize(
        self,
        objective: Objective,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        gradient: Optional[Gradient] = None
    ) -> OptimizationResult:
        x0 = self._prepare_point(initial_point)
        analysis = self.analyze_problem(x0, constraints, has_gradient=gradient is not None)
        logger.debug(f"Adaptive selection: {analysis.algorithm} ({analysis.reason})")

        result = self._build(analysis.algorithm).minimize(objective, x0, constraints, gradient)
        result.algorithm = analysis.algorithm
        result.selection_reason = analysis.reason
        return result
