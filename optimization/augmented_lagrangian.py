"""
Augmented Lagrangian Method - Equality-constrained minimization.

Outer loop:
    1. Minimize L(x) = f(x) + Σ λᵢhᵢ(x) + (ρ/2) Σ hᵢ(x)² with BFGS
    2. Update multipliers λᵢ ← λᵢ + ρ·hᵢ(x)
    3. Increase ρ when the violation has not shrunk enough

Inequality support (PHR shifted penalty) lives in PenaltyBarrierOptimizer,
which reuses this loop.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from core.differentiation import GRADIENT_STEP
from core.exceptions import InvalidInputError, UnsupportedConstraintsError
from core.vector_space import VectorSpace

from .base import Gradient, MultivariateOptimizer, Objective
from .constraint import Constraint, split_constraints
from .newton import BFGSOptimizer
from .result import IterationRecord, OptimizationResult

logger = logging.getLogger(__name__)


class AugmentedLagrangianOptimizer(MultivariateOptimizer):
    """
    Augmented Lagrangian optimizer for equality constraints.

    Convergence requires both the outer constraint measure below
    `tolerance` and the last inner solve's gradient norm below
    `gradient_tolerance`. When the outer budget runs out the best point
    found (smallest violation, then lowest objective) is returned with
    converged=False.

    Usage:
        optimizer = AugmentedLagrangianOptimizer()
        budget = Constraint.equality(lambda w: w.sum - 1.0)
        result = optimizer.minimize(variance, VectorN.equal_weights(3), [budget])
    """

    name = "Augmented Lagrangian"

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
        finite_difference_step: float = GRADIENT_STEP,
        record_history: bool = False
    ):
        """
        Initialize optimizer.

        Args:
            max_iterations: Outer (multiplier update) iterations
            max_inner_iterations: BFGS iterations per subproblem
            tolerance: Constraint violation threshold
            gradient_tolerance: Inner gradient-norm threshold
            initial_penalty: Starting penalty ρ
            penalty_increase: Factor applied to ρ when progress stalls
            max_penalty: Upper bound on ρ
            violation_reduction: Required shrink factor of the violation per outer step
        """
        super().__init__(
            max_iterations=max_iterations,
            tolerance=tolerance,
            finite_difference_step=finite_difference_step,
            record_history=record_history
        )
        if initial_penalty <= 0:
            raise InvalidInputError(f"initial_penalty must be positive, got {initial_penalty}")
        if penalty_increase <= 1:
            raise InvalidInputError(f"penalty_increase must exceed 1, got {penalty_increase}")

        self.max_inner_iterations = max_inner_iterations
        self.gradient_tolerance = gradient_tolerance
        self.initial_penalty = initial_penalty
        self.penalty_increase = penalty_increase
        self.max_penalty = max(max_penalty, initial_penalty)
        self.violation_reduction = violation_reduction

    def _inner_optimizer(self) -> BFGSOptimizer:
        return BFGSOptimizer(
            max_iterations=self.max_inner_iterations,
            tolerance=self.gradient_tolerance,
            finite_difference_step=self.finite_difference_step
        )

    def _check_constraints(self, equalities: List[Constraint], inequalities: List[Constraint]) -> None:
        if inequalities:
            raise UnsupportedConstraintsError(
                f"{self.name} handles equality constraints only "
                f"({len(inequalities)} inequality constraints given). Use PenaltyBarrierOptimizer."
            )

    def minimize(
        self,
        objective: Objective,
        initial_point: VectorSpace,
        constraints: Sequence[Constraint] = (),
        gradient: Optional[Gradient] = None
    ) -> OptimizationResult:
        x0 = self._prepare_point(initial_point)
        equalities, inequalities = split_constraints(list(constraints))
        self._check_constraints(equalities, inequalities)

        if not equalities and not inequalities:
            logger.debug(f"{self.name}: no constraints, delegating to BFGS")
            result = self._inner_optimizer().minimize(objective, x0, gradient=gradient)
            result.algorithm = f"{self.name} (BFGS, unconstrained)"
            return result

        return self._solve(objective, x0, equalities, inequalities, gradient)

    # Outer loop

    def _solve(
        self,
        objective: Objective,
        x0: VectorSpace,
        equalities: List[Constraint],
        inequalities: List[Constraint],
        gradient: Optional[Gradient]
    ) -> OptimizationResult:
        inner = self._inner_optimizer()
        history = [] if self.record_history else None

        lambdas = [0.0] * len(equalities)
        mus = [0.0] * len(inequalities)
        rho = self.initial_penalty

        x = x0
        # Evaluating up front surfaces NaN-producing constraints immediately
        eq_values, ineq_values = self._constraint_values(x, equalities, inequalities)
        previous_measure = self._measure(eq_values, ineq_values, mus, rho)

        best: Optional[Tuple[float, float, float, VectorSpace]] = None
        inner_gradient_norm = float('inf')
        total_inner = 0

        for outer in range(self.max_iterations):
            merit = self._merit(objective, equalities, inequalities, lambdas, mus, rho)
            merit_gradient = self._merit_gradient(gradient, equalities, inequalities, lambdas, mus, rho)

            inner_result = inner.minimize(merit, x, gradient=merit_gradient)
            x = inner_result.solution
            inner_gradient_norm = inner_result.gradient_norm
            total_inner += inner_result.iterations

            eq_values, ineq_values = self._constraint_values(x, equalities, inequalities)
            measure = self._measure(eq_values, ineq_values, mus, rho)
            violation = self._feasibility(eq_values, ineq_values)
            value = float(objective(x))

            candidate = (max(violation, self.tolerance), value, inner_gradient_norm, x)
            if best is None or candidate[:2] < best[:2]:
                best = candidate

            if history is not None:
                history.append(IterationRecord(outer, x, value, inner_gradient_norm, violation, rho))

            logger.debug(
                f"{self.name} outer {outer}: f={value:.6g} violation={violation:.3e} "
                f"rho={rho:.1e} inner={inner_result.iterations}"
            )

            # First-order multiplier updates
            lambdas = [lam + rho * h for lam, h in zip(lambdas, eq_values)]
            mus = [max(0.0, mu + rho * g) for mu, g in zip(mus, ineq_values)]

            if measure < self.tolerance and inner_gradient_norm < self.gradient_tolerance:
                return self._result(
                    objective, x, True, outer + 1, inner_gradient_norm, violation,
                    lambdas, mus, rho, history, total_inner,
                    eq_values, ineq_values
                )

            if measure >= self.tolerance and measure > self.violation_reduction * previous_measure:
                rho = min(rho * self.penalty_increase, self.max_penalty)
            previous_measure = measure

        _, _, best_gradient_norm, x_best = best
        eq_values, ineq_values = self._constraint_values(x_best, equalities, inequalities)
        violation = self._feasibility(eq_values, ineq_values)
        logger.warning(
            f"{self.name} did not converge in {self.max_iterations} outer iterations "
            f"(violation {violation:.3e}, inner gradient {best_gradient_norm:.3e})"
        )
        return self._result(
            objective, x_best, False, self.max_iterations, best_gradient_norm, violation,
            lambdas, mus, rho, history, total_inner,
            eq_values, ineq_values
        )

    def _result(self, objective, x, converged, iterations, gradient_norm, violation,
                lambdas, mus, rho, history, total_inner, eq_values, ineq_values) -> OptimizationResult:
        message = "Converged" if converged else "Maximum outer iterations reached"
        return OptimizationResult(
            solution=x,
            objective_value=float(objective(x)),
            converged=converged,
            iterations=iterations,
            gradient_norm=gradient_norm,
            constraint_violation=violation,
            lagrange_multipliers=list(lambdas),
            inequality_multipliers=list(mus),
            penalty=rho,
            algorithm=self.name,
            message=message,
            history=history,
            metadata={
                'inner_iterations': total_inner,
                'equality_values': list(eq_values),
                'inequality_values': list(ineq_values),
            }
        )

    # Merit function pieces

    @staticmethod
    def _constraint_values(
        x: VectorSpace,
        equalities: List[Constraint],
        inequalities: List[Constraint]
    ) -> Tuple[List[float], List[float]]:
        return [c.evaluate(x) for c in equalities], [c.evaluate(x) for c in inequalities]

    @staticmethod
    def _feasibility(eq_values: List[float], ineq_values: List[float]) -> float:
        violations = [abs(h) for h in eq_values] + [max(0.0, g) for g in ineq_values]
        return max(violations, default=0.0)

    @staticmethod
    def _measure(eq_values: List[float], ineq_values: List[float], mus: List[float], rho: float) -> float:
        """
        Outer progress measure.

        Equalities contribute |h|. Inequalities contribute |max(g, -μ/ρ)|,
        which is zero only when g is feasible and complementary to μ.
        """
        terms = [abs(h) for h in eq_values]
        terms += [abs(max(g, -mu / rho)) for g, mu in zip(ineq_values, mus)]
        return max(terms, default=0.0)

    @staticmethod
    def _merit(
        objective: Objective,
        equalities: List[Constraint],
        inequalities: List[Constraint],
        lambdas: List[float],
        mus: List[float],
        rho: float
    ) -> Objective:
        def merit(x: VectorSpace) -> float:
            value = objective(x)
            for constraint, lam in zip(equalities, lambdas):
                h = constraint.evaluate(x)
                value += lam * h + 0.5 * rho * h * h
            for constraint, mu in zip(inequalities, mus):
                shifted = max(0.0, mu + rho * constraint.evaluate(x))
                value += (shifted * shifted - mu * mu) / (2.0 * rho)
            return value
        return merit

    def _merit_gradient(
        self,
        gradient: Optional[Gradient],
        equalities: List[Constraint],
        inequalities: List[Constraint],
        lambdas: List[float],
        mus: List[float],
        rho: float
    ) -> Optional[Gradient]:
        """
        Analytic merit gradient when the objective gradient is known.

        Constraints without an analytic gradient are differentiated
        numerically one at a time. Returns None (fully numeric merit
        gradient) when no objective gradient is supplied.
        """
        if gradient is None:
            return None
        step = self.finite_difference_step

        def merit_gradient(x: VectorSpace) -> VectorSpace:
            total = gradient(x)
            for constraint, lam in zip(equalities, lambdas):
                coefficient = lam + rho * constraint.evaluate(x)
                if coefficient != 0.0:
                    total = total + coefficient * constraint.gradient(x, step)
            for constraint, mu in zip(inequalities, mus):
                coefficient = max(0.0, mu + rho * constraint.evaluate(x))
                if coefficient > 0.0:
                    total = total + coefficient * constraint.gradient(x, step)
            return total
        return merit_gradient
