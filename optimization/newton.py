"""
Second-order unconstrained optimizers: Newton's method and BFGS.
"""

import logging
from typing import Callable, List, Optional
import numpy as np

from core import linalg
from core.differentiation import HESSIAN_STEP, numerical_hessian
from core.vector_space import VectorSpace

from .base import Gradient, Objective, UnconstrainedOptimizer, backtracking_line_search
from .result import IterationRecord, OptimizationResult

logger = logging.getLogger(__name__)

# Curvature pairs with sᵀy at or below this (relative) size are skipped
CURVATURE_THRESHOLD = 1e-10

# Consecutive negligible steps before BFGS declares stagnation
STAGNATION_LIMIT = 3


class NewtonOptimizer(UnconstrainedOptimizer):
    """
    Newton's method with a gradient-descent fallback.

    Solves H·p = -g by Cholesky. When the Hessian is not positive definite,
    or p is not a descent direction, a steepest-descent step is taken
    instead of failing.
    """

    name = "Newton"

    def __init__(
        self,
        max_iterations: int = 100,
        tolerance: float = 1e-6,
        use_line_search: bool = True,
        hessian_step: float = HESSIAN_STEP,
        **kwargs
    ):
        super().__init__(max_iterations=max_iterations, tolerance=tolerance, **kwargs)
        self.use_line_search = use_line_search
        self.hessian_step = hessian_step
        self._hessian = None

    def minimize(self, objective, initial_point, constraints=(), gradient=None,
                 hessian: Optional[Callable[[VectorSpace], np.ndarray]] = None) -> OptimizationResult:
        """
        Minimize with Newton steps.

        Args:
            hessian: Optional analytic Hessian returning an (n, n) array;
                a finite-difference Hessian is used otherwise
        """
        self._hessian = hessian
        try:
            return super().minimize(objective, initial_point, constraints, gradient)
        finally:
            self._hessian = None

    def _hessian_at(self, objective: Objective, x: VectorSpace) -> np.ndarray:
        if self._hessian is not None:
            return np.asarray(self._hessian(x), dtype=float)
        return numerical_hessian(objective, x, self.hessian_step)

    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        vector_type = type(x0)
        x = x0
        value = float(objective(x))
        gradient_norm = float('inf')
        fallbacks = 0

        for iteration in range(self.max_iterations):
            g = gradient(x)
            gradient_norm = self._check_gradient(g)
            self._record(history, iteration, x, value, gradient_norm)

            if gradient_norm < self.tolerance:
                result = self._finish(objective, x, iteration, True, gradient_norm,
                                      "Gradient norm below tolerance", value)
                result.metadata['gradient_fallbacks'] = fallbacks
                return result

            g_array = g.to_array()
            newton_step = linalg.cholesky_solve(self._hessian_at(objective, x), -g_array)

            steepest = newton_step is None or not np.all(np.isfinite(newton_step)) or g_array @ newton_step >= 0
            if steepest:
                fallbacks += 1
                newton_step = -g_array

            direction = vector_type.from_array(newton_step)
            slope = float(g_array @ newton_step)

            if self.use_line_search:
                alpha, new_value = backtracking_line_search(objective, x, value, slope, direction)
                if alpha == 0.0 and not steepest:
                    # Newton direction failed, retry along -g
                    fallbacks += 1
                    direction = -g
                    alpha, new_value = backtracking_line_search(objective, x, value, -gradient_norm ** 2, direction)
                if alpha == 0.0:
                    result = self._finish(objective, x, iteration, False, gradient_norm,
                                          "Line search failed to decrease the objective", value)
                    result.metadata['gradient_fallbacks'] = fallbacks
                    return result
                x = x + alpha * direction
                value = new_value
            else:
                x = x + direction
                value = float(objective(x))

        gradient_norm = self._check_gradient(gradient(x))
        converged = gradient_norm < self.tolerance
        result = self._finish(
            objective, x, self.max_iterations, converged, gradient_norm,
            "Gradient norm below tolerance" if converged else "Maximum iterations reached",
            value
        )
        result.metadata['gradient_fallbacks'] = fallbacks
        return result


class BFGSOptimizer(UnconstrainedOptimizer):
    """
    Quasi-Newton BFGS with an inverse-Hessian approximation.

    H starts as the identity and is rescaled by sᵀy / yᵀy before the first
    update. Updates whose curvature sᵀy is not positive are skipped so H
    stays positive definite; if H still yields an ascent direction it is
    reset to the identity.

    Usage:
        optimizer = BFGSOptimizer(max_iterations=500)
        result = optimizer.minimize(rosenbrock, VectorN([-1.2, 1.0]))
    """

    name = "BFGS"

    def __init__(self, max_iterations: int = 500, tolerance: float = 1e-6, **kwargs):
        super().__init__(max_iterations=max_iterations, tolerance=tolerance, **kwargs)

    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        vector_type = type(x0)
        n = x0.dimension
        identity = np.eye(n)
        inverse_hessian = identity.copy()
        scaled = False
        stagnant_steps = 0

        x = x0
        value = float(objective(x))
        g = gradient(x)
        gradient_norm = self._check_gradient(g)

        for iteration in range(self.max_iterations):
            self._record(history, iteration, x, value, gradient_norm)

            if gradient_norm < self.tolerance:
                return self._finish(objective, x, iteration, True, gradient_norm,
                                    "Gradient norm below tolerance", value)

            g_array = g.to_array()
            direction_array = -inverse_hessian @ g_array
            slope = float(g_array @ direction_array)

            if not slope < 0:
                logger.debug(f"BFGS reset at iteration {iteration}: not a descent direction")
                inverse_hessian = identity.copy()
                scaled = False
                direction_array = -g_array
                slope = -float(g_array @ g_array)

            direction = vector_type.from_array(direction_array)
            alpha, new_value = backtracking_line_search(objective, x, value, slope, direction)

            if alpha == 0.0:
                if scaled or not np.array_equal(inverse_hessian, identity):
                    inverse_hessian = identity.copy()
                    scaled = False
                    continue
                return self._finish(objective, x, iteration, False, gradient_norm,
                                    "Line search failed to decrease the objective", value)

            x_new = x + alpha * direction
            g_new = gradient(x_new)
            gradient_norm = self._check_gradient(g_new)

            s = alpha * direction_array
            y = g_new.to_array() - g_array
            sy = float(s @ y)

            if sy > CURVATURE_THRESHOLD * np.linalg.norm(s) * np.linalg.norm(y):
                if not scaled:
                    inverse_hessian = (sy / float(y @ y)) * identity
                    scaled = True
                hy = inverse_hessian @ y
                yhy = float(y @ hy)
                inverse_hessian = (
                    inverse_hessian
                    + ((sy + yhy) / sy ** 2) * np.outer(s, s)
                    - (np.outer(hy, s) + np.outer(s, hy)) / sy
                )

            # Stagnation: the step no longer changes x or f at working precision
            step_size = float(np.linalg.norm(s))
            x_scale = max(1.0, x.norm)
            if step_size <= 1e-14 * x_scale and abs(value - new_value) <= 1e-15 * max(1.0, abs(value)):
                stagnant_steps += 1
            else:
                stagnant_steps = 0

            x, value, g = x_new, new_value, g_new

            if stagnant_steps >= STAGNATION_LIMIT:
                converged = gradient_norm < self.tolerance
                return self._finish(objective, x, iteration + 1, converged, gradient_norm,
                                    "Gradient norm below tolerance" if converged else "Stagnated", value)

        converged = gradient_norm < self.tolerance
        return self._finish(
            objective, x, self.max_iterations, converged, gradient_norm,
            "Gradient norm below tolerance" if converged else "Maximum iterations reached",
            value
        )
