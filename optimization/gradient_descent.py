"""
First-order unconstrained optimizers: gradient descent, momentum and Adam.
"""

import logging
from typing import List, Optional
import numpy as np

from core.vector_space import VectorSpace

from .base import Gradient, Objective, UnconstrainedOptimizer, backtracking_line_search
from .result import IterationRecord, OptimizationResult

logger = logging.getLogger(__name__)


class GradientDescentOptimizer(UnconstrainedOptimizer):
    """
    Steepest descent with a decaying learning rate.

    The step at iteration t is η / (1 + decay·t). With use_line_search the
    raw step is shortened by Armijo backtracking until it decreases f.
    """

    name = "Gradient Descent"

    def __init__(
        self,
        learning_rate: float = 0.01,
        decay_rate: float = 0.0,
        use_line_search: bool = False,
        max_iterations: int = 1000,
        tolerance: float = 1e-6,
        **kwargs
    ):
        super().__init__(max_iterations=max_iterations, tolerance=tolerance, **kwargs)
        self.learning_rate = learning_rate
        self.decay_rate = decay_rate
        self.use_line_search = use_line_search

    def _step_size(self, iteration: int) -> float:
        return self.learning_rate / (1.0 + self.decay_rate * iteration)

    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        x = x0
        gradient_norm = float('inf')

        for iteration in range(self.max_iterations):
            g = gradient(x)
            gradient_norm = self._check_gradient(g)

            if history is not None:
                self._record(history, iteration, x, float(objective(x)), gradient_norm)

            if gradient_norm < self.tolerance:
                return self._finish(objective, x, iteration, True, gradient_norm, "Gradient norm below tolerance")

            step = -self._step_size(iteration) * g

            if self.use_line_search:
                value = float(objective(x))
                alpha, _ = backtracking_line_search(objective, x, value, -self._step_size(iteration) * gradient_norm ** 2, step)
                if alpha == 0.0:
                    return self._finish(objective, x, iteration, False, gradient_norm, "Line search failed", value)
                step = alpha * step

            x = x + step

        gradient_norm = self._check_gradient(gradient(x))
        converged = gradient_norm < self.tolerance
        return self._finish(
            objective, x, self.max_iterations, converged, gradient_norm,
            "Gradient norm below tolerance" if converged else "Maximum iterations reached"
        )


class MomentumOptimizer(GradientDescentOptimizer):
    """
    Heavy-ball gradient descent.

    v ← β·v - η·∇f(x)
    x ← x + v
    """

    name = "Momentum"

    def __init__(
        self,
        learning_rate: float = 0.01,
        momentum: float = 0.9,
        decay_rate: float = 0.0,
        max_iterations: int = 1000,
        tolerance: float = 1e-6,
        **kwargs
    ):
        super().__init__(
            learning_rate=learning_rate,
            decay_rate=decay_rate,
            max_iterations=max_iterations,
            tolerance=tolerance,
            **kwargs
        )
        self.momentum = momentum

    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        x = x0
        velocity = x0.zeros_like()
        gradient_norm = float('inf')

        for iteration in range(self.max_iterations):
            g = gradient(x)
            gradient_norm = self._check_gradient(g)

            if history is not None:
                self._record(history, iteration, x, float(objective(x)), gradient_norm)

            if gradient_norm < self.tolerance:
                return self._finish(objective, x, iteration, True, gradient_norm, "Gradient norm below tolerance")

            velocity = self.momentum * velocity - self._step_size(iteration) * g
            x = x + velocity

        gradient_norm = self._check_gradient(gradient(x))
        converged = gradient_norm < self.tolerance
        return self._finish(
            objective, x, self.max_iterations, converged, gradient_norm,
            "Gradient norm below tolerance" if converged else "Maximum iterations reached"
        )


class AdamOptimizer(UnconstrainedOptimizer):
    """
    Adam: per-coordinate step sizes from bias-corrected first and second
    moment estimates of the gradient.

    m ← β₁m + (1-β₁)g,  v ← β₂v + (1-β₂)g²
    x ← x - η · m̂ / (√v̂ + ε)
    """

    name = "Adam"

    def __init__(
        self,
        learning_rate: float = 0.01,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-8,
        max_iterations: int = 1000,
        tolerance: float = 1e-6,
        **kwargs
    ):
        super().__init__(max_iterations=max_iterations, tolerance=tolerance, **kwargs)
        self.learning_rate = learning_rate
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon

    def _run(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: VectorSpace,
        history: Optional[List[IterationRecord]]
    ) -> OptimizationResult:
        vector_type = type(x0)
        x = x0
        m = np.zeros(x0.dimension)
        v = np.zeros(x0.dimension)
        gradient_norm = float('inf')

        for iteration in range(self.max_iterations):
            g = gradient(x)
            gradient_norm = self._check_gradient(g)

            if history is not None:
                self._record(history, iteration, x, float(objective(x)), gradient_norm)

            if gradient_norm < self.tolerance:
                return self._finish(objective, x, iteration, True, gradient_norm, "Gradient norm below tolerance")

            g_array = g.to_array()
            t = iteration + 1
            m = self.beta1 * m + (1.0 - self.beta1) * g_array
            v = self.beta2 * v + (1.0 - self.beta2) * g_array ** 2

            m_hat = m / (1.0 - self.beta1 ** t)
            v_hat = v / (1.0 - self.beta2 ** t)

            step = self.learning_rate * m_hat / (np.sqrt(v_hat) + self.epsilon)
            x = x - vector_type.from_array(step)

        gradient_norm = self._check_gradient(gradient(x))
        converged = gradient_norm < self.tolerance
        return self._finish(
            objective, x, self.max_iterations, converged, gradient_norm,
            "Gradient norm below tolerance" if converged else "Maximum iterations reached"
        )
