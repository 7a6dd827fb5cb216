"""
Penalty-Barrier Method - Mixed equality and inequality constraints.

Inequalities g(x) <= 0 enter the merit function through the
Powell-Hestenes-Rockafellar shifted quadratic penalty

    (1/2ρ) · (max(0, μ + ρ·g(x))² - μ²)

with multiplier update μ ← max(0, μ + ρ·g(x)). The term is finite
everywhere, so infeasible starting points are allowed.
"""

import logging
from typing import List

from .augmented_lagrangian import AugmentedLagrangianOptimizer
from .constraint import Constraint

logger = logging.getLogger(__name__)


class PenaltyBarrierOptimizer(AugmentedLagrangianOptimizer):
    """
    Augmented Lagrangian extended with shifted penalties for inequalities.

    Accepts any mix of equality and inequality constraints; with none at
    all it falls back to plain BFGS.

    Usage:
        optimizer = PenaltyBarrierOptimizer()
        constraints = [budget] + [Constraint.inequality(lambda w, i=i: -w[i]) for i in range(n)]
        result = optimizer.minimize(variance, VectorN.equal_weights(n), constraints)
    """

    name = "Penalty-Barrier"

    def _check_constraints(self, equalities: List[Constraint], inequalities: List[Constraint]) -> None:
        logger.debug(
            f"{self.name}: {len(equalities)} equality, {len(inequalities)} inequality constraints"
        )
