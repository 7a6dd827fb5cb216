"""
Constraint Model - Scalar equality and inequality constraints.

Equality constraints are satisfied when h(x) = 0, inequality constraints
when g(x) <= 0. Constraint functions must be pure: they are evaluated many
times per iteration.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from core.differentiation import GRADIENT_STEP, numerical_gradient
from core.exceptions import InvalidConstraintError
from core.vector_space import VectorSpace

DEFAULT_TOLERANCE = 1e-6


class ConstraintType(Enum):
    """Constraint kinds."""
    EQUALITY = "equality"
    INEQUALITY = "inequality"


@dataclass(frozen=True)
class Constraint:
    """
    Single scalar constraint over a vector-space point.

    Usage:
        budget = Constraint.equality(lambda w: w.sum - 1.0)
        long_first = Constraint.inequality(lambda w: -w[0])

        budget.is_satisfied(VectorN([0.5, 0.5]))  # True
    """
    kind: ConstraintType
    function: Callable[[VectorSpace], float]
    gradient_function: Optional[Callable[[VectorSpace], VectorSpace]] = None
    name: str = ""

    @classmethod
    def equality(
        cls,
        function: Callable[[VectorSpace], float],
        gradient: Optional[Callable[[VectorSpace], VectorSpace]] = None,
        name: str = ""
    ) -> 'Constraint':
        """Create h(x) = 0."""
        return cls(ConstraintType.EQUALITY, function, gradient, name)

    @classmethod
    def inequality(
        cls,
        function: Callable[[VectorSpace], float],
        gradient: Optional[Callable[[VectorSpace], VectorSpace]] = None,
        name: str = ""
    ) -> 'Constraint':
        """Create g(x) <= 0."""
        return cls(ConstraintType.INEQUALITY, function, gradient, name)

    @property
    def is_equality(self) -> bool:
        return self.kind == ConstraintType.EQUALITY

    @property
    def is_inequality(self) -> bool:
        return self.kind == ConstraintType.INEQUALITY

    @property
    def label(self) -> str:
        return self.name or f"{self.kind.value} constraint"

    def evaluate(self, point: VectorSpace) -> float:
        """
        Constraint residual at a point.

        Raises:
            InvalidConstraintError: If the function returns NaN or infinity
        """
        value = float(self.function(point))
        if not math.isfinite(value):
            raise InvalidConstraintError(f"{self.label} evaluated to {value} at {point!r}")
        return value

    def violation(self, point: VectorSpace) -> float:
        """|h(x)| for equalities, max(0, g(x)) for inequalities."""
        value = self.evaluate(point)
        if self.is_equality:
            return abs(value)
        return max(0.0, value)

    def is_satisfied(self, point: VectorSpace, tolerance: float = DEFAULT_TOLERANCE) -> bool:
        value = self.evaluate(point)
        if self.is_equality:
            return abs(value) <= tolerance
        return value <= tolerance

    def gradient(self, point: VectorSpace, step: float = GRADIENT_STEP) -> VectorSpace:
        """Analytic gradient when provided, central difference otherwise."""
        if self.gradient_function is not None:
            return self.gradient_function(point)
        return numerical_gradient(self.evaluate, point, step)


def split_constraints(constraints: Sequence[Constraint]) -> Tuple[List[Constraint], List[Constraint]]:
    """Separate (equality, inequality) constraints, preserving order."""
    equalities = [c for c in constraints if c.is_equality]
    inequalities = [c for c in constraints if c.is_inequality]
    return equalities, inequalities


def violations(constraints: Sequence[Constraint], point: VectorSpace) -> List[float]:
    return [c.violation(point) for c in constraints]


def max_violation(constraints: Sequence[Constraint], point: VectorSpace) -> float:
    """Largest violation, 0 when there are no constraints."""
    return max(violations(constraints, point), default=0.0)


def all_satisfied(
    constraints: Sequence[Constraint],
    point: VectorSpace,
    tolerance: float = DEFAULT_TOLERANCE
) -> bool:
    return all(c.is_satisfied(point, tolerance) for c in constraints)
