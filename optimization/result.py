"""
Optimization results shared by every minimizer.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from core.vector_space import VectorSpace


@dataclass(frozen=True)
class IterationRecord:
    """One entry of an optimizer's iteration history."""
    iteration: int
    point: VectorSpace
    value: float
    gradient_norm: float = 0.0
    constraint_violation: float = 0.0
    penalty: Optional[float] = None


@dataclass
class OptimizationResult:
    """
    Outcome of a single minimize() call.

    Callers must check `converged`: when the iteration budget runs out the
    best point found is still returned, with converged=False.
    """
    solution: VectorSpace
    objective_value: float
    converged: bool
    iterations: int
    gradient_norm: float = 0.0
    constraint_violation: float = 0.0
    lagrange_multipliers: List[float] = field(default_factory=list)
    inequality_multipliers: List[float] = field(default_factory=list)
    penalty: Optional[float] = None
    algorithm: str = ""
    selection_reason: str = ""
    message: str = ""
    history: Optional[List[IterationRecord]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.converged

    def negated(self) -> 'OptimizationResult':
        """
        Result of maximize(f) expressed from minimize(-f).

        Values and equality multipliers flip sign. Inequality multipliers
        stay as solved for -f, so they remain non-negative for g(x) <= 0
        and the reported values satisfy
        grad f + sum(lambda * grad h) = sum(mu * grad g).
        """
        history = None
        if self.history is not None:
            history = [replace(record, value=-record.value) for record in self.history]
        return replace(
            self,
            objective_value=-self.objective_value,
            lagrange_multipliers=[-m for m in self.lagrange_multipliers],
            history=history
        )

    def summary(self) -> str:
        lines = [
            f"{self.algorithm or 'Optimization'} result:",
            f"  Solution: {[round(v, 6) for v in self.solution.to_list()]}",
            f"  Objective: {self.objective_value:.8g}",
            f"  Iterations: {self.iterations}",
            f"  Converged: {self.converged}",
            f"  Gradient norm: {self.gradient_norm:.3e}",
        ]
        if self.lagrange_multipliers or self.inequality_multipliers:
            lines.append(f"  Constraint violation: {self.constraint_violation:.3e}")
        if self.message:
            lines.append(f"  Message: {self.message}")
        return "\n".join(lines)
