"""
Portfolio Constraints Module - Budget, bounds and leverage limits.

Builds the Constraint lists consumed by the generic optimizers. Linear
constraints carry analytic gradients; the leverage limit Σ|wᵢ| - L is
differentiated numerically.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union
import numpy as np

from core.exceptions import DimensionMismatchError, InvalidInputError
from core.vector_space import VectorN, VectorSpace
from optimization.constraint import DEFAULT_TOLERANCE, Constraint

logger = logging.getLogger(__name__)


# Constraint builders

def budget_constraint(total: float = 1.0) -> Constraint:
    """Σwᵢ - total = 0"""
    return Constraint.equality(
        lambda w: float(np.sum(w.to_array())) - total,
        gradient=lambda w: VectorN.ones(w.dimension),
        name="budget"
    )


def position_limit_constraint(index: int, max_weight: float) -> Constraint:
    """wᵢ - max <= 0"""
    return Constraint.inequality(
        lambda w: w[index] - max_weight,
        gradient=lambda w: VectorN.basis(w.dimension, index, 1.0),
        name=f"max_weight[{index}]"
    )


def position_minimum_constraint(index: int, min_weight: float) -> Constraint:
    """min - wᵢ <= 0"""
    return Constraint.inequality(
        lambda w: min_weight - w[index],
        gradient=lambda w: VectorN.basis(w.dimension, index, -1.0),
        name=f"min_weight[{index}]"
    )


def non_negativity_constraints(n_assets: int) -> List[Constraint]:
    """-wᵢ <= 0 for every asset."""
    return [position_minimum_constraint(i, 0.0) for i in range(n_assets)]


def box_constraints(n_assets: int, min_weight: float, max_weight: float) -> List[Constraint]:
    """min <= wᵢ <= max for every asset."""
    if min_weight > max_weight:
        raise InvalidInputError(f"min_weight {min_weight} exceeds max_weight {max_weight}")
    constraints = []
    for i in range(n_assets):
        constraints.append(position_minimum_constraint(i, min_weight))
        constraints.append(position_limit_constraint(i, max_weight))
    return constraints


def target_return_constraint(expected_returns, target: float) -> Constraint:
    """μᵀw - target = 0"""
    mu = np.array(expected_returns, dtype=float)
    mu.setflags(write=False)
    return Constraint.equality(
        lambda w: float(w.to_array() @ mu) - target,
        gradient=lambda w: VectorN(mu),
        name="target_return"
    )


def leverage_limit_constraint(max_leverage: float) -> Constraint:
    """Σ|wᵢ| - L <= 0"""
    if max_leverage <= 0:
        raise InvalidInputError(f"max_leverage must be positive, got {max_leverage}")
    return Constraint.inequality(
        lambda w: float(np.abs(w.to_array()).sum()) - max_leverage,
        name="leverage"
    )


# Constraint sets

class ConstraintSetKind(Enum):
    """Predefined constraint sets."""
    UNCONSTRAINED = "unconstrained"  # Budget only, shorting allowed
    LONG_ONLY = "long_only"          # Budget + wᵢ >= 0
    LONG_SHORT = "long_short"        # Budget + Σ|wᵢ| <= L
    BOX = "box"                      # Budget + min <= wᵢ <= max


@dataclass
class PositionLimit:
    """Per-asset weight bounds overriding the set-wide ones. None = unbounded."""
    symbol: str
    min_weight: Optional[float] = None
    max_weight: Optional[float] = None


@dataclass
class ConstraintSet:
    """
    Portfolio constraint set.

    The budget constraint is always first in build(); per-asset bounds
    follow in asset order, then the leverage limit.

    Usage:
        constraints = ConstraintSet.box_constrained(0.05, 0.40)
        constraints.add_position_limit('BTC', max_weight=0.10)
        constraint_list = constraints.build(4, ['SPY', 'TLT', 'GLD', 'BTC'])
    """
    kind: ConstraintSetKind = ConstraintSetKind.LONG_ONLY
    min_weight: Optional[float] = None
    max_weight: Optional[float] = None
    max_leverage: Optional[float] = None

    # Position-specific limits
    position_limits: Dict[str, PositionLimit] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind == ConstraintSetKind.LONG_ONLY and self.min_weight is None:
            self.min_weight = 0.0
        if self.kind == ConstraintSetKind.LONG_SHORT and self.max_leverage is None:
            raise InvalidInputError("long_short constraint set requires max_leverage")
        if self.kind == ConstraintSetKind.BOX and (self.min_weight is None or self.max_weight is None):
            raise InvalidInputError("box constraint set requires min_weight and max_weight")
        if self.min_weight is not None and self.max_weight is not None and self.min_weight > self.max_weight:
            raise InvalidInputError(f"min_weight {self.min_weight} exceeds max_weight {self.max_weight}")

    @classmethod
    def unconstrained(cls) -> 'ConstraintSet':
        return cls(ConstraintSetKind.UNCONSTRAINED)

    @classmethod
    def long_only(cls) -> 'ConstraintSet':
        return cls(ConstraintSetKind.LONG_ONLY)

    @classmethod
    def long_short(cls, max_leverage: float = 1.3) -> 'ConstraintSet':
        return cls(ConstraintSetKind.LONG_SHORT, max_leverage=max_leverage)

    @classmethod
    def box_constrained(cls, min_weight: float, max_weight: float) -> 'ConstraintSet':
        return cls(ConstraintSetKind.BOX, min_weight=min_weight, max_weight=max_weight)

    def add_position_limit(
        self,
        symbol: str,
        min_weight: float = None,
        max_weight: float = None
    ) -> None:
        """Add position-specific limit."""
        self.position_limits[symbol] = PositionLimit(
            symbol=symbol,
            min_weight=min_weight,
            max_weight=max_weight
        )

    @property
    def has_inequalities(self) -> bool:
        if self.kind != ConstraintSetKind.UNCONSTRAINED:
            return True
        return any(
            limit.min_weight is not None or limit.max_weight is not None
            for limit in self.position_limits.values()
        )

    def get_bounds(self, symbols: Sequence[str]) -> List[Tuple[Optional[float], Optional[float]]]:
        """
        Get weight bounds per asset.

        Args:
            symbols: Asset labels

        Returns:
            List of (min, max) bounds for each symbol, None when unbounded
        """
        bounds = []

        for symbol in symbols:
            lower, upper = self.min_weight, self.max_weight
            if symbol in self.position_limits:
                limit = self.position_limits[symbol]
                if limit.min_weight is not None:
                    lower = limit.min_weight
                if limit.max_weight is not None:
                    upper = limit.max_weight
            bounds.append((lower, upper))

        return bounds

    def build(self, n_assets: int, symbols: Optional[Sequence[str]] = None) -> List[Constraint]:
        """
        Constraint list for n_assets weights.

        Raises:
            DimensionMismatchError: If symbols does not have n_assets entries
        """
        if n_assets <= 0:
            raise InvalidInputError(f"n_assets must be positive, got {n_assets}")
        symbols = _symbols(n_assets, symbols)

        constraints = [budget_constraint()]

        for i, (lower, upper) in enumerate(self.get_bounds(symbols)):
            if lower is not None:
                constraints.append(position_minimum_constraint(i, lower))
            if upper is not None:
                constraints.append(position_limit_constraint(i, upper))

        if self.max_leverage is not None:
            constraints.append(leverage_limit_constraint(self.max_leverage))

        return constraints

    def validate_weights(
        self,
        weights: Union[Dict[str, float], Sequence[float], VectorSpace],
        symbols: Optional[Sequence[str]] = None,
        tolerance: float = DEFAULT_TOLERANCE
    ) -> tuple:
        """
        Validate if weights satisfy constraints.

        Args:
            weights: Symbol to weight mapping, or weights in asset order
            symbols: Labels for positional weights
            tolerance: Allowed violation

        Returns:
            Tuple of (is_valid, list of violations)
        """
        if isinstance(weights, dict):
            symbols = list(weights.keys())
            values = np.array(list(weights.values()), dtype=float)
        elif isinstance(weights, VectorSpace):
            values = weights.to_array()
        else:
            values = np.asarray(weights, dtype=float)
        symbols = _symbols(len(values), symbols)

        violations = []

        # Check weight sum
        total = float(values.sum())
        if abs(total - 1.0) > tolerance:
            violations.append(f"Total weight {total:.2%} != 100%")

        # Check individual weights
        for symbol, weight, (lower, upper) in zip(symbols, values, self.get_bounds(symbols)):
            if lower is not None and weight < lower - tolerance:
                violations.append(f"{symbol} weight {weight:.2%} < min {lower:.2%}")
            if upper is not None and weight > upper + tolerance:
                violations.append(f"{symbol} weight {weight:.2%} > max {upper:.2%}")

        # Check leverage
        if self.max_leverage is not None:
            leverage = float(np.abs(values).sum())
            if leverage > self.max_leverage + tolerance:
                violations.append(f"Leverage {leverage:.2f} > max {self.max_leverage:.2f}")

        return len(violations) == 0, violations


def _symbols(n_assets: int, symbols: Optional[Sequence[str]]) -> List[str]:
    if symbols is None:
        return [f"asset_{i}" for i in range(n_assets)]
    symbols = list(symbols)
    if len(symbols) != n_assets:
        raise DimensionMismatchError(
            f"Expected {n_assets} symbols, got {len(symbols)}",
            expected=n_assets,
            actual=len(symbols)
        )
    return symbols
