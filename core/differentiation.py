"""
Numerical differentiation by symmetric finite differences.
"""

from typing import Callable
import numpy as np

from .exceptions import NonFiniteValueError
from .vector_space import VectorSpace

# Central-difference steps balancing truncation against round-off error
GRADIENT_STEP = 1e-6
HESSIAN_STEP = 1e-4


def numerical_gradient(
    function: Callable[[VectorSpace], float],
    point: VectorSpace,
    step: float = GRADIENT_STEP
) -> VectorSpace:
    """
    Central-difference gradient (f(x + h·eᵢ) - f(x - h·eᵢ)) / 2h.

    Args:
        function: Scalar function of a vector
        point: Point at which to differentiate
        step: Difference step h

    Returns:
        Gradient as a vector of the same type as point

    Raises:
        NonFiniteValueError: If any partial derivative is NaN or infinite
    """
    vector_type = type(point)
    base = np.array(point.to_array(), dtype=float)
    gradient = np.empty_like(base)

    for i in range(base.shape[0]):
        original = base[i]
        base[i] = original + step
        f_plus = function(vector_type.from_array(base))
        base[i] = original - step
        f_minus = function(vector_type.from_array(base))
        base[i] = original
        gradient[i] = (f_plus - f_minus) / (2.0 * step)

    if not np.all(np.isfinite(gradient)):
        raise NonFiniteValueError(f"Numerical gradient is not finite at {point!r}")

    return vector_type.from_array(gradient)


def numerical_hessian(
    function: Callable[[VectorSpace], float],
    point: VectorSpace,
    step: float = HESSIAN_STEP
) -> np.ndarray:
    """
    Central-difference Hessian, symmetrized.

    Diagonal entries use the three-point second difference, off-diagonal
    entries the four-point cross difference.
    """
    vector_type = type(point)
    base = np.array(point.to_array(), dtype=float)
    n = base.shape[0]
    hessian = np.zeros((n, n))

    def evaluate(offsets):
        shifted = base.copy()
        for index, delta in offsets:
            shifted[index] += delta
        return function(vector_type.from_array(shifted))

    f0 = function(point)
    for i in range(n):
        f_plus = evaluate([(i, step)])
        f_minus = evaluate([(i, -step)])
        hessian[i, i] = (f_plus - 2.0 * f0 + f_minus) / (step * step)

        for j in range(i + 1, n):
            f_pp = evaluate([(i, step), (j, step)])
            f_pm = evaluate([(i, step), (j, -step)])
            f_mp = evaluate([(i, -step), (j, step)])
            f_mm = evaluate([(i, -step), (j, -step)])
            value = (f_pp - f_pm - f_mp + f_mm) / (4.0 * step * step)
            hessian[i, j] = value
            hessian[j, i] = value

    if not np.all(np.isfinite(hessian)):
        raise NonFiniteValueError(f"Numerical Hessian is not finite at {point!r}")

    return hessian
