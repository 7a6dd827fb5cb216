"""
Linear Algebra Provider - Thin facade over numpy / scipy.linalg.

Provides matrix coercion (as_matrix), products and dense solves (multiply,
solve), factorizations (cholesky, cholesky_solve, qr_decomposition) and
covariance checks (is_symmetric, min_eigenvalue, validate_covariance).
Newton steps go through cholesky_solve and the portfolio layer validates
its inputs with validate_covariance.
"""

import logging
from typing import Optional, Tuple
import numpy as np
from scipy import linalg as sla

from .exceptions import CovarianceError, DimensionMismatchError, InvalidInputError

logger = logging.getLogger(__name__)


def as_matrix(matrix, name: str = "matrix") -> np.ndarray:
    """Convert nested lists / DataFrames to a finite 2-D float array."""
    array = np.asarray(matrix, dtype=float)
    if array.ndim != 2:
        raise DimensionMismatchError(f"{name} must be 2-dimensional, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{name} contains NaN or infinite entries")
    return array


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Matrix-matrix or matrix-vector product with shape checking."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape[-1] != b.shape[0]:
        raise DimensionMismatchError(
            f"Cannot multiply shapes {a.shape} and {b.shape}",
            expected=a.shape[-1],
            actual=b.shape[0]
        )
    return a @ b


def solve(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve the dense linear system A x = b.

    Raises:
        numpy.linalg.LinAlgError: If A is singular
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape[0] != a.shape[1] or a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(f"Cannot solve system with shapes {a.shape} and {b.shape}")
    return sla.solve(a, b)


def cholesky(a: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Cholesky factorization for symmetric positive definite matrices.

    Returns:
        scipy (factor, lower) pair usable with cho_solve

    Raises:
        numpy.linalg.LinAlgError: If A is not positive definite
    """
    return sla.cho_factor(np.asarray(a, dtype=float), lower=True, check_finite=True)


def cholesky_solve(a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    """Solve A x = b through Cholesky, None if A is not positive definite."""
    try:
        factor = cholesky(a)
    except (np.linalg.LinAlgError, ValueError):
        return None
    return sla.cho_solve(factor, np.asarray(b, dtype=float))


def qr_decomposition(a: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Economic QR decomposition A = Q R."""
    q, r = sla.qr(np.asarray(a, dtype=float), mode='economic')
    return q, r


def is_symmetric(a: np.ndarray, tolerance: float = 1e-10) -> bool:
    a = np.asarray(a, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        return False
    scale = max(1.0, float(np.max(np.abs(a))))
    return bool(np.allclose(a, a.T, atol=tolerance * scale, rtol=0.0))


def min_eigenvalue(a: np.ndarray) -> float:
    """Smallest eigenvalue of the symmetric part of A."""
    a = np.asarray(a, dtype=float)
    return float(np.linalg.eigvalsh(0.5 * (a + a.T))[0])


def validate_covariance(covariance: np.ndarray, tolerance: float = 1e-10) -> None:
    """
    Check that a covariance matrix is symmetric positive semi-definite.

    Uses an eigenvalue bound rather than Cholesky so that singular but
    valid matrices (zero-variance assets, perfect correlation) pass.

    Raises:
        CovarianceError: If the matrix is asymmetric or has a negative eigenvalue
    """
    if not is_symmetric(covariance):
        raise CovarianceError("Covariance matrix is not symmetric")

    smallest = min_eigenvalue(covariance)
    scale = max(1.0, float(np.max(np.abs(np.diag(covariance)))))
    if smallest < -tolerance * scale:
        raise CovarianceError(
            f"Covariance matrix is not positive semi-definite (min eigenvalue {smallest:.3e})",
            min_eigenvalue=smallest
        )
    logger.debug(f"Covariance validated: min eigenvalue {smallest:.3e}")
