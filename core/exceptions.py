"""
Core Exceptions for the Portfolio Optimization Engine.

Custom exceptions for handling structural and numerical error conditions.
Non-convergence is never an exception: it is reported on the result.
"""


class OptimizerError(Exception):
    """Base exception for all optimizer errors."""
    pass


class DimensionMismatchError(OptimizerError, ValueError):
    """Vector or matrix shapes disagree."""

    def __init__(self, message: str, expected: int = None, actual: int = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InvalidInputError(OptimizerError, ValueError):
    """Input values are malformed (empty, non-finite, out of range)."""
    pass


class InvalidConstraintError(OptimizerError):
    """Constraint function produced a NaN or infinite residual."""

    def __init__(self, message: str, index: int = None):
        super().__init__(message)
        self.index = index


class NonFiniteValueError(OptimizerError):
    """Objective gradient became NaN or infinite."""
    pass


class UnsupportedConstraintsError(OptimizerError):
    """Optimizer was handed constraints it cannot process."""
    pass


class CovarianceError(OptimizerError, ValueError):
    """Covariance matrix is not symmetric positive semi-definite."""

    def __init__(self, message: str, min_eigenvalue: float = None):
        super().__init__(message)
        self.min_eigenvalue = min_eigenvalue


class ConfigurationError(OptimizerError):
    """Invalid configuration."""
    pass
