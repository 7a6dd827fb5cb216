"""
Core Module - Foundation components for the optimization engine.
"""

from .exceptions import (
    OptimizerError,
    DimensionMismatchError,
    InvalidInputError,
    InvalidConstraintError,
    NonFiniteValueError,
    UnsupportedConstraintsError,
    CovarianceError,
    ConfigurationError,
)

from .vector_space import (
    VectorSpace,
    ArrayVector,
    Vector2D,
    Vector3D,
    VectorN,
    as_vector,
)

from .differentiation import (
    numerical_gradient,
    numerical_hessian,
)


__all__ = [
    # Exceptions
    'OptimizerError',
    'DimensionMismatchError',
    'InvalidInputError',
    'InvalidConstraintError',
    'NonFiniteValueError',
    'UnsupportedConstraintsError',
    'CovarianceError',
    'ConfigurationError',

    # Vectors
    'VectorSpace',
    'ArrayVector',
    'Vector2D',
    'Vector3D',
    'VectorN',
    'as_vector',

    # Differentiation
    'numerical_gradient',
    'numerical_hessian',
]
