"""
Vector Space - Algebraic contract shared by every optimizer.

All optimization algorithms are written once against VectorSpace, so the
same code runs whether the decision variable is a 2-vector, a 3-vector or
an N-vector of portfolio weights.
"""

import math
import numbers
from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence, Union
import numpy as np

from .exceptions import DimensionMismatchError, InvalidInputError


class VectorSpace(ABC):
    """
    Minimal vector space over the reals.

    Implementations must provide construction from / conversion to a flat
    numpy array plus addition, scalar multiplication, negation and the dot
    product. Everything else (subtraction, norm, indexing, list conversion)
    is derived here.

    Usage:
        x = VectorN([0.25, 0.75])
        y = x + 0.5 * VectorN([1.0, -1.0])
        length = y.norm
    """

    # numpy scalars must defer to __rmul__ instead of broadcasting
    __array_ufunc__ = None

    @classmethod
    @abstractmethod
    def from_array(cls, values: Sequence[float]) -> 'VectorSpace':
        """Build a vector of this type from an ordered sequence."""
        pass

    @abstractmethod
    def to_array(self) -> np.ndarray:
        """Components as a read-only 1-D float array."""
        pass

    @abstractmethod
    def __add__(self, other: 'VectorSpace') -> 'VectorSpace':
        pass

    @abstractmethod
    def __mul__(self, scalar: float) -> 'VectorSpace':
        pass

    @abstractmethod
    def __neg__(self) -> 'VectorSpace':
        pass

    @abstractmethod
    def dot(self, other: 'VectorSpace') -> float:
        pass

    # Derived operations

    def __sub__(self, other: 'VectorSpace') -> 'VectorSpace':
        if not isinstance(other, VectorSpace):
            return NotImplemented
        return self + (-other)

    def __rmul__(self, scalar: float) -> 'VectorSpace':
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> 'VectorSpace':
        if not isinstance(scalar, numbers.Real):
            return NotImplemented
        return self * (1.0 / float(scalar))

    @classmethod
    def from_list(cls, values: Iterable[float]) -> 'VectorSpace':
        return cls.from_array(list(values))

    def to_list(self) -> List[float]:
        return [float(v) for v in self.to_array()]

    @property
    def norm(self) -> float:
        """Euclidean norm."""
        return math.sqrt(max(self.dot(self), 0.0))

    @property
    def squared_norm(self) -> float:
        return self.dot(self)

    @property
    def dimension(self) -> int:
        return len(self.to_array())

    def __len__(self) -> int:
        return self.dimension

    def __getitem__(self, index: int) -> float:
        return float(self.to_array()[index])

    def __iter__(self):
        return (float(v) for v in self.to_array())

    @property
    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.to_array())))

    def zeros_like(self) -> 'VectorSpace':
        return type(self).from_array(np.zeros(self.dimension))

    def distance(self, other: 'VectorSpace') -> float:
        return (self - other).norm


class ArrayVector(VectorSpace):
    """
    VectorSpace backed by an immutable numpy array.

    Binary operators require an operand with the same dimension and raise
    DimensionMismatchError otherwise; vectors are never truncated or padded.
    """

    __slots__ = ('_values',)

    # Fixed dimension for the small vector types, None for VectorN
    DIMENSION = None

    @classmethod
    def _wrap(cls, values: np.ndarray) -> 'ArrayVector':
        vector = cls.__new__(cls)
        values = np.asarray(values, dtype=float)
        values.setflags(write=False)
        vector._values = values
        return vector

    @classmethod
    def from_array(cls, values: Sequence[float]) -> 'ArrayVector':
        array = np.array(values, dtype=float)
        if array.ndim != 1:
            raise InvalidInputError(f"{cls.__name__} requires a flat sequence, got shape {array.shape}")
        if cls.DIMENSION is not None and len(array) != cls.DIMENSION:
            raise DimensionMismatchError(
                f"{cls.__name__} requires {cls.DIMENSION} components, got {len(array)}",
                expected=cls.DIMENSION,
                actual=len(array)
            )
        return cls._wrap(array)

    def to_array(self) -> np.ndarray:
        return self._values

    @property
    def dimension(self) -> int:
        return self._values.shape[0]

    def _check_operand(self, other: VectorSpace) -> np.ndarray:
        values = other.to_array()
        if values.shape[0] != self._values.shape[0]:
            raise DimensionMismatchError(
                f"Dimension mismatch: {self._values.shape[0]} vs {values.shape[0]}",
                expected=self._values.shape[0],
                actual=values.shape[0]
            )
        return values

    def __add__(self, other: VectorSpace) -> 'ArrayVector':
        if not isinstance(other, VectorSpace):
            return NotImplemented
        return self._wrap(self._values + self._check_operand(other))

    def __sub__(self, other: VectorSpace) -> 'ArrayVector':
        if not isinstance(other, VectorSpace):
            return NotImplemented
        return self._wrap(self._values - self._check_operand(other))

    def __mul__(self, scalar: float) -> 'ArrayVector':
        if not isinstance(scalar, numbers.Real):
            return NotImplemented
        return self._wrap(self._values * float(scalar))

    def __neg__(self) -> 'ArrayVector':
        return self._wrap(-self._values)

    def dot(self, other: VectorSpace) -> float:
        return float(np.dot(self._values, self._check_operand(other)))

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self._values))

    def __eq__(self, other) -> bool:
        if not isinstance(other, VectorSpace):
            return NotImplemented
        values = other.to_array()
        return values.shape == self._values.shape and bool(np.array_equal(self._values, values))

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._values.tobytes()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_list()})"


class Vector2D(ArrayVector):
    """Fixed two-component vector."""

    __slots__ = ()
    DIMENSION = 2

    def __init__(self, x: float = 0.0, y: float = 0.0):
        values = np.array([x, y], dtype=float)
        values.setflags(write=False)
        self._values = values

    @property
    def x(self) -> float:
        return float(self._values[0])

    @property
    def y(self) -> float:
        return float(self._values[1])

    def cross(self, other: 'Vector2D') -> float:
        """Scalar z-component of the 3D cross product."""
        other_values = self._check_operand(other)
        return float(self._values[0] * other_values[1] - self._values[1] * other_values[0])

    def __repr__(self) -> str:
        return f"Vector2D(x={self.x}, y={self.y})"


class Vector3D(ArrayVector):
    """Fixed three-component vector."""

    __slots__ = ()
    DIMENSION = 3

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        values = np.array([x, y, z], dtype=float)
        values.setflags(write=False)
        self._values = values

    @property
    def x(self) -> float:
        return float(self._values[0])

    @property
    def y(self) -> float:
        return float(self._values[1])

    @property
    def z(self) -> float:
        return float(self._values[2])

    def cross(self, other: 'Vector3D') -> 'Vector3D':
        return self._wrap(np.cross(self._values, self._check_operand(other)))

    def __repr__(self) -> str:
        return f"Vector3D(x={self.x}, y={self.y}, z={self.z})"


class VectorN(ArrayVector):
    """
    Variable-dimension vector, the natural type for portfolio weights.

    The dimension is fixed when the vector is built and never changes.
    """

    __slots__ = ()

    def __init__(self, values: Iterable[float]):
        array = np.array(list(values) if not isinstance(values, np.ndarray) else values, dtype=float)
        if array.ndim != 1:
            raise InvalidInputError(f"VectorN requires a flat sequence, got shape {array.shape}")
        array.setflags(write=False)
        self._values = array

    @classmethod
    def zeros(cls, dimension: int) -> 'VectorN':
        return cls._wrap(np.zeros(dimension))

    @classmethod
    def ones(cls, dimension: int) -> 'VectorN':
        return cls._wrap(np.ones(dimension))

    @classmethod
    def filled(cls, value: float, dimension: int) -> 'VectorN':
        return cls._wrap(np.full(dimension, float(value)))

    @classmethod
    def equal_weights(cls, dimension: int) -> 'VectorN':
        """Weights 1/n summing to one."""
        if dimension <= 0:
            raise InvalidInputError(f"Dimension must be positive, got {dimension}")
        return cls._wrap(np.full(dimension, 1.0 / dimension))

    @classmethod
    def basis(cls, dimension: int, index: int, value: float = 1.0) -> 'VectorN':
        values = np.zeros(dimension)
        values[index] = value
        return cls._wrap(values)

    @classmethod
    def linspace(cls, start: float, stop: float, count: int) -> 'VectorN':
        return cls._wrap(np.linspace(start, stop, count))

    @property
    def sum(self) -> float:
        return float(self._values.sum())

    @property
    def mean(self) -> float:
        return float(self._values.mean())

    def min(self) -> float:
        return float(self._values.min())

    def max(self) -> float:
        return float(self._values.max())

    def hadamard(self, other: VectorSpace) -> 'VectorN':
        """Element-wise product."""
        return self._wrap(self._values * self._check_operand(other))

    def concatenate(self, other: VectorSpace) -> 'VectorN':
        return self._wrap(np.concatenate([self._values, other.to_array()]))

    def slice(self, start: int, stop: int) -> 'VectorN':
        if start < 0 or stop > self.dimension or start > stop:
            raise DimensionMismatchError(
                f"Invalid slice [{start}:{stop}] for dimension {self.dimension}"
            )
        return self._wrap(self._values[start:stop].copy())


def as_vector(value: Union[VectorSpace, Sequence[float], np.ndarray]) -> VectorSpace:
    """Pass vectors through; wrap plain sequences and arrays as VectorN."""
    if isinstance(value, VectorSpace):
        return value
    return VectorN(value)
