"""ThreeVector and FourVector value types.

Four-vectors use the (+,-,-,-) metric. Positions are in fm, momenta in GeV.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class ThreeVector:
    """A spatial 3-vector."""

    x1: float = 0.0
    x2: float = 0.0
    x3: float = 0.0

    def __add__(self, other: ThreeVector) -> ThreeVector:
        return ThreeVector(self.x1 + other.x1, self.x2 + other.x2, self.x3 + other.x3)

    def __sub__(self, other: ThreeVector) -> ThreeVector:
        return ThreeVector(self.x1 - other.x1, self.x2 - other.x2, self.x3 - other.x3)

    def __neg__(self) -> ThreeVector:
        return ThreeVector(-self.x1, -self.x2, -self.x3)

    def __mul__(self, factor: float) -> ThreeVector:
        return ThreeVector(self.x1 * factor, self.x2 * factor, self.x3 * factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> ThreeVector:
        return ThreeVector(self.x1 / divisor, self.x2 / divisor, self.x3 / divisor)

    def dot(self, other: ThreeVector) -> float:
        """Euclidean scalar product."""
        return self.x1 * other.x1 + self.x2 * other.x2 + self.x3 * other.x3

    def cross(self, other: ThreeVector) -> ThreeVector:
        return ThreeVector(
            self.x2 * other.x3 - self.x3 * other.x2,
            self.x3 * other.x1 - self.x1 * other.x3,
            self.x1 * other.x2 - self.x2 * other.x1,
        )

    def sqr(self) -> float:
        return self.dot(self)

    def abs(self) -> float:
        return math.sqrt(self.sqr())

    def is_close(self, other: ThreeVector, tolerance: float = 1e-9) -> bool:
        """Component-wise comparison within an absolute tolerance."""
        return (
            abs(self.x1 - other.x1) <= tolerance
            and abs(self.x2 - other.x2) <= tolerance
            and abs(self.x3 - other.x3) <= tolerance
        )


@dataclass(frozen=True)
class FourVector:
    """A Minkowski 4-vector (x0, x1, x2, x3)."""

    x0: float = 0.0
    x1: float = 0.0
    x2: float = 0.0
    x3: float = 0.0

    @classmethod
    def from_threevec(cls, x0: float, vec: ThreeVector) -> FourVector:
        return cls(x0, vec.x1, vec.x2, vec.x3)

    def __add__(self, other: FourVector) -> FourVector:
        return FourVector(
            self.x0 + other.x0, self.x1 + other.x1, self.x2 + other.x2, self.x3 + other.x3
        )

    def __sub__(self, other: FourVector) -> FourVector:
        return FourVector(
            self.x0 - other.x0, self.x1 - other.x1, self.x2 - other.x2, self.x3 - other.x3
        )

    def __neg__(self) -> FourVector:
        return FourVector(-self.x0, -self.x1, -self.x2, -self.x3)

    def __mul__(self, factor: float) -> FourVector:
        return FourVector(self.x0 * factor, self.x1 * factor, self.x2 * factor, self.x3 * factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> FourVector:
        return FourVector(
            self.x0 / divisor, self.x1 / divisor, self.x2 / divisor, self.x3 / divisor
        )

    @property
    def threevec(self) -> ThreeVector:
        """Spatial part."""
        return ThreeVector(self.x1, self.x2, self.x3)

    def dot(self, other: FourVector) -> float:
        """Minkowski scalar product."""
        return self.x0 * other.x0 - self.x1 * other.x1 - self.x2 * other.x2 - self.x3 * other.x3

    def sqr(self) -> float:
        return self.dot(self)

    def abs(self) -> float:
        """Invariant length; negative for spacelike vectors."""
        square = self.sqr()
        if square >= 0.0:
            return math.sqrt(square)
        return -math.sqrt(-square)

    def velocity(self) -> ThreeVector:
        """Velocity 3-vector, x/x0. Only meaningful for momenta."""
        return self.threevec / self.x0

    def lorentz_boost(self, v: ThreeVector) -> FourVector:
        """Boost into the frame moving with velocity ``v``.

        A particle at rest in the lab acquires velocity ``-v`` after the boost.
        """
        v2 = v.sqr()
        if v2 == 0.0:
            return self
        if v2 >= 1.0:
            raise ValueError(f"Boost velocity must be below c, got |v|^2 = {v2}")
        gamma = 1.0 / math.sqrt(1.0 - v2)
        xv = self.threevec.dot(v)
        x0 = gamma * (self.x0 - xv)
        # x' = x + ((gamma - 1) (x.v) / v^2 - gamma x0) v
        factor = (gamma - 1.0) * xv / v2 - gamma * self.x0
        spatial = self.threevec + v * factor
        return FourVector.from_threevec(x0, spatial)

    def is_close(self, other: FourVector, tolerance: float = 1e-9) -> bool:
        """Component-wise comparison within an absolute tolerance."""
        return abs(self.x0 - other.x0) <= tolerance and self.threevec.is_close(
            other.threevec, tolerance
        )
