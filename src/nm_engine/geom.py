# nm_engine/src/nm_engine/geom.py
"""Geometric vectors in three dimensions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vector3:
    """Immutable 3-D vector.

    Attributes:
        x: First component.
        y: Second component.
        z: Third component.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __str__(self) -> str:
        return f"({self.x:0.6f}, {self.y:0.6f}, {self.z:0.6f})"

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, m: float) -> Vector3:
        return Vector3(m * self.x, m * self.y, m * self.z)

    __rmul__ = __mul__

    def dot(self, other: Vector3) -> float:
        """Scalar product."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def approx_equals(self, other: Vector3, tol: float) -> bool:
        """Absolute per-component comparison."""
        return (
            abs(self.x - other.x) <= tol
            and abs(self.y - other.y) <= tol
            and abs(self.z - other.z) <= tol
        )
