"""
Pose component - position and rotation in world space.
"""

from __future__ import annotations

from ember.core.component import Component, register_component


@register_component
class Pose(Component):
    """
    Position and Euler rotation of an object.

    Attributes:
        x, y, z: World position
        rx, ry, rz: Rotation in degrees around each axis
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def rotation(self) -> tuple[float, float, float]:
        return (self.rx, self.ry, self.rz)

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> Pose:
        """Copy of this pose moved by a delta."""
        return self.model_copy(update={"x": self.x + dx, "y": self.y + dy, "z": self.z + dz})

    def distance_to(self, other: Pose) -> float:
        dx = other.x - self.x
        dy = other.y - self.y
        dz = other.z - self.z
        return (dx * dx + dy * dy + dz * dz) ** 0.5
