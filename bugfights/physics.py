"""
Physics Module for the Bug Fights arena.

Implements the kinematics shared by every fighter:
- 3D vector operations
- Arena bounds, surfaces and clamping
- Per-tick motion integration (one tick is the unit of time)
- Boundary contacts with bounce and impact speed reporting
- Repair of non-finite positions and velocities

Coordinate system: x runs west to east, y is height (floor at 0), z runs
south to north. The arena spans [0, W] x [0, H] x [0, D].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# ARENA CONSTANTS
# =============================================================================

ARENA_WIDTH = 900.0
ARENA_HEIGHT = 400.0
ARENA_DEPTH = 600.0

# Gravity pull per tick (units/tick^2)
DEFAULT_GRAVITY = 0.6

# Fraction of velocity kept after a boundary bounce
DEFAULT_BOUNCE = 0.3


# =============================================================================
# HELPERS
# =============================================================================

def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]."""
    return max(lo, min(hi, value))


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation from a to b, t is not clamped."""
    return a + (b - a) * t


# =============================================================================
# VECTOR3D CLASS
# =============================================================================

@dataclass
class Vector3D:
    """
    3D vector for positions, velocities, facings and impulses.

    Vectors are treated as values: operations return new instances and
    fighters replace their vectors rather than mutating them in place.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3D:
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector3D:
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector3D:
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector3D(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> Vector3D:
        return Vector3D(-self.x, -self.y, -self.z)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector3D):
            return False
        eps = 1e-10
        return (abs(self.x - other.x) < eps and
                abs(self.y - other.y) < eps and
                abs(self.z - other.z) < eps)

    def dot(self, other: Vector3D) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3D) -> Vector3D:
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x
        )

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    @property
    def magnitude_squared(self) -> float:
        """Squared magnitude (avoids sqrt for comparisons)."""
        return self.x**2 + self.y**2 + self.z**2

    def normalized(self) -> Vector3D:
        """Return unit vector in same direction, or zero for a zero vector."""
        mag = self.magnitude
        if mag == 0 or not math.isfinite(mag):
            return Vector3D(0, 0, 0)
        return self / mag

    def distance_to(self, other: Vector3D) -> float:
        """True 3D Euclidean distance to another point."""
        return (self - other).magnitude

    def horizontal(self) -> Vector3D:
        """Projection onto the floor plane (y zeroed)."""
        return Vector3D(self.x, 0.0, self.z)

    def limited(self, max_magnitude: float) -> Vector3D:
        """Return a copy scaled down so its magnitude does not exceed the limit."""
        mag = self.magnitude
        if mag <= max_magnitude or mag == 0:
            return Vector3D(self.x, self.y, self.z)
        return self * (max_magnitude / mag)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def copy(self) -> Vector3D:
        return Vector3D(self.x, self.y, self.z)

    def to_list(self, ndigits: int = 3) -> List[float]:
        """Rounded component list for snapshots and recordings."""
        return [round(self.x, ndigits), round(self.y, ndigits), round(self.z, ndigits)]

    @classmethod
    def zero(cls) -> Vector3D:
        return cls(0.0, 0.0, 0.0)


# =============================================================================
# SURFACES
# =============================================================================

class Surface(str, Enum):
    """Arena surfaces a wallcrawler can attach to."""
    FLOOR = "floor"
    CEILING = "ceiling"
    WALL_N = "wall_n"
    WALL_S = "wall_s"
    WALL_E = "wall_e"
    WALL_W = "wall_w"
    NONE = "none"

    @property
    def is_wall(self) -> bool:
        return self in WALLS


WALLS = (Surface.WALL_N, Surface.WALL_S, Surface.WALL_E, Surface.WALL_W)


# =============================================================================
# ARENA BOUNDS
# =============================================================================

@dataclass(frozen=True)
class ArenaBounds:
    """
    Axis-aligned arena volume [0, width] x [0, height] x [0, depth].

    Attributes:
        width: Extent along x (west to east).
        height: Extent along y (floor to ceiling).
        depth: Extent along z (south to north).
    """
    width: float = ARENA_WIDTH
    height: float = ARENA_HEIGHT
    depth: float = ARENA_DEPTH

    @property
    def center(self) -> Vector3D:
        """Centre of the floor plane."""
        return Vector3D(self.width / 2, 0.0, self.depth / 2)

    def contains(self, point: Vector3D) -> bool:
        return (0.0 <= point.x <= self.width and
                0.0 <= point.y <= self.height and
                0.0 <= point.z <= self.depth)

    def clamp_point(self, point: Vector3D, margin: float = 0.0) -> Vector3D:
        """Clamp a point into the arena, keeping `margin` away from every boundary."""
        mx = min(margin, self.width / 2)
        my = min(margin, self.height / 2)
        mz = min(margin, self.depth / 2)
        return Vector3D(
            clamp(point.x, mx, self.width - mx),
            clamp(point.y, my, self.height - my),
            clamp(point.z, mz, self.depth - mz),
        )

    def distance_to_surface(self, point: Vector3D, surface: Surface) -> float:
        """Perpendicular distance from a point to a surface."""
        if surface == Surface.FLOOR:
            return point.y
        if surface == Surface.CEILING:
            return self.height - point.y
        if surface == Surface.WALL_W:
            return point.x
        if surface == Surface.WALL_E:
            return self.width - point.x
        if surface == Surface.WALL_S:
            return point.z
        if surface == Surface.WALL_N:
            return self.depth - point.z
        return math.inf

    def nearest_wall(self, point: Vector3D) -> Surface:
        """Closest of the four vertical walls (ties resolved in WALLS order)."""
        return min(WALLS, key=lambda wall: self.distance_to_surface(point, wall))

    def wall_clearance(self, point: Vector3D) -> float:
        """Horizontal distance to the closest vertical wall."""
        return min(self.distance_to_surface(point, wall) for wall in WALLS)

    def surface_normal(self, surface: Surface) -> Vector3D:
        """Unit normal pointing from a surface into the arena."""
        return {
            Surface.FLOOR: Vector3D(0, 1, 0),
            Surface.CEILING: Vector3D(0, -1, 0),
            Surface.WALL_W: Vector3D(1, 0, 0),
            Surface.WALL_E: Vector3D(-1, 0, 0),
            Surface.WALL_S: Vector3D(0, 0, 1),
            Surface.WALL_N: Vector3D(0, 0, -1),
        }.get(surface, Vector3D(0, 0, 0))


# =============================================================================
# INTEGRATION
# =============================================================================

@dataclass
class BoundaryContact:
    """
    Result of resolving a body against the arena boundaries.

    Attributes:
        position: Position after clamping.
        velocity: Velocity after bounce or stop.
        contacts: Surfaces touched this tick.
        impact_speed: Largest speed component removed by a wall contact.
    """
    position: Vector3D
    velocity: Vector3D
    contacts: List[Surface] = field(default_factory=list)
    impact_speed: float = 0.0

    def touched(self, surface: Surface) -> bool:
        return surface in self.contacts

    @property
    def touched_wall(self) -> bool:
        return any(s.is_wall for s in self.contacts)


def integrate_motion(
    position: Vector3D,
    velocity: Vector3D,
    acceleration: Vector3D,
    gravity: float = 0.0,
    drag: float = 1.0,
) -> Tuple[Vector3D, Vector3D]:
    """
    Advance a body by one tick with semi-implicit Euler.

    Args:
        position: Current position.
        velocity: Current velocity (units/tick).
        acceleration: Steering acceleration for this tick.
        gravity: Downward pull applied to y this tick.
        drag: Velocity multiplier applied after the position update.

    Returns:
        Tuple of (new_position, new_velocity).
    """
    new_velocity = velocity + acceleration - Vector3D(0.0, gravity, 0.0)
    new_position = position + new_velocity
    return new_position, new_velocity * drag


def resolve_bounds(
    position: Vector3D,
    velocity: Vector3D,
    radius: float,
    bounds: ArenaBounds,
    bounce: float = DEFAULT_BOUNCE,
) -> BoundaryContact:
    """
    Clamp a body of the given radius into the arena and reflect its velocity.

    The floor stops downward motion outright; ceiling and walls reflect with
    the bounce factor. The impact speed reported is the largest horizontal
    speed removed by a wall so callers can decide on wall stuns.
    """
    x, y, z = position.x, position.y, position.z
    vx, vy, vz = velocity.x, velocity.y, velocity.z
    contacts: List[Surface] = []
    impact = 0.0

    r_x = min(radius, bounds.width / 2)
    r_y = min(radius, bounds.height / 2)
    r_z = min(radius, bounds.depth / 2)

    if y <= r_y:
        y = r_y
        vy = max(0.0, vy)
        contacts.append(Surface.FLOOR)
    elif y >= bounds.height - r_y:
        y = bounds.height - r_y
        vy = -abs(vy) * bounce
        contacts.append(Surface.CEILING)

    if x <= r_x:
        impact = max(impact, abs(vx))
        x = r_x
        vx = abs(vx) * bounce
        contacts.append(Surface.WALL_W)
    elif x >= bounds.width - r_x:
        impact = max(impact, abs(vx))
        x = bounds.width - r_x
        vx = -abs(vx) * bounce
        contacts.append(Surface.WALL_E)

    if z <= r_z:
        impact = max(impact, abs(vz))
        z = r_z
        vz = abs(vz) * bounce
        contacts.append(Surface.WALL_S)
    elif z >= bounds.depth - r_z:
        impact = max(impact, abs(vz))
        z = bounds.depth - r_z
        vz = -abs(vz) * bounce
        contacts.append(Surface.WALL_N)

    return BoundaryContact(
        position=Vector3D(x, y, z),
        velocity=Vector3D(vx, vy, vz),
        contacts=contacts,
        impact_speed=impact,
    )


def sanitize_kinematics(
    position: Vector3D,
    velocity: Vector3D,
    last_valid: Vector3D,
    bounds: ArenaBounds,
    label: str = "body",
) -> Tuple[Vector3D, Vector3D, bool]:
    """
    Repair non-finite position or velocity components after integration.

    A non-finite position snaps to the last valid position clamped into the
    arena. Each offending velocity component is zeroed, and so is the
    velocity along any axis whose position was non-finite.

    Returns:
        Tuple of (position, velocity, repaired).
    """
    if position.is_finite() and velocity.is_finite():
        return position, velocity, False

    axes = ("x", "y", "z")
    bad_pos = [a for a in axes if not math.isfinite(getattr(position, a))]
    bad_vel = [a for a in axes if not math.isfinite(getattr(velocity, a))]

    if bad_pos:
        position = bounds.clamp_point(last_valid)
    zeroed = set(bad_pos) | set(bad_vel)
    velocity = Vector3D(*(0.0 if a in zeroed else getattr(velocity, a) for a in axes))

    logger.warning(
        "Non-finite kinematics on %s (position axes %s, velocity axes %s); snapped to %s",
        label, bad_pos or "-", bad_vel or "-", position.to_list(),
    )
    return position, velocity, True
