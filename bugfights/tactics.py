"""
Mobility-class movement tactics.

Each mobility class (ground, flyer, wallcrawler) has one MovementTactic that
turns the fighter's AI state and the opponent's position into a steering
request. Tactics are deterministic: they read state and the tick counter but
never draw random numbers, and they never mutate fighters. The engine applies
the request during movement integration.

All ranges (stand-off, circling radius, pounce range) are 3D distances.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .ai import AIState
from .config import CombatConfig
from .fighter import Fighter
from .genome import Genome, Mobility
from .physics import ArenaBounds, Surface, Vector3D, lerp


# =============================================================================
# CONSTANTS
# =============================================================================

# Clearance from a wall below which candidate points are penalised
WALL_MARGIN = 80.0

# Flank approach angle either side of the direct line
FLANK_ANGLE_RAD = math.radians(60.0)

# Instinct-weighted bonuses for approach candidates
CUTOFF_WEIGHT = 0.5
FLANK_WEIGHT = 0.25
WALL_PENALTY_WEIGHT = 1.5

# Look-ahead angle along the orbit per steering update
ORBIT_STEP_RAD = 0.35

# Flyer tuning
DIVE_HEIGHT_ADVANTAGE = 40.0
DIVE_HORIZONTAL_RANGE = 160.0
CLIMB_ALTITUDE = 120.0
ORBIT_TILT_RAD = math.radians(30.0)
DIVE_ACCEL_BOOST = 1.5

# Wallcrawler tuning
POUNCE_RANGE = 220.0
CEILING_TRANSFER_GAP = 15.0
WALL_PERCH_HEIGHT = 60.0

# Elevation difference that makes a ground fighter jump
JUMP_HEIGHT_TRIGGER = 40.0
JUMP_HORIZONTAL_RANGE = 120.0


# =============================================================================
# STEERING
# =============================================================================

@dataclass
class Steering:
    """
    Steering request for one tick.

    Attributes:
        acceleration: Desired acceleration (limited by the engine).
        jump: Request a stamina-costed jump or pounce.
        jump_direction: Direction of the jump impulse (straight up if None).
        diving: Flyer is committing to a dive attack.
        climb: Wallcrawler attaches to a wall it touches this tick.
        to_ceiling: Wallcrawler transfers from the top of a wall to the ceiling.
    """
    acceleration: Vector3D = field(default_factory=Vector3D.zero)
    jump: bool = False
    jump_direction: Optional[Vector3D] = None
    diving: bool = False
    climb: bool = False
    to_ceiling: bool = False


def max_acceleration(genome: Genome) -> float:
    return lerp(0.25, 0.6, genome.speed_norm)


def max_speed(genome: Genome) -> float:
    return lerp(2.5, 6.0, genome.speed_norm)


def rotate_y(v: Vector3D, angle: float) -> Vector3D:
    """Rotate a vector about the vertical axis."""
    c, s = math.cos(angle), math.sin(angle)
    return Vector3D(v.x * c - v.z * s, v.y, v.x * s + v.z * c)


def seek(fighter: Fighter, point: Vector3D, slow_radius: float = 30.0, boost: float = 1.0) -> Vector3D:
    """Acceleration that steers toward a point, easing off on arrival."""
    offset = point - fighter.position
    dist = offset.magnitude
    if dist == 0:
        desired = Vector3D.zero()
    else:
        speed = max_speed(fighter.genome) * boost * min(1.0, dist / slow_radius)
        desired = offset * (speed / dist)
    return (desired - fighter.velocity).limited(max_acceleration(fighter.genome) * boost)


def wall_penalty(point: Vector3D, bounds: ArenaBounds) -> float:
    """0 in open floor, rising to 1 against a wall."""
    return max(0.0, (WALL_MARGIN - bounds.wall_clearance(point)) / WALL_MARGIN)


def circle_radius(fighter: Fighter, config: CombatConfig) -> float:
    return config.circle_radius_min + config.circle_radius_caution * fighter.drives.caution


def _horizontal_dir(frm: Vector3D, to: Vector3D) -> Vector3D:
    d = (to - frm).horizontal().normalized()
    return d if d.magnitude_squared > 0 else Vector3D(1.0, 0.0, 0.0)


# =============================================================================
# BASE CLASS
# =============================================================================

class MovementTactic(ABC):
    """
    Abstract base class for mobility-class movement.

    Subclasses implement one steering method per non-stunned AI state.
    """

    mobility: Mobility

    def steer(
        self,
        fighter: Fighter,
        opponent: Fighter,
        bounds: ArenaBounds,
        tick: int,
        config: CombatConfig,
    ) -> Steering:
        """
        Build the steering request for this tick.

        Stunned or dead fighters get an empty request.
        """
        if not fighter.is_alive or fighter.is_stunned or fighter.ai_state == AIState.STUNNED:
            return Steering()
        if fighter.ai_state == AIState.AGGRESSIVE:
            return self.approach(fighter, opponent, bounds, tick, config)
        if fighter.ai_state == AIState.CIRCLING:
            return self.circle(fighter, opponent, bounds, tick, config)
        return self.retreat(fighter, opponent, bounds, tick, config)

    @abstractmethod
    def approach(self, fighter: Fighter, opponent: Fighter, bounds: ArenaBounds,
                 tick: int, config: CombatConfig) -> Steering:
        pass

    @abstractmethod
    def circle(self, fighter: Fighter, opponent: Fighter, bounds: ArenaBounds,
               tick: int, config: CombatConfig) -> Steering:
        pass

    @abstractmethod
    def retreat(self, fighter: Fighter, opponent: Fighter, bounds: ArenaBounds,
                tick: int, config: CombatConfig) -> Steering:
        pass


# =============================================================================
# GROUND
# =============================================================================

class GroundTactic(MovementTactic):
    """
    Floor-bound movement.

    Approach scores a direct, two flanking and one cut-off candidate point;
    instinct raises the value of flanking and of cutting off the opponent's
    escape toward the arena centre, and every candidate near a wall is
    penalised.
    """

    mobility = Mobility.GROUND

    def approach_candidates(
        self, fighter: Fighter, opponent: Fighter, bounds: ArenaBounds,
    ) -> List[Tuple[str, Vector3D]]:
        y = fighter.position.y
        opp = Vector3D(opponent.position.x, y, opponent.position.z)
        from_opp = _horizontal_dir(opponent.position, fighter.position)
        standoff = fighter.body_radius + opponent.body_radius + 10.0
        to_center = _horizontal_dir(opponent.position, bounds.center)
        return [
            ("direct", opp + from_opp * standoff),
            ("flank_left", opp + rotate_y(from_opp, FLANK_ANGLE_RAD) * standoff),
            ("flank_right", opp + rotate_y(from_opp, -FLANK_ANGLE_RAD) * standoff),
            ("cutoff", opp + to_center * standoff),
        ]

    def score_candidate(self, label: str, point: Vector3D, fighter: Fighter,
                        bounds: ArenaBounds) -> float:
        instinct = fighter.genome.instinct_norm
        score = -fighter.position.distance_to(point) / bounds.width
        if label == "cutoff":
            score += instinct * CUTOFF_WEIGHT
        elif label.startswith("flank"):
            score += instinct * FLANK_WEIGHT
        score -= WALL_PENALTY_WEIGHT * wall_penalty(point, bounds)
        return score

    def best_approach_point(self, fighter: Fighter, opponent: Fighter,
                            bounds: ArenaBounds) -> Tuple[str, Vector3D]:
        candidates = self.approach_candidates(fighter, opponent, bounds)
        return max(candidates, key=lambda c: self.score_candidate(c[0], c[1], fighter, bounds))

    def approach(self, fighter, opponent, bounds, tick, config):
        _, point = self.best_approach_point(fighter, opponent, bounds)
        steering = Steering(acceleration=self._planar(seek(fighter, point)))
        self._maybe_jump(fighter, opponent, steering)
        return steering

    def circle(self, fighter, opponent, bounds, tick, config):
        radius = circle_radius(fighter, config)
        rel = _horizontal_dir(opponent.position, fighter.position)
        rear = -opponent.facing.horizontal().normalized()

        # Orbit in whichever direction brings us closer to the opponent's rear
        ccw = rotate_y(rel, ORBIT_STEP_RAD)
        cw = rotate_y(rel, -ORBIT_STEP_RAD)
        step = ccw if ccw.dot(rear) >= cw.dot(rear) else cw

        point = opponent.position + step * radius
        point = bounds.clamp_point(Vector3D(point.x, fighter.position.y, point.z),
                                   fighter.body_radius + 20.0)
        return Steering(acceleration=self._planar(seek(fighter, point)))

    def retreat(self, fighter, opponent, bounds, tick, config):
        away = _horizontal_dir(opponent.position, fighter.position)
        if bounds.wall_clearance(fighter.position) < WALL_MARGIN:
            # Cornered: break out toward the centre instead of into the wall
            away = (away + _horizontal_dir(fighter.position, bounds.center) * 1.2).normalized()
        point = bounds.clamp_point(fighter.position + away * 120.0, fighter.body_radius)
        return Steering(acceleration=self._planar(seek(fighter, point)))

    @staticmethod
    def _planar(accel: Vector3D) -> Vector3D:
        return Vector3D(accel.x, 0.0, accel.z)

    @staticmethod
    def _maybe_jump(fighter: Fighter, opponent: Fighter, steering: Steering) -> None:
        """Jump at opponents that are above us and close horizontally."""
        if not fighter.grounded or fighter.jump_cooldown > 0:
            return
        rise = opponent.position.y - fighter.position.y
        horizontal = (opponent.position - fighter.position).horizontal().magnitude
        if rise > JUMP_HEIGHT_TRIGGER and horizontal < JUMP_HORIZONTAL_RANGE:
            steering.jump = True
            steering.jump_direction = (_horizontal_dir(fighter.position, opponent.position)
                                       + Vector3D(0.0, 1.5, 0.0)).normalized()


# =============================================================================
# FLYER
# =============================================================================

class FlyerTactic(MovementTactic):
    """
    Unrestricted 3D flight.

    Aggressive flyers climb for height advantage then dive; circling uses a
    tilted orbit so altitude changes along the loop; hurt or retreating
    flyers break upward and sideways. A landed (exhausted) flyer moves like
    a ground fighter without jumping until it can take off again.
    """

    mobility = Mobility.WINGED

    def __init__(self):
        self._ground = GroundTactic()

    def steer(self, fighter, opponent, bounds, tick, config):
        if fighter.is_alive and not fighter.is_airborne and not fighter.is_stunned:
            steering = self._ground.steer(fighter, opponent, bounds, tick, config)
            steering.jump = False
            steering.jump_direction = None
            return steering
        return super().steer(fighter, opponent, bounds, tick, config)

    def approach(self, fighter, opponent, bounds, tick, config):
        height_adv = fighter.position.y - opponent.position.y
        horizontal = (opponent.position - fighter.position).horizontal().magnitude
        if height_adv > DIVE_HEIGHT_ADVANTAGE and horizontal < DIVE_HORIZONTAL_RANGE:
            return Steering(
                acceleration=seek(fighter, opponent.position, slow_radius=1.0, boost=DIVE_ACCEL_BOOST),
                diving=True,
            )

        from_opp = _horizontal_dir(opponent.position, fighter.position)
        altitude = min(CLIMB_ALTITUDE, bounds.height - opponent.position.y - fighter.body_radius - 10.0)
        point = opponent.position + from_opp * 90.0 + Vector3D(0.0, max(altitude, 0.0), 0.0)
        point = bounds.clamp_point(point, fighter.body_radius + 5.0)
        return Steering(acceleration=seek(fighter, point))

    def orbit_point(self, fighter: Fighter, opponent: Fighter, tick: int,
                    config: CombatConfig) -> Vector3D:
        """Point on a tilted circle around the opponent; the tilt axis precesses slowly."""
        radius = circle_radius(fighter, config)
        phi = tick * 0.01
        axis = Vector3D(
            math.sin(ORBIT_TILT_RAD) * math.cos(phi),
            math.cos(ORBIT_TILT_RAD),
            math.sin(ORBIT_TILT_RAD) * math.sin(phi),
        )
        u = axis.cross(Vector3D(0.0, 0.0, 1.0)).normalized()
        v = axis.cross(u).normalized()
        omega = max_speed(fighter.genome) / radius
        theta = tick * omega + fighter.index * math.pi
        center = opponent.position + Vector3D(0.0, 50.0, 0.0)
        return center + (u * math.cos(theta) + v * math.sin(theta)) * radius

    def circle(self, fighter, opponent, bounds, tick, config):
        point = bounds.clamp_point(self.orbit_point(fighter, opponent, tick, config),
                                   fighter.body_radius + 5.0)
        return Steering(acceleration=seek(fighter, point))

    def retreat(self, fighter, opponent, bounds, tick, config):
        hurt = 1.0 - fighter.hp_ratio
        away = (fighter.position - opponent.position).normalized()
        if away.magnitude_squared == 0:
            away = Vector3D(1.0, 0.0, 0.0)
        lateral = Vector3D(-away.z, 0.0, away.x)
        direction = (away + Vector3D(0.0, 0.5 + hurt, 0.0) + lateral * 0.6).normalized()
        point = bounds.clamp_point(fighter.position + direction * 150.0, fighter.body_radius + 5.0)
        return Steering(acceleration=seek(fighter, point))


# =============================================================================
# WALLCRAWLER
# =============================================================================

class WallcrawlerTactic(MovementTactic):
    """
    Surface-bound movement over the floor, the four walls and the ceiling.

    Exhausted or retreating wallcrawlers head for the nearest wall, climb,
    and move onto the ceiling from the top of a wall. Attached crawlers
    pounce at opponents within 3D pounce range; on the floor they fight like
    ground fighters.
    """

    mobility = Mobility.WALLCRAWLER

    def __init__(self):
        self._ground = GroundTactic()

    @staticmethod
    def wants_surface(fighter: Fighter, config: CombatConfig) -> bool:
        return (fighter.stamina_ratio < config.exhausted_ratio
                or fighter.ai_state == AIState.RETREATING)

    @staticmethod
    def wall_anchor(position: Vector3D, wall: Surface, bounds: ArenaBounds) -> Vector3D:
        """Projection of a point onto a wall plane."""
        if wall == Surface.WALL_W:
            return Vector3D(0.0, position.y, position.z)
        if wall == Surface.WALL_E:
            return Vector3D(bounds.width, position.y, position.z)
        if wall == Surface.WALL_S:
            return Vector3D(position.x, position.y, 0.0)
        return Vector3D(position.x, position.y, bounds.depth)

    def steer(self, fighter, opponent, bounds, tick, config):
        if not fighter.is_alive or fighter.is_stunned:
            return Steering()
        if fighter.surface.is_wall:
            return self._on_wall(fighter, opponent, bounds, config)
        if fighter.surface == Surface.CEILING:
            return self._on_ceiling(fighter, opponent, bounds, config)
        if self.wants_surface(fighter, config):
            wall = bounds.nearest_wall(fighter.position)
            point = self.wall_anchor(fighter.position, wall, bounds)
            return Steering(acceleration=GroundTactic._planar(seek(fighter, point, slow_radius=1.0)),
                            climb=True)
        return super().steer(fighter, opponent, bounds, tick, config)

    def approach(self, fighter, opponent, bounds, tick, config):
        return self._ground.approach(fighter, opponent, bounds, tick, config)

    def circle(self, fighter, opponent, bounds, tick, config):
        return self._ground.circle(fighter, opponent, bounds, tick, config)

    def retreat(self, fighter, opponent, bounds, tick, config):
        return self._ground.retreat(fighter, opponent, bounds, tick, config)

    def _pounce(self, fighter: Fighter, opponent: Fighter) -> Optional[Steering]:
        if fighter.ai_state != AIState.AGGRESSIVE or fighter.jump_cooldown > 0:
            return None
        if fighter.distance_to(opponent) > POUNCE_RANGE:
            return None
        return Steering(jump=True, jump_direction=(opponent.position - fighter.position).normalized())

    def _on_wall(self, fighter, opponent, bounds, config):
        pounce = self._pounce(fighter, opponent)
        if pounce is not None:
            return pounce

        top = bounds.height - fighter.body_radius
        if self.wants_surface(fighter, config):
            point = Vector3D(fighter.position.x, top, fighter.position.z)
            steering = Steering(acceleration=seek(fighter, point))
            steering.to_ceiling = fighter.position.y >= top - CEILING_TRANSFER_GAP
            return steering

        # Track the opponent along the wall, perched above it
        anchor = self.wall_anchor(opponent.position, fighter.surface, bounds)
        height = min(top, opponent.position.y + WALL_PERCH_HEIGHT)
        point = Vector3D(anchor.x, height, anchor.z)
        return Steering(acceleration=seek(fighter, point))

    def _on_ceiling(self, fighter, opponent, bounds, config):
        pounce = self._pounce(fighter, opponent)
        if pounce is not None:
            return pounce

        y = fighter.position.y
        if self.wants_surface(fighter, config):
            away = _horizontal_dir(opponent.position, fighter.position)
            point = bounds.clamp_point(fighter.position + away * 100.0, fighter.body_radius)
        else:
            point = Vector3D(opponent.position.x, y, opponent.position.z)
        return Steering(acceleration=GroundTactic._planar(seek(fighter, Vector3D(point.x, y, point.z))))


# =============================================================================
# DISPATCH
# =============================================================================

_TACTICS = {
    Mobility.GROUND: GroundTactic,
    Mobility.WINGED: FlyerTactic,
    Mobility.WALLCRAWLER: WallcrawlerTactic,
}


def tactic_for(mobility: Mobility) -> MovementTactic:
    """Create the movement tactic for a mobility class."""
    return _TACTICS[mobility]()
