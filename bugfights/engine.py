"""
Combat Engine for Bug Fights.

Advances one fighter pair by one tick. Every tick runs the same four phases,
each for both fighters before the next phase starts:

1. AI decision: re-derive each fighter's AI state (STUNNED while stunned)
2. Movement integration: steering, jumps, gravity, boundaries, body overlap
3. Attack/collision resolution: poison pulses, feints, attacks
4. Drive and stamina update

Timers are decremented once at the start of the tick. The engine refuses to
process a fighter twice in the same phase of a tick.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Set, Tuple

from .ai import AIState, decide_state
from .combat import (
    AttackStatus,
    CombatResolver,
    base_attack_cooldown,
    wall_stun_ticks,
)
from .config import CombatConfig
from .drives import update_drives
from .errors import SimulationError
from .events import SimulationEvent, SimulationEventType
from .feints import FeintOutcome, attempt_feint
from .fighter import AnimState, Fighter
from .physics import (
    Surface,
    Vector3D,
    integrate_motion,
    resolve_bounds,
    sanitize_kinematics,
)
from .rng import MatchRNG
from .stamina import speed_factor, update_stamina
from .tactics import Steering, max_acceleration, max_speed, tactic_for

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

PHASE_DECIDE = "decide"
PHASE_MOVE = "move"
PHASE_RESOLVE = "resolve"
PHASE_UPDATE = "update"

# Speed multiplier allowed while a flyer dives
DIVE_SPEED_BOOST = 1.4

# Below this speed a moving fighter is drawn idle
IDLE_SPEED = 0.3


class CombatEngine:
    """
    Tick engine for one fighter pair.

    The engine owns the fighters for the duration of a match; nothing else
    mutates them while a match is running.
    """

    def __init__(self, fighters: Sequence[Fighter], rng: MatchRNG, config: CombatConfig):
        """
        Initialize the engine.

        Args:
            fighters: Exactly two fighters.
            rng: Match random source (single writer).
            config: Combat tunables.
        """
        if len(fighters) != 2:
            raise ValueError("CombatEngine needs exactly two fighters")
        self.fighters: List[Fighter] = list(fighters)
        self.rng = rng
        self.config = config
        self.bounds = config.bounds
        self.resolver = CombatResolver(rng, config)
        self.tactics = [tactic_for(f.genome.mobility) for f in self.fighters]
        self._processed: Set[Tuple[str, int]] = set()

    def opponent_of(self, fighter: Fighter) -> Fighter:
        return self.fighters[1 - fighter.index]

    def _claim(self, phase: str, fighter: Fighter) -> None:
        key = (phase, fighter.index)
        if key in self._processed:
            raise SimulationError(f"{fighter.name} processed twice in {phase} phase")
        self._processed.add(key)

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def step(self, tick: int) -> List[SimulationEvent]:
        """
        Advance the pair by one tick.

        Args:
            tick: Global tick counter of the match, stamped on events.

        Returns:
            Events produced during this tick only.
        """
        self._processed.clear()
        events: List[SimulationEvent] = []

        for fighter in self.fighters:
            fighter.reset_tick_flags()
            fighter.tick_timers()

        self._decide_phase(tick, events)
        self._movement_phase(tick, events)
        self._resolution_phase(tick, events)
        self._update_phase(tick, events)
        return events

    # -------------------------------------------------------------------------
    # Phase 1: AI decision
    # -------------------------------------------------------------------------

    def _decide_phase(self, tick: int, events: List[SimulationEvent]) -> None:
        for fighter in self.fighters:
            self._claim(PHASE_DECIDE, fighter)
            if not fighter.is_alive:
                continue
            opponent = self.opponent_of(fighter)
            if fighter.is_stunned:
                new_state = AIState.STUNNED
            else:
                new_state = decide_state(
                    fighter.drives,
                    fighter.stamina_ratio,
                    fighter.distance_to(opponent),
                    fighter.genome.instinct,
                    fighter.ai_state,
                    self.config,
                )
            if new_state != fighter.ai_state:
                events.append(SimulationEvent(
                    SimulationEventType.STATE_CHANGE, tick, fighter=fighter.name,
                    data={"from": fighter.ai_state.value, "to": new_state.value},
                ))
                logger.debug("#%d %s: %s -> %s", tick, fighter.name,
                             fighter.ai_state.value, new_state.value)
                fighter.ai_state = new_state

    # -------------------------------------------------------------------------
    # Phase 2: movement
    # -------------------------------------------------------------------------

    def _movement_phase(self, tick: int, events: List[SimulationEvent]) -> None:
        # Both steering requests see the same pre-movement state
        steerings = [
            self.tactics[f.index].steer(f, self.opponent_of(f), self.bounds, tick, self.config)
            for f in self.fighters
        ]
        for fighter, steering in zip(self.fighters, steerings):
            self._claim(PHASE_MOVE, fighter)
            self._integrate(fighter, steering, tick, events)
        self._separate_bodies()

    def _try_jump(self, fighter: Fighter, steering: Steering) -> bool:
        """Jump or pounce if allowed and affordable; a refused jump changes nothing."""
        attached = fighter.genome.is_wallcrawler and fighter.surface != Surface.NONE
        if fighter.jump_cooldown > 0 or not (fighter.grounded or attached):
            return False
        if not fighter.spend_stamina(self.config.jump_cost):
            return False
        direction = (steering.jump_direction or Vector3D(0.0, 1.0, 0.0)).normalized()
        impulse = self.config.jump_impulse * fighter.genome.jump_factor
        fighter.velocity = fighter.velocity + direction * impulse
        fighter.jump_cooldown = self.config.jump_cooldown_ticks
        fighter.grounded = False
        if fighter.genome.is_wallcrawler:
            fighter.surface = Surface.NONE
        return True

    def _integrate(self, fighter: Fighter, steering: Steering, tick: int,
                   events: List[SimulationEvent]) -> None:
        cfg = self.config
        arena = cfg.arena
        genome = fighter.genome
        active = fighter.is_alive and not fighter.is_stunned

        accel = Vector3D.zero()
        factor = speed_factor(fighter.stamina_ratio, cfg)
        if active:
            boost = DIVE_SPEED_BOOST if steering.diving else 1.0
            accel = steering.acceleration.limited(max_acceleration(genome) * boost) * factor
            if steering.jump:
                self._try_jump(fighter, steering)
        fighter.is_diving = active and steering.diving and fighter.is_airborne

        flying = genome.is_flyer and fighter.is_airborne and fighter.is_alive
        attached = (genome.is_wallcrawler and fighter.is_alive
                    and (fighter.surface.is_wall or fighter.surface == Surface.CEILING))
        normal = self.bounds.surface_normal(fighter.surface) if attached else Vector3D.zero()

        if not flying and not attached:
            accel = Vector3D(accel.x, 0.0, accel.z)
        if attached:
            accel = accel - normal * accel.dot(normal)

        gravity = 0.0 if (flying or attached) else arena.gravity
        drag = arena.ground_friction if fighter.grounded else arena.air_drag
        position, velocity = integrate_motion(fighter.position, fighter.velocity, accel, gravity, drag)

        if attached:
            velocity = velocity - normal * velocity.dot(normal)

        if not fighter.knocked_back:
            cap = max_speed(genome) * factor * (DIVE_SPEED_BOOST if fighter.is_diving else 1.0)
            if flying or attached:
                velocity = velocity.limited(cap)
            else:
                planar = velocity.horizontal().limited(cap)
                velocity = Vector3D(planar.x, velocity.y, planar.z)

        position, velocity, _ = sanitize_kinematics(
            position, velocity, fighter.last_valid_position, self.bounds, fighter.name,
        )
        contact = resolve_bounds(position, velocity, fighter.body_radius, self.bounds, arena.bounce)
        fighter.position = contact.position
        fighter.velocity = contact.velocity
        fighter.last_valid_position = contact.position.copy()

        on_floor = contact.touched(Surface.FLOOR)
        fighter.grounded = on_floor and not flying

        if genome.is_wallcrawler and fighter.is_alive:
            self._update_attachment(fighter, steering, contact.contacts, on_floor)

        if (fighter.knocked_back and contact.touched_wall and fighter.is_alive
                and contact.impact_speed >= cfg.wall_stun_min_impact
                and not (genome.is_wallcrawler and fighter.surface.is_wall)):
            ticks = wall_stun_ticks(fighter, cfg)
            if fighter.stun(ticks):
                events.append(SimulationEvent(
                    SimulationEventType.STUN, tick, fighter=fighter.name,
                    data={"cause": "wall", "ticks": ticks,
                          "impact": round(contact.impact_speed, 3)},
                ))

        if fighter.knocked_back and fighter.velocity.horizontal().magnitude <= max_speed(genome):
            fighter.knocked_back = False

        if active:
            facing = fighter.position - self.opponent_of(fighter).position
            if facing.magnitude_squared > 0:
                fighter.facing = (-facing).normalized()
            moving = fighter.velocity.magnitude > IDLE_SPEED
            fighter.anim_state = AnimState.MOVE if moving else AnimState.IDLE

    def _update_attachment(self, fighter: Fighter, steering: Steering,
                           contacts: List[Surface], on_floor: bool) -> None:
        """Surface attachment rules for wallcrawlers."""
        top = self.bounds.height - fighter.body_radius
        if fighter.surface.is_wall:
            if steering.to_ceiling:
                fighter.surface = Surface.CEILING
                fighter.position = Vector3D(fighter.position.x, top, fighter.position.z)
                fighter.velocity = Vector3D(fighter.velocity.x, 0.0, fighter.velocity.z)
            return
        if fighter.surface == Surface.CEILING:
            return

        walls = [s for s in contacts if s.is_wall]
        if steering.climb and walls:
            fighter.surface = walls[0]
            fighter.velocity = Vector3D.zero()
            fighter.grounded = False
        elif on_floor:
            fighter.surface = Surface.FLOOR
        else:
            fighter.surface = Surface.NONE

    def _separate_bodies(self) -> None:
        """Push overlapping bodies apart along the 3D contact normal, weighted by mass."""
        a, b = self.fighters
        delta = b.position - a.position
        dist = delta.magnitude
        min_dist = a.body_radius + b.body_radius
        if dist >= min_dist:
            return
        normal = delta / dist if dist > 0 else Vector3D(1.0, 0.0, 0.0)
        overlap = min_dist - dist
        total = a.mass + b.mass
        a.position = self.bounds.clamp_point(a.position - normal * (overlap * b.mass / total), a.body_radius)
        b.position = self.bounds.clamp_point(b.position + normal * (overlap * a.mass / total), b.body_radius)
        a.last_valid_position = a.position.copy()
        b.last_valid_position = b.position.copy()

    # -------------------------------------------------------------------------
    # Phase 3: attack/collision resolution
    # -------------------------------------------------------------------------

    def _resolution_phase(self, tick: int, events: List[SimulationEvent]) -> None:
        for fighter in self.fighters:
            self._apply_poison(fighter, tick, events)

        for fighter in self.fighters:
            self._claim(PHASE_RESOLVE, fighter)
            opponent = self.opponent_of(fighter)
            if not fighter.is_alive or not opponent.is_alive:
                continue
            if not self.resolver.is_ready(fighter) or not self.resolver.in_reach(fighter, opponent):
                continue
            self._resolve_engagement(fighter, opponent, tick, events)

    def _apply_poison(self, fighter: Fighter, tick: int, events: List[SimulationEvent]) -> None:
        if fighter.poison_pulses <= 0 or not fighter.is_alive:
            return
        fighter.poison_timer -= 1
        if fighter.poison_timer > 0:
            return
        damage = fighter.apply_damage(self.config.poison_damage)
        fighter.poison_pulses -= 1
        fighter.poison_timer = self.config.poison_interval_ticks if fighter.poison_pulses else 0
        self.opponent_of(fighter).damage_dealt += damage
        events.append(SimulationEvent(
            SimulationEventType.HIT, tick,
            fighter=self.opponent_of(fighter).name, target=fighter.name,
            data={"source": "poison", "damage": damage, "hp": fighter.hp},
        ))

    def _resolve_engagement(self, attacker: Fighter, target: Fighter, tick: int,
                            events: List[SimulationEvent]) -> None:
        cfg = self.config
        feint = attempt_feint(attacker, target, self.rng, cfg,
                              base_attack_cooldown(attacker.genome, cfg))
        if feint is not None:
            events.append(SimulationEvent(
                SimulationEventType.FEINT, tick, fighter=attacker.name, target=target.name,
                data={"outcome": feint.outcome.value, "cooldown": feint.cooldown_ticks},
            ))
            if feint.outcome == FeintOutcome.FLINCH:
                events.append(SimulationEvent(
                    SimulationEventType.STUN, tick, fighter=target.name,
                    data={"cause": "flinch", "ticks": cfg.flinch_stun_ticks},
                ))
            return

        outcome = self.resolver.resolve_attack(attacker, target)
        if outcome.status == AttackStatus.REFUSED:
            logger.debug("#%d %s too tired to attack (%.1f stamina)", tick, attacker.name, attacker.stamina)
            return
        if outcome.status == AttackStatus.MISS:
            events.append(SimulationEvent(
                SimulationEventType.MISS, tick, fighter=attacker.name, target=target.name,
                data={"dodgeChance": round(outcome.dodge_chance, 4)},
            ))
            return
        if outcome.status != AttackStatus.HIT:
            return

        events.append(SimulationEvent(
            SimulationEventType.HIT, tick, fighter=attacker.name, target=target.name,
            data={
                "source": "special" if outcome.special else "attack",
                "damage": outcome.damage,
                "critical": outcome.critical,
                "dive": round(outcome.dive_multiplier, 4),
                "flank": outcome.flank_multiplier,
                "poisoned": outcome.poisoned,
                "hp": target.hp,
            },
        ))
        if outcome.stunned:
            events.append(SimulationEvent(
                SimulationEventType.STUN, tick, fighter=target.name,
                data={"cause": "heavy_hit", "ticks": target.stun_remaining},
            ))
        if outcome.recoil:
            target.damage_dealt += outcome.recoil
            events.append(SimulationEvent(
                SimulationEventType.HIT, tick, fighter=target.name, target=attacker.name,
                data={"source": "toxic", "damage": outcome.recoil, "hp": attacker.hp},
            ))

    # -------------------------------------------------------------------------
    # Phase 4: drives and stamina
    # -------------------------------------------------------------------------

    def _update_phase(self, tick: int, events: List[SimulationEvent]) -> None:
        for fighter in self.fighters:
            self._claim(PHASE_UPDATE, fighter)
            if not fighter.is_alive:
                fighter.anim_state = AnimState.DEATH
                continue
            update_drives(fighter.drives, fighter.genome, fighter.landed_hit_this_tick,
                          fighter.took_damage_this_tick, self.config)
            update_stamina(fighter, self.config)
