"""
Stamina economy.

Stamina gates every action. Costs are checked and debited atomically before
an action resolves; an unaffordable action is refused with no state change.
Regeneration depends on speed, AI state and mobility (surface attachment for
wallcrawlers, flight for flyers).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .ai import AIState
from .config import CombatConfig
from .genome import Genome, Weapon
from .physics import Surface, clamp, lerp

if TYPE_CHECKING:
    from .fighter import Fighter


# Base attack cost per weapon before fury scaling
WEAPON_BASE_COST = {
    Weapon.MANDIBLES: 15.0,
    Weapon.STINGER: 10.0,
    Weapon.FANGS: 10.0,
    Weapon.PINCERS: 12.0,
    Weapon.HORN: 8.0,
}


def stamina_max(genome: Genome, config: CombatConfig) -> float:
    return lerp(config.stamina_max_min, config.stamina_max_max, genome.bulk_norm)


def base_regen(genome: Genome, config: CombatConfig) -> float:
    """Passive regen per tick before multipliers."""
    return lerp(config.regen_min, config.regen_max, genome.speed_norm)


def attack_cost(genome: Genome, config: CombatConfig) -> float:
    """Basic attack cost: weapon base scaled up by fury, kept in the configured band."""
    raw = WEAPON_BASE_COST[genome.weapon] * (1.0 + config.attack_fury_cost_scale * genome.fury_norm)
    return clamp(raw, config.attack_cost_min, config.attack_cost_max)


def regen_multiplier(fighter: Fighter, config: CombatConfig) -> float:
    """
    Regen multiplier for the fighter's current situation.

    The largest applicable bonus wins: circling or retreating, wallcrawler
    attached to any surface, or a flyer resting on the floor.
    """
    multiplier = 1.0
    if fighter.ai_state in (AIState.CIRCLING, AIState.RETREATING):
        multiplier = max(multiplier, config.regen_bonus)
    if fighter.genome.is_wallcrawler and fighter.surface != Surface.NONE:
        multiplier = max(multiplier, config.surface_regen_bonus)
    if fighter.genome.is_flyer and not fighter.is_airborne:
        multiplier = max(multiplier, config.landed_flyer_regen_bonus)
    return multiplier


def regen_per_tick(fighter: Fighter, config: CombatConfig) -> float:
    if fighter.genome.is_flyer and fighter.is_airborne:
        return 0.0
    return base_regen(fighter.genome, config) * regen_multiplier(fighter, config)


def speed_factor(stamina_ratio: float, config: CombatConfig) -> float:
    """Movement scale: 1.0 normally, proportional to the ratio when exhausted."""
    if stamina_ratio >= config.exhausted_ratio:
        return 1.0
    return max(config.exhausted_min_speed_factor, stamina_ratio / config.exhausted_ratio)


def update_stamina(fighter: Fighter, config: CombatConfig) -> float:
    """
    Apply one tick of regeneration or flight drain, then flight hysteresis.

    A flyer lands when its ratio falls below ``flight_land_ratio`` and takes
    off again once it recovers above ``flight_takeoff_ratio``.

    Returns:
        Net stamina change this tick.
    """
    before = fighter.stamina
    if fighter.genome.is_flyer and fighter.is_airborne:
        fighter.drain_stamina(config.flight_drain)
    else:
        fighter.restore_stamina(regen_per_tick(fighter, config))

    if fighter.genome.is_flyer and fighter.is_alive:
        ratio = fighter.stamina_ratio
        if fighter.is_airborne and ratio < config.flight_land_ratio:
            fighter.is_airborne = False
            fighter.is_diving = False
        elif not fighter.is_airborne and ratio > config.flight_takeoff_ratio:
            fighter.is_airborne = True

    return fighter.stamina - before
