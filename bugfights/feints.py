"""
Feint mini-game.

A fighter in range with its attack ready may telegraph a fake attack instead
of a real one. The target either reads it, flinches, or wastes a dodge. The
outcome comes from a single draw against the probability curve so replays
reproduce it exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import CombatConfig
from .drives import Drives
from .fighter import AnimState, Fighter
from .genome import Genome
from .physics import Vector3D, lerp
from .rng import MatchRNG


class FeintOutcome(str, Enum):
    READ = "read"
    DODGE = "dodge"
    FLINCH = "flinch"


@dataclass
class FeintResult:
    """What one feint did."""
    outcome: FeintOutcome
    cooldown_ticks: int
    draw: float


def feint_chance(genome: Genome, drives: Drives, config: CombatConfig) -> float:
    """
    Per-opportunity feint probability.

    Rises with instinct (fully when caution dominates, half otherwise) and
    with caution; high fury damps it.
    """
    caution_dominates = drives.caution >= drives.aggression
    instinct_term = genome.instinct_norm * config.feint_w_instinct * (1.0 if caution_dominates else 0.5)
    caution_term = drives.caution * config.feint_w_caution
    damping = 1.0 - genome.fury_norm * config.feint_fury_damping
    return (instinct_term + caution_term) * damping + config.feint_base_chance


def read_chance(target_instinct: float, config: CombatConfig) -> float:
    return lerp(config.feint_read_min, config.feint_read_max, target_instinct / 100.0)


def dodge_share(target_instinct: float, config: CombatConfig) -> float:
    """Share of unread feints that bait a dodge rather than a flinch."""
    return config.feint_dodge_share_min + config.feint_dodge_share_instinct * target_instinct / 100.0


def resolve_outcome(u: float, target_instinct: float, config: CombatConfig) -> FeintOutcome:
    """
    Map one uniform draw in [0, 1) to exactly one outcome.

    [0, read) is READ, the next dodge_share of the remainder is DODGE, and
    the rest is FLINCH.
    """
    p_read = read_chance(target_instinct, config)
    if u < p_read:
        return FeintOutcome.READ
    if u < p_read + (1.0 - p_read) * dodge_share(target_instinct, config):
        return FeintOutcome.DODGE
    return FeintOutcome.FLINCH


def draw_feint_cooldown(rng: MatchRNG, config: CombatConfig) -> int:
    """Cooldown in ticks drawn from [min_s, max_s] seconds."""
    seconds = rng.uniform(config.feint_cooldown_min_s, config.feint_cooldown_max_s)
    return config.seconds_to_ticks(seconds)


def can_feint(attacker: Fighter, target: Fighter, config: CombatConfig) -> bool:
    return (
        not attacker.is_stunned
        and attacker.attack_cooldown == 0
        and attacker.feint_cooldown == 0
        and not target.is_stunned
        and target.is_alive
        and attacker.can_afford(config.feint_cost)
    )


def attempt_feint(
    attacker: Fighter,
    target: Fighter,
    rng: MatchRNG,
    config: CombatConfig,
    base_cooldown: int,
) -> Optional[FeintResult]:
    """
    Roll for a feint and resolve it if it triggers.

    The caller has already confirmed the target is inside weapon range.
    Draw order is fixed: trigger, cooldown, outcome.

    Args:
        attacker: Fighter considering the feint.
        target: Fighter being feinted at.
        rng: Match random source.
        config: Combat tunables.
        base_cooldown: Attacker's normal attack cooldown in ticks.

    Returns:
        The feint result, or None if no feint was made.
    """
    if not can_feint(attacker, target, config):
        return None
    if not rng.chance(feint_chance(attacker.genome, attacker.drives, config)):
        return None
    if not attacker.spend_stamina(config.feint_cost):
        return None

    cooldown = draw_feint_cooldown(rng, config)
    attacker.feint_cooldown = cooldown
    attacker.anim_state = AnimState.FEINT

    u = rng.draw()
    outcome = resolve_outcome(u, target.genome.instinct, config)

    if outcome == FeintOutcome.READ:
        attacker.attack_cooldown = base_cooldown + config.feint_read_penalty_ticks
    elif outcome == FeintOutcome.DODGE:
        # Side-step perpendicular to the line of attack, in the floor plane
        line = (target.position - attacker.position).horizontal().normalized()
        side = Vector3D(-line.z, 0.0, line.x)
        strength = config.feint_dodge_impulse * (1.0 + target.genome.instinct_norm)
        target.velocity = target.velocity + side * strength
        target.off_balance_remaining = max(target.off_balance_remaining, config.follow_up_window_ticks)
        attacker.attack_cooldown = int(base_cooldown * config.follow_up_cooldown_factor)
    else:
        target.stun(config.flinch_stun_ticks)
        attacker.attack_cooldown = int(base_cooldown * config.follow_up_cooldown_factor)

    return FeintResult(outcome=outcome, cooldown_ticks=cooldown, draw=u)
