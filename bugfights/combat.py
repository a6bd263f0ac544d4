"""
Combat mechanics for Bug Fights.

This module implements weapon profiles, hit resolution, damage calculation
and knockback for melee exchanges between two fighters. Every geometric test
(reach, flanking, knockback direction) uses true 3D vectors.

Resolution order for one attack attempt:
1. Readiness (alive, not stunned, cooldown expired) and 3D reach check
2. Stamina debit (refused attempts change nothing)
3. Hit check (stunned targets are always hit)
4. Damage: weapon base x fury scaling x dive x flank x crit x special, minus shell
5. Stun, knockback, poison and toxic recoil
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import CombatConfig
from .fighter import AnimState, Fighter
from .genome import Defense, Genome, Mobility, Weapon
from .physics import Surface, Vector3D, clamp, lerp
from .rng import MatchRNG
from .stamina import attack_cost


# =============================================================================
# WEAPONS
# =============================================================================

@dataclass(frozen=True)
class WeaponProfile:
    """
    Static weapon characteristics.

    Attributes:
        base_damage: Damage before stat and positional scaling.
        reach: Added to both body radii for the 3D reach sphere.
        knockback: Knockback multiplier.
    """
    base_damage: float
    reach: float
    knockback: float


WEAPON_PROFILES = {
    Weapon.MANDIBLES: WeaponProfile(base_damage=9.0, reach=32.0, knockback=0.8),
    Weapon.STINGER: WeaponProfile(base_damage=7.0, reach=40.0, knockback=1.4),
    Weapon.FANGS: WeaponProfile(base_damage=6.0, reach=30.0, knockback=1.0),
    Weapon.PINCERS: WeaponProfile(base_damage=8.0, reach=35.0, knockback=0.7),
    Weapon.HORN: WeaponProfile(base_damage=8.0, reach=38.0, knockback=1.5),
}

# Wall-impact stun scaling by trait
SHELL_STUN_FACTOR = 0.7
WALLCRAWLER_WALL_STUN_FACTOR = 0.3
FLYER_WALL_STUN_FACTOR = 1.3

# Knockback resistance of a shelled target
SHELL_KNOCKBACK_RESIST = 0.7

# Cosine of the half-angle of the backstab cone behind the target
BACKSTAB_COS = math.cos(math.radians(45.0))


class AttackStatus(Enum):
    NOT_READY = "not_ready"
    OUT_OF_RANGE = "out_of_range"
    REFUSED = "refused"
    MISS = "miss"
    HIT = "hit"


@dataclass
class AttackOutcome:
    """
    Result of one attack attempt.

    Attributes:
        status: What happened.
        damage: Damage applied to the target.
        cost: Stamina debited (0 when refused or not attempted).
        critical: Whether the hit was a critical.
        special: Whether the heavy special strike was used.
        dive_multiplier: Height bonus of a flyer attacking from above (1.0 otherwise).
        flank_multiplier: Positional bonus (1.0, flank or backstab).
        stunned: Whether the hit stunned the target.
        poisoned: Whether the hit poisoned the target.
        recoil: Toxic recoil damage taken by the attacker.
        dodge_chance: Target's dodge chance for this attempt.
    """
    status: AttackStatus
    damage: int = 0
    cost: float = 0.0
    critical: bool = False
    special: bool = False
    dive_multiplier: float = 1.0
    flank_multiplier: float = 1.0
    stunned: bool = False
    poisoned: bool = False
    recoil: int = 0
    dodge_chance: float = 0.0

    @property
    def attempted(self) -> bool:
        return self.status in (AttackStatus.MISS, AttackStatus.HIT)

    def __str__(self) -> str:
        if self.status != AttackStatus.HIT:
            return self.status.value
        text = f"hit for {self.damage}"
        if self.critical:
            text += " [CRITICAL]"
        if self.special:
            text += " [SPECIAL]"
        return text


# =============================================================================
# PURE HELPERS
# =============================================================================

def dive_bonus_multiplier(height_delta: float, arena_height: float, max_bonus: float = 0.5) -> float:
    """
    Damage multiplier for attacks initiated from above.

    1 + max_bonus * clamp(height_delta / arena_height, 0, 1); always in
    [1, 1 + max_bonus] and non-decreasing in height advantage.
    """
    if arena_height <= 0:
        return 1.0
    return 1.0 + max_bonus * clamp(height_delta / arena_height, 0.0, 1.0)


def flank_multiplier(
    attacker_pos: Vector3D,
    target_pos: Vector3D,
    target_facing: Vector3D,
    config: CombatConfig,
) -> float:
    """
    Positional bonus from where the attacker stands relative to the target's facing.

    Behind the target's facing plane earns the flank bonus; inside a 45
    degree cone directly behind it earns the backstab bonus.
    """
    approach = (attacker_pos - target_pos).normalized()
    facing = target_facing.normalized()
    if approach.magnitude_squared == 0 or facing.magnitude_squared == 0:
        return 1.0
    alignment = facing.dot(approach)
    if alignment <= -BACKSTAB_COS:
        return config.backstab_multiplier
    if alignment < 0:
        return config.flank_multiplier
    return 1.0


def fury_scaling(genome: Genome, config: CombatConfig) -> float:
    return config.fury_damage_min + config.fury_damage_range * genome.fury_norm


def attack_reach(attacker: Fighter, target: Fighter) -> float:
    """Centre-to-centre 3D distance at which the attacker's weapon connects."""
    return attacker.body_radius + target.body_radius + WEAPON_PROFILES[attacker.genome.weapon].reach


def base_attack_cooldown(genome: Genome, config: CombatConfig) -> int:
    """Attack cooldown in ticks: faster fighters recover sooner."""
    return int(round(lerp(config.attack_cooldown_max_ticks, config.attack_cooldown_min_ticks, genome.speed_norm)))


def dodge_chance(target: Fighter, attacker: Fighter, config: CombatConfig) -> float:
    """Chance that a non-stunned target evades an attack."""
    chance = target.genome.instinct_norm * config.dodge_instinct
    chance -= attacker.momentum * config.dodge_momentum
    if target.genome.is_flyer and target.is_airborne:
        chance += config.dodge_airborne_bonus
    if target.genome.defense == Defense.CAMOUFLAGE:
        chance += config.dodge_camouflage_bonus
    chance = clamp(chance, config.dodge_min, config.dodge_max)
    if target.off_balance_remaining > 0:
        chance *= 0.5
    return chance


def wall_stun_ticks(fighter: Fighter, config: CombatConfig) -> int:
    factor = 1.0
    if fighter.genome.defense == Defense.SHELL:
        factor *= SHELL_STUN_FACTOR
    if fighter.genome.mobility == Mobility.WALLCRAWLER:
        factor *= WALLCRAWLER_WALL_STUN_FACTOR
    elif fighter.genome.mobility == Mobility.WINGED:
        factor *= FLYER_WALL_STUN_FACTOR
    return max(1, int(round(config.wall_stun_ticks * factor)))


def heavy_hit_stun_ticks(fighter: Fighter, config: CombatConfig) -> int:
    factor = SHELL_STUN_FACTOR if fighter.genome.defense == Defense.SHELL else 1.0
    return max(1, int(round(config.heavy_hit_stun_ticks * factor)))


# =============================================================================
# RESOLVER
# =============================================================================

class CombatResolver:
    """
    Resolves attack attempts between fighters.

    All randomness comes from the injected match RNG, so a resolver never
    touches global random state.
    """

    def __init__(self, rng: MatchRNG, config: Optional[CombatConfig] = None):
        """
        Initialize the combat resolver.

        Args:
            rng: Match random source.
            config: Combat tunables (defaults when omitted).
        """
        self.rng = rng
        self.config = config or CombatConfig()

    def is_ready(self, attacker: Fighter) -> bool:
        return attacker.is_alive and not attacker.is_stunned and attacker.attack_cooldown == 0

    def in_reach(self, attacker: Fighter, target: Fighter) -> bool:
        return attacker.distance_to(target) <= attack_reach(attacker, target)

    def wants_special(self, attacker: Fighter) -> bool:
        """Heavy strike gate: aggressive, well rested, and a winning draw."""
        cfg = self.config
        if attacker.drives.aggression < cfg.special_aggression_threshold:
            return False
        if attacker.stamina_ratio < cfg.special_stamina_ratio:
            return False
        if not attacker.can_afford(cfg.special_cost):
            return False
        return self.rng.chance(cfg.special_chance)

    def resolve_attack(self, attacker: Fighter, target: Fighter) -> AttackOutcome:
        """
        Resolve one attack attempt from attacker on target.

        A refused attempt (insufficient stamina) mutates neither fighter.

        Returns:
            AttackOutcome describing the attempt.
        """
        cfg = self.config
        if not self.is_ready(attacker) or not target.is_alive:
            return AttackOutcome(status=AttackStatus.NOT_READY)
        if not self.in_reach(attacker, target):
            return AttackOutcome(status=AttackStatus.OUT_OF_RANGE)

        special = self.wants_special(attacker)
        cost = cfg.special_cost if special else attack_cost(attacker.genome, cfg)
        if not attacker.spend_stamina(cost):
            return AttackOutcome(status=AttackStatus.REFUSED)

        base_cd = base_attack_cooldown(attacker.genome, cfg)
        attacker.attack_cooldown = base_cd
        attacker.anim_state = AnimState.ATTACK
        line = target.position - attacker.position
        if line.magnitude_squared > 0:
            attacker.facing = line.normalized()

        if target.is_stunned:
            chance = 0.0
        else:
            chance = dodge_chance(target, attacker, cfg)
            if self.rng.chance(chance):
                # Overcommitting into a dodge costs recovery time
                attacker.attack_cooldown = base_cd + int(attacker.momentum * 12)
                return AttackOutcome(status=AttackStatus.MISS, cost=cost, special=special, dodge_chance=chance)

        return self._apply_hit(attacker, target, cost, special, chance)

    def _apply_hit(
        self,
        attacker: Fighter,
        target: Fighter,
        cost: float,
        special: bool,
        chance: float,
    ) -> AttackOutcome:
        cfg = self.config
        profile = WEAPON_PROFILES[attacker.genome.weapon]

        dive = 1.0
        if attacker.genome.is_flyer:
            height_delta = attacker.position.y - target.position.y
            dive = dive_bonus_multiplier(height_delta, cfg.arena.height, cfg.dive_bonus_max)
        flank = flank_multiplier(attacker.position, target.position, target.facing, cfg)
        critical = self.rng.chance(attacker.genome.fury / 200.0)

        raw = profile.base_damage * fury_scaling(attacker.genome, cfg) * dive * flank
        if critical:
            raw *= cfg.crit_multiplier
        if special:
            raw *= cfg.special_damage_multiplier
        damage = int(raw)
        if target.genome.defense == Defense.SHELL:
            damage -= target.genome.bulk // 20
        damage = max(1, damage)

        applied = target.apply_damage(damage)
        attacker.landed_hit_this_tick = True
        attacker.damage_dealt += applied
        target.anim_state = AnimState.HIT

        outcome = AttackOutcome(
            status=AttackStatus.HIT,
            damage=applied,
            cost=cost,
            critical=critical,
            special=special,
            dive_multiplier=dive,
            flank_multiplier=flank,
            dodge_chance=chance,
        )

        heavy = critical or special or applied >= cfg.heavy_hit_fraction * target.max_hp
        if heavy and target.is_alive:
            outcome.stunned = target.stun(heavy_hit_stun_ticks(target, cfg))

        self._apply_knockback(attacker, target, applied, critical)

        if attacker.genome.weapon == Weapon.FANGS and target.is_alive:
            if self.rng.chance(cfg.poison_chance):
                target.poison_pulses = cfg.poison_pulses
                target.poison_timer = cfg.poison_interval_ticks
                outcome.poisoned = True

        if target.genome.defense == Defense.TOXIC:
            recoil = int(target.genome.bulk / cfg.toxic_recoil_divisor)
            if recoil > 0:
                outcome.recoil = attacker.apply_damage(recoil)

        return outcome

    def _apply_knockback(self, attacker: Fighter, target: Fighter, damage: int, critical: bool) -> None:
        """Push the target along the full 3D attacker-to-target unit vector."""
        cfg = self.config
        direction = (target.position - attacker.position).normalized()
        if direction.magnitude_squared == 0:
            direction = attacker.facing.normalized()

        resist = SHELL_KNOCKBACK_RESIST if target.genome.defense == Defense.SHELL else 1.0
        base = cfg.knockback_base * (1.6 if critical else 1.0)
        force = (
            base
            * math.sqrt(attacker.mass / target.mass)
            * WEAPON_PROFILES[attacker.genome.weapon].knockback
            * resist
            * (1.0 + target.momentum * 0.5)
            * (0.8 + damage / 10.0 * 0.3)
        )
        target.velocity = target.velocity + direction * force
        target.knocked_back = True
        if target.genome.is_wallcrawler and target.surface not in (Surface.FLOOR, Surface.NONE):
            target.surface = Surface.NONE
