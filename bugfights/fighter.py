"""
Fighter state.

A Fighter is the mutable per-combatant state built from a genome and a spawn
pose. The bounded quantities (hp, stamina) can only change through the
mutators below, which enforce 0 <= hp <= max_hp and 0 <= stamina <= max.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Optional

from .ai import AIState
from .config import CombatConfig
from .drives import Drives, initial_drives
from .genome import Genome
from .physics import Surface, Vector3D, clamp
from .stamina import stamina_max


class AnimState(str, Enum):
    """Presentation tag for renderers; the simulation never reads it."""
    IDLE = "idle"
    MOVE = "move"
    ATTACK = "attack"
    FEINT = "feint"
    HIT = "hit"
    STUNNED = "stunned"
    DEATH = "death"
    VICTORY = "victory"


def body_radius(genome: Genome) -> float:
    """Collision radius: half the rendered sprite size, which is clamped to [20, 48]."""
    return clamp(32.0 * genome.size_multiplier, 20.0, 48.0) / 2.0


def body_mass(genome: Genome) -> float:
    return 0.5 + genome.bulk_norm * 1.5


class Fighter:
    """
    Mutable combat state for one fighter.

    Attributes:
        name: Display name, also used in events.
        index: Slot in the match (0 or 1).
        genome: Immutable stats and traits.
        position, velocity, facing: Kinematic state (facing is a unit vector).
        hp, max_hp: Health.
        stamina, stamina_max: Action budget.
        drives: Aggression and caution.
        ai_state: Current AI state.
        surface: Attached surface for wallcrawlers, NONE otherwise.
        attack_cooldown, feint_cooldown, stun_remaining: Timers in ticks.
        off_balance_remaining: Ticks of halved dodge after a baited dodge.
        jump_cooldown: Ticks until another jump is allowed.
        poison_pulses, poison_timer: Pending poison damage pulses.
    """

    def __init__(
        self,
        genome: Genome,
        position: Vector3D,
        config: CombatConfig,
        name: str = "fighter",
        index: int = 0,
        facing: Optional[Vector3D] = None,
    ):
        self.name = name
        self.index = index
        self.genome = genome

        self.position = position.copy()
        self.last_valid_position = position.copy()
        self.velocity = Vector3D.zero()
        self.facing = (facing or Vector3D(1, 0, 0)).normalized()

        self.max_hp = 150 + math.floor(genome.bulk * 5)
        self.hp = self.max_hp
        self.stamina_max = stamina_max(genome, config)
        self.stamina = self.stamina_max

        self.drives: Drives = initial_drives(genome)
        self.ai_state = AIState.CIRCLING
        self.anim_state = AnimState.IDLE
        self.surface = Surface.FLOOR if genome.is_wallcrawler else Surface.NONE

        self.body_radius = body_radius(genome)
        self.mass = body_mass(genome)
        self.grounded = not genome.is_flyer
        self.is_airborne = genome.is_flyer
        self.is_diving = False
        self.knocked_back = False

        self.attack_cooldown = 0
        self.feint_cooldown = 0
        self.stun_remaining = 0
        self.off_balance_remaining = 0
        self.jump_cooldown = 0
        self.poison_pulses = 0
        self.poison_timer = 0

        # Per-tick flags consumed by the drive update
        self.landed_hit_this_tick = False
        self.took_damage_this_tick = False

        self.damage_dealt = 0
        self.damage_taken = 0

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def is_alive(self) -> bool:
        return self.hp > 0

    @property
    def is_stunned(self) -> bool:
        return self.stun_remaining > 0

    @property
    def stamina_ratio(self) -> float:
        return self.stamina / self.stamina_max if self.stamina_max > 0 else 0.0

    @property
    def hp_ratio(self) -> float:
        return self.hp / self.max_hp

    @property
    def momentum(self) -> float:
        """Speed normalised to [0, 1] (full momentum at 8 units/tick)."""
        return min(self.velocity.magnitude / 8.0, 1.0)

    def distance_to(self, other: Fighter) -> float:
        return self.position.distance_to(other.position)

    # -------------------------------------------------------------------------
    # Bounded mutators
    # -------------------------------------------------------------------------

    def apply_damage(self, amount: int) -> int:
        """
        Remove hp, never below zero.

        Returns:
            Damage actually applied.

        Raises:
            ValueError: If amount is negative (there is no healing).
        """
        if amount < 0:
            raise ValueError("damage must be non-negative")
        applied = min(int(amount), self.hp)
        if applied > 0:
            self.hp -= applied
            self.took_damage_this_tick = True
            self.damage_taken += applied
        return applied

    def can_afford(self, cost: float) -> bool:
        return cost <= self.stamina

    def spend_stamina(self, cost: float) -> bool:
        """Debit cost atomically; refuses (and changes nothing) if unaffordable."""
        if cost < 0:
            raise ValueError("stamina cost must be non-negative")
        if not self.can_afford(cost):
            return False
        self.stamina -= cost
        return True

    def restore_stamina(self, amount: float) -> None:
        self.stamina = min(self.stamina_max, self.stamina + max(0.0, amount))

    def drain_stamina(self, amount: float) -> None:
        """Unconditional drain (flight upkeep), floored at zero."""
        self.stamina = max(0.0, self.stamina - max(0.0, amount))

    def stun(self, ticks: int) -> bool:
        """
        Start or extend a stun. Longer stuns are never shortened. The AI
        state switches to STUNNED at the next decision phase; the tick the
        stun starts on counts as its first tick.

        Returns:
            True if the stun timer was raised.
        """
        if ticks <= self.stun_remaining:
            return False
        self.stun_remaining = int(ticks)
        self.anim_state = AnimState.STUNNED
        return True

    def tick_timers(self) -> None:
        """Decrement every timer once, stopping at zero."""
        self.attack_cooldown = max(0, self.attack_cooldown - 1)
        self.feint_cooldown = max(0, self.feint_cooldown - 1)
        self.stun_remaining = max(0, self.stun_remaining - 1)
        self.off_balance_remaining = max(0, self.off_balance_remaining - 1)
        self.jump_cooldown = max(0, self.jump_cooldown - 1)

    def clear_timers(self) -> None:
        """Drop every pending timer (used when a match is aborted)."""
        self.attack_cooldown = 0
        self.feint_cooldown = 0
        self.stun_remaining = 0
        self.off_balance_remaining = 0
        self.jump_cooldown = 0
        self.poison_pulses = 0
        self.poison_timer = 0

    def reset_tick_flags(self) -> None:
        self.landed_hit_this_tick = False
        self.took_damage_this_tick = False

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        """Public state for viewers."""
        return {
            "name": self.name,
            "position": self.position.to_list(),
            "hp": self.hp,
            "maxHp": self.max_hp,
            "stamina": round(self.stamina, 3),
            "staminaMax": round(self.stamina_max, 3),
            "aiState": self.ai_state.value,
            "animState": self.anim_state.value,
            "facing": self.facing.to_list(),
            "surface": self.surface.value,
            "drives": self.drives.to_dict(),
        }

    def __repr__(self) -> str:
        return (f"Fighter({self.name!r}, hp={self.hp}/{self.max_hp}, "
                f"stamina={self.stamina:.1f}, state={self.ai_state.value})")
