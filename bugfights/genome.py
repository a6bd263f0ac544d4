"""
Genome contract consumed by the combat core.

Genomes are produced elsewhere (roster generation and breeding); the core
only validates and reads them. Validation happens once, at match setup, and
an invalid genome is rejected rather than clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from .errors import GenomeValidationError


# =============================================================================
# CONSTANTS
# =============================================================================

STAT_MIN = 10
STAT_MAX = 100
STAT_CAP = 350
STAT_NAMES = ("bulk", "speed", "fury", "instinct")


# =============================================================================
# TRAITS
# =============================================================================

class Weapon(str, Enum):
    MANDIBLES = "mandibles"
    STINGER = "stinger"
    FANGS = "fangs"
    PINCERS = "pincers"
    HORN = "horn"


class Defense(str, Enum):
    NONE = "none"
    SHELL = "shell"
    TOXIC = "toxic"
    CAMOUFLAGE = "camouflage"


class Mobility(str, Enum):
    """Mobility class; decides the movement domain and surface rules."""
    GROUND = "ground"
    WINGED = "winged"
    WALLCRAWLER = "wallcrawler"


class LegStyle(str, Enum):
    INSECT = "insect"
    SPIDER = "spider"
    MANTIS = "mantis"
    GRASSHOPPER = "grasshopper"
    BEETLE = "beetle"
    STICK = "stick"
    CENTIPEDE = "centipede"


# Jump impulse multiplier by leg style
LEG_JUMP_FACTOR = {
    LegStyle.INSECT: 1.0,
    LegStyle.SPIDER: 1.1,
    LegStyle.MANTIS: 1.0,
    LegStyle.GRASSHOPPER: 1.4,
    LegStyle.BEETLE: 0.85,
    LegStyle.STICK: 0.95,
    LegStyle.CENTIPEDE: 0.8,
}

_TRAIT_FIELDS = {
    "weapon": Weapon,
    "defense": Defense,
    "mobility": Mobility,
    "leg_style": LegStyle,
}


# =============================================================================
# GENOME
# =============================================================================

@dataclass(frozen=True)
class Genome:
    """
    Immutable stat and trait bundle for one fighter.

    Attributes:
        bulk: Body mass and toughness, drives max HP and max stamina.
        speed: Acceleration, top speed, stamina regen and attack tempo.
        fury: Damage scaling and aggression baseline.
        instinct: Dodging, feint reading and tactical judgement.
        weapon: Natural weapon.
        defense: Defensive trait.
        mobility: Movement class.
        leg_style: Leg build, affects jump strength.
    """
    bulk: int
    speed: int
    fury: int
    instinct: int
    weapon: Weapon = Weapon.MANDIBLES
    defense: Defense = Defense.NONE
    mobility: Mobility = Mobility.GROUND
    leg_style: LegStyle = LegStyle.INSECT

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise GenomeValidationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise GenomeValidationError(f"{name} must be finite, got {value!r}")
            if value != int(value):
                raise GenomeValidationError(f"{name} must be a whole number, got {value!r}")
            object.__setattr__(self, name, int(value))
            if not STAT_MIN <= value <= STAT_MAX:
                raise GenomeValidationError(
                    f"{name}={value} outside [{STAT_MIN}, {STAT_MAX}]"
                )

        if self.stat_total > STAT_CAP:
            raise GenomeValidationError(
                f"stat total {self.stat_total} exceeds cap {STAT_CAP}"
            )

        for name, enum_cls in _TRAIT_FIELDS.items():
            value = getattr(self, name)
            if isinstance(value, enum_cls):
                continue
            try:
                object.__setattr__(self, name, enum_cls(value))
            except ValueError:
                allowed = ", ".join(m.value for m in enum_cls)
                raise GenomeValidationError(
                    f"unknown {name} {value!r} (expected one of: {allowed})"
                ) from None

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def stat_total(self) -> float:
        return self.bulk + self.speed + self.fury + self.instinct

    @property
    def fury_norm(self) -> float:
        return self.fury / 100.0

    @property
    def instinct_norm(self) -> float:
        return self.instinct / 100.0

    @property
    def bulk_norm(self) -> float:
        return self.bulk / 100.0

    @property
    def speed_norm(self) -> float:
        return self.speed / 100.0

    @property
    def size_multiplier(self) -> float:
        return 0.6 + self.bulk_norm * 0.9

    @property
    def is_flyer(self) -> bool:
        return self.mobility == Mobility.WINGED

    @property
    def is_wallcrawler(self) -> bool:
        return self.mobility == Mobility.WALLCRAWLER

    @property
    def jump_factor(self) -> float:
        return LEG_JUMP_FACTOR[self.leg_style]

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bulk": self.bulk,
            "speed": self.speed,
            "fury": self.fury,
            "instinct": self.instinct,
            "weapon": self.weapon.value,
            "defense": self.defense.value,
            "mobility": self.mobility.value,
            "legStyle": self.leg_style.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Genome:
        """
        Build a genome from an external record.

        Accepts camelCase (``legStyle``) or snake_case keys; cosmetic fields
        such as colours or body part shapes are ignored.

        Raises:
            GenomeValidationError: If a stat is missing or any value is invalid.
        """
        missing = [name for name in STAT_NAMES if name not in data]
        if missing:
            raise GenomeValidationError(f"genome missing stats: {', '.join(missing)}")

        kwargs: Dict[str, Any] = {name: data[name] for name in STAT_NAMES}
        for name in ("weapon", "defense", "mobility"):
            if name in data:
                kwargs[name] = data[name]
        leg_style = data.get("leg_style", data.get("legStyle"))
        if leg_style is not None:
            kwargs["leg_style"] = leg_style
        return cls(**kwargs)
