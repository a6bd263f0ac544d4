"""
Combat configuration.

Every designer-tunable constant of the combat core lives here as a named,
documented dataclass field. Defaults reproduce the live arena tuning.
Configurations can be loaded from JSON files or plain dicts; unknown keys
and invalid values raise ConfigError.
"""

import json
import math
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError
from .physics import ArenaBounds

CONFIG_ENV_VAR = "BUGFIGHTS_CONFIG"


@dataclass
class ArenaConfig:
    """Arena geometry and bulk physics."""
    width: float = 900.0
    height: float = 400.0
    depth: float = 600.0
    gravity: float = 0.6  # units/tick^2 for grounded, non-attached bodies
    bounce: float = 0.3  # velocity kept after hitting a wall or ceiling
    ground_friction: float = 0.85  # velocity multiplier while on the floor
    air_drag: float = 0.98  # velocity multiplier while airborne or attached

    def __post_init__(self) -> None:
        for name in ("width", "height", "depth"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"arena {name} must be positive")
        for name in ("bounce", "ground_friction", "air_drag"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ConfigError(f"arena {name} must be in [0, 1]")
        if self.gravity < 0:
            raise ConfigError("arena gravity must be non-negative")

    @property
    def bounds(self) -> ArenaBounds:
        return ArenaBounds(self.width, self.height, self.depth)


@dataclass
class CombatConfig:
    """
    Tunables for drives, stamina, AI, feints, combat and match pacing.

    Time values ending in ``_ticks`` are in simulation ticks; values ending
    in ``_s`` are seconds and are converted with ``tick_rate``.
    """
    arena: ArenaConfig = field(default_factory=ArenaConfig)

    # --- Match pacing ---
    tick_rate: int = 30  # ticks per second
    tick_interval_ms: float = 33.0  # realtime loop period
    countdown_s: float = 10.0

    # --- Drives ---
    k_hit: float = 0.04  # aggression gained when landing a hit
    k_dmg: float = 0.06  # drive shift when taking damage, split by fury
    drift_rate: float = 0.002  # fraction of the gap to baseline closed per tick

    # --- Stamina ---
    stamina_max_min: float = 50.0  # at bulk 0
    stamina_max_max: float = 150.0  # at bulk 100
    regen_min: float = 0.3  # per tick at speed 0
    regen_max: float = 0.8  # per tick at speed 100
    regen_bonus: float = 1.5  # while circling or retreating
    surface_regen_bonus: float = 1.8  # wallcrawler attached to any surface
    landed_flyer_regen_bonus: float = 2.0  # flyer resting on the floor
    flight_drain: float = 0.25  # per tick while airborne
    flight_land_ratio: float = 0.10  # flyer lands below this stamina ratio
    flight_takeoff_ratio: float = 0.50  # and takes off again above this one
    exhausted_ratio: float = 0.30  # below this the fighter must retreat
    exhausted_min_speed_factor: float = 0.2  # movement floor when exhausted
    attack_fury_cost_scale: float = 0.2
    attack_cost_min: float = 8.0
    attack_cost_max: float = 18.0
    jump_cost: float = 5.0
    special_cost: float = 25.0
    feint_cost: float = 3.0

    # --- AI ---
    engage_range: float = 40.0  # 3D gap beyond which approach is needed
    decision_margin: float = 0.10  # aggression lead required to close in
    state_hysteresis: float = 0.05  # extra caution slack to stay circling
    circle_radius_min: float = 80.0
    circle_radius_caution: float = 80.0  # added at caution 1.0

    # --- Feints ---
    feint_w_instinct: float = 0.12
    feint_w_caution: float = 0.06
    feint_fury_damping: float = 0.5
    feint_base_chance: float = 0.04
    feint_cooldown_min_s: float = 3.0
    feint_cooldown_max_s: float = 5.0
    feint_read_min: float = 0.15  # read chance at target instinct 0
    feint_read_max: float = 0.70  # read chance at target instinct 100
    feint_dodge_share_min: float = 0.4  # share of non-read outcomes that dodge
    feint_dodge_share_instinct: float = 0.2
    feint_read_penalty_ticks: int = 15  # attack cooldown added when read
    follow_up_cooldown_factor: float = 0.3
    follow_up_window_ticks: int = 20  # target off-balance after a baited dodge
    feint_dodge_impulse: float = 4.0

    # --- Stuns ---
    heavy_hit_stun_ticks: int = 20
    flinch_stun_ticks: int = 8
    wall_stun_ticks: int = 12
    wall_stun_min_impact: float = 4.0
    heavy_hit_fraction: float = 0.12  # damage/maxHp at which a hit is heavy

    # --- Attacks ---
    attack_cooldown_min_ticks: int = 28  # at speed 100
    attack_cooldown_max_ticks: int = 48  # at speed 0
    dodge_instinct: float = 0.6
    dodge_momentum: float = 0.3
    dodge_airborne_bonus: float = 0.15
    dodge_camouflage_bonus: float = 0.12
    dodge_min: float = 0.05
    dodge_max: float = 0.75
    fury_damage_min: float = 0.8
    fury_damage_range: float = 0.6
    dive_bonus_max: float = 0.5
    flank_multiplier: float = 1.25
    backstab_multiplier: float = 1.4
    crit_multiplier: float = 1.5
    special_damage_multiplier: float = 1.6
    special_aggression_threshold: float = 0.7
    special_stamina_ratio: float = 0.6
    special_chance: float = 0.25
    knockback_base: float = 5.0
    poison_chance: float = 1.0 / 3.0
    poison_pulses: int = 4
    poison_damage: int = 2
    poison_interval_ticks: int = 30
    toxic_recoil_divisor: float = 25.0

    # --- Movement ---
    jump_impulse: float = 9.0
    jump_cooldown_ticks: int = 45

    # --- Stalemate ---
    stalemate_warning_ticks: int = 300
    sudden_death: bool = True
    sudden_death_ticks: int = 2700
    decision_draw_margin: float = 0.02

    def __post_init__(self) -> None:
        if isinstance(self.arena, dict):
            self.arena = ArenaConfig(**self.arena)
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: If any value is negative, non-finite, or inconsistent.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or f.name == "arena":
                continue
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigError(f"{f.name} must be a finite number, got {value!r}")
            if value < 0:
                raise ConfigError(f"{f.name} must be non-negative, got {value}")

        if self.tick_rate <= 0:
            raise ConfigError("tick_rate must be positive")
        pairs = (
            ("stamina_max_min", "stamina_max_max"),
            ("regen_min", "regen_max"),
            ("attack_cost_min", "attack_cost_max"),
            ("feint_cooldown_min_s", "feint_cooldown_max_s"),
            ("feint_read_min", "feint_read_max"),
            ("attack_cooldown_min_ticks", "attack_cooldown_max_ticks"),
            ("dodge_min", "dodge_max"),
            ("flight_land_ratio", "flight_takeoff_ratio"),
            ("stalemate_warning_ticks", "sudden_death_ticks"),
        )
        for lo, hi in pairs:
            if getattr(self, lo) > getattr(self, hi):
                raise ConfigError(f"{lo} must not exceed {hi}")
        probabilities = (
            "feint_read_min", "feint_read_max", "feint_dodge_share_min",
            "dodge_min", "dodge_max", "special_chance", "poison_chance",
            "drift_rate", "exhausted_ratio", "exhausted_min_speed_factor",
        )
        for name in probabilities:
            if getattr(self, name) > 1.0:
                raise ConfigError(f"{name} must be in [0, 1]")
        if self.feint_dodge_share_min + self.feint_dodge_share_instinct > 1.0:
            raise ConfigError("feint dodge share can exceed 1.0 at full instinct")

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def bounds(self) -> ArenaBounds:
        return self.arena.bounds

    @property
    def countdown_ticks(self) -> int:
        return int(round(self.countdown_s * self.tick_rate))

    def seconds_to_ticks(self, seconds: float) -> int:
        return int(round(seconds * self.tick_rate))

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CombatConfig":
        """Create configuration from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

        kwargs = dict(data)
        arena = kwargs.pop("arena", None)
        if arena is not None:
            arena_known = {f.name for f in fields(ArenaConfig)}
            arena_unknown = sorted(set(arena) - arena_known)
            if arena_unknown:
                raise ConfigError(f"unknown arena keys: {', '.join(arena_unknown)}")
            kwargs["arena"] = ArenaConfig(**arena)
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> "CombatConfig":
        """Load configuration from a JSON file."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a JSON object")
        return cls.from_dict(data)


def load_config(path: Optional[str] = None) -> CombatConfig:
    """
    Resolve the active configuration.

    Uses `path` when given, else the file named by ``BUGFIGHTS_CONFIG``,
    else the defaults.
    """
    path = path or os.getenv(CONFIG_ENV_VAR)
    if path:
        return CombatConfig.from_json(str(Path(path)))
    return CombatConfig()
