"""
Drive system.

Aggression and caution are bounded scalars that shift with combat outcomes
and drift back toward genome-derived baselines. They are the only inputs
besides stamina, distance and instinct that the AI decision reads.
"""

from dataclasses import dataclass
from typing import Dict

from .config import CombatConfig
from .genome import Genome
from .physics import clamp


@dataclass
class Drives:
    """Current drive values, each in [0, 1]."""
    aggression: float = 0.5
    caution: float = 0.5

    def to_dict(self) -> Dict[str, float]:
        return {
            "aggression": round(self.aggression, 4),
            "caution": round(self.caution, 4),
        }


def aggression_baseline(genome: Genome) -> float:
    return 0.3 + 0.4 * genome.fury_norm


def caution_baseline(genome: Genome) -> float:
    return 0.3 + 0.3 * (1.0 - genome.fury_norm) + 0.1 * genome.instinct_norm


def initial_drives(genome: Genome) -> Drives:
    """Drives start at their baselines."""
    return Drives(aggression_baseline(genome), caution_baseline(genome))


def update_drives(
    drives: Drives,
    genome: Genome,
    landed_hit: bool,
    took_damage: bool,
    config: CombatConfig,
) -> None:
    """
    Apply one tick of drive dynamics in place.

    Order: hit reinforcement, fury-gated damage response, passive drift,
    then clamp both drives to [0, 1].

    Args:
        drives: Drives to update.
        genome: Owner's genome (fury and instinct set the response and baselines).
        landed_hit: Whether the owner landed a hit this tick.
        took_damage: Whether the owner took damage this tick.
        config: Combat tunables (k_hit, k_dmg, drift_rate).
    """
    aggression = drives.aggression
    caution = drives.caution

    if landed_hit:
        aggression += config.k_hit

    if took_damage:
        fury_norm = genome.fury_norm
        aggression += config.k_dmg * fury_norm
        caution += config.k_dmg * (1.0 - fury_norm)

    aggression += (aggression_baseline(genome) - aggression) * config.drift_rate
    caution += (caution_baseline(genome) - caution) * config.drift_rate

    drives.aggression = clamp(aggression, 0.0, 1.0)
    drives.caution = clamp(caution, 0.0, 1.0)
