"""
Fight diagnostics.

FightMonitor watches a running match: it keeps per-fighter stats from the
tick events, tracks how long the fight has gone without damage, and raises
escalating stalemate warnings through the logger. The match controller
uses the monitor's stalemate clock for its optional sudden-death decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .ai import AIState
from .combat import attack_reach
from .config import CombatConfig
from .events import SimulationEvent, SimulationEventType
from .fighter import Fighter

logger = logging.getLogger(__name__)


class StalemateLevel(str, Enum):
    WARNING = "warning"
    EXTENDED = "extended"
    CONTINUING = "continuing"


@dataclass
class StalemateWarning:
    """One escalation step of a stalemate."""
    level: StalemateLevel
    tick: int
    ticks_without_damage: int
    distance: float
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "tick": self.tick,
            "ticksWithoutDamage": self.ticks_without_damage,
            "distance": round(self.distance, 2),
            "issues": list(self.issues),
        }


@dataclass
class FighterStats:
    """Counters for one fighter."""
    attacks: int = 0
    hits: int = 0
    misses: int = 0
    damage: int = 0
    feints: int = 0
    feints_read: int = 0
    feint_baits: int = 0
    stuns_received: int = 0
    state_ticks: Dict[str, int] = field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        return self.hits / self.attacks if self.attacks else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attacks": self.attacks,
            "hits": self.hits,
            "misses": self.misses,
            "damage": self.damage,
            "feints": self.feints,
            "feintsRead": self.feints_read,
            "feintBaits": self.feint_baits,
            "stunsReceived": self.stuns_received,
            "stateTicks": dict(sorted(self.state_ticks.items())),
        }


def stalemate_issues(fighters: Sequence[Fighter], config: CombatConfig) -> List[str]:
    """Likely reasons two fighters are not trading damage."""
    f1, f2 = fighters
    issues = []
    if f1.ai_state == AIState.RETREATING and f2.ai_state == AIState.RETREATING:
        issues.append("both fighters retreating")
    if f1.ai_state == AIState.CIRCLING and f2.ai_state == AIState.CIRCLING:
        issues.append("both fighters circling")
    if f1.stamina_ratio < 0.2 or f2.stamina_ratio < 0.2:
        issues.append("low stamina causing passive play")
    if f1.drives.caution > 0.7 and f2.drives.caution > 0.7:
        issues.append("both fighters very cautious")
    for flyer, other in ((f1, f2), (f2, f1)):
        if flyer.genome.is_flyer and flyer.is_airborne and not other.genome.is_flyer:
            issues.append(f"{flyer.name} staying airborne vs grounded opponent")
    if f1.distance_to(f2) > attack_reach(f1, f2) * 2.5:
        issues.append("fighters out of engagement distance")
    return issues


class FightMonitor:
    """
    Per-match statistics and stalemate detection.

    Stalemate escalation, with w = ``stalemate_warning_ticks``: a warning at
    w ticks without damage, a detailed diagnosis at 2w, then a repeated
    diagnosis every 3w.
    """

    def __init__(self, fighters: Sequence[Fighter], config: CombatConfig):
        self.fighters = list(fighters)
        self.config = config
        self.stats = [FighterStats() for _ in self.fighters]
        self.warnings: List[StalemateWarning] = []
        self.last_damage_tick = 0
        self.ticks_without_damage = 0
        self._by_name = {f.name: i for i, f in enumerate(self.fighters)}

    def start(self, tick: int) -> None:
        self.last_damage_tick = tick
        self.ticks_without_damage = 0
        f1, f2 = self.fighters
        logger.info("Fight started: %s (%s) vs %s (%s), distance %.0f",
                    f1.name, f1.genome.mobility.value, f2.name, f2.genome.mobility.value,
                    f1.distance_to(f2))

    def observe(self, tick: int, events: Sequence[SimulationEvent]) -> Optional[StalemateWarning]:
        """
        Fold one fighting tick into the stats and stalemate clock.

        Returns:
            A StalemateWarning when this tick crosses an escalation point.
        """
        for fighter, stats in zip(self.fighters, self.stats):
            if fighter.is_alive:
                key = fighter.ai_state.value
                stats.state_ticks[key] = stats.state_ticks.get(key, 0) + 1

        damaged = False
        for event in events:
            damaged = self._record(event) or damaged

        if damaged:
            self.last_damage_tick = tick
        self.ticks_without_damage = tick - self.last_damage_tick
        return self._check_stalemate(tick)

    def _record(self, event: SimulationEvent) -> bool:
        idx = self._by_name.get(event.fighter) if event.fighter else None
        if event.event_type == SimulationEventType.HIT:
            damage = int(event.data.get("damage", 0))
            if idx is not None:
                self.stats[idx].damage += damage
                if event.data.get("source") in ("attack", "special"):
                    self.stats[idx].attacks += 1
                    self.stats[idx].hits += 1
            logger.debug("%s hits %s for %d (%s)", event.fighter, event.target, damage,
                         event.data.get("source"))
            return damage > 0
        if event.event_type == SimulationEventType.MISS and idx is not None:
            self.stats[idx].attacks += 1
            self.stats[idx].misses += 1
            logger.debug("%s misses %s", event.fighter, event.target)
        elif event.event_type == SimulationEventType.FEINT and idx is not None:
            stats = self.stats[idx]
            stats.feints += 1
            if event.data.get("outcome") == "read":
                stats.feints_read += 1
            else:
                stats.feint_baits += 1
            logger.debug("%s feints at %s: %s", event.fighter, event.target, event.data.get("outcome"))
        elif event.event_type == SimulationEventType.STUN and idx is not None:
            self.stats[idx].stuns_received += 1
        elif event.event_type == SimulationEventType.STATE_CHANGE:
            logger.debug("%s: %s -> %s", event.fighter, event.data.get("from"), event.data.get("to"))
        return False

    def _check_stalemate(self, tick: int) -> Optional[StalemateWarning]:
        window = self.config.stalemate_warning_ticks
        idle = self.ticks_without_damage
        if window <= 0 or idle <= 0:
            return None

        if idle == window:
            level = StalemateLevel.WARNING
        elif idle == 2 * window:
            level = StalemateLevel.EXTENDED
        elif idle % (3 * window) == 0:
            level = StalemateLevel.CONTINUING
        else:
            return None

        f1, f2 = self.fighters
        warning = StalemateWarning(
            level=level,
            tick=tick,
            ticks_without_damage=idle,
            distance=f1.distance_to(f2),
            issues=stalemate_issues(self.fighters, self.config),
        )
        self.warnings.append(warning)

        seconds = idle / self.config.tick_rate
        if level == StalemateLevel.WARNING:
            logger.warning("Stalemate warning: no damage for %.0fs (distance %.0f)", seconds, warning.distance)
        else:
            logger.warning("Stalemate %s: no damage for %.0fs; issues: %s", level.value, seconds,
                           ", ".join(warning.issues) or "none identified")
            for fighter in self.fighters:
                logger.warning(
                    "  %s: hp %d/%d stamina %.0f/%.0f state %s agg=%.2f caut=%.2f pos=%s",
                    fighter.name, fighter.hp, fighter.max_hp, fighter.stamina, fighter.stamina_max,
                    fighter.ai_state.value, fighter.drives.aggression, fighter.drives.caution,
                    fighter.position.to_list(0),
                )
        return warning

    def summary(self) -> Dict[str, Any]:
        return {
            f.name: stats.to_dict() for f, stats in zip(self.fighters, self.stats)
        }

    def log_summary(self, reason: str, ticks: int) -> None:
        logger.info("Fight over (%s) after %d ticks", reason, ticks)
        for fighter, stats in zip(self.fighters, self.stats):
            logger.info("  %s: hp %d/%d, %d attacks, %d hits (%.0f%%), %d damage, %d feints (%d baited)",
                        fighter.name, fighter.hp, fighter.max_hp, stats.attacks, stats.hits,
                        stats.hit_rate * 100, stats.damage, stats.feints, stats.feint_baits)
