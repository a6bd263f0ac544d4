"""
Match lifecycle for Bug Fights.

MatchController owns the phase state machine for one match:

    countdown -> fighting -> victory
         \\          \\
          +----------+--> aborted

It validates both genomes at setup, drives the CombatEngine once per tick
while fighting, and produces exactly one snapshot plus the tick's events
for every tick. The realtime loop is a cooperative asyncio task paced at
the configured tick interval; cancelling it aborts the match cleanly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .config import CombatConfig
from .diagnostics import FightMonitor, StalemateWarning
from .engine import CombatEngine
from .errors import GenomeValidationError, MatchStateError
from .events import SimulationEvent, SimulationEventType
from .fighter import AnimState, Fighter
from .genome import Genome
from .physics import Vector3D
from .rng import MatchRNG

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Horizontal spawn gap between the two fighters
SPAWN_SEPARATION = 200.0

# Flyers spawn hovering at this height
FLYER_SPAWN_HEIGHT = 150.0

DEFAULT_NAMES = ("Red", "Blue")


class MatchPhase(str, Enum):
    COUNTDOWN = "countdown"
    FIGHTING = "fighting"
    VICTORY = "victory"
    ABORTED = "aborted"


@dataclass
class TickResult:
    """One tick's output: the snapshot and the events of this tick only."""
    tick: int
    phase: MatchPhase
    snapshot: Dict[str, Any]
    events: List[SimulationEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot,
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class MatchResult:
    """
    Final outcome, suitable for external recording.

    Attributes:
        winner: Winning fighter name, None for a draw or abort.
        reason: "knockout", "double_knockout", "decision", "draw" or "aborted".
        ticks: Global tick counter when the match ended.
        seed: RNG seed of the match.
        round_id: Randomness round identifier (None for local seeds).
        final_hp: Remaining hp per fighter name.
        stats: Per-fighter fight statistics.
    """
    winner: Optional[str]
    reason: str
    ticks: int
    seed: int
    round_id: Optional[int]
    final_hp: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_draw(self) -> bool:
        return self.winner is None and self.reason != "aborted"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner,
            "reason": self.reason,
            "ticks": self.ticks,
            "seed": self.seed,
            "round": self.round_id,
            "finalHp": dict(self.final_hp),
            "stats": self.stats,
        }


TickListener = Callable[[TickResult], None]
GenomeInput = Union[Genome, Mapping[str, Any]]


def _coerce_genome(value: GenomeInput) -> Genome:
    if isinstance(value, Genome):
        return value
    if isinstance(value, Mapping):
        return Genome.from_dict(value)
    raise GenomeValidationError(f"expected a genome, got {type(value).__name__}")


def spawn_position(genome: Genome, slot: int, config: CombatConfig) -> Vector3D:
    """Spawn pose: facing each other across the arena centre, 200 units apart."""
    bounds = config.bounds
    x = bounds.width / 2 + (-1 if slot == 0 else 1) * SPAWN_SEPARATION / 2
    y = FLYER_SPAWN_HEIGHT if genome.is_flyer else 0.0
    return bounds.clamp_point(Vector3D(x, y, bounds.depth / 2))


class MatchController:
    """
    Phase state machine and tick driver for one match.

    Usage:
        match = MatchController([genome_a, genome_b], seed=1234)
        result = match.run_headless()

        # or, paced in realtime inside an event loop:
        result = await match.run()
    """

    def __init__(
        self,
        genomes: Sequence[GenomeInput],
        names: Sequence[str] = DEFAULT_NAMES,
        seed: Optional[int] = None,
        rng: Optional[MatchRNG] = None,
        config: Optional[CombatConfig] = None,
    ):
        """
        Set up a match. Fails fast on invalid input.

        Args:
            genomes: Exactly two genomes (Genome instances or genome dicts).
            names: Display names for the two fighters.
            seed: Seed for a fresh MatchRNG (ignored when rng is given).
            rng: Pre-seeded random source, e.g. from a randomness beacon.
            config: Combat tunables.

        Raises:
            GenomeValidationError: If either genome is invalid.
            MatchStateError: If the match does not have exactly two fighters.
        """
        if len(genomes) != 2:
            raise MatchStateError(f"a match needs exactly two genomes, got {len(genomes)}")
        if len(names) != 2 or names[0] == names[1]:
            raise MatchStateError("a match needs two distinct fighter names")

        parsed = [_coerce_genome(g) for g in genomes]
        self.config = config or CombatConfig()
        self.rng = rng or MatchRNG(seed if seed is not None else 0)

        bounds = self.config.bounds
        self.fighters: List[Fighter] = []
        for slot, (genome, name) in enumerate(zip(parsed, names)):
            facing = Vector3D(1.0 if slot == 0 else -1.0, 0.0, 0.0)
            fighter = Fighter(genome, spawn_position(genome, slot, self.config), self.config,
                              name=name, index=slot, facing=facing)
            fighter.position = bounds.clamp_point(fighter.position, fighter.body_radius)
            fighter.last_valid_position = fighter.position.copy()
            self.fighters.append(fighter)

        self.engine = CombatEngine(self.fighters, self.rng, self.config)
        self.monitor = FightMonitor(self.fighters, self.config)

        self.phase = MatchPhase.COUNTDOWN
        self.tick = 0
        self.countdown_remaining = self.config.countdown_ticks
        self.result: Optional[MatchResult] = None
        self.last_tick: Optional[TickResult] = None
        self.event_log: List[SimulationEvent] = []
        self._listeners: List[TickListener] = []
        self._running = False

        logger.info("Match set up: %s vs %s (seed %d, round %s)", names[0], names[1],
                    self.rng.seed_value, self.rng.round_id)

    # -------------------------------------------------------------------------
    # Listeners and state
    # -------------------------------------------------------------------------

    def add_tick_listener(self, listener: TickListener) -> None:
        """Register a callback invoked with every TickResult (including the terminal one)."""
        self._listeners.append(listener)

    def remove_tick_listener(self, listener: TickListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def is_finished(self) -> bool:
        return self.phase in (MatchPhase.VICTORY, MatchPhase.ABORTED)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stalemate_warnings(self) -> List[StalemateWarning]:
        return self.monitor.warnings

    def snapshot(self) -> Dict[str, Any]:
        """Full public state of both fighters, the phase and the tick counter."""
        return {
            "phase": self.phase.value,
            "tick": self.tick,
            "fighters": [f.to_snapshot() for f in self.fighters],
        }

    def _emit(self, events: List[SimulationEvent]) -> TickResult:
        result = TickResult(self.tick, self.phase, self.snapshot(), events)
        self.last_tick = result
        self.event_log.extend(events)
        for listener in list(self._listeners):
            listener(result)
        return result

    def _set_phase(self, phase: MatchPhase, events: List[SimulationEvent], **data: Any) -> None:
        events.append(SimulationEvent(
            SimulationEventType.PHASE_CHANGE, self.tick,
            data={"from": self.phase.value, "to": phase.value, **data},
        ))
        logger.info("#%d phase %s -> %s", self.tick, self.phase.value, phase.value)
        self.phase = phase

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    def step(self) -> TickResult:
        """
        Advance the match by exactly one tick.

        Stepping a finished match is a no-op that returns the frozen snapshot
        with no events.
        """
        if self.is_finished:
            return TickResult(self.tick, self.phase, self.snapshot(), [])

        self.tick += 1
        events: List[SimulationEvent] = []

        if self.phase == MatchPhase.COUNTDOWN:
            self.countdown_remaining -= 1
            if self.countdown_remaining <= 0:
                self._set_phase(MatchPhase.FIGHTING, events)
                self.monitor.start(self.tick)
        else:
            events.extend(self.engine.step(self.tick))
            self.monitor.observe(self.tick, events)
            self._check_end(events)

        return self._emit(events)

    def _check_end(self, events: List[SimulationEvent]) -> None:
        alive = [f for f in self.fighters if f.is_alive]
        if len(alive) == 2:
            cfg = self.config
            if cfg.sudden_death and self.monitor.ticks_without_damage >= cfg.sudden_death_ticks:
                self._decide_on_points(events)
            return

        if not alive:
            self._finish(None, "double_knockout", events)
        else:
            self._finish(alive[0], "knockout", events)

    def _decide_on_points(self, events: List[SimulationEvent]) -> None:
        """Sudden death after a long stalemate: higher remaining hp fraction wins."""
        f1, f2 = self.fighters
        margin = f1.hp_ratio - f2.hp_ratio
        logger.warning("Sudden death after %d ticks without damage (hp %.2f vs %.2f)",
                       self.monitor.ticks_without_damage, f1.hp_ratio, f2.hp_ratio)
        if abs(margin) < self.config.decision_draw_margin:
            self._finish(None, "draw", events)
        else:
            self._finish(f1 if margin > 0 else f2, "decision", events)

    def _finish(self, winner: Optional[Fighter], reason: str, events: List[SimulationEvent]) -> None:
        for fighter in self.fighters:
            if not fighter.is_alive:
                fighter.anim_state = AnimState.DEATH
            elif fighter is winner:
                fighter.anim_state = AnimState.VICTORY
            fighter.velocity = Vector3D.zero()

        self.result = MatchResult(
            winner=winner.name if winner else None,
            reason=reason,
            ticks=self.tick,
            seed=self.rng.seed_value,
            round_id=self.rng.round_id,
            final_hp={f.name: f.hp for f in self.fighters},
            stats=self.monitor.summary(),
        )
        self._set_phase(MatchPhase.VICTORY, events, winner=self.result.winner, reason=reason)
        self.monitor.log_summary(reason, self.tick)

    def abort(self, reason: str = "administrative stop") -> TickResult:
        """
        Stop the match between ticks.

        Clears every pending fighter timer, records an aborted result and
        emits a terminal snapshot. Aborting a finished match returns its
        frozen snapshot unchanged.
        """
        if self.is_finished:
            return TickResult(self.tick, self.phase, self.snapshot(), [])

        for fighter in self.fighters:
            fighter.clear_timers()
            fighter.velocity = Vector3D.zero()

        events: List[SimulationEvent] = []
        self.result = MatchResult(
            winner=None,
            reason="aborted",
            ticks=self.tick,
            seed=self.rng.seed_value,
            round_id=self.rng.round_id,
            final_hp={f.name: f.hp for f in self.fighters},
            stats=self.monitor.summary(),
        )
        self._set_phase(MatchPhase.ABORTED, events, reason=reason)
        logger.warning("Match aborted at tick %d: %s", self.tick, reason)
        return self._emit(events)

    # -------------------------------------------------------------------------
    # Loops
    # -------------------------------------------------------------------------

    def run_headless(self, max_ticks: Optional[int] = None) -> MatchResult:
        """
        Step as fast as possible until the match ends.

        Args:
            max_ticks: Optional tick limit; reaching it aborts the match.

        Returns:
            The match result.
        """
        while not self.is_finished:
            if max_ticks is not None and self.tick >= max_ticks:
                self.abort(f"tick limit {max_ticks} reached")
                break
            self.step()
        return self.result

    async def run(self, realtime: bool = True, max_ticks: Optional[int] = None) -> MatchResult:
        """
        Drive the match from a cooperative fixed-rate loop.

        Each iteration applies one whole tick and then sleeps for the rest
        of the tick interval, so cancellation can only land between ticks.
        Cancelling the task aborts the match (terminal snapshot emitted)
        and re-raises CancelledError.

        Raises:
            MatchStateError: If the loop is already running.
        """
        if self._running:
            raise MatchStateError("match loop already running")
        self._running = True
        interval = self.config.tick_interval_ms / 1000.0
        try:
            while not self.is_finished:
                if max_ticks is not None and self.tick >= max_ticks:
                    self.abort(f"tick limit {max_ticks} reached")
                    break
                started = time.monotonic()
                self.step()
                delay = interval - (time.monotonic() - started) if realtime else 0.0
                await asyncio.sleep(max(0.0, delay))
        except asyncio.CancelledError:
            self.abort("cancelled")
            raise
        finally:
            self._running = False
        return self.result
