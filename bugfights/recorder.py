"""
Match Recorder - Records a match for replay and auditing.

Captures:
- Match metadata (fighters, genomes, seed and randomness round)
- Every simulation event with its tick
- Optional per-tick snapshots (the trace)
- The final result
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .match import MatchController, TickResult

RECORDING_VERSION = "1.0"


@dataclass
class MatchRecording:
    """Complete recording of a match."""
    recording_version: str = RECORDING_VERSION
    recorded_at: str = ""

    fighters: List[Dict[str, Any]] = field(default_factory=list)
    seed: int = 0
    round_id: Optional[int] = None
    tick_rate: int = 30
    config: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list)

    # Each frame is a full snapshot: {"phase", "tick", "fighters": [...]}
    trace: List[Dict[str, Any]] = field(default_factory=list)

    winner: Optional[str] = None
    result_reason: str = ""
    total_ticks: int = 0
    result: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchRecording":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class MatchRecorder:
    """
    Records a match by listening to its ticks.

    Usage:
        recorder = MatchRecorder(trace_every=1)
        recorder.attach(match)
        match.run_headless()
        recorder.save("recordings/match.json")
    """

    def __init__(self, trace_every: int = 0):
        """
        Args:
            trace_every: Keep a snapshot every N ticks (0 disables the trace).
        """
        self.recording = MatchRecording()
        self.trace_every = trace_every
        self._match: Optional[MatchController] = None

    @property
    def is_recording(self) -> bool:
        return self._match is not None

    def attach(self, match: MatchController) -> None:
        """Start recording a match from its current tick."""
        self.recording = MatchRecording(
            recorded_at=datetime.now().isoformat(),
            fighters=[
                {"name": f.name, "genome": f.genome.to_dict(), "maxHp": f.max_hp}
                for f in match.fighters
            ],
            seed=match.rng.seed_value,
            round_id=match.rng.round_id,
            tick_rate=match.config.tick_rate,
            config=match.config.to_dict(),
        )
        self._match = match
        match.add_tick_listener(self.on_tick)

    def detach(self) -> None:
        if self._match is not None:
            self._match.remove_tick_listener(self.on_tick)
            self._match = None

    def on_tick(self, tick: TickResult) -> None:
        self.recording.events.extend(e.to_dict() for e in tick.events)
        if self.trace_every and tick.tick % self.trace_every == 0:
            self.recording.trace.append(tick.snapshot)

        match = self._match
        if match is not None and match.is_finished and match.result is not None:
            self._finish(match, tick)

    def _finish(self, match: MatchController, tick: TickResult) -> None:
        result = match.result
        self.recording.winner = result.winner
        self.recording.result_reason = result.reason
        self.recording.total_ticks = result.ticks
        self.recording.result = result.to_dict()
        if self.trace_every and (not self.recording.trace or self.recording.trace[-1] is not tick.snapshot):
            self.recording.trace.append(tick.snapshot)
        self.detach()

    def to_json(self, indent: int = 2) -> str:
        return self.recording.to_json(indent)

    def save(self, filepath: str) -> str:
        """Save recording to JSON file."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            f.write(self.recording.to_json())

        return str(path)

    @staticmethod
    def load(filepath: str) -> MatchRecording:
        with open(filepath) as f:
            return MatchRecording.from_dict(json.load(f))


def create_match_filename(
    name_a: str,
    name_b: str,
    timestamp: Optional[datetime] = None,
) -> str:
    """Generate a filename for a match recording."""
    if timestamp is None:
        timestamp = datetime.now()

    def clean_name(name: str) -> str:
        name = name.replace(" ", "_").replace("-", "_").replace(".", "_")
        return name[:20]

    date_str = timestamp.strftime("%Y%m%d_%H%M%S")
    return f"match_{clean_name(name_a)}_vs_{clean_name(name_b)}_{date_str}.json"
