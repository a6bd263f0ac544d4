"""
One-shot simulation events.

Events describe what happened during a single tick and are never resent.
They serialize to flat JSON objects: ``{"type": ..., "tick": ..., **payload}``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class SimulationEventType(str, Enum):
    """Types of events a tick can produce."""
    HIT = "hit"
    MISS = "miss"
    FEINT = "feint"
    STUN = "stun"
    STATE_CHANGE = "stateChange"
    PHASE_CHANGE = "phaseChange"


@dataclass
class SimulationEvent:
    """
    An event that occurred during one tick.

    Attributes:
        event_type: The type of event.
        tick: Global tick counter of the match when it occurred.
        fighter: Name of the acting fighter (if applicable).
        target: Name of the fighter acted upon (if applicable).
        data: Additional event-specific payload.
    """
    event_type: SimulationEventType
    tick: int
    fighter: Optional[str] = None
    target: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.event_type.value, "tick": self.tick}
        if self.fighter is not None:
            out["fighter"] = self.fighter
        if self.target is not None:
            out["target"] = self.target
        out.update(self.data)
        return out

    def __str__(self) -> str:
        who = f"[{self.fighter}]" if self.fighter else ""
        target = f" -> {self.target}" if self.target else ""
        return f"#{self.tick} {who} {self.event_type.value}{target}"


def events_to_json(events: Iterable[SimulationEvent]) -> str:
    """Canonical JSON encoding of an event sequence (stable key order)."""
    return json.dumps([e.to_dict() for e in events], sort_keys=True, separators=(",", ":"))


def events_of_type(events: Iterable[SimulationEvent], event_type: SimulationEventType) -> List[SimulationEvent]:
    return [e for e in events if e.event_type == event_type]
