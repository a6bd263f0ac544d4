"""Bug Fights deterministic arena combat simulator package."""

from .errors import (
    BugFightsError,
    ConfigError,
    GenomeValidationError,
    MatchStateError,
    SimulationError,
)

from .physics import (
    ArenaBounds,
    Surface,
    Vector3D,
)

from .genome import (
    # Enums
    Defense,
    LegStyle,
    Mobility,
    Weapon,
    # Classes
    Genome,
)

from .config import (
    ArenaConfig,
    CombatConfig,
    load_config,
)

from .rng import MatchRNG

from .beacon import (
    Beacon,
    fetch_beacon,
    fetch_beacon_async,
    rng_from_beacon,
)

from .events import (
    SimulationEvent,
    SimulationEventType,
    events_to_json,
)

from .ai import AIState
from .drives import Drives
from .fighter import AnimState, Fighter
from .combat import AttackOutcome, AttackStatus, CombatResolver
from .feints import FeintOutcome, FeintResult
from .engine import CombatEngine
from .diagnostics import FightMonitor, StalemateWarning

from .match import (
    MatchController,
    MatchPhase,
    MatchResult,
    TickResult,
)

from .recorder import MatchRecorder, MatchRecording
from .logging_config import configure_logging

__all__ = [
    # Errors
    "BugFightsError",
    "ConfigError",
    "GenomeValidationError",
    "MatchStateError",
    "SimulationError",
    # Physics
    "ArenaBounds",
    "Surface",
    "Vector3D",
    # Genome
    "Defense",
    "LegStyle",
    "Mobility",
    "Weapon",
    "Genome",
    # Config
    "ArenaConfig",
    "CombatConfig",
    "load_config",
    # Randomness
    "MatchRNG",
    "Beacon",
    "fetch_beacon",
    "fetch_beacon_async",
    "rng_from_beacon",
    # Events
    "SimulationEvent",
    "SimulationEventType",
    "events_to_json",
    # Fighters and combat
    "AIState",
    "Drives",
    "AnimState",
    "Fighter",
    "AttackOutcome",
    "AttackStatus",
    "CombatResolver",
    "FeintOutcome",
    "FeintResult",
    "CombatEngine",
    "FightMonitor",
    "StalemateWarning",
    # Match
    "MatchController",
    "MatchPhase",
    "MatchResult",
    "TickResult",
    "MatchRecorder",
    "MatchRecording",
    "configure_logging",
]
