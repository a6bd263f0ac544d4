"""
AI state machine.

The state is re-derived every tick by a pure function of drives, stamina
ratio, 3D distance to the opponent and instinct. There are no transition
tables or transition probabilities; STUNNED is imposed by the engine while a
stun timer runs and is never chosen here.
"""

from enum import Enum

from .config import CombatConfig
from .drives import Drives


class AIState(str, Enum):
    AGGRESSIVE = "aggressive"
    CIRCLING = "circling"
    RETREATING = "retreating"
    STUNNED = "stunned"


def approach_margin(instinct: float, config: CombatConfig) -> float:
    """Aggression lead needed to close in; instinctive fighters commit on smaller leads."""
    return config.decision_margin * (1.0 - 0.5 * instinct / 100.0)


def decide_state(
    drives: Drives,
    stamina_ratio: float,
    distance: float,
    instinct: float,
    current_state: AIState,
    config: CombatConfig,
) -> AIState:
    """
    Choose the next AI state for a non-stunned fighter.

    Args:
        drives: Current aggression and caution.
        stamina_ratio: stamina / stamina_max.
        distance: 3D distance to the opponent.
        instinct: Instinct stat (10-100).
        current_state: State held last tick.
        config: Combat tunables.

    Returns:
        AGGRESSIVE, CIRCLING or RETREATING.
    """
    if stamina_ratio < config.exhausted_ratio:
        return AIState.RETREATING

    aggression = drives.aggression
    caution = drives.caution

    if aggression > caution + approach_margin(instinct, config) and distance > config.engage_range:
        return AIState.AGGRESSIVE

    if caution >= aggression:
        return AIState.CIRCLING

    # Low-instinct fighters are slower to abandon a stand-off
    if current_state == AIState.CIRCLING:
        hysteresis = config.state_hysteresis * (1.0 - instinct / 100.0)
        if caution + hysteresis >= aggression:
            return AIState.CIRCLING

    return AIState.AGGRESSIVE
