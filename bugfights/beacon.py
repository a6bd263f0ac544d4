"""
Public randomness beacon client.

Matches can be seeded from a drand round so spectators can verify that the
fight was not rigged. Any failure (network, HTTP status, malformed payload)
yields None and the caller falls back to a local seed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .rng import MatchRNG

logger = logging.getLogger(__name__)

DRAND_LATEST_URL = "https://api.drand.sh/public/latest"
DEFAULT_TIMEOUT = 3.0  # seconds


@dataclass(frozen=True)
class Beacon:
    """One beacon round."""
    round: int
    randomness: str

    def to_rng(self) -> MatchRNG:
        return MatchRNG.from_hex(self.randomness, round_id=self.round)


def _parse_beacon(payload: Any) -> Optional[Beacon]:
    if not isinstance(payload, dict):
        return None
    round_id = payload.get("round")
    randomness = payload.get("randomness")
    if isinstance(round_id, bool) or not isinstance(round_id, int):
        return None
    if not isinstance(randomness, str):
        return None
    try:
        int(randomness[:8], 16)
    except ValueError:
        return None
    return Beacon(round=round_id, randomness=randomness)


def fetch_beacon(
    url: str = DRAND_LATEST_URL,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[Beacon]:
    """
    Fetch the latest beacon round.

    Args:
        url: Beacon endpoint returning ``{"round": int, "randomness": hex}``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Returns:
        The beacon, or None on any failure.
    """
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Beacon fetch failed (%s): %s", url, e)
        return None

    beacon = _parse_beacon(payload)
    if beacon is None:
        logger.warning("Beacon payload from %s is malformed", url)
    return beacon


async def fetch_beacon_async(
    url: str = DRAND_LATEST_URL,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Beacon]:
    """Async variant of fetch_beacon for use inside the server loop."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Beacon fetch failed (%s): %s", url, e)
        return None

    beacon = _parse_beacon(payload)
    if beacon is None:
        logger.warning("Beacon payload from %s is malformed", url)
    return beacon


def rng_from_beacon(beacon: Optional[Beacon], fallback_seed: int) -> MatchRNG:
    """Seed from a beacon when one is available, else from the fallback seed."""
    if beacon is None:
        return MatchRNG(fallback_seed)
    return beacon.to_rng()
