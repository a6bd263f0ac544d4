#!/usr/bin/env python3
"""
Tests for the randomness beacon client.

All requests go through httpx.MockTransport; nothing touches the network.
"""

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bugfights.beacon import Beacon, fetch_beacon, fetch_beacon_async, rng_from_beacon
from bugfights.rng import MatchRNG


GOOD_PAYLOAD = {
    "round": 4242,
    "randomness": "1a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d5e6f708192a3b4c5d6e7f80",
    "signature": "deadbeef",
}


def json_transport(payload, status=200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)
    return httpx.MockTransport(handler)


def failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


# =============================================================================
# SYNC CLIENT
# =============================================================================

class TestFetchBeacon:
    """Tests for the blocking client."""

    def test_success(self):
        beacon = fetch_beacon(transport=json_transport(GOOD_PAYLOAD))
        assert beacon == Beacon(round=4242, randomness=GOOD_PAYLOAD["randomness"])
        rng = beacon.to_rng()
        assert rng.seed_value == 0x1A2B3C4D
        assert rng.round_id == 4242

    def test_requests_given_url(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=GOOD_PAYLOAD)

        fetch_beacon(url="https://beacon.example/latest", transport=httpx.MockTransport(handler))
        assert seen == ["https://beacon.example/latest"]

    def test_http_error_returns_none(self):
        assert fetch_beacon(transport=json_transport({"error": "down"}, status=500)) is None

    def test_network_error_returns_none(self):
        assert fetch_beacon(transport=failing_transport()) is None

    def test_non_json_returns_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")
        assert fetch_beacon(transport=httpx.MockTransport(handler)) is None

    @pytest.mark.parametrize("payload", [
        [],
        {"randomness": "abcdef01"},
        {"round": "12", "randomness": "abcdef01"},
        {"round": True, "randomness": "abcdef01"},
        {"round": 12, "randomness": 1234},
        {"round": 12, "randomness": "zzzzzzzz"},
        {"round": 12, "randomness": ""},
    ])
    def test_malformed_payload_returns_none(self, payload):
        assert fetch_beacon(transport=json_transport(payload)) is None


# =============================================================================
# ASYNC CLIENT
# =============================================================================

class TestFetchBeaconAsync:
    """Tests for the asyncio client."""

    def test_success(self):
        beacon = asyncio.run(fetch_beacon_async(transport=json_transport(GOOD_PAYLOAD)))
        assert beacon.round == 4242

    def test_failure_returns_none(self):
        assert asyncio.run(fetch_beacon_async(transport=failing_transport())) is None
        assert asyncio.run(fetch_beacon_async(transport=json_transport({}, status=503))) is None


# =============================================================================
# SEEDING
# =============================================================================

class TestRngFromBeacon:
    """Tests for beacon seeding with local fallback."""

    def test_fallback(self):
        rng = rng_from_beacon(None, fallback_seed=77)
        assert rng.seed_value == 77
        assert rng.round_id is None

    def test_beacon_seed_is_reproducible(self):
        beacon = Beacon(round=1, randomness="00000010ffff")
        a = rng_from_beacon(beacon, fallback_seed=0)
        b = MatchRNG(16, round_id=1)
        assert a.seed_value == 16
        assert [a.draw() for _ in range(5)] == [b.draw() for _ in range(5)]
