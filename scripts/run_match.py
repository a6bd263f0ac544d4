#!/usr/bin/env python3
"""
Run a Bug Fights match.

Usage:
    python scripts/run_match.py --red brawler --blue hornet --seed 42
    python scripts/run_match.py --red genomes/red.json --blue spider --realtime --serve
    python scripts/run_match.py --red tank --blue brawler --beacon --record recordings/
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bugfights.beacon import fetch_beacon, rng_from_beacon
from bugfights.config import load_config
from bugfights.errors import BugFightsError
from bugfights.genome import Genome
from bugfights.logging_config import configure_logging
from bugfights.match import MatchController
from bugfights.recorder import MatchRecorder, create_match_filename
from bugfights.server import DEFAULT_PORT, AdminServer

logger = logging.getLogger("bugfights.run_match")

PRESETS = {
    "brawler": {"bulk": 80, "speed": 60, "fury": 90, "instinct": 40,
                "weapon": "mandibles", "defense": "none", "mobility": "ground", "legStyle": "insect"},
    "tank": {"bulk": 100, "speed": 40, "fury": 50, "instinct": 60,
             "weapon": "pincers", "defense": "shell", "mobility": "ground", "legStyle": "centipede"},
    "hornet": {"bulk": 40, "speed": 100, "fury": 80, "instinct": 70,
               "weapon": "stinger", "defense": "toxic", "mobility": "winged", "legStyle": "insect"},
    "spider": {"bulk": 50, "speed": 80, "fury": 60, "instinct": 100,
               "weapon": "fangs", "defense": "camouflage", "mobility": "wallcrawler", "legStyle": "spider"},
    "beetle": {"bulk": 90, "speed": 50, "fury": 70, "instinct": 50,
               "weapon": "horn", "defense": "shell", "mobility": "ground", "legStyle": "beetle"},
}


def load_genome(value: str) -> Genome:
    """Resolve a preset name or a path to a genome JSON file."""
    if value in PRESETS:
        return Genome.from_dict(PRESETS[value])
    with open(value) as f:
        return Genome.from_dict(json.load(f))


def print_result(result) -> None:
    print(f"\n{'='*60}")
    if result.winner:
        print(f"WINNER: {result.winner} ({result.reason})")
    else:
        print(f"NO WINNER ({result.reason})")
    print(f"Ticks: {result.ticks}")
    print(f"Seed: {result.seed}  Round: {result.round_id}")
    for name, hp in result.final_hp.items():
        print(f"  {name}: {hp} hp")
    print(f"{'='*60}")


async def run_served(match: MatchController, host: str, port: int, max_ticks):
    """Run the match in realtime alongside the admin API."""
    server = AdminServer(match, host=host, port=port)
    await server.start()
    task = asyncio.create_task(match.run(realtime=True, max_ticks=max_ticks))
    server.set_match(match, task)
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Match task cancelled")
    finally:
        await server.stop()
    return match.result


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Run a Bug Fights match",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Presets: {', '.join(sorted(PRESETS))}",
    )

    # Fighters
    parser.add_argument("--red", default="brawler", help="Preset name or genome JSON for red")
    parser.add_argument("--blue", default="hornet", help="Preset name or genome JSON for blue")
    parser.add_argument("--red-name", default="Red", help="Display name for red")
    parser.add_argument("--blue-name", default="Blue", help="Display name for blue")

    # Randomness
    parser.add_argument("--seed", type=int, default=0, help="Match seed (default: 0)")
    parser.add_argument(
        "--beacon",
        action="store_true",
        help="Seed from the public randomness beacon (falls back to --seed)",
    )

    # Running
    parser.add_argument("--config", type=str, help="Path to combat config JSON file")
    parser.add_argument("--max-ticks", type=int, help="Abort after this many ticks")
    parser.add_argument("--realtime", action="store_true", help="Pace ticks at the configured rate")
    parser.add_argument("--serve", action="store_true", help="Expose the admin API while running")
    parser.add_argument("--host", default="localhost", help="Admin API host (default: localhost)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Admin API port (default: {DEFAULT_PORT})")

    # Output
    parser.add_argument("--record", metavar="DIR", help="Save a match recording into DIR")
    parser.add_argument("--trace-every", type=int, default=0, help="Snapshot every N ticks in the recording")
    parser.add_argument("--log-level", help="Log level (default: BUGFIGHTS_LOG_LEVEL or INFO)")

    args = parser.parse_args()
    configure_logging(level=args.log_level)

    try:
        config = load_config(args.config)
        genomes = [load_genome(args.red), load_genome(args.blue)]
    except (OSError, json.JSONDecodeError, BugFightsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    beacon = fetch_beacon() if args.beacon else None
    rng = rng_from_beacon(beacon, args.seed)

    match = MatchController(genomes, names=(args.red_name, args.blue_name), rng=rng, config=config)

    recorder = None
    if args.record:
        recorder = MatchRecorder(trace_every=args.trace_every)
        recorder.attach(match)

    try:
        if args.serve:
            result = asyncio.run(run_served(match, args.host, args.port, args.max_ticks))
        elif args.realtime:
            result = asyncio.run(match.run(realtime=True, max_ticks=args.max_ticks))
        else:
            result = match.run_headless(max_ticks=args.max_ticks)
    except KeyboardInterrupt:
        match.abort("interrupted")
        result = match.result

    print_result(result)

    if recorder:
        filename = create_match_filename(args.red_name, args.blue_name)
        path = recorder.save(str(Path(args.record) / filename))
        print(f"Recording saved to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
