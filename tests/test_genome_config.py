#!/usr/bin/env python3
"""
Tests for genome validation, combat configuration and the match RNG.

Tests cover:
1. Genome bounds and stat cap enforcement at construction
2. Genome loading from external records (camelCase and snake_case)
3. CombatConfig validation, dict/JSON loading and env resolution
4. MatchRNG seeding, reproducibility and hex seeding
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bugfights.config import CONFIG_ENV_VAR, ArenaConfig, CombatConfig, load_config
from bugfights.errors import BugFightsError, ConfigError, GenomeValidationError
from bugfights.genome import (
    STAT_CAP,
    Defense,
    Genome,
    LegStyle,
    Mobility,
    Weapon,
)
from bugfights.rng import MatchRNG


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def genome_record() -> dict:
    """A genome as produced by the external breeder, cosmetics included."""
    return {
        "bulk": 60,
        "speed": 70,
        "fury": 50,
        "instinct": 40,
        "weapon": "stinger",
        "defense": "toxic",
        "mobility": "winged",
        "legStyle": "grasshopper",
        "color": {"hue": 120, "saturation": 0.7},
        "abdomenType": "bulbous",
    }


# =============================================================================
# GENOME TESTS
# =============================================================================

class TestGenome:
    """Tests for genome validation."""

    def test_valid_genome(self):
        g = Genome(50, 50, 50, 50)
        assert g.stat_total == 200
        assert g.weapon == Weapon.MANDIBLES
        assert g.mobility == Mobility.GROUND

    def test_trait_strings_coerced(self):
        g = Genome(50, 50, 50, 50, weapon="fangs", defense="shell",
                   mobility="wallcrawler", leg_style="spider")
        assert g.weapon is Weapon.FANGS
        assert g.defense is Defense.SHELL
        assert g.is_wallcrawler
        assert g.leg_style is LegStyle.SPIDER

    @pytest.mark.parametrize("stats", [
        (9, 50, 50, 50),
        (50, 101, 50, 50),
        (50, 50, -5, 50),
        (50, 50, 50, 100.5),
    ])
    def test_stat_out_of_range_rejected(self, stats):
        with pytest.raises(GenomeValidationError):
            Genome(*stats)

    def test_stat_cap_rejected(self):
        with pytest.raises(GenomeValidationError, match="cap"):
            Genome(100, 100, 100, 60)
        assert Genome(100, 100, 100, 50).stat_total == STAT_CAP

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "50", None, True, 55.5])
    def test_non_numeric_rejected(self, bad):
        with pytest.raises(GenomeValidationError):
            Genome(bad, 50, 50, 50)

    def test_whole_float_stats_become_ints(self):
        g = Genome(50.0, 50, 50, 50)
        assert g.bulk == 50
        assert isinstance(g.bulk, int)

    def test_unknown_trait_rejected(self):
        with pytest.raises(GenomeValidationError, match="weapon"):
            Genome(50, 50, 50, 50, weapon="laser")

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            Genome(0, 0, 0, 0)
        assert issubclass(GenomeValidationError, BugFightsError)

    def test_genome_is_immutable(self):
        g = Genome(50, 50, 50, 50)
        with pytest.raises(AttributeError):
            g.fury = 90

    def test_normalised_stats(self):
        g = Genome(20, 40, 90, 10)
        assert g.bulk_norm == pytest.approx(0.2)
        assert g.speed_norm == pytest.approx(0.4)
        assert g.fury_norm == pytest.approx(0.9)
        assert g.instinct_norm == pytest.approx(0.1)

    def test_jump_factor_by_leg_style(self):
        hopper = Genome(50, 50, 50, 50, leg_style="grasshopper")
        beetle = Genome(50, 50, 50, 50, leg_style="beetle")
        assert hopper.jump_factor > beetle.jump_factor


class TestGenomeLoading:
    """Tests for loading genomes from external records."""

    def test_from_dict_camel_case(self, genome_record):
        g = Genome.from_dict(genome_record)
        assert g.leg_style is LegStyle.GRASSHOPPER
        assert g.is_flyer
        assert g.defense is Defense.TOXIC

    def test_from_dict_snake_case(self, genome_record):
        record = dict(genome_record)
        record["leg_style"] = record.pop("legStyle")
        assert Genome.from_dict(record).leg_style is LegStyle.GRASSHOPPER

    def test_to_dict_round_trip(self, genome_record):
        g = Genome.from_dict(genome_record)
        data = g.to_dict()
        assert data["legStyle"] == "grasshopper"
        assert "color" not in data
        assert Genome.from_dict(data) == g

    def test_missing_stat_rejected(self, genome_record):
        del genome_record["instinct"]
        with pytest.raises(GenomeValidationError, match="instinct"):
            Genome.from_dict(genome_record)

    def test_invalid_record_rejected(self, genome_record):
        genome_record["fury"] = 150
        with pytest.raises(GenomeValidationError):
            Genome.from_dict(genome_record)


# =============================================================================
# CONFIG TESTS
# =============================================================================

class TestCombatConfig:
    """Tests for configuration loading and validation."""

    def test_defaults(self):
        cfg = CombatConfig()
        assert cfg.tick_rate == 30
        assert cfg.countdown_ticks == 300
        assert cfg.seconds_to_ticks(3.0) == 90
        assert cfg.seconds_to_ticks(5.0) == 150
        assert cfg.bounds.width == 900
        assert cfg.bounds.height == 400
        assert cfg.bounds.depth == 600

    def test_negative_value_rejected(self):
        with pytest.raises(ConfigError):
            CombatConfig(k_hit=-0.1)

    def test_inverted_range_rejected(self):
        with pytest.raises(ConfigError, match="feint_cooldown"):
            CombatConfig(feint_cooldown_min_s=6.0)

    def test_probability_above_one_rejected(self):
        with pytest.raises(ConfigError):
            CombatConfig(special_chance=1.5)

    def test_arena_validation(self):
        with pytest.raises(ConfigError):
            ArenaConfig(width=0)
        with pytest.raises(ConfigError):
            ArenaConfig(bounce=1.5)

    def test_from_dict(self):
        cfg = CombatConfig.from_dict({"k_hit": 0.08, "arena": {"width": 1200}})
        assert cfg.k_hit == 0.08
        assert cfg.arena.width == 1200
        assert cfg.arena.depth == 600

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown"):
            CombatConfig.from_dict({"k_hitt": 0.08})
        with pytest.raises(ConfigError, match="arena"):
            CombatConfig.from_dict({"arena": {"radius": 5}})

    def test_to_dict_round_trip(self):
        cfg = CombatConfig(drift_rate=0.01)
        assert CombatConfig.from_dict(cfg.to_dict()) == cfg

    def test_from_json(self, tmp_path):
        path = tmp_path / "combat.json"
        path.write_text(json.dumps({"countdown_s": 2.0}))
        cfg = CombatConfig.from_json(str(path))
        assert cfg.countdown_ticks == 60

    def test_from_json_errors(self, tmp_path):
        with pytest.raises(ConfigError):
            CombatConfig.from_json(str(tmp_path / "missing.json"))
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            CombatConfig.from_json(str(bad))

    def test_load_config_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"sudden_death": False}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_config().sudden_death is False

    def test_load_config_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert load_config() == CombatConfig()


# =============================================================================
# RNG TESTS
# =============================================================================

class TestMatchRNG:
    """Tests for the per-match random source."""

    def test_same_seed_same_sequence(self):
        a = MatchRNG(1234)
        b = MatchRNG(1234)
        assert [a.draw() for _ in range(50)] == [b.draw() for _ in range(50)]

    def test_draw_range_and_count(self):
        rng = MatchRNG(5)
        draws = [rng.draw() for _ in range(500)]
        assert all(0.0 <= d < 1.0 for d in draws)
        assert rng.draw_count == 500

    def test_reseed_resets(self):
        rng = MatchRNG(9)
        first = rng.draw()
        rng.draw()
        rng.seed(9)
        assert rng.draw_count == 0
        assert rng.draw() == first

    def test_independent_instances(self):
        a = MatchRNG(1)
        b = MatchRNG(1)
        a.draw()
        a.draw()
        c = MatchRNG(1)
        assert b.draw() == c.draw()

    def test_uniform(self):
        rng = MatchRNG(3)
        for _ in range(100):
            assert 3.0 <= rng.uniform(3.0, 5.0) <= 5.0

    def test_from_hex(self):
        rng = MatchRNG.from_hex("deadbeef0123456789", round_id=42)
        assert rng.seed_value == 0xDEADBEEF
        assert rng.describe() == {"seed": 0xDEADBEEF, "round": 42}

    def test_from_hex_invalid(self):
        with pytest.raises(ValueError):
            MatchRNG.from_hex("zzzz")
        with pytest.raises(ValueError):
            MatchRNG.from_hex("")


# =============================================================================
# LOGGING TESTS
# =============================================================================

class TestLoggingConfig:
    """Tests for configure_logging level resolution."""

    def test_env_level(self, monkeypatch):
        import logging
        from bugfights.logging_config import LEVEL_ENV_VAR, configure_logging

        monkeypatch.setenv(LEVEL_ENV_VAR, "debug")
        assert configure_logging().level == logging.DEBUG

    def test_explicit_level_wins(self, monkeypatch):
        import logging
        from bugfights.logging_config import LEVEL_ENV_VAR, configure_logging

        monkeypatch.setenv(LEVEL_ENV_VAR, "DEBUG")
        app_logger = configure_logging(level="warning", include_aiohttp=False)
        assert app_logger.name == "bugfights"
        assert app_logger.level == logging.WARNING
