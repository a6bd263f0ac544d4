#!/usr/bin/env python3
"""
Tests for attack resolution.

Tests cover:
1. Pure helpers (dive bonus, flanking, reach, cooldown, dodge chance)
2. Refused attacks leave both fighters untouched
3. Hit resolution: stunned targets, damage floor, shell reduction
4. Knockback along the 3D line, poison and toxic recoil
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bugfights.combat import (
    WEAPON_PROFILES,
    AttackStatus,
    CombatResolver,
    attack_reach,
    base_attack_cooldown,
    dive_bonus_multiplier,
    dodge_chance,
    flank_multiplier,
    wall_stun_ticks,
)
from bugfights.config import CombatConfig
from bugfights.engine import CombatEngine
from bugfights.events import SimulationEventType, events_of_type
from bugfights.fighter import Fighter, body_radius
from bugfights.genome import Genome
from bugfights.physics import Vector3D
from bugfights.rng import MatchRNG


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config() -> CombatConfig:
    return CombatConfig()


class FixedRNG(MatchRNG):
    """MatchRNG returning a constant draw."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def draw(self) -> float:
        self.draw_count += 1
        return self.value


def make_fighter(config, name, x, y=None, z=300.0, index=0, **traits) -> Fighter:
    values = {"bulk": 50, "speed": 50, "fury": 50, "instinct": 50}
    values.update(traits)
    genome = Genome(**values)
    if y is None:
        y = 150.0 if genome.is_flyer else body_radius(genome)
    return Fighter(genome, Vector3D(x, y, z), config, name=name, index=index)


@pytest.fixture
def duel(config):
    """Two ground fighters 50 units apart, well inside mandible reach."""
    attacker = make_fighter(config, "A", 400.0, index=0)
    target = make_fighter(config, "T", 450.0, index=1)
    return attacker, target


# =============================================================================
# HELPER TESTS
# =============================================================================

class TestDiveBonus:
    """Tests for the flyer dive multiplier."""

    def test_bounds(self):
        deltas = np.linspace(-800.0, 800.0, 401)
        values = np.array([dive_bonus_multiplier(d, 400.0) for d in deltas])
        assert values.min() >= 1.0
        assert values.max() <= 1.5
        assert values.max() == pytest.approx(1.5)

    def test_monotonic_in_height_advantage(self):
        deltas = np.linspace(-100.0, 600.0, 701)
        values = np.array([dive_bonus_multiplier(d, 400.0) for d in deltas])
        assert np.all(np.diff(values) >= 0)
        assert values[-1] > values[0]

    def test_no_bonus_from_below(self):
        assert dive_bonus_multiplier(-50.0, 400.0) == 1.0
        assert dive_bonus_multiplier(200.0, 400.0) == pytest.approx(1.25)


class TestFlanking:
    """Tests for positional damage bonuses."""

    def test_frontal(self, config):
        facing = Vector3D(1, 0, 0)
        assert flank_multiplier(Vector3D(10, 0, 0), Vector3D(0, 0, 0), facing, config) == 1.0

    def test_flank(self, config):
        facing = Vector3D(1, 0, 0)
        attacker = Vector3D(-math.cos(math.radians(80)), 0, math.sin(math.radians(80)))
        assert flank_multiplier(attacker, Vector3D(0, 0, 0), facing, config) == config.flank_multiplier

    def test_backstab(self, config):
        facing = Vector3D(1, 0, 0)
        assert flank_multiplier(Vector3D(-10, 0, 1), Vector3D(0, 0, 0), facing, config) == \
            config.backstab_multiplier

    def test_backstab_from_above_and_behind(self, config):
        facing = Vector3D(1, 0, 0)
        assert flank_multiplier(Vector3D(-10, 5, 0), Vector3D(0, 0, 0), facing, config) == \
            config.backstab_multiplier


class TestHelpers:
    """Tests for reach, cooldown and dodge helpers."""

    def test_reach_includes_bodies(self, duel):
        attacker, target = duel
        expected = attacker.body_radius + target.body_radius + WEAPON_PROFILES[attacker.genome.weapon].reach
        assert attack_reach(attacker, target) == pytest.approx(expected)

    def test_reach_is_3d(self, config):
        resolver = CombatResolver(MatchRNG(1), config)
        ground = make_fighter(config, "G", 400.0)
        flyer = make_fighter(config, "F", 400.0, y=300.0, index=1, mobility="winged")
        assert not resolver.in_reach(ground, flyer)

    def test_faster_fighters_recover_sooner(self, config):
        slow = base_attack_cooldown(Genome(50, 10, 50, 50), config)
        fast = base_attack_cooldown(Genome(50, 100, 50, 50), config)
        assert fast == config.attack_cooldown_min_ticks
        assert slow > fast

    def test_dodge_clamped(self, config):
        attacker = make_fighter(config, "A", 400.0)
        nimble = make_fighter(config, "N", 450.0, index=1, instinct=100, defense="camouflage",
                              mobility="winged", bulk=30)
        clumsy = make_fighter(config, "C", 450.0, index=1, instinct=10)
        assert dodge_chance(nimble, attacker, config) == config.dodge_max
        attacker.velocity = Vector3D(8, 0, 0)
        assert dodge_chance(clumsy, attacker, config) == config.dodge_min

    def test_off_balance_halves_dodge(self, config, duel):
        attacker, target = duel
        base = dodge_chance(target, attacker, config)
        target.off_balance_remaining = 5
        assert dodge_chance(target, attacker, config) == pytest.approx(base * 0.5)

    def test_wall_stun_scaling(self, config):
        plain = make_fighter(config, "P", 100.0)
        shell = make_fighter(config, "S", 100.0, defense="shell")
        crawler = make_fighter(config, "W", 100.0, mobility="wallcrawler")
        flyer = make_fighter(config, "F", 100.0, mobility="winged")
        assert wall_stun_ticks(shell, config) < wall_stun_ticks(plain, config)
        assert wall_stun_ticks(crawler, config) < wall_stun_ticks(plain, config)
        assert wall_stun_ticks(flyer, config) > wall_stun_ticks(plain, config)


# =============================================================================
# REFUSAL TESTS
# =============================================================================

class TestRefusedAttack:
    """An attack without enough stamina changes nothing."""

    def test_refused_attack_mutates_nothing(self, config, duel):
        attacker, target = duel
        attacker.stamina = 1.0
        rng = MatchRNG(4)
        resolver = CombatResolver(rng, config)

        before = [(f.stamina, f.hp, f.position.copy(), f.velocity.copy(), f.attack_cooldown)
                  for f in (attacker, target)]
        outcome = resolver.resolve_attack(attacker, target)
        after = [(f.stamina, f.hp, f.position.copy(), f.velocity.copy(), f.attack_cooldown)
                 for f in (attacker, target)]

        assert outcome.status == AttackStatus.REFUSED
        assert not outcome.attempted
        assert before == after
        assert rng.draw_count == 0

    def test_exhausted_pair_produces_no_hits(self, config, duel):
        attacker, target = duel
        for f in duel:
            f.stamina = 0.0
        engine = CombatEngine([attacker, target], MatchRNG(8), config)
        events = engine.step(1)
        assert events_of_type(events, SimulationEventType.HIT) == []
        assert events_of_type(events, SimulationEventType.FEINT) == []
        assert attacker.hp == attacker.max_hp
        assert target.hp == target.max_hp

    def test_not_ready_and_out_of_range(self, config, duel):
        attacker, target = duel
        resolver = CombatResolver(MatchRNG(1), config)
        attacker.attack_cooldown = 3
        assert resolver.resolve_attack(attacker, target).status == AttackStatus.NOT_READY
        attacker.attack_cooldown = 0
        target.position = Vector3D(800.0, target.position.y, 300.0)
        assert resolver.resolve_attack(attacker, target).status == AttackStatus.OUT_OF_RANGE


# =============================================================================
# HIT TESTS
# =============================================================================

class TestHits:
    """Tests for hit resolution."""

    def test_dodged_attack_misses(self, config, duel):
        attacker, target = duel
        target.genome = Genome(50, 50, 50, 100)
        resolver = CombatResolver(FixedRNG(0.0), config)
        outcome = resolver.resolve_attack(attacker, target)
        assert outcome.status == AttackStatus.MISS
        assert outcome.cost > 0
        assert target.hp == target.max_hp

    def test_stunned_target_always_hit(self, config, duel):
        attacker, target = duel
        target.stun(30)
        resolver = CombatResolver(FixedRNG(0.0), config)
        outcome = resolver.resolve_attack(attacker, target)
        assert outcome.status == AttackStatus.HIT
        assert outcome.damage >= 1
        assert target.hp == target.max_hp - outcome.damage

    def test_hit_debits_and_sets_cooldown(self, config, duel):
        attacker, target = duel
        start = attacker.stamina
        resolver = CombatResolver(FixedRNG(0.99), config)
        outcome = resolver.resolve_attack(attacker, target)
        assert outcome.status == AttackStatus.HIT
        assert not outcome.critical
        assert attacker.stamina == pytest.approx(start - outcome.cost)
        assert attacker.attack_cooldown == base_attack_cooldown(attacker.genome, config)
        assert attacker.landed_hit_this_tick
        assert target.took_damage_this_tick

    def test_shell_reduces_damage_with_floor_of_one(self, config):
        attacker = make_fighter(config, "A", 400.0, fury=10, weapon="fangs")
        plain = make_fighter(config, "P", 450.0, index=1)
        shelled = make_fighter(config, "S", 450.0, index=1, bulk=100, defense="shell")
        resolver = CombatResolver(FixedRNG(0.99), config)

        plain_hit = resolver.resolve_attack(attacker, plain)
        attacker.attack_cooldown = 0
        attacker.position = Vector3D(400.0, attacker.position.y, 300.0)
        shell_hit = resolver.resolve_attack(attacker, shelled)
        assert shell_hit.damage < plain_hit.damage
        assert shell_hit.damage >= 1

    def test_knockback_follows_attack_line(self, config, duel):
        attacker, target = duel
        resolver = CombatResolver(FixedRNG(0.99), config)
        resolver.resolve_attack(attacker, target)
        assert target.knocked_back
        assert target.velocity.x > 0
        assert target.velocity.z == pytest.approx(0.0)

    def test_toxic_recoil(self, config):
        attacker = make_fighter(config, "A", 400.0)
        toxic = make_fighter(config, "T", 450.0, index=1, defense="toxic", bulk=75)
        resolver = CombatResolver(FixedRNG(0.99), config)
        outcome = resolver.resolve_attack(attacker, toxic)
        assert outcome.recoil == 3
        assert attacker.hp == attacker.max_hp - 3

    def test_light_toxic_target_has_no_recoil(self, config):
        attacker = make_fighter(config, "A", 400.0)
        toxic = make_fighter(config, "T", 450.0, index=1, defense="toxic", bulk=20)
        resolver = CombatResolver(FixedRNG(0.99), config)
        outcome = resolver.resolve_attack(attacker, toxic)
        assert outcome.status == AttackStatus.HIT
        assert outcome.recoil == 0
        assert attacker.hp == attacker.max_hp

    def test_fangs_poison(self, config):
        attacker = make_fighter(config, "A", 400.0, weapon="fangs")
        target = make_fighter(config, "T", 450.0, index=1)
        target.stun(30)
        resolver = CombatResolver(FixedRNG(0.0), config)
        outcome = resolver.resolve_attack(attacker, target)
        assert outcome.poisoned
        assert target.poison_pulses == config.poison_pulses
        assert target.poison_timer == config.poison_interval_ticks

    def test_critical_is_heavy_and_stuns(self, config):
        attacker = make_fighter(config, "A", 400.0, fury=100)
        target = make_fighter(config, "T", 450.0, index=1)
        target.stun(1)
        resolver = CombatResolver(FixedRNG(0.0), config)
        outcome = resolver.resolve_attack(attacker, target)
        assert outcome.critical
        assert outcome.stunned
        assert target.stun_remaining == config.heavy_hit_stun_ticks

    def test_diving_flyer_bonus(self, config):
        flyer = make_fighter(config, "F", 440.0, y=70.0, mobility="winged")
        target = make_fighter(config, "T", 450.0, index=1)
        flyer.is_diving = True
        resolver = CombatResolver(FixedRNG(0.99), config)
        outcome = resolver.resolve_attack(flyer, target)
        assert outcome.status == AttackStatus.HIT
        assert 1.0 < outcome.dive_multiplier <= 1.5

    def test_height_bonus_without_diving(self, config):
        flyer = make_fighter(config, "F", 440.0, y=200.0, mobility="winged")
        target = make_fighter(config, "T", 450.0, y=140.0, index=1, mobility="winged")
        target.stun(30)
        assert not flyer.is_diving
        resolver = CombatResolver(FixedRNG(0.99), config)
        outcome = resolver.resolve_attack(flyer, target)
        assert outcome.status == AttackStatus.HIT
        assert outcome.dive_multiplier == pytest.approx(1.0 + 0.5 * 60.0 / 400.0)

    def test_no_height_bonus_from_below(self, config):
        flyer = make_fighter(config, "F", 440.0, y=100.0, mobility="winged")
        target = make_fighter(config, "T", 450.0, y=140.0, index=1, mobility="winged")
        target.stun(30)
        outcome = CombatResolver(FixedRNG(0.99), config).resolve_attack(flyer, target)
        assert outcome.status == AttackStatus.HIT
        assert outcome.dive_multiplier == 1.0
