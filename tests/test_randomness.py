from __future__ import annotations

import logging

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.services.randomness_service import (
    U32_MAX,
    ClockSlotRandomness,
    RandomnessSource,
    SystemRandomness,
    get_randomness_source,
)


def test_clock_seed_is_deterministic_for_a_fixed_instant():
    source = ClockSlotRandomness(clock=lambda: 1_700_000_000.25)
    assert source.seed_for(0) == source.seed_for(1)
    assert 0 <= source.seed_for(0) < U32_MAX


def test_clock_seed_changes_with_slot():
    a = ClockSlotRandomness(clock=lambda: 1_700_000_000.0).seed_for(0)
    b = ClockSlotRandomness(clock=lambda: 1_700_000_000.5).seed_for(0)
    assert a != b


def test_clock_source_warns(caplog):
    caplog.set_level(logging.WARNING)
    ClockSlotRandomness(clock=lambda: 1_700_000_000.0).seed_for(3)
    assert any("Insecure clock randomness" in r.getMessage() for r in caplog.records)


def test_system_source_is_non_negative():
    source = SystemRandomness()
    seeds = [source.seed_for(0) for _ in range(20)]
    assert all(0 <= s < 2**64 for s in seeds)
    assert source.insecure is False


def test_sources_satisfy_protocol():
    assert isinstance(ClockSlotRandomness(), RandomnessSource)
    assert isinstance(SystemRandomness(), RandomnessSource)


def test_default_source_follows_settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "RANDOMNESS_SOURCE", "system")
    assert isinstance(get_randomness_source(), SystemRandomness)
    monkeypatch.setattr(settings, "RANDOMNESS_SOURCE", "clock")
    assert isinstance(get_randomness_source(), ClockSlotRandomness)
