"""Tests for configuration validation and display."""

import pytest

from triage_sim.config import Config


def test_defaults_validate():
    Config.validate()


@pytest.mark.parametrize(
    "attribute, value, message",
    [
        ("MAX_STEPS_PER_EPISODE", 0, "TRIAGE_MAX_STEPS_PER_EPISODE"),
        ("MAX_EPISODE_HISTORY", 0, "TRIAGE_MAX_EPISODE_HISTORY"),
        ("EPISODE_DELAY_MS", -1, "TRIAGE_EPISODE_DELAY_MS"),
        ("PERFORMANCE_WINDOW", 0, "TRIAGE_PERFORMANCE_WINDOW"),
        ("INITIAL_PATIENTS", -2, "TRIAGE_INITIAL_PATIENTS"),
        ("ARRIVAL_RATE", 1.5, "TRIAGE_ARRIVAL_RATE"),
        ("LOG_LEVEL", "chatty", "LOG_LEVEL"),
    ],
)
def test_out_of_range_values_are_rejected(monkeypatch, attribute, value, message):
    monkeypatch.setattr(Config, attribute, value)
    with pytest.raises(ValueError, match=message):
        Config.validate()


def test_display_lists_settings(monkeypatch):
    monkeypatch.setattr(Config, "RANDOM_SEED", None)
    monkeypatch.setattr(Config, "ARRIVAL_RATE", 0.25)
    text = Config.display()
    assert text.startswith("Triage Simulation Configuration:")
    assert "Arrival Rate: 0.25" in text
    assert "Random Seed: unseeded" in text
