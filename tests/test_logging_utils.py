"""Tests for console logging helpers."""

from triage_sim.config import Config
from triage_sim.logging_utils import Color, colored, is_enabled, log_event, log_warning


def test_colored_wraps_text_unless_disabled(monkeypatch):
    monkeypatch.delenv("TRIAGE_NO_COLOR", raising=False)
    assert colored("hi", Color.RED) == f"{Color.RED.value}hi{Color.RESET.value}"
    assert colored("hi", Color.RED, bold=True).startswith(Color.BOLD.value)

    monkeypatch.setenv("TRIAGE_NO_COLOR", "1")
    assert colored("hi", Color.RED) == "hi"


def test_level_threshold(monkeypatch):
    monkeypatch.setattr(Config, "LOG_LEVEL", "WARNING")
    assert not is_enabled("info")
    assert is_enabled("warning")
    assert is_enabled("error")


def test_log_event_formats_source_and_data(monkeypatch, capsys):
    monkeypatch.setenv("TRIAGE_NO_COLOR", "1")
    monkeypatch.setattr(Config, "LOG_LEVEL", "INFO")

    log_event("warning", "Policy:Test", "Fallback used", {"patient_id": "p-1"})
    log_event("debug", "Policy:Test", "hidden")

    out = capsys.readouterr().out
    assert "WARNING [Policy:Test]: Fallback used {'patient_id': 'p-1'}" in out
    assert "hidden" not in out


def test_log_warning_prints_plain_when_color_disabled(monkeypatch, capsys):
    monkeypatch.setenv("TRIAGE_NO_COLOR", "1")
    log_warning("careful")
    assert capsys.readouterr().out == "careful\n"
