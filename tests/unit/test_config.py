"""Tests for configuration module."""

import os

import pytest
from pydantic import ValidationError


def test_settings_defaults():
    """Settings have sensible defaults."""
    from src.core.config import Settings

    s = Settings(_env_file=None)

    assert s.llm_analysis_provider is None
    assert s.llm_timeout_seconds == 20.0
    assert s.analysis_call_timeout_seconds == 10.0
    assert s.openai_base_url == "https://api.openai.com/v1"


def test_settings_from_env():
    """Settings can be overridden via environment variables."""
    os.environ["LLM_ANALYSIS_PROVIDER"] = "openai"
    os.environ["ANALYSIS_CALL_TIMEOUT_SECONDS"] = "3.5"

    try:
        from src.core.config import Settings

        s = Settings(_env_file=None)

        assert s.llm_analysis_provider == "openai"
        assert s.analysis_call_timeout_seconds == 3.5
    finally:
        del os.environ["LLM_ANALYSIS_PROVIDER"]
        del os.environ["ANALYSIS_CALL_TIMEOUT_SECONDS"]


def test_settings_validation():
    """Settings validate constraints."""
    from src.core.config import Settings

    with pytest.raises(ValidationError):
        Settings(_env_file=None, analysis_call_timeout_seconds=0)


def test_intervention_config_defaults():
    """Code defaults match the documented decision constants."""
    from src.core.config import InterventionConfig

    config = InterventionConfig()

    assert config.decision.confidence_threshold == 0.5
    assert config.decision.max_interventions_per_hour == 10
    assert config.decision.min_seconds_between_interventions == 120
    assert config.analyzer.drift_detection_window == 2
    assert config.analyzer.stability_window_size == 5
    assert config.manual_control.gate_probability == 0.3
    assert config.context.max_history_size == 1000


def test_load_intervention_config_from_yaml(tmp_path):
    """YAML values override defaults; missing keys keep their defaults."""
    from src.core.config import load_intervention_config

    path = tmp_path / "intervention_config.yaml"
    path.write_text(
        "decision:\n"
        "  confidence_threshold: 0.65\n"
        "timing:\n"
        "  short_pause_seconds: 5\n"
    )

    config = load_intervention_config(path)

    assert config.decision.confidence_threshold == 0.65
    assert config.decision.max_interventions_per_hour == 10
    assert config.timing.short_pause_seconds == 5


def test_load_intervention_config_missing_file_uses_defaults(tmp_path):
    from src.core.config import InterventionConfig, load_intervention_config

    config = load_intervention_config(tmp_path / "absent.yaml")

    assert config == InterventionConfig()


def test_load_intervention_config_rejects_invalid_values(tmp_path):
    from src.core.config import load_intervention_config

    path = tmp_path / "intervention_config.yaml"
    path.write_text("decision:\n  confidence_threshold: 1.5\n")

    with pytest.raises(ValidationError):
        load_intervention_config(path)


def test_shipped_yaml_matches_defaults():
    """The repository YAML restates the code defaults."""
    from src.core.config import InterventionConfig, intervention_config

    assert intervention_config == InterventionConfig()


def test_timing_thresholds_must_increase():
    from src.core.config import TimingConfig

    with pytest.raises(ValidationError, match="must increase"):
        TimingConfig(long_pause_seconds=200, extended_silence_seconds=180)
