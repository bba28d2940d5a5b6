"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Decision-making constants are loaded from config/intervention_config.yaml.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    logs_dir: Path = Field(
        default=Path("logs"), description="Directory for session log files"
    )

    # ==========================================================================
    # Text Analysis (LLM) Configuration
    # ==========================================================================
    #
    # The analysis client classifies topics, scores relevance and rates drift.
    # Defaults are defined in src/llm/client.py. Set environment variables
    # below only to override them (e.g., LLM_ANALYSIS_PROVIDER=openai)

    llm_analysis_provider: Optional[str] = Field(
        default=None,
        description="Override analysis LLM provider (default: anthropic)",
    )
    llm_analysis_model: Optional[str] = Field(
        default=None, description="Override analysis LLM model"
    )
    llm_timeout_seconds: float = Field(
        default=20.0, gt=0, le=120, description="HTTP timeout for a single LLM call"
    )

    # API Keys (required for providers you use)
    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )
    openai_api_key: Optional[str] = Field(
        default=None, description="OpenAI-compatible API key"
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI-compatible provider",
    )

    # ==========================================================================
    # Runtime
    # ==========================================================================

    analysis_call_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Upper bound on one text-analysis call before the neutral default is used",
    )
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Intervention Configuration (from YAML)
# ============================================================================


class DecisionConfig(BaseModel):
    """Decision engine thresholds and rate limits."""

    topic_drift_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    information_gap_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    fact_check_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    clarification_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    summary_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    engagement_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    momentum_threshold: float = Field(default=0.2, ge=0.0, le=1.0)
    confidence_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum winning scenario score for an intervention",
    )
    max_interventions_per_hour: int = Field(default=10, ge=1, le=100)
    min_seconds_between_interventions: float = Field(default=120.0, ge=0.0)


class AnalyzerConfig(BaseModel):
    """Signal aggregator windows."""

    flow_window: int = Field(
        default=10, ge=1, le=50, description="Recent messages used for flow analysis"
    )
    health_window: int = Field(default=15, ge=1, le=50)
    stability_window_size: int = Field(
        default=5, ge=2, le=20, description="Messages per topic-stability window"
    )
    stability_max_windows: int = Field(
        default=10,
        ge=2,
        le=200,
        description="Most recent stability windows compared against the newest one",
    )
    drift_detection_window: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Consecutive off-topic messages that count as drift",
    )
    relevance_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    topics: list[str] = Field(
        default_factory=lambda: [
            "investment_evaluation",
            "market_analysis",
            "financial_metrics",
            "competitive_landscape",
            "team_assessment",
            "product_strategy",
            "growth_potential",
            "risk_assessment",
            "valuation",
            "due_diligence",
            "portfolio_management",
            "exit_strategy",
            "general_discussion",
            "off_topic",
        ]
    )
    default_topic: str = Field(default="general_discussion")


class TimingConfig(BaseModel):
    """Pause thresholds and momentum windows (seconds)."""

    short_pause_seconds: float = Field(default=10.0, gt=0)
    medium_pause_seconds: float = Field(default=30.0, gt=0)
    long_pause_seconds: float = Field(default=60.0, gt=0)
    extended_silence_seconds: float = Field(default=180.0, gt=0)
    momentum_window_seconds: float = Field(default=300.0, gt=0)
    engagement_window_seconds: float = Field(default=600.0, gt=0)
    timing_window: int = Field(
        default=10, ge=2, le=50, description="Recent messages used for timing"
    )

    @field_validator("extended_silence_seconds")
    @classmethod
    def thresholds_increase(cls, v: float, info: ValidationInfo) -> float:
        """Pause thresholds must be strictly increasing."""
        ordered = [
            info.data.get("short_pause_seconds"),
            info.data.get("medium_pause_seconds"),
            info.data.get("long_pause_seconds"),
            v,
        ]
        if any(value is None for value in ordered):
            return v
        if any(a >= b for a, b in zip(ordered, ordered[1:])):
            raise ValueError(
                "pause thresholds must increase: short < medium < long < extended"
            )
        return v


class ManualControlConfig(BaseModel):
    """Activity-level gating configuration."""

    gate_probability: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Chance the QUIET/ACTIVE gate lets an intervention through",
    )
    history_limit: int = Field(default=50, ge=1, le=1000)
    recent_change_minutes: float = Field(default=5.0, ge=0.0)


class LearningConfig(BaseModel):
    """Feedback loop constants."""

    recent_feedback_days: int = Field(default=30, ge=1, le=365)
    pattern_min_samples: int = Field(default=3, ge=1)
    pattern_min_success_rate: float = Field(default=0.6, ge=0.0, le=1.0)
    pattern_sample_saturation: int = Field(default=10, ge=1)
    success_effectiveness: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Overall effectiveness above which an intervention counts as a success",
    )


class ContextConfig(BaseModel):
    """Conversation context tracker limits."""

    max_history_size: int = Field(default=1000, ge=10)
    topic_change_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class InterventionConfig(BaseModel):
    """
    Complete intervention configuration loaded from intervention_config.yaml.

    Holds every tunable constant used by the decision core so that services
    never hard-code thresholds.
    """

    decision: DecisionConfig = Field(default_factory=DecisionConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    manual_control: ManualControlConfig = Field(default_factory=ManualControlConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)


def load_intervention_config(config_path: Optional[Path] = None) -> InterventionConfig:
    """
    Load intervention configuration from YAML file.

    Args:
        config_path: Path to intervention_config.yaml. If None, uses default path.

    Returns:
        InterventionConfig with validated settings

    Raises:
        pydantic.ValidationError: If config validation fails
    """
    if config_path is None:
        # Default path: config/intervention_config.yaml relative to project root
        current = Path(__file__).resolve().parent.parent.parent
        check_path = current / "config" / "intervention_config.yaml"
        if check_path.exists():
            config_path = check_path
        else:
            cwd_config = Path.cwd() / "config" / "intervention_config.yaml"
            if not cwd_config.exists():
                return InterventionConfig()
            config_path = cwd_config

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return InterventionConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return InterventionConfig()

    return InterventionConfig(**config_data)


# Global settings instance
settings = Settings()

# Global intervention config instance
intervention_config = load_intervention_config()
