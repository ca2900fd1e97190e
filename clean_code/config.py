"""Configuration management for the Clean Code engine."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, model_validator, field_validator
from typing import Optional, List
from pathlib import Path
import json
import logging

logger = logging.getLogger(__name__)


class AnalyzerToggles(BaseModel):
    """Per-analyzer enable flags."""

    naming: bool = True
    complexity: bool = True
    duplicate_code: bool = True
    solid_principles: bool = True
    anti_pattern: bool = True

    # Honour "clean-code-ignore: <type>" comments
    enable_ignore_comments: bool = True


class AnalyzerThresholds(BaseModel):
    """Numeric knobs consumed by the individual analyzers."""

    max_complexity: int = 10
    min_name_length: int = 2
    max_name_length: int = 30
    min_duplicate_block_size: int = 5  # Lines
    max_class_methods: int = 10
    max_method_lines: int = 30
    max_case_clauses: int = 5
    max_interface_methods: int = 5
    max_class_size: int = 200  # Lines
    max_class_properties: int = 15
    max_parameter_count: int = 4
    feature_envy_threshold: int = 3  # Accesses to one foreign object per method
    min_string_literal_occurrences: int = 3
    min_data_clump_size: int = 3  # Parameters

    @field_validator('min_duplicate_block_size')
    @classmethod
    def validate_min_duplicate_block_size(cls, v: int) -> int:
        """A duplicate needs at least two lines to be meaningful."""
        if v < 2:
            raise ValueError("min_duplicate_block_size must be at least 2")
        return v


class SchedulingSettings(BaseModel):
    """Timing and capacity settings for the incremental pipeline."""

    # Delay before each priority tier (High, Medium, Low)
    tier_delays_ms: List[int] = [0, 200, 500]

    # Diagnostic batching window
    batch_interval_ms: int = 250

    # Result cache capacity (entries)
    cache_max_entries: int = 100

    # Preferred lines per block when no natural blocks exist
    block_size: int = 50

    # Debounce for document-changed events coming from the host
    change_debounce_ms: int = 300

    @field_validator('tier_delays_ms')
    @classmethod
    def validate_tier_delays(cls, v: List[int]) -> List[int]:
        """Exactly one non-negative delay per tier."""
        if len(v) != 3:
            raise ValueError("tier_delays_ms must contain exactly 3 values (high, medium, low)")
        if any(delay < 0 for delay in v):
            raise ValueError("tier_delays_ms values must be >= 0")
        return v


class EngineConfig(BaseSettings):
    """
    Engine configuration with environment variable support.

    Settings are grouped by concern; nested groups can be overridden from the
    environment with a double underscore, e.g.
    CLEAN_CODE_SCHEDULING__BATCH_INTERVAL_MS=100.
    """

    # Core settings
    engine_name: str = "clean-code-assistant"
    log_level: str = "INFO"
    json_logs: bool = False

    # Languages the parser adapter will build trees for
    supported_languages: List[str] = [
        "typescript", "typescriptreact", "javascript", "javascriptreact"
    ]

    # Feature groups
    analyzers: AnalyzerToggles = AnalyzerToggles()
    thresholds: AnalyzerThresholds = AnalyzerThresholds()
    scheduling: SchedulingSettings = SchedulingSettings()

    model_config = SettingsConfigDict(
        env_prefix="CLEAN_CODE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_config(self) -> 'EngineConfig':
        """Validate configuration consistency and constraints."""

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a standard logging level (got {self.log_level})")

        if self.scheduling.batch_interval_ms < 0:
            raise ValueError("batch_interval_ms must be >= 0")
        if self.scheduling.batch_interval_ms > 10000:
            raise ValueError("batch_interval_ms should not exceed 10 seconds")

        if self.scheduling.cache_max_entries < 1:
            raise ValueError("cache_max_entries must be at least 1")
        if self.scheduling.cache_max_entries > 100000:
            raise ValueError("cache_max_entries should not exceed 100000")

        if self.scheduling.block_size < 1:
            raise ValueError("block_size must be at least 1")

        if self.scheduling.change_debounce_ms < 0:
            raise ValueError("change_debounce_ms must be >= 0")

        if self.thresholds.min_name_length > self.thresholds.max_name_length:
            raise ValueError(
                f"min_name_length ({self.thresholds.min_name_length}) must not exceed "
                f"max_name_length ({self.thresholds.max_name_length})"
            )

        if self.thresholds.max_complexity < 1:
            raise ValueError("max_complexity must be at least 1")

        return self

    def tier_delay_seconds(self, tier: int) -> float:
        """Delay before the given priority tier, in seconds."""
        return self.scheduling.tier_delays_ms[tier] / 1000.0


# Global config instance
_config: Optional[EngineConfig] = None

# User config file location
_USER_CONFIG_PATH = Path.home() / ".clean-code" / "config.json"


def _load_user_config_overrides() -> dict:
    """
    Load user configuration overrides from ~/.clean-code/config.json.

    Returns:
        Dict of config overrides, or empty dict if no config file exists
    """
    if not _USER_CONFIG_PATH.exists():
        return {}

    try:
        with open(_USER_CONFIG_PATH, 'r') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load user config from {_USER_CONFIG_PATH}: {e}")
        return {}


def get_config() -> EngineConfig:
    """
    Get or create global configuration instance.

    Configuration priority (highest to lowest):
    1. User config file (~/.clean-code/config.json), passed as init kwargs
    2. Environment variables (CLEAN_CODE_*)
    3. Built-in defaults
    """
    global _config
    if _config is None:
        user_overrides = _load_user_config_overrides()
        _config = EngineConfig(**user_overrides)
    return _config


def set_config(config: EngineConfig) -> None:
    """Set global configuration instance (mainly for testing)."""
    global _config
    _config = config
