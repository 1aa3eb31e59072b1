"""
Engine configuration models.

Parsed from the ``insights`` section of the configuration dictionary.
"""
import re
from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

_WINDOW_PATTERN = re.compile(r"^(\d+)\s*(minutes?|hours?|days?)$")


def parse_window(value: str) -> timedelta:
    """Turn ``"24 hours"`` style strings into a timedelta."""
    match = _WINDOW_PATTERN.match(value.strip().lower())
    if not match:
        raise ValueError(f"Invalid time window: {value}")
    amount, unit = int(match.group(1)), match.group(2)
    if unit.startswith("minute"):
        return timedelta(minutes=amount)
    if unit.startswith("hour"):
        return timedelta(hours=amount)
    return timedelta(days=amount)


class ProcessingConfig(BaseModel):
    real_time_enabled: bool = True
    batch_size: int = Field(10, ge=1, le=100)
    max_concurrent: int = Field(5, ge=1, le=20)
    timeout_ms: int = Field(30000, ge=1000, le=300000)
    queue_enabled: bool = True


class StorageConfig(BaseModel):
    deduplication_window: str = "24 hours"
    archive_after_days: int = Field(90, ge=1, le=365)

    @field_validator("deduplication_window")
    @classmethod
    def check_window(cls, v):
        parse_window(v)
        return v

    @property
    def window(self) -> timedelta:
        return parse_window(self.deduplication_window)


class EnrichmentConfig(BaseModel):
    enable_pattern_matching: bool = True
    enable_relationship_finding: bool = True
    enable_technology_extraction: bool = True


class QualityConfig(BaseModel):
    min_confidence_score: float = Field(0.3, ge=0.0, le=1.0)
    require_validation: bool = False


class QueryConfig(BaseModel):
    default_limit: int = Field(20, ge=1, le=100)
    max_limit: int = Field(100, ge=1, le=1000)


class QueueConfig(BaseModel):
    max_retries: int = Field(3, ge=0)
    retry_delay_minutes: int = Field(5, ge=0)
    poll_interval_seconds: float = Field(5.0, gt=0)


class LLMCategoryConfig(BaseModel):
    temperature: float = 0.1
    max_tokens: int = 2000
    min_pattern_confidence: float = Field(0.6, ge=0.0, le=1.0)


class EngineConfig(BaseModel):
    """Tuning knobs for the insight engine."""
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    llm_category: LLMCategoryConfig = Field(default_factory=LLMCategoryConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        return cls(**(data or {}))
