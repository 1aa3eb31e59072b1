"""
Insight domain models.

These models define the structured, scored findings produced by the
processing pipeline and the entries attached to them.
"""
import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def clamp_confidence(value: Any, default: float = 0.5) -> float:
    """Clamp a confidence-like value into [0, 1]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(1.0, number))


def as_text(value: Any) -> str:
    """Flatten a loosely typed value to text; lists are comma-joined."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(t for t in (as_text(v) for v in value) if t)
    return str(value)


def as_list(value: Any) -> List[Any]:
    """Treat a bare scalar or mapping as a one-item list."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _optional_text(value: Any) -> Optional[str]:
    return as_text(value) or None


def insight_signature(insight_type: str, insight_category: str, title: str) -> str:
    """Normalized dedup key for an insight."""
    raw = f"{insight_type or ''}_{insight_category or ''}_{title or ''}".lower()
    return re.sub(r"[^a-z0-9]", "_", raw)


class Evidence(BaseModel):
    """A piece of supporting evidence."""
    type: str = "text"
    content: str = ""
    source: str = "memory"
    confidence: float = 0.5

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_confidence(v)

    @field_validator("content", "source", "type", mode="before")
    @classmethod
    def stringify(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class Recommendation(BaseModel):
    """An actionable recommendation attached to an insight."""
    action: str
    priority: str = "medium"
    reasoning: Optional[str] = None
    impact: Optional[str] = None
    type: str = "general"

    @field_validator("action", mode="before")
    @classmethod
    def coerce_action(cls, v):
        return as_text(v)

    @field_validator("priority", "type", mode="before")
    @classmethod
    def coerce_label(cls, v, info):
        return as_text(v) or cls.model_fields[info.field_name].default

    @field_validator("reasoning", "impact", mode="before")
    @classmethod
    def coerce_optional(cls, v):
        return _optional_text(v)


class Pattern(BaseModel):
    """A detected pattern."""
    name: str
    category: str = "general"
    signature: str = ""
    confidence: float = 0.5
    evidence: List[Any] = Field(default_factory=list)
    description: Optional[str] = None
    implications: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_confidence(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return as_text(v)

    @field_validator("category", "signature", mode="before")
    @classmethod
    def coerce_label(cls, v, info):
        return as_text(v) or cls.model_fields[info.field_name].default

    @field_validator("description", "implications", mode="before")
    @classmethod
    def coerce_optional(cls, v):
        return _optional_text(v)

    @field_validator("evidence", mode="before")
    @classmethod
    def coerce_evidence(cls, v):
        return as_list(v)


class Technology(BaseModel):
    """A technology referenced by an insight."""
    name: str
    category: str = "unknown"
    version: Optional[str] = None
    confidence: float = 0.5
    source: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_confidence(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return as_text(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        return as_text(v) or "unknown"

    @field_validator("version", "source", mode="before")
    @classmethod
    def coerce_optional(cls, v):
        return _optional_text(v)


class Insight(BaseModel):
    """A derived, scored, classified finding about one or more memories."""
    id: str = Field(default_factory=lambda: str(uuid4()), description="Insight ID")
    insight_type: str = Field("", description="Kind of finding")
    insight_category: str = Field("", description="Free-form classification")
    insight_subcategory: Optional[str] = Field(None, description="Finer classification")
    title: str = Field("", description="Short title")
    summary: str = Field("", description="One paragraph summary")
    detailed_content: Dict[str, Any] = Field(
        default_factory=dict, description="Processor-specific detail payload"
    )
    source_type: str = Field("memory", description="memory or memory_cluster")
    source_ids: List[str] = Field(..., min_length=1, description="Source memory IDs")
    detection_method: str = Field("", description="Producing processor")
    detection_metadata: Dict[str, Any] = Field(default_factory=dict)
    confidence_score: float = Field(0.5, description="Confidence in [0, 1]")
    relevance_score: Optional[float] = None
    impact_score: Optional[float] = None
    validation_status: str = Field("pending", description="pending, validated or rejected")
    validation_reason: Optional[str] = None
    project_id: Optional[str] = None
    related_insight_ids: List[str] = Field(default_factory=list)
    supersedes_insight_id: Optional[str] = None
    superseded_by: Optional[str] = None
    contradicts_insight_ids: List[str] = Field(default_factory=list)
    technologies: List[Technology] = Field(default_factory=list)
    patterns: List[Pattern] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    action_items: List[Recommendation] = Field(default_factory=list)
    evidence: List[Evidence] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    embedding: Optional[List[float]] = None
    embedding_model: Optional[str] = None
    custom_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator(
        "insight_type", "detection_method", "source_type", "validation_status",
        mode="before",
    )
    @classmethod
    def enum_to_value(cls, v):
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator("insight_category", "title", "summary", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if isinstance(v, (str, Enum)):
            return v.value if isinstance(v, Enum) else v
        return as_text(v)

    @field_validator("insight_subcategory", mode="before")
    @classmethod
    def coerce_subcategory(cls, v):
        if v is None or isinstance(v, str):
            return v
        return _optional_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v):
        return [t for t in (as_text(item) for item in as_list(v)) if t]

    @field_validator("source_ids", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        if isinstance(v, (list, tuple)):
            return [str(i) for i in v if i is not None]
        return v

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        return clamp_confidence(v)

    @property
    def signature(self) -> str:
        return insight_signature(self.insight_type, self.insight_category, self.title)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for storage, keyed by ``_id``."""
        doc = self.model_dump()
        doc["_id"] = doc.pop("id")
        doc["signature"] = self.signature
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Insight":
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        data.pop("signature", None)
        return cls(**data)
