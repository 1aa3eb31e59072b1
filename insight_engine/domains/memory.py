"""
Memory domain models.

These models define the read-only input records the engine analyzes:
captured memories, reasoning sequences and ephemeral memory clusters.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class Memory(BaseModel):
    """A single captured unit of project knowledge."""
    id: str = Field(..., description="Memory ID")
    project_id: Optional[str] = Field(None, description="Owning project ID")
    project_name: Optional[str] = Field(None, description="Owning project name")
    memory_type: str = Field("general", description="Type tag of the memory")
    content: str = Field("", description="Free text content")
    summary: Optional[str] = Field(None, description="Optional short summary")
    tags: List[str] = Field(default_factory=list, description="Smart tags")
    importance_score: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Importance between 0 and 1"
    )
    embedding: Optional[List[float]] = Field(None, description="Content vector")
    tag_embedding: Optional[List[float]] = Field(None, description="Tag vector")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    thinking_sequence_id: Optional[str] = Field(
        None, description="Reasoning sequence this memory belongs to"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("id", "project_id", "thinking_sequence_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        if v is None:
            return v
        return str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v):
        return v or []

    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())


class Thought(BaseModel):
    """One step of a reasoning sequence."""
    thought_number: int = 0
    thought_type: str = "general"
    content: str = ""
    branch_id: Optional[str] = None
    confidence_level: Optional[float] = None
    is_revision: bool = False


class ThinkingSequence(BaseModel):
    """A completed chain of reasoning steps toward a goal."""
    id: str
    goal: str = ""
    sequence_name: Optional[str] = None
    summary: Optional[str] = None
    project_id: Optional[str] = None
    thoughts: List[Thought] = Field(default_factory=list)

    @field_validator("id", "project_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        if v is None:
            return v
        return str(v)


class TimeSpan(BaseModel):
    """Earliest and latest member timestamps of a cluster."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    days: int = 0


class Cluster(BaseModel):
    """A set of related memories analyzed jointly. Never persisted."""
    cluster_id: str
    cluster_type: str = "general"
    memories: List[Memory] = Field(default_factory=list)
    common_tags: List[str] = Field(default_factory=list)
    common_themes: List[str] = Field(default_factory=list)
    time_span: TimeSpan = Field(default_factory=TimeSpan)

    @property
    def size(self) -> int:
        return len(self.memories)

    @property
    def memory_ids(self) -> List[str]:
        return [m.id for m in self.memories]
