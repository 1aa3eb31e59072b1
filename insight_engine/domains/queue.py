"""
Queue task domain model.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from insight_engine.domains.enums import TaskStatus


class QueueTask(BaseModel):
    """A durable unit of async work."""
    id: str = Field(default_factory=lambda: str(uuid4()), description="Task ID")
    task_type: str = Field(..., description="Task type")
    task_priority: int = Field(5, ge=1, le=10, description="Priority, 10 is highest")
    source_type: str = Field("memory", description="Source type")
    source_ids: List[str] = Field(default_factory=list)
    task_payload: Dict[str, Any] = Field(default_factory=dict)
    status: TaskStatus = Field(TaskStatus.PENDING)
    retry_count: int = 0
    max_retries: int = 3
    scheduled_for: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    processor_id: Optional[str] = None
    result_summary: Optional[Dict[str, Any]] = None
    insights_generated: int = 0
    error_message: Optional[str] = None

    @field_validator("source_ids", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        return [str(i) for i in (v or [])]

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="python")
        doc["_id"] = doc.pop("id")
        doc["status"] = self.status.value
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "QueueTask":
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls(**data)
