"""
Analysis template domain model.

Templates are parameterized prompts stored as configuration data.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class AnalysisTemplate(BaseModel):
    """A prompt body with ``{variable}`` placeholders plus generation options."""
    id: str = Field(..., description="Template ID")
    template_name: str = Field(..., description="Unique template name")
    template_category: str = Field("general", description="Template category")
    template_content: str = Field(..., description="Prompt body")
    description: str = Field("", description="What the template is for")
    tags: List[str] = Field(default_factory=list)
    processing_config: Dict[str, Any] = Field(
        default_factory=dict, description="temperature, max_tokens and model"
    )
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        return str(v)

    @field_validator("tags", "description", mode="before")
    @classmethod
    def default_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "tags" else ""
        return v

    @property
    def temperature(self) -> Optional[float]:
        return self.processing_config.get("temperature")

    @property
    def max_tokens(self) -> Optional[int]:
        return self.processing_config.get("max_tokens")

    @property
    def model(self) -> Optional[str]:
        return self.processing_config.get("model")
