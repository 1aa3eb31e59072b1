"""
Typed detail payloads.

Each insight carries a schema-less ``detailed_content`` record at the
storage boundary. Construction sites build one of these tagged variants so
the shape per insight type is checked, then dump it to a plain dict.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class PatternDetails(BaseModel):
    kind: Literal["pattern"] = "pattern"
    category: Optional[str] = None
    patterns: List[Dict[str, Any]] = Field(default_factory=list)
    templates_used: List[str] = Field(default_factory=list)
    evidence: List[Any] = Field(default_factory=list)


class CodeQualityDetails(BaseModel):
    kind: Literal["code_quality"] = "code_quality"
    line_count: int = 0
    complexity: Dict[str, int] = Field(default_factory=dict)
    issues: List[Dict[str, Any]] = Field(default_factory=list)


class CodeSmellDetails(BaseModel):
    kind: Literal["code_smell"] = "code_smell"
    smell_type: str
    pattern: str


class BugDetails(BaseModel):
    kind: Literal["bug"] = "bug"
    severity: str = "medium"
    impact: str = "unknown"
    symptoms: List[str] = Field(default_factory=list)
    potential_causes: List[str] = Field(default_factory=list)


class BugPatternDetails(BaseModel):
    kind: Literal["bug_pattern"] = "bug_pattern"
    pattern_name: str
    description: str
    previous_occurrences: int = 0


class DecisionDetails(BaseModel):
    kind: Literal["decision"] = "decision"
    decision_type: str = "general"
    factors: List[Any] = Field(default_factory=list)
    alternatives: List[Any] = Field(default_factory=list)
    rationale: str = ""
    impact: str = "medium"
    stakeholders: List[Any] = Field(default_factory=list)
    risks: List[Any] = Field(default_factory=list)
    success_criteria: List[Any] = Field(default_factory=list)
    has_thinking_sequence: bool = False


class ReasoningDetails(BaseModel):
    kind: Literal["reasoning"] = "reasoning"
    goal: str = ""
    conclusion: Optional[str] = None
    thought_count: int = 0
    branch_count: int = 0
    thought_types: List[Dict[str, Any]] = Field(default_factory=list)
    key_considerations: List[str] = Field(default_factory=list)
    alternatives_explored: List[Dict[str, Any]] = Field(default_factory=list)
    reasoning_depth: str = "shallow"
    confidence_progression: List[Dict[str, Any]] = Field(default_factory=list)


class ClusterDetails(BaseModel):
    kind: Literal["cluster"] = "cluster"
    cluster_id: str
    cluster_size: int
    analysis_type: Optional[str] = None
    template_used: Optional[str] = None
    common_themes: List[str] = Field(default_factory=list)
    time_span_days: int = 0
    analysis: Dict[str, Any] = Field(default_factory=dict)


class TemplateDetails(BaseModel):
    kind: Literal["template"] = "template"
    template_name: str
    response: Dict[str, Any] = Field(default_factory=dict)


class ErrorDetails(BaseModel):
    kind: Literal["error"] = "error"
    error: str
    error_type: str
    processor: str


InsightDetails = Union[
    PatternDetails,
    CodeQualityDetails,
    CodeSmellDetails,
    BugDetails,
    BugPatternDetails,
    DecisionDetails,
    ReasoningDetails,
    ClusterDetails,
    TemplateDetails,
    ErrorDetails,
]
