"""
Common enumerations used across the insight engine.
"""
from enum import Enum


class InsightType(str, Enum):
    """Kind of finding an insight represents."""
    PATTERN = "pattern"
    BUG = "bug"
    BUG_PATTERN = "bug_pattern"
    CODE_SMELL = "code_smell"
    CODE_QUALITY = "code_quality"
    SECURITY_ISSUE = "security_issue"
    PERFORMANCE_ISSUE = "performance_issue"
    ANTI_PATTERN = "anti_pattern"
    DECISION = "decision"
    DECISION_PATTERN = "decision_pattern"
    CROSS_MEMORY_PATTERN = "cross_memory_pattern"
    REASONING_PROCESS = "reasoning_process"
    IMPROVEMENT = "improvement"
    CLUSTER = "cluster"
    GENERAL = "general"
    PROCESSING_MARKER = "processing_marker"


class DetectionMethod(str, Enum):
    """Which processor produced an insight."""
    LLM_CATEGORY = "llm_category"
    LLM_TEMPLATE = "llm_template"
    CLUSTERING = "clustering"
    PATTERN_MATCHING = "pattern_matching"
    RULE_BASED = "rule_based"
    CODE_ANALYSIS = "code_analysis"
    BUG_ANALYSIS = "bug_analysis"
    DECISION_ANALYSIS = "decision_analysis"
    THINKING_SEQUENCE_ANALYSIS = "thinking_sequence_analysis"
    MANUAL = "manual"


class SourceType(str, Enum):
    """What an insight was derived from."""
    MEMORY = "memory"
    MEMORY_CLUSTER = "memory_cluster"
    THINKING_SEQUENCE = "thinking_sequence"


class ValidationStatus(str, Enum):
    """Validation state of a draft insight."""
    PENDING = "pending"      # Fresh draft, not yet checked
    VALIDATED = "validated"  # Passed every rule
    REJECTED = "rejected"    # Failed a rule, reason recorded


class TaskStatus(str, Enum):
    """Lifecycle of a queued task."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(str, Enum):
    """Known queue task types."""
    MEMORY_BATCH = "memory_batch"
    CLUSTER_ANALYSIS = "cluster_analysis"
    THINKING_SEQUENCE_INSIGHTS = "thinking_sequence_insights"


class Priority(str, Enum):
    """Recommendation and strategy priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


# Confidence bands used by the query envelope and processors
CONFIDENCE_HIGH = 0.8
CONFIDENCE_MEDIUM = 0.5
CONFIDENCE_LOW = 0.3
CONFIDENCE_MINIMUM = 0.1


PATTERN_CATEGORIES = {
    "architectural": [
        "microservices", "monolithic", "serverless", "event_driven",
        "layered", "hexagonal", "clean_architecture", "domain_driven",
    ],
    "design": [
        "creational", "structural", "behavioral", "concurrency",
        "functional", "reactive",
    ],
    "data": [
        "database_design", "caching", "data_flow", "etl",
        "streaming", "batch_processing", "data_modeling",
    ],
    "api": [
        "rest", "graphql", "grpc", "event_sourcing", "saga",
        "circuit_breaker", "bulkhead", "timeout",
    ],
    "security": [
        "authentication", "authorization", "encryption", "input_validation",
        "secure_communication", "access_control",
    ],
    "deployment": [
        "blue_green", "canary", "rolling", "feature_flags",
        "infrastructure_as_code", "containerization",
    ],
    "observability": [
        "monitoring", "logging", "tracing", "alerting",
        "metrics", "health_checks", "debugging",
    ],
    "performance": [
        "caching", "load_balancing", "async_processing", "batching",
        "connection_pooling", "lazy_loading", "prefetching",
    ],
    "development": [
        "testing_strategy", "code_organization", "branching_strategy",
        "code_review", "pair_programming", "refactoring",
    ],
    "quality": [
        "static_analysis", "code_coverage", "continuous_integration",
        "automated_testing", "error_handling", "validation",
    ],
    "antipatterns": [
        "code_smells", "architectural_debt", "performance_issues",
        "security_vulnerabilities", "maintenance_problems",
    ],
}
