"""
Insight validation.

Every draft starts ``pending`` and leaves as either ``validated`` or
``rejected`` with a reason. Rules are checked in a fixed order: missing
required field, confidence below the minimum, short summary, then a
duplicate signature earlier in the same batch.
"""
import logging
from typing import List, Optional, Set

from insight_engine.domains.config import QualityConfig
from insight_engine.domains.enums import ValidationStatus
from insight_engine.domains.insight import Insight

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "summary", "insight_type", "insight_category")
MIN_SUMMARY_LENGTH = 10


class InsightValidator:
    """Multi-rule gate deciding which drafts are stored."""

    def __init__(self, config: Optional[QualityConfig] = None):
        self.config = config or QualityConfig()

    def rejection_reason(self, insight: Insight, seen: Set[str]) -> Optional[str]:
        for name in REQUIRED_FIELDS:
            value = getattr(insight, name)
            if not value or not str(value).strip():
                return f"Missing required field: {name}"

        if insight.confidence_score < self.config.min_confidence_score:
            return (
                f"Confidence {insight.confidence_score:.2f} below minimum "
                f"{self.config.min_confidence_score:.2f}"
            )

        if len(insight.summary.strip()) < MIN_SUMMARY_LENGTH:
            return "Summary too short"

        if insight.signature in seen:
            return "Duplicate insight in batch"
        return None

    def validate(self, insights: List[Insight]) -> List[Insight]:
        """Assign a terminal status to every draft and return them all."""
        seen: Set[str] = set()
        for insight in insights:
            reason = self.rejection_reason(insight, seen)
            if reason:
                insight.validation_status = ValidationStatus.REJECTED.value
                insight.validation_reason = reason
                logger.debug(f"Rejected insight '{insight.title}': {reason}")
                continue
            insight.validation_status = ValidationStatus.VALIDATED.value
            insight.validation_reason = None
            seen.add(insight.signature)
        return insights

    def filter_valid(self, insights: List[Insight]) -> List[Insight]:
        """Validate and keep only the drafts that passed."""
        validated = [
            i
            for i in self.validate(insights)
            if i.validation_status == ValidationStatus.VALIDATED.value
        ]
        rejected = len(insights) - len(validated)
        if rejected:
            logger.info(f"Validation rejected {rejected} of {len(insights)} insights")
        return validated
