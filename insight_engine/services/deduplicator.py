import logging
from typing import Dict, List

from insight_engine.domains.insight import Insight

logger = logging.getLogger(__name__)


def deduplicate(insights: List[Insight]) -> List[Insight]:
    """Collapse drafts sharing a signature within one processing pass.

    The first draft for a signature survives and takes the highest confidence
    seen for it; later drafts are dropped. Running this on its own output
    returns the same list.
    """
    kept: Dict[str, Insight] = {}
    for insight in insights:
        signature = insight.signature
        existing = kept.get(signature)
        if existing is None:
            kept[signature] = insight
            continue
        if insight.confidence_score > existing.confidence_score:
            existing.confidence_score = insight.confidence_score
        logger.debug(f"Dropped duplicate insight draft {signature}")

    if len(kept) < len(insights):
        logger.info(f"Deduplicated {len(insights)} drafts to {len(kept)}")
    return list(kept.values())
