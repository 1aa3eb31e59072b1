"""
Insight query service.

Serves filtered, paginated reads of stored insights and embedding-based
similarity lookups.
"""
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from insight_engine.domains.config import QueryConfig, parse_window
from insight_engine.interfaces.services.query import QueryService as QueryServiceInterface
from insight_engine.repositories.insight import InsightRepository

logger = logging.getLogger(__name__)

SORT_ORDER = [("confidence_score", -1), ("created_at", -1)]


def cosine_similarity(a: List[float], b: List[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InsightQueryService(QueryServiceInterface):
    """Read side of the insight store."""

    def __init__(self, insight_repository: InsightRepository, config: Optional[QueryConfig] = None):
        self.insight_repository = insight_repository
        self.config = config or QueryConfig()

    @staticmethod
    def time_range_start(criteria: Dict[str, Any]) -> Optional[datetime]:
        now = datetime.now(timezone.utc)
        if criteria.get("time_range_hours"):
            return now - timedelta(hours=float(criteria["time_range_hours"]))
        if criteria.get("time_range_days"):
            return now - timedelta(days=float(criteria["time_range_days"]))
        if criteria.get("time_range"):
            return now - parse_window(str(criteria["time_range"]))
        return None

    @staticmethod
    def describe_time_range(criteria: Dict[str, Any]) -> str:
        if criteria.get("time_range_hours"):
            return f"{criteria['time_range_hours']} hours"
        if criteria.get("time_range_days"):
            return f"{criteria['time_range_days']} days"
        return criteria.get("time_range") or "all"

    def build_query(self, criteria: Dict[str, Any]) -> Dict[str, Any]:
        """Translate search criteria into a MongoDB filter."""
        clauses: List[Dict[str, Any]] = []

        if criteria.get("project_id"):
            clauses.append({"project_id": criteria["project_id"]})

        if criteria.get("insight_types"):
            clauses.append({"insight_type": {"$in": list(criteria["insight_types"])}})

        categories = criteria.get("categories")
        if categories and not criteria.get("include_all_categories"):
            clauses.append(
                {
                    "$or": [
                        {"insight_category": {"$in": list(categories)}},
                        {"insight_subcategory": {"$in": list(categories)}},
                    ]
                }
            )

        confidence: Dict[str, float] = {}
        if criteria.get("min_confidence") is not None:
            confidence["$gte"] = float(criteria["min_confidence"])
        if criteria.get("max_confidence") is not None:
            confidence["$lte"] = float(criteria["max_confidence"])
        if confidence:
            clauses.append({"confidence_score": confidence})

        since = self.time_range_start(criteria)
        if since:
            clauses.append({"created_at": {"$gte": since}})

        if criteria.get("tags"):
            clauses.append({"tags": {"$in": list(criteria["tags"])}})

        if criteria.get("technologies"):
            clauses.append({"technologies.name": {"$in": list(criteria["technologies"])}})

        if criteria.get("search_text"):
            pattern = re.escape(str(criteria["search_text"]))
            clauses.append(
                {
                    "$or": [
                        {"title": {"$regex": pattern, "$options": "i"}},
                        {"summary": {"$regex": pattern, "$options": "i"}},
                    ]
                }
            )

        if not clauses:
            return {}
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    def resolve_limit(self, limit: Optional[int]) -> int:
        if not limit or limit < 1:
            return self.config.default_limit
        return min(int(limit), self.config.max_limit)

    def search(self, criteria: Dict[str, Any]) -> Dict[str, Any]:
        query = self.build_query(criteria)
        limit = self.resolve_limit(criteria.get("limit"))
        offset = max(int(criteria.get("offset") or 0), 0)

        insights = self.insight_repository.search(query, sort=SORT_ORDER, limit=limit, skip=offset)
        total = self.insight_repository.count(query)
        logger.debug(f"Insight search matched {total} insights, returning {len(insights)}")

        return {
            "insights": insights,
            "total": total,
            "time_range": self.describe_time_range(criteria),
            "criteria": criteria,
        }

    def get_by_id(self, insight_id: str, include_related: bool = False) -> Optional[Dict[str, Any]]:
        insight = self.insight_repository.get(insight_id)
        if not insight:
            return None
        result: Dict[str, Any] = {"insight": insight}
        if include_related:
            related = self.insight_repository.get_many(insight.related_insight_ids)
            result["related_insights"] = [
                {
                    "id": r.id,
                    "title": r.title,
                    "type": r.insight_type,
                    "category": r.insight_category,
                }
                for r in related
            ]
        return result

    def find_similar(
        self, insight_id: str, limit: int = 5, min_similarity: float = 0.7
    ) -> List[Dict[str, Any]]:
        """Stored insights ranked by cosine similarity to the given insight's embedding."""
        source = self.insight_repository.get(insight_id)
        if not source or not source.embedding:
            logger.warning(f"Insight {insight_id} has no embedding, cannot find similar")
            return []

        scored = []
        for candidate in self.insight_repository.find_with_embeddings(exclude_id=insight_id):
            similarity = cosine_similarity(source.embedding, candidate.embedding)
            if similarity >= min_similarity:
                scored.append({"insight": candidate, "similarity": similarity})

        scored.sort(key=lambda item: item["similarity"], reverse=True)
        return scored[:limit]
