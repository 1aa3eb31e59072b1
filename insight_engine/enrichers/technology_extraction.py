import json
import logging
import re
from typing import Dict, List, Optional

from insight_engine.domains.insight import Insight, Technology
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.base import BaseEnricher
from insight_engine.repositories.knowledge import TechnologyTrackingRepository

logger = logging.getLogger(__name__)


def _family(*names: str) -> re.Pattern:
    alternatives = "|".join(re.escape(n) for n in names)
    return re.compile(rf"(?<![\w+])({alternatives})(?![\w+])", re.IGNORECASE)


TECH_PATTERNS: Dict[str, re.Pattern] = {
    "languages": _family(
        "javascript", "typescript", "python", "java", "go", "rust", "c++", "ruby",
        "php", "swift", "kotlin", "scala",
    ),
    "frameworks": _family(
        "react", "vue", "angular", "express", "django", "flask", "spring", "rails",
        "laravel", "nextjs", "nuxt",
    ),
    "databases": _family(
        "postgresql", "postgres", "mysql", "mongodb", "redis", "elasticsearch",
        "cassandra", "dynamodb",
    ),
    "cloud": _family(
        "aws", "azure", "gcp", "google cloud", "heroku", "vercel", "netlify", "cloudflare",
    ),
    "tools": _family(
        "docker", "kubernetes", "jenkins", "github", "gitlab", "terraform", "ansible",
        "nginx", "apache",
    ),
    "libraries": _family(
        "lodash", "axios", "moment", "jquery", "bootstrap", "tailwind", "material-ui", "antd",
    ),
}

OUTDATED = {
    "jquery": "Consider modern alternatives like vanilla JS or React",
    "moment": "Consider date-fns or native Date APIs",
    "grunt": "Consider webpack or vite",
    "bower": "Use npm or yarn instead",
}

FRONTEND_FRAMEWORKS = ("react", "vue", "angular")


class TechnologyExtractionEnricher(BaseEnricher):
    """Extracts technologies from insight and memory text and tracks their usage."""

    name = "technology_extraction"

    def __init__(self, tracking_repository: Optional[TechnologyTrackingRepository] = None):
        self.tracking_repository = tracking_repository

    async def enrich(self, insight: Insight, memory: Memory) -> Insight:
        extracted = self.extract_technologies(insight, memory)
        for tech in extracted:
            self.add_technology(
                insight, tech.name, tech.category, tech.confidence, tech.version, tech.source
            )

        if extracted:
            self.update_tracking(extracted, memory.project_id)
            self.add_tags(insight, [f"tech:{t.name.lower()}" for t in extracted])

        self.add_technology_recommendations(insight, extracted)
        return insight

    @staticmethod
    def extract_technologies(insight: Insight, memory: Memory) -> List[Technology]:
        text = " ".join(
            [
                insight.title,
                insight.summary,
                memory.content,
                json.dumps(insight.detailed_content, default=str),
            ]
        ).lower()

        found: List[Technology] = []
        seen = set()
        for category, pattern in TECH_PATTERNS.items():
            for match in pattern.findall(text):
                name = match.lower()
                if (category, name) in seen:
                    continue
                seen.add((category, name))
                found.append(
                    Technology(
                        name=name, category=category, confidence=0.8, source="pattern_extraction"
                    )
                )

        for tech in insight.technologies:
            if not tech.name or not tech.category or tech.category == "unknown":
                continue
            key = (tech.category, tech.name)
            if key not in seen:
                seen.add(key)
                found.append(tech)
        return found

    def update_tracking(self, technologies: List[Technology], project_id: Optional[str]) -> None:
        if not self.tracking_repository:
            return
        for tech in technologies:
            try:
                self.tracking_repository.record(tech.name, tech.category, project_id)
            except Exception as e:
                logger.error(f"Failed to update technology tracking for {tech.name}: {e}")

    def add_technology_recommendations(
        self, insight: Insight, technologies: List[Technology]
    ) -> None:
        names = [t.name.lower() for t in technologies]

        outdated = [n for n in names if n in OUTDATED]
        if outdated:
            self.add_recommendation(
                insight,
                f"Consider updating {', '.join(outdated)} to newer alternatives",
                priority="medium",
                reasoning="; ".join(OUTDATED[n] for n in outdated),
                type="technology_update",
            )

        for concern in self.security_concerns(names):
            self.add_recommendation(insight, concern, priority="high", type="security")

        for issue in self.stack_coherence_issues(names):
            self.add_recommendation(insight, issue, priority="medium", type="architecture")

    @staticmethod
    def security_concerns(names: List[str]) -> List[str]:
        concerns = []
        if "express" in names and "helmet" not in names:
            concerns.append("Consider adding helmet.js for Express security headers")
        if "mongodb" in names and "mongoose" not in names:
            concerns.append("Ensure proper MongoDB query sanitization without an ORM")
        return concerns

    @staticmethod
    def stack_coherence_issues(names: List[str]) -> List[str]:
        issues = []
        frameworks = [f for f in FRONTEND_FRAMEWORKS if f in names]
        if len(frameworks) > 1:
            issues.append(
                f"Multiple frontend frameworks detected ({', '.join(frameworks)}). "
                "Consider consolidating."
            )
        if "django" in names and "express" in names:
            issues.append("Mixed backend frameworks detected. Consider architectural consistency.")
        return issues
