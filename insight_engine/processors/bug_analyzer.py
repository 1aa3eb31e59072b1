import logging
import re
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import BugDetails, BugPatternDetails
from insight_engine.domains.enums import DetectionMethod, InsightType
from insight_engine.domains.insight import Insight, Recommendation
from insight_engine.domains.memory import Memory
from insight_engine.processors.base import BaseProcessor

logger = logging.getLogger(__name__)

SYMPTOM_PATTERNS = [
    re.compile(r"crash(?:es|ing|ed)?", re.IGNORECASE),
    re.compile(r"error\s+(?:message|code)?\s*:?\s*[^.\n]+", re.IGNORECASE),
    re.compile(r"fail(?:s|ing|ed|ure)?", re.IGNORECASE),
    re.compile(r"not\s+work(?:ing)?", re.IGNORECASE),
]

KNOWN_BUG_PATTERNS = [
    {
        "name": "null_reference",
        "description": "Null reference exception",
        "regex": re.compile(
            r"null\s*(?:reference|pointer)|cannot\s+read\s+propert(?:y|ies).*of\s+(?:null|undefined)|NoneType",
            re.IGNORECASE,
        ),
        "occurrences": 5,
        "solution": "Add null checks before accessing properties",
    },
    {
        "name": "memory_leak",
        "description": "Memory leak pattern",
        "regex": re.compile(r"memory\s+leak|out\s+of\s+memory|heap\s+size", re.IGNORECASE),
        "occurrences": 3,
        "solution": "Check for unreleased resources and circular references",
    },
]


class BugAnalyzerProcessor(BaseProcessor):
    """Severity, category and recurring-pattern analysis of bug reports."""

    name = "bug_analyzer"
    detection_method = DetectionMethod.BUG_ANALYSIS.value

    def should_process(self, memory: Memory) -> bool:
        return memory.has_content() and memory.memory_type == "bug"

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory):
            return []

        insights = [self.analyze_bug(memory)]
        insights.extend(self.check_bug_patterns(memory))
        return insights

    @staticmethod
    def extract_bug_info(content: str) -> Dict[str, Any]:
        info = {
            "title": "Unknown Bug",
            "summary": content[:200],
            "severity": "medium",
            "category": "general",
            "impact": "unknown",
            "symptoms": [],
            "potential_causes": [],
        }

        first_line = content.strip().split("\n")[0].strip().lstrip("#").strip()
        if 5 < len(first_line) < 100:
            info["title"] = first_line

        if re.search(r"critical|severe|blocking", content, re.IGNORECASE):
            info["severity"] = "critical"
        elif re.search(r"high|major", content, re.IGNORECASE):
            info["severity"] = "high"
        elif re.search(r"low|minor", content, re.IGNORECASE):
            info["severity"] = "low"

        if re.search(r"performance|slow|lag", content, re.IGNORECASE):
            info["category"] = "performance"
        elif re.search(r"security|vulnerability|exploit", content, re.IGNORECASE):
            info["category"] = "security"
        elif re.search(r"\bui\b|display|visual", content, re.IGNORECASE):
            info["category"] = "ui"
        elif re.search(r"data|database|corruption", content, re.IGNORECASE):
            info["category"] = "data"

        for pattern in SYMPTOM_PATTERNS:
            info["symptoms"].extend(m.group(0).strip() for m in pattern.finditer(content))

        return info

    def analyze_bug(self, memory: Memory) -> Insight:
        analysis = self.extract_bug_info(memory.content)
        insight = self.create_insight(
            memory,
            details=BugDetails(
                severity=analysis["severity"],
                impact=analysis["impact"],
                symptoms=analysis["symptoms"],
                potential_causes=analysis["potential_causes"],
            ),
            insight_type=InsightType.BUG,
            insight_category="debugging",
            insight_subcategory=analysis["category"],
            title=f"Bug Analysis: {analysis['title']}",
            summary=analysis["summary"],
            confidence_score=0.8,
            tags=["bug", f"severity:{analysis['severity']}", f"category:{analysis['category']}"],
        )
        for rec in self.generate_bug_recommendations(analysis):
            insight.recommendations.append(rec)
        insight.action_items = [
            Recommendation(
                action=f"Investigate {analysis['category']} bug: {analysis['title']}",
                priority=analysis["severity"],
                type="investigation",
            ),
            Recommendation(
                action="Document reproduction steps", priority="medium", type="documentation"
            ),
        ]
        return insight

    def check_bug_patterns(self, memory: Memory) -> List[Insight]:
        insights = []
        for pattern in KNOWN_BUG_PATTERNS:
            if not pattern["regex"].search(memory.content):
                continue
            insight = self.create_insight(
                memory,
                details=BugPatternDetails(
                    pattern_name=pattern["name"],
                    description=pattern["description"],
                    previous_occurrences=pattern["occurrences"],
                ),
                insight_type=InsightType.BUG_PATTERN,
                insight_category="debugging",
                insight_subcategory="recurring_issue",
                title=f"Recurring Bug Pattern: {pattern['name']}",
                summary=f"This bug matches a known pattern: {pattern['description']}",
                confidence_score=0.7,
                tags=["bug-pattern", pattern["name"]],
            )
            self.add_recommendation(insight, pattern["solution"], priority="high", type="bug_fix")
            insights.append(insight)
        return insights

    @staticmethod
    def generate_bug_recommendations(analysis: Dict[str, Any]) -> List[Recommendation]:
        recommendations = []
        if analysis["severity"] == "critical":
            recommendations.append(
                Recommendation(
                    action="Prioritize fixing this bug immediately",
                    priority="critical",
                    type="process",
                )
            )
        if analysis["category"] == "security":
            recommendations.append(
                Recommendation(
                    action="Conduct security audit and patch immediately",
                    priority="critical",
                    type="security",
                )
            )
        if len(analysis["symptoms"]) > 3:
            recommendations.append(
                Recommendation(
                    action="Consider root cause analysis - multiple symptoms suggest deeper issue",
                    priority="high",
                    type="investigation",
                )
            )
        return recommendations
