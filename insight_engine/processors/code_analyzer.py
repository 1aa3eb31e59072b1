import logging
import re
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import CodeQualityDetails, CodeSmellDetails
from insight_engine.domains.enums import DetectionMethod, InsightType
from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.processors.base import BaseProcessor

logger = logging.getLogger(__name__)

LONG_FILE_LINES = 300
MAX_CONDITIONALS = 10
LONG_METHOD_CHARS = 500

_CONDITIONALS = re.compile(r"if\s*\(|switch\s*\(|\?.*:")
_LOOPS = re.compile(r"for\s*\(|while\s*\(|\.forEach|\.map")
_FUNCTIONS = re.compile(r"function\s+\w+|=>\s*\{|async\s+\w+")

SMELLS = [
    {
        "type": "long_parameter_list",
        "regex": re.compile(r"function\s+\w+\s*\([^)]{50,}\)"),
        "message": "Function with too many parameters",
        "recommendation": "Consider using an options object",
    },
    {
        "type": "long_method",
        "regex": None,  # brace scan, see _has_long_block
        "message": "Method is too long",
        "recommendation": "Consider breaking into smaller functions",
    },
    {
        "type": "nested_conditionals",
        "regex": re.compile(r"if\s*\([^)]+\)\s*\{\s*if\s*\([^)]+\)\s*\{\s*if"),
        "message": "Deeply nested conditionals",
        "recommendation": "Consider early returns or extracting logic",
    },
]


def _has_long_block(content: str, limit: int = LONG_METHOD_CHARS) -> bool:
    """True when any brace-delimited block spans more than ``limit`` characters."""
    stack = []
    for index, ch in enumerate(content):
        if ch == "{":
            stack.append(index)
        elif ch == "}" and stack:
            start = stack.pop()
            if index - start - 1 > limit:
                return True
    return False


class CodeAnalyzerProcessor(BaseProcessor):
    """Static heuristics for code quality and code smells."""

    name = "code_analyzer"
    detection_method = DetectionMethod.CODE_ANALYSIS.value

    def should_process(self, memory: Memory) -> bool:
        return memory.has_content() and memory.memory_type == "code"

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory):
            return []

        insights = []
        quality = self.analyze_code_quality(memory)
        if quality:
            insights.append(quality)
        insights.extend(self.detect_code_smells(memory))
        return insights

    @staticmethod
    def calculate_code_metrics(content: str) -> Dict[str, Any]:
        lines = content.split("\n")
        complexity = {
            "conditionals": len(_CONDITIONALS.findall(content)),
            "loops": len(_LOOPS.findall(content)),
            "functions": len(_FUNCTIONS.findall(content)),
        }
        issues = []
        if len(lines) > LONG_FILE_LINES:
            issues.append(
                {
                    "type": "file_too_long",
                    "severity": "medium",
                    "recommendation": "Consider splitting this file",
                }
            )
        if complexity["conditionals"] > MAX_CONDITIONALS:
            issues.append(
                {
                    "type": "high_cyclomatic_complexity",
                    "severity": "high",
                    "recommendation": "Reduce conditional complexity",
                }
            )
        return {"line_count": len(lines), "complexity": complexity, "issues": issues}

    def analyze_code_quality(self, memory: Memory) -> Optional[Insight]:
        metrics = self.calculate_code_metrics(memory.content)
        issues = metrics["issues"]
        if not issues:
            return None

        insight = self.create_insight(
            memory,
            details=CodeQualityDetails(**metrics),
            insight_type=InsightType.CODE_QUALITY,
            insight_category="quality",
            insight_subcategory="code_metrics",
            title="Code Quality Analysis",
            summary=f"Found {len(issues)} potential quality issues",
            confidence_score=0.7,
            tags=["code-quality"] + [f"issue:{i['type']}" for i in issues],
        )
        for issue in issues:
            self.add_recommendation(
                insight,
                issue["recommendation"],
                priority="high" if issue["severity"] == "high" else "medium",
                type="code_quality",
            )
        return insight

    def detect_code_smells(self, memory: Memory) -> List[Insight]:
        content = memory.content
        insights = []
        for smell in SMELLS:
            if smell["regex"] is None:
                matched = _has_long_block(content)
                pattern_text = f"brace block > {LONG_METHOD_CHARS} chars"
            else:
                matched = smell["regex"].search(content) is not None
                pattern_text = smell["regex"].pattern
            if not matched:
                continue

            insight = self.create_insight(
                memory,
                details=CodeSmellDetails(smell_type=smell["type"], pattern=pattern_text),
                insight_type=InsightType.CODE_SMELL,
                insight_category="quality",
                insight_subcategory=smell["type"],
                title=smell["message"],
                summary=smell["message"],
                confidence_score=0.6,
                tags=["code-smell", smell["type"]],
            )
            self.add_recommendation(
                insight, smell["recommendation"], priority="medium", type="refactoring"
            )
            insights.append(insight)
        return insights
