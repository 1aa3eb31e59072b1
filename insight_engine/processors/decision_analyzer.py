import logging
import re
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import DecisionDetails
from insight_engine.domains.enums import DetectionMethod, InsightType
from insight_engine.domains.insight import Evidence, Insight, Recommendation, as_list, as_text
from insight_engine.domains.memory import Memory
from insight_engine.parsing.lenient_json import extract_json
from insight_engine.processors.base import BaseProcessor

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "Decision Analysis"

DECISION_PATTERNS = [
    {
        "name": "technical_debt_tradeoff",
        "regex": re.compile(
            r"technical\s+debt|quick\s+fix|temporary\s+solution|workaround", re.IGNORECASE
        ),
        "insight": "Technical debt decision detected",
    },
    {
        "name": "architecture_choice",
        "regex": re.compile(r"architecture|framework|technology\s+stack|platform", re.IGNORECASE),
        "insight": "Architectural decision detected",
    },
    {
        "name": "performance_vs_features",
        "regex": re.compile(r"performance|optimization|features?|functionality", re.IGNORECASE),
        "insight": "Performance vs features tradeoff detected",
    },
]

EXTRACTION_PROMPT = """Analyze this decision and extract key information.

Decision Content:
{context}

Return only a JSON object with:
{{
  "topic": "Brief, specific topic of the decision",
  "summary": "2-3 sentence summary of what was decided and why",
  "type": "architectural|technical|process|organizational|strategic",
  "factors": ["key factor", ...],
  "alternatives": ["alternative option", ...],
  "rationale": "The main reasoning behind this decision",
  "impact": "high|medium|low",
  "stakeholders": ["affected party", ...],
  "evidence": [{{"type": "research|data|experience|constraint", "content": "...", "source": "..."}}],
  "risks": ["potential risk", ...],
  "success_criteria": ["how we will know this decision was right", ...]
}}

Focus on concrete, specific information from the content."""

_LIST_FIELDS = ("factors", "alternatives", "stakeholders", "evidence", "risks", "success_criteria")


class DecisionAnalyzerProcessor(BaseProcessor):
    """LLM-assisted analysis of recorded decisions."""

    name = "decision_analyzer"
    detection_method = DetectionMethod.DECISION_ANALYSIS.value

    def __init__(self, dependencies=None):
        super().__init__(dependencies)
        self.memory_repository = self.deps.memory_repository

    def should_process(self, memory: Memory) -> bool:
        return memory.has_content() and memory.memory_type == "decision"

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory):
            return []

        insights = [await self.analyze_decision(memory)]
        insights.extend(self.check_decision_patterns(memory))
        return insights

    async def analyze_decision(self, memory: Memory) -> Insight:
        analysis = await self.extract_decision_info(memory)

        completeness = [
            len(analysis["factors"]) > 0,
            len(analysis["alternatives"]) > 0,
            analysis["rationale"] != "",
            len(analysis["evidence"]) > 0,
            len(analysis["stakeholders"]) > 0,
            analysis["topic"] != DEFAULT_TOPIC,
        ]
        confidence = 0.5 + sum(completeness) * 0.08

        insight = self.create_insight(
            memory,
            details=DecisionDetails(
                decision_type=analysis["type"],
                factors=analysis["factors"],
                alternatives=analysis["alternatives"],
                rationale=analysis["rationale"],
                impact=analysis["impact"],
                stakeholders=analysis["stakeholders"],
                risks=analysis["risks"],
                success_criteria=analysis["success_criteria"],
                has_thinking_sequence=bool(memory.thinking_sequence_id),
            ),
            insight_type=InsightType.DECISION,
            insight_category="decision_making",
            insight_subcategory=analysis["type"],
            title=f"Decision Analysis: {analysis['topic']}",
            summary=analysis["summary"],
            confidence_score=confidence,
            detection_metadata={
                "used_llm": analysis["used_llm"],
                "thinking_sequence_id": memory.thinking_sequence_id,
            },
            recommendations=self.generate_decision_recommendations(analysis),
            tags=["decision", f"type:{analysis['type']}", f"impact:{analysis['impact']}"],
        )
        for item in analysis["evidence"]:
            if isinstance(item, dict):
                insight.evidence.append(
                    Evidence(
                        type=item.get("type", "text"),
                        content=item.get("content", ""),
                        source=item.get("source", "memory"),
                        confidence=item.get("confidence", 0.5),
                    )
                )
            else:
                self.add_evidence(insight, str(item))
        return insight

    def check_decision_patterns(self, memory: Memory) -> List[Insight]:
        insights = []
        for pattern in DECISION_PATTERNS:
            if pattern["regex"].search(memory.content):
                insights.append(
                    self.create_insight(
                        memory,
                        insight_type=InsightType.DECISION_PATTERN,
                        insight_category="decision_making",
                        insight_subcategory=pattern["name"],
                        title=pattern["insight"],
                        summary=f"Identified {pattern['name']} decision pattern",
                        confidence_score=0.6,
                        tags=["decision-pattern", pattern["name"]],
                    )
                )
        return insights

    async def _build_context(self, memory: Memory) -> str:
        if not memory.thinking_sequence_id or not self.memory_repository:
            return memory.content
        try:
            sequence = self.memory_repository.get_thinking_sequence(memory.thinking_sequence_id)
        except Exception as e:
            logger.warning(f"Failed to fetch thinking sequence {memory.thinking_sequence_id}: {e}")
            return memory.content
        if not sequence:
            return memory.content
        return (
            f"Goal: {sequence.goal}\n\nDecision: {memory.content}\n\n"
            f"Summary: {sequence.summary or ''}"
        )

    async def extract_decision_info(self, memory: Memory) -> Dict[str, Any]:
        context = await self._build_context(memory)

        if not self.llm_provider:
            return self._basic_info(memory)

        try:
            response = await self.llm_provider.generate(
                EXTRACTION_PROMPT.format(context=context), temperature=0.3, max_tokens=800
            )
        except Exception as e:
            logger.error(f"LLM decision extraction failed for memory {memory.id}: {e}")
            return self._basic_info(memory)

        analysis = extract_json(response)
        if not isinstance(analysis, dict):
            logger.warning("Failed to parse decision analysis as JSON, using text extraction")
            analysis = self.extract_from_text(response)

        result = {
            "topic": as_text(analysis.get("topic")) or self.extract_topic(memory.content),
            "summary": as_text(analysis.get("summary")) or memory.content[:200],
            "type": as_text(analysis.get("type")) or "general",
            "rationale": (
                as_text(analysis.get("rationale")) or self.extract_rationale(memory.content)
            ),
            "impact": as_text(analysis.get("impact")) or "medium",
            "used_llm": True,
        }
        for key in _LIST_FIELDS:
            result[key] = as_list(analysis.get(key))
        return result

    @staticmethod
    def _basic_info(memory: Memory) -> Dict[str, Any]:
        info = {
            "topic": DEFAULT_TOPIC,
            "summary": memory.content[:200],
            "type": "general",
            "rationale": "",
            "impact": "medium",
            "used_llm": False,
        }
        for key in _LIST_FIELDS:
            info[key] = []
        return info

    @staticmethod
    def extract_from_text(text: str) -> Dict[str, Any]:
        """Line heuristics for non-JSON responses."""
        result: Dict[str, Any] = {"factors": []}
        for line in (text or "").split("\n"):
            stripped = line.strip()
            lowered = stripped.lower()
            if "decision" in lowered or "decided" in lowered:
                result["summary"] = stripped
            if "because" in lowered or "reason" in lowered:
                result["rationale"] = stripped
            if "factor" in lowered or "consideration" in lowered:
                result["factors"].append(stripped)
        return result

    @staticmethod
    def extract_topic(content: str) -> str:
        first_line = content.split("\n")[0]
        if 5 < len(first_line) < 100:
            return re.sub(r"^#\s*", "", first_line).strip()
        return DEFAULT_TOPIC

    @staticmethod
    def extract_rationale(content: str) -> str:
        match = re.search(r"(?:because|reason|rationale|why)[\s:]+(.*?)(?:\n|$)", content, re.IGNORECASE)
        return match.group(1).strip() if match else ""

    @staticmethod
    def generate_decision_recommendations(analysis: Dict[str, Any]) -> List[Recommendation]:
        recommendations = [
            Recommendation(
                action="Document this decision in the architecture decision records (ADR)",
                priority="medium",
                type="documentation",
            )
        ]
        if analysis["type"] == "architectural":
            recommendations.append(
                Recommendation(
                    action="Review this decision in 6 months to assess impact",
                    priority="medium",
                    type="review",
                )
            )
        if analysis["impact"] == "high":
            recommendations.append(
                Recommendation(
                    action="Communicate this decision to all stakeholders",
                    priority="high",
                    type="communication",
                )
            )
        if analysis["alternatives"]:
            recommendations.append(
                Recommendation(
                    action="Keep documentation of alternatives for future reference",
                    priority="low",
                    type="documentation",
                )
            )
        return recommendations
