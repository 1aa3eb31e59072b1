"""
Reasoning-sequence processor.

Extracts meta-learning insights from completed thinking sequences: how
deep the reasoning went, whether alternatives were explored and whether
the decision deserves more analysis.
"""
import logging
import re
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import ReasoningDetails
from insight_engine.domains.enums import DetectionMethod, InsightType, SourceType
from insight_engine.domains.insight import Evidence, Insight, Pattern, Recommendation
from insight_engine.domains.memory import Memory, ThinkingSequence, Thought
from insight_engine.processors.base import BaseProcessor, extract_snippet, pattern_signature

logger = logging.getLogger(__name__)

TECH_PATTERNS = [
    re.compile(r"\b(react|angular|vue|next\.?js|nuxt)\b", re.IGNORECASE),
    re.compile(r"\b(node|python|java|typescript|javascript)\b", re.IGNORECASE),
    re.compile(r"\b(docker|kubernetes|aws|gcp|azure)\b", re.IGNORECASE),
    re.compile(r"\b(postgres|mysql|mongodb|redis)\b", re.IGNORECASE),
    re.compile(r"\b(rest|graphql|grpc|websocket)\b", re.IGNORECASE),
]

_GOAL_STOPWORDS = {"should", "would", "could", "which"}


class ThinkingSequenceProcessor(BaseProcessor):
    """Meta-learning analysis of reasoning sequences."""

    name = "thinking_sequence"
    detection_method = DetectionMethod.THINKING_SEQUENCE_ANALYSIS.value

    def __init__(self, dependencies=None):
        super().__init__(dependencies)
        self.memory_repository = self.deps.memory_repository

    def should_process(self, memory: Memory) -> bool:
        return memory.has_content() and bool(memory.thinking_sequence_id)

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory) or not self.memory_repository:
            return []

        sequence = self.memory_repository.get_thinking_sequence(memory.thinking_sequence_id)
        if not sequence or not sequence.thoughts:
            logger.debug(f"No thinking sequence found for memory {memory.id}")
            return []
        return self.process_sequence(sequence, project_id=memory.project_id)

    def process_sequence(
        self, sequence: ThinkingSequence, project_id: Optional[str] = None
    ) -> List[Insight]:
        """Analyze a completed sequence directly, as the queue path does."""
        if not sequence.thoughts:
            return []

        anchor = Memory(
            id=sequence.id,
            project_id=project_id or sequence.project_id,
            memory_type="thinking_sequence",
            content=sequence.goal,
        )
        insights = [self.generate_reasoning_insight(sequence, anchor)]
        insights.extend(self.extract_reasoning_patterns(sequence, anchor))
        quality = self.analyze_decision_quality(sequence, anchor)
        if quality:
            insights.append(quality)
        logger.info(f"Generated {len(insights)} insights from thinking sequence {sequence.id}")
        return insights

    def generate_reasoning_insight(self, sequence: ThinkingSequence, anchor: Memory) -> Insight:
        thoughts = sequence.thoughts
        by_type = self.group_thoughts_by_type(thoughts)
        branch_count = self.count_branches(thoughts)
        thought_chain = "\n\n".join(f"[{t.thought_type}] {t.content}" for t in thoughts)

        insight = self.create_insight(
            anchor,
            details=ReasoningDetails(
                goal=sequence.goal,
                conclusion=sequence.summary,
                thought_count=len(thoughts),
                branch_count=branch_count,
                thought_types=[{"type": k, "count": len(v)} for k, v in by_type.items()],
                key_considerations=self.extract_key_considerations(thoughts),
                alternatives_explored=self.extract_alternatives(thoughts),
                reasoning_depth=self.calculate_reasoning_depth(thoughts),
                confidence_progression=[
                    {"thought_number": t.thought_number, "confidence": t.confidence_level}
                    for t in thoughts
                    if t.confidence_level is not None
                ],
            ),
            insight_type=InsightType.REASONING_PROCESS,
            insight_category="meta_learning",
            insight_subcategory="decision_making",
            title=f"Reasoning: {sequence.goal}",
            summary=self.generate_summary_text(sequence, by_type, branch_count),
            source_type=SourceType.THINKING_SEQUENCE,
            confidence_score=0.9,
            relevance_score=0.8,
            impact_score=self.calculate_impact_score(sequence),
            tags=self.generate_tags(sequence),
            evidence=[
                Evidence(
                    type=t.thought_type,
                    content=extract_snippet(t.content, 150),
                    source="thinking_sequence",
                    confidence=t.confidence_level if t.confidence_level is not None else 0.5,
                )
                for t in thoughts
                if t.thought_type in ("observation", "reasoning")
            ][:3],
            recommendations=self.generate_recommendations(by_type),
        )
        for tech in self.extract_technologies(thought_chain):
            self.add_technology(insight, tech, confidence=0.6, source="thinking_sequence")
        for pattern in self.extract_patterns(thoughts):
            self.add_pattern(insight, pattern)
        return insight

    def extract_reasoning_patterns(
        self, sequence: ThinkingSequence, anchor: Memory
    ) -> List[Insight]:
        insights = []
        if len(sequence.thoughts) > 10:
            insights.append(
                self.create_insight(
                    anchor,
                    insight_type=InsightType.PATTERN,
                    insight_category="reasoning",
                    insight_subcategory="analysis_depth",
                    title="Deep Analysis Pattern Detected",
                    summary=(
                        f"Thorough analysis with {len(sequence.thoughts)} thoughts "
                        f"for: {sequence.goal}"
                    ),
                    source_type=SourceType.THINKING_SEQUENCE,
                    confidence_score=0.8,
                    tags=["reasoning", "deep-analysis"],
                )
            )

        branch_count = self.count_branches(sequence.thoughts)
        if branch_count > 0:
            insights.append(
                self.create_insight(
                    anchor,
                    insight_type=InsightType.PATTERN,
                    insight_category="reasoning",
                    insight_subcategory="alternative_thinking",
                    title="Alternative Exploration Pattern",
                    summary=(
                        f"Explored {branch_count} alternative approaches for decision making"
                    ),
                    source_type=SourceType.THINKING_SEQUENCE,
                    confidence_score=0.85,
                    tags=["reasoning", "alternatives-explored"],
                )
            )
        return insights

    def analyze_decision_quality(
        self, sequence: ThinkingSequence, anchor: Memory
    ) -> Optional[Insight]:
        thoughts = sequence.thoughts
        score = self.calculate_quality_score(thoughts)
        if score >= 0.5:
            return None

        insight = self.create_insight(
            anchor,
            insight_type=InsightType.IMPROVEMENT,
            insight_category="decision_quality",
            title="Quick Decision - Consider More Analysis",
            summary=(
                f"Decision made with limited analysis ({len(thoughts)} thoughts). "
                "Consider exploring more alternatives."
            ),
            source_type=SourceType.THINKING_SEQUENCE,
            confidence_score=0.7,
            detection_metadata={"quality_score": round(score, 3)},
            tags=["reasoning", "decision-quality"],
        )
        self.add_recommendation(
            insight,
            "Consider adding more questions and hypotheses before concluding",
            priority="medium",
            type="process",
        )
        return insight

    @staticmethod
    def group_thoughts_by_type(thoughts: List[Thought]) -> Dict[str, List[Thought]]:
        grouped: Dict[str, List[Thought]] = OrderedDict()
        for thought in thoughts:
            grouped.setdefault(thought.thought_type or "general", []).append(thought)
        return grouped

    @staticmethod
    def count_branches(thoughts: List[Thought]) -> int:
        return len({t.branch_id for t in thoughts if t.branch_id})

    @staticmethod
    def extract_key_considerations(thoughts: List[Thought]) -> List[str]:
        return [
            extract_snippet(t.content, 100)
            for t in thoughts
            if t.thought_type in ("observation", "reasoning")
        ][:5]

    @staticmethod
    def extract_alternatives(thoughts: List[Thought]) -> List[Dict[str, Any]]:
        return [
            {"content": extract_snippet(t.content, 100), "branch": t.branch_id or "main"}
            for t in thoughts
            if t.branch_id or t.thought_type == "hypothesis"
        ]

    @staticmethod
    def calculate_reasoning_depth(thoughts: List[Thought]) -> str:
        depth = len(thoughts)
        if depth < 5:
            return "shallow"
        if depth < 10:
            return "moderate"
        if depth < 20:
            return "deep"
        return "very_deep"

    @staticmethod
    def generate_summary_text(
        sequence: ThinkingSequence, by_type: Dict[str, List[Thought]], branch_count: int
    ) -> str:
        parts = [f'Analyzed "{sequence.goal}" through {len(sequence.thoughts)} thoughts']
        if branch_count > 0:
            parts.append(f"exploring {branch_count} alternative approaches")
        main_types = [k for k, v in by_type.items() if len(v) > 1][:3]
        if main_types:
            parts.append(f"with focus on {', '.join(main_types)}")
        parts.append(f"Conclusion: {sequence.summary or 'Decision reached'}")
        return ", ".join(parts) + "."

    def calculate_impact_score(self, sequence: ThinkingSequence) -> float:
        depth_score = min(len(sequence.thoughts) / 20, 1) * 0.5
        branch_score = min(self.count_branches(sequence.thoughts) / 3, 1) * 0.3
        conclusion_score = 0.2 if sequence.summary else 0.1
        return round(depth_score + branch_score + conclusion_score, 3)

    @staticmethod
    def generate_tags(sequence: ThinkingSequence) -> List[str]:
        tags = ["reasoning", "decision"]
        if len(sequence.thoughts) > 10:
            tags.append("deep-analysis")
        if any(t.branch_id for t in sequence.thoughts):
            tags.append("alternatives-explored")
        goal_words = [
            w for w in sequence.goal.lower().split() if len(w) > 4 and w not in _GOAL_STOPWORDS
        ]
        for word in goal_words[:3]:
            if word not in tags:
                tags.append(word)
        return tags

    @staticmethod
    def extract_technologies(text: str) -> List[str]:
        found: List[str] = []
        for pattern in TECH_PATTERNS:
            for match in pattern.findall(text):
                name = match.lower()
                if name not in found:
                    found.append(name)
        return found

    @staticmethod
    def extract_patterns(thoughts: List[Thought]) -> List[Pattern]:
        patterns = []
        if thoughts and thoughts[0].thought_type == "question":
            patterns.append(
                Pattern(
                    name="question_first_approach",
                    category="reasoning",
                    signature=pattern_signature("reasoning", "question_first_approach"),
                    confidence=0.7,
                    description="Started reasoning with questions",
                )
            )
        revisions = sum(1 for t in thoughts if t.is_revision)
        if revisions > 0:
            patterns.append(
                Pattern(
                    name="iterative_refinement",
                    category="reasoning",
                    signature=pattern_signature("reasoning", "iterative_refinement"),
                    confidence=0.7,
                    description=f"Revised thinking {revisions} times",
                )
            )
        return patterns

    @staticmethod
    def generate_recommendations(by_type: Dict[str, List[Thought]]) -> List[Recommendation]:
        recommendations = []
        if len(by_type.get("question", [])) < 2:
            recommendations.append(
                Recommendation(
                    action="Consider asking more questions to explore the problem space",
                    priority="medium",
                    type="process",
                )
            )
        if "hypothesis" not in by_type:
            recommendations.append(
                Recommendation(
                    action="Try forming hypotheses before jumping to conclusions",
                    priority="low",
                    type="process",
                )
            )
        return recommendations

    @staticmethod
    def calculate_quality_score(thoughts: List[Thought]) -> float:
        questions = sum(1 for t in thoughts if t.thought_type == "question")
        hypotheses = sum(1 for t in thoughts if t.thought_type == "hypothesis")
        has_conclusion = any(t.thought_type == "conclusion" for t in thoughts)
        confidences = [t.confidence_level for t in thoughts if t.confidence_level is not None]
        average = sum(confidences) / len(confidences) if confidences else 0.5

        score = min(len(thoughts) / 10, 1) * 0.3
        score += min(questions / 3, 1) * 0.2
        score += min(hypotheses / 2, 1) * 0.2
        score += 0.1 if has_conclusion else 0.0
        score += average * 0.2
        return score
