"""
Clustering processor.

Groups related memories and analyzes each qualifying cluster with the
stored ``cluster_analysis`` templates, once per analysis focus. Falls back
to a direct prompt and finally to a keyword summary when no template or
generation call is usable.
"""
import logging
import math
import re
from collections import Counter, OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from insight_engine.domains.details import ClusterDetails
from insight_engine.domains.enums import DetectionMethod, InsightType, SourceType
from insight_engine.domains.insight import (
    Evidence,
    Insight,
    Pattern,
    Recommendation,
    as_list,
    as_text,
)
from insight_engine.domains.memory import Cluster, Memory, TimeSpan
from insight_engine.domains.template import AnalysisTemplate
from insight_engine.parsing.lenient_json import extract_json
from insight_engine.processors.base import BaseProcessor, as_utc, extract_snippet

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 3
CLUSTER_TEMPLATE_CATEGORY = "cluster_analysis"

ANALYSIS_FOCUSES = OrderedDict(
    [
        ("technical_evolution", "Focus on: how approaches evolved, key breakthroughs, lessons learned"),
        ("root_cause", "Focus on: issue patterns, debugging approaches, systemic problems"),
        ("decision_impact", "Focus on: decision outcomes, assumption validation, hindsight insights"),
        ("knowledge_synthesis", "Focus on: key learnings, best practices, knowledge gaps"),
        ("workflow_optimization", "Focus on: process improvements, bottlenecks, efficiency gains"),
        ("security_patterns", "Focus on: vulnerability patterns, security measures, compliance"),
        ("cross_patterns", "Focus on: recurring themes, causal relationships, meta-insights"),
    ]
)

# keywords that tie a template to the focus it serves, checked in order
FOCUS_KEYWORDS = [
    ("security_patterns", ("security", "vulnerab")),
    ("root_cause", ("root_cause", "root cause", "root-cause")),
    ("decision_impact", ("decision",)),
    ("technical_evolution", ("evolution",)),
    ("knowledge_synthesis", ("knowledge", "synthesis")),
    ("workflow_optimization", ("workflow", "process")),
    ("cross_patterns", ("cross", "pattern")),
]

SECURITY_KEYWORDS = ("security", "vulnerability", "authentication")

SEVERITY_KEYWORDS = OrderedDict(
    [
        ("critical", ("critical", "severe", "emergency", "urgent")),
        ("high", ("high", "important", "major")),
        ("medium", ("medium", "moderate", "normal")),
        ("low", ("low", "minor", "trivial")),
    ]
)

STOPWORDS = frozenset(
    """the is at which on and a an as are was were been be have has had do does did
    will would should could may might must can this that these those i you he she it
    we they them their what who when where why how all each every some any few many
    much most other into through during before after above below to from up down in
    out off over under again further then once with also there here than just only
    very more such""".split()
)

_WORD = re.compile(r"\W+")
_UNREPLACED = re.compile(r"\{(\w+)\}")

DIRECT_PROMPT = """Analyze this cluster of {count} related {cluster_type} memories and identify patterns, root causes, and insights.

Memory Type: {cluster_type}
Time Span: {days} days
Common Tags: {tags}

Memories:
{summaries}

Provide a JSON response with:
{{
  "title": "Brief, specific title for the pattern/insight",
  "summary": "2-3 sentence summary of the key finding",
  "pattern": "Description of the pattern observed across these memories",
  "rootCause": "Potential root cause or common factor (if applicable)",
  "evolution": "How this issue/pattern evolved over time (if applicable)",
  "category": "cross_memory_pattern|recurring_issue|evolution|systematic_problem",
  "confidence": 0.0-1.0,
  "recommendations": ["actionable recommendation 1", "..."],
  "actionItems": ["specific action 1", "..."],
  "evidence": ["specific example from memories", "..."],
  "tags": ["relevant", "tags"]
}}"""


def extract_common_themes(memories: List[Memory]) -> List[str]:
    """Frequent content terms plus tags shared by every member."""
    if not memories:
        return []
    threshold = max(2, len(memories) * 0.3)
    document_counts: Counter = Counter()
    for memory in memories:
        words = {
            w for w in _WORD.split(memory.content.lower()) if len(w) > 3 and w not in STOPWORDS
        }
        document_counts.update(words)
    frequent = [
        word
        for word, count in sorted(document_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        if count >= threshold
    ][:5]

    themes = list(frequent)
    for tag in common_tags(memories):
        if tag not in themes:
            themes.append(tag)
    return themes


def common_tags(memories: List[Memory]) -> List[str]:
    if not memories:
        return []
    shared = set(memories[0].tags)
    for memory in memories[1:]:
        shared &= set(memory.tags)
    return [t for t in memories[0].tags if t in shared]


def calculate_time_span(memories: List[Memory]) -> TimeSpan:
    if not memories:
        now = datetime.now(timezone.utc)
        return TimeSpan(start=now, end=now, days=0)
    dates = [as_utc(m.created_at) for m in memories]
    start, end = min(dates), max(dates)
    days = math.ceil((end - start).total_seconds() / 86400)
    return TimeSpan(start=start, end=end, days=days)


def extract_severity_levels(memories: List[Memory]) -> str:
    found = []
    for memory in memories:
        content = memory.content.lower()
        for level, keywords in SEVERITY_KEYWORDS.items():
            if level not in found and any(k in content for k in keywords):
                found.append(level)
    return ", ".join(found) or "various"


def template_focus(template: AnalysisTemplate) -> str:
    """Which analysis focus a cluster template serves, judged from its name, tags and description."""
    name = template.template_name.lower()
    for focus, keywords in FOCUS_KEYWORDS:
        if any(k in name for k in keywords):
            return focus
    text = " ".join([*template.tags, template.description]).lower()
    for focus, keywords in FOCUS_KEYWORDS:
        if any(k in text for k in keywords):
            return focus
    return "cross_patterns"


def score_template(template: AnalysisTemplate, cluster: Cluster) -> float:
    """Relevance of a cluster template to the cluster's composition."""
    memories = cluster.memories
    size = len(memories)
    types = {m.memory_type for m in memories}
    combined = " ".join(m.content for m in memories).lower()
    has_security = any(k in combined for k in SECURITY_KEYWORDS)
    days = cluster.time_span.days if cluster.time_span else 0
    has_evolution = size > 5 and days > 7

    focus = template_focus(template)
    score = 0.0
    if focus == "security_patterns":
        score += 10 if has_security else 0
        score += 3 if "bug" in types else 0
    elif focus == "root_cause":
        score += 10 if "bug" in types else 0
        score += 3 if "code" in types else 0
    elif focus == "decision_impact":
        score += 10 if "decision" in types else 0
        score += min(size / 5, 3)
    elif focus == "technical_evolution":
        score += 5 if "code" in types else 0
        score += 8 if has_evolution else 0
    elif focus == "knowledge_synthesis":
        score += 5 if size > 10 else 0
        score += 3 if len(types) > 2 else 0
    elif focus == "workflow_optimization":
        score += 10 if types & {"process", "workflow"} else 0
    else:
        score += 2 + min(size / 10, 3)
    return score


def select_cluster_template(
    cluster: Cluster, templates: List[AnalysisTemplate]
) -> Optional[AnalysisTemplate]:
    """Highest-scoring template; ties go to the most recently created one."""
    if not templates:
        return None
    ranked = sorted(
        templates,
        key=lambda t: (score_template(t, cluster), as_utc(t.created_at)),
        reverse=True,
    )
    best = ranked[0]
    return best if score_template(best, cluster) > 0 else None


class ClusteringProcessor(BaseProcessor):
    """Cross-memory analysis over clusters of related memories."""

    name = "clustering"
    detection_method = DetectionMethod.CLUSTERING.value

    def __init__(self, dependencies=None):
        super().__init__(dependencies)
        self.template_repository = self.deps.template_repository

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        # clustering runs in batch mode only
        return []

    async def process_batch(
        self, memories: List[Memory], options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        options = options or {}
        members = [m for m in memories if m.has_content()]

        metadata = options.get("cluster_metadata")
        if metadata:
            clusters = [self.build_cluster(members, **metadata)]
        else:
            clusters = self.cluster_memories(members)

        insights: List[Insight] = []
        for cluster in clusters:
            if cluster.size < MIN_CLUSTER_SIZE:
                logger.debug(
                    f"Skipping cluster {cluster.cluster_id} with {cluster.size} memories"
                )
                continue
            insights.extend(
                await self.generate_cluster_insights(
                    cluster, select_template=options.get("select_template", False)
                )
            )
        logger.info(f"Clustering produced {len(insights)} insights from {len(clusters)} clusters")
        return insights

    def build_cluster(
        self,
        memories: List[Memory],
        cluster_id: Optional[str] = None,
        cluster_type: Optional[str] = None,
        **_: Any,
    ) -> Cluster:
        cluster_type = cluster_type or (memories[0].memory_type if memories else "general")
        return Cluster(
            cluster_id=cluster_id or f"cluster_{cluster_type}_{uuid4().hex[:8]}",
            cluster_type=cluster_type,
            memories=memories,
            common_tags=common_tags(memories),
            common_themes=extract_common_themes(memories),
            time_span=calculate_time_span(memories),
        )

    def cluster_memories(self, memories: List[Memory]) -> List[Cluster]:
        groups: Dict[str, List[Memory]] = OrderedDict()
        for memory in memories:
            groups.setdefault(memory.memory_type, []).append(memory)
        return [self.build_cluster(group, cluster_type=t) for t, group in groups.items()]

    def get_cluster_templates(self) -> List[AnalysisTemplate]:
        if not self.template_repository:
            return []
        try:
            return self.template_repository.find_active(category=CLUSTER_TEMPLATE_CATEGORY)
        except Exception as e:
            logger.error(f"Failed to load cluster analysis templates: {e}")
            return []

    async def generate_cluster_insights(
        self, cluster: Cluster, select_template: bool = False
    ) -> List[Insight]:
        templates = self.get_cluster_templates()
        if select_template:
            chosen = select_cluster_template(cluster, templates)
            templates = [chosen] if chosen else []

        if not templates:
            logger.info(f"No cluster templates for {cluster.cluster_id}, using default analysis")
            return [await self.generate_default_insight(cluster)]

        insights = []
        for template in templates:
            focuses = [template_focus(template)] if select_template else list(ANALYSIS_FOCUSES)
            for focus in focuses:
                analysis = await self.analyze_with_template(cluster, template, focus)
                if analysis:
                    insights.append(self.build_template_insight(cluster, template, analysis, focus))
        logger.info(
            f"Generated {len(insights)} insights for cluster {cluster.cluster_id} "
            f"from {len(templates)} templates"
        )
        return insights

    @staticmethod
    def build_variables(cluster: Cluster, focus: str) -> Dict[str, str]:
        memories = cluster.memories
        span = cluster.time_span
        themes = ", ".join(cluster.common_themes)
        content = "\n\n---\n\n".join(
            f"Memory {i + 1} ({m.memory_type}, {as_utc(m.created_at).date().isoformat()}, "
            f"tags: {', '.join(m.tags) or 'no tags'}):\n{m.content}"
            for i, m in enumerate(memories)
        )
        projects = sorted({m.project_name for m in memories if m.project_name})
        start = span.start.date().isoformat() if span.start else "unknown"
        end = span.end.date().isoformat() if span.end else "unknown"
        return {
            "memory_count": str(len(memories)),
            "decision_count": str(sum(1 for m in memories if m.memory_type == "decision")),
            "related_count": str(sum(1 for m in memories if m.memory_type != "decision")),
            "time_span": f"{span.days} days ({start} to {end})",
            "common_themes": themes or "none identified",
            "memory_types": ", ".join(sorted({m.memory_type for m in memories})),
            "smart_tags": ", ".join(cluster.common_tags) or "none",
            "topics": themes or "various",
            "project_name": (memories[0].project_name if memories else None) or "Unknown",
            "projects": ", ".join(projects) or "Unknown",
            "severity_levels": extract_severity_levels(memories),
            "cluster_content": content,
            "analysis_type": focus,
            "analysis_focus": ANALYSIS_FOCUSES.get(focus, ""),
        }

    async def analyze_with_template(
        self, cluster: Cluster, template: AnalysisTemplate, focus: str
    ) -> Optional[Dict[str, Any]]:
        if not self.llm_provider:
            return None

        prompt = template.template_content
        for key, value in self.build_variables(cluster, focus).items():
            prompt = prompt.replace("{" + key + "}", value)
        unreplaced = _UNREPLACED.findall(prompt)
        if unreplaced:
            logger.warning(
                f"Template {template.template_name} has unreplaced variables: {unreplaced}"
            )

        try:
            response = await self.llm_provider.generate(
                prompt, temperature=0.1, max_tokens=template.max_tokens or 1500
            )
        except Exception as e:
            logger.error(
                f"Cluster analysis failed for {template.template_name}/{focus}: {e}"
            )
            return None

        analysis = extract_json(response)
        if not isinstance(analysis, dict):
            logger.warning(f"Unparseable cluster analysis from {template.template_name}/{focus}")
            return None
        return analysis

    def build_template_insight(
        self,
        cluster: Cluster,
        template: AnalysisTemplate,
        analysis: Dict[str, Any],
        focus: str,
    ) -> Insight:
        anchor = cluster.memories[0]
        insight = self.create_insight(
            anchor,
            details=ClusterDetails(
                cluster_id=cluster.cluster_id,
                cluster_size=cluster.size,
                analysis_type=focus,
                template_used=template.template_name,
                common_themes=cluster.common_themes,
                time_span_days=cluster.time_span.days,
                analysis=analysis,
            ),
            insight_type=InsightType.CROSS_MEMORY_PATTERN,
            insight_category="cluster_analysis",
            insight_subcategory=focus,
            title=as_text(analysis.get("title")) or self.generate_title(focus, analysis),
            summary=(
                as_text(analysis.get("summary"))
                or self.generate_summary(focus, analysis, cluster)
            ),
            source_type=SourceType.MEMORY_CLUSTER,
            source_ids=cluster.memory_ids,
            confidence_score=analysis.get("confidence", 0.8),
            detection_metadata={
                "cluster_id": cluster.cluster_id,
                "cluster_type": cluster.cluster_type,
                "clustering_method": "type_grouping",
                "template_used": template.template_name,
                "template_id": template.id,
                "template_category": template.template_category,
                "analysis_type": focus,
            },
            recommendations=self.extract_recommendations(analysis),
            action_items=_recommendations(
                analysis.get("action_items") or analysis.get("actionItems"), "action"
            ),
            evidence=_evidence(analysis.get("evidence")),
        )
        for pattern in self.extract_patterns(analysis):
            self.add_pattern(insight, pattern)
        self.add_tags(insight, self.generate_tags(cluster, template, analysis, focus))
        return insight

    @staticmethod
    def generate_title(focus: str, analysis: Dict[str, Any]) -> str:
        first_insight = _first(analysis.get("insights"), "insight")
        first_pattern = _first(analysis.get("key_patterns"), "pattern")
        learnings = as_text(analysis.get("key_learnings"))
        titles = {
            "technical_evolution": f"Technical Evolution: {learnings or 'Multiple Approaches'}",
            "root_cause": f"Root Cause Analysis: {first_insight or 'Multiple Issues'}",
            "decision_impact": f"Decision Impact: {first_insight or 'Multiple Decisions'}",
            "knowledge_synthesis": f"Knowledge Synthesis: {learnings or 'Multiple Topics'}",
            "workflow_optimization": (
                f"Workflow Optimization: {first_insight or 'Process Improvements'}"
            ),
            "security_patterns": f"Security Patterns: {first_insight or 'Security Analysis'}",
            "cross_patterns": f"Cross-Pattern Analysis: {first_pattern or 'Multiple Patterns'}",
        }
        return titles.get(focus, f"{focus}: Cluster Analysis")

    @staticmethod
    def generate_summary(focus: str, analysis: Dict[str, Any], cluster: Cluster) -> str:
        count = cluster.size
        days = cluster.time_span.days
        insights = _count(analysis.get("insights"))
        patterns = _count(analysis.get("key_patterns"))
        summaries = {
            "technical_evolution": (
                f"Analyzed technical evolution across {count} memories over {days} days. "
                f"{patterns} patterns identified."
            ),
            "root_cause": (
                f"Performed root cause analysis on {count} memories, "
                f"identifying {insights} key insights."
            ),
            "decision_impact": f"Analyzed decision impact across {count} memories over {days} days.",
            "knowledge_synthesis": f"Synthesized knowledge from {count} memories spanning {days} days.",
            "workflow_optimization": (
                f"Analyzed workflow patterns across {count} memories to identify optimizations."
            ),
            "security_patterns": (
                f"Analyzed security patterns in {count} memories, "
                f"identifying {insights} security insights."
            ),
            "cross_patterns": (
                f"Identified {patterns} cross-cutting patterns across {count} memories."
            ),
        }
        return summaries.get(
            focus,
            f"Analyzed cluster of {count} memories over {days} days using {focus} analysis.",
        )

    @staticmethod
    def extract_recommendations(analysis: Dict[str, Any]) -> List[Recommendation]:
        recommendations = _recommendations(analysis.get("recommendations"), "action")
        recommendations.extend(
            _recommendations(analysis.get("hindsight_recommendations"), "improvement", "high")
        )
        for measure in as_list(analysis.get("preventive_measures")):
            text = as_text(measure)
            if text:
                recommendations.append(
                    Recommendation(action=f"Implement: {text}", priority="high", type="preventive")
                )
        return recommendations

    @staticmethod
    def extract_patterns(analysis: Dict[str, Any]) -> List[Pattern]:
        confidence = analysis.get("confidence", 0.8)
        patterns = []
        for item in as_list(analysis.get("recurring_patterns")):
            name = as_text(item.get("pattern") if isinstance(item, dict) else item)
            if name:
                patterns.append(Pattern(name=name, category="recurring", confidence=confidence))
        timeline = analysis.get("evolution_timeline")
        if isinstance(timeline, list) and timeline:
            patterns.append(
                Pattern(
                    name="Technical Evolution",
                    category="evolution",
                    confidence=confidence,
                    description=f"{len(timeline)} stages",
                )
            )
        for cause in as_list(analysis.get("common_root_causes")):
            name = as_text(cause)
            if name:
                patterns.append(Pattern(name=name, category="root_cause", confidence=confidence))
        for item in as_list(analysis.get("workflow_bottlenecks")):
            solution = item.get("solution") if isinstance(item, dict) else None
            name = as_text(item.get("bottleneck") if isinstance(item, dict) else item)
            if name:
                patterns.append(
                    Pattern(
                        name=name,
                        category="bottleneck",
                        confidence=confidence,
                        implications=solution,
                    )
                )
        return patterns

    @staticmethod
    def generate_tags(
        cluster: Cluster, template: AnalysisTemplate, analysis: Dict[str, Any], focus: str
    ) -> List[str]:
        tags = [f"cluster:{cluster.cluster_type}", f"template:{template.template_name}"]
        tags.extend(cluster.common_tags)
        tags.extend(as_text(t) for t in as_list(analysis.get("tags")) if as_text(t))
        tags.extend(template.tags)
        if analysis.get("vulnerabilities_found"):
            tags.append("has-vulnerabilities")
        if _count(analysis.get("evolution_timeline")) > 3:
            tags.append("complex-evolution")
        if analysis.get("common_root_causes"):
            tags.append("root-cause-identified")
        tags.append(focus)
        return tags

    async def generate_default_insight(self, cluster: Cluster) -> Insight:
        analysis = await self.analyze_directly(cluster)
        if analysis is None:
            return self.keyword_summary_insight(cluster)

        anchor = cluster.memories[0]
        insight = self.create_insight(
            anchor,
            details=ClusterDetails(
                cluster_id=cluster.cluster_id,
                cluster_size=cluster.size,
                common_themes=cluster.common_themes,
                time_span_days=cluster.time_span.days,
                analysis=analysis,
            ),
            insight_type=InsightType.CLUSTER,
            insight_category=as_text(analysis.get("category")) or "pattern",
            insight_subcategory=cluster.cluster_type,
            title=as_text(analysis.get("title")) or f"Pattern in {cluster.cluster_type} memories",
            summary=as_text(analysis.get("summary"))
            or f"Identified pattern across {cluster.size} {cluster.cluster_type} memories",
            source_type=SourceType.MEMORY_CLUSTER,
            source_ids=cluster.memory_ids,
            confidence_score=analysis.get("confidence", 0.8),
            detection_metadata={"cluster_id": cluster.cluster_id, "llm_analysis": True},
            recommendations=_recommendations(analysis.get("recommendations"), "action"),
            action_items=_recommendations(analysis.get("actionItems"), "action"),
            evidence=_evidence(analysis.get("evidence")),
        )
        self.add_tags(insight, [f"cluster:{cluster.cluster_type}"])
        self.add_tags(insight, [as_text(t) for t in as_list(analysis.get("tags"))])
        self.add_tags(insight, cluster.common_tags)
        return insight

    async def analyze_directly(self, cluster: Cluster) -> Optional[Dict[str, Any]]:
        if not self.llm_provider:
            return None
        summaries = "\n\n".join(
            f"Memory {i + 1} ({as_utc(m.created_at).date().isoformat()}): "
            f"{m.summary or extract_snippet(m.content, 200)}"
            for i, m in enumerate(cluster.memories)
        )
        prompt = DIRECT_PROMPT.format(
            count=cluster.size,
            cluster_type=cluster.cluster_type,
            days=cluster.time_span.days,
            tags=", ".join(cluster.common_tags) or "none",
            summaries=summaries,
        )
        try:
            response = await self.llm_provider.generate(prompt, temperature=0.3, max_tokens=1000)
        except Exception as e:
            logger.error(f"Direct cluster analysis failed for {cluster.cluster_id}: {e}")
            return None
        analysis = extract_json(response)
        return analysis if isinstance(analysis, dict) else None

    def keyword_summary_insight(self, cluster: Cluster) -> Insight:
        themes = cluster.common_themes
        return self.create_insight(
            cluster.memories[0],
            details=ClusterDetails(
                cluster_id=cluster.cluster_id,
                cluster_size=cluster.size,
                analysis_type="keyword_summary",
                common_themes=themes,
                time_span_days=cluster.time_span.days,
            ),
            insight_type=InsightType.CLUSTER,
            insight_category="pattern",
            insight_subcategory=cluster.cluster_type,
            title=f"Pattern in {cluster.cluster_type} memories",
            summary=(
                f"Identified pattern across {cluster.size} {cluster.cluster_type} memories"
            ),
            source_type=SourceType.MEMORY_CLUSTER,
            source_ids=cluster.memory_ids,
            confidence_score=min(0.5 + cluster.size * 0.1, 0.9),
            detection_metadata={"cluster_id": cluster.cluster_id, "llm_analysis": False},
            tags=[f"cluster:{cluster.cluster_type}"] + [f"theme:{t}" for t in themes],
        )


def _first(items: Any, key: str) -> str:
    if isinstance(items, list) and items:
        head = items[0]
        return as_text(head.get(key) if isinstance(head, dict) else head)
    return ""


def _count(items: Any) -> int:
    return len(items) if isinstance(items, list) else 0


def _recommendations(items: Any, kind: str, priority: str = "medium") -> List[Recommendation]:
    recommendations = []
    for item in as_list(items):
        if isinstance(item, dict):
            action = as_text(item.get("action") or item.get("text") or item.get("description"))
            if action:
                recommendations.append(
                    Recommendation(
                        action=action, priority=item.get("priority") or priority, type=kind
                    )
                )
        else:
            action = as_text(item)
            if action:
                recommendations.append(Recommendation(action=action, priority=priority, type=kind))
    return recommendations


def _evidence(items: Any) -> List[Evidence]:
    evidence = []
    for item in as_list(items):
        if isinstance(item, dict):
            evidence.append(
                Evidence(
                    type=item.get("type", "cluster_analysis"),
                    content=as_text(item.get("content") or item.get("description")),
                    source=item.get("source", "llm"),
                    confidence=item.get("confidence", 0.5),
                )
            )
        elif item:
            evidence.append(Evidence(type="cluster_analysis", content=as_text(item), source="llm"))
    return evidence
