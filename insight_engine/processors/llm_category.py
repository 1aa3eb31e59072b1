"""
LLM category processor.

Classifies a memory against the stored analysis prompts, runs pattern
detection with the best fitting ones and synthesizes one insight per
pattern category.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import PatternDetails
from insight_engine.domains.enums import PATTERN_CATEGORIES, DetectionMethod, InsightType
from insight_engine.domains.insight import (
    Insight,
    Technology,
    as_list,
    as_text,
    clamp_confidence,
)
from insight_engine.domains.memory import Memory
from insight_engine.parsing.lenient_json import extract_json, extract_json_array, parse_patterns
from insight_engine.processors.base import BaseProcessor, pattern_signature

logger = logging.getLogger(__name__)

SKIP_TYPES = ("system", "processing_marker")
MIN_CONTENT_LENGTH = 50
MAX_SELECTED_TEMPLATES = 2
GENERAL_TEMPLATE = "general_insights"
DEFAULT_TEMPLATE = "detect_patterns"
TECHNOLOGY_TEMPLATE = "extract_technologies"

CATEGORY_TYPES = {
    "architectural": InsightType.PATTERN,
    "design": InsightType.PATTERN,
    "api": InsightType.PATTERN,
    "security": InsightType.SECURITY_ISSUE,
    "performance": InsightType.PERFORMANCE_ISSUE,
    "antipatterns": InsightType.ANTI_PATTERN,
    "quality": InsightType.CODE_SMELL,
    "bug": InsightType.BUG,
}

CATEGORY_TITLES = {
    "architectural": "Architectural",
    "design": "Design",
    "api": "API & Integration",
    "security": "Security",
    "performance": "Performance",
    "antipatterns": "Anti-Pattern",
    "quality": "Code Quality",
}

CATEGORY_RECOMMENDATIONS = {
    "antipatterns": {
        "action": "Refactor anti-patterns",
        "priority": "high",
        "reasoning": "Anti-patterns can lead to maintenance issues",
        "impact": "high",
    },
    "security": {
        "action": "Review security patterns implementation",
        "priority": "high",
        "reasoning": "Security patterns need careful implementation",
        "impact": "critical",
    },
    "performance": {
        "action": "Benchmark performance patterns",
        "priority": "medium",
        "reasoning": "Verify performance improvements",
        "impact": "medium",
    },
}

DETECT_PATTERNS_PROMPT = """INSTRUCTION: You are a JSON extraction system. Return ONLY valid JSON. No other text allowed.

TASK: Analyze the memory content below to identify software development patterns.

Memory Type: {memoryType}
Technologies: {technologies}

CONTENT TO ANALYZE:
{memoryContent}

AVAILABLE PATTERN CATEGORIES:
{patternCategories}

PATTERN IDENTIFICATION CRITERIA:
1. Must be a concrete, identifiable pattern (not vague observations)
2. Must have specific evidence from the content
3. Must fit into one of the categories above
4. Must have clear implications for development

REQUIRED JSON STRUCTURE:
{
  "patterns": [
    {
      "name": "<specific pattern name>",
      "category": "<category from list above>",
      "description": "<what this pattern does/represents>",
      "confidence": <0.0-1.0>,
      "evidence": ["<specific quote or reference from content>"],
      "implications": "<impact of this pattern on the project>"
    }
  ]
}

If no patterns are found return {"patterns": []}."""

GENERAL_INSIGHTS_PROMPT = """INSTRUCTION: Return ONLY valid JSON.

Project: {project_name}
Memory type: {memory_type}
Tags: {smart_tags}

Content:
{content}

Summarize the most important development insight in this content as:
{"confidence": <0.0-1.0>, "key_findings": ["<finding>", ...], "insight": "<one paragraph>", "tags": ["<tag>", ...]}"""

EXTRACT_TECHNOLOGIES_PROMPT = """INSTRUCTION: Return ONLY valid JSON.

List the technologies (languages, frameworks, databases, tools, services) mentioned in the content below.

Content:
{content}

Response format:
{"technologies": [{"name": "<name>", "category": "<language|framework|database|tool|cloud|library>", "version": "<version or null>", "confidence": <0.0-1.0>}]}"""

CLASSIFICATION_PROMPT = """INSTRUCTION: You are a JSON extraction system. Return ONLY valid JSON. No other text allowed.

TASK: Select UP TO 2 most relevant analysis templates for the content below.

Available Templates:
{template_list}

Content to analyze:
{content}

RETURN ONLY A JSON ARRAY with 1-2 template names, most relevant first.
Example response: ["technical_gotchas_pitfalls", "debugging_discoveries"]
DO NOT include any explanation or text outside the JSON array."""

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass
class PromptEntry:
    content: str
    description: str = ""
    config: Dict[str, Any] = field(default_factory=dict)


class PromptCatalog:
    """Read-mostly lookup of analysis prompts keyed by template name."""

    def __init__(self, entries: Optional[Dict[str, PromptEntry]] = None):
        self._entries: Dict[str, PromptEntry] = dict(entries or {})

    @classmethod
    def builtin(cls) -> "PromptCatalog":
        return cls(
            {
                DEFAULT_TEMPLATE: PromptEntry(
                    DETECT_PATTERNS_PROMPT,
                    "Identify concrete software development patterns",
                    {"temperature": 0.1, "max_tokens": 2000},
                ),
                GENERAL_TEMPLATE: PromptEntry(
                    GENERAL_INSIGHTS_PROMPT,
                    "General development insight",
                    {"temperature": 0.1, "max_tokens": 1000},
                ),
                TECHNOLOGY_TEMPLATE: PromptEntry(
                    EXTRACT_TECHNOLOGIES_PROMPT,
                    "Extract technologies mentioned in content",
                    {"temperature": 0.1, "max_tokens": 800},
                ),
            }
        )

    def get(self, name: str) -> Optional[PromptEntry]:
        return self._entries.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> List[str]:
        return list(self._entries)

    def descriptions(self) -> Dict[str, str]:
        return {name: e.description for name, e in self._entries.items() if e.description}


def fill_template(template: str, context: Dict[str, str]) -> str:
    """Replace ``{name}`` placeholders; unknown names are left untouched."""
    return _PLACEHOLDER.sub(lambda m: context.get(m.group(1)) or m.group(0), template)


def format_pattern_categories() -> str:
    return "\n".join(
        f"**{name}**: {', '.join(subcategories)}"
        for name, subcategories in PATTERN_CATEGORIES.items()
    )


class LLMCategoryProcessor(BaseProcessor):
    """Category-driven pattern detection backed by the text-generation provider."""

    name = "llm_category"
    detection_method = DetectionMethod.LLM_CATEGORY.value

    def __init__(self, dependencies=None):
        super().__init__(dependencies)
        self.template_repository = self.deps.template_repository
        self.settings = self.config.llm_category
        self.prompts = PromptCatalog.builtin()

    async def initialize(self) -> None:
        await self.reload_templates()
        self.initialized = True

    async def reload_templates(self) -> int:
        """Rebuild the prompt catalog from the active stored templates."""
        if not self.template_repository:
            self.prompts = PromptCatalog.builtin()
            return len(self.prompts)

        try:
            templates = self.template_repository.find_active(exclude_category="cluster_analysis")
        except Exception as e:
            logger.error(f"Failed to load prompts: {e}")
            self.prompts = PromptCatalog.builtin()
            return len(self.prompts)

        if not templates:
            logger.warning("No prompts found in store, using built-in prompts")
            self.prompts = PromptCatalog.builtin()
            return len(self.prompts)

        entries = {
            t.template_name: PromptEntry(t.template_content, t.description, t.processing_config)
            for t in templates
        }
        self.prompts = PromptCatalog(entries)
        logger.info(f"Loaded {len(self.prompts)} prompts from insight templates")
        return len(self.prompts)

    def should_process(self, memory: Memory) -> bool:
        if memory.memory_type in SKIP_TYPES:
            return False
        return memory.has_content() and len(memory.content) > MIN_CONTENT_LENGTH

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory) or not self.llm_provider:
            return []

        technologies = await self.extract_technologies(memory)
        patterns = await self.detect_patterns(memory, technologies)
        insights = self.generate_insights(memory, patterns, technologies)

        minimum = self.settings.min_pattern_confidence
        kept = [i for i in insights if i.confidence_score >= minimum and i.patterns]
        logger.info(
            f"llm_category produced {len(kept)} of {len(insights)} insights for memory {memory.id}"
        )
        return kept

    async def extract_technologies(self, memory: Memory) -> List[Technology]:
        tags = [t for t in memory.tags if t]
        if tags:
            return [Technology(name=t, category="tag", confidence=0.9, source="tags") for t in tags]

        entry = self.prompts.get(TECHNOLOGY_TEMPLATE)
        if not entry:
            return []

        try:
            response = await self.llm_provider.generate(
                fill_template(entry.content, {"content": memory.content}),
                temperature=entry.config.get("temperature", 0.1),
                max_tokens=entry.config.get("max_tokens", 800),
            )
        except Exception as e:
            logger.error(f"Technology extraction failed: {e}")
            return []

        parsed = extract_json(response)
        raw = parsed.get("technologies") if isinstance(parsed, dict) else None
        technologies = []
        for item in as_list(raw):
            if isinstance(item, dict):
                if not as_text(item.get("name")):
                    continue
                technologies.append(
                    Technology(
                        name=item["name"],
                        category=item.get("category"),
                        version=item.get("version"),
                        confidence=item.get("confidence", 0.5),
                        source="llm",
                    )
                )
            elif as_text(item):
                technologies.append(Technology(name=item, source="llm"))
        return technologies

    async def classify_templates(self, memory: Memory) -> List[str]:
        candidates = {
            name: desc
            for name, desc in self.prompts.descriptions().items()
            if name not in (GENERAL_TEMPLATE, TECHNOLOGY_TEMPLATE)
        }
        if not candidates:
            return []

        template_list = "\n".join(f"- {name}: {desc}" for name, desc in candidates.items())
        prompt = CLASSIFICATION_PROMPT.format(template_list=template_list, content=memory.content)
        try:
            response = await self.llm_provider.generate(prompt, temperature=0.1, max_tokens=100)
        except Exception as e:
            logger.error(f"Template classification failed: {e}")
            return []

        selected = extract_json_array(response) or []
        valid = [
            name for name in selected[:MAX_SELECTED_TEMPLATES]
            if isinstance(name, str) and name in candidates
        ]
        if valid:
            logger.info(f"Selected templates: {', '.join(valid)}")
        return valid

    def build_context(self, memory: Memory, technologies: List[Technology]) -> Dict[str, str]:
        project_name = memory.project_name or "General Development"
        tech_text = (
            ", ".join(f"{t.name} {t.version}" if t.version else t.name for t in technologies)
            or "No specific technologies identified"
        )
        categories = format_pattern_categories()
        return {
            "content": memory.content,
            "memory_type": memory.memory_type,
            "project_name": project_name,
            "metadata": json.dumps(memory.metadata or {}, default=str),
            "smart_tags": json.dumps(memory.tags),
            "technologies": tech_text,
            "pattern_categories": categories,
            "memoryContent": memory.content,
            "memoryType": memory.memory_type,
            "projectName": project_name,
            "patternCategories": categories,
        }

    async def detect_patterns(
        self, memory: Memory, technologies: List[Technology]
    ) -> List[Dict[str, Any]]:
        selected = await self.classify_templates(memory)
        if not selected:
            selected = [GENERAL_TEMPLATE if GENERAL_TEMPLATE in self.prompts else DEFAULT_TEMPLATE]
            logger.info(f"No templates selected by classifier, using {selected[0]}")

        context = self.build_context(memory, technologies)
        collected: List[Dict[str, Any]] = []
        for name in selected:
            entry = self.prompts.get(name)
            if not entry:
                logger.warning(f"Template {name} not found in prompt catalog")
                continue
            try:
                response = await self.llm_provider.generate(
                    fill_template(entry.content, context),
                    temperature=entry.config.get("temperature", self.settings.temperature),
                    max_tokens=entry.config.get("max_tokens", self.settings.max_tokens),
                )
            except Exception as e:
                logger.error(f"Pattern detection failed for template {name}: {e}")
                continue

            patterns = parse_patterns(response)
            logger.debug(f"Template {name} produced {len(patterns)} patterns")
            for pattern in patterns:
                pattern["source_template"] = name
            collected.extend(patterns)

        return self.merge_patterns(collected)

    @staticmethod
    def merge_patterns(patterns: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Merge by category+name signature, keeping max confidence and all evidence."""
        merged: Dict[str, Dict[str, Any]] = {}
        for pattern in patterns:
            key = pattern_signature(pattern.get("category", "general"), pattern["name"])
            existing = merged.get(key)
            if existing is None:
                merged[key] = dict(
                    pattern, signature=key, evidence=list(pattern.get("evidence") or [])
                )
                continue
            for item in pattern.get("evidence") or []:
                if item not in existing["evidence"]:
                    existing["evidence"].append(item)
            incoming = clamp_confidence(pattern.get("confidence"), 0.0)
            if incoming > clamp_confidence(existing.get("confidence"), 0.0):
                existing["confidence"] = incoming
        return list(merged.values())

    def generate_insights(
        self,
        memory: Memory,
        patterns: List[Dict[str, Any]],
        technologies: List[Technology],
    ) -> List[Insight]:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for pattern in patterns:
            grouped.setdefault(pattern.get("category") or "general", []).append(pattern)

        insights = []
        for category, members in grouped.items():
            insight = self.create_category_insight(memory, category, members)
            for tech in technologies:
                self.add_technology(
                    insight, tech.name, tech.category, tech.confidence, tech.version, tech.source
                )
            for pattern in members:
                self.add_pattern(
                    insight,
                    {
                        "name": pattern["name"],
                        "category": category,
                        "signature": pattern.get("signature", ""),
                        "confidence": pattern.get("confidence"),
                        "evidence": pattern.get("evidence") or [],
                        "description": pattern.get("description"),
                        "implications": pattern.get("implications"),
                    },
                )
            self.add_evidence(
                insight,
                f"Detected {len(members)} {category} patterns",
                type="pattern_detection",
                source="llm",
                confidence=insight.confidence_score,
            )
            recommendation = CATEGORY_RECOMMENDATIONS.get(category)
            if recommendation:
                self.add_recommendation(insight, type="pattern", **recommendation)
            insights.append(insight)
        return insights

    def create_category_insight(
        self, memory: Memory, category: str, patterns: List[Dict[str, Any]]
    ) -> Insight:
        confidences = [
            p.get("confidence") if p.get("confidence") is not None else 0.3 for p in patterns
        ]
        average = sum(clamp_confidence(c, 0.3) for c in confidences) / len(confidences)
        names = ", ".join(p["name"] for p in patterns)
        return self.create_insight(
            memory,
            details=PatternDetails(
                category=category,
                patterns=patterns,
                templates_used=sorted({p.get("source_template") for p in patterns} - {None}),
            ),
            insight_type=CATEGORY_TYPES.get(category, InsightType.PATTERN),
            insight_category=category,
            title=f"{CATEGORY_TITLES.get(category, category)} Patterns Detected",
            summary=f"Found {len(patterns)} {category} patterns: {names}",
            confidence_score=max(average, 0.2),
            tags=[f"category:{category}"],
        )
