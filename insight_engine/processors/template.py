import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from insight_engine.domains.details import TemplateDetails
from insight_engine.domains.enums import DetectionMethod, InsightType
from insight_engine.domains.insight import Evidence, Insight, as_list, as_text
from insight_engine.domains.memory import Memory
from insight_engine.domains.template import AnalysisTemplate
from insight_engine.parsing.lenient_json import extract_json
from insight_engine.processors.base import BaseProcessor, as_utc

logger = logging.getLogger(__name__)

MAX_TEMPLATES = 5

# memory type -> template category it maps onto
CATEGORY_MAP = {
    "development": {"code", "bug", "implementation_notes"},
    "architecture": {"decision", "architecture", "design_decisions", "system_patterns"},
    "technology": {"tech_context", "tech_reference"},
    "analysis": {"thinking_sequence", "reasoning"},
    "tracking": {"progress", "task", "active_context"},
    "planning": {"requirements", "prd", "project_brief", "project_prd", "project_plan"},
    "learning": {"lessons_learned", "insight", "learning"},
}

UNIVERSAL_TAGS = {"universal", "all_types"}

_TECH_MENTION = re.compile(
    r"(?:uses?|implements?|built with|technology:|framework:)\s*([A-Za-z0-9\-\.]+)",
    re.IGNORECASE,
)
_RECOMMENDATION = re.compile(
    r"(?:recommend|suggest|should|consider)\s*:?\s*([^.!?]+[.!?])", re.IGNORECASE
)


class TemplateProcessor(BaseProcessor):
    """Runs the memory through the stored analysis templates most relevant to its type."""

    name = "template_processor"
    detection_method = DetectionMethod.LLM_TEMPLATE.value

    def __init__(self, dependencies=None):
        super().__init__(dependencies)
        self.template_repository = self.deps.template_repository

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory) or not self.llm_provider:
            return []

        templates = self.get_templates_for_memory(memory)
        if not templates:
            logger.debug(f"No templates found for memory type: {memory.memory_type}")
            return []

        insights = []
        for template in templates:
            try:
                insight = await self.process_with_template(memory, template)
            except Exception as e:
                logger.error(f"Template processing failed for {template.template_name}: {e}")
                continue
            if insight:
                insights.append(insight)
        return insights

    @staticmethod
    def relevance_rank(template: AnalysisTemplate, memory_type: str) -> Optional[int]:
        """Rank a template for a memory type; lower is better, None means irrelevant."""
        memory_type = memory_type.lower()
        tags = {t.lower() for t in template.tags}
        if memory_type in tags:
            return 0
        if memory_type in template.template_name.lower():
            return 1
        if memory_type in template.description.lower():
            return 2
        if memory_type in CATEGORY_MAP.get(template.template_category, set()):
            return 3
        if template.template_category == "general" or tags & UNIVERSAL_TAGS:
            return 4
        return None

    def get_templates_for_memory(self, memory: Memory) -> List[AnalysisTemplate]:
        if not self.template_repository:
            return []
        try:
            templates = self.template_repository.find_active()
        except Exception as e:
            logger.error(f"Failed to get templates: {e}")
            return []

        ranked: List[Tuple[int, float, AnalysisTemplate]] = []
        for template in templates:
            rank = self.relevance_rank(template, memory.memory_type)
            if rank is not None:
                ranked.append((rank, -as_utc(template.created_at).timestamp(), template))
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [item[2] for item in ranked[:MAX_TEMPLATES]]

    @staticmethod
    def build_prompt(template: AnalysisTemplate, memory: Memory) -> str:
        variables = {
            "content": memory.content,
            "memory_type": memory.memory_type,
            "project_name": memory.project_name or "Unknown",
            "created_at": memory.created_at.isoformat(),
            "metadata": json.dumps(memory.metadata or {}, default=str),
        }
        prompt = template.template_content
        for key, value in variables.items():
            prompt = prompt.replace("{{" + key + "}}", value)
            prompt = prompt.replace("{" + key + "}", value)
        return prompt

    async def process_with_template(
        self, memory: Memory, template: AnalysisTemplate
    ) -> Optional[Insight]:
        prompt = self.build_prompt(template, memory)
        response = await self.llm_provider.generate(
            prompt,
            temperature=template.temperature if template.temperature is not None else 0.7,
            max_tokens=template.max_tokens or 1000,
            model=template.model,
        )
        if not response or not response.strip():
            return None

        parsed = self.parse_template_response(response)
        insight = self.create_insight(
            memory,
            details=TemplateDetails(
                template_name=template.template_name,
                response=parsed.get("details") if isinstance(parsed.get("details"), dict) else {},
            ),
            insight_type=as_text(parsed.get("type")) or InsightType.GENERAL,
            insight_category=template.template_category,
            insight_subcategory=template.template_name,
            title=parsed.get("title") or template.template_name,
            summary=parsed.get("summary") or response.strip(),
            confidence_score=self.calculate_confidence(parsed),
            detection_metadata={
                "template_id": template.id,
                "template_name": template.template_name,
                "model": template.model,
            },
            evidence=[Evidence(type="template_response", content=response, source="llm")],
        )

        for tech in as_list(parsed.get("technologies")):
            if isinstance(tech, dict) and tech.get("name"):
                self.add_technology(
                    insight,
                    str(tech["name"]),
                    category=tech.get("category") or "unknown",
                    confidence=tech.get("confidence", 0.7),
                    source="template",
                )
            elif isinstance(tech, str) and tech:
                self.add_technology(insight, tech, confidence=0.7, source="template")

        for pattern in as_list(parsed.get("patterns")):
            if isinstance(pattern, dict) and pattern.get("name"):
                self.add_pattern(
                    insight,
                    {
                        "name": str(pattern["name"]),
                        "category": pattern.get("category") or template.template_category,
                        "confidence": pattern.get("confidence", 0.5),
                        "description": pattern.get("description"),
                    },
                )
            elif isinstance(pattern, str) and pattern:
                self.add_pattern(
                    insight, {"name": pattern, "category": template.template_category}
                )

        for rec in as_list(parsed.get("recommendations")):
            if isinstance(rec, dict):
                action = rec.get("action") or rec.get("text") or rec.get("description")
                if action:
                    self.add_recommendation(
                        insight, str(action), priority=rec.get("priority", "medium")
                    )
            elif isinstance(rec, str) and rec:
                self.add_recommendation(insight, rec)

        self.add_tags(insight, self.generate_tags(insight, template))
        return insight

    @staticmethod
    def parse_template_response(content: str) -> Dict[str, Any]:
        if content.strip().startswith("{"):
            parsed = extract_json(content)
            if isinstance(parsed, dict):
                return parsed
            logger.warning("Failed to parse template response as JSON")

        return {
            "summary": content.strip(),
            "technologies": [
                {"name": m.group(1), "confidence": 0.7} for m in _TECH_MENTION.finditer(content)
            ],
            "patterns": [],
            "recommendations": [
                {"text": m.group(0).strip(), "priority": "medium"}
                for m in _RECOMMENDATION.finditer(content)
            ],
        }

    @staticmethod
    def calculate_confidence(parsed: Dict[str, Any]) -> float:
        confidence = 0.5
        if parsed.get("title") and parsed.get("summary"):
            confidence += 0.1
        for key in ("technologies", "patterns", "recommendations", "evidence"):
            if parsed.get(key):
                confidence += 0.1
        return min(confidence, 0.9)

    @staticmethod
    def generate_tags(insight: Insight, template: AnalysisTemplate) -> List[str]:
        tags = [f"template:{template.template_category}"]
        tags.extend(f"tech:{t.name}" for t in insight.technologies)
        tags.extend(f"pattern:{p.name}" for p in insight.patterns)
        return tags
