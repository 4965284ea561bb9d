"""
Analysis-framework catalog and knowledge-base framework discovery.

The catalog drives two things during whitepaper generation: the retrieval
query used to pull framework-specific context from Pinecone, and the section
names the LLM is told to write.

Discovery scans the knowledge base for frameworks worth adding to the
catalog, either by regex matching (``keywords`` mode) or by asking the LLM
(``ai`` mode).
"""
from __future__ import annotations

import dataclasses
import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional, Pattern, Tuple

from app.errors import ServiceError
from app.services.llm_client import OpenAIService
from app.services.vector_search import PineconeService, VectorMatch
from app.utils.helpers import kebab_case, parse_json_array, title_from_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Framework:
    id: str
    name: str
    description: str
    query: str


FRAMEWORKS: Tuple[Framework, ...] = (
    # Standard business frameworks
    Framework(
        "swot", "SWOT Analysis",
        "Strengths, Weaknesses, Opportunities, Threats",
        "SWOT analysis strengths weaknesses opportunities threats",
    ),
    Framework(
        "pestel", "PESTEL Analysis",
        "Political, Economic, Social, Technological, Environmental, Legal",
        "PESTEL analysis political economic social technological environmental legal factors",
    ),
    Framework(
        "porter", "Porter's Five Forces",
        "Industry competition analysis framework",
        "Porter five forces industry competition analysis competitive rivalry supplier power "
        "buyer power threat substitution",
    ),
    Framework(
        "value-chain", "Value Chain Analysis",
        "Primary and support activities analysis",
        "value chain analysis primary activities support activities competitive advantage",
    ),
    Framework(
        "business-model-canvas", "Business Model Canvas",
        "Nine building blocks of business model",
        "business model canvas value proposition customer segments channels revenue streams "
        "key resources",
    ),
    Framework(
        "competitive-analysis", "Competitive Analysis Matrix",
        "Competitive landscape and positioning",
        "competitive analysis matrix market positioning competitive landscape",
    ),
    Framework(
        "stakeholder-map", "Stakeholder Mapping",
        "Key stakeholders and their interests",
        "stakeholder mapping key stakeholders interests influence",
    ),
    Framework(
        "risk-assessment", "Risk Assessment Matrix",
        "Risk identification and mitigation strategies",
        "risk assessment matrix risk identification mitigation strategies",
    ),
    Framework(
        "market-segmentation", "Market Segmentation",
        "Target market analysis and segmentation",
        "market segmentation target market analysis customer segments",
    ),
    Framework(
        "technology-roadmap", "Technology Roadmap",
        "Technology adoption and evolution timeline",
        "technology roadmap technology adoption evolution timeline innovation",
    ),
    # Geolocation-game research frameworks
    Framework(
        "geogame-design-review-matrix", "GeoGame Design Review Matrix",
        "A structured evaluation matrix used as an early-warning system to review a "
        "geolocation game design and surface likely failure risks before building.",
        "GeoGame design review matrix evaluation early-warning system failure risks "
        "geolocation game design",
    ),
    Framework(
        "failure-taxonomy", "Game Failure Taxonomy (Geolocation)",
        "A taxonomy for categorizing recurring failure modes in geolocation games "
        "(platform trend dependency, overly abstract design, unclear value proposition).",
        "game failure taxonomy geolocation failure modes platform trend dependency abstract "
        "design value proposition risk mitigation",
    ),
    Framework(
        "standard-case-study-template", "Standard Case Study Template",
        "A repeatable template for documenting failed or discontinued games in an "
        "analysis-ready format.",
        "case study template failed discontinued games analysis documentation insights comparison",
    ),
    Framework(
        "comparative-analysis-failures-vs-successes",
        "Comparative Analysis (Failures vs. Pokémon GO vs. Geocaching)",
        "Contrasts a failure set against successful exemplars to isolate non-obvious "
        "success factors.",
        "comparative analysis failures Pokémon GO Geocaching success factors exemplars "
        "non-obvious factors",
    ),
    Framework(
        "success-framework-stress-test", "Success Framework Stress Test",
        "Evaluates a concept against a defined success framework to find weak points early.",
        "success framework stress test evaluate concept strategic soundness weak points",
    ),
    Framework(
        "do-not-build-checklist", "Do Not Build Checklist",
        "Flags common anti-patterns and high-risk assumptions before anything is built.",
        "do not build checklist anti-patterns high-risk assumptions cultural mismatch "
        "competition continuity",
    ),
    Framework(
        "total-addressable-market-tam", "Total Addressable Market (TAM) Estimate",
        "A conservative market-sizing estimate for a geolocation game concept.",
        "total addressable market TAM estimate market sizing geolocation game concept "
        "opportunity assessment",
    ),
    Framework(
        "platform-dependency-risk-assessment", "Platform Trend Dependency Risk Assessment",
        "How reliance on external platforms or shifting platform strategies creates "
        "systemic risk.",
        "platform trend dependency risk assessment external platforms platform strategies "
        "Facebook systemic risk",
    ),
    Framework(
        "core-loop-analysis", "Core Loop Analysis (Underexplored Core Loops)",
        "Defines player core loops at the mechanics level and checks them against "
        "historical failure modes.",
        "core loop analysis player mechanics underexplored core loops historical failure "
        "modes market unexhausted",
    ),
)

FRAMEWORKS_BY_ID: Dict[str, Framework] = {f.id: f for f in FRAMEWORKS}


def get_framework(framework_id: str) -> Optional[Framework]:
    return FRAMEWORKS_BY_ID.get(framework_id)


def framework_display_name(framework_id: str) -> Optional[str]:
    """Title-cased id for known frameworks ("value-chain" → "Value Chain")."""
    if framework_id not in FRAMEWORKS_BY_ID:
        return None
    return title_from_id(framework_id)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class DiscoveredFramework:
    id: str
    name: str
    description: str
    mentions: int = 1


DISCOVERY_KEYWORDS: Tuple[str, ...] = (
    "framework",
    "matrix",
    "analysis",
    "model",
    "strategy",
    "methodology",
    "assessment",
    "evaluation",
    "competitive",
    "market",
    "business",
    "strategic planning",
    "decision making",
)

AI_DISCOVERY_TERMS: Tuple[str, ...] = (
    "framework analysis methodology",
    "business strategy matrix",
    "competitive analysis model",
    "market research framework",
    "strategic planning tool",
)

_FRAMEWORK_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(swot|strengths weaknesses opportunities threats)\b",
        r"\b(pestel|political economic social technological environmental legal)\b",
        r"\b(porter.*?five forces?)\b",
        r"\b(value chain)\b",
        r"\b(business model canvas)\b",
        r"\b(competitive analysis|competitive matrix)\b",
        r"\b(stakeholder.*?map|stakeholder.*?analysis)\b",
        r"\b(risk.*?assessment|risk.*?matrix)\b",
        r"\b(market.*?segmentation)\b",
        r"\b(technology.*?roadmap|tech.*?roadmap)\b",
        r"\b(eisenhower.*?matrix)\b",
        r"\b(bcg.*?matrix|boston.*?matrix)\b",
        r"\b(ansoff.*?matrix|growth.*?matrix)\b",
        r"\b(product.*?lifecycle|plc)\b",
        r"\b(innovation.*?matrix)\b",
        r"\b(gartner.*?magic.*?quadrant)\b",
        r"\b(kano.*?model)\b",
        r"\b(blue.*?ocean.*?strategy)\b",
        r"\b(balanced.*?scorecard)\b",
        r"\b(okr.*?framework|objectives.*?key.*?results)\b",
        r"\b(agile.*?framework)\b",
        r"\b(scrum.*?framework)\b",
        r"\b(lean.*?methodology|lean.*?startup)\b",
        r"\b(design.*?thinking)\b",
        r"\b(double.*?diamond)\b",
        r"\b(jobs.*?to.*?be.*?done|jtbd)\b",
        r"\b(customer.*?journey.*?map)\b",
        r"\b(persona.*?framework|customer.*?persona)\b",
    )
)

_ACRONYMS = ("SWOT", "PESTEL", "OKR", "JTBD", "BCG", "PLC")

_AI_DISCOVERY_PROMPT = """\
Based on the following content from a knowledge base about geolocation games research, \
identify any business frameworks, analysis matrices, strategic models, or decision-making \
tools mentioned or applicable to this domain.

Return a JSON array of objects with this structure:
[
  {{
    "id": "unique-id-in-kebab-case",
    "name": "Framework Name",
    "description": "Brief description of what this framework analyzes or helps with"
  }}
]

Only include frameworks, matrices, or analytical tools that are actually mentioned or \
clearly relevant to the content. Focus on:
- Business analysis frameworks
- Strategic planning tools
- Market analysis matrices
- Competitive analysis methods
- Decision-making frameworks
- Assessment or evaluation tools

Content to analyze:
{context}

Return only valid JSON, no markdown formatting.\
"""


def _format_framework_name(match_text: str) -> str:
    name = " ".join(w[:1].upper() + w[1:].lower() for w in match_text.split())
    for acronym in _ACRONYMS:
        name = re.sub(acronym, acronym, name, flags=re.IGNORECASE)
    return name


def _describe_from_context(text: str, match_text: str) -> str:
    position = text.find(match_text)
    start = max(0, position - 100)
    end = min(len(text), position + len(match_text) + 200)
    snippet = re.sub(r"[^\w\s]", " ", text[start:end])
    snippet = re.sub(r"\s+", " ", snippet).strip()[:150]
    return snippet + "..."


def match_frameworks(matches: List[VectorMatch]) -> "OrderedDict[str, DiscoveredFramework]":
    """
    Scan match titles and texts for known framework names.

    Returns discoveries keyed by lower-cased name, mention counts accumulated.
    """
    found: "OrderedDict[str, DiscoveredFramework]" = OrderedDict()
    for match in matches:
        text = (match.text or "").lower()
        title = (match.title or "").lower()
        combined = f"{title} {text}"

        for pattern in _FRAMEWORK_PATTERNS:
            if not pattern.search(combined):
                continue
            hit = pattern.search(text) or pattern.search(title)
            if not hit:
                continue
            match_text = hit.group(0)
            name = _format_framework_name(match_text)
            key = name.lower()

            if key in found:
                found[key].mentions += 1
            else:
                found[key] = DiscoveredFramework(
                    id=kebab_case(name),
                    name=name,
                    description=_describe_from_context(text, match_text)
                    or "Framework or matrix analysis tool",
                )
    return found


class FrameworkDiscoveryService:
    """Find candidate frameworks in the knowledge base."""

    KEYWORD_TOP_K = 10
    AI_TOP_K = 20
    AI_MAX_MATCHES = 50
    AI_SNIPPET_CHARS = 500
    AI_CONTEXT_CHARS = 15000
    MAX_RESULTS = 30

    def __init__(
        self,
        llm: Optional[OpenAIService] = None,
        vector_store: Optional[PineconeService] = None,
    ) -> None:
        self.llm = llm or OpenAIService()
        self.vector_store = vector_store or PineconeService()

    async def discover(self, mode: str = "keywords") -> List[DiscoveredFramework]:
        if not self.vector_store.is_configured:
            raise ServiceError(
                "Knowledge base is not configured",
                hint="Set PINECONE_API_KEY and PINECONE_INDEX_HOST",
                status_code=400,
            )
        if mode == "ai":
            return await self.discover_with_llm()
        return await self.discover_by_keywords()

    async def discover_by_keywords(self) -> List[DiscoveredFramework]:
        matches = await self._search_terms(DISCOVERY_KEYWORDS, self.KEYWORD_TOP_K)
        found = match_frameworks(matches)
        ranked = sorted(found.values(), key=lambda f: f.mentions, reverse=True)
        logger.info("Keyword discovery found %d frameworks", len(ranked))
        return ranked[: self.MAX_RESULTS]

    async def discover_with_llm(self) -> List[DiscoveredFramework]:
        matches = await self._search_terms(AI_DISCOVERY_TERMS, self.AI_TOP_K)
        unique = list(OrderedDict((m.id, m) for m in matches).values())[: self.AI_MAX_MATCHES]
        if not unique:
            logger.warning("AI discovery: no content found in the knowledge base")
            return []

        context = "\n\n".join(
            f"[{m.title or 'Document'}]: {(m.text or '')[: self.AI_SNIPPET_CHARS]}"
            for m in unique
        )
        logger.info("AI discovery: analysing %d documents", len(unique))

        response = await self.llm.chat_completion(
            [{
                "role": "user",
                "content": _AI_DISCOVERY_PROMPT.format(context=context[: self.AI_CONTEXT_CHARS]),
            }],
            temperature=0.3,
        )

        discovered: List[DiscoveredFramework] = []
        for item in parse_json_array(response):
            if not isinstance(item, dict) or not item.get("name"):
                continue
            name = str(item["name"])
            discovered.append(
                DiscoveredFramework(
                    id=str(item.get("id") or kebab_case(name)),
                    name=name,
                    description=str(item.get("description") or ""),
                )
            )
        logger.info("AI discovery identified %d frameworks", len(discovered))
        return discovered

    async def _search_terms(self, terms: Tuple[str, ...], top_k: int) -> List[VectorMatch]:
        matches: List[VectorMatch] = []
        for term in terms:
            try:
                embedding = await self.llm.get_embedding(term)
                matches.extend(await self.vector_store.query(embedding, top_k))
            except ServiceError as exc:
                logger.warning("Framework search for %r failed: %s", term, exc)
        return matches
