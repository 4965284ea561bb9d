"""
Prompt construction and length budgeting for whitepaper generation.

All prompt text lives here so it can be tuned without touching the
generation pipeline.  Length targets assume 500 words per page; token
budgets assume ~1100 output tokens per page, capped at the model's
16 384-token output limit.
"""
from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Sequence

from app.config import settings
from app.services.frameworks import framework_display_name
from app.utils.helpers import round_half_up


WRITING_STYLE_PROMPTS: Dict[str, str] = {
    "easy-read": (
        "Write in a high school reading level style that is comfortable, conversational, "
        "and easy to understand.\nUse simple language and clear explanations. Present "
        "technical concepts, business concepts, and big ideas in laymen's terms.\nAvoid "
        "jargon unless necessary, and when you do use it, explain it immediately. Make "
        "complex topics accessible to everyone."
    ),
    "professional": (
        "Write from a researcher's perspective using expert terminology when appropriate. "
        "Use specialist and expert\nterms when explaining technical or business concepts. "
        "Maintain an academic and professional tone. Include proper technical\nterminology "
        "that demonstrates deep understanding of the subject matter."
    ),
    "executive": (
        "Write in a consolidated, executive summary style. Organize information in "
        "point-by-point narrative form with\nclear takeaways. Each major section should "
        "have payoff conclusions that show the investor or business-minded reader the\n"
        "business value and key insights. Focus on actionable insights and strategic "
        "implications. Be concise and value-driven."
    ),
}

STYLE_ENFORCEMENT: Dict[str, str] = {
    "easy-read": (
        "High school reading level, conversational tone, simple language, explain "
        "technical terms, make concepts accessible to everyone"
    ),
    "professional": (
        "Researcher perspective, expert terminology, academic tone, use specialist terms "
        "appropriately, maintain scholarly rigor"
    ),
    "executive": (
        "Executive summary style, point-by-point format, business value focus, "
        "actionable insights, strategic implications"
    ),
}

DEFAULT_WRITING_STYLE = "professional"


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class WordBudget:
    target_words: int
    min_words: int
    min_words_required: int
    exec_summary_words: int
    main_content_words: int
    words_per_framework: int
    synthesis_words: int
    conclusion_words: int

    @classmethod
    def for_request(cls, num_pages: int, framework_count: int) -> "WordBudget":
        per_page = settings.WORDS_PER_PAGE
        target = num_pages * per_page
        return cls(
            target_words=target,
            min_words=round_half_up(num_pages * per_page * 1.1),
            min_words_required=round_half_up(num_pages * per_page * 0.8),
            exec_summary_words=round_half_up(target * 0.15),
            main_content_words=round_half_up(target * 0.30),
            words_per_framework=(
                round_half_up(target * 0.40 / framework_count) if framework_count else 0
            ),
            synthesis_words=round_half_up(target * 0.15),
            conclusion_words=round_half_up(target * 0.10),
        )


@dataclasses.dataclass(frozen=True)
class TokenBudget:
    estimated_tokens: int
    min_tokens: int
    max_tokens: int
    needs_chunking: bool

    @classmethod
    def for_pages(cls, num_pages: int) -> "TokenBudget":
        ceiling = settings.MAX_TOKENS_PER_REQUEST
        estimated = num_pages * settings.TOKENS_PER_PAGE
        minimum = max(4000, num_pages * 750)
        needs_chunking = estimated > ceiling
        max_tokens = ceiling if needs_chunking else min(max(estimated, minimum), ceiling)
        return cls(
            estimated_tokens=estimated,
            min_tokens=minimum,
            max_tokens=max_tokens,
            needs_chunking=needs_chunking,
        )

    def continuation_tokens(self, current_words: int) -> int:
        """Output allowance for a continuation request."""
        return max(4000, self.max_tokens - round_half_up(current_words * 1.5))


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _framework_label(framework_id: str) -> str:
    return framework_display_name(framework_id) or framework_id


def build_system_prompt(
    num_pages: int,
    writing_style: str,
    frameworks: Sequence[str],
    budget: Optional[WordBudget] = None,
) -> str:
    budget = budget or WordBudget.for_request(num_pages, len(frameworks))
    style_prompt = WRITING_STYLE_PROMPTS.get(writing_style, WRITING_STYLE_PROMPTS[DEFAULT_WRITING_STYLE])
    style_rules = STYLE_ENFORCEMENT.get(writing_style, STYLE_ENFORCEMENT[DEFAULT_WRITING_STYLE])

    known_names = [n for n in (framework_display_name(f) for f in frameworks) if n]
    framework_names = ", ".join(known_names) or "None specified - use general structure"

    framework_instructions = ""
    if frameworks:
        numbered = "\n".join(
            f"{i}. {_framework_label(fid)} - Create a dedicated section using the "
            "framework-specific content provided below."
            for i, fid in enumerate(frameworks, start=1)
        )
        framework_instructions = (
            "\n\nCRITICAL: The following frameworks MUST be included as dedicated sections "
            f"in the whitepaper:\n{numbered}\n\nFor each framework, use the "
            "framework-specific content provided to create a comprehensive analysis section."
        )

    if frameworks:
        framework_section = (
            f"For EACH selected framework, create a dedicated section with minimum "
            f"{budget.words_per_framework} words per framework (40% total, "
            f"{budget.words_per_framework} words each)."
        )
        framework_allocation = (
            f"You have {len(frameworks)} framework(s), so allocate approximately "
            f"{budget.words_per_framework} words to each."
        )
    else:
        framework_section = "N/A"
        framework_allocation = ""

    return f"""\
You are a professional whitepaper writer. Your output will be directly converted to a \
document. You MUST follow ALL formatting rules exactly - there is NO markdown rendering. \
Your text goes directly to a document generator.

CRITICAL UNDERSTANDING:
- Your output is NOT markdown - it's plain text that will be formatted by a document generator
- The generator will detect # headings and convert them to bold text
- ALL other markdown symbols (**, __, *, _) will be STRIPPED and look broken in the document
- Write ONLY plain text with proper punctuation - NO formatting symbols

Generate a comprehensive, high-quality whitepaper with the following MANDATORY specifications:

CRITICAL LENGTH REQUIREMENT (MUST BE FOLLOWED EXACTLY):
- You MUST generate EXACTLY {num_pages} pages of content (approximately {budget.target_words} words, minimum {budget.min_words} words)
- This is NOT a suggestion - it is a HARD REQUIREMENT that MUST be met
- If your response is shorter than {budget.min_words} words, the document will be incomplete and you will have FAILED
- Each page should contain approximately {settings.WORDS_PER_PAGE} words
- You MUST continue writing until you reach the full {num_pages} pages
- DO NOT stop early - keep writing until you reach {budget.min_words} words minimum

MANDATORY WRITING STYLE REQUIREMENTS (MUST BE FOLLOWED EXACTLY):
{style_prompt}

CRITICAL: You MUST strictly follow the writing style specified above. Every sentence, \
paragraph, and section must adhere to this style. Do not deviate from these style guidelines.

Frameworks to Include: {framework_names}{framework_instructions}

MANDATORY STRUCTURE WITH WORD COUNT REQUIREMENTS:
1. Executive Summary / Introduction: Minimum {budget.exec_summary_words} words (15% of total)
   - Provide comprehensive overview of the topic
   - Set context and importance
   - Outline key findings and structure

2. Main Content Sections: Minimum {budget.main_content_words} words total (30% of total)
   - Develop the core topic with multiple subsections
   - Provide detailed analysis and discussion
   - Use knowledge base content extensively

3. Framework Analysis Sections: {framework_section}
   - Use the framework-specific content provided to create detailed analysis
   - Apply framework methodology thoroughly
   - Include examples and case studies
   - {framework_allocation}

4. Synthesis and Integration: Minimum {budget.synthesis_words} words (15% of total)
   - Integrate findings from all sections
   - Show connections between frameworks and main content
   - Provide comprehensive synthesis

5. Conclusions and Recommendations: Minimum {budget.conclusion_words} words (10% of total)
   - Summarize key findings
   - Provide actionable recommendations
   - Discuss implications and future directions

CONTENT QUALITY REQUIREMENTS:
- Write in-depth, analytical content - avoid superficial descriptions
- Use specific examples, data points, and evidence from the knowledge base
- For each framework section, provide detailed analysis using the framework-specific content provided
- Include concrete examples and case studies from the research content
- Write substantive paragraphs (100-200 words each)
- Ensure logical flow between sections with transition sentences
- FILL ALL {num_pages} PAGES - do not stop early

CRITICAL FORMATTING RULES - THESE ARE MANDATORY AND WILL BE ENFORCED:

1. HEADINGS - Use ONLY these patterns (system will convert to bold formatting):
   - Main sections: Start line with "# " followed by title (e.g., "# Executive Summary")
   - Subsections: Start line with "## " followed by title (e.g., "## Market Overview")
   - Sub-subsections: Start line with "### " followed by title
   - Each heading MUST be on its own line with blank lines before and after
   - DO NOT put text on the same line as a heading

2. PARAGRAPHS - Formatting requirements:
   - Each paragraph MUST be separated by a blank line (double newline)
   - Each paragraph should be 3-6 sentences (100-200 words)
   - DO NOT create walls of text - break into multiple paragraphs
   - Start each paragraph on a new line
   - DO NOT use bullet points or lists unless explicitly required

3. TEXT FORMATTING - STRICTLY PROHIBITED:
   - DO NOT use markdown bold (**text**) - just write normal text
   - DO NOT use markdown italics (*text* or _text_) - just write normal text
   - DO NOT use any other markdown symbols (**, __, *, _)
   - Write ONLY plain text with proper capitalization and punctuation

4. STRUCTURE ENFORCEMENT:
   - Headings MUST appear at the start of sections
   - Each major section must have clear heading followed by 3-4 paragraphs minimum
   - Use consistent paragraph length throughout
   - Maintain professional document structure

5. WRITING STYLE ENFORCEMENT - THIS IS MANDATORY:
   - Writing style: "{writing_style}"
   - Style requirements: {style_rules}
   - EVERY SINGLE SENTENCE must follow this style - no exceptions
   - If you deviate from the style, the document will be rejected

6. OUTPUT VALIDATION:
   - Your output will be automatically checked for formatting compliance
   - Any markdown symbols (except # for headings) will be removed
   - Headings will be converted to bold text automatically
   - Body text will be 12pt regular font - NO bold, NO italics
   - Non-compliance will result in document rejection

REMEMBER: You MUST generate at least {budget.min_words} words ({num_pages} pages). This is a \
hard requirement. Continue writing until you reach this target."""


def build_user_message(
    prompt: str,
    num_pages: int,
    writing_style: str,
    context: str = "",
    framework_contexts: Optional[Dict[str, str]] = None,
    budget: Optional[WordBudget] = None,
) -> str:
    budget = budget or WordBudget.for_request(num_pages, len(framework_contexts or {}))
    parts: List[str] = [f"Generate a comprehensive whitepaper on: {prompt}\n\n"]

    if context:
        parts.append(f"GENERAL KNOWLEDGE BASE CONTEXT:\n{context}\n\n")

    if framework_contexts:
        parts.append(
            "FRAMEWORK-SPECIFIC CONTENT (USE THIS CONTENT FOR THE CORRESPONDING "
            "FRAMEWORK SECTIONS):\n\n"
        )
        for framework_id, framework_context in framework_contexts.items():
            parts.append(
                f"--- {_framework_label(framework_id)} Framework Content ---\n"
                f"{framework_context}\n\n"
            )

    parts.append(f"""
CRITICAL OUTPUT REQUIREMENTS - READ CAREFULLY:

1. FORMATTING: Use ONLY # symbols for headings. NO other markdown symbols allowed.
2. STYLE: Apply the "{writing_style}" writing style to EVERY sentence - no exceptions.
3. STRUCTURE: Follow the mandatory structure with proper headings and paragraphs.
4. LENGTH: Generate at least {budget.min_words} words ({num_pages} pages) - do not stop early.
5. QUALITY: Write substantial, detailed content - avoid superficial descriptions.

Your output will be processed by a document generator that:
- Converts # headings to 18pt bold text
- Formats body text as 12pt regular font
- Removes ALL other markdown symbols
- Validates formatting compliance

Ensure your output follows ALL these requirements. Non-compliance will result in a poorly \
formatted document.""")

    return "".join(parts)


def build_continuation_prompt(current_words: int, min_words_required: int, num_pages: int) -> str:
    words_needed = min_words_required - current_words
    return (
        f"CRITICAL: Continue the whitepaper immediately. You currently have approximately "
        f"{current_words} words but MUST reach at least {min_words_required} words "
        f"({num_pages} pages total).\n\n"
        f"You need to add approximately {words_needed} more words. Continue writing from "
        "where you left off. Do NOT summarize what you've written - continue adding "
        "substantial, detailed content following the same structure and writing style. "
        "Keep the same depth and quality. Continue until you reach the full length requirement."
    )
