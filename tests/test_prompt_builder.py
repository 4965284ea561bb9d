"""Tests for length budgets, prompt assembly and small helpers."""
import pytest

from app.services.prompt_builder import (
    TokenBudget,
    WordBudget,
    build_continuation_prompt,
    build_system_prompt,
    build_user_message,
)
from app.utils.helpers import (
    kebab_case,
    parse_json_array,
    preview,
    round_half_up,
    timestamped_filename,
    title_from_id,
    word_count,
)


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

def test_word_budget_ten_pages_two_frameworks():
    budget = WordBudget.for_request(10, 2)
    assert budget.target_words == 5000
    assert budget.min_words == 5500
    assert budget.min_words_required == 4000
    assert budget.exec_summary_words == 750
    assert budget.main_content_words == 1500
    assert budget.words_per_framework == 1000
    assert budget.synthesis_words == 750
    assert budget.conclusion_words == 500


def test_word_budget_rounds_half_up_and_handles_no_frameworks():
    assert WordBudget.for_request(10, 3).words_per_framework == 667
    assert WordBudget.for_request(1, 0).words_per_framework == 0
    assert WordBudget.for_request(1, 0).min_words_required == 400


def test_token_budget_small_document_uses_floor():
    budget = TokenBudget.for_pages(2)
    assert budget.estimated_tokens == 2200
    assert budget.max_tokens == 4000
    assert not budget.needs_chunking


def test_token_budget_ten_pages():
    budget = TokenBudget.for_pages(10)
    assert budget.estimated_tokens == 11000
    assert budget.min_tokens == 7500
    assert budget.max_tokens == 11000
    assert not budget.needs_chunking


def test_token_budget_large_document_is_capped():
    budget = TokenBudget.for_pages(20)
    assert budget.needs_chunking
    assert budget.max_tokens == 16384


def test_continuation_tokens_never_below_floor():
    budget = TokenBudget.for_pages(10)
    assert budget.continuation_tokens(3000) == 6500
    assert budget.continuation_tokens(8000) == 4000


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def test_system_prompt_lists_frameworks_and_length():
    prompt = build_system_prompt(4, "executive", ["swot", "value-chain"])
    assert "EXACTLY 4 pages" in prompt
    assert "minimum 2200 words" in prompt
    assert "Frameworks to Include: Swot, Value Chain" in prompt
    assert "1. Swot - Create a dedicated section" in prompt
    assert "Executive summary style" in prompt


def test_system_prompt_unknown_style_falls_back_to_professional():
    prompt = build_system_prompt(2, "poetic", [])
    assert "Researcher perspective" in prompt
    assert "None specified - use general structure" in prompt


def test_user_message_includes_context_sections():
    message = build_user_message(
        "Edge computing",
        3,
        "professional",
        context="[Report]: edge is growing",
        framework_contexts={"swot": "Strength: latency"},
    )
    assert message.startswith("Generate a comprehensive whitepaper on: Edge computing")
    assert "GENERAL KNOWLEDGE BASE CONTEXT:\n[Report]: edge is growing" in message
    assert "--- Swot Framework Content ---\nStrength: latency" in message
    assert 'Apply the "professional" writing style' in message


def test_user_message_without_context():
    message = build_user_message("Edge computing", 3, "professional")
    assert "GENERAL KNOWLEDGE BASE CONTEXT" not in message
    assert "FRAMEWORK-SPECIFIC CONTENT" not in message


def test_continuation_prompt_states_shortfall():
    prompt = build_continuation_prompt(1200, 4000, 10)
    assert "approximately 1200 words" in prompt
    assert "at least 4000 words (10 pages total)" in prompt
    assert "add approximately 2800 more words" in prompt


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [(2.5, 3), (0.5, 1), (1.49, 1), (666.67, 667)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_word_count():
    assert word_count("one  two\nthree") == 3
    assert word_count("   ") == 0
    assert word_count(None) == 0


def test_kebab_case_and_title_from_id():
    assert kebab_case("Porter's Five Forces") == "porter-s-five-forces"
    assert title_from_id("value-chain") == "Value Chain"


def test_preview_truncates():
    assert preview("a\nb   c") == "a b c"
    assert preview("x" * 100, limit=10) == "x" * 10 + "..."


def test_timestamped_filename():
    name = timestamped_filename("whitepaper", "pdf")
    stem, rest = name.split("-", 1)
    millis, ext = rest.split(".")
    assert stem == "whitepaper"
    assert ext == "pdf"
    assert millis.isdigit() and len(millis) >= 13


def test_parse_json_array_handles_fences_prose_and_trailing_commas():
    response = 'Here you go:\n```json\n[{"name": "SWOT"}, {"name": "OKR"},]\n```\nDone.'
    assert parse_json_array(response) == [{"name": "SWOT"}, {"name": "OKR"}]


def test_parse_json_array_garbage():
    assert parse_json_array("no json here") == []
    assert parse_json_array("") == []
