"""
Pytest Configuration and Shared Fixtures

Brand configs, stub AskModel / ParseWithLLM callables and builders for
executions and results.
"""

import json
from typing import Dict, List, Optional

import pytest

from competitive.action_plan import generate_competitive_action_plan
from competitive.brand_profile import create_brand_config
from competitive.competitive_models import (
    AnalysisSnapshot, BrandMention, Competitor, GeneratedQuery, MentionPosition, MentionSentiment,
    QueryCategory, QueryExecution,
)
from competitive.gap_analyzer import analyze_query_gaps
from competitive.win_loss import calculate_win_loss, determine_winner, generate_competitive_report


# ============================================================================
# Brand configs
# ============================================================================

@pytest.fixture
def acme_config():
    """Minimal brand: Acme CRM against a single primary competitor, Beta."""
    return create_brand_config(
        brand_name="Acme",
        website_url="acme.com",
        category="CRM",
        competitors=[Competitor(name="Beta", website_url="https://beta.com")],
    )


@pytest.fixture
def full_config():
    """Brand with every optional field filled and three competitors."""
    return create_brand_config(
        brand_name="Acme",
        website_url="https://acme.com",
        category="CRM",
        subcategories=["Sales pipeline software"],
        target_customer="freelancers",
        primary_use_case="Track client deals",
        geography=["Germany"],
        competitors=[
            Competitor(name="Beta", website_url="https://beta.com", is_primary=True),
            Competitor(name="Gamma", website_url="https://gamma.io", is_primary=True),
            Competitor(name="Delta", website_url="https://delta.dev", is_primary=False),
        ],
    )


# ============================================================================
# Stub collaborators
# ============================================================================

@pytest.fixture
def stub_ask_model():
    """Factory for AskModel stubs that record their calls."""
    def factory(answer: str = "I recommend Beta for this.", failing_models: Optional[List[str]] = None):
        calls = []

        async def ask_model(model: str, prompt: str) -> str:
            calls.append((model, prompt))
            if failing_models and model in failing_models:
                raise RuntimeError(f"{model} is down")
            return answer

        ask_model.calls = calls
        return ask_model

    return factory


@pytest.fixture
def stub_parse_with_llm():
    """Factory for ParseWithLLM stubs returning a fixed JSON array of mentions."""
    def factory(entries: Optional[List[Dict]] = None, raw: Optional[str] = None):
        async def parse_with_llm(prompt: str) -> str:
            if raw is not None:
                return raw
            return "Here is the analysis:\n```json\n" + json.dumps(entries or []) + "\n```"

        return parse_with_llm

    return factory


@pytest.fixture
def beta_wins_entries():
    """Parser output matching the answer "I recommend Beta for this."."""
    return [
        {"brand": "Acme", "position": "none", "sentiment": "neutral", "context": ""},
        {"brand": "Beta", "position": "primary", "sentiment": "positive", "context": "I recommend Beta for this."},
    ]


# ============================================================================
# Builders
# ============================================================================

@pytest.fixture
def make_query():
    def factory(text: str = "Best CRM", category: QueryCategory = QueryCategory.RECOMMENDATION,
                competitors: Optional[List[str]] = None) -> GeneratedQuery:
        return GeneratedQuery(
            text=text,
            category=category,
            intent="test",
            competitors_mentioned=competitors or [],
        )
    return factory


@pytest.fixture
def make_execution():
    """Build an execution whose single primary mention is the given winner."""
    def factory(query: GeneratedQuery, model: str, winner: Optional[str],
                brands=("Acme", "Beta")) -> QueryExecution:
        brands = list(brands)
        if winner and winner not in brands:
            brands.append(winner)
        mentions = [
            BrandMention(
                brand=b,
                position=MentionPosition.PRIMARY if b == winner else MentionPosition.NONE,
                sentiment=MentionSentiment.POSITIVE if b == winner else MentionSentiment.NEUTRAL,
            )
            for b in brands
        ]
        return QueryExecution(
            query_id=query.id,
            query_text=query.text,
            model=model,
            raw_response=f"{winner} is best" if winner else "No idea",
            brands_mentioned=mentions,
            winner=determine_winner(mentions),
        )
    return factory


@pytest.fixture
def make_result(make_query, make_execution):
    """Build a WinLossResult from one winner per model (chatgpt, perplexity, gemini)."""
    def factory(winners: List[Optional[str]], text: str = "Best CRM",
                category: QueryCategory = QueryCategory.RECOMMENDATION,
                competitors: Optional[List[str]] = None, user_brand: str = "Acme"):
        query = make_query(text, category, competitors)
        models = ["chatgpt", "perplexity", "gemini", "extra"]
        executions = [make_execution(query, models[i], w) for i, w in enumerate(winners)]
        return calculate_win_loss(query, executions, user_brand)
    return factory


@pytest.fixture
def make_snapshot(acme_config, make_result):
    """Build a stored snapshot for acme_config from a list of per-query winner lists."""
    def factory(rows=None, config=None):
        config = config or acme_config
        rows = rows if rows is not None else [
            (["Beta", "Beta", "Beta"], "Acme vs Beta", QueryCategory.COMPARISON),
            (["Acme", "Acme", "Acme"], "Best CRM", QueryCategory.RECOMMENDATION),
        ]
        results = [
            make_result(winners, text=text, category=category, competitors=["Beta"])
            for winners, text, category in rows
        ]
        report = generate_competitive_report(config, results)
        gaps = analyze_query_gaps(results, [], config)
        plan = generate_competitive_action_plan(report, gaps, [], config)
        return AnalysisSnapshot(brand_config=config, report=report, results=results, action_plan=plan)

    return factory
