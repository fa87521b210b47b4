"""
Query Gap Analysis.
Explains every lost query: which competitor won it, why they likely won, and
what the brand needs to build to take it back.
"""

import re
from typing import List, Optional

from competitive.competitive_models import (
    BrandConfig, CompetitorTeardown, GapDifficulty, GeneratedQuery, QueryCategory,
    QueryGap, WinLossOutcome, WinLossResult,
)

BASE_PRIORITY = 5
MAX_PRIORITY = 10


def _find_teardown(teardowns: List[CompetitorTeardown], competitor: str) -> Optional[CompetitorTeardown]:
    for teardown in teardowns:
        if teardown.competitor == competitor:
            return teardown
    return None


def calculate_difficulty(what_you_need: List[str]) -> GapDifficulty:
    """hard when a new page is needed, medium for schema plus content work, else easy."""
    needs_page = any("Create page" in n or "Create landing page" in n for n in what_you_need)
    needs_schema = any("schema" in n or "structured data" in n for n in what_you_need)
    needs_content = any("content" in n or "heading" in n for n in what_you_need)

    if needs_page:
        return GapDifficulty.HARD
    if needs_schema and needs_content:
        return GapDifficulty.MEDIUM
    return GapDifficulty.EASY


def calculate_priority(query: GeneratedQuery, brand_config: BrandConfig) -> int:
    priority = BASE_PRIORITY
    text = query.text.lower()

    if query.category == QueryCategory.RECOMMENDATION:
        priority += 3

    if query.category == QueryCategory.COMPARISON:
        primaries = [c.name.lower() for c in brand_config.competitors if c.is_primary]
        if any(name in text for name in primaries):
            priority += 2

    if brand_config.target_customer and brand_config.target_customer.lower() in text:
        priority += 2

    return min(priority, MAX_PRIORITY)


def _explain_comparison(brand_config, competitor, teardown, why, need):
    if teardown and teardown.content_signals.has_comparison_pages:
        why.append("Has dedicated comparison page")
    else:
        why.append("May have comparison content")
    need.append(f'Create page: "{brand_config.brand_name} vs {competitor}"')


def _explain_recommendation(brand_config, query, teardown, why, need):
    if teardown:
        for keyword in re.split(r"\s+", query.text.lower()):
            presence = teardown.keyword_presence.get(keyword)
            if presence and presence.in_h1:
                why.append(f'Targets "{keyword}" in H1')
                need.append(f'Add "{keyword}" to a page heading')

        if teardown.content_signals.uses_definitive_language:
            why.append("Uses definitive claims")
            need.append("Add definitive language to product description")

        if teardown.content_signals.has_target_audience_pages and brand_config.target_customer:
            why.append("Has audience-specific landing pages")
            need.append(f"Create landing page for {brand_config.target_customer}")

    if not why:
        why.append("Stronger brand recognition in AI training data")
        why.append("More comprehensive content coverage")
    if not need:
        need.append("Create content specifically targeting this query")
        need.append("Add FAQ schema with this question")


def _explain_feature(why, need):
    why.append("Better feature documentation")
    need.append("Create detailed feature comparison content")
    need.append("Add structured data for product features")


def analyze_query_gaps(
    results: List[WinLossResult],
    teardowns: List[CompetitorTeardown],
    brand_config: BrandConfig,
) -> List[QueryGap]:
    """
    Build one gap per lost query that has a winning competitor.

    Args:
        results: Win/loss results of the run
        teardowns: Competitor teardowns, looked up by competitor name
        brand_config: The analysed brand

    Returns:
        Gaps sorted by descending priority; equal priorities keep result order
    """
    gaps: List[QueryGap] = []

    for result in results:
        if result.overall_result != WinLossOutcome.LOSS or not result.winning_brand:
            continue

        competitor = result.winning_brand
        teardown = _find_teardown(teardowns, competitor)
        why: List[str] = []
        need: List[str] = []

        category = result.query.category
        if category == QueryCategory.COMPARISON:
            _explain_comparison(brand_config, competitor, teardown, why, need)
        elif category == QueryCategory.RECOMMENDATION:
            _explain_recommendation(brand_config, result.query, teardown, why, need)
        elif category == QueryCategory.FEATURE:
            _explain_feature(why, need)

        gaps.append(QueryGap(
            query=result.query.text,
            query_category=category,
            winning_competitor=competitor,
            why_they_win=why,
            what_you_need=need,
            difficulty=calculate_difficulty(need),
            priority=calculate_priority(result.query, brand_config),
        ))

    return sorted(gaps, key=lambda g: -g.priority)
