"""
Competitor Teardown.
Collects content signals for each competitor through a ContentSignalProbe and
turns them into readable advantages used for gap attribution.

No crawling happens here. The probe is an injected capability; the default
NullContentSignalProbe reports the all-false structure a site with no
observations would have.
"""

import logging
import re
from typing import Dict, List, Optional, Protocol

from competitive.competitive_models import (
    BrandConfig, Competitor, CompetitorTeardown, ContentSignals, KeywordPresence,
    WinLossResult, WinLossOutcome,
)

logger = logging.getLogger(__name__)

STOP_WORDS = {
    "best", "the", "a", "an", "for", "to", "in", "is", "vs", "or",
    "and", "what", "how", "why",
}


class ContentSignalProbe(Protocol):
    async def analyze_content_signals(self, website_url: str) -> ContentSignals:
        ...

    async def analyze_keyword_presence(self, website_url: str, keywords: List[str]) -> Dict[str, KeywordPresence]:
        ...


class NullContentSignalProbe:
    """Probe for runs without site observations: every signal false, every count zero."""

    async def analyze_content_signals(self, website_url: str) -> ContentSignals:
        return ContentSignals()

    async def analyze_keyword_presence(self, website_url: str, keywords: List[str]) -> Dict[str, KeywordPresence]:
        return {kw: KeywordPresence(keyword=kw) for kw in keywords}


class StaticContentSignalProbe:
    """Serves signals gathered out of band, keyed by website URL."""

    def __init__(
        self,
        signals: Optional[Dict[str, ContentSignals]] = None,
        keywords: Optional[Dict[str, Dict[str, KeywordPresence]]] = None,
    ):
        self.signals = signals or {}
        self.keywords = keywords or {}

    async def analyze_content_signals(self, website_url: str) -> ContentSignals:
        return self.signals.get(website_url, ContentSignals())

    async def analyze_keyword_presence(self, website_url: str, keywords: List[str]) -> Dict[str, KeywordPresence]:
        known = self.keywords.get(website_url, {})
        return {kw: known.get(kw, KeywordPresence(keyword=kw)) for kw in keywords}


def extract_keywords_from_queries(results: List[WinLossResult]) -> List[str]:
    """Distinct non-stop-words longer than two characters, in first-seen order."""
    keywords: List[str] = []
    for result in results:
        for word in re.split(r"\s+", result.query.text.lower()):
            if len(word) > 2 and word not in STOP_WORDS and word not in keywords:
                keywords.append(word)
    return keywords


def determine_advantages(
    signals: ContentSignals,
    keyword_presence: Dict[str, KeywordPresence],
) -> List[str]:
    """Translate present signals into human-readable advantage strings."""
    advantages: List[str] = []

    if signals.has_comparison_pages:
        advantages.append(f"Has {len(signals.comparison_pages_found)} comparison page(s)")
    if signals.has_faq_schema:
        advantages.append("Has FAQ schema implemented")
    if signals.has_product_schema:
        advantages.append("Has Product schema implemented")
    if signals.has_organization_schema:
        advantages.append("Has Organization schema implemented")
    if signals.has_llm_txt:
        advantages.append("Has llm.txt file for AI crawlers")
    if signals.uses_comparison_tables:
        advantages.append("Uses comparison tables for feature breakdowns")
    if signals.uses_definitive_language:
        advantages.append("Uses definitive claims ('best', 'leading', '#1')")
    if signals.has_target_audience_pages:
        advantages.append("Has dedicated pages for target audiences")
    if signals.has_pricing_transparency:
        advantages.append("Has transparent pricing information")
    if signals.has_trust_signals:
        advantages.append("Displays trust signals (reviews, testimonials, logos)")

    for keyword, presence in keyword_presence.items():
        if presence.in_h1:
            advantages.append(f'Targets "{keyword}" in H1 heading')
        elif presence.in_h2:
            advantages.append(f'Targets "{keyword}" in H2 headings')

    return advantages


def get_queries_lost_to_competitor(results: List[WinLossResult], competitor_name: str) -> List[WinLossResult]:
    return [
        r for r in results
        if r.overall_result == WinLossOutcome.LOSS and r.winning_brand == competitor_name
    ]


def get_top_competitors_by_losses(results: List[WinLossResult], limit: int = 5) -> List[Dict[str, object]]:
    """Competitors ranked by how many queries the brand lost to them."""
    loss_counts: Dict[str, int] = {}
    for result in results:
        if result.overall_result == WinLossOutcome.LOSS and result.winning_brand:
            loss_counts[result.winning_brand] = loss_counts.get(result.winning_brand, 0) + 1

    ranked = sorted(loss_counts.items(), key=lambda x: -x[1])
    return [{"competitor": name, "losses": count} for name, count in ranked[:limit]]


async def analyze_competitor(
    competitor: Competitor,
    lost_results: List[WinLossResult],
    probe: ContentSignalProbe,
) -> CompetitorTeardown:
    """
    Build a teardown for one competitor.

    Args:
        competitor: The competitor to inspect
        lost_results: Queries the brand lost to this competitor, source of keywords
        probe: Content signal capability

    Returns:
        CompetitorTeardown with signals, keyword presence and advantages
    """
    keywords = extract_keywords_from_queries(lost_results)
    signals = await probe.analyze_content_signals(competitor.website_url)
    keyword_presence = await probe.analyze_keyword_presence(competitor.website_url, keywords)

    return CompetitorTeardown(
        competitor=competitor.name,
        website_url=competitor.website_url,
        content_signals=signals,
        keyword_presence=keyword_presence,
        advantages=determine_advantages(signals, keyword_presence),
    )


async def analyze_competitors(
    brand_config: BrandConfig,
    results: List[WinLossResult],
    probe: ContentSignalProbe,
) -> List[CompetitorTeardown]:
    """Teardown for every configured competitor, in configured order.

    A probe failure for one competitor leaves that competitor with empty signals.
    """
    teardowns: List[CompetitorTeardown] = []
    for competitor in brand_config.competitors:
        lost = get_queries_lost_to_competitor(results, competitor.name)
        try:
            teardown = await analyze_competitor(competitor, lost, probe)
        except Exception as e:
            logger.warning("Content probe failed for %s: %s", competitor.name, e)
            teardown = await analyze_competitor(competitor, lost, NullContentSignalProbe())
        teardowns.append(teardown)
    return teardowns


def generate_competitor_summary(teardown: CompetitorTeardown, lost_results: List[WinLossResult]) -> str:
    advantages = teardown.advantages[:3]
    key = ", ".join(advantages) if advantages else "Strong brand presence"
    return f"{teardown.competitor} is winning {len(lost_results)} queries against you. Key advantages: {key}."
