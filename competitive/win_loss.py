"""
Win/Loss Evaluation.
Decides who won each assistant answer, aggregates answers per query into a
WinLossResult, and rolls results up into a CompetitiveReport.

Every function here is pure: no I/O, no clock reads beyond default ids/timestamps.
"""

import math
from collections import Counter
from typing import List, Dict, Optional

from competitive.config import DEFAULT_MODELS
from competitive.competitive_models import (
    BrandConfig, BrandMention, GeneratedQuery, QueryExecution,
    MentionPosition, MentionSentiment, WinLossOutcome, QueryCategory, CATEGORY_ORDER,
    ModelResult, WinLossResult, CategoryStats, ModelStats, CompetitorStats,
    CompetitiveReport,
)


POSITION_SCORES = {
    MentionPosition.PRIMARY: 1,
    MentionPosition.SECONDARY: 2,
    MentionPosition.TERTIARY: 3,
    MentionPosition.MENTIONED: 4,
    MentionPosition.NONE: 5,
}

CATEGORY_IMPACT_MULTIPLIERS = {
    QueryCategory.RECOMMENDATION: 1.5,
    QueryCategory.COMPARISON: 1.3,
}

KEY_QUERY_LIMIT = 5


def percent(part: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(math.floor(part / total * 100 + 0.5))


def determine_winner(mentions: List[BrandMention]) -> Optional[str]:
    """
    Pick the winning brand of a single answer.

    A primary mention wins outright. Otherwise a lone secondary mention wins,
    and among several secondaries the first positive one (brand list order)
    wins. Anything else has no winner.
    """
    for mention in mentions:
        if mention.position == MentionPosition.PRIMARY:
            return mention.brand

    secondaries = [m for m in mentions if m.position == MentionPosition.SECONDARY]
    if len(secondaries) == 1:
        return secondaries[0].brand

    for mention in secondaries:
        if mention.sentiment == MentionSentiment.POSITIVE:
            return mention.brand

    return None


def calculate_overall_sentiment(mentions: List[BrandMention], user_brand: str) -> Optional[MentionSentiment]:
    for mention in mentions:
        if mention.brand == user_brand:
            return mention.sentiment
    return None


def build_model_result(execution: QueryExecution, user_brand: str) -> ModelResult:
    user_mention = None
    competitor_positions: Dict[str, MentionPosition] = {}
    for mention in execution.brands_mentioned:
        if mention.brand == user_brand:
            if user_mention is None:
                user_mention = mention
        else:
            competitor_positions[mention.brand] = mention.position

    return ModelResult(
        winner=execution.winner,
        user_brand_position=user_mention.position if user_mention else MentionPosition.NONE,
        user_brand_sentiment=user_mention.sentiment if user_mention else None,
        competitor_positions=competitor_positions,
    )


def calculate_win_loss(
    query: GeneratedQuery,
    executions: List[QueryExecution],
    user_brand: str,
) -> WinLossResult:
    """
    Aggregate every assistant's answer to one query.

    overall_result is "unclear" with no executions, "win" when every model's
    winner is the user brand, "loss" when none is, and "partial" otherwise.
    winning_brand is the most frequent non-null winner; ties go to the winner
    seen first in execution order.
    """
    model_results: Dict[str, ModelResult] = {}
    for execution in executions:
        model_results[execution.model] = build_model_result(execution, user_brand)

    outcomes = list(model_results.values())
    wins = sum(1 for r in outcomes if r.winner == user_brand)
    total = len(outcomes)

    if total == 0:
        overall = WinLossOutcome.UNCLEAR
    elif wins == total:
        overall = WinLossOutcome.WIN
    elif wins == 0:
        overall = WinLossOutcome.LOSS
    else:
        overall = WinLossOutcome.PARTIAL

    # Counter.most_common keeps first-encountered order among equal counts
    winner_counts = Counter(r.winner for r in outcomes if r.winner)
    winning_brand = winner_counts.most_common(1)[0][0] if winner_counts else None

    return WinLossResult(
        query=query,
        executions=list(executions),
        model_results=model_results,
        overall_result=overall,
        winning_brand=winning_brand,
    )


def group_executions_by_query(
    queries: List[GeneratedQuery],
    executions: List[QueryExecution],
) -> List[tuple]:
    """Pair each query with its executions, in query order then execution order."""
    by_query: Dict[str, List[QueryExecution]] = {q.id: [] for q in queries}
    for execution in executions:
        if execution.query_id in by_query:
            by_query[execution.query_id].append(execution)
    return [(q, by_query[q.id]) for q in queries]


def evaluate_results(
    queries: List[GeneratedQuery],
    executions: List[QueryExecution],
    user_brand: str,
) -> List[WinLossResult]:
    """
    One win/loss result per query, in query order.

    A query whose every model call failed comes out "unclear". Callers pass
    only the queries that were actually asked.
    """
    return [
        calculate_win_loss(query, query_executions, user_brand)
        for query, query_executions in group_executions_by_query(queries, executions)
    ]


def get_position_score(position: MentionPosition) -> int:
    return POSITION_SCORES.get(position, 5)


def get_position_display(position: MentionPosition) -> str:
    return {
        MentionPosition.PRIMARY: "1st",
        MentionPosition.SECONDARY: "2nd",
        MentionPosition.TERTIARY: "3rd",
        MentionPosition.MENTIONED: "Mentioned",
    }.get(position, "-")


def calculate_category_stats(results: List[WinLossResult], category: QueryCategory) -> CategoryStats:
    in_category = [r for r in results if r.query.category == category]
    wins = sum(1 for r in in_category if r.overall_result == WinLossOutcome.WIN)
    losses = sum(1 for r in in_category if r.overall_result == WinLossOutcome.LOSS)
    partial = sum(1 for r in in_category if r.overall_result == WinLossOutcome.PARTIAL)
    return CategoryStats(
        total=len(in_category),
        wins=wins,
        losses=losses,
        partial=partial,
        win_rate=percent(wins, len(in_category)),
    )


def calculate_model_stats(results: List[WinLossResult], model: str, user_brand: str) -> ModelStats:
    """Per-assistant win rate; a loss needs a named winner other than the user brand."""
    wins = 0
    losses = 0
    position_total = 0
    position_count = 0

    for result in results:
        model_result = result.model_results.get(model)
        if model_result is None:
            continue
        if model_result.winner == user_brand:
            wins += 1
        elif model_result.winner:
            losses += 1
        position_total += get_position_score(model_result.user_brand_position)
        position_count += 1

    return ModelStats(
        total=len(results),
        wins=wins,
        losses=losses,
        win_rate=percent(wins, wins + losses),
        avg_user_position=position_total / position_count if position_count else 5.0,
    )


def calculate_competitor_stats(results: List[WinLossResult], competitor_name: str) -> CompetitorStats:
    """Stats over queries that mention the competitor or that it won."""
    relevant = [
        r for r in results
        if competitor_name in r.query.competitors_mentioned or r.winning_brand == competitor_name
    ]
    wins_against = sum(1 for r in relevant if r.overall_result == WinLossOutcome.WIN)
    losses_against = sum(
        1 for r in relevant
        if r.overall_result == WinLossOutcome.LOSS and r.winning_brand == competitor_name
    )
    return CompetitorStats(
        competitor=competitor_name,
        queries_against=len(relevant),
        wins_against=wins_against,
        losses_against=losses_against,
        win_rate=percent(wins_against, wins_against + losses_against),
    )


def get_impact_score(result: WinLossResult, user_brand: str) -> float:
    """
    Rank results for the key-query lists.

    Base +10 win, -10 loss, +2 partial; x1.5 for recommendation and x1.3 for
    comparison queries; then +5 when every model picked the user brand and -5
    when every model picked someone else.
    """
    score = 0.0
    if result.overall_result == WinLossOutcome.WIN:
        score += 10
    elif result.overall_result == WinLossOutcome.LOSS:
        score -= 10
    elif result.overall_result == WinLossOutcome.PARTIAL:
        score += 2

    score *= CATEGORY_IMPACT_MULTIPLIERS.get(result.query.category, 1.0)

    outcomes = list(result.model_results.values())
    if all(r.winner == user_brand for r in outcomes):
        score += 5
    if all(r.winner and r.winner != user_brand for r in outcomes):
        score -= 5
    return score


def _report_models(results: List[WinLossResult]) -> List[str]:
    models = list(DEFAULT_MODELS)
    for result in results:
        for model in result.model_results:
            if model not in models:
                models.append(model)
    return models


def generate_competitive_report(brand_config: BrandConfig, results: List[WinLossResult]) -> CompetitiveReport:
    """
    Roll win/loss results up into a report.

    Args:
        brand_config: The analysed brand and its competitors
        results: One WinLossResult per executed query

    Returns:
        CompetitiveReport with category, competitor and model breakdowns plus
        the top five wins, losses and close calls by impact score
    """
    user_brand = brand_config.brand_name

    wins = sum(1 for r in results if r.overall_result == WinLossOutcome.WIN)
    losses = sum(1 for r in results if r.overall_result == WinLossOutcome.LOSS)
    partial = sum(1 for r in results if r.overall_result == WinLossOutcome.PARTIAL)

    category_breakdown = {
        category.value: calculate_category_stats(results, category)
        for category in CATEGORY_ORDER
    }

    competitor_breakdown = {
        competitor.name: calculate_competitor_stats(results, competitor.name)
        for competitor in brand_config.competitors
    }

    model_breakdown = {
        model: calculate_model_stats(results, model, user_brand)
        for model in _report_models(results)
    }

    by_impact = sorted(results, key=lambda r: -get_impact_score(r, user_brand))
    biggest_wins = [r for r in by_impact if r.overall_result == WinLossOutcome.WIN][:KEY_QUERY_LIMIT]
    close_calls = [r for r in by_impact if r.overall_result == WinLossOutcome.PARTIAL][:KEY_QUERY_LIMIT]
    biggest_losses = sorted(
        (r for r in results if r.overall_result == WinLossOutcome.LOSS),
        key=lambda r: get_impact_score(r, user_brand),
    )[:KEY_QUERY_LIMIT]

    return CompetitiveReport(
        brand_id=brand_config.id,
        total_queries=len(results),
        wins=wins,
        losses=losses,
        partial=partial,
        win_rate=percent(wins, len(results)),
        category_breakdown=category_breakdown,
        competitor_breakdown=competitor_breakdown,
        model_breakdown=model_breakdown,
        biggest_wins=biggest_wins,
        biggest_losses=biggest_losses,
        close_calls=close_calls,
    )


def get_win_loss_summary(report: CompetitiveReport, brand_name: str) -> str:
    """One-line verdict for the report header."""
    top_competitor = None
    if report.competitor_breakdown:
        top_competitor = max(
            report.competitor_breakdown.values(),
            key=lambda s: s.losses_against,
        ).competitor

    if report.win_rate >= 70:
        return f"{brand_name} is winning {report.win_rate}% of AI recommendation queries. Strong competitive position."
    if report.win_rate >= 40:
        losing_to = f" Losing most to {top_competitor}." if top_competitor else ""
        return f"{brand_name} is winning {report.win_rate}% of queries.{losing_to} Room for improvement."
    against = f" to {top_competitor}" if top_competitor else ""
    return (
        f"{brand_name} is losing {report.losses} out of {report.total_queries} AI queries{against}. "
        "Significant optimization needed."
    )
