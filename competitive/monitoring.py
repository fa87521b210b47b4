"""
Competitive Monitoring.
Compares a new analysis against the previous one for the same brand and raises
alerts for win-rate drops, newly lost queries and competitor gains.
"""

import logging
from typing import Dict, List, Optional

from competitive.competitive_models import (
    Alert, AlertThresholds, CompetitiveReport, CompetitorChange, MonitoringChanges,
    MonitoringResult, WinLossOutcome, WinLossResult,
)

logger = logging.getLogger(__name__)


def _query_key(result: WinLossResult) -> str:
    return result.query.text.strip().lower()


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def compare_results(
    previous_report: CompetitiveReport,
    previous_results: List[WinLossResult],
    current_report: CompetitiveReport,
    current_results: List[WinLossResult],
) -> MonitoringChanges:
    """
    Diff two runs query by query.

    Queries are matched by case-insensitive text. Only queries present in both
    runs can flip; new or dropped queries are ignored.
    """
    previous_by_query: Dict[str, WinLossResult] = {}
    for result in previous_results:
        previous_by_query.setdefault(_query_key(result), result)

    new_wins: List[WinLossResult] = []
    new_losses: List[WinLossResult] = []
    gained: Dict[str, List[str]] = {}
    lost: Dict[str, List[str]] = {}

    for current in current_results:
        previous = previous_by_query.get(_query_key(current))
        if previous is None:
            continue

        if current.overall_result == WinLossOutcome.WIN and previous.overall_result != WinLossOutcome.WIN:
            new_wins.append(current)
        if current.overall_result == WinLossOutcome.LOSS and previous.overall_result != WinLossOutcome.LOSS:
            new_losses.append(current)

        if current.winning_brand != previous.winning_brand:
            if current.winning_brand:
                gained.setdefault(current.winning_brand, []).append(current.query.text)
            if previous.winning_brand:
                lost.setdefault(previous.winning_brand, []).append(current.query.text)

    # the user's own brand is not a competitor
    brand_names = set(current_report.competitor_breakdown) | set(previous_report.competitor_breakdown)
    competitor_changes: List[CompetitorChange] = []
    for name, queries in gained.items():
        if name in brand_names:
            competitor_changes.append(CompetitorChange(competitor=name, change="gained", queries=queries))
    for name, queries in lost.items():
        if name in brand_names:
            competitor_changes.append(CompetitorChange(competitor=name, change="lost", queries=queries))

    return MonitoringChanges(
        win_rate_change=current_report.win_rate - previous_report.win_rate,
        new_wins=new_wins,
        new_losses=new_losses,
        competitor_changes=competitor_changes,
    )


def evaluate_alerts(changes: MonitoringChanges, thresholds: Optional[AlertThresholds] = None) -> List[Alert]:
    """
    Turn changes into alerts.

    win_rate_drop (critical) when the win rate fell by at least the threshold,
    new_loss (warning) once for all newly lost queries, and competitor_gain
    (info) per competitor that took queries.
    """
    thresholds = thresholds or AlertThresholds()
    alerts: List[Alert] = []

    drop = -changes.win_rate_change
    if drop > 0 and drop >= thresholds.win_rate_drop_percent:
        alerts.append(Alert(
            type="win_rate_drop",
            severity="critical",
            message=f"Win rate dropped by {drop}% since the last check",
            details={"winRateChange": changes.win_rate_change},
        ))

    if thresholds.new_loss and changes.new_losses:
        count = len(changes.new_losses)
        alerts.append(Alert(
            type="new_loss",
            severity="warning",
            message=f"Lost {count} {_plural(count, 'query', 'queries')} since the last check",
            details={"queries": [r.query.text for r in changes.new_losses]},
        ))

    if thresholds.competitor_gain:
        for change in changes.competitor_changes:
            if change.change != "gained":
                continue
            count = len(change.queries)
            alerts.append(Alert(
                type="competitor_gain",
                severity="info",
                message=f"{change.competitor} now wins {count} more {_plural(count, 'query', 'queries')}",
                details={"competitor": change.competitor, "queries": list(change.queries)},
            ))

    if alerts:
        logger.info("Monitoring raised %d alert(s)", len(alerts))
    return alerts


def build_monitoring_result(
    brand_id: str,
    current_report: CompetitiveReport,
    changes: MonitoringChanges,
    alerts: List[Alert],
) -> MonitoringResult:
    return MonitoringResult(
        brand_id=brand_id,
        report_id=current_report.id,
        current_win_rate=current_report.win_rate,
        current_wins=current_report.wins,
        current_losses=current_report.losses,
        changes=changes,
        alerts_triggered=alerts,
    )
