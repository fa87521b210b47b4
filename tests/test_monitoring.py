"""
Tests for run-over-run comparison and alert rules.
"""

from competitive.competitive_models import AlertThresholds, QueryCategory
from competitive.monitoring import build_monitoring_result, compare_results, evaluate_alerts


REC = QueryCategory.RECOMMENDATION
COMP = QueryCategory.COMPARISON


def diff(previous, current):
    return compare_results(previous.report, previous.results, current.report, current.results)


class TestCompareResults:

    def test_flips(self, make_snapshot):
        previous = make_snapshot([
            (["Beta", "Beta", "Beta"], "Acme vs Beta", COMP),
            (["Acme", "Acme", "Acme"], "Best CRM", REC),
        ])
        current = make_snapshot([
            (["Acme", "Acme", "Acme"], "acme VS beta ", COMP),
            (["Beta", "Beta", "Beta"], "Best CRM", REC),
        ])

        changes = diff(previous, current)

        assert changes.win_rate_change == 0
        assert [r.query.text for r in changes.new_wins] == ["acme VS beta "]
        assert [r.query.text for r in changes.new_losses] == ["Best CRM"]
        assert [(c.competitor, c.change, c.queries) for c in changes.competitor_changes] == [
            ("Beta", "gained", ["Best CRM"]),
            ("Beta", "lost", ["acme VS beta "]),
        ]

    def test_unchanged_results(self, make_snapshot):
        snapshot = make_snapshot()

        changes = diff(snapshot, snapshot)

        assert changes.win_rate_change == 0
        assert changes.new_wins == []
        assert changes.new_losses == []
        assert changes.competitor_changes == []

    def test_new_queries_ignored(self, make_snapshot):
        previous = make_snapshot([(["Acme", "Acme"], "Best CRM", REC)])
        current = make_snapshot([
            (["Acme", "Acme"], "Best CRM", REC),
            (["Beta", "Beta"], "Top CRM", REC),
        ])

        changes = diff(previous, current)

        assert changes.new_losses == []
        assert changes.win_rate_change == -50


class TestAlerts:

    def test_win_rate_drop(self, make_snapshot):
        previous = make_snapshot([(["Acme"], "Best CRM", REC), (["Acme"], "Top CRM", REC)])
        current = make_snapshot([(["Beta"], "Best CRM", REC), (["Beta"], "Top CRM", REC)])

        alerts = evaluate_alerts(diff(previous, current))

        assert [a.type for a in alerts] == ["win_rate_drop", "new_loss", "competitor_gain"]
        assert alerts[0].severity == "critical"
        assert alerts[0].message == "Win rate dropped by 100% since the last check"
        assert alerts[1].severity == "warning"
        assert alerts[1].details["queries"] == ["Best CRM", "Top CRM"]
        assert alerts[2].severity == "info"
        assert alerts[2].message == "Beta now wins 2 more queries"

    def test_small_drop_below_threshold(self, make_snapshot):
        rows = [(["Acme"], f"Query {i}", REC) for i in range(20)]
        previous = make_snapshot(rows)
        current = make_snapshot(rows[:19] + [([None], "Query 19", REC)])

        alerts = evaluate_alerts(diff(previous, current))

        assert all(a.type != "win_rate_drop" for a in alerts)
        assert [a.message for a in alerts if a.type == "new_loss"] == ["Lost 1 query since the last check"]

    def test_rules_can_be_disabled(self, make_snapshot):
        previous = make_snapshot([(["Acme"], "Best CRM", REC)])
        current = make_snapshot([(["Beta"], "Best CRM", REC)])
        thresholds = AlertThresholds(win_rate_drop_percent=101, new_loss=False, competitor_gain=False)

        assert evaluate_alerts(diff(previous, current), thresholds) == []

    def test_improvement_raises_nothing(self, make_snapshot):
        previous = make_snapshot([(["Beta"], "Best CRM", REC)])
        current = make_snapshot([(["Acme"], "Best CRM", REC)])

        assert evaluate_alerts(diff(previous, current)) == []


class TestMonitoringResult:

    def test_build(self, make_snapshot):
        previous = make_snapshot()
        current = make_snapshot()
        changes = diff(previous, current)

        result = build_monitoring_result(current.brand_config.id, current.report, changes, [])

        assert result.report_id == current.report.id
        assert result.current_win_rate == 50
        assert (result.current_wins, result.current_losses) == (1, 1)
        assert result.to_dict()["alertsTriggered"] == []
