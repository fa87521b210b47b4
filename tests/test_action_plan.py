"""
Tests for action plan generation, bucketing and generated assets.
"""

from competitive.action_plan import (
    bucket_fixes,
    generate_competitive_action_plan,
    generate_content_fixes,
    generate_gap_fixes,
    generate_llm_txt_content,
    generate_schema_fixes,
    get_fix_summary,
    landing_page_audience,
)
from competitive.competitive_models import (
    CompetitiveReport, ComparisonPageOutline, CompetitorTeardown, ContentSignals,
    Fix, FixEffort, QueryCategory, QueryGap,
)


def gap(query, category=QueryCategory.COMPARISON, competitor="Beta", why=None, need=None):
    return QueryGap(
        query=query,
        query_category=category,
        winning_competitor=competitor,
        why_they_win=why or [],
        what_you_need=need or [],
    )


def report(total_queries=10):
    return CompetitiveReport(brand_id="brand_test", total_queries=total_queries)


class TestBucketing:

    def test_three_wins_is_critical(self):
        fix = Fix(title="t", description="d", potential_wins=3, queries_affected=["q1"])

        assert bucket_fixes([fix])["critical"] == [fix]

    def test_five_queries_is_critical(self):
        fix = Fix(title="t", description="d", potential_wins=0, queries_affected=["q"] * 5)

        assert bucket_fixes([fix])["critical"] == [fix]

    def test_low_effort_single_win_is_quick_win(self):
        fix = Fix(title="t", description="d", potential_wins=1, effort=FixEffort.LOW)
        buckets = bucket_fixes([fix])

        assert buckets["quick_wins"] == [fix]
        assert buckets["low"] == [fix]

    def test_exclusive_buckets(self):
        fixes = [
            Fix(title="critical", description="", potential_wins=3, effort=FixEffort.LOW),
            Fix(title="high", description="", potential_wins=2, effort=FixEffort.MEDIUM),
            Fix(title="medium", description="", potential_wins=1, effort=FixEffort.MEDIUM),
            Fix(title="low", description="", potential_wins=1, effort=FixEffort.HIGH),
        ]
        buckets = bucket_fixes(fixes)

        assert [f.title for f in buckets["critical"]] == ["critical"]
        assert [f.title for f in buckets["high"]] == ["high"]
        assert [f.title for f in buckets["medium"]] == ["medium"]
        assert [f.title for f in buckets["low"]] == ["low"]
        assert [f.title for f in buckets["quick_wins"]] == ["critical"]


class TestGapFixes:

    def test_one_comparison_fix_per_competitor(self, acme_config):
        gaps = [gap("Acme vs Beta"), gap("Beta vs Acme"), gap("Acme or Beta")]
        fixes = generate_gap_fixes(gaps, acme_config)

        assert len(fixes) == 1
        fix = fixes[0]
        assert fix.title == "Create comparison page: Acme vs Beta"
        assert fix.queries_affected == ["Acme vs Beta", "Beta vs Acme", "Acme or Beta"]
        assert fix.potential_wins == 3
        assert fix.estimated_hours == 4
        assert fix.steps[0] == "Create new page at /compare/acme-vs-beta"
        assert fix.asset_type == "comparison"

    def test_or_query_alone_yields_no_page(self, acme_config):
        assert generate_gap_fixes([gap("Acme or Beta")], acme_config) == []

    def test_comparison_outline(self, full_config):
        fix = generate_gap_fixes([gap("Acme vs Beta")], full_config)[0]
        outline = fix.generated_asset

        assert isinstance(outline, ComparisonPageOutline)
        assert outline.suggested_url == "/compare/acme-vs-beta"
        assert outline.h1 == "Acme vs Beta: Which is Better for freelancers?"
        assert len(outline.sections) == 8
        assert outline.sections[1].heading == "What is Acme?"
        assert outline.schema_to_include["@type"] == "FAQPage"
        assert len(outline.schema_to_include["mainEntity"]) == 3

    def test_landing_page_fix(self, full_config):
        g = gap(
            "Best CRM for small agencies",
            category=QueryCategory.RECOMMENDATION,
            need=["Create landing page for freelancers"],
        )
        fix = generate_gap_fixes([g], full_config)[0]

        assert fix.title == "Create landing page for small agencies"
        assert fix.effort == FixEffort.HIGH
        assert fix.estimated_hours == 6
        assert fix.steps[0] == "Create new page at /small-agencies"

    def test_no_landing_page_without_audience(self, acme_config):
        g = gap(
            "Best CRM",
            category=QueryCategory.RECOMMENDATION,
            need=["Create landing page for "],
        )

        assert generate_gap_fixes([g], acme_config) == []

    def test_landing_audience_falls_back_to_target_customer(self, full_config):
        assert landing_page_audience("Best CRM", full_config) == "freelancers"


class TestStandardFixes:

    def test_schema_fixes(self, full_config):
        teardowns = [
            CompetitorTeardown(competitor="Beta", content_signals=ContentSignals(has_faq_schema=True)),
            CompetitorTeardown(competitor="Gamma"),
        ]
        fixes = generate_schema_fixes(full_config, teardowns)

        assert [f.title for f in fixes] == [
            "Add FAQ schema to key pages",
            "Add Organization schema",
            "Add Product schema to product pages",
        ]
        assert [f.potential_wins for f in fixes] == [3, 1, 2]
        assert "1 competitor(s) have this implemented" in fixes[0].description
        org = fixes[1].generated_asset
        assert org.json_ld["areaServed"] == ["Germany"]
        assert org.json_ld["knowsAbout"] == ["Sales pipeline software"]

    def test_llm_txt_content(self, full_config):
        content = generate_llm_txt_content(full_config, today="2024-05-01")

        assert content.startswith("# Acme - AI Context File")
        assert "Acme competes with Beta, Gamma, Delta." in content
        assert "- Support: support@acme.com" in content
        assert "- Sales pipeline software" in content
        assert content.rstrip().endswith("2024-05-01")

    def test_content_fixes(self):
        gaps = [
            gap("Best CRM", QueryCategory.RECOMMENDATION, why=['Targets "crm" in H1', "Uses definitive claims"]),
            gap("Best tool", QueryCategory.RECOMMENDATION, why=["Stronger brand recognition in AI training data"]),
            gap("Top pick", QueryCategory.RECOMMENDATION, why=["Has heading focus"]),
        ]
        fixes = generate_content_fixes(gaps)

        assert [f.title for f in fixes] == ["Add definitive positioning language", "Optimize heading keywords"]
        heading_fix = fixes[1]
        assert heading_fix.potential_wins == 2
        assert heading_fix.steps[1] == "Add target keywords: crm, Top"

    def test_no_content_fixes_without_signals(self):
        assert generate_content_fixes([gap("Acme vs Beta")]) == []


class TestActionPlan:

    def test_plan_with_no_gaps(self, acme_config):
        plan = generate_competitive_action_plan(report(10), [], [], acme_config)

        # three schema fixes plus llm.txt
        assert plan.total_fixes == 4
        assert plan.total_potential_wins == 7
        assert plan.total_hours == 4.5
        assert plan.estimated_impact_percent == 50
        assert plan.estimated_impact == "Could improve win rate by ~50%"
        assert plan.estimated_effort == "~4.5 hours of work"
        assert len(plan.quick_wins) == 4
        assert plan.generated_assets.llm_txt
        assert len(plan.generated_assets.schema_snippets) == 3

    def test_impact_never_above_fifty(self, acme_config):
        gaps = [gap(f"Acme vs Beta {i}") for i in range(40)]
        plan = generate_competitive_action_plan(report(1), gaps, [], acme_config)

        assert plan.estimated_impact_percent == 50

    def test_impact_uncapped_when_small(self, acme_config):
        plan = generate_competitive_action_plan(report(100), [], [], acme_config)

        assert plan.estimated_impact_percent == 7

    def test_plan_links_report(self, acme_config):
        r = report()
        plan = generate_competitive_action_plan(r, [], [], acme_config)

        assert plan.report_id == r.id

    def test_regenerating_creates_new_ids(self, acme_config):
        r = report()
        first = generate_competitive_action_plan(r, [], [], acme_config)
        second = generate_competitive_action_plan(r, [], [], acme_config)

        assert first.id != second.id
        assert {f.id for f in first.all_fixes()}.isdisjoint({f.id for f in second.all_fixes()})

    def test_fix_summary(self, acme_config):
        plan = generate_competitive_action_plan(report(), [], [], acme_config)

        assert get_fix_summary(plan) == "1 critical fix needed. 4 quick wins available."
