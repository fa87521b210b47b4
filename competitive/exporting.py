"""
Export helpers for saved analyses: verbatim JSON and a Markdown action plan.
"""

import json
from typing import List

from competitive.action_plan import format_hours
from competitive.competitive_models import AnalysisSnapshot, CompetitiveActionPlan, Fix, utc_now_iso


def export_analysis_as_json(snapshot: AnalysisSnapshot) -> str:
    """Brand config, report, results and action plan as indented JSON, stamped with exportedAt."""
    payload = {
        "brandConfig": snapshot.brand_config.to_dict(),
        "report": snapshot.report.to_dict(),
        "results": [r.to_dict() for r in snapshot.results],
        "actionPlan": snapshot.action_plan.to_dict(),
        "exportedAt": utc_now_iso(),
    }
    return json.dumps(payload, indent=2)


def _render_fix_section(title: str, fixes: List[Fix]) -> str:
    if not fixes:
        return ""

    md = f"## {title}\n\n"
    for fix in fixes:
        md += f"### {fix.title}\n\n"
        md += f"{fix.description}\n\n"
        md += f"- **Effort:** {fix.effort.value} (~{format_hours(fix.estimated_hours)} hours)\n"
        md += f"- **Potential Wins:** {fix.potential_wins} queries\n"
        md += f"- **Skill Required:** {fix.skill_required.value}\n\n"
        md += "**Steps:**\n"
        for i, step in enumerate(fix.steps, 1):
            md += f"{i}. {step}\n"
        md += "\n"
    return md


def export_action_plan_as_markdown(plan: CompetitiveActionPlan, brand_name: str) -> str:
    """
    Render the action plan as a Markdown document.

    Sections appear in the order Quick Wins, Critical Fixes, High Priority,
    Medium Priority; empty sections are left out.
    """
    md = f"# {brand_name} - AI Competitive Action Plan\n\n"
    md += f"Generated: {plan.created_at[:10]}\n\n"
    md += "## Summary\n\n"
    md += f"- **Total Fixes:** {plan.total_fixes}\n"
    md += f"- **Estimated Impact:** {plan.estimated_impact}\n"
    md += f"- **Estimated Effort:** {plan.estimated_effort}\n\n"

    md += _render_fix_section("🔥 Quick Wins", plan.quick_wins)
    md += _render_fix_section("🔴 Critical Fixes", plan.critical_fixes)
    md += _render_fix_section("🟡 High Priority", plan.high_priority_fixes)
    md += _render_fix_section("🟢 Medium Priority", plan.medium_priority_fixes)
    return md
