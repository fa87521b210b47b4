"""
Competitive Action Plan Generator.
Turns query gaps and competitor teardowns into prioritized fixes, each with an
effort estimate and, where possible, a ready-to-use asset: comparison page
outlines, JSON-LD schema snippets and an llm.txt brand context file.

Assets are filled from templates. Nothing here calls an LLM.
"""

import re
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from competitive.competitive_models import (
    BrandConfig, CompetitiveActionPlan, CompetitiveReport, CompetitorTeardown,
    ComparisonPageOutline, ContentRewrite, Fix, FixEffort, FixSkill, GeneratedAssets,
    OutlineSection, QueryCategory, QueryGap, SchemaSnippet,
)
from competitive.win_loss import percent

MAX_IMPACT_PERCENT = 50


def format_hours(hours: float) -> str:
    """Render 4.0 as "4" and 0.5 as "0.5"."""
    return f"{hours:g}"


def generate_competitive_action_plan(
    report: CompetitiveReport,
    gaps: List[QueryGap],
    teardowns: List[CompetitorTeardown],
    brand_config: BrandConfig,
) -> CompetitiveActionPlan:
    """
    Build the full action plan for one analysis.

    Args:
        report: The competitive report the plan belongs to
        gaps: Prioritized query gaps
        teardowns: Competitor teardowns, used for schema fix descriptions
        brand_config: The analysed brand

    Returns:
        CompetitiveActionPlan with bucketed fixes and generated assets
    """
    fixes: List[Fix] = []
    fixes.extend(generate_gap_fixes(gaps, brand_config))
    fixes.extend(generate_schema_fixes(brand_config, teardowns))
    fixes.append(generate_llm_txt_fix(brand_config))
    fixes.extend(generate_content_fixes(gaps))

    buckets = bucket_fixes(fixes)

    total_potential_wins = sum(f.potential_wins for f in fixes)
    total_hours = sum(f.estimated_hours for f in fixes)
    impact_percent = min(
        percent(total_potential_wins, max(report.total_queries, 1)),
        MAX_IMPACT_PERCENT,
    )

    return CompetitiveActionPlan(
        report_id=report.id,
        total_fixes=len(fixes),
        estimated_impact=f"Could improve win rate by ~{impact_percent}%",
        estimated_effort=f"~{format_hours(total_hours)} hours of work",
        total_potential_wins=total_potential_wins,
        total_hours=total_hours,
        estimated_impact_percent=impact_percent,
        critical_fixes=buckets["critical"],
        high_priority_fixes=buckets["high"],
        medium_priority_fixes=buckets["medium"],
        low_priority_fixes=buckets["low"],
        quick_wins=buckets["quick_wins"],
        generated_assets=generate_all_assets(fixes, brand_config),
    )


def bucket_fixes(fixes: List[Fix]) -> Dict[str, List[Fix]]:
    """
    Split fixes into critical/high/medium/low plus the overlapping quick wins.

    critical: potential_wins >= 3 or five or more affected queries
    high: potential_wins >= 2
    medium: medium effort
    low: everything else
    quick_wins: at least one potential win at low effort
    """
    buckets: Dict[str, List[Fix]] = {"critical": [], "high": [], "medium": [], "low": []}
    for fix in fixes:
        if fix.potential_wins >= 3 or len(fix.queries_affected) >= 5:
            buckets["critical"].append(fix)
        elif fix.potential_wins >= 2:
            buckets["high"].append(fix)
        elif fix.effort == FixEffort.MEDIUM:
            buckets["medium"].append(fix)
        else:
            buckets["low"].append(fix)

    buckets["quick_wins"] = [
        f for f in fixes
        if f.potential_wins >= 1 and f.effort == FixEffort.LOW
    ]
    return buckets


# ============================================
# Fix generators
# ============================================

def generate_gap_fixes(gaps: List[QueryGap], brand_config: BrandConfig) -> List[Fix]:
    """Comparison-page fixes per competitor and landing-page fixes per audience gap."""
    fixes: List[Fix] = []
    seen_pages = set()
    brand = brand_config.brand_name

    for gap in gaps:
        if gap.query_category == QueryCategory.COMPARISON and " vs " in gap.query.lower():
            competitor = gap.winning_competitor
            page_key = f"{brand}-vs-{competitor}".lower()
            if page_key not in seen_pages:
                seen_pages.add(page_key)
                affected = [
                    g.query for g in gaps
                    if g.winning_competitor == competitor and g.query_category == QueryCategory.COMPARISON
                ]
                fixes.append(Fix(
                    title=f"Create comparison page: {brand} vs {competitor}",
                    description=(
                        f'You\'re losing "{gap.query}" queries because {competitor} '
                        "may have comparison content and you don't."
                    ),
                    queries_affected=affected,
                    potential_wins=len(affected),
                    effort=FixEffort.MEDIUM,
                    estimated_hours=4,
                    skill_required=FixSkill.CONTENT,
                    steps=[
                        f"Create new page at {comparison_page_url(brand, competitor)}",
                        "Include H1 with exact comparison phrase",
                        "Add feature comparison table",
                        "Include pricing comparison",
                        "Add FAQ section with comparison questions",
                        "Implement FAQPage schema",
                    ],
                    generated_asset=generate_comparison_page_outline(gap, brand_config),
                    asset_type="comparison",
                ))

        if gap.query_category == QueryCategory.RECOMMENDATION and any("landing page" in n for n in gap.what_you_need):
            audience = landing_page_audience(gap.query, brand_config)
            if not audience:
                continue
            slug = re.sub(r"\s+", "-", audience.lower())
            fixes.append(Fix(
                title=f"Create landing page for {audience}",
                description=(
                    f'You\'re losing "{gap.query}" because competitors have dedicated pages for this audience.'
                ),
                queries_affected=[gap.query],
                potential_wins=1,
                effort=FixEffort.HIGH,
                estimated_hours=6,
                skill_required=FixSkill.CONTENT,
                steps=[
                    f"Create new page at /{slug}",
                    f'Include H1 targeting "{audience}"',
                    "Add use cases specific to this audience",
                    "Include testimonials from this audience",
                    "Add FAQ section",
                    "Implement FAQPage schema",
                ],
            ))

    return fixes


def comparison_page_url(brand: str, competitor: str) -> str:
    return f"/compare/{brand.lower()}-vs-{competitor.lower()}"


def landing_page_audience(query: str, brand_config: BrandConfig) -> str:
    """The trailing "for X" of the query, else the configured target customer."""
    match = re.search(r"for (.+)$", query, re.IGNORECASE)
    return match.group(1) if match else brand_config.target_customer


def generate_schema_fixes(brand_config: BrandConfig, teardowns: List[CompetitorTeardown]) -> List[Fix]:
    """The three schema fixes every plan carries: FAQPage, Organization and Product."""
    with_faq = sum(1 for t in teardowns if t.content_signals.has_faq_schema)
    with_product = sum(1 for t in teardowns if t.content_signals.has_product_schema)

    return [
        Fix(
            title="Add FAQ schema to key pages",
            description=(
                "FAQ schema helps AI models extract Q&A pairs about your product. "
                f"{with_faq} competitor(s) have this implemented."
            ),
            queries_affected=["All recommendation queries", "All validation queries"],
            potential_wins=3,
            effort=FixEffort.LOW,
            estimated_hours=2,
            skill_required=FixSkill.TECHNICAL,
            steps=[
                "Add FAQPage schema to homepage",
                "Add FAQPage schema to pricing page",
                "Add FAQPage schema to product pages",
                "Test with Google Rich Results Test",
            ],
            generated_asset=generate_faq_schema_snippet(brand_config),
            asset_type="schema",
        ),
        Fix(
            title="Add Organization schema",
            description="Organization schema helps AI understand your company identity and builds trust signals.",
            queries_affected=["All validation queries", "Brand queries"],
            potential_wins=1,
            effort=FixEffort.LOW,
            estimated_hours=1,
            skill_required=FixSkill.TECHNICAL,
            steps=[
                "Add Organization schema to all pages (in <head>)",
                "Include name, URL, description, founding date",
                "Add social media links",
                "Test with Google Rich Results Test",
            ],
            generated_asset=generate_organization_schema_snippet(brand_config),
            asset_type="schema",
        ),
        Fix(
            title="Add Product schema to product pages",
            description=(
                "Product schema helps AI understand your offering. "
                f"{with_product} competitor(s) have this."
            ),
            queries_affected=["Feature queries", "Recommendation queries"],
            potential_wins=2,
            effort=FixEffort.LOW,
            estimated_hours=1,
            skill_required=FixSkill.TECHNICAL,
            steps=[
                "Add Product schema to main product page",
                "Include name, description, brand, category",
                "Add audience information",
                "Test with Google Rich Results Test",
            ],
            generated_asset=generate_product_schema_snippet(brand_config),
            asset_type="schema",
        ),
    ]


def generate_llm_txt_fix(brand_config: BrandConfig) -> Fix:
    return Fix(
        title="Add llm.txt file",
        description="Machine-readable brand context file for AI crawlers. Quick win that helps all queries.",
        queries_affected=["All queries"],
        potential_wins=1,
        effort=FixEffort.LOW,
        estimated_hours=0.5,
        skill_required=FixSkill.TECHNICAL,
        steps=[
            "Create /llm.txt file in your public directory",
            "Add brand context, use cases, differentiators",
            "Include competitive positioning",
            "Deploy to production",
        ],
        generated_asset=generate_llm_txt_content(brand_config),
        asset_type="llmtxt",
    )


def _heading_keyword(gap: QueryGap) -> str:
    quoted = next((w for w in gap.why_they_win if '"' in w), None)
    if quoted:
        match = re.search(r'"([^"]+)"', quoted)
        if match:
            return match.group(1)
    return gap.query.split(" ")[0]


def generate_content_fixes(gaps: List[QueryGap]) -> List[Fix]:
    """Copy fixes triggered by definitive-language and heading-keyword gaps."""
    fixes: List[Fix] = []

    definitive_gaps = [g for g in gaps if any("definitive" in w for w in g.why_they_win)]
    if definitive_gaps:
        fixes.append(Fix(
            title="Add definitive positioning language",
            description=(
                "Competitors use definitive claims like 'best', 'leading', '#1'. "
                "Consider adding factual, defensible claims."
            ),
            queries_affected=[g.query for g in definitive_gaps],
            potential_wins=2,
            effort=FixEffort.LOW,
            estimated_hours=1,
            skill_required=FixSkill.CONTENT,
            steps=[
                "Review homepage and product page copy",
                "Add factual, defensible positioning statements",
                "Use phrases like 'built for [audience]', 'designed for [use case]'",
                "Avoid unsubstantiated superlatives",
            ],
        ))

    keyword_gaps = [
        g for g in gaps
        if any("H1" in w or "heading" in w for w in g.why_they_win)
    ]
    if keyword_gaps:
        keywords: List[str] = []
        for gap in keyword_gaps:
            keyword = _heading_keyword(gap)
            if keyword not in keywords:
                keywords.append(keyword)

        fixes.append(Fix(
            title="Optimize heading keywords",
            description=(
                "Competitors target key terms in their H1/H2 headings. "
                f"Consider adding: {', '.join(keywords[:3])}"
            ),
            queries_affected=[g.query for g in keyword_gaps],
            potential_wins=len(keyword_gaps),
            effort=FixEffort.LOW,
            estimated_hours=1,
            skill_required=FixSkill.CONTENT,
            steps=[
                "Audit current H1 and H2 headings",
                f"Add target keywords: {', '.join(keywords)}",
                "Ensure headings match user search intent",
                "Keep headings natural and readable",
            ],
        ))

    return fixes


# ============================================
# Asset templates
# ============================================

def _faq_question(name: str, answer: str) -> Dict[str, Any]:
    return {
        "@type": "Question",
        "name": name,
        "acceptedAnswer": {"@type": "Answer", "text": answer},
    }


def generate_comparison_page_outline(gap: QueryGap, brand_config: BrandConfig) -> ComparisonPageOutline:
    """Eight-section outline for a "{brand} vs {competitor}" page, with FAQPage JSON-LD."""
    brand = brand_config.brand_name
    competitor = gap.winning_competitor
    audience = brand_config.target_customer
    use_case = brand_config.primary_use_case

    sections = [
        OutlineSection(
            heading="Quick Comparison",
            content_guidance=(
                "Add a comparison table with key features: pricing, fees, supported regions, key features. "
                "Be factual and fair, and acknowledge competitor strengths."
            ),
        ),
        OutlineSection(
            heading=f"What is {brand}?",
            content_guidance="2-3 sentences defining your product. Lead with what you do, not marketing language.",
        ),
        OutlineSection(
            heading=f"What is {competitor}?",
            content_guidance="2-3 sentences fairly describing the competitor. Be accurate, AI will fact-check.",
        ),
        OutlineSection(
            heading="Key Differences",
            content_guidance="Bullet list of 5-7 differences. Focus on factual differences, not subjective claims.",
        ),
        OutlineSection(
            heading=f"Who Should Choose {brand}?",
            content_guidance=f"Describe your ideal customer. Be specific: '{audience} who need {use_case}.'",
        ),
        OutlineSection(
            heading=f"Who Should Choose {competitor}?",
            content_guidance=(
                "Be fair and acknowledge when the competitor is a better fit. "
                "This builds trust and AI models reward balanced content."
            ),
        ),
        OutlineSection(
            heading="Pricing Comparison",
            content_guidance="Side-by-side pricing. Include specific numbers. Update regularly.",
        ),
        OutlineSection(
            heading="Frequently Asked Questions",
            content_guidance="5-10 FAQs comparing the two. This gets extracted by AI.",
        ),
    ]

    schema = {
        "@context": "https://schema.org",
        "@type": "FAQPage",
        "mainEntity": [
            _faq_question(
                f"Is {brand} better than {competitor}?",
                f"{brand} is better for {audience} who need {use_case}. "
                f"{competitor} may be better for users who need [specific competitor strength].",
            ),
            _faq_question(
                f"What is the difference between {brand} and {competitor}?",
                f"The main differences are: [list key differences]. {brand} focuses on [your focus], "
                f"while {competitor} focuses on [their focus].",
            ),
            _faq_question(
                f"{brand} vs {competitor} - which has lower fees?",
                "[Compare specific fee structures]",
            ),
        ],
    }

    return ComparisonPageOutline(
        target_query=gap.query,
        suggested_url=comparison_page_url(brand, competitor),
        h1=f"{brand} vs {competitor}: Which is Better for {audience}?",
        sections=sections,
        schema_to_include=schema,
    )


def generate_faq_schema_snippet(brand_config: BrandConfig) -> SchemaSnippet:
    brand = brand_config.brand_name
    audience = brand_config.target_customer
    use_case = brand_config.primary_use_case

    return SchemaSnippet(
        schema_type="FAQPage",
        target_page="Homepage and key product pages",
        json_ld={
            "@context": "https://schema.org",
            "@type": "FAQPage",
            "mainEntity": [
                _faq_question(
                    f"What is {brand}?",
                    f"{brand} is a {brand_config.category} designed for {audience}. It enables {use_case}.",
                ),
                _faq_question(
                    f"Who is {brand} for?",
                    f"{brand} is built for {audience} who need to {use_case}.",
                ),
                _faq_question(
                    f"Is {brand} safe?",
                    f"Yes, {brand} is [add your security credentials and regulatory status here].",
                ),
                _faq_question(
                    f"How does {brand} work?",
                    "[Explain your product's core functionality in 2-3 sentences]",
                ),
            ],
        },
        queries_this_helps=["What is X", "Who is X for", "Is X safe", "How does X work"],
    )


def generate_organization_schema_snippet(brand_config: BrandConfig) -> SchemaSnippet:
    return SchemaSnippet(
        schema_type="Organization",
        target_page="All pages (in <head>)",
        json_ld={
            "@context": "https://schema.org",
            "@type": "Organization",
            "name": brand_config.brand_name,
            "url": brand_config.website_url,
            "description": f"{brand_config.category} for {brand_config.target_customer}",
            "foundingDate": "[Add founding year]",
            "areaServed": list(brand_config.geography),
            "knowsAbout": list(brand_config.subcategories),
            "sameAs": [
                "[Add Twitter URL]",
                "[Add LinkedIn URL]",
                "[Add other social profiles]",
            ],
        },
        queries_this_helps=["Validation queries", "Brand queries", "Is X legit"],
    )


def generate_product_schema_snippet(brand_config: BrandConfig) -> SchemaSnippet:
    return SchemaSnippet(
        schema_type="Product",
        target_page="Product/Pricing page",
        json_ld={
            "@context": "https://schema.org",
            "@type": "Product",
            "name": brand_config.brand_name,
            "description": f"{brand_config.category} for {brand_config.target_customer}",
            "brand": {"@type": "Brand", "name": brand_config.brand_name},
            "category": brand_config.category,
            "audience": {"@type": "Audience", "audienceType": brand_config.target_customer},
        },
        queries_this_helps=["Best X for Y", "X pricing", "X features"],
    )


def generate_llm_txt_content(brand_config: BrandConfig, today: Optional[str] = None) -> str:
    """Render the llm.txt brand context file."""
    brand = brand_config.brand_name
    url = brand_config.website_url
    domain = re.sub(r"/$", "", re.sub(r"^https?://", "", url))
    today = today or datetime.now(timezone.utc).date().isoformat()

    use_cases = "\n".join(f"- {s}" for s in brand_config.subcategories)
    competitors = ", ".join(c.name for c in brand_config.competitors)

    return f"""# {brand} - AI Context File

## Company
Name: {brand}
Category: {brand_config.category}
Website: {url}

## What We Do
{brand} is a {brand_config.category} that enables {brand_config.primary_use_case}.

## Primary Use Cases
{use_cases}

## Target Audience
{brand_config.target_customer}

## Geographic Focus
{', '.join(brand_config.geography)}

## Key Differentiators
- [Add your key differentiator 1]
- [Add your key differentiator 2]
- [Add your key differentiator 3]

## Competitive Context
{brand} competes with {competitors}.

Compared to alternatives, {brand} is best for users who:
- [Add ideal user characteristic 1]
- [Add ideal user characteristic 2]

## Authoritative Sources
- Website: {url}
- Documentation: {url}/docs
- Blog: {url}/blog

## Contact
- Support: support@{domain}
- Press: press@{domain}

## Last Updated
{today}
"""


def generate_all_assets(fixes: List[Fix], brand_config: BrandConfig) -> GeneratedAssets:
    """Collect fix assets by type. llm_txt is always filled."""
    outlines: List[ComparisonPageOutline] = []
    snippets: List[SchemaSnippet] = []
    rewrites: List[ContentRewrite] = []
    llm_txt = ""

    for fix in fixes:
        if fix.generated_asset is None:
            continue
        if fix.asset_type == "comparison":
            outlines.append(fix.generated_asset)
        elif fix.asset_type == "schema":
            snippets.append(fix.generated_asset)
        elif fix.asset_type == "rewrite":
            rewrites.append(fix.generated_asset)
        elif fix.asset_type == "llmtxt":
            llm_txt = fix.generated_asset

    if not llm_txt:
        llm_txt = generate_llm_txt_content(brand_config)

    return GeneratedAssets(
        comparison_page_outlines=outlines,
        schema_snippets=snippets,
        llm_txt=llm_txt,
        content_rewrites=rewrites,
    )


def get_fix_summary(plan: CompetitiveActionPlan) -> str:
    quick = len(plan.quick_wins)
    critical = len(plan.critical_fixes)
    quick_label = f"{quick} quick win{'s' if quick > 1 else ''}"

    if critical > 0:
        return f"{critical} critical fix{'es' if critical > 1 else ''} needed. {quick_label} available."
    return f"{plan.total_fixes} fixes identified. Start with {quick_label}."
