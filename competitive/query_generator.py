"""
Competitive Query Generation.
Builds the buyer-style queries a brand should win, in four disjoint families:
recommendation, comparison, validation and feature queries.

Generation is deterministic in content for a given BrandConfig; only ids vary.
"""

from typing import List, Dict

from competitive.brand_profile import primary_competitors
from competitive.competitive_models import (
    BrandConfig, GeneratedQuery, QueryCategory, CATEGORY_ORDER
)


VALIDATION_PATTERNS = [
    ("legit", "Trust verification"),
    ("safe", "Safety check"),
    ("reliable", "Reliability check"),
    ("trustworthy", "Trust assessment"),
    ("good", "Quality check"),
    ("worth it", "Value assessment"),
]

VALIDATION_SUFFIX_QUERIES = [
    ("{brand} reviews", "Social proof"),
    ("{brand} review", "Social proof (singular)"),
    ("{brand} complaints", "Risk assessment"),
    ("{brand} problems", "Issue discovery"),
    ("What is {brand}", "Brand discovery"),
]

FEATURE_PATTERNS = [
    "lowest fees",
    "cheapest",
    "fastest",
    "easiest to use",
    "most secure",
]


def generate_queries(config: BrandConfig) -> List[GeneratedQuery]:
    """
    Generate all competitive queries for a brand configuration.

    Args:
        config: The brand profile, including competitors

    Returns:
        Recommendation, comparison, validation and feature queries, in that order
    """
    queries: List[GeneratedQuery] = []
    queries.extend(generate_recommendation_queries(config))
    queries.extend(generate_comparison_queries(config))
    queries.extend(generate_validation_queries(config))
    queries.extend(generate_feature_queries(config))
    return queries


def generate_recommendation_queries(config: BrandConfig) -> List[GeneratedQuery]:
    """Generate "Best X for Y" queries."""
    queries: List[GeneratedQuery] = []
    competitor_names = [c.name for c in config.competitors]

    def add_query(text: str, intent: str, mentioned: List[str] = None):
        queries.append(GeneratedQuery(
            text=text,
            category=QueryCategory.RECOMMENDATION,
            intent=intent,
            competitors_mentioned=list(competitor_names if mentioned is None else mentioned),
        ))

    category = config.category
    use_case = config.primary_use_case

    add_query(f"Best {category}", "Category exploration")

    if config.target_customer:
        add_query(f"Best {category} for {config.target_customer}", "Targeted solution search")

    if use_case:
        add_query(f"Best {category} for {use_case}", "Use case specific")
        add_query(f"Best way to {use_case.lower()}", "Use case search")

    for geo in config.geography:
        add_query(f"Best {category} in {geo}", "Geography specific")
        if use_case:
            add_query(f"Best way to {use_case.lower()} in {geo}", "Geography + use case")

    for subcategory in config.subcategories:
        add_query(f"Best {subcategory}", "Alternative category framing")
        if config.target_customer:
            add_query(f"Best {subcategory} for {config.target_customer}", "Subcategory + audience")

    for competitor in primary_competitors(config):
        add_query(f"Best alternative to {competitor.name}", "Competitor displacement", [competitor.name])
        add_query(f"{competitor.name} alternatives", "Competitor alternatives search", [competitor.name])

    return queries


def generate_comparison_queries(config: BrandConfig) -> List[GeneratedQuery]:
    """Generate "A vs B" queries."""
    queries: List[GeneratedQuery] = []
    brand = config.brand_name

    def add_query(text: str, intent: str, mentioned: List[str]):
        queries.append(GeneratedQuery(
            text=text,
            category=QueryCategory.COMPARISON,
            intent=intent,
            competitors_mentioned=mentioned,
        ))

    for competitor in config.competitors:
        add_query(f"{brand} vs {competitor.name}", "Direct comparison", [competitor.name])
        add_query(f"{competitor.name} vs {brand}", "Direct comparison (reverse)", [competitor.name])
        add_query(f"{brand} or {competitor.name}", "Choice comparison", [competitor.name])

    primaries = primary_competitors(config)
    if len(primaries) >= 2:
        top_two = [c.name for c in primaries[:2]]
        add_query(f"{brand} vs {' vs '.join(top_two)}", "Multi-way comparison", top_two)
        add_query(f"{top_two[0]} vs {top_two[1]}", "Competitor landscape", list(top_two))

    return queries


def generate_validation_queries(config: BrandConfig) -> List[GeneratedQuery]:
    """Generate "Is X legit?" style trust queries. These never name competitors."""
    brand = config.brand_name
    queries = [
        GeneratedQuery(
            text=f"Is {brand} {suffix}",
            category=QueryCategory.VALIDATION,
            intent=intent,
        )
        for suffix, intent in VALIDATION_PATTERNS
    ]
    queries.extend(
        GeneratedQuery(
            text=template.format(brand=brand),
            category=QueryCategory.VALIDATION,
            intent=intent,
        )
        for template, intent in VALIDATION_SUFFIX_QUERIES
    )
    return queries


def generate_feature_queries(config: BrandConfig) -> List[GeneratedQuery]:
    """Generate capability-specific queries."""
    queries: List[GeneratedQuery] = []
    competitor_names = [c.name for c in config.competitors]

    def add_query(text: str, intent: str):
        queries.append(GeneratedQuery(
            text=text,
            category=QueryCategory.FEATURE,
            intent=intent,
            competitors_mentioned=list(competitor_names),
        ))

    for feature in FEATURE_PATTERNS:
        add_query(f"{config.category} with {feature}", "Feature-specific search")

    if config.primary_use_case:
        add_query(config.primary_use_case, "Direct use case search")
        add_query(f"How to {config.primary_use_case.lower()}", "How-to search")

    if config.target_customer:
        add_query(f"{config.category} for {config.target_customer}", "Audience-specific feature")

    return queries


def deduplicate_queries(queries: List[GeneratedQuery]) -> List[GeneratedQuery]:
    """Keep the first query per case-insensitive, trimmed text."""
    seen = set()
    unique: List[GeneratedQuery] = []
    for query in queries:
        normalized = query.text.lower().strip()
        if normalized in seen:
            continue
        seen.add(normalized)
        unique.append(query)
    return unique


def group_queries_by_category(queries: List[GeneratedQuery]) -> Dict[QueryCategory, List[GeneratedQuery]]:
    """Group queries by category, always in recommendation/comparison/validation/feature order."""
    return {
        category: [q for q in queries if q.category == category]
        for category in CATEGORY_ORDER
    }


def limit_queries_per_category(queries: List[GeneratedQuery], max_per_category: int) -> List[GeneratedQuery]:
    """Truncate each category to its first max_per_category queries, preserving order."""
    limited: List[GeneratedQuery] = []
    for group in group_queries_by_category(queries).values():
        limited.extend(group[:max_per_category])
    return limited


def get_query_summary(queries: List[GeneratedQuery]) -> Dict[str, int]:
    return {
        category.value: len(group)
        for category, group in group_queries_by_category(queries).items()
    }


def filter_queries_by_category(queries: List[GeneratedQuery], category: QueryCategory) -> List[GeneratedQuery]:
    return [q for q in queries if q.category == category]


def get_queries_for_competitor(queries: List[GeneratedQuery], competitor_name: str) -> List[GeneratedQuery]:
    """Queries that list the competitor or name it in their text."""
    name_lower = competitor_name.lower()
    return [
        q for q in queries
        if competitor_name in q.competitors_mentioned or name_lower in q.text.lower()
    ]


def build_query_plan(config: BrandConfig, max_per_category: int) -> List[GeneratedQuery]:
    """Generate, deduplicate and cap queries the way an analysis run consumes them."""
    queries = generate_queries(config)
    queries = deduplicate_queries(queries)
    return limit_queries_per_category(queries, max_per_category)
