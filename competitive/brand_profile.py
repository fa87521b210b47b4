"""
Brand profile helpers.
Creates BrandConfig records and edits their competitor list by copy.
"""

from typing import List, Optional

from competitive.competitive_models import BrandConfig, Competitor, utc_now_iso


def normalize_url(url: str) -> str:
    """Prefix https:// onto bare domains. Empty stays empty."""
    url = (url or "").strip()
    if not url:
        return ""
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def create_brand_config(
    brand_name: str,
    website_url: str,
    category: str,
    subcategories: Optional[List[str]] = None,
    target_customer: str = "",
    primary_use_case: str = "",
    geography: Optional[List[str]] = None,
    competitors: Optional[List[Competitor]] = None,
) -> BrandConfig:
    """
    Create a new brand configuration.

    Optional fields default to empty values; empty values simply suppress the
    queries and fixes that would depend on them.
    """
    return BrandConfig(
        brand_name=brand_name.strip(),
        website_url=normalize_url(website_url),
        category=category.strip(),
        subcategories=[s.strip() for s in (subcategories or []) if s.strip()],
        target_customer=(target_customer or "").strip(),
        primary_use_case=(primary_use_case or "").strip(),
        geography=[g.strip() for g in (geography or []) if g.strip()],
        competitors=list(competitors or []),
    )


def add_competitor(
    config: BrandConfig,
    name: str,
    website_url: str = "",
    is_primary: bool = True,
) -> BrandConfig:
    """Return a copy of config with one more competitor appended."""
    competitor = Competitor(
        name=name.strip(),
        website_url=normalize_url(website_url),
        is_primary=is_primary,
    )
    return config.model_copy(update={
        "competitors": [*config.competitors, competitor],
        "updated_at": utc_now_iso(),
    })


def remove_competitor(config: BrandConfig, competitor_id: str) -> BrandConfig:
    """Return a copy of config without the competitor carrying competitor_id."""
    return config.model_copy(update={
        "competitors": [c for c in config.competitors if c.id != competitor_id],
        "updated_at": utc_now_iso(),
    })


def all_brand_names(config: BrandConfig) -> List[str]:
    """The user's brand followed by every competitor, in configured order."""
    return [config.brand_name] + [c.name for c in config.competitors]


def primary_competitors(config: BrandConfig) -> List[Competitor]:
    return [c for c in config.competitors if c.is_primary]
