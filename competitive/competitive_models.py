"""
Competitive Win/Loss Models.
Defines the data structures shared by every stage of the competitive analysis pipeline.

Fields are snake_case in Python and serialize with the camelCase keys used by
the persisted and exported report format (brandConfig, overallResult, ...).
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any, Union, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id(prefix: str) -> str:
    """Generate a unique identifier with a readable prefix."""
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        frozen=True,
    )


# ============================================
# Enumerations
# ============================================

class QueryCategory(str, Enum):
    RECOMMENDATION = "recommendation"
    COMPARISON = "comparison"
    VALIDATION = "validation"
    FEATURE = "feature"


CATEGORY_ORDER = [
    QueryCategory.RECOMMENDATION,
    QueryCategory.COMPARISON,
    QueryCategory.VALIDATION,
    QueryCategory.FEATURE,
]


class MentionPosition(str, Enum):
    """Prominence of a brand inside an answer, primary highest."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    MENTIONED = "mentioned"
    NONE = "none"


class MentionSentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class WinLossOutcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    PARTIAL = "partial"
    UNCLEAR = "unclear"


class GapDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class FixEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FixSkill(str, Enum):
    CONTENT = "content"
    TECHNICAL = "technical"
    BOTH = "both"


# ============================================
# Brand configuration
# ============================================

class Competitor(FrozenCamelModel):
    """A named competitor. Primary competitors get denser query coverage."""
    id: str = Field(default_factory=lambda: new_id("comp"))
    name: str
    website_url: str = ""
    is_primary: bool = True


class BrandConfig(FrozenCamelModel):
    """The brand profile an analysis runs against. Changed only by copy."""
    id: str = Field(default_factory=lambda: new_id("brand"))
    brand_name: str
    website_url: str = ""
    category: str
    subcategories: List[str] = Field(default_factory=list)
    target_customer: str = ""
    primary_use_case: str = ""
    geography: List[str] = Field(default_factory=list)
    competitors: List[Competitor] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


# ============================================
# Queries and executions
# ============================================

class GeneratedQuery(FrozenCamelModel):
    id: str = Field(default_factory=lambda: new_id("query"))
    text: str
    category: QueryCategory
    intent: str
    competitors_mentioned: List[str] = Field(default_factory=list)


class BrandMention(FrozenCamelModel):
    brand: str
    position: MentionPosition = MentionPosition.NONE
    sentiment: MentionSentiment = MentionSentiment.NEUTRAL
    context: str = ""
    citation_url: Optional[str] = None


class QueryExecution(FrozenCamelModel):
    """One assistant's answer to one query, with the parsed mentions."""
    id: str = Field(default_factory=lambda: new_id("exec"))
    query_id: str
    query_text: str
    model: str
    raw_response: str
    brands_mentioned: List[BrandMention] = Field(default_factory=list)
    winner: Optional[str] = None
    sentiment: Optional[MentionSentiment] = None
    latency_ms: int = 0
    executed_at: str = Field(default_factory=utc_now_iso)


# ============================================
# Win/Loss results and report
# ============================================

class ModelResult(FrozenCamelModel):
    winner: Optional[str] = None
    user_brand_position: MentionPosition = MentionPosition.NONE
    user_brand_sentiment: Optional[MentionSentiment] = None
    competitor_positions: Dict[str, MentionPosition] = Field(default_factory=dict)


class WinLossResult(FrozenCamelModel):
    id: str = Field(default_factory=lambda: new_id("result"))
    query: GeneratedQuery
    executions: List[QueryExecution] = Field(default_factory=list)
    model_results: Dict[str, ModelResult] = Field(default_factory=dict)
    overall_result: WinLossOutcome = WinLossOutcome.UNCLEAR
    winning_brand: Optional[str] = None


class CategoryStats(CamelModel):
    total: int = 0
    wins: int = 0
    losses: int = 0
    partial: int = 0
    win_rate: int = 0


class ModelStats(CamelModel):
    total: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: int = 0
    avg_user_position: float = 5.0


class CompetitorStats(CamelModel):
    competitor: str
    queries_against: int = 0
    wins_against: int = 0
    losses_against: int = 0
    win_rate: int = 0


class CompetitiveReport(FrozenCamelModel):
    id: str = Field(default_factory=lambda: new_id("report"))
    brand_id: str
    created_at: str = Field(default_factory=utc_now_iso)

    total_queries: int = 0
    wins: int = 0
    losses: int = 0
    partial: int = 0
    win_rate: int = 0

    category_breakdown: Dict[str, CategoryStats] = Field(default_factory=dict)
    competitor_breakdown: Dict[str, CompetitorStats] = Field(default_factory=dict)
    model_breakdown: Dict[str, ModelStats] = Field(default_factory=dict)

    biggest_wins: List[WinLossResult] = Field(default_factory=list)
    biggest_losses: List[WinLossResult] = Field(default_factory=list)
    close_calls: List[WinLossResult] = Field(default_factory=list)


# ============================================
# Competitor teardown and gaps
# ============================================

class ContentSignals(CamelModel):
    """AEO-relevant observations about a website. All false/zero when nothing was probed."""
    has_comparison_pages: bool = False
    comparison_pages_found: List[str] = Field(default_factory=list)
    has_faq_schema: bool = False
    faq_pages_found: List[str] = Field(default_factory=list)
    has_product_schema: bool = False
    has_organization_schema: bool = False
    has_llm_txt: bool = False
    avg_word_count: int = 0
    uses_comparison_tables: bool = False
    uses_definitive_language: bool = False
    has_target_audience_pages: bool = False
    has_pricing_transparency: bool = False
    has_trust_signals: bool = False


class KeywordPresence(CamelModel):
    keyword: str
    count: int = 0
    in_h1: bool = False
    in_h2: bool = False
    in_first_paragraph: bool = False


class CompetitorTeardown(CamelModel):
    id: str = Field(default_factory=lambda: new_id("teardown"))
    competitor: str
    website_url: str = ""
    content_signals: ContentSignals = Field(default_factory=ContentSignals)
    keyword_presence: Dict[str, KeywordPresence] = Field(default_factory=dict)
    advantages: List[str] = Field(default_factory=list)
    analyzed_at: str = Field(default_factory=utc_now_iso)


class QueryGap(CamelModel):
    id: str = Field(default_factory=lambda: new_id("gap"))
    query: str
    query_category: QueryCategory
    winning_competitor: str
    why_they_win: List[str] = Field(default_factory=list)
    what_you_need: List[str] = Field(default_factory=list)
    difficulty: GapDifficulty = GapDifficulty.EASY
    priority: int = Field(default=5, ge=0, le=10)


# ============================================
# Action plan and generated assets
# ============================================

class OutlineSection(CamelModel):
    heading: str
    content_guidance: str


class ComparisonPageOutline(FrozenCamelModel):
    type: Literal["comparison"] = "comparison"
    target_query: str
    suggested_url: str
    h1: str
    sections: List[OutlineSection] = Field(default_factory=list)
    schema_to_include: Dict[str, Any] = Field(default_factory=dict)


class SchemaSnippet(FrozenCamelModel):
    type: Literal["schema"] = "schema"
    schema_type: str
    target_page: str
    json_ld: Dict[str, Any] = Field(default_factory=dict)
    queries_this_helps: List[str] = Field(default_factory=list)


class ContentRewrite(FrozenCamelModel):
    type: Literal["rewrite"] = "rewrite"
    target_page: str
    current_issue: str
    suggested_rewrite: str
    queries_this_helps: List[str] = Field(default_factory=list)


GeneratedAsset = Union[ComparisonPageOutline, SchemaSnippet, ContentRewrite, str]


class Fix(FrozenCamelModel):
    id: str = Field(default_factory=lambda: new_id("fix"))
    title: str
    description: str
    queries_affected: List[str] = Field(default_factory=list)
    potential_wins: int = 0
    effort: FixEffort = FixEffort.MEDIUM
    estimated_hours: float = 0
    skill_required: FixSkill = FixSkill.CONTENT
    steps: List[str] = Field(default_factory=list)
    generated_asset: Optional[GeneratedAsset] = None
    asset_type: Optional[Literal["comparison", "schema", "rewrite", "llmtxt"]] = None


class GeneratedAssets(FrozenCamelModel):
    comparison_page_outlines: List[ComparisonPageOutline] = Field(default_factory=list)
    schema_snippets: List[SchemaSnippet] = Field(default_factory=list)
    llm_txt: str = ""
    content_rewrites: List[ContentRewrite] = Field(default_factory=list)


class CompetitiveActionPlan(FrozenCamelModel):
    id: str = Field(default_factory=lambda: new_id("plan"))
    report_id: str
    created_at: str = Field(default_factory=utc_now_iso)

    total_fixes: int = 0
    estimated_impact: str = ""
    estimated_effort: str = ""
    total_potential_wins: int = 0
    total_hours: float = 0
    estimated_impact_percent: int = Field(default=0, ge=0, le=50)

    critical_fixes: List[Fix] = Field(default_factory=list)
    high_priority_fixes: List[Fix] = Field(default_factory=list)
    medium_priority_fixes: List[Fix] = Field(default_factory=list)
    low_priority_fixes: List[Fix] = Field(default_factory=list)
    quick_wins: List[Fix] = Field(default_factory=list)

    generated_assets: GeneratedAssets = Field(default_factory=GeneratedAssets)

    def all_fixes(self) -> List[Fix]:
        """Every fix once, in bucket order (quick wins overlap the other buckets)."""
        return (
            self.critical_fixes + self.high_priority_fixes
            + self.medium_priority_fixes + self.low_priority_fixes
        )


# ============================================
# Run output, progress and persistence shapes
# ============================================

class AnalysisProgress(CamelModel):
    stage: Literal["generating", "executing", "analyzing", "complete", "cancelled"]
    current_query: Optional[int] = None
    total_queries: Optional[int] = None
    current_model: Optional[str] = None
    message: str = ""
    win_rate: Optional[int] = None


class CompetitiveAnalysis(CamelModel):
    """Everything a run produces."""
    brand_config: BrandConfig
    report: CompetitiveReport
    results: List[WinLossResult] = Field(default_factory=list)
    gaps: List[QueryGap] = Field(default_factory=list)
    action_plan: CompetitiveActionPlan
    teardowns: List[CompetitorTeardown] = Field(default_factory=list)
    cancelled: bool = False


class AnalysisSnapshot(CamelModel):
    """The persisted shape of a run, keyed by brand id."""
    brand_config: BrandConfig
    report: CompetitiveReport
    results: List[WinLossResult] = Field(default_factory=list)
    action_plan: CompetitiveActionPlan
    saved_at: str = Field(default_factory=utc_now_iso)


class AnalysisIndexEntry(CamelModel):
    brand_id: str
    brand_name: str
    report_id: str
    win_rate: int = 0
    total_queries: int = 0
    created_at: str


# ============================================
# Monitoring
# ============================================

class AlertThresholds(CamelModel):
    win_rate_drop_percent: int = 10
    new_loss: bool = True
    competitor_gain: bool = True


class Alert(CamelModel):
    id: str = Field(default_factory=lambda: new_id("alert"))
    type: Literal["win_rate_drop", "new_loss", "competitor_gain"]
    severity: Literal["critical", "warning", "info"]
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now_iso)


class CompetitorChange(CamelModel):
    competitor: str
    change: Literal["gained", "lost"]
    queries: List[str] = Field(default_factory=list)


class MonitoringChanges(CamelModel):
    win_rate_change: int = 0
    new_wins: List[WinLossResult] = Field(default_factory=list)
    new_losses: List[WinLossResult] = Field(default_factory=list)
    competitor_changes: List[CompetitorChange] = Field(default_factory=list)


class MonitoringResult(CamelModel):
    id: str = Field(default_factory=lambda: new_id("monitor"))
    brand_id: str
    report_id: str
    checked_at: str = Field(default_factory=utc_now_iso)
    current_win_rate: int = 0
    current_wins: int = 0
    current_losses: int = 0
    changes: MonitoringChanges = Field(default_factory=MonitoringChanges)
    alerts_triggered: List[Alert] = Field(default_factory=list)
