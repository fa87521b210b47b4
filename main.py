"""
Competitive Win/Loss Engine
FastAPI application exposing query preview, analysis runs and saved analyses.
"""

import logging
import os
from typing import List, Optional

from fastapi import BackgroundTasks, FastAPI, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import Field

from competitive.competitive_hub import AskModel, run_competitive_analysis
from competitive.competitive_models import BrandConfig, CamelModel
from competitive.competitor_teardown import ContentSignalProbe, NullContentSignalProbe
from competitive.config import (
    MAX_QUERIES_PER_CATEGORY, AnalysisOptions, ProviderSettings,
    get_enabled_models, load_provider_settings,
)
from competitive.errors import AnalysisNotFoundError
from competitive.exporting import export_action_plan_as_markdown, export_analysis_as_json
from competitive.mention_parser import ParseWithLLM
from competitive.model_clients import build_ask_model, build_parse_with_llm
from competitive.monitoring import build_monitoring_result, compare_results, evaluate_alerts
from competitive.query_generator import build_query_plan, get_query_summary
from competitive.storage import ReportStore, SqlReportStore

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Competitive Win/Loss Engine")

_store: Optional[SqlReportStore] = None


class AnalyzeRequest(CamelModel):
    brand_config: BrandConfig
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)


def get_settings() -> ProviderSettings:
    return load_provider_settings()


def get_store() -> ReportStore:
    global _store
    if _store is None:
        _store = SqlReportStore()
        _store.init_db()
    return _store


def get_enabled_model_list(settings: ProviderSettings = Depends(get_settings)) -> List[str]:
    return get_enabled_models(settings)


def get_ask_model(settings: ProviderSettings = Depends(get_settings)) -> Optional[AskModel]:
    if not get_enabled_models(settings):
        return None
    return build_ask_model(settings)


def get_parse_with_llm(settings: ProviderSettings = Depends(get_settings)) -> Optional[ParseWithLLM]:
    return build_parse_with_llm(settings)


def get_probe() -> ContentSignalProbe:
    return NullContentSignalProbe()


@app.on_event("startup")
async def startup():
    settings = load_provider_settings()
    logger.info("Enabled assistants: %s", get_enabled_models(settings) or "none")


@app.post("/api/competitive/queries/preview")
async def preview_queries(
    brand_config: BrandConfig,
    max_per_category: int = Query(MAX_QUERIES_PER_CATEGORY, ge=1),
):
    """Show the queries an analysis would run, without calling any assistant."""
    queries = build_query_plan(brand_config, max_per_category)
    return JSONResponse({
        "total": len(queries),
        "summary": get_query_summary(queries),
        "queries": [q.to_dict() for q in queries],
    })


@app.post("/api/competitive/analyze")
async def analyze(
    body: AnalyzeRequest,
    store: ReportStore = Depends(get_store),
    ask_model: Optional[AskModel] = Depends(get_ask_model),
    parse_with_llm: Optional[ParseWithLLM] = Depends(get_parse_with_llm),
    enabled_models: List[str] = Depends(get_enabled_model_list),
    probe: ContentSignalProbe = Depends(get_probe),
):
    """
    Run a full competitive analysis and save it.

    When options.models is not given, every assistant with a configured key
    is queried. If a previous analysis exists for the brand, the response also
    carries a monitoring diff against it. The request stays open for the
    whole run; POST /api/competitive/analyze/background returns at once.
    """
    options = resolve_options(body.options, enabled_models)
    if ask_model is None or not options.models:
        return JSONResponse({"error": "No AI provider is configured"}, status_code=503)

    payload = await run_and_compare(body.brand_config, ask_model, parse_with_llm, options, probe, store)
    return JSONResponse(payload)


@app.post("/api/competitive/analyze/background")
async def analyze_in_background(
    body: AnalyzeRequest,
    background_tasks: BackgroundTasks,
    store: ReportStore = Depends(get_store),
    ask_model: Optional[AskModel] = Depends(get_ask_model),
    parse_with_llm: Optional[ParseWithLLM] = Depends(get_parse_with_llm),
    enabled_models: List[str] = Depends(get_enabled_model_list),
    probe: ContentSignalProbe = Depends(get_probe),
):
    """
    Start an analysis without holding the request open.

    A full run asks every model every query with a delay between calls, which
    can take several minutes. The saved result appears under
    GET /api/competitive/analyses/{brand_id} once the run finishes.
    """
    options = resolve_options(body.options, enabled_models)
    if ask_model is None or not options.models:
        return JSONResponse({"error": "No AI provider is configured"}, status_code=503)

    brand_config = body.brand_config
    background_tasks.add_task(
        run_analysis_background, brand_config, ask_model, parse_with_llm, options, probe, store,
    )
    return JSONResponse({"brandId": brand_config.id, "status": "started"}, status_code=202)


def resolve_options(options: AnalysisOptions, enabled_models: List[str]) -> AnalysisOptions:
    """Default the model list to every assistant with a configured key."""
    if "models" not in options.model_fields_set:
        options = options.model_copy(update={"models": enabled_models})
    return options


async def run_and_compare(
    brand_config: BrandConfig,
    ask_model: AskModel,
    parse_with_llm: Optional[ParseWithLLM],
    options: AnalysisOptions,
    probe: ContentSignalProbe,
    store: ReportStore,
) -> dict:
    """Run and save an analysis; attach a monitoring diff when an earlier run exists."""
    try:
        previous = store.load_analysis(brand_config.id)
    except AnalysisNotFoundError:
        previous = None

    analysis = await run_competitive_analysis(
        brand_config,
        ask_model,
        parse_with_llm,
        options=options,
        probe=probe,
        store=store,
    )

    payload = analysis.to_dict()
    if previous is not None:
        changes = compare_results(previous.report, previous.results, analysis.report, analysis.results)
        alerts = evaluate_alerts(changes)
        payload["monitoring"] = build_monitoring_result(
            brand_config.id, analysis.report, changes, alerts,
        ).to_dict()
    return payload


async def run_analysis_background(
    brand_config: BrandConfig,
    ask_model: AskModel,
    parse_with_llm: Optional[ParseWithLLM],
    options: AnalysisOptions,
    probe: ContentSignalProbe,
    store: ReportStore,
):
    """Background entry point; failures are logged since no request is waiting."""
    logger.info("Starting background competitive analysis for %s", brand_config.brand_name)
    try:
        payload = await run_and_compare(brand_config, ask_model, parse_with_llm, options, probe, store)
    except Exception as e:
        logger.error("Background competitive analysis for %s failed: %s", brand_config.brand_name, e)
        return

    monitoring = payload.get("monitoring")
    if monitoring and monitoring["alertsTriggered"]:
        logger.warning(
            "Competitive analysis for %s raised %d alert(s)",
            brand_config.brand_name, len(monitoring["alertsTriggered"]),
        )


@app.get("/api/competitive/analyses")
async def list_analyses(store: ReportStore = Depends(get_store)):
    return JSONResponse({"analyses": [e.to_dict() for e in store.list_analyses()]})


@app.get("/api/competitive/analyses/{brand_id}")
async def get_analysis(brand_id: str, store: ReportStore = Depends(get_store)):
    try:
        snapshot = store.load_analysis(brand_id)
    except AnalysisNotFoundError:
        return JSONResponse({"error": "Analysis not found"}, status_code=404)
    return JSONResponse(snapshot.to_dict())


@app.delete("/api/competitive/analyses/{brand_id}")
async def delete_analysis(brand_id: str, store: ReportStore = Depends(get_store)):
    try:
        store.delete_analysis(brand_id)
    except AnalysisNotFoundError:
        return JSONResponse({"error": "Analysis not found"}, status_code=404)
    return JSONResponse({"deleted": brand_id})


@app.get("/api/competitive/analyses/{brand_id}/export")
async def export_analysis(
    brand_id: str,
    format: str = "json",
    store: ReportStore = Depends(get_store),
):
    """Download a saved analysis as JSON or its action plan as Markdown."""
    if format not in ("json", "markdown"):
        return JSONResponse({"error": "format must be json or markdown"}, status_code=400)

    try:
        snapshot = store.load_analysis(brand_id)
    except AnalysisNotFoundError:
        return JSONResponse({"error": "Analysis not found"}, status_code=404)

    slug = snapshot.brand_config.brand_name.lower().replace(" ", "-")
    if format == "markdown":
        return Response(
            content=export_action_plan_as_markdown(snapshot.action_plan, snapshot.brand_config.brand_name),
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{slug}-action-plan.md"'},
        )
    return Response(
        content=export_analysis_as_json(snapshot),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{slug}-competitive-analysis.json"'},
    )
