"""
Competitive Hub - Orchestrates a competitive win/loss analysis run.
Asks every AI assistant every generated query, parses brand mentions out of the
answers, scores wins and losses, explains the losses and builds the action plan.

Calls are strictly sequential: one query at a time, one model at a time, in
fixed order, with a short delay between calls.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from competitive.action_plan import generate_competitive_action_plan
from competitive.brand_profile import all_brand_names
from competitive.config import AnalysisOptions
from competitive.competitive_models import (
    AnalysisProgress, BrandConfig, CompetitiveAnalysis, GeneratedQuery, QueryExecution,
)
from competitive.competitor_teardown import (
    ContentSignalProbe, NullContentSignalProbe, analyze_competitors,
)
from competitive.gap_analyzer import analyze_query_gaps
from competitive.mention_parser import ParseWithLLM, parse_response_for_brands
from competitive.query_generator import build_query_plan
from competitive.storage import ReportStore, build_snapshot
from competitive.win_loss import (
    calculate_overall_sentiment, determine_winner, evaluate_results, generate_competitive_report,
)

logger = logging.getLogger(__name__)

AskModel = Callable[[str, str], Awaitable[str]]
ProgressCallback = Callable[[AnalysisProgress], None]

PROMPT_SUFFIX = (
    "Please provide a direct, helpful answer with specific recommendations if applicable. "
    "Include the names of specific products, services, or companies you recommend "
    "and briefly explain why you recommend them."
)


class CancellationToken:
    """
    Cooperative cancellation for a running analysis.

    Safe to create outside any event loop: the wake-up event only exists
    while sleep() is waiting, on the loop that is running it.
    """

    def __init__(self):
        self._cancelled = False
        self._wakeup: Optional[asyncio.Event] = None

    def cancel(self):
        self._cancelled = True
        if self._wakeup is not None:
            self._wakeup.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to seconds, waking early on cancel. Returns True when cancelled."""
        if seconds <= 0 or self._cancelled:
            return self._cancelled
        self._wakeup = asyncio.Event()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        finally:
            self._wakeup = None
        return self._cancelled


def build_query_prompt(query: GeneratedQuery) -> str:
    return f"{query.text}\n\n{PROMPT_SUFFIX}"


def _emit(on_progress: Optional[ProgressCallback], progress: AnalysisProgress):
    if on_progress is None:
        return
    try:
        on_progress(progress)
    except Exception as e:
        logger.warning("Progress callback raised: %s", e)


async def execute_query(
    query: GeneratedQuery,
    model: str,
    config: BrandConfig,
    ask_model: AskModel,
    parse_with_llm: Optional[ParseWithLLM],
    call_timeout_seconds: Optional[float] = None,
) -> QueryExecution:
    """
    Ask one model one query and parse the answer.

    Raises whatever ask_model raises, and asyncio.TimeoutError when the call
    exceeds call_timeout_seconds.
    """
    started = time.perf_counter()
    call = ask_model(model, build_query_prompt(query))
    if call_timeout_seconds:
        raw_response = await asyncio.wait_for(call, timeout=call_timeout_seconds)
    else:
        raw_response = await call
    latency_ms = int((time.perf_counter() - started) * 1000)

    mentions = await parse_response_for_brands(raw_response, all_brand_names(config), parse_with_llm)

    return QueryExecution(
        query_id=query.id,
        query_text=query.text,
        model=model,
        raw_response=raw_response,
        brands_mentioned=mentions,
        winner=determine_winner(mentions),
        sentiment=calculate_overall_sentiment(mentions, config.brand_name),
        latency_ms=latency_ms,
    )


async def run_competitive_analysis(
    config: BrandConfig,
    ask_model: AskModel,
    parse_with_llm: Optional[ParseWithLLM],
    options: Optional[AnalysisOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    probe: Optional[ContentSignalProbe] = None,
    store: Optional[ReportStore] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> CompetitiveAnalysis:
    """
    Run the full competitive analysis pipeline.

    Args:
        config: Brand profile with competitors
        ask_model: async (model, prompt) -> answer text
        parse_with_llm: async (prompt) -> text with a JSON array, or None for
            string-matching only
        options: Query cap, model list, delay and timeout
        on_progress: Called at every step boundary with an AnalysisProgress
        probe: Content signal source for competitor teardowns
        store: When given, the snapshot is saved after the run
        cancel_token: Stops issuing model calls once cancelled

    Returns:
        CompetitiveAnalysis; a failed (query, model) call only thins it out
    """
    options = options or AnalysisOptions()
    probe = probe or NullContentSignalProbe()
    cancel_token = cancel_token or CancellationToken()
    models = list(options.models)

    _emit(on_progress, AnalysisProgress(stage="generating", message="Generating competitive queries..."))
    queries = build_query_plan(config, options.max_queries_per_category)
    total_calls = len(queries) * len(models)

    logger.info(
        "Starting competitive analysis for %s: %d queries x %d models",
        config.brand_name, len(queries), len(models),
    )

    executions: List[QueryExecution] = []
    asked: List[GeneratedQuery] = []
    call_count = 0
    cancelled = False

    for query in queries:
        for model in models:
            if cancel_token.cancelled:
                cancelled = True
                break
            if call_count > 0 and await cancel_token.sleep(options.delay_seconds):
                cancelled = True
                break

            call_count += 1
            if not asked or asked[-1] is not query:
                asked.append(query)
            _emit(on_progress, AnalysisProgress(
                stage="executing",
                current_query=call_count,
                total_queries=total_calls,
                current_model=model,
                message=f'Querying {model}: "{query.text[:50]}..."',
            ))

            try:
                execution = await execute_query(
                    query, model, config, ask_model, parse_with_llm,
                    options.call_timeout_seconds,
                )
                executions.append(execution)
            except asyncio.TimeoutError:
                logger.warning("%s timed out on query %r, skipping", model, query.text)
            except Exception as e:
                logger.warning("%s failed on query %r, skipping: %s", model, query.text, e)
        if cancelled:
            break

    if cancelled:
        logger.info("Competitive analysis for %s cancelled after %d calls", config.brand_name, call_count)

    _emit(on_progress, AnalysisProgress(stage="analyzing", message="Analyzing win/loss results..."))
    results = evaluate_results(asked, executions, config.brand_name)
    report = generate_competitive_report(config, results)

    _emit(on_progress, AnalysisProgress(stage="analyzing", message="Analyzing competitor content..."))
    teardowns = await analyze_competitors(config, results, probe)
    gaps = analyze_query_gaps(results, teardowns, config)

    _emit(on_progress, AnalysisProgress(stage="analyzing", message="Generating action plan..."))
    action_plan = generate_competitive_action_plan(report, gaps, teardowns, config)

    analysis = CompetitiveAnalysis(
        brand_config=config,
        report=report,
        results=results,
        gaps=gaps,
        action_plan=action_plan,
        teardowns=teardowns,
        cancelled=cancelled,
    )

    if store is not None:
        try:
            store.save_analysis(build_snapshot(analysis))
        except Exception as e:
            logger.error("Failed to save competitive analysis for %s: %s", config.brand_name, e)

    if cancelled:
        _emit(on_progress, AnalysisProgress(
            stage="cancelled",
            win_rate=report.win_rate,
            message=f"Analysis cancelled. Win rate so far: {report.win_rate}%",
        ))
    else:
        _emit(on_progress, AnalysisProgress(
            stage="complete",
            win_rate=report.win_rate,
            message=f"Analysis complete. Win rate: {report.win_rate}%",
        ))

    logger.info(
        "Competitive analysis for %s finished: %d executions, win rate %d%%",
        config.brand_name, len(executions), report.win_rate,
    )
    return analysis
