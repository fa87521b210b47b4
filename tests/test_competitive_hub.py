"""
Tests for the analysis orchestrator, end to end with stubbed assistants.
"""

import asyncio

import pytest

from competitive.competitive_hub import CancellationToken, build_query_prompt, run_competitive_analysis
from competitive.competitive_models import MentionSentiment, WinLossOutcome
from competitive.config import AnalysisOptions
from competitive.storage import InMemoryReportStore


def fast_options(**overrides):
    values = {"delay_seconds": 0, "call_timeout_seconds": None}
    values.update(overrides)
    return AnalysisOptions(**values)


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_beta_wins_everything(self, acme_config, stub_ask_model, stub_parse_with_llm, beta_wins_entries):
        ask_model = stub_ask_model("I recommend Beta for this.")

        analysis = await run_competitive_analysis(
            acme_config,
            ask_model,
            stub_parse_with_llm(beta_wins_entries),
            options=fast_options(),
        )

        assert analysis.results
        for result in analysis.results:
            assert result.overall_result == WinLossOutcome.LOSS
            assert result.winning_brand == "Beta"

        titles = [f.title for f in analysis.action_plan.all_fixes()]
        assert "Create comparison page: Acme vs Beta" in titles
        assert analysis.report.win_rate == 0
        assert not analysis.cancelled

    @pytest.mark.asyncio
    async def test_calls_every_model_in_order(self, acme_config, stub_ask_model):
        ask_model = stub_ask_model()

        analysis = await run_competitive_analysis(
            acme_config, ask_model, None, options=fast_options(max_queries_per_category=1),
        )

        models = [model for model, _ in ask_model.calls]
        assert models == ["chatgpt", "perplexity", "gemini"] * 4
        assert len(analysis.results) == 4

    @pytest.mark.asyncio
    async def test_prompt_wraps_query_text(self, acme_config, stub_ask_model):
        ask_model = stub_ask_model()

        analysis = await run_competitive_analysis(
            acme_config, ask_model, None, options=fast_options(max_queries_per_category=1),
        )

        first_query = analysis.results[0].query
        assert ask_model.calls[0][1] == build_query_prompt(first_query)
        assert ask_model.calls[0][1].startswith(first_query.text + "\n\n")

    @pytest.mark.asyncio
    async def test_execution_records(self, acme_config, stub_ask_model, stub_parse_with_llm, beta_wins_entries):
        analysis = await run_competitive_analysis(
            acme_config,
            stub_ask_model(),
            stub_parse_with_llm(beta_wins_entries),
            options=fast_options(max_queries_per_category=1, models=["chatgpt"]),
        )

        execution = analysis.results[0].executions[0]
        assert execution.model == "chatgpt"
        assert execution.winner == "Beta"
        assert execution.sentiment == MentionSentiment.NEUTRAL
        assert execution.latency_ms >= 0
        assert [m.brand for m in execution.brands_mentioned] == ["Acme", "Beta"]


class TestFailurePolicy:

    @pytest.mark.asyncio
    async def test_failing_model_is_skipped(self, acme_config, stub_ask_model):
        ask_model = stub_ask_model(failing_models=["gemini"])

        analysis = await run_competitive_analysis(
            acme_config, ask_model, None, options=fast_options(max_queries_per_category=2),
        )

        for result in analysis.results:
            assert set(result.model_results) == {"chatgpt", "perplexity"}
            assert len(result.executions) == 2

    @pytest.mark.asyncio
    async def test_all_models_failing_gives_unclear(self, acme_config, stub_ask_model):
        ask_model = stub_ask_model(failing_models=["chatgpt", "perplexity", "gemini"])

        analysis = await run_competitive_analysis(
            acme_config, ask_model, None, options=fast_options(max_queries_per_category=1),
        )

        assert analysis.results
        assert all(r.overall_result == WinLossOutcome.UNCLEAR for r in analysis.results)
        assert analysis.report.win_rate == 0
        assert analysis.gaps == []

    @pytest.mark.asyncio
    async def test_timeout_is_skipped(self, acme_config):
        async def slow_model(model, prompt):
            if model == "perplexity":
                await asyncio.sleep(1)
            return "Acme is the best choice."

        analysis = await run_competitive_analysis(
            acme_config, slow_model, None,
            options=fast_options(max_queries_per_category=1, call_timeout_seconds=0.05),
        )

        for result in analysis.results:
            assert "perplexity" not in result.model_results
            assert result.overall_result == WinLossOutcome.WIN


class TestProgressAndCancellation:

    @pytest.mark.asyncio
    async def test_progress_events(self, acme_config, stub_ask_model):
        events = []

        await run_competitive_analysis(
            acme_config, stub_ask_model(), None,
            options=fast_options(max_queries_per_category=1),
            on_progress=events.append,
        )

        stages = [e.stage for e in events]
        assert stages[0] == "generating"
        assert stages[-1] == "complete"
        executing = [e for e in events if e.stage == "executing"]
        assert [e.current_query for e in executing] == list(range(1, 13))
        assert all(e.total_queries == 12 for e in executing)
        assert executing[0].current_model == "chatgpt"
        assert events[-1].win_rate == 0
        assert events[-1].message == "Analysis complete. Win rate: 0%"

    @pytest.mark.asyncio
    async def test_cancel_stops_calls(self, acme_config):
        token = CancellationToken()
        calls = []

        async def ask_model(model, prompt):
            calls.append(model)
            if len(calls) == 4:
                token.cancel()
            return "Acme is great."

        events = []
        analysis = await run_competitive_analysis(
            acme_config, ask_model, None,
            options=fast_options(),
            on_progress=events.append,
            cancel_token=token,
        )

        assert len(calls) == 4
        assert analysis.cancelled
        assert len(analysis.results) == 2
        assert events[-1].stage == "cancelled"

    @pytest.mark.asyncio
    async def test_cancel_interrupts_delay(self, acme_config, stub_ask_model):
        token = CancellationToken()
        ask_model = stub_ask_model()

        async def cancel_soon():
            await asyncio.sleep(0.05)
            token.cancel()

        canceller = asyncio.ensure_future(cancel_soon())
        analysis = await asyncio.wait_for(
            run_competitive_analysis(
                acme_config, ask_model, None,
                options=fast_options(delay_seconds=30),
                cancel_token=token,
            ),
            timeout=5,
        )
        await canceller

        assert analysis.cancelled
        assert len(ask_model.calls) == 1


class TestTokenAcrossLoops:

    def test_token_created_before_loop_starts(self):
        token = CancellationToken()

        async def sleep_then_cancel():
            first = await token.sleep(0.01)
            token.cancel()
            second = await token.sleep(5)
            return first, second

        assert asyncio.run(sleep_then_cancel()) == (False, True)

    def test_token_reused_in_a_new_loop(self, acme_config, stub_ask_model):
        token = CancellationToken()
        asyncio.run(token.sleep(0.01))
        ask_model = stub_ask_model()

        analysis = asyncio.run(run_competitive_analysis(
            acme_config, ask_model, None,
            options=fast_options(max_queries_per_category=1, delay_seconds=0.01),
            cancel_token=token,
        ))

        assert not analysis.cancelled
        assert len(ask_model.calls) == 12


class TestPersistence:

    @pytest.mark.asyncio
    async def test_snapshot_saved(self, acme_config, stub_ask_model):
        store = InMemoryReportStore()

        analysis = await run_competitive_analysis(
            acme_config, stub_ask_model(), None,
            options=fast_options(max_queries_per_category=1),
            store=store,
        )

        snapshot = store.load_analysis(acme_config.id)
        assert snapshot.report.id == analysis.report.id
        assert snapshot.action_plan.id == analysis.action_plan.id
        assert [e.brand_id for e in store.list_analyses()] == [acme_config.id]
