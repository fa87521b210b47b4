"""
Tests for analysis persistence, in memory and through SQLAlchemy on SQLite.
"""

import pytest

from competitive.brand_profile import create_brand_config
from competitive.competitive_models import QueryCategory
from competitive.errors import AnalysisNotFoundError
from competitive.storage import InMemoryReportStore, SqlReportStore, build_index_entry


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryReportStore()
    sql_store = SqlReportStore(f"sqlite:///{tmp_path / 'analyses.db'}")
    sql_store.init_db()
    return sql_store


def with_created_at(snapshot, created_at):
    report = snapshot.report.model_copy(update={"created_at": created_at})
    return snapshot.model_copy(update={"report": report})


class TestReportStore:

    def test_save_and_load(self, store, make_snapshot):
        snapshot = make_snapshot()

        brand_id = store.save_analysis(snapshot)
        loaded = store.load_analysis(brand_id)

        assert brand_id == snapshot.brand_config.id
        assert loaded.brand_config.brand_name == "Acme"
        assert loaded.report.id == snapshot.report.id
        assert loaded.report.win_rate == 50
        assert [r.query.text for r in loaded.results] == ["Acme vs Beta", "Best CRM"]
        assert loaded.action_plan.total_fixes == snapshot.action_plan.total_fixes

    def test_load_missing(self, store):
        with pytest.raises(AnalysisNotFoundError):
            store.load_analysis("brand_missing")

    def test_save_replaces_previous(self, store, make_snapshot):
        first = make_snapshot()
        second = make_snapshot([(["Acme", "Acme", "Acme"], "Best CRM", QueryCategory.RECOMMENDATION)])

        store.save_analysis(first)
        store.save_analysis(second)

        loaded = store.load_analysis(first.brand_config.id)
        assert loaded.report.id == second.report.id
        entries = store.list_analyses()
        assert len(entries) == 1
        assert entries[0].report_id == second.report.id
        assert entries[0].win_rate == 100

    def test_list_newest_first(self, store, make_snapshot):
        zeta_brand = create_brand_config("Zeta", "zeta.io", "CRM")
        older = with_created_at(make_snapshot(), "2024-01-01T00:00:00+00:00")
        newer = with_created_at(make_snapshot(config=zeta_brand), "2024-06-01T00:00:00+00:00")

        store.save_analysis(older)
        store.save_analysis(newer)

        assert [e.brand_name for e in store.list_analyses()] == ["Zeta", "Acme"]

    def test_index_entry(self, store, make_snapshot):
        snapshot = make_snapshot()
        store.save_analysis(snapshot)

        assert store.list_analyses() == [build_index_entry(snapshot)]

    def test_delete(self, store, make_snapshot):
        snapshot = make_snapshot()
        store.save_analysis(snapshot)

        store.delete_analysis(snapshot.brand_config.id)

        assert store.list_analyses() == []
        with pytest.raises(AnalysisNotFoundError):
            store.load_analysis(snapshot.brand_config.id)

    def test_delete_missing(self, store):
        with pytest.raises(AnalysisNotFoundError):
            store.delete_analysis("brand_missing")
