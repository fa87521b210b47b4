"""
Analysis persistence.
Stores analysis snapshots keyed by brand id, plus a lightweight index for listing.
Uses SQLite with SQLAlchemy by default; an in-memory store serves tests and
throwaway runs.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from competitive.config import DATABASE_URL
from competitive.competitive_models import (
    AnalysisIndexEntry, AnalysisSnapshot, CompetitiveAnalysis,
)
from competitive.errors import AnalysisNotFoundError

logger = logging.getLogger(__name__)

Base = declarative_base()


class StoredAnalysis(Base):
    """Full serialized snapshot of the latest analysis for a brand."""
    __tablename__ = "competitive_analyses"

    brand_id = Column(String(64), primary_key=True)
    snapshot_json = Column(Text, nullable=False)
    saved_at = Column(String(40), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AnalysisIndexRow(Base):
    __tablename__ = "competitive_analysis_index"

    brand_id = Column(String(64), primary_key=True)
    brand_name = Column(String(255), nullable=False)
    report_id = Column(String(64), nullable=False)
    win_rate = Column(Integer, default=0)
    total_queries = Column(Integer, default=0)
    created_at = Column(String(40), nullable=False)

    def to_entry(self) -> AnalysisIndexEntry:
        return AnalysisIndexEntry(
            brand_id=self.brand_id,
            brand_name=self.brand_name,
            report_id=self.report_id,
            win_rate=self.win_rate,
            total_queries=self.total_queries,
            created_at=self.created_at,
        )


class ReportStore(Protocol):
    def save_analysis(self, snapshot: AnalysisSnapshot) -> str:
        ...

    def load_analysis(self, brand_id: str) -> AnalysisSnapshot:
        ...

    def list_analyses(self) -> List[AnalysisIndexEntry]:
        ...

    def delete_analysis(self, brand_id: str) -> None:
        ...


def build_snapshot(analysis: CompetitiveAnalysis) -> AnalysisSnapshot:
    """The persisted shape of a run: brand config, report, results and action plan."""
    return AnalysisSnapshot(
        brand_config=analysis.brand_config,
        report=analysis.report,
        results=analysis.results,
        action_plan=analysis.action_plan,
    )


def build_index_entry(snapshot: AnalysisSnapshot) -> AnalysisIndexEntry:
    return AnalysisIndexEntry(
        brand_id=snapshot.brand_config.id,
        brand_name=snapshot.brand_config.brand_name,
        report_id=snapshot.report.id,
        win_rate=snapshot.report.win_rate,
        total_queries=snapshot.report.total_queries,
        created_at=snapshot.report.created_at,
    )


class InMemoryReportStore:
    """Dictionary-backed store. Snapshots are kept as JSON so loads return fresh copies."""

    def __init__(self):
        self._snapshots: Dict[str, str] = {}
        self._index: Dict[str, AnalysisIndexEntry] = {}

    def save_analysis(self, snapshot: AnalysisSnapshot) -> str:
        brand_id = snapshot.brand_config.id
        self._snapshots[brand_id] = snapshot.model_dump_json(by_alias=True)
        self._index[brand_id] = build_index_entry(snapshot)
        return brand_id

    def load_analysis(self, brand_id: str) -> AnalysisSnapshot:
        if brand_id not in self._snapshots:
            raise AnalysisNotFoundError(f"No analysis saved for brand {brand_id}")
        return AnalysisSnapshot.model_validate_json(self._snapshots[brand_id])

    def list_analyses(self) -> List[AnalysisIndexEntry]:
        return sorted(self._index.values(), key=lambda e: e.created_at, reverse=True)

    def delete_analysis(self, brand_id: str) -> None:
        if brand_id not in self._snapshots:
            raise AnalysisNotFoundError(f"No analysis saved for brand {brand_id}")
        del self._snapshots[brand_id]
        self._index.pop(brand_id, None)


class SqlReportStore:
    """
    SQLAlchemy-backed store.

    Saving a brand that already has an analysis replaces both its snapshot
    row and its index row.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or DATABASE_URL
        connect_args = {"check_same_thread": False} if self.database_url.startswith("sqlite") else {}
        self.engine = create_engine(self.database_url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """Create tables if they don't exist."""
        Base.metadata.create_all(bind=self.engine)

    def _session(self) -> Session:
        return self.SessionLocal()

    def save_analysis(self, snapshot: AnalysisSnapshot) -> str:
        brand_id = snapshot.brand_config.id
        entry = build_index_entry(snapshot)

        db = self._session()
        try:
            db.merge(StoredAnalysis(
                brand_id=brand_id,
                snapshot_json=snapshot.model_dump_json(by_alias=True),
                saved_at=snapshot.saved_at,
            ))
            db.merge(AnalysisIndexRow(
                brand_id=entry.brand_id,
                brand_name=entry.brand_name,
                report_id=entry.report_id,
                win_rate=entry.win_rate,
                total_queries=entry.total_queries,
                created_at=entry.created_at,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info("Saved competitive analysis for brand %s (report %s)", brand_id, entry.report_id)
        return brand_id

    def load_analysis(self, brand_id: str) -> AnalysisSnapshot:
        db = self._session()
        try:
            row = db.get(StoredAnalysis, brand_id)
            if row is None:
                raise AnalysisNotFoundError(f"No analysis saved for brand {brand_id}")
            return AnalysisSnapshot.model_validate(json.loads(row.snapshot_json))
        finally:
            db.close()

    def list_analyses(self) -> List[AnalysisIndexEntry]:
        db = self._session()
        try:
            rows = db.query(AnalysisIndexRow).order_by(AnalysisIndexRow.created_at.desc()).all()
            return [row.to_entry() for row in rows]
        finally:
            db.close()

    def delete_analysis(self, brand_id: str) -> None:
        db = self._session()
        try:
            row = db.get(StoredAnalysis, brand_id)
            if row is None:
                raise AnalysisNotFoundError(f"No analysis saved for brand {brand_id}")
            db.delete(row)
            index_row = db.get(AnalysisIndexRow, brand_id)
            if index_row is not None:
                db.delete(index_row)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        logger.info("Deleted competitive analysis for brand %s", brand_id)
