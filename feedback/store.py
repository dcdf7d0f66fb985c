import uuid
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from diagnosis.schemas import AIFeedback, FeedbackResult, FeedbackStats
from compliance.audit import audit_event

logger = logging.getLogger(__name__)

FEEDBACK_DDL = """
CREATE TABLE IF NOT EXISTS ai_feedback (
  id TEXT PRIMARY KEY,
  suggestion_id TEXT NOT NULL,
  case_id TEXT NOT NULL,
  feedback_type TEXT NOT NULL,     -- 'accepted' | 'modified' | 'rejected'
  user_correction TEXT,
  suggestion_text TEXT,
  user_id TEXT,
  created_at TEXT NOT NULL
);
"""

UNAVAILABLE_MSG = "Database not configured. Self-learning feedback feature is unavailable."
WRITE_FAILED_MSG = "Failed to save feedback to database. Please try again."

def get_engine(database_url: str) -> Optional[Engine]:
    if not database_url:
        logger.warning("DATABASE_URL not set, feedback store unavailable")
        return None
    return create_engine(database_url, future=True)

def ensure_feedback_table(engine: Engine):
    with engine.begin() as c:
        for stmt in FEEDBACK_DDL.strip().split(";\n"):
            s = stmt.strip().rstrip(";")
            if s:
                c.execute(text(s))

def record_feedback(engine: Optional[Engine], fb: AIFeedback) -> FeedbackResult:
    """Append one feedback row. Never raises; failures come back as a typed result."""
    if engine is None:
        logger.error("Feedback not recorded: store not configured")
        return FeedbackResult(success=False, error=UNAVAILABLE_MSG, error_code="persistence_unavailable")

    rec = {
        "id": str(uuid.uuid4()),
        "sid": fb.suggestion_id,
        "cid": fb.case_id,
        "ft": fb.feedback_type,
        "corr": fb.user_correction,
        "st": fb.suggestion_text,
        "uid": fb.user_id,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
    try:
        with engine.begin() as c:
            c.execute(
                text("""
                    INSERT INTO ai_feedback(id, suggestion_id, case_id, feedback_type, user_correction,
                                            suggestion_text, user_id, created_at)
                    VALUES (:id, :sid, :cid, :ft, :corr, :st, :uid, :ts)
                """),
                rec
            )
    except SQLAlchemyError as e:
        logger.error("Feedback insert failed: %s", e.__class__.__name__)
        return FeedbackResult(success=False, error=WRITE_FAILED_MSG, error_code="persistence_error")

    audit_event("feedback.recorded", {"feedback_id": rec["id"], "suggestion_id": fb.suggestion_id,
                                      "feedback_type": fb.feedback_type})
    return FeedbackResult(success=True)

def stats_from_counts(counts: dict) -> FeedbackStats:
    accepted = int(counts.get("accepted", 0))
    modified = int(counts.get("modified", 0))
    rejected = int(counts.get("rejected", 0))
    total = int(sum(counts.values()))
    return FeedbackStats(
        total=total,
        accepted=accepted,
        modified=modified,
        rejected=rejected,
        acceptance_rate=(accepted / total) * 100 if total > 0 else 0,
        available=True,
    )

def get_feedback_stats(engine: Optional[Engine]) -> FeedbackStats:
    if engine is None:
        return FeedbackStats(available=False)
    try:
        with engine.begin() as c:
            rows = c.execute(text(
                "SELECT feedback_type, COUNT(*) AS n FROM ai_feedback GROUP BY feedback_type"
            )).all()
    except SQLAlchemyError as e:
        logger.error("Feedback stats query failed: %s", e.__class__.__name__)
        return FeedbackStats(available=False)
    return stats_from_counts({ft: n for ft, n in rows})

def derive_insights(stats: FeedbackStats, correction_count: int = 0) -> List[str]:
    insights: List[str] = []
    if correction_count > 0:
        insights.append(f"{correction_count} diagnoses have been corrected by clinicians")
    if stats.total > 10:
        if stats.acceptance_rate < 70:
            insights.append("AI suggestions need improvement - acceptance rate below 70%")
        elif stats.acceptance_rate >= 90:
            insights.append("AI suggestions performing well - 90%+ acceptance rate")
    return insights

def get_learning_insights(engine: Optional[Engine]) -> List[str]:
    if engine is None:
        return ["Self-learning analytics unavailable - database not configured"]
    try:
        with engine.begin() as c:
            corrections = c.execute(text(
                "SELECT COUNT(*) FROM ai_feedback "
                "WHERE feedback_type = 'modified' AND user_correction IS NOT NULL AND user_correction <> ''"
            )).scalar_one()
    except SQLAlchemyError as e:
        logger.error("Learning insights query failed: %s", e.__class__.__name__)
        return ["Unable to load learning insights"]
    stats = get_feedback_stats(engine)
    return derive_insights(stats, int(corrections or 0))

def list_feedback(engine: Optional[Engine], limit: int = 50) -> list:
    if engine is None:
        return []
    try:
        with engine.begin() as c:
            rows = c.execute(text("SELECT * FROM ai_feedback ORDER BY created_at DESC LIMIT :n"),
                             {"n": limit}).mappings().all()
    except SQLAlchemyError as e:
        logger.error("Feedback list query failed: %s", e.__class__.__name__)
        return []
    return [dict(r) for r in rows]
