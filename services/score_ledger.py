"""
services/score_ledger.py

Single writer of final_report_scores.
- the row set of a report is always replaced as a whole (delete all, insert all)
- total/average are recomputed from the stored rows after every replace
- average = total / row count, rounded to 2 places with ROUND_HALF_UP (0 when empty)
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.competency_templates import CompetencyTemplate
from models.final_reports import FinalReport, FinalReportScore
from models.placements import Placement
from models.wizard_sessions import WizardSession
from utils.dates import utc_now
from utils.errors import InvalidInputError, NotFoundError, ReportLockedError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_aggregates(scores: Iterable) -> Tuple[Decimal, Decimal]:
    values = [to_decimal(s) for s in scores]
    total = sum(values, Decimal("0")).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if not values:
        return total, Decimal("0.00")
    average = (total / len(values)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return total, average


def _lock_report(db: Session, placement_id: int) -> Optional[FinalReport]:
    # row lock serializes writers of the same report (no-op on SQLite)
    return (
        db.query(FinalReport)
        .filter(FinalReport.placement_id == placement_id)
        .with_for_update()
        .first()
    )


def ensure_report(db: Session, placement_id: int, now=None) -> Tuple[FinalReport, bool]:
    """
    Return the placement's report, creating it when absent.
    A concurrent creator losing the unique(placement_id) race keeps editing the winner's row.
    """
    report = _lock_report(db, placement_id)
    if report is not None:
        return report, False

    if db.get(Placement, placement_id) is None:
        raise NotFoundError(f"Placement {placement_id} not found")

    try:
        with db.begin_nested():
            report = FinalReport(placement_id=placement_id, submitted_at=now or utc_now(), state="drafting")
            db.add(report)
            db.flush()
    except IntegrityError:
        logger.info(f"final report for placement {placement_id} created concurrently, reusing it")
        report = _lock_report(db, placement_id)
        if report is None:
            raise
        return report, False

    logger.info(f"final report created: report_id={report.id} placement_id={placement_id}")
    return report, True


def normalize_rows(db: Session, rows: Iterable) -> List[Tuple[int, Decimal]]:
    """Validate incoming {competency_id, score} pairs; field level errors are collected."""
    normalized: List[Tuple[int, Decimal]] = []
    errors = []
    seen = set()

    for index, row in enumerate(rows):
        competency_id = row["competency_id"] if isinstance(row, dict) else row.competency_id
        score = row["score"] if isinstance(row, dict) else row.score
        try:
            value = to_decimal(score)
        except (ArithmeticError, ValueError):
            errors.append({"field": f"scores[{index}].score", "message": "score must be a number"})
            continue
        if not value.is_finite() or value < 0:
            errors.append({"field": f"scores[{index}].score", "message": "score must be >= 0"})
        if competency_id in seen:
            errors.append({"field": f"scores[{index}].competency_id", "message": "duplicate competency"})
        seen.add(competency_id)
        normalized.append((int(competency_id), value))

    if errors:
        raise InvalidInputError("Invalid score rows", details=errors)

    if seen:
        found = {
            cid for (cid,) in db.query(CompetencyTemplate.id).filter(CompetencyTemplate.id.in_(seen)).all()
        }
        missing = sorted(seen - found)
        if missing:
            raise NotFoundError(f"Competency templates not found: {missing}", details={"competency_ids": missing})

    return normalized


def stored_rows(db: Session, report_id: int) -> List[Tuple[int, Decimal]]:
    rows = (
        db.query(FinalReportScore.competency_template_id, FinalReportScore.score)
        .filter(FinalReportScore.final_report_id == report_id)
        .order_by(FinalReportScore.competency_template_id)
        .all()
    )
    return [(cid, to_decimal(score)) for cid, score in rows]


def replace_scores(db: Session, report: FinalReport, rows: Iterable) -> dict:
    """Full replace of the report's rows and aggregate refresh. Does not commit."""
    if report.state == "issued":
        raise ReportLockedError(f"Final report {report.id} is issued and can no longer be scored")

    normalized = normalize_rows(db, rows)

    db.query(FinalReportScore).filter(FinalReportScore.final_report_id == report.id).delete(
        synchronize_session=False
    )
    db.add_all([
        FinalReportScore(final_report_id=report.id, competency_template_id=cid, score=score)
        for cid, score in normalized
    ])
    db.flush()
    db.expire(report, ["scores"])

    # aggregates always come from what is stored, never from the request
    current = stored_rows(db, report.id)
    total, average = compute_aggregates(score for _, score in current)

    report.total_score = total
    report.average_score = average

    # wizard snapshot mirrors the ledger so a later wizard save cannot replay stale rows
    session = db.query(WizardSession).filter(WizardSession.placement_id == report.placement_id).first()
    if session is not None:
        session.score_rows = [{"competency_id": cid, "score": float(score)} for cid, score in current]
    db.flush()

    logger.info(f"scores replaced: report_id={report.id} rows={len(current)} total={total} average={average}")
    return {"final_report_id": report.id, "total_score": float(total), "average_score": float(average)}


def upsert_scores(db: Session, placement_id: int, rows: Iterable, now=None) -> dict:
    try:
        report, _ = ensure_report(db, placement_id, now=now)
        result = replace_scores(db, report, list(rows))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result
