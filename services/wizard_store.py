"""
services/wizard_store.py

Persists the multi-step report wizard.
- the whole form is written on every save (last write wins per field), whatever the step
- the first save creates the final report (same create-if-absent rule as the score ledger)
- score rows go through the score ledger only when they differ from what is stored
- saving twice with the same input leaves the same stored state
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.final_reports import FinalReport
from models.wizard_sessions import WizardSession
from services import score_ledger
from services.report_form import FORM_FIELDS, normalize_field, resolve_derived
from utils.dates import utc_now
from utils.errors import InvalidInputError, NotFoundError, ReportLockedError

logger = logging.getLogger(__name__)

WIZARD_STEPS = 6  # company, student, scores, report preview, certificate, confirmation
DIRECTIONS = ("next", "back")


def load(db: Session, placement_id: int) -> Optional[WizardSession]:
    return db.query(WizardSession).filter(WizardSession.placement_id == placement_id).first()


def _validate_step(step_index: int) -> int:
    if not isinstance(step_index, int) or not 1 <= step_index <= WIZARD_STEPS:
        raise InvalidInputError(
            f"step must be between 1 and {WIZARD_STEPS}",
            details=[{"field": "step_index", "message": f"out of range 1..{WIZARD_STEPS}"}],
        )
    return step_index


def _validate_fields(form_fields: dict) -> None:
    unknown = sorted(set(form_fields or {}) - set(FORM_FIELDS))
    if unknown:
        raise InvalidInputError(
            "Unknown form fields",
            details=[{"field": name, "message": "unknown form field"} for name in unknown],
        )


def _resolve_report(db: Session, placement_id: Optional[int], final_report_id: Optional[int], now) -> FinalReport:
    if final_report_id is not None:
        report = db.get(FinalReport, final_report_id)
        if report is None:
            raise NotFoundError(f"Final report {final_report_id} not found")
        if placement_id is not None and placement_id != report.placement_id:
            raise InvalidInputError(
                "final_report_id does not belong to placement_id",
                details=[{"field": "placement_id", "message": "mismatch with final report"}],
            )
        # lock the row the same way the ledger does
        report, _ = score_ledger.ensure_report(db, report.placement_id, now=now)
        return report

    if placement_id is None:
        raise InvalidInputError(
            "placement_id or final_report_id is required",
            details=[{"field": "placement_id", "message": "required when final_report_id is empty"}],
        )
    report, _ = score_ledger.ensure_report(db, placement_id, now=now)
    return report


def _session_for(db: Session, report: FinalReport) -> WizardSession:
    session = load(db, report.placement_id)
    if session is not None:
        return session
    try:
        with db.begin_nested():
            session = WizardSession(
                placement_id=report.placement_id,
                final_report_id=report.id,
                current_step=1,
                form_fields={},
                score_rows=[],
            )
            db.add(session)
            db.flush()
    except IntegrityError:
        session = load(db, report.placement_id)
        if session is None:
            raise
    return session


def _scores_changed(db: Session, report_id: int, rows) -> bool:
    incoming = sorted((cid, Decimal(str(score))) for cid, score in rows)
    return incoming != score_ledger.stored_rows(db, report_id)


def save(
    db: Session,
    *,
    step_index: int,
    form_fields: dict,
    score_rows: Optional[Iterable] = None,
    placement_id: Optional[int] = None,
    final_report_id: Optional[int] = None,
    now=None,
) -> int:
    """Write the wizard state through to storage and return the final report id."""
    _validate_step(step_index)
    _validate_fields(form_fields)
    now = now or utc_now()

    try:
        report = _resolve_report(db, placement_id, final_report_id, now)
        if report.state == "issued":
            raise ReportLockedError(f"Final report {report.id} is issued and can no longer be edited")

        session = _session_for(db, report)

        form = dict(session.form_fields or {})
        for name, raw in (form_fields or {}).items():
            form[name] = normalize_field(raw)
        form = resolve_derived(form)

        session.final_report_id = report.id
        session.current_step = step_index
        session.form_fields = form

        if score_rows is not None:
            rows = score_ledger.normalize_rows(db, list(score_rows))
            session.score_rows = [{"competency_id": cid, "score": float(score)} for cid, score in rows]
            if _scores_changed(db, report.id, rows):
                score_ledger.replace_scores(db, report, [{"competency_id": cid, "score": s} for cid, s in rows])

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"wizard saved: report_id={report.id} step={step_index}")
    return report.id


def advance(
    db: Session,
    *,
    current_step: int,
    direction: Optional[str] = None,
    target_step: Optional[int] = None,
    form_fields: dict,
    score_rows: Optional[Iterable] = None,
    placement_id: Optional[int] = None,
    final_report_id: Optional[int] = None,
    now=None,
) -> dict:
    """Save the form and move to the neighbouring (or explicitly chosen) step."""
    _validate_step(current_step)
    if target_step is not None:
        new_step = target_step
    elif direction == "next":
        new_step = min(current_step + 1, WIZARD_STEPS)
    elif direction == "back":
        new_step = max(current_step - 1, 1)
    else:
        raise InvalidInputError(
            "direction must be 'next' or 'back' when no target_step is given",
            details=[{"field": "direction", "message": f"one of {DIRECTIONS}"}],
        )

    report_id = save(
        db,
        step_index=new_step,
        form_fields=form_fields,
        score_rows=score_rows,
        placement_id=placement_id,
        final_report_id=final_report_id,
        now=now,
    )
    return {"final_report_id": report_id, "current_step": new_step}
