"""
services/draft_composer.py

Builds the pre-filled view of a placement's final report before (or while) the wizard runs.

Precedence for every form field, highest first:
  1) the saved wizard snapshot of the placement
  2) placement / organization / mentor / student records
  3) the field's default
Missing upstream records never fail composition: the field falls back to its default.

Initial scores: per applicable competency, the sum of the student's approved task
submission scores tagged against it (0 when none). Rows stored by the score ledger win
per competency.
"""

import logging
from datetime import date
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.final_reports import FinalReport
from models.mentors import Mentor
from models.organizations import Organization
from models.placements import Placement
from models.students import Student
from models.task_submissions import TaskSubmission
from services import certificate_sequencer, competency_catalog, wizard_store
from services.finalization import ReportState, derive_predicate, state_of
from services.report_form import DERIVED, FORM_FIELDS, field_defaults, is_blank, make_field, resolve_derived
from services.score_ledger import compute_aggregates, stored_rows, to_decimal
from utils.dates import utc_now
from utils.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _record_values(placement: Placement, student, organization, mentor) -> Dict[str, Optional[str]]:
    """Field values copied from upstream records; absent relations give None."""
    major = getattr(student, "major", None)
    mentor_name = getattr(mentor, "mentor_name", None)
    return {
        "company_name": getattr(organization, "name", None),
        "company_logo_url": getattr(organization, "logo_url", None),
        "mentor_name": mentor_name,
        "mentor_signature_url": getattr(mentor, "signature_url", None),
        "student_name": getattr(student, "student_name", None),
        "student_nis": getattr(student, "nis", None),
        "student_major": major,
        "school_name": getattr(student, "school", None),
        "school_logo_url": getattr(student, "school_logo_url", None),
        "expertise_program": major,
        "expertise_concentration": major,
        "signer_name": mentor_name,
        "start_date": _iso(placement.start_date),
        "end_date": _iso(placement.end_date),
    }


def merge_fields(snapshot: Optional[dict], records: dict, defaults: dict) -> Dict[str, dict]:
    snapshot = snapshot or {}
    form = {}
    for name in FORM_FIELDS:
        saved = snapshot.get(name)
        if not is_blank(saved):
            form[name] = make_field(saved["value"], saved.get("source") or DERIVED)
        elif records.get(name) not in (None, ""):
            form[name] = make_field(records[name])
        else:
            form[name] = make_field(defaults.get(name, ""))
    return resolve_derived(form)


def approved_score_sums(db: Session, student_id: int, competency_ids) -> dict:
    if not competency_ids:
        return {}
    rows = (
        db.query(TaskSubmission.competency_template_id, func.sum(TaskSubmission.score))
        .filter(
            TaskSubmission.student_id == student_id,
            TaskSubmission.status == "approved",
            TaskSubmission.competency_template_id.in_(competency_ids),
            TaskSubmission.score.isnot(None),
        )
        .group_by(TaskSubmission.competency_template_id)
        .all()
    )
    return {cid: to_decimal(total) for cid, total in rows}


def compose_draft(db: Session, placement_id: int, today: Optional[date] = None) -> dict:
    # same UTC clock as finalization, so the preview scope matches the issued one
    today = today or utc_now().date()

    placement = db.get(Placement, placement_id)
    if placement is None:
        raise NotFoundError(f"Placement {placement_id} not found")

    report = db.query(FinalReport).filter(FinalReport.placement_id == placement_id).first()
    state = state_of(report)
    if state == ReportState.ISSUED:
        raise ConflictError(
            f"Final report {report.id} is already issued, read it instead of composing a draft",
            details={"final_report_id": report.id},
        )

    student = db.get(Student, placement.student_id) if placement.student_id else None
    organization = db.get(Organization, placement.organization_id) if placement.organization_id else None
    mentor = db.get(Mentor, placement.mentor_id) if placement.mentor_id else None
    snapshot = wizard_store.load(db, placement_id)

    form = merge_fields(
        snapshot.form_fields if snapshot else None,
        _record_values(placement, student, organization, mentor),
        field_defaults(today),
    )

    templates = competency_catalog.applicable_templates(db, getattr(student, "major", None))
    sums = approved_score_sums(db, placement.student_id, [t.id for t in templates])
    # stored ledger rows are authoritative once a report exists
    saved_scores = dict(stored_rows(db, report.id)) if report else {}

    scores = []
    for template in templates:
        calculated = sums.get(template.id, to_decimal(0))
        score = saved_scores.get(template.id, calculated)
        scores.append({
            "competency_id": template.id,
            "name": template.name,
            "category": template.category,
            "calculated_score": float(calculated),
            "score": float(score),
        })

    total, average = compute_aggregates(s["score"] for s in scores)

    org_code = certificate_sequencer.resolve_org_code(organization)
    sequence = certificate_sequencer.next_sequence(db, org_code, today.month, today.year)

    if organization is None or mentor is None or student is None:
        logger.info(f"draft composed with missing relations: placement_id={placement_id}")

    return {
        "placement": {
            "id": placement.id,
            "status": placement.status,
            "start_date": _iso(placement.start_date),
            "end_date": _iso(placement.end_date),
        },
        "report_id": report.id if report else None,
        "state": state.value,
        "current_step": snapshot.current_step if snapshot else 1,
        "form_fields": form,
        "scores": scores,
        "total_score": float(total),
        "average_score": float(average),
        "predicate": derive_predicate(average),
        "certificate_preview": {
            "next_sequence_number": sequence,
            "organization_code": org_code,
            "certificate_number": certificate_sequencer.format_number(sequence, org_code, today.month, today.year),
        },
    }
