"""
services/finalization.py

Lifecycle of a final report:  unstarted -> drafting -> issued

- unstarted : no final_reports row for the placement
- drafting  : row exists, certificate fields empty
- issued    : certificate number allocated; terminal, the report is locked for good

finalize() is the only transition into `issued` and the only place a certificate
number is reserved. Number collisions inside a (organization code, month, year)
scope are caught by the database unique constraints and retried with a fresh sequence.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import settings
from models.final_reports import FinalReport, FinalReportScore
from models.mentors import Mentor
from models.organizations import Organization
from models.placements import Placement
from models.wizard_sessions import WizardSession
from services import certificate_sequencer
from utils.dates import duration_in_months, utc_now
from utils.errors import (
    CertificateConflictError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class ReportState(str, Enum):
    UNSTARTED = "unstarted"
    DRAFTING = "drafting"
    ISSUED = "issued"


ALLOWED_TRANSITIONS = {
    ReportState.UNSTARTED: {ReportState.DRAFTING},
    ReportState.DRAFTING: {ReportState.ISSUED},
    ReportState.ISSUED: set(),
}

# (threshold, label), highest first
PREDICATE_BANDS = [
    (Decimal("90"), "SANGAT BAIK"),
    (Decimal("80"), "BAIK"),
    (Decimal("70"), "CUKUP"),
]
LOWEST_PREDICATE = "KURANG"
PREDICATES = [label for _, label in PREDICATE_BANDS] + [LOWEST_PREDICATE]


def state_of(report: Optional[FinalReport]) -> ReportState:
    if report is None:
        return ReportState.UNSTARTED
    return ReportState(report.state)


def transition(current: ReportState, target: ReportState) -> ReportState:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move a final report from '{current.value}' to '{target.value}'",
            details={"from": current.value, "to": target.value},
        )
    return target


def derive_predicate(average) -> str:
    value = Decimal(str(average or 0))
    for threshold, label in PREDICATE_BANDS:
        if value >= threshold:
            return label
    return LOWEST_PREDICATE


def _field(fields, name, default=None):
    if fields is None:
        return default
    if isinstance(fields, dict):
        return fields.get(name, default)
    return getattr(fields, name, default)


def _form_value(form: Optional[dict], name: str):
    field = (form or {}).get(name)
    value = field.get("value") if isinstance(field, dict) else field
    return None if value in (None, "") else value


def _as_date(value, name: str) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidInputError(
            f"{name} is not a valid date",
            details=[{"field": name, "message": "expected YYYY-MM-DD"}],
        )


def certificate_defaults(db: Session, report: FinalReport, placement: Optional[Placement] = None) -> dict:
    """
    Certificate data for fields the finalize caller leaves out:
    the placement's wizard form first, then placement dates and the mentor's name.
    """
    placement = placement or db.get(Placement, report.placement_id)
    mentor = db.get(Mentor, placement.mentor_id) if placement and placement.mentor_id else None
    session = db.query(WizardSession).filter(WizardSession.placement_id == report.placement_id).first()
    form = session.form_fields if session else None

    return {
        "signer_name": _form_value(form, "signer_name") or getattr(mentor, "mentor_name", None),
        "signer_role": _form_value(form, "signer_role") or settings.DEFAULT_SIGNER_ROLE,
        "start_date": _as_date(_form_value(form, "start_date"), "start_date") or getattr(placement, "start_date", None),
        "end_date": _as_date(_form_value(form, "end_date"), "end_date") or getattr(placement, "end_date", None),
    }


def finalize(
    db: Session,
    final_report_id: int,
    certificate_fields,
    duration_months: Optional[int] = None,
    now=None,
) -> dict:
    """
    Issue the certificate of a drafting report.
    certificate_fields: predicate?, organization_code?, start_date?, end_date?, signer_name?, signer_role?
    Omitted certificate data falls back to certificate_defaults().
    """
    now = now or utc_now()

    report = (
        db.query(FinalReport)
        .filter(FinalReport.id == final_report_id)
        .with_for_update()
        .first()
    )
    if report is None:
        raise NotFoundError(f"Final report {final_report_id} not found")

    transition(state_of(report), ReportState.ISSUED)

    score_count = (
        db.query(FinalReportScore.id).filter(FinalReportScore.final_report_id == report.id).count()
    )
    if score_count == 0:
        raise InvalidInputError(
            "A final report needs at least one competency score before it can be issued",
            details=[{"field": "scores", "message": "empty score set"}],
        )

    placement = db.get(Placement, report.placement_id)
    defaults = certificate_defaults(db, report, placement)

    start_date = _as_date(_field(certificate_fields, "start_date"), "start_date") or defaults["start_date"]
    end_date = _as_date(_field(certificate_fields, "end_date"), "end_date") or defaults["end_date"]
    if start_date and end_date and end_date < start_date:
        raise InvalidInputError(
            "end_date must not be before start_date",
            details=[{"field": "end_date", "message": "before start_date"}],
        )

    predicate = _field(certificate_fields, "predicate") or derive_predicate(report.average_score)
    if predicate not in PREDICATES:
        raise InvalidInputError(
            f"Unknown predicate '{predicate}'",
            details=[{"field": "predicate", "message": f"must be one of {PREDICATES}"}],
        )

    org_code = _field(certificate_fields, "organization_code")
    if not org_code:
        organization = db.get(Organization, placement.organization_id) if placement else None
        org_code = certificate_sequencer.resolve_org_code(organization)

    if duration_months is None:
        duration_months = duration_in_months(start_date, end_date)

    report.certificate_predicate = predicate
    report.certificate_start_date = start_date
    report.certificate_end_date = end_date
    report.certificate_signer_name = _field(certificate_fields, "signer_name") or defaults["signer_name"]
    report.certificate_signer_role = _field(certificate_fields, "signer_role") or defaults["signer_role"]
    report.certificate_duration_months = duration_months
    report.grade = predicate
    report.approved_by_mentor_id = _field(certificate_fields, "approved_by_mentor_id")
    report.approved_at = now
    report.issued_at = now
    report.state = ReportState.ISSUED.value

    number = None
    try:
        # a failed reservation only rolls back the certificate number fields
        db.flush()
        for attempt in range(1, settings.CERTIFICATE_MAX_RETRIES + 1):
            try:
                number = certificate_sequencer.reserve(db, report, org_code, now.month, now.year)
                break
            except IntegrityError:
                logger.warning(
                    f"certificate number taken, retrying: report_id={report.id} scope={org_code}/{now.month}/{now.year} "
                    f"attempt={attempt}"
                )
        if number is None:
            raise CertificateConflictError(
                f"Could not allocate a certificate number in scope {org_code}/{now.month}/{now.year}, please retry",
                details={"organization_code": org_code, "month": now.month, "year": now.year},
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"final report issued: report_id={report.id} certificate_number={number}")
    return {
        "final_report_id": report.id,
        "state": ReportState.ISSUED.value,
        "certificate_number": number,
        "predicate": predicate,
        "total_score": float(report.total_score or 0),
        "average_score": float(report.average_score or 0),
        "duration_months": duration_months,
    }
