"""
services/report_view.py

Read side of final reports: the detail view consumed by edit/print screens and the list view.
"""

from typing import Optional, Tuple

from sqlalchemy.orm import Session

from models.competency_templates import CompetencyTemplate
from models.final_reports import FinalReport, FinalReportScore
from models.organizations import Organization
from models.placements import Placement
from models.students import Student
from models.wizard_sessions import WizardSession
from services.finalization import state_of
from services.score_ledger import compute_aggregates
from utils.errors import NotFoundError


def _iso(value):
    return value.isoformat() if value else None


def certificate_block(report: FinalReport) -> Optional[dict]:
    if not report.certificate_number:
        return None
    return {
        "certificate_number": report.certificate_number,
        "predicate": report.certificate_predicate,
        "organization_code": report.certificate_org_code,
        "sequence_number": report.certificate_sequence,
        "month": report.certificate_month,
        "year": report.certificate_year,
        "start_date": _iso(report.certificate_start_date),
        "end_date": _iso(report.certificate_end_date),
        "signer_name": report.certificate_signer_name,
        "signer_role": report.certificate_signer_role,
        "duration_months": report.certificate_duration_months,
        "issued_at": _iso(report.issued_at),
    }


def get_report(db: Session, final_report_id: int) -> dict:
    report = db.get(FinalReport, final_report_id)
    if report is None:
        raise NotFoundError(f"Final report {final_report_id} not found")

    placement = db.get(Placement, report.placement_id)
    student = db.get(Student, placement.student_id) if placement else None
    organization = db.get(Organization, placement.organization_id) if placement else None
    session = (
        db.query(WizardSession).filter(WizardSession.placement_id == report.placement_id).first()
    )

    rows = (
        db.query(FinalReportScore, CompetencyTemplate)
        .join(CompetencyTemplate, CompetencyTemplate.id == FinalReportScore.competency_template_id)
        .filter(FinalReportScore.final_report_id == report.id)
        .order_by(CompetencyTemplate.position, CompetencyTemplate.id)
        .all()
    )
    grouped = {"personality": [], "technical": []}
    for score, template in rows:
        grouped[template.category].append({
            "competency_id": template.id,
            "name": template.name,
            "category": template.category,
            "score": float(score.score or 0),
        })

    return {
        "id": report.id,
        "placement_id": report.placement_id,
        "state": state_of(report).value,
        "student": {
            "id": student.id,
            "name": student.student_name,
            "nis": student.nis,
            "school": student.school,
            "major": student.major,
            "cohort": student.cohort,
        } if student else None,
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "short_code": organization.short_code,
        } if organization else None,
        "placement_status": placement.status if placement else None,
        "current_step": session.current_step if session else None,
        "form_fields": session.form_fields if session else {},
        "scores": grouped,
        "total_score": float(report.total_score or 0),
        "average_score": float(report.average_score or 0),
        "predicate": report.certificate_predicate,
        "certificate": certificate_block(report),
        "submitted_at": _iso(report.submitted_at),
    }


def list_reports(
    db: Session,
    *,
    mentor_id: Optional[int] = None,
    cohort: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[int, list]:
    query = (
        db.query(FinalReport, Placement, Student)
        .join(Placement, Placement.id == FinalReport.placement_id)
        .join(Student, Student.id == Placement.student_id)
    )
    if mentor_id is not None:
        query = query.filter(Placement.mentor_id == mentor_id)
    if cohort:
        query = query.filter(Student.cohort == cohort)
    if status:
        query = query.filter(Placement.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter((Student.student_name.ilike(like)) | (Student.nis.ilike(like)))

    total = query.count()
    records = query.order_by(FinalReport.id).offset(offset).limit(limit).all()

    report_ids = [report.id for report, _, _ in records]
    scores_by_report = {}
    if report_ids:
        for report_id, score in (
            db.query(FinalReportScore.final_report_id, FinalReportScore.score)
            .filter(FinalReportScore.final_report_id.in_(report_ids))
            .all()
        ):
            scores_by_report.setdefault(report_id, []).append(score)

    items = []
    for report, placement, student in records:
        total_score, average_score = compute_aggregates(scores_by_report.get(report.id, []))
        items.append({
            "id": report.id,
            "placement_id": placement.id,
            "student_name": student.student_name,
            "student_code": student.nis,
            "school": student.school,
            "cohort": student.cohort,
            "status": placement.status,
            "state": state_of(report).value,
            "certificate_number": report.certificate_number,
            "total_score": float(total_score),
            "average_score": float(average_score),
        })
    return total, items
