import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from database.db import SessionLocal
from dependencies.security import (
    AccessDecision,
    enforce_placement_scope,
    get_access_decision,
    require_service_token,
    require_staff,
)
from models.final_reports import FinalReport as FinalReportModel
from schemas.common import ERROR_RESPONSES, make_meta
from schemas.final_reports import (
    FinalizeRequest,
    UpsertScoresRequest,
    WizardAdvanceRequest,
    WizardSaveRequest,
)
from services import draft_composer, finalization, report_view, score_ledger, wizard_store
from services.pdf_service import CertificatePDFService
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/final-reports",
    tags=["final reports"],
    dependencies=[Depends(require_service_token)],
    responses=ERROR_RESPONSES,
)

pdf_service = CertificatePDFService()

# ==========================================================
# [common] DB session
# ==========================================================
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _report_placement(db: Session, decision: AccessDecision, final_report_id: int):
    report = db.get(FinalReportModel, final_report_id)
    if report is None:
        raise NotFoundError(f"Final report {final_report_id} not found")
    return enforce_placement_scope(db, decision, report.placement_id)


def _dump_fields(form_fields):
    return {name: field.model_dump() for name, field in form_fields.items()}


def _dump_scores(scores):
    if scores is None:
        return None
    return [row.model_dump() for row in scores]


# ==========================================================
# [1] static routes (list / draft / wizard)
# ==========================================================

# ✅ [LIST] final reports (mentors only see their mentees)
@router.get("")
def list_final_reports(
    cohort: Optional[str] = None,
    status: Optional[str] = Query(default=None, pattern="^(active|completed|canceled)$"),
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    require_staff(decision)
    total, items = report_view.list_reports(
        db,
        mentor_id=decision.mentor_id if decision.role == "mentor" else None,
        cohort=cohort,
        status=status,
        search=search,
        limit=limit,
        offset=offset,
    )
    return {
        "success": True,
        "data": items,
        "meta": make_meta(total, limit, offset).model_dump(),
        "message": "Final reports listed",
    }


# ✅ [DRAFT] pre-filled wizard view for a placement
@router.get("/draft/{placement_id}")
def get_draft(
    placement_id: int,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    enforce_placement_scope(db, decision, placement_id)
    draft = draft_composer.compose_draft(db, placement_id)
    return {"success": True, "data": draft, "message": "Draft composed"}


# ✅ [SAVE] wizard state (any step)
@router.post("/wizard/save")
def save_wizard(
    body: WizardSaveRequest,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    if body.final_report_id is not None:
        _report_placement(db, decision, body.final_report_id)
    else:
        enforce_placement_scope(db, decision, body.placement_id)

    report_id = wizard_store.save(
        db,
        step_index=body.step_index,
        form_fields=_dump_fields(body.form_fields),
        score_rows=_dump_scores(body.scores),
        placement_id=body.placement_id,
        final_report_id=body.final_report_id,
    )
    return {
        "success": True,
        "data": {"final_report_id": report_id, "current_step": body.step_index},
        "message": "Wizard saved",
    }


# ✅ [ADVANCE] save and change step
@router.post("/wizard/advance")
def advance_wizard(
    body: WizardAdvanceRequest,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    if body.final_report_id is not None:
        _report_placement(db, decision, body.final_report_id)
    else:
        enforce_placement_scope(db, decision, body.placement_id)

    result = wizard_store.advance(
        db,
        current_step=body.current_step,
        direction=body.direction,
        target_step=body.target_step,
        form_fields=_dump_fields(body.form_fields),
        score_rows=_dump_scores(body.scores),
        placement_id=body.placement_id,
        final_report_id=body.final_report_id,
    )
    return {"success": True, "data": result, "message": f"Moved to step {result['current_step']}"}


# ==========================================================
# [2] placement scoped routes
# ==========================================================

# ✅ [UPSERT] full replace of competency scores
@router.put("/placements/{placement_id}/scores")
def upsert_scores(
    placement_id: int,
    body: UpsertScoresRequest,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    enforce_placement_scope(db, decision, placement_id)
    result = score_ledger.upsert_scores(db, placement_id, _dump_scores(body.scores))
    return {"success": True, "data": result, "message": "Scores saved"}


# ==========================================================
# [3] dynamic routes (by final report id)
# ==========================================================

# ✅ [READ] final report detail
@router.get("/{final_report_id}")
def read_final_report(
    final_report_id: int,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    _report_placement(db, decision, final_report_id)
    return {"success": True, "data": report_view.get_report(db, final_report_id), "message": "Final report detail"}


# ✅ [FINALIZE] issue the certificate
@router.post("/{final_report_id}/finalize")
def finalize_final_report(
    final_report_id: int,
    body: FinalizeRequest,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    _report_placement(db, decision, final_report_id)
    fields = body.model_dump(exclude={"duration_months"})
    if fields.get("approved_by_mentor_id") is None and decision.role == "mentor":
        fields["approved_by_mentor_id"] = decision.mentor_id
    result = finalization.finalize(db, final_report_id, fields, duration_months=body.duration_months)
    return {
        "success": True,
        "data": result,
        "message": f"Final report issued, certificate number {result['certificate_number']}",
    }


# ✅ [EXPORT] printable certificate (HTML preview)
@router.get("/{final_report_id}/certificate.html", response_class=HTMLResponse)
def certificate_html(
    final_report_id: int,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    _report_placement(db, decision, final_report_id)
    view = report_view.get_report(db, final_report_id)
    return HTMLResponse(content=pdf_service.render_html(view))


# ✅ [EXPORT] printable certificate (PDF)
@router.get("/{final_report_id}/certificate.pdf")
def certificate_pdf(
    final_report_id: int,
    decision: AccessDecision = Depends(get_access_decision),
    db: Session = Depends(get_db),
):
    _report_placement(db, decision, final_report_id)
    view = report_view.get_report(db, final_report_id)
    pdf_content = pdf_service.generate_certificate_pdf(view)
    logger.info(f"certificate PDF rendered: report_id={final_report_id} bytes={len(pdf_content)}")
    filename = f"sertifikat_pkl_{final_report_id}.pdf"
    return Response(
        content=pdf_content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
