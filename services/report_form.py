"""
services/report_form.py

Shape of the final report wizard form.
Every field is stored as {"value": ..., "source": "derived" | "manual"}:
- derived : filled from records/defaults, may be recomputed
- manual  : typed by the user, never overwritten by derivation
"""

from typing import Dict, Optional

from config.settings import settings
from utils.dates import current_academic_year

DERIVED = "derived"
MANUAL = "manual"
SOURCES = (DERIVED, MANUAL)

FORM_FIELDS = (
    # step 1: company
    "company_name",
    "company_logo_url",
    "mentor_name",
    "mentor_signature_url",
    # step 2: student
    "student_name",
    "student_nis",
    "student_major",
    "student_grade",
    "school_name",
    "school_logo_url",
    "expertise_program",
    "expertise_concentration",
    "expertise_field",
    "academic_year",
    "place",
    # step 5: certificate draft
    "signer_name",
    "signer_role",
    "start_date",
    "end_date",
)


def field_defaults(today=None) -> Dict[str, str]:
    return {
        "student_grade": settings.DEFAULT_STUDENT_GRADE,
        "expertise_field": settings.DEFAULT_EXPERTISE_FIELD,
        "academic_year": current_academic_year(today),
        "place": settings.DEFAULT_PLACE,
        "signer_role": settings.DEFAULT_SIGNER_ROLE,
    }


def make_field(value, source: str = DERIVED) -> dict:
    return {"value": value, "source": source}


def normalize_field(raw) -> dict:
    """Accept {"value", "source"} dicts, pydantic models or bare values (treated as manual input)."""
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump()
    if isinstance(raw, dict):
        source = raw.get("source") or MANUAL
        if source not in SOURCES:
            source = MANUAL
        return make_field(raw.get("value"), source)
    return make_field(raw, MANUAL)


def is_blank(field: Optional[dict]) -> bool:
    return field is None or field.get("value") in (None, "")


def resolve_derived(form: Dict[str, dict]) -> Dict[str, dict]:
    """Recompute derived fields from their sources. Manual values always win."""
    resolved = dict(form)
    signer = resolved.get("signer_name")
    if signer is None or signer.get("source") != MANUAL:
        mentor = resolved.get("mentor_name") or make_field("")
        resolved["signer_name"] = make_field(mentor.get("value") or "", DERIVED)
    return resolved
