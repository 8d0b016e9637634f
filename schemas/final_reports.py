from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


# ✅ one competency score as entered by the mentor
class ScoreRow(BaseModel):
    competency_id: int                                   # competency template ID
    score: float = Field(..., ge=0)                      # no upper bound enforced here


# ✅ input: full replace of a report's scores
class UpsertScoresRequest(BaseModel):
    scores: List[ScoreRow]


# ✅ one wizard form field with its provenance
class FormFieldValue(BaseModel):
    value: Optional[str] = None
    source: Literal["derived", "manual"] = "manual"


# ✅ input: wizard save (any step)
class WizardSaveRequest(BaseModel):
    placement_id: Optional[int] = None                   # required until the report exists
    final_report_id: Optional[int] = None
    step_index: int = Field(..., ge=1)
    form_fields: Dict[str, FormFieldValue] = Field(default_factory=dict)
    scores: Optional[List[ScoreRow]] = None              # None keeps the stored rows

    @model_validator(mode="after")
    def _needs_identity(self):
        if self.placement_id is None and self.final_report_id is None:
            raise ValueError("placement_id or final_report_id is required")
        return self


# ✅ input: wizard step change
class WizardAdvanceRequest(BaseModel):
    placement_id: Optional[int] = None
    final_report_id: Optional[int] = None
    current_step: int = Field(..., ge=1)
    direction: Optional[Literal["next", "back"]] = None
    target_step: Optional[int] = Field(default=None, ge=1)
    form_fields: Dict[str, FormFieldValue] = Field(default_factory=dict)
    scores: Optional[List[ScoreRow]] = None

    @model_validator(mode="after")
    def _needs_identity(self):
        if self.placement_id is None and self.final_report_id is None:
            raise ValueError("placement_id or final_report_id is required")
        return self


# ✅ input: certificate data for the terminal transition
class FinalizeRequest(BaseModel):
    predicate: Optional[Literal["SANGAT BAIK", "BAIK", "CUKUP", "KURANG"]] = None  # derived from average when empty
    organization_code: Optional[str] = None              # organization short code when empty
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    signer_name: Optional[str] = None
    signer_role: Optional[str] = None
    approved_by_mentor_id: Optional[int] = None
    duration_months: Optional[int] = Field(default=None, ge=0)
