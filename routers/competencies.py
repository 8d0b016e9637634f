from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import SessionLocal
from dependencies.security import require_service_token
from schemas.competencies import CompetencyTemplate as CompetencyTemplateSchema
from services import competency_catalog

router = APIRouter(prefix="/competencies", tags=["competencies"], dependencies=[Depends(require_service_token)])

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ✅ [READ] scoring criteria for a track (personality rows apply to every track)
@router.get("")
def read_competencies(track: Optional[str] = None, db: Session = Depends(get_db)):
    grouped = competency_catalog.list_for(db, track)
    return {
        "success": True,
        "data": {
            category: [CompetencyTemplateSchema.model_validate(t).model_dump() for t in rows]
            for category, rows in grouped.items()
        },
        "message": f"Competency catalog for track {track or 'GENERAL'}",
    }
