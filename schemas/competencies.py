from pydantic import BaseModel
from typing import Optional

# ✅ output: one scoring criterion
class CompetencyTemplate(BaseModel):
    id: int
    name: str                                # criterion name (e.g. Disiplin)
    category: str                            # personality | technical
    track: str                               # track code or GENERAL
    position: int                            # display order
    weight: Optional[float] = None

    class Config:
        from_attributes = True
