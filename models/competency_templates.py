from sqlalchemy import Column, Enum, Integer, Numeric, String
from database.db import Base

COMPETENCY_CATEGORIES = ("personality", "technical")
ALL_TRACKS = "GENERAL"  # track sentinel: applies to every major

class CompetencyTemplate(Base):
    __tablename__ = "competency_templates"  # scoring criteria catalog

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    category = Column(Enum(*COMPETENCY_CATEGORIES, name="competency_category"), nullable=False)
    track = Column(String(20), nullable=False, default=ALL_TRACKS, index=True)
    weight = Column(Numeric(5, 2))                                  # informational only
    position = Column(Integer, nullable=False, default=0)          # display order
