from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, func
from database.db import Base

class WizardSession(Base):
    __tablename__ = "wizard_sessions"  # in-progress form state of the report wizard

    id = Column(Integer, primary_key=True, index=True)
    placement_id = Column(Integer, nullable=False, unique=True)
    final_report_id = Column(Integer, ForeignKey("final_reports.id", ondelete="CASCADE"), index=True)
    current_step = Column(Integer, nullable=False, default=1)
    form_fields = Column(JSON, nullable=False, default=dict)          # field -> {"value", "source"}
    score_rows = Column(JSON, nullable=False, default=list)           # [{"competency_id", "score"}]
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
