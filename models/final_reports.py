from sqlalchemy import (
    Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from database.db import Base

REPORT_STATES = ("drafting", "issued")

class FinalReport(Base):
    __tablename__ = "final_reports"  # end-of-placement report + embedded certificate
    __table_args__ = (
        UniqueConstraint(
            "certificate_org_code", "certificate_month", "certificate_year", "certificate_sequence",
            name="uq_final_reports_certificate_scope",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    placement_id = Column(Integer, nullable=False, unique=True)      # at most one report per placement
    title = Column(String(200))
    content = Column(Text)
    submitted_at = Column(DateTime(timezone=True))
    total_score = Column(Numeric(10, 2))
    average_score = Column(Numeric(10, 2))
    grade = Column(String(30))                                        # predicate label once issued
    approved_by_mentor_id = Column(Integer)
    approved_at = Column(DateTime(timezone=True))
    state = Column(Enum(*REPORT_STATES, name="final_report_state"), nullable=False, default="drafting")

    # certificate (populated exactly once, by finalization)
    certificate_predicate = Column(String(30))
    certificate_org_code = Column(String(30))
    certificate_sequence = Column(Integer)
    certificate_month = Column(Integer)
    certificate_year = Column(Integer)
    certificate_number = Column(String(80), unique=True)
    certificate_start_date = Column(Date)
    certificate_end_date = Column(Date)
    certificate_signer_name = Column(String(100))
    certificate_signer_role = Column(String(100))
    certificate_duration_months = Column(Integer)
    issued_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    scores = relationship(
        "FinalReportScore",
        back_populates="final_report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class FinalReportScore(Base):
    __tablename__ = "final_report_scores"  # one row per (report, competency)
    __table_args__ = (
        UniqueConstraint("final_report_id", "competency_template_id", name="uq_final_report_scores_competency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    final_report_id = Column(Integer, ForeignKey("final_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    competency_template_id = Column(Integer, ForeignKey("competency_templates.id", ondelete="CASCADE"), nullable=False)
    score = Column(Numeric(10, 2), nullable=False, default=0)

    final_report = relationship("FinalReport", back_populates="scores")
