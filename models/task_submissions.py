from sqlalchemy import Column, Enum, Integer, Numeric, String
from database.db import Base

TASK_STATUSES = ("todo", "in_progress", "submitted", "approved", "rejected")

class TaskSubmission(Base):
    __tablename__ = "task_submissions"  # reviewed task work (upstream read model)

    id = Column(Integer, primary_key=True, index=True)
    placement_id = Column(Integer, nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    competency_template_id = Column(Integer, index=True)           # competency the task is tagged against
    title = Column(String(200))
    status = Column(Enum(*TASK_STATUSES, name="task_status"), nullable=False, default="todo")
    score = Column(Numeric(5, 2))                                   # review score, set on approval
