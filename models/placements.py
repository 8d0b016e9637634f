from sqlalchemy import Column, Date, Enum, Integer
from database.db import Base

PLACEMENT_STATUSES = ("active", "completed", "canceled")

class Placement(Base):
    __tablename__ = "placements"  # student assignment to a host organization (read model)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    organization_id = Column(Integer, nullable=False)
    mentor_id = Column(Integer, index=True)
    start_date = Column(Date)
    end_date = Column(Date)
    status = Column(Enum(*PLACEMENT_STATUSES, name="placement_status"), nullable=False, default="active")
