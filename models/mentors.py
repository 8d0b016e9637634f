from sqlalchemy import Column, Integer, String
from database.db import Base

class Mentor(Base):
    __tablename__ = "mentors"  # industry mentor (read model)

    id = Column(Integer, primary_key=True, index=True)
    mentor_name = Column(String(100), nullable=False)
    organization_id = Column(Integer, index=True)                   # organization the mentor belongs to
    signature_url = Column(String(500))                             # opaque asset URL
    phone = Column(String(30))
