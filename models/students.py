from sqlalchemy import Column, Integer, String
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # student profile (read model)

    id = Column(Integer, primary_key=True, index=True)               # student ID (Primary Key)
    student_name = Column(String(100), nullable=False)              # full name
    nis = Column(String(30))                                        # national student number
    school = Column(String(200))                                    # school name
    school_logo_url = Column(String(500))                           # opaque asset URL
    major = Column(String(20), index=True)                          # track code (e.g. TKJ, RPL)
    cohort = Column(String(10), index=True)                         # cohort year (e.g. 2024)
