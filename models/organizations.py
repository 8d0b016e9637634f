from sqlalchemy import Column, Integer, String
from database.db import Base

class Organization(Base):
    __tablename__ = "organizations"  # host organization (read model)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)                      # company name
    short_code = Column(String(30))                                 # certificate code (e.g. PUSAT-LAPTOP)
    address = Column(String(300))
    logo_url = Column(String(500))                                  # opaque asset URL
