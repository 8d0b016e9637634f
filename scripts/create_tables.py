from database.db import Base, engine

# ✅ register every table on Base.metadata
from models import (  # noqa: F401
    competency_templates, final_reports, mentors, organizations,
    placements, students, task_submissions, wizard_sessions,
)

def create_tables():
    Base.metadata.create_all(bind=engine)
    print("✅ tables created")

if __name__ == "__main__":
    create_tables()
