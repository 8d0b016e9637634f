"""
Pytest configuration and fixtures
- in-memory SQLite (one shared connection), fresh schema per test
- routers share the test session through dependency overrides
"""
import os

# must be set before config.settings is imported
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["INTERNAL_TOKEN"] = ""
os.environ["ENV"] = "dev"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from database.db import Base, SessionLocal, engine
from models import (  # noqa: F401
    competency_templates, final_reports, mentors, organizations,
    placements, students, task_submissions, wizard_sessions,
)
from services.competency_catalog import DEFAULT_TEMPLATES, seed_templates
from tests import factories


@pytest.fixture(scope="function")
def db() -> Session:
    """Database session on a clean schema"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """TestClient whose routers use the test session"""
    from main import app
    from routers import competencies as competencies_router
    from routers import final_reports as final_reports_router

    def _override_get_db():
        yield db

    app.dependency_overrides[competencies_router.get_db] = _override_get_db
    app.dependency_overrides[final_reports_router.get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def catalog(db: Session):
    """Default PKL catalog: 5 personality rows, 6 TKJ rows, 5 RPL rows"""
    seed_templates(db, DEFAULT_TEMPLATES)
    return db


@pytest.fixture
def placement(db: Session, catalog):
    """Active TKJ placement at ACME supervised by mentor 'Budi Santoso'"""
    organization = factories.make_organization(db, name="Acme Corp", short_code="ACME")
    mentor = factories.make_mentor(db, mentor_name="Budi Santoso", organization_id=organization.id)
    student = factories.make_student(db, student_name="Rina Lestari", major="TKJ")
    return factories.make_placement(
        db, student_id=student.id, organization_id=organization.id, mentor_id=mentor.id
    )
