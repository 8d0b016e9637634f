"""
services/certificate_sequencer.py

Certificate numbers: {sequence:03d}/{organization code}/PKL/{month}/{year}
- the sequence is counted per (organization code, month, year) scope
- previews are advisory; reserve() is the only writer and relies on the
  unique constraints of final_reports to reject a duplicate allocation
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from config.settings import settings
from models.final_reports import FinalReport
from models.organizations import Organization

logger = logging.getLogger(__name__)


def format_number(sequence: int, org_code: str, month: int, year: int) -> str:
    return f"{sequence:03d}/{org_code}/PKL/{month}/{year}"


def resolve_org_code(organization: Optional[Organization]) -> str:
    if organization is not None and organization.short_code:
        return organization.short_code.strip()
    return settings.DEFAULT_ORGANIZATION_CODE


def highest_sequence_query(db: Session, org_code: str, month: int, year: int, locking: bool = False):
    """
    Highest allocated sequence of the scope.
    locking=True (SELECT ... FOR UPDATE) reads the latest committed row, not the transaction snapshot.
    """
    query = (
        db.query(FinalReport.certificate_sequence)
        .filter(
            FinalReport.certificate_org_code == org_code,
            FinalReport.certificate_month == month,
            FinalReport.certificate_year == year,
            FinalReport.certificate_sequence.isnot(None),
        )
        .order_by(FinalReport.certificate_sequence.desc())
        .limit(1)
    )
    if locking:
        query = query.with_for_update()
    return query


def next_sequence(db: Session, org_code: str, month: int, year: int, locking: bool = False) -> int:
    row = highest_sequence_query(db, org_code, month, year, locking=locking).first()
    return (row[0] if row else 0) + 1


def next_number(db: Session, org_code: str, month: int, year: int) -> str:
    return format_number(next_sequence(db, org_code, month, year), org_code, month, year)


def reserve(db: Session, report: FinalReport, org_code: str, month: int, year: int) -> str:
    """
    Write the next free number of the scope onto `report` and flush it.
    Runs inside a SAVEPOINT: on IntegrityError only the reservation is rolled back
    and the error propagates so the caller can retry with a fresh sequence.
    """
    sequence = next_sequence(db, org_code, month, year, locking=True)
    number = format_number(sequence, org_code, month, year)
    with db.begin_nested():
        report.certificate_org_code = org_code
        report.certificate_month = month
        report.certificate_year = year
        report.certificate_sequence = sequence
        report.certificate_number = number
        db.flush()
    logger.debug(f"certificate number reserved: report_id={report.id} number={number}")
    return number
