from datetime import datetime, timezone

from sqlalchemy.dialects import mysql

from services import certificate_sequencer, finalization, score_ledger
from tests import factories


def _issue(db, placement, now):
    ids = factories.template_ids(db)
    report_id = score_ledger.upsert_scores(db, placement.id, [{"competency_id": ids[0], "score": 85}])["final_report_id"]
    return finalization.finalize(db, report_id, {"signer_name": "Budi Santoso"}, now=now)["certificate_number"]


def _another_placement(db, organization_id, name):
    student = factories.make_student(db, student_name=name)
    return factories.make_placement(db, student_id=student.id, organization_id=organization_id)


def test_format_number():
    assert certificate_sequencer.format_number(1, "ACME", 5, 2024) == "001/ACME/PKL/5/2024"
    assert certificate_sequencer.format_number(42, "PUSAT-LAPTOP", 12, 2025) == "042/PUSAT-LAPTOP/PKL/12/2025"
    assert certificate_sequencer.format_number(1000, "ACME", 1, 2026) == "1000/ACME/PKL/1/2026"


def test_resolve_org_code_falls_back_to_default(db):
    assert certificate_sequencer.resolve_org_code(None) == "PUSAT-LAPTOP"
    blank = factories.make_organization(db, name="No Code", short_code=None)
    assert certificate_sequencer.resolve_org_code(blank) == "PUSAT-LAPTOP"
    coded = factories.make_organization(db, name="Coded", short_code=" ACME ")
    assert certificate_sequencer.resolve_org_code(coded) == "ACME"


def test_first_sequence_of_a_scope_is_one(db):
    assert certificate_sequencer.next_sequence(db, "ACME", 5, 2024) == 1
    assert certificate_sequencer.next_number(db, "ACME", 5, 2024) == "001/ACME/PKL/5/2024"


def test_sequential_issues_get_distinct_increasing_numbers(db, placement):
    may = datetime(2024, 5, 10, tzinfo=timezone.utc)
    second = _another_placement(db, placement.organization_id, "Dewi")
    third = _another_placement(db, placement.organization_id, "Eko")

    numbers = [_issue(db, p, may) for p in (placement, second, third)]

    assert numbers == ["001/ACME/PKL/5/2024", "002/ACME/PKL/5/2024", "003/ACME/PKL/5/2024"]
    assert certificate_sequencer.next_sequence(db, "ACME", 5, 2024) == 4


def test_sequence_resets_per_month_and_organization(db, placement):
    _issue(db, placement, datetime(2024, 5, 10, tzinfo=timezone.utc))

    june = _another_placement(db, placement.organization_id, "Dewi")
    assert _issue(db, june, datetime(2024, 6, 3, tzinfo=timezone.utc)) == "001/ACME/PKL/6/2024"

    other_org = factories.make_organization(db, name="Beta Komputer", short_code="BETA")
    beta = _another_placement(db, other_org.id, "Eko")
    assert _issue(db, beta, datetime(2024, 5, 20, tzinfo=timezone.utc)) == "001/BETA/PKL/5/2024"


def test_reservation_reads_the_scope_with_a_row_lock(db):
    def compiled(locking):
        query = certificate_sequencer.highest_sequence_query(db, "ACME", 5, 2024, locking=locking)
        return str(query.statement.compile(dialect=mysql.dialect()))

    assert "FOR UPDATE" in compiled(True)
    assert "FOR UPDATE" not in compiled(False)


def test_reserve_uses_the_locking_read(db, placement, monkeypatch):
    seen = []
    real_next_sequence = certificate_sequencer.next_sequence

    def recording(*args, **kwargs):
        seen.append(kwargs.get("locking", False))
        return real_next_sequence(*args, **kwargs)

    monkeypatch.setattr(certificate_sequencer, "next_sequence", recording)
    _issue(db, placement, datetime(2024, 5, 10, tzinfo=timezone.utc))

    assert seen == [True]
