from datetime import date, datetime, timezone

import pytest

from services import draft_composer, finalization, score_ledger, wizard_store
from tests import factories
from utils.errors import ConflictError, NotFoundError

TODAY = date(2024, 8, 1)


def test_records_and_defaults_fill_a_fresh_draft(db, placement):
    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)
    form = draft["form_fields"]

    assert draft["report_id"] is None
    assert draft["state"] == "unstarted"
    assert draft["current_step"] == 1
    assert form["company_name"] == {"value": "Acme Corp", "source": "derived"}
    assert form["mentor_name"]["value"] == "Budi Santoso"
    assert form["signer_name"] == {"value": "Budi Santoso", "source": "derived"}
    assert form["student_name"]["value"] == "Rina Lestari"
    assert form["start_date"]["value"] == "2024-01-08"
    assert form["student_grade"]["value"] == "XII (Dua Belas)"
    assert form["expertise_field"]["value"] == "Teknologi Informasi"
    assert form["place"]["value"] == "Tasikmalaya"
    assert form["academic_year"]["value"] == "2024/2025"
    assert draft["certificate_preview"] == {
        "next_sequence_number": 1,
        "organization_code": "ACME",
        "certificate_number": "001/ACME/PKL/8/2024",
    }


def test_saved_snapshot_beats_records(db, placement):
    wizard_store.save(
        db,
        step_index=1,
        form_fields={"company_name": {"value": "Acme Corp Tasik", "source": "manual"}},
        placement_id=placement.id,
    )

    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)

    assert draft["form_fields"]["company_name"] == {"value": "Acme Corp Tasik", "source": "manual"}
    assert draft["state"] == "drafting"
    assert draft["report_id"] is not None


def test_blank_snapshot_value_falls_back_to_records(db, placement):
    wizard_store.save(
        db, step_index=1, form_fields={"company_name": {"value": "", "source": "manual"}}, placement_id=placement.id
    )

    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)
    assert draft["form_fields"]["company_name"]["value"] == "Acme Corp"


def test_initial_scores_sum_approved_submissions_only(db, placement):
    ids = factories.template_ids(db)
    factories.make_submission(db, placement, ids[5], 40)
    factories.make_submission(db, placement, ids[5], 30)
    factories.make_submission(db, placement, ids[5], 50, status="submitted")
    factories.make_submission(db, placement, ids[6], 90, status="rejected")

    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)
    by_id = {row["competency_id"]: row for row in draft["scores"]}

    assert len(draft["scores"]) == 11
    assert by_id[ids[5]]["calculated_score"] == 70.0
    assert by_id[ids[5]]["score"] == 70.0
    assert by_id[ids[6]]["score"] == 0.0
    assert draft["total_score"] == 70.0
    assert draft["average_score"] == 6.36
    assert draft["predicate"] == "KURANG"


def test_saved_scores_override_calculated_ones(db, placement):
    ids = factories.template_ids(db)
    factories.make_submission(db, placement, ids[5], 70)
    wizard_store.save(
        db, step_index=3, form_fields={}, score_rows=[{"competency_id": ids[5], "score": 88}], placement_id=placement.id
    )

    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)
    row = next(r for r in draft["scores"] if r["competency_id"] == ids[5])

    assert row["calculated_score"] == 70.0
    assert row["score"] == 88.0
    assert draft["current_step"] == 3


def test_missing_relations_fall_back_to_defaults(db, catalog):
    student = factories.make_student(db, student_name="Eko Prasetyo", major="RPL")
    orphan = factories.make_placement(db, student_id=student.id, organization_id=9999, mentor_id=None)

    draft = draft_composer.compose_draft(db, orphan.id, today=TODAY)
    form = draft["form_fields"]

    assert form["company_name"]["value"] == ""
    assert form["mentor_name"]["value"] == ""
    assert form["signer_name"]["value"] == ""
    assert form["signer_role"]["value"] == "Pembimbing"
    assert draft["certificate_preview"]["organization_code"] == "PUSAT-LAPTOP"
    assert len(draft["scores"]) == 10


def test_unknown_placement_is_not_found(db):
    with pytest.raises(NotFoundError):
        draft_composer.compose_draft(db, 9999, today=TODAY)


def test_issued_report_is_not_redrafted(db, placement):
    ids = factories.template_ids(db)
    report_id = score_ledger.upsert_scores(db, placement.id, [{"competency_id": ids[0], "score": 90}])[
        "final_report_id"
    ]
    finalization.finalize(db, report_id, {"signer_name": "Budi Santoso"})

    with pytest.raises(ConflictError):
        draft_composer.compose_draft(db, placement.id, today=TODAY)


def test_ledger_scores_win_over_an_older_wizard_snapshot(db, placement):
    ids = factories.template_ids(db)
    wizard_store.save(
        db, step_index=3, form_fields={}, score_rows=[{"competency_id": ids[0], "score": 60}], placement_id=placement.id
    )
    score_ledger.upsert_scores(db, placement.id, [{"competency_id": ids[0], "score": 95}])

    draft = draft_composer.compose_draft(db, placement.id, today=TODAY)
    row = next(r for r in draft["scores"] if r["competency_id"] == ids[0])
    assert row["score"] == 95.0
    assert wizard_store.load(db, placement.id).score_rows == [{"competency_id": ids[0], "score": 95.0}]

    # resubmitting the draft rows keeps the mentor's newer score
    wizard_store.save(
        db,
        step_index=4,
        form_fields={},
        score_rows=[{"competency_id": r["competency_id"], "score": r["score"]} for r in draft["scores"]],
        placement_id=placement.id,
    )
    again = draft_composer.compose_draft(db, placement.id, today=TODAY)
    assert next(r for r in again["scores"] if r["competency_id"] == ids[0])["score"] == 95.0


def test_preview_and_issue_share_the_utc_clock(db, placement, monkeypatch):
    month_end = datetime(2024, 5, 31, 23, 30, tzinfo=timezone.utc)
    monkeypatch.setattr(draft_composer, "utc_now", lambda: month_end)
    ids = factories.template_ids(db)
    report_id = score_ledger.upsert_scores(db, placement.id, [{"competency_id": ids[0], "score": 90}])[
        "final_report_id"
    ]

    preview = draft_composer.compose_draft(db, placement.id)["certificate_preview"]
    issued = finalization.finalize(db, report_id, {}, now=month_end)

    assert preview["certificate_number"] == "001/ACME/PKL/5/2024"
    assert issued["certificate_number"] == preview["certificate_number"]
