from services import competency_catalog
from services.competency_catalog import DEFAULT_TEMPLATES, seed_templates
from tests import factories


def test_seed_is_idempotent(db):
    assert seed_templates(db, DEFAULT_TEMPLATES) == len(DEFAULT_TEMPLATES)
    assert seed_templates(db, DEFAULT_TEMPLATES) == 0


def test_track_filters_technical_rows_only(catalog):
    tkj = competency_catalog.list_for(catalog, "TKJ")
    rpl = competency_catalog.list_for(catalog, "RPL")

    assert len(tkj["personality"]) == 5
    assert len(rpl["personality"]) == 5
    assert [t.name for t in tkj["technical"]][:2] == ["Penerapan K3LH", "Merakit Komputer"]
    assert len(tkj["technical"]) == 6
    assert len(rpl["technical"]) == 5


def test_general_technical_rows_apply_to_every_track(catalog):
    factories.make_template(catalog, "Etika Kerja Industri", track="GENERAL")

    assert "Etika Kerja Industri" in [t.name for t in competency_catalog.list_for(catalog, "TKJ")["technical"]]
    assert "Etika Kerja Industri" in [t.name for t in competency_catalog.list_for(catalog, "RPL")["technical"]]
    # no track: only the GENERAL technical rows
    assert [t.name for t in competency_catalog.list_for(catalog, None)["technical"]] == ["Etika Kerja Industri"]


def test_unknown_track_still_gets_personality_rows(catalog):
    grouped = competency_catalog.list_for(catalog, "MM")
    assert len(grouped["personality"]) == 5
    assert grouped["technical"] == []


def test_applicable_templates_lists_personality_first(catalog):
    rows = competency_catalog.applicable_templates(catalog, "TKJ")
    assert [r.category for r in rows] == ["personality"] * 5 + ["technical"] * 6
