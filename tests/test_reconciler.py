"""
Tests for duplicate and reference detection of import rows.
"""
from mma_importer.domain.imports.descriptors import FIGHT_HISTORY_DESCRIPTOR, FIGHTER_DESCRIPTOR
from mma_importer.domain.imports.field_dictionary import FIGHT_RECORD_FIELDS, FIGHTER_FIELDS
from mma_importer.domain.imports.models import ExistingFighter, RowStatus
from mma_importer.domain.imports.reconciler import ReconciliationContext, reconcile_rows, split_full_name
from mma_importer.domain.imports.schema_mapper import auto_map_fields


def _fighter_rows(headers, rows, context):
    mappings = auto_map_fields(headers, FIGHTER_FIELDS)
    return reconcile_rows(rows, mappings, FIGHTER_DESCRIPTOR, context)


def _fight_rows(headers, rows, context):
    mappings = auto_map_fields(headers, FIGHT_RECORD_FIELDS)
    return reconcile_rows(rows, mappings, FIGHT_HISTORY_DESCRIPTOR, context)


def test_split_full_name():
    assert split_full_name("Jon Bones Jones") == ("Jon", "Bones Jones")
    assert split_full_name("  Shogun  ") == ("Shogun", "")
    assert split_full_name("") == ("", "")


def test_new_fighter_is_ready(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)

    rows = _fighter_rows(["first_name", "last_name"], [{"first_name": "Alex", "last_name": "Pereira"}], context)

    assert rows[0].id == "row-0"
    assert rows[0].status == RowStatus.READY
    assert rows[0].matched_existing_id is None


def test_fighter_name_match_is_case_insensitive(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)

    rows = _fighter_rows(["first_name", "last_name"], [{"first_name": "JON", "last_name": "jones"}], context)

    assert rows[0].status == RowStatus.DUPLICATE
    assert rows[0].matched_existing_id == "jon-jones"
    assert rows[0].status_message == "Matches existing fighter: Jon Jones"


def test_fighter_id_match_wins_over_names(existing_fighters):
    """An id match is a duplicate even with blank or different names."""
    context = ReconciliationContext.from_records(existing_fighters)
    headers = ["id", "first_name", "last_name"]

    rows = _fighter_rows(headers, [
        {"id": "stipe-miocic", "first_name": "", "last_name": ""},
        {"id": "stipe-miocic", "first_name": "Jon", "last_name": "Jones"},
    ], context)

    assert [r.status for r in rows] == [RowStatus.DUPLICATE, RowStatus.DUPLICATE]
    assert [r.matched_existing_id for r in rows] == ["stipe-miocic", "stipe-miocic"]


def test_fighter_name_fallback_needs_both_names(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)

    rows = _fighter_rows(["first_name", "last_name"], [{"first_name": "Jon", "last_name": ""}], context)

    assert rows[0].status == RowStatus.READY


def test_same_name_different_fighter_is_flagged_duplicate():
    """Name matching is exact and unqualified, so namesakes collide."""
    context = ReconciliationContext.from_records([
        ExistingFighter(id="michael-johnson-1", first_name="Michael", last_name="Johnson"),
    ])

    rows = _fighter_rows(["first_name", "last_name"], [{"first_name": "Michael", "last_name": "Johnson"}], context)

    assert rows[0].matched_existing_id == "michael-johnson-1"


def test_fight_row_with_unknown_fighter_is_error(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)
    headers = ["Fighter", "Opponent", "event_name", "event_date", "result"]

    rows = _fight_rows(headers, [
        {"Fighter": "Conor McGregor", "Opponent": "Jon Jones", "event_name": "UFC 1", "event_date": "2020-01-01", "result": "W"},
        {"Fighter": "Jon Jones", "Opponent": "Alex Pereira", "event_name": "UFC 2", "event_date": "2021-01-01", "result": "W"},
    ], context)

    assert rows[0].status == RowStatus.ERROR
    assert rows[0].status_message == "Fighter not found: Conor McGregor. Import fighter first."
    # Sibling rows are unaffected
    assert rows[1].status == RowStatus.READY


def test_fight_row_resolves_fighter_by_id_first(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)
    headers = ["fighter_id", "Fighter", "Opponent", "event_name", "result"]

    rows = _fight_rows(headers, [
        {"fighter_id": "stipe-miocic", "Fighter": "Jon Jones", "Opponent": "Daniel Cormier", "event_name": "UFC 241", "result": "W"},
    ], context)

    assert rows[0].resolved_fighter_id == "stipe-miocic"
    assert rows[0].status_message.startswith("Linked to: Stipe Miocic")


def test_fight_row_links_known_opponent(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)
    headers = ["Fighter", "Opponent", "event_name", "event_date", "result"]

    rows = _fight_rows(headers, [
        {"Fighter": "Jon Jones", "Opponent": "stipe miocic", "event_name": "UFC 309", "event_date": "2024-11-16", "result": "W"},
    ], context)

    row = rows[0]
    assert row.status == RowStatus.READY
    assert row.resolved_fighter_id == "jon-jones"
    assert row.matched_opponent_id == "stipe-miocic"
    assert row.opponent_linked
    assert row.status_message == "Linked to: Jon Jones"


def test_unknown_opponent_is_informational_only(existing_fighters):
    context = ReconciliationContext.from_records(existing_fighters)
    headers = ["Fighter", "Opponent", "event_name", "event_date", "result"]

    rows = _fight_rows(headers, [
        {"Fighter": "Jon Jones", "Opponent": "Vladimir Matyushenko", "event_name": "UFC 100", "event_date": "2009-08-01", "result": "W"},
    ], context)

    row = rows[0]
    assert row.status == RowStatus.READY
    assert not row.opponent_linked
    assert row.matched_opponent_id is None
    assert row.status_message == (
        'Linked to: Jon Jones | Opponent "Vladimir Matyushenko" not in system (will auto-link later)'
    )


def test_fight_duplicate_by_date_and_opponent(existing_fighters, existing_fights):
    context = ReconciliationContext.from_records(existing_fighters, existing_fights)
    headers = ["Fighter", "Opponent", "event_name", "event_date", "result"]

    rows = _fight_rows(headers, [
        {"Fighter": "Jon Jones", "Opponent": "DANIEL CORMIER", "event_name": "UFC 214", "event_date": "2017-07-29", "result": "NC"},
        {"Fighter": "Jon Jones", "Opponent": "Daniel Cormier", "event_name": "UFC 182", "event_date": "2015-01-03", "result": "W"},
    ], context)

    assert rows[0].status == RowStatus.DUPLICATE
    assert rows[0].matched_existing_id == "fight-jj-dc-2"
    assert "Duplicate fight: DANIEL CORMIER on 2017-07-29" in rows[0].status_message
    assert rows[1].status == RowStatus.READY


def test_fight_duplicate_only_for_same_fighter(existing_fighters, existing_fights):
    context = ReconciliationContext.from_records(existing_fighters, existing_fights)
    headers = ["Fighter", "Opponent", "event_name", "event_date", "result"]

    rows = _fight_rows(headers, [
        {"Fighter": "Stipe Miocic", "Opponent": "Daniel Cormier", "event_name": "UFC 214", "event_date": "2017-07-29", "result": "W"},
    ], context)

    assert rows[0].status == RowStatus.READY


def test_fight_duplicate_by_fight_id(existing_fighters, existing_fights):
    context = ReconciliationContext.from_records(existing_fighters, existing_fights)
    headers = ["fight_id", "Fighter", "Opponent", "event_name", "result"]

    rows = _fight_rows(headers, [
        {"fight_id": "fight-jj-dc-2", "Fighter": "Jon Jones", "Opponent": "Someone Else", "event_name": "UFC 214", "result": "NC"},
    ], context)

    assert rows[0].status == RowStatus.DUPLICATE
    assert rows[0].matched_existing_id == "fight-jj-dc-2"
