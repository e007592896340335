import pytest

from mma_importer.domain.imports.field_dictionary import (
    FIGHT_RECORD_FIELDS,
    FIGHTER_FIELDS,
    MAX_ROUNDS,
    ROUND_COMBINED_FIELDS,
    ROUND_STAT_FIELDS,
    round_field,
)


def test_round_field_names():
    assert round_field(3, "td_landed") == "r3_td_landed"
    assert round_field(1, "sig_str") == "r1_sig_str"


@pytest.mark.parametrize("round_number,stat", [(0, "kd"), (MAX_ROUNDS + 1, "kd"), (1, "elbows")])
def test_round_field_rejects_bad_input(round_number, stat):
    with pytest.raises(ValueError):
        round_field(round_number, stat)


def test_fight_schema_has_every_round_field():
    per_round = len(ROUND_STAT_FIELDS) + len(ROUND_COMBINED_FIELDS)
    round_fields = [f for f in FIGHT_RECORD_FIELDS.all_fields if f.startswith("r") and f[1].isdigit()]

    assert len(round_fields) == MAX_ROUNDS * per_round
    assert FIGHT_RECORD_FIELDS.group_of("r5_reversals") == "Round 5 Stats"


def test_field_identifiers_are_unique():
    for schema in (FIGHTER_FIELDS, FIGHT_RECORD_FIELDS):
        assert len(schema.all_fields) == len(set(schema.all_fields))


def test_schemas_are_independent():
    assert "opponent_full_name" in FIGHT_RECORD_FIELDS
    assert "opponent_full_name" not in FIGHTER_FIELDS
    with pytest.raises(KeyError):
        FIGHTER_FIELDS.group_of("opponent_full_name")
