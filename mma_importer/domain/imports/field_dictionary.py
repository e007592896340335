"""
Static field dictionaries for the two importable record kinds.

Each schema is described by an immutable ``SchemaFields`` value: the target
field identifiers grouped the way the mapping screen displays them, plus the
alias table used by the auto-mapper for common abbreviations. The values are
passed explicitly into the mapper and validator so the fighter and fight
history schemas stay independent of each other.
"""
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple


MAX_ROUNDS = 5

# Discrete per-round statistics, emitted once per round as r{n}_{stat}
ROUND_STAT_FIELDS: Tuple[str, ...] = (
    "sig_str_landed", "sig_str_attempted", "sig_str_pct",
    "head_str_landed", "head_str_attempted",
    "body_str_landed", "body_str_attempted",
    "leg_str_landed", "leg_str_attempted",
    "distance_str_landed", "distance_str_attempted",
    "clinch_str_landed", "clinch_str_attempted",
    "ground_str_landed", "ground_str_attempted",
    "kd", "td_landed", "td_attempted", "td_pct",
    "sub_attempts", "reversals", "control_time",
)

# Single columns that encode several per-round values ("10 of 20 - 50%")
ROUND_COMBINED_FIELDS: Tuple[str, ...] = (
    "sig_str",
    "landed_by_target",
    "landed_by_position",
)


def round_field(round_number: int, stat: str) -> str:
    """Return the field identifier for a per-round statistic, e.g. ``r3_td_landed``."""
    if not 1 <= round_number <= MAX_ROUNDS:
        raise ValueError(f"Round number must be between 1 and {MAX_ROUNDS}, got {round_number}")
    if stat not in ROUND_STAT_FIELDS and stat not in ROUND_COMBINED_FIELDS:
        raise ValueError(f"Unknown per-round statistic '{stat}'")
    return f"r{round_number}_{stat}"


@dataclass(frozen=True)
class FieldGroup:
    label: str
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class SchemaFields:
    """Field identifiers, display groups and header aliases for one target schema."""

    name: str
    groups: Tuple[FieldGroup, ...]
    aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @cached_property
    def all_fields(self) -> Tuple[str, ...]:
        return tuple(f for group in self.groups for f in group.fields)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.all_fields

    def group_of(self, field_name: str) -> str:
        for group in self.groups:
            if field_name in group.fields:
                return group.label
        raise KeyError(field_name)


def _freeze_aliases(aliases: Dict[str, List[str]]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({target: tuple(values) for target, values in aliases.items()})


def _round_groups() -> Tuple[FieldGroup, ...]:
    groups = []
    for r in range(1, MAX_ROUNDS + 1):
        fields = [round_field(r, combined) for combined in ROUND_COMBINED_FIELDS]
        fields.extend(round_field(r, stat) for stat in ROUND_STAT_FIELDS)
        groups.append(FieldGroup(f"Round {r} Stats", tuple(fields)))
    return tuple(groups)


FIGHTER_FIELDS = SchemaFields(
    name="fighter",
    groups=(
        FieldGroup("Identity", ("id", "first_name", "last_name", "nickname", "date_of_birth", "nationality", "gender")),
        FieldGroup("Division", ("organization", "weight_class", "stance", "gym", "head_coach", "team", "fighting_out_of")),
        FieldGroup("Physical", ("age", "height", "height_inches", "weight", "reach", "reach_inches", "leg_reach", "leg_reach_inches")),
        FieldGroup("Record", ("wins", "losses", "draws", "no_contests")),
        FieldGroup("Performance - Wins", ("ko_wins", "tko_wins", "submission_wins", "decision_wins", "finish_rate", "avg_fight_time")),
        FieldGroup("Performance - Losses", ("losses_by_ko", "losses_by_submission", "losses_by_decision")),
        FieldGroup("Performance - Striking", ("strikes_landed_per_min", "strike_accuracy", "strikes_absorbed_per_min", "strike_defense")),
        FieldGroup("Performance - Grappling", ("takedown_avg", "takedown_accuracy", "takedown_defense", "submission_avg", "submission_defense")),
        FieldGroup("Performance - Streaks", ("win_streak", "loss_streak", "ko_streak", "sub_streak", "longest_win_streak")),
        FieldGroup("Status", ("is_active", "ranking", "is_champion", "is_verified", "rank_global", "rank_promotion")),
        FieldGroup("Media", ("image_url", "body_image_url")),
    ),
    aliases=_freeze_aliases({
        "first_name": ["firstname", "first", "fname", "givenname"],
        "last_name": ["lastname", "last", "lname", "surname"],
        "weight_class": ["division", "class", "weightclass"],
        "organization": ["org", "promotion"],
        "gym": ["affiliation"],
        "nationality": ["country"],
        "date_of_birth": ["dob", "birthdate"],
        "strikes_landed_per_min": ["slpm"],
        "strike_accuracy": ["stracc", "straccpct"],
        "strikes_absorbed_per_min": ["sapm"],
        "strike_defense": ["strdef", "strdefpct"],
        "takedown_avg": ["tdavg"],
        "takedown_accuracy": ["tdacc", "tdaccpct"],
        "takedown_defense": ["tddef", "tddefpct"],
        "submission_avg": ["subavg"],
    }),
)


FIGHT_RECORD_FIELDS = SchemaFields(
    name="fight_record",
    groups=(
        FieldGroup("Core Identifiers", ("fight_id", "fighter_id", "fighter_full_name", "fighter_nickname", "opponent_full_name", "opponent_nickname")),
        FieldGroup("Event Info", (
            "event_name", "event_date", "event_promotion", "weight_class", "billing", "bout_type", "fight_order",
            "bout_order", "title_fight", "title_fight_detail", "scheduled_rounds", "round_duration_minutes",
        )),
        FieldGroup("Result Info", ("result", "method", "method_detail", "round_finished", "time_finished", "referee")),
        FieldGroup("Decision Details", ("decision_type", "judges")),
        FieldGroup("Significant Strikes", ("significant_strikes_landed", "significant_strikes_attempted", "significant_strikes_pct")),
        FieldGroup("Total Strikes", ("total_strikes_landed", "total_strikes_attempted")),
        FieldGroup("Strike Targets", (
            "head_strikes_landed", "head_strikes_attempted",
            "body_strikes_landed", "body_strikes_attempted",
            "leg_strikes_landed", "leg_strikes_attempted",
        )),
        FieldGroup("Strike Positions", (
            "distance_strikes_landed", "distance_strikes_attempted",
            "clinch_strikes_landed", "clinch_strikes_attempted",
            "ground_strikes_landed", "ground_strikes_attempted",
        )),
        FieldGroup("Grappling", ("takedowns_landed", "takedowns_attempted", "takedown_pct", "submissions_attempted", "control_time", "reversals")),
        FieldGroup("Damage", ("knockdowns",)),
        FieldGroup("Rounds & Scoring", ("round_time_format",)),
    ) + _round_groups(),
    aliases=_freeze_aliases({
        "knockdowns": ["kd"],
        "significant_strikes_landed": ["sigstrlanded", "sigstrikelanded"],
        "significant_strikes_attempted": ["sigstrattempted", "sigstrikeattempted"],
        "significant_strikes_pct": ["sigstrpct", "sigstrikepct"],
        "takedowns_landed": ["tdlanded"],
        "takedowns_attempted": ["tdattempted"],
        "takedown_pct": ["tdpct"],
        "submissions_attempted": ["subattempts", "subatt"],
        "scheduled_rounds": ["roundsscheduled"],
        "bout_type": ["bouttype"],
        "opponent_full_name": ["opponent", "opponentname"],
        "fighter_full_name": ["fighter", "fightername"],
    }),
)
