"""
Row-to-record transformation for the bulk importer.

Turns one mapped spreadsheet row into a typed ``Fighter`` or ``FightRecord``.
Cell coercion is lenient (see ``mma_importer.utils.coercion``); a row is only
dropped when a required business value is missing, and each drop is logged.
"""
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING
import logging
import re
import time

from pydantic import ValidationError

from mma_importer.utils.coercion import (
    is_blank,
    parse_boolean,
    parse_combined_sig_str,
    parse_control_time,
    parse_int,
    parse_number,
    parse_optional_int,
    parse_percent,
    parse_time,
)
from .field_dictionary import MAX_ROUNDS, ROUND_COMBINED_FIELDS, ROUND_STAT_FIELDS, round_field
from .models import (
    FieldMapping,
    Fighter,
    FightRecord,
    FightResult,
    FightStats,
    PerformanceMetrics,
    PhysicalStats,
    RoundStatBlock,
    RoundStats,
    WinLossRecord,
)
from .schema_mapper import mapped_fields, mapped_value

if TYPE_CHECKING:
    from .descriptors import SchemaDescriptor

logger = logging.getLogger(__name__)

FighterLookup = Callable[[str], Optional[str]]

WEIGHT_CLASSES = (
    "Heavyweight",
    "Light Heavyweight",
    "Middleweight",
    "Welterweight",
    "Lightweight",
    "Featherweight",
    "Bantamweight",
    "Flyweight",
    "Women's Featherweight",
    "Women's Bantamweight",
    "Women's Flyweight",
    "Women's Strawweight",
)
DEFAULT_WEIGHT_CLASS = "Welterweight"

ORGANIZATIONS = {"UFC": "UFC", "ONE": "ONE", "PFL": "PFL", "BELLATOR": "Bellator"}

RESULT_ALIASES = {
    "WIN": FightResult.WIN, "W": FightResult.WIN, "WON": FightResult.WIN,
    "LOSS": FightResult.LOSS, "L": FightResult.LOSS, "LOST": FightResult.LOSS,
    "DRAW": FightResult.DRAW, "D": FightResult.DRAW,
    "NC": FightResult.NC, "NO CONTEST": FightResult.NC,
}

METHOD_ALIASES = {
    "KO": "KO", "KNOCKOUT": "KO",
    "TKO": "TKO", "TECHNICAL KNOCKOUT": "TKO",
    "SUB": "Submission", "SUBMISSION": "Submission",
    "DEC": "Decision", "DECISION": "Decision",
    "UD": "Decision - Unanimous", "UNANIMOUS": "Decision - Unanimous", "UNANIMOUS DECISION": "Decision - Unanimous",
    "SD": "Decision - Split", "SPLIT": "Decision - Split", "SPLIT DECISION": "Decision - Split",
    "MD": "Decision - Majority", "MAJORITY": "Decision - Majority", "MAJORITY DECISION": "Decision - Majority",
    "DQ": "DQ", "DISQUALIFICATION": "DQ",
    "NC": "NC", "NO CONTEST": "NC",
}


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, remainder = divmod(number, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9-]", "", re.sub(r"\s+", "-", value.lower()))


def generate_fighter_id(first_name: str, last_name: str) -> str:
    return f"{_slug(f'{first_name}-{last_name}')}-{_base36(time.time_ns())}"


def generate_fight_id(fighter_id: str, event_date: str, opponent_name: str) -> str:
    """
    Build a fight id from the bout identity plus a timestamp.

    The timestamp keeps repeated imports of the same bout from colliding.
    """
    return f"fight-{_slug(f'{fighter_id}-{event_date}-{opponent_name}')}-{_base36(time.time_ns())}"


def normalize_organization(value: Optional[str]) -> str:
    return ORGANIZATIONS.get((value or "").strip().upper(), "UFC")


def normalize_weight_class(value: Optional[str]) -> Optional[str]:
    """
    Match a division name against the known weight classes.

    Exact (case-insensitive) match first, then containment either way; an
    unrecognized non-empty value falls back to the default division.
    """
    if not value or not value.strip():
        return None
    normalized = value.strip().lower()
    for weight_class in WEIGHT_CLASSES:
        if weight_class.lower() == normalized:
            return weight_class
    partial = [
        weight_class for weight_class in WEIGHT_CLASSES
        if weight_class.lower() in normalized or normalized in weight_class.lower()
    ]
    if partial:
        return max(partial, key=len)
    logger.debug(f"Unrecognized weight class '{value}', defaulting to {DEFAULT_WEIGHT_CLASS}")
    return DEFAULT_WEIGHT_CLASS


def normalize_stance(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    if normalized in ("southpaw", "south paw"):
        return "Southpaw"
    if normalized == "switch":
        return "Switch"
    return "Orthodox"


def normalize_gender(value: Optional[str]) -> str:
    if (value or "").strip().lower() in ("female", "f", "woman", "w"):
        return "Female"
    return "Male"


def normalize_result(value: Optional[str]) -> FightResult:
    if not value or not value.strip():
        return FightResult.PENDING
    result = RESULT_ALIASES.get(value.strip().upper())
    if result is None:
        logger.warning(f"Unrecognized fight result '{value}', recording as PENDING")
        return FightResult.PENDING
    return result


def normalize_method(value: Optional[str]) -> str:
    """
    Normalize a finish method, passing unknown strings through as free text.

    Strings that already look like a detailed decision ("Decision - Split")
    are kept as given.
    """
    if not value or not value.strip():
        return "TBD"
    trimmed = value.strip()
    if " - " in trimmed or "Decision" in trimmed:
        return trimmed
    return METHOD_ALIASES.get(trimmed.upper(), trimmed)


def normalize_fight_type(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    if not normalized:
        return "Main Card"
    if "main" in normalized:
        return "Main Card"
    if "prelim" in normalized and "early" in normalized:
        return "Early Prelim"
    if "prelim" in normalized:
        return "Prelim"
    if "exhibition" in normalized:
        return "Exhibition"
    return "Main Card"


def transform_fighter_row(
    row: Dict[str, str],
    column_index: Dict[str, str],
    fighter_lookup: Optional[FighterLookup] = None,
) -> Optional[Fighter]:
    """
    Transform a mapped row into a Fighter.

    Returns None (and logs a warning) when first or last name is missing.
    ``fighter_lookup`` is accepted for signature parity with fight rows and
    is not used.
    """
    def value(field_name: str) -> Optional[str]:
        return mapped_value(row, column_index, field_name)

    first_name = value("first_name") or ""
    last_name = value("last_name") or ""
    if not first_name or not last_name:
        logger.warning(f"Skipping fighter row: missing required name fields {row}")
        return None

    is_active_raw = value("is_active")

    return Fighter(
        id=value("id") or generate_fighter_id(first_name, last_name),
        first_name=first_name,
        last_name=last_name,
        nickname=value("nickname") or None,
        date_of_birth=value("date_of_birth") or "",
        nationality=value("nationality") or "Unknown",
        gender=normalize_gender(value("gender")),
        organization=normalize_organization(value("organization")),
        weight_class=normalize_weight_class(value("weight_class")),
        stance=normalize_stance(value("stance")),
        gym=value("gym") or "Unknown",
        head_coach=value("head_coach") or "Unknown",
        team=value("team") or None,
        fighting_out_of=value("fighting_out_of") or None,
        image_url=value("image_url") or "/placeholder.svg",
        body_image_url=value("body_image_url") or None,
        physical_stats=PhysicalStats(
            age=parse_int(value("age")),
            height=value("height") or "",
            height_inches=parse_int(value("height_inches")),
            reach=value("reach") or "",
            reach_inches=parse_int(value("reach_inches")),
            leg_reach=value("leg_reach") or "",
            leg_reach_inches=parse_int(value("leg_reach_inches")),
            weight=parse_int(value("weight")),
        ),
        record=WinLossRecord(
            wins=parse_int(value("wins")),
            losses=parse_int(value("losses")),
            draws=parse_int(value("draws")),
            no_contests=parse_int(value("no_contests")),
        ),
        performance=PerformanceMetrics(
            ko_wins=parse_int(value("ko_wins")),
            tko_wins=parse_int(value("tko_wins")),
            submission_wins=parse_int(value("submission_wins")),
            decision_wins=parse_int(value("decision_wins")),
            losses_by_ko=parse_int(value("losses_by_ko")),
            losses_by_submission=parse_int(value("losses_by_submission")),
            losses_by_decision=parse_int(value("losses_by_decision")),
            finish_rate=parse_number(value("finish_rate")),
            avg_fight_time_minutes=parse_number(value("avg_fight_time")),
            strike_accuracy=parse_number(value("strike_accuracy")),
            strike_defense=parse_number(value("strike_defense")),
            strikes_landed_per_min=parse_number(value("strikes_landed_per_min")),
            strikes_absorbed_per_min=parse_number(value("strikes_absorbed_per_min")),
            takedown_avg=parse_number(value("takedown_avg")),
            takedown_accuracy=parse_number(value("takedown_accuracy")),
            takedown_defense=parse_number(value("takedown_defense")),
            submission_avg=parse_number(value("submission_avg")),
            submission_defense=parse_number(value("submission_defense")),
            win_streak=parse_int(value("win_streak")),
            loss_streak=parse_int(value("loss_streak")),
            longest_win_streak=parse_int(value("longest_win_streak")),
            ko_streak=parse_int(value("ko_streak")),
            sub_streak=parse_int(value("sub_streak")),
        ),
        is_active=parse_boolean(is_active_raw) if is_active_raw else True,
        ranking=parse_int(value("ranking")) or None,
        rank_global=parse_int(value("rank_global")) or None,
        rank_promotion=parse_int(value("rank_promotion")) or None,
        is_champion=parse_boolean(value("is_champion")),
        is_verified=parse_boolean(value("is_verified")),
    )


def _round_has_data(row: Dict[str, str], column_index: Dict[str, str], round_number: int) -> bool:
    for stat in ROUND_STAT_FIELDS:
        raw = mapped_value(row, column_index, round_field(round_number, stat))
        if not is_blank(raw) and raw != "0":
            return True
    for combined in ROUND_COMBINED_FIELDS:
        if not is_blank(mapped_value(row, column_index, round_field(round_number, combined))):
            return True
    return False


def build_round_stats(row: Dict[str, str], column_index: Dict[str, str]) -> List[RoundStats]:
    """
    Assemble per-round statistics for rounds that carry any data.

    A combined ``r{n}_sig_str`` value ("10 of 20 - 50%") overrides the discrete
    landed/attempted/pct columns of the same round.
    """
    rounds: List[RoundStats] = []
    for r in range(1, MAX_ROUNDS + 1):
        if not _round_has_data(row, column_index, r):
            continue

        def value(stat: str) -> Optional[str]:
            return mapped_value(row, column_index, round_field(r, stat))

        combined = parse_combined_sig_str(value("sig_str"))
        control_time = value("control_time")

        block = RoundStatBlock(
            sig_str_landed=combined.landed if combined else parse_int(value("sig_str_landed")),
            sig_str_attempted=combined.attempted if combined else parse_int(value("sig_str_attempted")),
            sig_str_pct=combined.pct if combined else parse_optional_int(value("sig_str_pct")),
            head_str_landed=parse_optional_int(value("head_str_landed")),
            head_str_attempted=parse_optional_int(value("head_str_attempted")),
            body_str_landed=parse_optional_int(value("body_str_landed")),
            body_str_attempted=parse_optional_int(value("body_str_attempted")),
            leg_str_landed=parse_optional_int(value("leg_str_landed")),
            leg_str_attempted=parse_optional_int(value("leg_str_attempted")),
            distance_str_landed=parse_optional_int(value("distance_str_landed")),
            distance_str_attempted=parse_optional_int(value("distance_str_attempted")),
            clinch_str_landed=parse_optional_int(value("clinch_str_landed")),
            clinch_str_attempted=parse_optional_int(value("clinch_str_attempted")),
            ground_str_landed=parse_optional_int(value("ground_str_landed")),
            ground_str_attempted=parse_optional_int(value("ground_str_attempted")),
            knockdowns=parse_optional_int(value("kd")),
            td_landed=parse_optional_int(value("td_landed")),
            td_attempted=parse_optional_int(value("td_attempted")),
            td_pct=parse_optional_int(value("td_pct")),
            sub_attempts=parse_optional_int(value("sub_attempts")),
            reversals=parse_optional_int(value("reversals")),
            control_time=None if is_blank(control_time) else control_time,
            landed_by_target_pct=parse_percent(value("landed_by_target")),
            landed_by_position_pct=parse_percent(value("landed_by_position")),
        )
        rounds.append(RoundStats(number=r, stats=block))
    return rounds


def _title_fight(bout_type: str, title_fight_raw: str, title_fight_detail: str) -> Tuple[bool, Optional[str]]:
    """
    OR together the three title-fight signals.

    Returns the flag and the detail text, which is kept only for title fights.
    """
    # A free-text title_fight column ("Championship") counts as detail too
    detail = title_fight_detail or title_fight_raw
    detail_signal = bool(detail) and detail.lower() not in ("false", "no")
    is_title = "title" in bout_type.lower() or parse_boolean(title_fight_raw) or detail_signal
    if not is_title:
        return False, None
    return True, detail or bout_type or None


def transform_fight_row(
    row: Dict[str, str],
    column_index: Dict[str, str],
    fighter_lookup: Optional[FighterLookup] = None,
) -> Optional[FightRecord]:
    """
    Transform a mapped row into a FightRecord.

    The primary fighter comes from ``fighter_id`` or, failing that, from
    ``fighter_lookup(fighter_full_name)``. The opponent is linked only when
    the lookup resolves it. Returns None when the opponent name, event name or
    primary fighter is missing.
    """
    def value(field_name: str) -> Optional[str]:
        return mapped_value(row, column_index, field_name)

    fighter_full_name = value("fighter_full_name") or None
    opponent_name = value("opponent_full_name") or ""
    event_date = value("event_date") or ""
    event_name = value("event_name") or ""

    if not opponent_name or not event_name:
        logger.warning(f"Skipping fight row: missing required fight history fields {row}")
        return None

    fighter_id = value("fighter_id") or None
    if not fighter_id and fighter_full_name and fighter_lookup:
        fighter_id = fighter_lookup(fighter_full_name)
    if not fighter_id:
        logger.warning(f"Skipping fight row: cannot resolve fighter ID {row}")
        return None

    opponent_id = fighter_lookup(opponent_name) if fighter_lookup else None

    stats = FightStats(
        strikes_landed=parse_int(value("total_strikes_landed")),
        strikes_attempted=parse_int(value("total_strikes_attempted")),
        significant_strikes_landed=parse_int(value("significant_strikes_landed")),
        significant_strikes_attempted=parse_int(value("significant_strikes_attempted")),
        head_strikes_landed=parse_int(value("head_strikes_landed")),
        head_strikes_attempted=parse_int(value("head_strikes_attempted")),
        body_strikes_landed=parse_int(value("body_strikes_landed")),
        body_strikes_attempted=parse_int(value("body_strikes_attempted")),
        leg_strikes_landed=parse_int(value("leg_strikes_landed")),
        leg_strikes_attempted=parse_int(value("leg_strikes_attempted")),
        distance_strikes_landed=parse_int(value("distance_strikes_landed")),
        distance_strikes_attempted=parse_int(value("distance_strikes_attempted")),
        clinch_strikes_landed=parse_int(value("clinch_strikes_landed")),
        clinch_strikes_attempted=parse_int(value("clinch_strikes_attempted")),
        ground_strikes_landed=parse_int(value("ground_strikes_landed")),
        ground_strikes_attempted=parse_int(value("ground_strikes_attempted")),
        takedowns_landed=parse_int(value("takedowns_landed")),
        takedowns_attempted=parse_int(value("takedowns_attempted")),
        submission_attempts=parse_int(value("submissions_attempted")),
        control_time_seconds=parse_control_time(value("control_time")),
        reversals=parse_int(value("reversals")),
        knockdowns=parse_int(value("knockdowns")),
    )
    rounds = build_round_stats(row, column_index)

    bout_type = value("bout_type") or ""
    title_fight, title_fight_detail = _title_fight(
        bout_type, value("title_fight") or "", value("title_fight_detail") or ""
    )
    billing = value("billing") or ""

    return FightRecord(
        id=value("fight_id") or generate_fight_id(fighter_id, event_date, opponent_name),
        fighter_id=fighter_id,
        fighter_name=fighter_full_name,
        fighter_nickname=value("fighter_nickname") or None,
        opponent_id=opponent_id,
        opponent_name=opponent_name,
        opponent_nickname=value("opponent_nickname") or None,
        opponent_linked=opponent_id is not None,
        event_id=f"event-{event_date}",
        event_name=event_name,
        event_date=event_date,
        event_promotion=value("event_promotion") or None,
        weight_class=value("weight_class") or None,
        fight_type=normalize_fight_type(value("fight_order") or billing or bout_type),
        billing=billing or bout_type or None,
        bout_order=parse_int(value("bout_order")),
        rounds_scheduled=parse_int(value("scheduled_rounds"), 3),
        round_duration_minutes=parse_int(value("round_duration_minutes"), 5),
        result=normalize_result(value("result")),
        method=normalize_method(value("method")),
        method_detail=value("method_detail") or None,
        round=parse_int(value("round_finished")),
        time=parse_time(value("time_finished")),
        title_fight=title_fight,
        title_fight_detail=title_fight_detail,
        referee=value("referee") or None,
        round_time_format=value("round_time_format") or None,
        decision_type=value("decision_type") or None,
        judges=value("judges") or None,
        stats=stats if stats.has_values() else None,
        per_round_stats=rounds or None,
    )


def transform_row(
    row: Dict[str, str],
    column_index: Dict[str, str],
    descriptor: "SchemaDescriptor",
    fighter_lookup: Optional[FighterLookup] = None,
):
    """Transform one row with the schema's transform function, or None if it must be dropped."""
    try:
        return descriptor.transform(row, column_index, fighter_lookup)
    except ValidationError as exc:
        logger.warning(f"Skipping {descriptor.record_label} row that failed validation: {exc}")
        return None


def transform_rows(
    rows: List[Dict[str, str]],
    mappings: List[FieldMapping],
    descriptor: "SchemaDescriptor",
    fighter_lookup: Optional[FighterLookup] = None,
) -> Tuple[list, int]:
    """
    Transform a batch of rows.

    Returns:
        Tuple of (records, dropped_count)
    """
    column_index = mapped_fields(mappings)
    records = []
    for row in rows:
        record = transform_row(row, column_index, descriptor, fighter_lookup)
        if record is not None:
            records.append(record)

    dropped = len(rows) - len(records)
    if dropped:
        logger.warning(f"Dropped {dropped} of {len(rows)} {descriptor.record_label} rows during transformation")
    return records, dropped
