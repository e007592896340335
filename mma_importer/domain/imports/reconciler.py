"""
Duplicate and reference detection for mapped import rows.

Each incoming row is classified as ready, duplicate or error against a
snapshot of the existing fighter roster and fight history. Matching is
two-tier: an id match is authoritative and checked first; the fallback is an
exact, case-insensitive comparison of first name and remaining name tokens.
The name fallback does no fuzzy matching, so two fighters sharing a name can
collide and nickname spellings will not match.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING
import logging

from .models import ExistingFight, ExistingFighter, FieldMapping, ImportRow, RowStatus
from .schema_mapper import mapped_fields, mapped_value

if TYPE_CHECKING:
    from .descriptors import SchemaDescriptor

logger = logging.getLogger(__name__)


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split "Jon Bones Jones" into ("Jon", "Bones Jones")."""
    parts = full_name.strip().split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _name_key(first_name: str, last_name: str) -> Tuple[str, str]:
    return first_name.strip().lower(), last_name.strip().lower()


def _fight_key(event_date: str, opponent_name: str, fighter_id: Optional[str]) -> Tuple[str, str, Optional[str]]:
    return event_date.strip(), opponent_name.strip().lower(), fighter_id


@dataclass
class ReconciliationContext:
    """Indexed snapshot of the existing stores, taken once per preview."""

    fighters: List[ExistingFighter]
    fights: List[ExistingFight] = field(default_factory=list)
    _fighters_by_id: Dict[str, ExistingFighter] = field(init=False, repr=False)
    _fighters_by_name: Dict[Tuple[str, str], ExistingFighter] = field(init=False, repr=False)
    _fights_by_id: Dict[str, ExistingFight] = field(init=False, repr=False)
    _fights_by_key: Dict[Tuple[str, str, Optional[str]], ExistingFight] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._fighters_by_id = {}
        self._fighters_by_name = {}
        for fighter in self.fighters:
            self._fighters_by_id.setdefault(fighter.id, fighter)
            self._fighters_by_name.setdefault(_name_key(fighter.first_name, fighter.last_name), fighter)

        self._fights_by_id = {}
        self._fights_by_key = {}
        for fight in self.fights:
            self._fights_by_id.setdefault(fight.id, fight)
            self._fights_by_key.setdefault(
                _fight_key(fight.event_date, fight.opponent_name, fight.fighter_id), fight
            )

    @classmethod
    def from_records(cls, fighters, fights=None) -> "ReconciliationContext":
        return cls(fighters=list(fighters), fights=list(fights or []))

    def find_fighter_by_id(self, fighter_id: str) -> Optional[ExistingFighter]:
        return self._fighters_by_id.get(fighter_id) if fighter_id else None

    def find_fighter_by_name(self, first_name: str, last_name: str) -> Optional[ExistingFighter]:
        return self._fighters_by_name.get(_name_key(first_name, last_name))

    def find_fighter_by_full_name(self, full_name: str) -> Optional[ExistingFighter]:
        if not full_name or not full_name.strip():
            return None
        return self.find_fighter_by_name(*split_full_name(full_name))

    def lookup_fighter_id(self, full_name: str) -> Optional[str]:
        """Name -> id lookup handed to the record transformer."""
        fighter = self.find_fighter_by_full_name(full_name)
        return fighter.id if fighter else None

    def find_fight_by_id(self, fight_id: str) -> Optional[ExistingFight]:
        return self._fights_by_id.get(fight_id) if fight_id else None

    def find_fight(self, event_date: str, opponent_name: str, fighter_id: str) -> Optional[ExistingFight]:
        return self._fights_by_key.get(_fight_key(event_date, opponent_name, fighter_id))


def _display_name(fighter: ExistingFighter) -> str:
    return f"{fighter.first_name} {fighter.last_name}".strip()


def classify_fighter_row(
    index: int,
    row: Dict[str, str],
    column_index: Dict[str, str],
    context: ReconciliationContext,
) -> ImportRow:
    """
    Classify one fighter row as ready or duplicate.

    An ``id`` equal to an existing fighter's id is a duplicate regardless of
    the name columns. Otherwise both first and last name must be present to
    attempt the name match.
    """
    csv_id = mapped_value(row, column_index, "id") or ""
    first_name = mapped_value(row, column_index, "first_name") or ""
    last_name = mapped_value(row, column_index, "last_name") or ""

    matched = context.find_fighter_by_id(csv_id)
    if matched is None and first_name and last_name:
        matched = context.find_fighter_by_name(first_name, last_name)

    if matched is None:
        return ImportRow(id=f"row-{index}", raw_data=row, status=RowStatus.READY)

    return ImportRow(
        id=f"row-{index}",
        raw_data=row,
        status=RowStatus.DUPLICATE,
        status_message=f"Matches existing fighter: {_display_name(matched)}",
        matched_existing_id=matched.id,
    )


def classify_fight_row(
    index: int,
    row: Dict[str, str],
    column_index: Dict[str, str],
    context: ReconciliationContext,
) -> ImportRow:
    """
    Classify one fight-history row.

    The primary fighter must resolve (by ``fighter_id``, then by
    ``fighter_full_name``) or the row is an error. The opponent is resolved
    best-effort and only produces an informational note. The fight itself is
    a duplicate when its ``fight_id`` exists, or when an existing fight of the
    same fighter has the same event date and opponent name.
    """
    row_id = f"row-{index}"
    csv_fighter_id = mapped_value(row, column_index, "fighter_id") or ""
    csv_fighter_name = mapped_value(row, column_index, "fighter_full_name") or ""
    csv_fight_id = mapped_value(row, column_index, "fight_id") or ""
    csv_event_date = mapped_value(row, column_index, "event_date") or ""
    csv_opponent = mapped_value(row, column_index, "opponent_full_name") or ""

    fighter = context.find_fighter_by_id(csv_fighter_id)
    if fighter is None and csv_fighter_name:
        fighter = context.find_fighter_by_full_name(csv_fighter_name)

    if fighter is None:
        unresolved = csv_fighter_name or csv_fighter_id or "Unknown"
        logger.debug(f"{row_id}: primary fighter '{unresolved}' not found")
        return ImportRow(
            id=row_id,
            raw_data=row,
            status=RowStatus.ERROR,
            status_message=f"Fighter not found: {unresolved}. Import fighter first.",
        )

    opponent = context.find_fighter_by_full_name(csv_opponent) if csv_opponent else None

    existing_fight = context.find_fight_by_id(csv_fight_id)
    if existing_fight is None and csv_event_date and csv_opponent:
        existing_fight = context.find_fight(csv_event_date, csv_opponent, fighter.id)

    message_parts = [f"Linked to: {_display_name(fighter)}"]
    if existing_fight is not None:
        message_parts.append(f"Duplicate fight: {csv_opponent} on {csv_event_date}")
    if csv_opponent and opponent is None:
        message_parts.append(f'Opponent "{csv_opponent}" not in system (will auto-link later)')

    return ImportRow(
        id=row_id,
        raw_data=row,
        status=RowStatus.DUPLICATE if existing_fight is not None else RowStatus.READY,
        status_message=" | ".join(message_parts),
        matched_existing_id=existing_fight.id if existing_fight is not None else None,
        resolved_fighter_id=fighter.id,
        matched_opponent_id=opponent.id if opponent is not None else None,
        opponent_linked=opponent is not None,
    )


def reconcile_rows(
    rows: List[Dict[str, str]],
    mappings: List[FieldMapping],
    descriptor: "SchemaDescriptor",
    context: ReconciliationContext,
) -> List[ImportRow]:
    """
    Classify every parsed row with the schema's reconciliation strategy.

    Rows are independent: an unresolvable row never affects its siblings.
    """
    column_index = mapped_fields(mappings)
    import_rows = [descriptor.classify(i, row, column_index, context) for i, row in enumerate(rows)]

    counts: Dict[str, int] = {}
    for import_row in import_rows:
        counts[import_row.status.value] = counts.get(import_row.status.value, 0) + 1
    logger.info(f"Reconciled {len(import_rows)} {descriptor.record_label} rows: {counts}")

    return import_rows
