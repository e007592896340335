"""
Per-schema strategy bundles.

Everything that differs between the fighter and fight-history imports (field
dictionary, required fields, duplicate detection, row transformation) is
collected in one ``SchemaDescriptor`` so the rest of the pipeline can stay
schema-agnostic.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .field_dictionary import FIGHT_RECORD_FIELDS, FIGHTER_FIELDS, SchemaFields
from .mapper import transform_fight_row, transform_fighter_row
from .models import ImportRow, SchemaKind
from .reconciler import ReconciliationContext, classify_fight_row, classify_fighter_row

RowClassifier = Callable[[int, Dict[str, str], Dict[str, str], ReconciliationContext], ImportRow]
RowTransformer = Callable[[Dict[str, str], Dict[str, str], Optional[Callable[[str], Optional[str]]]], object]


@dataclass(frozen=True)
class SchemaDescriptor:
    kind: SchemaKind
    fields: SchemaFields
    required_fields: Tuple[str, ...]
    identifier_fields: Tuple[str, ...]
    classify: RowClassifier
    transform: RowTransformer
    record_label: str


FIGHTER_DESCRIPTOR = SchemaDescriptor(
    kind=SchemaKind.FIGHTERS,
    fields=FIGHTER_FIELDS,
    required_fields=("first_name", "last_name"),
    identifier_fields=(),
    classify=classify_fighter_row,
    transform=transform_fighter_row,
    record_label="fighter",
)

FIGHT_HISTORY_DESCRIPTOR = SchemaDescriptor(
    kind=SchemaKind.FIGHT_HISTORY,
    fields=FIGHT_RECORD_FIELDS,
    required_fields=("opponent_full_name", "event_name", "result"),
    identifier_fields=("fighter_id", "fighter_full_name"),
    classify=classify_fight_row,
    transform=transform_fight_row,
    record_label="fight history",
)

_DESCRIPTORS = {
    SchemaKind.FIGHTERS: FIGHTER_DESCRIPTOR,
    SchemaKind.FIGHT_HISTORY: FIGHT_HISTORY_DESCRIPTOR,
}


def get_descriptor(kind: SchemaKind) -> SchemaDescriptor:
    return _DESCRIPTORS[SchemaKind(kind)]
