"""
Required-field checks for a proposed column mapping.

A mapping must cover each schema's minimum field set before the session can
move on to reconciliation.
"""

from typing import List, Sequence, TYPE_CHECKING

from .models import FieldMapping, MappingStatus, MappingValidation

if TYPE_CHECKING:
    from .descriptors import SchemaDescriptor


def identifier_requirement_label(identifier_fields: Sequence[str]) -> str:
    """Synthetic missing-field entry for an either/or identifier requirement."""
    return " or ".join(identifier_fields)


def validate_mappings(
    mappings: List[FieldMapping],
    descriptor: "SchemaDescriptor",
) -> MappingValidation:
    """
    Check that all required target fields are mapped.

    Only mappings with status ``mapped`` count. When the schema declares
    identifier alternatives (e.g. ``fighter_id`` / ``fighter_full_name``), at
    least one of them must be mapped; if none is, a single combined entry is
    reported first.

    Args:
        mappings: Current mapping list
        descriptor: Schema whose required-field rule applies

    Returns:
        MappingValidation with the missing field names in reporting order
    """
    mapped_targets = {
        m.target_field for m in mappings
        if m.status == MappingStatus.MAPPED and m.target_field
    }

    missing = [f for f in descriptor.required_fields if f not in mapped_targets]

    identifier_fields = descriptor.identifier_fields
    if identifier_fields and not any(f in mapped_targets for f in identifier_fields):
        missing.insert(0, identifier_requirement_label(identifier_fields))

    return MappingValidation(is_valid=not missing, missing_fields=missing)
