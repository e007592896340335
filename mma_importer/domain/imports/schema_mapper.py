"""
Column mapping from spreadsheet headers to a target record schema.

This module proposes which target field each source column feeds, using a
layered heuristic over a ``SchemaFields`` dictionary, and applies the user's
edits to that proposal.
"""

from typing import Dict, List, Any, Optional
import re
import logging

from .field_dictionary import SchemaFields
from .models import FieldMapping, MappingStatus

logger = logging.getLogger(__name__)


def normalize_column_name(name: str) -> str:
    """
    Normalize a column name for comparison.

    - Convert to lowercase
    - Remove spaces, hyphens and underscores

    Examples:
        "First Name" -> "firstname"
        "first_name" -> "firstname"
        "R1-Sig-Str" -> "r1sigstr"
    """
    return re.sub(r"[\s\-_]+", "", name.lower())


def _find_target_field(header: str, schema_fields: SchemaFields) -> Optional[str]:
    """
    Resolve one header to a target field.

    Strategies, first hit wins:
    1. Exact match on the normalized field name
    2. Alias table lookup
    3. Longest field name whose normalized form is contained in the header
    """
    normalized_header = normalize_column_name(header)
    if not normalized_header:
        return None

    normalized_fields = [(f, normalize_column_name(f)) for f in schema_fields.all_fields]

    # Strategy 1: Exact normalized match
    for field_name, normalized_field in normalized_fields:
        if normalized_field == normalized_header:
            logger.debug(f"Exact match: '{header}' -> '{field_name}'")
            return field_name

    # Strategy 2: Alias match
    for field_name, aliases in schema_fields.aliases.items():
        if normalized_header in aliases:
            logger.debug(f"Alias match: '{header}' -> '{field_name}'")
            return field_name

    # Strategy 3: Substring match, preferring the most specific field
    candidates = [
        field_name for field_name, normalized_field in normalized_fields
        if normalized_field in normalized_header
    ]
    if candidates:
        best = max(candidates, key=len)
        logger.debug(f"Substring match: '{header}' -> '{best}' (from {len(candidates)} candidates)")
        return best

    return None


def auto_map_fields(headers: List[str], schema_fields: SchemaFields) -> List[FieldMapping]:
    """
    Propose a mapping for every source column.

    Pure and deterministic: the same headers and schema always produce the
    same mappings.

    Args:
        headers: Source column names in file order
        schema_fields: Target schema dictionary

    Returns:
        One FieldMapping per header, in header order
    """
    mappings = []
    for header in headers:
        target = _find_target_field(header, schema_fields)
        if target:
            mappings.append(FieldMapping(source_column=header, target_field=target, status=MappingStatus.MAPPED))
        else:
            logger.info(f"No {schema_fields.name} field found for source column '{header}'")
            mappings.append(FieldMapping(source_column=header, status=MappingStatus.UNMAPPED))
    return mappings


def update_field_mapping(
    mappings: List[FieldMapping],
    source_column: str,
    target_field: Optional[str],
    schema_fields: SchemaFields,
) -> List[FieldMapping]:
    """
    Apply a user edit to one mapping and return the new mapping list.

    Setting ``target_field`` to None marks the column as ignored.

    Raises:
        KeyError: If ``source_column`` is not one of the mapped columns
        ValueError: If ``target_field`` is not a field of the schema
    """
    if target_field is not None and target_field not in schema_fields:
        raise ValueError(f"'{target_field}' is not a {schema_fields.name} field")
    if not any(m.source_column == source_column for m in mappings):
        raise KeyError(source_column)

    updated = []
    for mapping in mappings:
        if mapping.source_column == source_column:
            mapping = FieldMapping(
                source_column=source_column,
                target_field=target_field,
                status=MappingStatus.MAPPED if target_field else MappingStatus.IGNORED,
            )
        updated.append(mapping)
    return updated


def mapped_fields(mappings: List[FieldMapping]) -> Dict[str, str]:
    """
    Index mapped columns by target field.

    When several columns map to the same field, the first one wins.

    Returns:
        Dictionary mapping target field -> source column
    """
    index: Dict[str, str] = {}
    for mapping in mappings:
        if mapping.status == MappingStatus.MAPPED and mapping.target_field not in index:
            index[mapping.target_field] = mapping.source_column
    return index


def mapped_value(row: Dict[str, str], column_index: Dict[str, str], target_field: str) -> Optional[str]:
    """
    Return the trimmed cell feeding ``target_field``, or None when the field is unmapped.

    Args:
        row: Raw source row
        column_index: Output of ``mapped_fields``
        target_field: Target field identifier
    """
    source_column = column_index.get(target_field)
    if source_column is None:
        return None
    value = row.get(source_column)
    return value.strip() if value is not None else None


def summarize_mappings(mappings: List[FieldMapping]) -> Dict[str, Any]:
    """Counts for the mapping screen badge ("12 / 14 mapped")."""
    mapped = [m.source_column for m in mappings if m.status == MappingStatus.MAPPED]
    return {
        "total_columns": len(mappings),
        "mapped_count": len(mapped),
        "unmapped_columns": [m.source_column for m in mappings if m.status == MappingStatus.UNMAPPED],
        "ignored_columns": [m.source_column for m in mappings if m.status == MappingStatus.IGNORED],
    }
