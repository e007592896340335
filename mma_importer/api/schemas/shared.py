from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mma_importer.domain.imports.models import (
    FieldMapping,
    ImportRow,
    ImportStep,
    ImportSummary,
    MappingValidation,
    RowAction,
    SchemaKind,
)


class SchemaKindRequest(BaseModel):
    """Switch the target record kind of an import session"""
    data_type: SchemaKind


class MappingUpdateRequest(BaseModel):
    """Edit one column mapping; a null target marks the column as ignored"""
    source_column: str
    target_field: Optional[str] = None


class RowActionRequest(BaseModel):
    action: RowAction


class FieldGroupInfo(BaseModel):
    label: str
    fields: List[str]


class CommitResultInfo(BaseModel):
    success: bool
    added: int = 0
    replaced: int = 0
    dropped: int = 0
    add_error: Optional[str] = None
    replace_error: Optional[str] = None


class ImportSessionResponse(BaseModel):
    """Full state of an import session as shown by the import wizard"""
    session_id: str
    step: ImportStep
    data_type: SchemaKind
    file_name: Optional[str] = None
    created_at: datetime
    headers: List[str] = Field(default_factory=list)
    field_groups: List[FieldGroupInfo] = Field(default_factory=list)
    mappings: List[FieldMapping] = Field(default_factory=list)
    mapping_summary: Dict[str, Any] = Field(default_factory=dict)
    validation: Optional[MappingValidation] = None
    rows: List[ImportRow] = Field(default_factory=list)
    summary: ImportSummary = Field(default_factory=ImportSummary)
    is_committing: bool = False
    last_result: Optional[CommitResultInfo] = None


class CommitResponse(BaseModel):
    success: bool
    message: str
    result: CommitResultInfo
    session: ImportSessionResponse


class DeleteSessionResponse(BaseModel):
    success: bool
    message: str
