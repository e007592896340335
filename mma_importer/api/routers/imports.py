"""
Bulk import endpoints: upload, map, preview, triage and commit.

Each endpoint is a thin wrapper over one ``ImportSession`` operation; domain
exceptions are translated to HTTP status codes here.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from mma_importer.api.dependencies import (
    drop_session,
    get_fight_store,
    get_fighter_store,
    get_import_session,
    register_session,
)
from mma_importer.api.schemas.shared import (
    CommitResponse,
    CommitResultInfo,
    DeleteSessionResponse,
    FieldGroupInfo,
    ImportSessionResponse,
    MappingUpdateRequest,
    RowActionRequest,
    SchemaKindRequest,
)
from mma_importer.core.config import settings
from mma_importer.domain.imports.models import CommitResult, ImportStep, SchemaKind
from mma_importer.domain.imports.orchestrator import (
    CommitInProgressError,
    ImportSession,
    InvalidImportTransition,
    MappingIncompleteError,
    RowActionError,
)
from mma_importer.domain.imports.processors.csv_processor import decode_upload
from mma_importer.domain.imports.schema_mapper import summarize_mappings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["imports"])

MAX_UPLOAD_BYTES = settings.upload_max_file_size_mb * 1024 * 1024


def _ensure_within_size_limit(file_size: int, file_name: str) -> None:
    """Raise an HTTPException if a file exceeds the configured upload limit."""
    if file_size > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=(
                f"{file_name} is too large. "
                f"Maximum allowed upload size is {settings.upload_max_file_size_mb}MB."
            ),
        )


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (InvalidImportTransition, CommitInProgressError)):
        return HTTPException(status_code=409, detail=exc.message)
    if isinstance(exc, MappingIncompleteError):
        return HTTPException(
            status_code=422,
            detail={"message": exc.message, "missing_fields": exc.missing_fields},
        )
    if isinstance(exc, RowActionError):
        return HTTPException(status_code=400, detail=exc.message)
    return HTTPException(status_code=400, detail=str(exc))


def _result_info(result: CommitResult) -> CommitResultInfo:
    return CommitResultInfo(success=result.success, **result.model_dump())


def _session_response(session: ImportSession) -> ImportSessionResponse:
    descriptor = session.descriptor
    return ImportSessionResponse(
        session_id=session.id,
        step=session.step,
        data_type=session.schema_kind,
        file_name=session.file_name,
        created_at=session.created_at,
        headers=session.headers,
        field_groups=[FieldGroupInfo(label=g.label, fields=list(g.fields)) for g in descriptor.fields.groups],
        mappings=session.mappings,
        mapping_summary=summarize_mappings(session.mappings),
        validation=session.validate() if session.step != ImportStep.UPLOAD else None,
        rows=session.rows,
        summary=session.summary(),
        is_committing=session.is_committing,
        last_result=_result_info(session.last_result) if session.last_result else None,
    )


@router.post("/imports", response_model=ImportSessionResponse)
async def create_import_session(
    file: UploadFile = File(...),
    data_type: SchemaKind = Form(SchemaKind.FIGHTERS),
    fighter_store=Depends(get_fighter_store),
    fight_store=Depends(get_fight_store),
):
    """
    Start an import from an uploaded CSV file.

    Parameters:
    - file: The CSV export (header row required)
    - data_type: "fighters" or "fight_history"

    Returns:
    - Session state in the mapping step, with auto-mapped columns
    """
    file_content = await file.read()
    _ensure_within_size_limit(len(file_content), file.filename)

    try:
        text_content = decode_upload(file_content)
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail=f"{file.filename} is not a UTF-8 encoded CSV file")

    session = ImportSession(fighter_store, fight_store, schema_kind=data_type)
    try:
        session.load_file(file.filename, text_content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    register_session(session)
    logger.info(f"Created import session {session.id} for '{file.filename}'")
    return _session_response(session)


@router.post("/imports/{session_id}/file", response_model=ImportSessionResponse)
async def upload_import_file(session_id: str, file: UploadFile = File(...)):
    """Load a new file into a session that is back in the upload step."""
    session = get_import_session(session_id)
    file_content = await file.read()
    _ensure_within_size_limit(len(file_content), file.filename)

    try:
        session.load_file(file.filename, decode_upload(file_content))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail=f"{file.filename} is not a UTF-8 encoded CSV file")
    except InvalidImportTransition as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_response(session)


@router.get("/imports/{session_id}", response_model=ImportSessionResponse)
async def get_import_session_state(session_id: str):
    return _session_response(get_import_session(session_id))


@router.delete("/imports/{session_id}", response_model=DeleteSessionResponse)
async def delete_import_session(session_id: str):
    session = get_import_session(session_id)
    if session.is_committing:
        raise HTTPException(status_code=409, detail="Cannot discard a session while its commit is running")
    drop_session(session_id)
    return DeleteSessionResponse(success=True, message=f"Import session '{session_id}' discarded")


@router.put("/imports/{session_id}/schema", response_model=ImportSessionResponse)
async def set_import_schema(session_id: str, request: SchemaKindRequest):
    session = get_import_session(session_id)
    try:
        session.set_schema_kind(request.data_type)
    except InvalidImportTransition as e:
        raise _http_error(e)
    return _session_response(session)


@router.put("/imports/{session_id}/mappings", response_model=ImportSessionResponse)
async def update_import_mapping(session_id: str, request: MappingUpdateRequest):
    session = get_import_session(session_id)
    try:
        session.update_mapping(request.source_column, request.target_field)
    except InvalidImportTransition as e:
        raise _http_error(e)
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown source column '{request.source_column}'")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_response(session)


@router.delete("/imports/{session_id}/file", response_model=ImportSessionResponse)
async def clear_import_file(session_id: str):
    session = get_import_session(session_id)
    try:
        session.clear_file()
    except InvalidImportTransition as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/imports/{session_id}/preview", response_model=ImportSessionResponse)
async def preview_import(session_id: str):
    """
    Validate the mapping and reconcile every row against existing records.

    Returns 422 with ``missing_fields`` when required fields are unmapped.
    """
    session = get_import_session(session_id)
    try:
        session.proceed_to_preview()
    except (InvalidImportTransition, MappingIncompleteError) as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/imports/{session_id}/rows/{row_id}/action", response_model=ImportSessionResponse)
async def apply_import_row_action(session_id: str, row_id: str, request: RowActionRequest):
    session = get_import_session(session_id)
    try:
        session.apply_row_action(row_id, request.action)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Row '{row_id}' not found in import session")
    except (InvalidImportTransition, CommitInProgressError, RowActionError) as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/imports/{session_id}/cancel", response_model=ImportSessionResponse)
async def cancel_import_preview(session_id: str):
    session = get_import_session(session_id)
    try:
        session.cancel_preview()
    except (InvalidImportTransition, CommitInProgressError) as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/imports/{session_id}/commit", response_model=CommitResponse)
async def commit_import(session_id: str):
    """
    Commit ready rows (add) and rows marked for replacement (replace).

    A store failure is reported in the response body; the session stays in the
    preview step so the commit can be retried.
    """
    session = get_import_session(session_id)
    try:
        result = await session.commit()
    except (InvalidImportTransition, CommitInProgressError) as e:
        raise _http_error(e)

    if result.success:
        message = f"Imported {result.added} new and replaced {result.replaced} existing records"
    else:
        failed = [mode for mode, error in (("add", result.add_error), ("replace", result.replace_error)) if error]
        message = f"Commit failed for: {', '.join(failed)}. Review the errors and retry."

    return CommitResponse(
        success=result.success,
        message=message,
        result=_result_info(result),
        session=_session_response(session),
    )


@router.post("/imports/{session_id}/start-over", response_model=ImportSessionResponse)
async def start_import_over(session_id: str):
    session = get_import_session(session_id)
    try:
        session.start_over()
    except InvalidImportTransition as e:
        raise _http_error(e)
    return _session_response(session)
