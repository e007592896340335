"""
Import session state machine.

An ``ImportSession`` walks one uploaded file through
``upload -> mapping -> preview -> complete``. Only the explicit back-transitions
``mapping -> upload`` (clear file), ``preview -> mapping`` (cancel) and
``complete -> upload`` (start over) are allowed in the other direction.

Stores are duck-typed collaborators exposing ``list()`` and
``add_many(records, mode)``; see ``mma_importer.db.stores``.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .descriptors import SchemaDescriptor, get_descriptor
from .mapper import transform_row
from .models import (
    CommitMode,
    CommitResult,
    FieldMapping,
    ImportRow,
    ImportStep,
    ImportSummary,
    MappingValidation,
    RowAction,
    RowStatus,
    SchemaKind,
)
from .processors.csv_processor import parse_csv
from .reconciler import ReconciliationContext, reconcile_rows
from .schema_mapper import auto_map_fields, mapped_fields, update_field_mapping
from .validators import validate_mappings

logger = logging.getLogger(__name__)


class InvalidImportTransition(Exception):
    """Raised when an operation is not allowed in the session's current step."""

    def __init__(self, current: ImportStep, attempted: str, message: str = None):
        self.current = current
        self.attempted = attempted
        self.message = message or f"Cannot {attempted} while the import is in the '{current.value}' step."
        super().__init__(self.message)


class MappingIncompleteError(Exception):
    """Raised when preview is requested before all required fields are mapped."""

    def __init__(self, missing_fields: List[str], message: str = None):
        self.missing_fields = missing_fields
        self.message = message or f"Required fields are not mapped: {', '.join(missing_fields)}"
        super().__init__(self.message)


class CommitInProgressError(Exception):
    """Raised when a second commit starts while one is still in flight."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.message = f"A commit is already running for import session '{session_id}'."
        super().__init__(self.message)


class RowActionError(Exception):
    def __init__(self, row_id: str, action: str, message: str = None):
        self.row_id = row_id
        self.action = action
        self.message = message or f"Cannot apply '{action}' to row '{row_id}'."
        super().__init__(self.message)


class ImportSession:
    """One admin's bulk import, from uploaded file to committed records."""

    def __init__(
        self,
        fighter_store,
        fight_store,
        schema_kind: SchemaKind = SchemaKind.FIGHTERS,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.fighter_store = fighter_store
        self.fight_store = fight_store
        self.schema_kind = SchemaKind(schema_kind)
        self.step = ImportStep.UPLOAD
        self.created_at = datetime.now(timezone.utc)
        self.file_name: Optional[str] = None
        self.headers: List[str] = []
        self.raw_rows: List[Dict[str, str]] = []
        self.mappings: List[FieldMapping] = []
        self.rows: List[ImportRow] = []
        self.last_result: Optional[CommitResult] = None
        self._context: Optional[ReconciliationContext] = None
        self._committing = False

    @property
    def descriptor(self) -> SchemaDescriptor:
        return get_descriptor(self.schema_kind)

    @property
    def is_committing(self) -> bool:
        return self._committing

    def _require_step(self, attempted: str, *allowed: ImportStep) -> None:
        if self.step not in allowed:
            raise InvalidImportTransition(self.step, attempted)

    # Upload / mapping

    def load_file(self, file_name: str, content: str) -> List[FieldMapping]:
        """
        Parse the uploaded text and propose an initial mapping.

        Raises:
            InvalidImportTransition: If a file is already loaded
            ValueError: If the file has no header row
        """
        self._require_step("load a file", ImportStep.UPLOAD)

        headers, rows = parse_csv(content)
        if not headers:
            raise ValueError("The uploaded file is empty or has no header row.")

        self.file_name = file_name
        self.headers = headers
        self.raw_rows = rows
        self.mappings = auto_map_fields(headers, self.descriptor.fields)
        self.step = ImportStep.MAPPING

        logger.info(
            f"Session {self.id}: loaded '{file_name}' ({len(rows)} rows, {len(headers)} columns) "
            f"as {self.schema_kind.value}"
        )
        return self.mappings

    def set_schema_kind(self, schema_kind: SchemaKind) -> None:
        """Switch the target schema; a loaded file is re-mapped against the new field dictionary."""
        self._require_step("change the target schema", ImportStep.UPLOAD, ImportStep.MAPPING)
        self.schema_kind = SchemaKind(schema_kind)
        if self.headers:
            self.mappings = auto_map_fields(self.headers, self.descriptor.fields)
            logger.info(f"Session {self.id}: re-mapped {len(self.headers)} columns for {self.schema_kind.value}")

    def update_mapping(self, source_column: str, target_field: Optional[str]) -> List[FieldMapping]:
        self._require_step("edit mappings", ImportStep.MAPPING)
        self.mappings = update_field_mapping(self.mappings, source_column, target_field, self.descriptor.fields)
        return self.mappings

    def validate(self) -> MappingValidation:
        return validate_mappings(self.mappings, self.descriptor)

    def clear_file(self) -> None:
        self._require_step("clear the file", ImportStep.MAPPING)
        self._reset_file()
        self.step = ImportStep.UPLOAD

    # Preview / triage

    def proceed_to_preview(self) -> List[ImportRow]:
        """
        Validate the mapping and reconcile every row against the stores.

        Raises:
            MappingIncompleteError: If required fields are unmapped
        """
        self._require_step("preview the import", ImportStep.MAPPING)

        validation = self.validate()
        if not validation.is_valid:
            raise MappingIncompleteError(validation.missing_fields)

        self._context = ReconciliationContext.from_records(
            self.fighter_store.list(),
            self.fight_store.list() if self.schema_kind == SchemaKind.FIGHT_HISTORY else [],
        )
        self.rows = reconcile_rows(self.raw_rows, self.mappings, self.descriptor, self._context)
        self.step = ImportStep.PREVIEW
        return self.rows

    def get_row(self, row_id: str) -> ImportRow:
        for row in self.rows:
            if row.id == row_id:
                return row
        raise KeyError(row_id)

    def apply_row_action(self, row_id: str, action: RowAction) -> ImportRow:
        """
        Record the user's triage decision for one row.

        ``replace`` is only valid for rows that matched an existing record;
        ``skip`` excludes any row from the commit.
        """
        self._require_step("change row actions", ImportStep.PREVIEW)
        if self._committing:
            raise CommitInProgressError(self.id)
        action = RowAction(action)
        row = self.get_row(row_id)

        if row.committed:
            raise RowActionError(row_id, action.value, f"Row '{row_id}' has already been committed.")

        if action == RowAction.SKIP:
            row.action = RowAction.SKIP
            row.status = RowStatus.ERROR
            row.status_message = "Skipped by user"
        else:
            if not row.matched_existing_id:
                raise RowActionError(
                    row_id, action.value, f"Row '{row_id}' does not match an existing record and cannot replace one."
                )
            row.action = RowAction.REPLACE
            row.status = RowStatus.READY
            row.status_message = "Will replace existing data"

        logger.debug(f"Session {self.id}: {row_id} -> {action.value}")
        return row

    def cancel_preview(self) -> None:
        self._require_step("cancel the preview", ImportStep.PREVIEW)
        if self._committing:
            raise CommitInProgressError(self.id)
        self.rows = []
        self._context = None
        self.step = ImportStep.MAPPING

    def summary(self) -> ImportSummary:
        skipped = sum(1 for r in self.rows if r.action == RowAction.SKIP)
        return ImportSummary(
            total=len(self.rows),
            ready=sum(1 for r in self.rows if r.status == RowStatus.READY),
            duplicate=sum(1 for r in self.rows if r.status == RowStatus.DUPLICATE),
            conflict=sum(1 for r in self.rows if r.status == RowStatus.CONFLICT),
            error=sum(1 for r in self.rows if r.status == RowStatus.ERROR) - skipped,
            skipped=skipped,
            replacing=sum(1 for r in self.rows if r.action == RowAction.REPLACE),
        )

    # Commit

    def _partitions(self) -> Tuple[List[ImportRow], List[ImportRow]]:
        pending = [r for r in self.rows if r.status == RowStatus.READY and not r.committed]
        add_rows = [r for r in pending if r.action is None]
        replace_rows = [r for r in pending if r.action == RowAction.REPLACE]
        return add_rows, replace_rows

    def _build_records(self, rows: List[ImportRow], mode: CommitMode) -> Tuple[list, List[ImportRow], int]:
        column_index = mapped_fields(self.mappings)
        lookup = self._context.lookup_fighter_id if self._context else None

        records = []
        built_rows = []
        fighter_id_column = column_index.get("fighter_id")
        for row in rows:
            data = row.raw_data
            # The fighter resolved during preview wins over an unknown id in the file
            if row.resolved_fighter_id and fighter_id_column:
                data = {**data, fighter_id_column: row.resolved_fighter_id}
            record = transform_row(data, column_index, self.descriptor, lookup)
            if record is None:
                continue
            if mode == CommitMode.REPLACE:
                record = record.model_copy(update={"id": row.matched_existing_id})
            records.append(record)
            built_rows.append(row)

        dropped = len(rows) - len(records)
        if dropped:
            logger.warning(f"Session {self.id}: dropped {dropped} {mode.value} rows during transformation")
        return records, built_rows, dropped

    async def _commit_partition(self, store, records: list, mode: CommitMode) -> Optional[str]:
        """Hand one partition to the store, returning an error message instead of raising."""
        if not records:
            return None
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, store.add_many, records, mode)
        except Exception as e:
            logger.error(f"Session {self.id}: {mode.value} of {len(records)} {self.descriptor.record_label} records failed: {e}")
            return str(e)
        logger.info(f"Session {self.id}: {mode.value} committed {len(records)} {self.descriptor.record_label} records")
        return None

    async def commit(self) -> CommitResult:
        """
        Write ready rows (add) and user-replaced rows (replace) to the store.

        The two partitions are independent calls; a failure in one is reported
        in the result without undoing the other. The session moves to
        ``complete`` only when both succeed, otherwise it stays in ``preview``
        and a retry re-sends only the rows that were not committed.

        Raises:
            CommitInProgressError: If a commit is already in flight
        """
        self._require_step("commit", ImportStep.PREVIEW)
        if self._committing:
            raise CommitInProgressError(self.id)
        self._committing = True

        try:
            store = self.fighter_store if self.schema_kind == SchemaKind.FIGHTERS else self.fight_store
            add_rows, replace_rows = self._partitions()
            add_records, add_built, add_dropped = self._build_records(add_rows, CommitMode.ADD)
            replace_records, replace_built, replace_dropped = self._build_records(replace_rows, CommitMode.REPLACE)

            result = CommitResult(dropped=add_dropped + replace_dropped)

            result.add_error = await self._commit_partition(store, add_records, CommitMode.ADD)
            if result.add_error is None:
                result.added = len(add_records)
                for row in add_built:
                    row.committed = True

            result.replace_error = await self._commit_partition(store, replace_records, CommitMode.REPLACE)
            if result.replace_error is None:
                result.replaced = len(replace_records)
                for row in replace_built:
                    row.committed = True

            self.last_result = result
            if result.success:
                self.step = ImportStep.COMPLETE
            logger.info(
                f"Session {self.id}: commit finished (added={result.added}, replaced={result.replaced}, "
                f"dropped={result.dropped}, success={result.success})"
            )
            return result
        finally:
            self._committing = False

    def start_over(self) -> None:
        self._require_step("start over", ImportStep.COMPLETE)
        self._reset_file()
        self.last_result = None
        self.step = ImportStep.UPLOAD

    def _reset_file(self) -> None:
        self.file_name = None
        self.headers = []
        self.raw_rows = []
        self.mappings = []
        self.rows = []
        self._context = None
