"""
SQL-backed fighter and fight-record stores.

The import pipeline only needs ``list()`` (the minimum projection used for
reconciliation) and ``add_many(records, mode)``. Each ``add_many`` call runs in
a single transaction, so a failed partition leaves the tables untouched.
Records are stored as a JSON payload next to the columns used for matching.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mma_importer.domain.imports.models import (
    CommitMode,
    ExistingFight,
    ExistingFighter,
    Fighter,
    FightRecord,
    record_payload,
)
from .session import get_engine

logger = logging.getLogger(__name__)


class StoreCommitError(Exception):
    """Raised when a bulk write is rejected by the database."""

    def __init__(self, kind: str, mode: CommitMode, message: str = None):
        self.kind = kind
        self.mode = mode
        self.message = message or f"Failed to {mode.value} {kind} records."
        super().__init__(self.message)


CREATE_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS fighters (
        id VARCHAR(255) PRIMARY KEY,
        first_name VARCHAR(255) NOT NULL,
        last_name VARCHAR(255) NOT NULL,
        payload TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_fighters_name ON fighters(first_name, last_name)",
    """
    CREATE TABLE IF NOT EXISTS fight_records (
        id VARCHAR(255) PRIMARY KEY,
        fighter_id VARCHAR(255) NOT NULL,
        opponent_id VARCHAR(255),
        opponent_name VARCHAR(255) NOT NULL,
        event_date VARCHAR(50),
        payload TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_fight_records_fighter ON fight_records(fighter_id)",
    "CREATE INDEX IF NOT EXISTS idx_fight_records_opponent ON fight_records(opponent_name)",
)


def create_store_tables(engine=None) -> None:
    """Create the fighters and fight_records tables if they don't exist."""
    engine = engine or get_engine()
    try:
        with engine.begin() as conn:
            for statement in CREATE_STATEMENTS:
                conn.execute(text(statement))
        logger.info("fighters/fight_records tables created/verified successfully")
    except Exception as e:
        logger.error(f"Error creating store tables: {str(e)}")
        raise


class _SqlStore:
    kind = ""
    table = ""

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored payload for one record."""
        with self.engine.connect() as conn:
            payload = conn.execute(
                text(f"SELECT payload FROM {self.table} WHERE id = :id"), {"id": record_id}
            ).scalar()
        return json.loads(payload) if payload else None

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {self.table}")).scalar()

    def add_many(self, records: list, mode: CommitMode = CommitMode.ADD) -> None:
        """
        Insert (``add``) or upsert (``replace``) a batch of records in one transaction.

        Raises:
            StoreCommitError: If the database rejects the batch
        """
        mode = CommitMode(mode)
        if not records:
            return
        try:
            with self.engine.begin() as conn:
                self._write(conn, records, mode)
        except SQLAlchemyError as e:
            logger.error(f"{mode.value} of {len(records)} {self.kind} records failed: {str(e)}")
            raise StoreCommitError(self.kind, mode, f"Failed to {mode.value} {len(records)} {self.kind} records: {e}") from e
        logger.info(f"{mode.value}: wrote {len(records)} {self.kind} records")

    def _write(self, conn, records: list, mode: CommitMode) -> None:
        raise NotImplementedError


class FighterStore(_SqlStore):
    kind = "fighter"
    table = "fighters"

    def list(self) -> List[ExistingFighter]:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT id, first_name, last_name FROM fighters ORDER BY created_at, id"))
            return [ExistingFighter(id=r.id, first_name=r.first_name, last_name=r.last_name) for r in result]

    def _write(self, conn, records: List[Fighter], mode: CommitMode) -> None:
        insert_sql = """
            INSERT INTO fighters (id, first_name, last_name, payload)
            VALUES (:id, :first_name, :last_name, :payload)
        """
        if mode == CommitMode.REPLACE:
            insert_sql += """
            ON CONFLICT (id) DO UPDATE
            SET first_name = EXCLUDED.first_name,
                last_name = EXCLUDED.last_name,
                payload = EXCLUDED.payload,
                updated_at = CURRENT_TIMESTAMP
            """
        conn.execute(text(insert_sql), [
            {
                "id": fighter.id,
                "first_name": fighter.first_name,
                "last_name": fighter.last_name,
                "payload": json.dumps(record_payload(fighter)),
            }
            for fighter in records
        ])

        for fighter in records:
            self._link_opponent(conn, fighter)

    def _link_opponent(self, conn, fighter: Fighter) -> int:
        """Point unlinked fight records whose opponent name matches this fighter at its id."""
        rows = conn.execute(
            text("""
                SELECT id, payload FROM fight_records
                WHERE opponent_id IS NULL AND LOWER(opponent_name) = :name
            """),
            {"name": fighter.full_name.lower()},
        ).fetchall()

        for row in rows:
            payload = json.loads(row.payload)
            payload["opponent_id"] = fighter.id
            payload["opponent_linked"] = True
            conn.execute(
                text("""
                    UPDATE fight_records
                    SET opponent_id = :opponent_id, payload = :payload, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                """),
                {"opponent_id": fighter.id, "payload": json.dumps(payload), "id": row.id},
            )

        if rows:
            logger.info(f"Linked {len(rows)} fight records to new opponent {fighter.full_name} ({fighter.id})")
        return len(rows)


class FightStore(_SqlStore):
    kind = "fight record"
    table = "fight_records"

    def list(self) -> List[ExistingFight]:
        with self.engine.connect() as conn:
            result = conn.execute(text(
                "SELECT id, event_date, opponent_name, fighter_id FROM fight_records ORDER BY created_at, id"
            ))
            return [
                ExistingFight(
                    id=r.id,
                    event_date=r.event_date or "",
                    opponent_name=r.opponent_name,
                    fighter_id=r.fighter_id,
                )
                for r in result
            ]

    def _write(self, conn, records: List[FightRecord], mode: CommitMode) -> None:
        insert_sql = """
            INSERT INTO fight_records (id, fighter_id, opponent_id, opponent_name, event_date, payload)
            VALUES (:id, :fighter_id, :opponent_id, :opponent_name, :event_date, :payload)
        """
        if mode == CommitMode.REPLACE:
            insert_sql += """
            ON CONFLICT (id) DO UPDATE
            SET fighter_id = EXCLUDED.fighter_id,
                opponent_id = EXCLUDED.opponent_id,
                opponent_name = EXCLUDED.opponent_name,
                event_date = EXCLUDED.event_date,
                payload = EXCLUDED.payload,
                updated_at = CURRENT_TIMESTAMP
            """
        conn.execute(text(insert_sql), [
            {
                "id": record.id,
                "fighter_id": record.fighter_id,
                "opponent_id": record.opponent_id,
                "opponent_name": record.opponent_name,
                "event_date": record.event_date,
                "payload": json.dumps(record_payload(record)),
            }
            for record in records
        ])
