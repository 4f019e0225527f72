"""SQLite-backed record store reader with a bulk snapshot loader."""

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
    StageChange,
)
from principal_activity.sources.base import BaseSourceReader

logger = logging.getLogger(__name__)

# (snapshot key, table, model, columns) in load order
_SNAPSHOT_TABLES: list[tuple[str, str, type, tuple[str, ...]]] = [
    (
        "principals",
        "principals",
        Principal,
        ("id", "name", "organization_type", "industry", "status", "is_active", "created_at", "updated_at"),
    ),
    (
        "contacts",
        "contacts",
        Contact,
        ("id", "principal_id", "first_name", "last_name", "email", "updated_at"),
    ),
    (
        "interactions",
        "interactions",
        Interaction,
        (
            "id", "principal_id", "opportunity_id", "subject", "interaction_type", "status",
            "outcome", "interaction_date", "rating", "follow_up_required", "follow_up_date",
        ),
    ),
    (
        "opportunities",
        "opportunities",
        Opportunity,
        ("id", "principal_id", "name", "stage", "is_won", "probability_percent", "created_at"),
    ),
    (
        "product_associations",
        "product_associations",
        ProductAssociation,
        (
            "id", "principal_id", "product_id", "product_name", "category",
            "is_primary_principal", "is_active", "created_at",
        ),
    ),
    (
        "distributor_relationships",
        "distributor_relationships",
        DistributorRelationship,
        ("id", "principal_id", "distributor_id", "distributor_name", "is_active", "linked_at"),
    ),
]


class SqliteSourceReader(BaseSourceReader):
    """
    Reads principal activity from a local SQLite database.
    Queries are blocking, so each read runs in a worker thread.
    """

    source_id = "sqlite"

    def __init__(self, db_path: str | Path = "principal_activity.db"):
        self._db_path = Path(db_path)
        self._ensure_schema()

    def _connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        with self._connection() as conn:
            conn.executescript(schema_path.read_text())

    def _select(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    def _by_principal(self, table: str, principal_id: str, order_by: str = "id") -> list[dict[str, Any]]:
        return self._select(
            f"SELECT * FROM {table} WHERE principal_id = ? ORDER BY {order_by}",
            (principal_id,),
        )

    async def fetch_principal(self, principal_id: str) -> Optional[Principal]:
        rows = await asyncio.to_thread(
            self._select, "SELECT * FROM principals WHERE id = ?", (principal_id,)
        )
        return Principal.model_validate(rows[0]) if rows else None

    async def fetch_all_principal_ids(self) -> list[str]:
        rows = await asyncio.to_thread(self._select, "SELECT id FROM principals ORDER BY id")
        return [r["id"] for r in rows]

    async def fetch_contacts(self, principal_id: str) -> list[Contact]:
        rows = await asyncio.to_thread(self._by_principal, "contacts", principal_id)
        return [Contact.model_validate(r) for r in rows]

    async def fetch_interactions(self, principal_id: str) -> list[Interaction]:
        rows = await asyncio.to_thread(self._by_principal, "interactions", principal_id)
        return [Interaction.model_validate(r) for r in rows]

    def _load_opportunities(self, principal_id: str) -> list[Opportunity]:
        opp_rows = self._by_principal("opportunities", principal_id)
        change_rows = self._select(
            """
            SELECT c.* FROM opportunity_stage_changes c
            JOIN opportunities o ON o.id = c.opportunity_id
            WHERE o.principal_id = ?
            ORDER BY c.opportunity_id, c.id
            """,
            (principal_id,),
        )
        history: dict[str, list[StageChange]] = {}
        for row in change_rows:
            history.setdefault(row["opportunity_id"], []).append(StageChange.model_validate(row))
        return [
            Opportunity.model_validate({**row, "stage_history": history.get(row["id"], [])})
            for row in opp_rows
        ]

    async def fetch_opportunities(self, principal_id: str) -> list[Opportunity]:
        return await asyncio.to_thread(self._load_opportunities, principal_id)

    async def fetch_product_associations(self, principal_id: str) -> list[ProductAssociation]:
        rows = await asyncio.to_thread(self._by_principal, "product_associations", principal_id)
        return [ProductAssociation.model_validate(r) for r in rows]

    async def fetch_distributor_relationships(
        self, principal_id: str
    ) -> list[DistributorRelationship]:
        rows = await asyncio.to_thread(self._by_principal, "distributor_relationships", principal_id)
        return [DistributorRelationship.model_validate(r) for r in rows]

    def import_snapshot(self, snapshot: dict[str, list[dict]] | str | Path) -> dict[str, int]:
        """
        Bulk-load a JSON snapshot of records (keys: principals, contacts, interactions,
        opportunities, product_associations, distributor_relationships).
        Existing rows with the same id are replaced. Returns row counts per table.
        """
        if not isinstance(snapshot, dict):
            snapshot = json.loads(Path(snapshot).read_text(encoding="utf-8"))

        counts: dict[str, int] = {}
        with self._connection() as conn:
            for key, table, model, columns in _SNAPSHOT_TABLES:
                records = [model.model_validate(r) for r in snapshot.get(key) or []]
                placeholders = ", ".join("?" for _ in columns)
                sql = f"INSERT OR REPLACE INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
                for record in records:
                    data = record.model_dump(mode="json")
                    conn.execute(sql, tuple(data.get(c) for c in columns))
                    if isinstance(record, Opportunity):
                        self._replace_stage_history(conn, record)
                counts[table] = len(records)
            conn.commit()
        logger.info("Imported snapshot into %s: %s", self._db_path, counts)
        return counts

    def _replace_stage_history(self, conn: sqlite3.Connection, opp: Opportunity) -> None:
        conn.execute("DELETE FROM opportunity_stage_changes WHERE opportunity_id = ?", (opp.id,))
        for change in opp.stage_history:
            data = change.model_dump(mode="json")
            conn.execute(
                """
                INSERT INTO opportunity_stage_changes (opportunity_id, from_stage, to_stage, changed_at)
                VALUES (?, ?, ?, ?)
                """,
                (opp.id, data["from_stage"], data["to_stage"], data["changed_at"]),
            )
