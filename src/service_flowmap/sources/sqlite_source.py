"""SQLite-backed service and interface registry.

Holds the services (from the organisational directory) and interfaces
(from the lineage system) that the flow map is drawn from. Interfaces are
returned in insertion order so edge navigation stays stable across calls.
"""

import asyncio
import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from ..core.exceptions import DataSourceError
from ..core.models import InterfaceRecord, ServiceRecord, Subgraph
from .base import build_subgraph, load_seed_file

SERVICE_COLUMNS = (
    "app_instance_id",
    "service_name",
    "status",
    "owner",
    "support_group",
    "criticality",
    "environment",
)

INTERFACE_COLUMNS = (
    "id",
    "send_app_id",
    "send_app_name",
    "received_app_id",
    "received_app_name",
    "interface_name",
    "interface_status",
    "priority",
    "transfer_type",
    "frequency",
    "technology",
    "pattern",
    "remarks",
)


class SQLiteSubgraphSource:
    """SQLite registry answering subgraph lookups.

    Example:
        >>> source = SQLiteSubgraphSource(Path(".flowmap/flowmap.db"))
        >>> source.import_file(Path("seed.yaml"))
        (12, 30)
        >>> subgraph = await source.fetch_subgraph("APP-001")
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create database and tables if they don't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS it_services (
                        app_instance_id TEXT PRIMARY KEY,
                        service_name TEXT NOT NULL DEFAULT '',
                        status TEXT NOT NULL DEFAULT 'ACTIVE',
                        owner TEXT,
                        support_group TEXT,
                        criticality TEXT,
                        environment TEXT,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS interfaces (
                        id TEXT PRIMARY KEY,
                        send_app_id TEXT,
                        send_app_name TEXT,
                        received_app_id TEXT,
                        received_app_name TEXT,
                        interface_name TEXT,
                        interface_status TEXT NOT NULL DEFAULT 'ACTIVE',
                        priority TEXT NOT NULL DEFAULT 'LOW',
                        transfer_type TEXT,
                        frequency TEXT,
                        technology TEXT,
                        pattern TEXT,
                        remarks TEXT,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_interfaces_sender ON interfaces(send_app_id)"
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_interfaces_receiver "
                    "ON interfaces(received_app_id)"
                )
                cursor.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise DataSourceError(
                f"Failed to initialize database at {self.db_path}: {e}",
                {"path": str(self.db_path)},
            ) from e
        logger.debug(f"Initialized flowmap database at {self.db_path}")

    # ── Writes ──────────────────────────────────────────────────────────

    def upsert_services(self, services: Iterable[ServiceRecord]) -> int:
        """Insert or update services. Returns the number written."""
        now = datetime.now(UTC).isoformat()
        rows = [
            (
                s.id,
                s.name,
                s.status.value,
                s.owner,
                s.support_group,
                s.criticality,
                s.environment,
                now,
            )
            for s in services
        ]
        placeholders = ", ".join("?" * (len(SERVICE_COLUMNS) + 1))
        updates = ", ".join(f"{c} = excluded.{c}" for c in SERVICE_COLUMNS[1:])
        self._executemany(
            f"INSERT INTO it_services ({', '.join(SERVICE_COLUMNS)}, updated_at) "
            f"VALUES ({placeholders}) "
            f"ON CONFLICT(app_instance_id) DO UPDATE SET {updates}, "
            f"updated_at = excluded.updated_at",
            rows,
        )
        return len(rows)

    def upsert_interfaces(self, interfaces: Iterable[InterfaceRecord]) -> int:
        """Insert or update interfaces. Existing rows keep their position."""
        now = datetime.now(UTC).isoformat()
        rows = [
            (
                i.id,
                i.sender_id,
                i.sender_name,
                i.receiver_id,
                i.receiver_name,
                i.name,
                i.status.value,
                i.priority.value,
                i.transfer_type,
                i.frequency,
                i.technology,
                i.pattern,
                i.remarks,
                now,
            )
            for i in interfaces
        ]
        placeholders = ", ".join("?" * (len(INTERFACE_COLUMNS) + 1))
        updates = ", ".join(f"{c} = excluded.{c}" for c in INTERFACE_COLUMNS[1:])
        self._executemany(
            f"INSERT INTO interfaces ({', '.join(INTERFACE_COLUMNS)}, updated_at) "
            f"VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}, updated_at = excluded.updated_at",
            rows,
        )
        return len(rows)

    def import_file(self, path: Path) -> tuple[int, int]:
        """Load a JSON/YAML seed file. Returns (services, interfaces) written."""
        services, interfaces = load_seed_file(path)
        written = (self.upsert_services(services), self.upsert_interfaces(interfaces))
        logger.info(f"Imported {written[0]} services and {written[1]} interfaces from {path}")
        return written

    def _executemany(self, sql: str, rows: list[tuple]) -> None:
        if not rows:
            return
        try:
            with self._connect() as conn:
                conn.executemany(sql, rows)
                conn.commit()
        except sqlite3.Error as e:
            raise DataSourceError(f"Database write failed: {e}", {"path": str(self.db_path)}) from e

    # ── Reads ───────────────────────────────────────────────────────────

    def counts(self) -> dict[str, int]:
        try:
            with self._connect() as conn:
                services = conn.execute("SELECT COUNT(*) FROM it_services").fetchone()[0]
                interfaces = conn.execute("SELECT COUNT(*) FROM interfaces").fetchone()[0]
        except sqlite3.Error as e:
            raise DataSourceError(f"Database read failed: {e}", {"path": str(self.db_path)}) from e
        return {"services": services, "interfaces": interfaces}

    async def fetch_subgraph(self, center_id: str) -> Subgraph:
        return await asyncio.to_thread(self.lookup, center_id)

    def lookup(self, center_id: str) -> Subgraph:
        """Synchronous subgraph lookup (runs off the event loop when awaited)."""
        try:
            with self._connect() as conn:
                interface_rows = conn.execute(
                    """
                    SELECT * FROM interfaces
                    WHERE send_app_id = ? OR received_app_id = ?
                    ORDER BY rowid
                    """,
                    (center_id, center_id),
                ).fetchall()
                interfaces = [_row_to_interface(r) for r in interface_rows]

                connected = {center_id}
                for record in interfaces:
                    connected.update(i for i in (record.sender_id, record.receiver_id) if i)

                ordered = sorted(connected)
                service_rows = conn.execute(
                    f"SELECT * FROM it_services WHERE app_instance_id IN "
                    f"({', '.join('?' * len(ordered))})",
                    ordered,
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Subgraph lookup for {center_id!r} failed: {e}")
            raise DataSourceError(
                f"Subgraph lookup failed for {center_id}: {e}", {"center_id": center_id}
            ) from e

        services = {r["app_instance_id"]: _row_to_service(r) for r in service_rows}
        return build_subgraph(center_id, services, interfaces)


def _row_to_service(row: sqlite3.Row) -> ServiceRecord:
    return ServiceRecord(
        id=row["app_instance_id"],
        name=row["service_name"] or "",
        status=row["status"],
        owner=row["owner"],
        support_group=row["support_group"],
        criticality=row["criticality"],
        environment=row["environment"],
    )


def _row_to_interface(row: sqlite3.Row) -> InterfaceRecord:
    return InterfaceRecord(
        id=row["id"],
        sender_id=row["send_app_id"],
        sender_name=row["send_app_name"],
        receiver_id=row["received_app_id"],
        receiver_name=row["received_app_name"],
        name=row["interface_name"],
        status=row["interface_status"],
        priority=row["priority"],
        transfer_type=row["transfer_type"],
        frequency=row["frequency"],
        technology=row["technology"],
        pattern=row["pattern"],
        remarks=row["remarks"],
    )
