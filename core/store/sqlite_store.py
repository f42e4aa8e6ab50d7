from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Optional

RUNNING = "RUNNING"
SUCCEEDED = "SUCCEEDED"
FAILED = "FAILED"


class DeploymentState:
    """Petit helper pour stocker le dernier état connu de chaque service dans SQLite."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def ensure_schema(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS services (
                    service_id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL,
                    action TEXT NOT NULL,
                    version TEXT NOT NULL,
                    status TEXT NOT NULL,
                    execution_id TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    message TEXT
                )
                """
            )

    def upsert_status(
        self,
        service_id: str,
        kind: str,
        action: str,
        version: str,
        status: str,
        execution_id: str,
        message: str,
    ) -> None:
        timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO services(service_id, kind, action, version, status, execution_id, updated_at, message)
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(service_id) DO UPDATE SET
                    kind=excluded.kind,
                    action=excluded.action,
                    version=excluded.version,
                    status=excluded.status,
                    execution_id=excluded.execution_id,
                    updated_at=excluded.updated_at,
                    message=excluded.message
                """,
                (service_id, kind, action, version, status, execution_id, timestamp, message),
            )

    def get(self, service_id: str) -> Optional[Dict[str, Any]]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                """
                SELECT service_id, kind, action, version, status, execution_id, updated_at, message
                FROM services WHERE service_id = ?
                """,
                (service_id,),
            ).fetchone()
            return dict(row) if row else None
