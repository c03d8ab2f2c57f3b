from datetime import date, time
from typing import Any, Dict, Optional

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts


def to_db_value(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat(timespec="minutes")
    return value


class TableModel:
    """CRUD over a single table, scoped to one admin when the table has an admin_id.

    Subclasses set `table`, the writable `fields` and the label used in 404s.
    Column names only ever come from `fields`, never from request keys.
    """

    table: str = ""
    label: str = "Record"
    fields: tuple = ()
    tenant_column: Optional[str] = "admin_id"
    created_column: Optional[str] = "created_at"
    updated_column: Optional[str] = "updated_at"
    default_order = "id"

    def __init__(self, conn, admin_id: Optional[int] = None):
        self.conn = conn
        self.admin_id = admin_id

    def _scope(self, alias=""):
        if self.tenant_column and self.admin_id is not None:
            prefix = f"{alias}." if alias else ""
            return f" AND {prefix}{self.tenant_column} = ?", [self.admin_id]
        return "", []

    def _clean(self, data: Dict[str, Any]):
        return {k: to_db_value(v) for k, v in data.items() if k in self.fields}

    def find_all(self, order_by: Optional[str] = None):
        scope, params = self._scope()
        rows = self.conn.execute(
            f"SELECT * FROM {self.table} WHERE 1 = 1{scope} ORDER BY {order_by or self.default_order}",
            params,
        ).fetchall()
        return rows_to_dicts(rows)

    def find_by_id(self, record_id: int):
        scope, params = self._scope()
        row = self.conn.execute(
            f"SELECT * FROM {self.table} WHERE id = ?{scope}", [record_id] + params
        ).fetchone()
        return dict(row) if row else None

    def get_or_404(self, record_id: int):
        record = self.find_by_id(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"{self.label} not found")
        return record

    def find_one(self, **where):
        clauses = " AND ".join(f"{column} = ?" for column in where)
        scope, params = self._scope()
        row = self.conn.execute(
            f"SELECT * FROM {self.table} WHERE {clauses}{scope} LIMIT 1",
            list(where.values()) + params,
        ).fetchone()
        return dict(row) if row else None

    def count(self, **where):
        clauses = "".join(f" AND {column} = ?" for column in where)
        scope, params = self._scope()
        row = self.conn.execute(
            f"SELECT COUNT(*) FROM {self.table} WHERE 1 = 1{clauses}{scope}",
            list(where.values()) + params,
        ).fetchone()
        return row[0]

    def create(self, data: Dict[str, Any]) -> int:
        values = self._clean(data)
        if self.tenant_column and self.admin_id is not None:
            values[self.tenant_column] = self.admin_id
        ts = now_iso()
        if self.created_column:
            values.setdefault(self.created_column, ts)
        if self.updated_column:
            values.setdefault(self.updated_column, ts)

        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        row = self.conn.execute(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders}) RETURNING id",
            list(values.values()),
        ).fetchone()
        return row[0]

    def update(self, record_id: int, data: Dict[str, Any]) -> int:
        values = self._clean(data)
        if not values:
            return 0
        if self.updated_column:
            values[self.updated_column] = now_iso()
        assignments = ", ".join(f"{column} = ?" for column in values)
        scope, params = self._scope()
        cur = self.conn.execute(
            f"UPDATE {self.table} SET {assignments} WHERE id = ?{scope}",
            list(values.values()) + [record_id] + params,
        )
        return cur.rowcount

    def delete(self, record_id: int) -> int:
        scope, params = self._scope()
        cur = self.conn.execute(f"DELETE FROM {self.table} WHERE id = ?{scope}", [record_id] + params)
        return cur.rowcount
