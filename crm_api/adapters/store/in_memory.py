"""In-memory data store (MVP / tests).

Notes:
- Per-process only and not durable; meant for local development and tests.
- Mirrors the managed store's behaviour closely enough for route tests:
  generated ids and timestamps, equality filters, ordering, paging and
  to-one embeds.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from crm_api.adapters.store.base import (
    TENANT_TABLES,
    AbstractDataStore,
    ListQuery,
    Page,
    Relation,
    Row,
)

TABLES = ("organizations", "users", *TENANT_TABLES)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sort_key(column: str):
    # None sorts last ascending, like Postgres' default NULLS LAST.
    def key(row: Row) -> tuple[bool, Any]:
        value = row.get(column)
        return (value is None, value if value is not None else "")

    return key


class InMemoryDataStore(AbstractDataStore):
    """Dict-of-dicts store keyed by table then row id."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in TABLES}

    def _table(self, name: str) -> dict[str, Row]:
        return self._tables.setdefault(name, {})

    def seed(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert a row verbatim, filling id and timestamps when absent."""
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", _now_iso())
        stored.setdefault("updated_at", stored["created_at"])
        self._table(table)[stored["id"]] = stored
        return copy.deepcopy(stored)

    def get_user_row(self, user_id: str) -> Row | None:
        row = self._table("users").get(user_id)
        return copy.deepcopy(row) if row else None

    def _embed(
        self, row: Row, organization_id: str | None, relations: Mapping[str, Relation] | None
    ) -> Row:
        result = copy.deepcopy(row)
        for alias, relation in (relations or {}).items():
            related_id = row.get(relation.foreign_key)
            related = self._table(relation.table).get(related_id) if related_id else None
            if related is not None and organization_id is not None:
                if related.get("organization_id") != organization_id:
                    related = None
            result[alias] = (
                {col: related.get(col) for col in relation.columns} if related else None
            )
        return result

    def _tenant_rows(self, table: str, organization_id: str) -> list[Row]:
        return [
            row
            for row in self._table(table).values()
            if row.get("organization_id") == organization_id
        ]

    async def select(self, table: str, *, organization_id: str, query: ListQuery) -> Page:
        rows = self._tenant_rows(table, organization_id)
        for column, value in query.filters.items():
            rows = [row for row in rows if row.get(column) == value]

        rows.sort(key=_sort_key(query.sort_by), reverse=not query.ascending)
        window = rows[query.offset : query.offset + query.limit]
        return Page(
            items=[self._embed(row, organization_id, query.relations) for row in window],
            total=len(rows),
        )

    async def select_one(
        self,
        table: str,
        *,
        organization_id: str,
        record_id: str,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row | None:
        row = self._table(table).get(record_id)
        if row is None or row.get("organization_id") != organization_id:
            return None
        return self._embed(row, organization_id, relations)

    async def insert(
        self,
        table: str,
        values: Row,
        *,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row:
        stored = {k: v for k, v in values.items() if k not in ("id", "created_at", "updated_at")}
        stored["id"] = str(uuid.uuid4())
        stored["created_at"] = stored["updated_at"] = _now_iso()
        self._table(table)[stored["id"]] = stored
        return self._embed(stored, stored.get("organization_id"), relations)

    async def update(
        self, table: str, *, organization_id: str, record_id: str, values: Row
    ) -> Row | None:
        row = self._table(table).get(record_id)
        if row is None or row.get("organization_id") != organization_id:
            return None
        row.update(values)
        row["updated_at"] = _now_iso()
        return copy.deepcopy(row)

    async def delete(self, table: str, *, organization_id: str, record_id: str) -> bool:
        rows = self._table(table)
        row = rows.get(record_id)
        if row is None or row.get("organization_id") != organization_id:
            return False
        del rows[record_id]
        return True

    async def get_organization(self, organization_id: str) -> Row | None:
        row = self._table("organizations").get(organization_id)
        return copy.deepcopy(row) if row else None

    async def update_organization(self, organization_id: str, values: Row) -> Row | None:
        row = self._table("organizations").get(organization_id)
        if row is None:
            return None
        row.update(values)
        row["updated_at"] = _now_iso()
        return copy.deepcopy(row)

    async def count(self, table: str, *, organization_id: str | None = None) -> int:
        if organization_id is None:
            return len(self._table(table))
        return len(self._tenant_rows(table, organization_id))

    def _page(self, table: str, offset: int, limit: int) -> Page:
        rows = sorted(self._table(table).values(), key=_sort_key("created_at"), reverse=True)
        return Page(
            items=[copy.deepcopy(r) for r in rows[offset : offset + limit]],
            total=len(rows),
        )

    async def list_organizations(self, *, offset: int, limit: int) -> Page:
        return self._page("organizations", offset, limit)

    async def list_users(self, *, offset: int, limit: int) -> Page:
        return self._page("users", offset, limit)

    async def search_organizations(self, text: str, *, limit: int) -> list[Row]:
        needle = text.lower()
        matches = [
            {k: row.get(k) for k in ("id", "name", "email", "phone", "created_at")}
            for row in self._table("organizations").values()
            if any(needle in str(row.get(col) or "").lower() for col in ("name", "email", "phone"))
        ]
        return matches[:limit]

    async def set_super_admin(self, user_id: str, flag: bool) -> None:
        row = self._table("users").get(user_id)
        if row is not None:
            row["is_super_admin"] = flag

    async def system_stats(self) -> Row:
        return {
            "organizations": len(self._table("organizations")),
            "users": len(self._table("users")),
            "super_admins": sum(
                1 for row in self._table("users").values() if row.get("is_super_admin")
            ),
            **{name: len(self._table(name)) for name in TENANT_TABLES},
        }
