"""Supabase (PostgREST) data store adapter.

Runs with the service-role key, so row-level security is bypassed and
tenant filtering is applied here on every call through ``organization_id``.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

import httpx

from crm_api.adapters.postgrest import PostgrestClient, eq
from crm_api.adapters.store.base import (
    AbstractDataStore,
    ListQuery,
    Page,
    Relation,
    Row,
)

USER_COLUMNS = (
    "id,email,full_name,role,pricing_tier,organization_id,created_at,is_super_admin"
)

# Characters that would break out of a PostgREST or=(...) expression.
_FILTER_UNSAFE = re.compile(r"[,()*:\\]")


def build_select(relations: Mapping[str, Relation] | None) -> str:
    """Render ``*`` plus aliased embeds, e.g. ``*,contact:contacts(id,first_name)``."""
    parts = ["*"]
    for alias, relation in (relations or {}).items():
        parts.append(f"{alias}:{relation.table}({','.join(relation.columns)})")
    return ",".join(parts)


class SupabaseDataStore(AbstractDataStore):
    """Data store backed by a Supabase project's REST API."""

    def __init__(
        self,
        *,
        url: str,
        service_role_key: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rest = PostgrestClient(
            url,
            service_role_key,
            timeout_seconds=timeout_seconds,
            client=client,
        )

    async def aclose(self) -> None:
        await self._rest.aclose()

    async def select(self, table: str, *, organization_id: str, query: ListQuery) -> Page:
        params: dict[str, str] = {
            "select": build_select(query.relations),
            "organization_id": eq(organization_id),
            "order": f"{query.sort_by}.{'asc' if query.ascending else 'desc'}",
        }
        for column, value in query.filters.items():
            params[column] = eq(value)

        rows, total = await self._rest.select(
            table, params, offset=query.offset, limit=query.limit, count=True
        )
        return Page(items=rows, total=total if total is not None else len(rows))

    async def select_one(
        self,
        table: str,
        *,
        organization_id: str,
        record_id: str,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row | None:
        rows, _ = await self._rest.select(
            table,
            {
                "select": build_select(relations),
                "id": eq(record_id),
                "organization_id": eq(organization_id),
            },
            limit=1,
        )
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        values: Row,
        *,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row:
        rows = await self._rest.write(
            "POST", table, params={"select": build_select(relations)}, json=values
        )
        return rows[0]

    async def update(
        self, table: str, *, organization_id: str, record_id: str, values: Row
    ) -> Row | None:
        rows = await self._rest.write(
            "PATCH",
            table,
            params={"id": eq(record_id), "organization_id": eq(organization_id)},
            json=values,
        )
        return rows[0] if rows else None

    async def delete(self, table: str, *, organization_id: str, record_id: str) -> bool:
        rows = await self._rest.write(
            "DELETE",
            table,
            params={"id": eq(record_id), "organization_id": eq(organization_id)},
        )
        return bool(rows)

    async def get_organization(self, organization_id: str) -> Row | None:
        rows, _ = await self._rest.select(
            "organizations", {"select": "*", "id": eq(organization_id)}, limit=1
        )
        return rows[0] if rows else None

    async def update_organization(self, organization_id: str, values: Row) -> Row | None:
        rows = await self._rest.write(
            "PATCH", "organizations", params={"id": eq(organization_id)}, json=values
        )
        return rows[0] if rows else None

    async def count(self, table: str, *, organization_id: str | None = None) -> int:
        params = {"select": "id"}
        if organization_id is not None:
            params["organization_id"] = eq(organization_id)
        _, total = await self._rest.select(table, params, limit=1, count=True)
        return total or 0

    async def _page(self, table: str, select: str, offset: int, limit: int) -> Page:
        rows, total = await self._rest.select(
            table,
            {"select": select, "order": "created_at.desc"},
            offset=offset,
            limit=limit,
            count=True,
        )
        return Page(items=rows, total=total or 0)

    async def list_organizations(self, *, offset: int, limit: int) -> Page:
        return await self._page("organizations", "*", offset, limit)

    async def list_users(self, *, offset: int, limit: int) -> Page:
        return await self._page("users", USER_COLUMNS, offset, limit)

    async def search_organizations(self, text: str, *, limit: int) -> list[Row]:
        term = _FILTER_UNSAFE.sub("", text).strip()
        if not term:
            return []
        pattern = f"*{term}*"
        rows, _ = await self._rest.select(
            "organizations",
            {
                "select": "id,name,email,phone,created_at",
                "or": f"(name.ilike.{pattern},email.ilike.{pattern},phone.ilike.{pattern})",
                "limit": str(limit),
            },
        )
        return rows

    async def set_super_admin(self, user_id: str, flag: bool) -> None:
        function = "grant_super_admin" if flag else "revoke_super_admin"
        await self._rest.rpc(function, {"user_id": user_id})

    async def system_stats(self) -> Row:
        rows, _ = await self._rest.select("admin_system_stats", {"select": "*"}, limit=1)
        return rows[0] if rows else {}
