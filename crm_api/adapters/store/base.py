"""Data store interface and the tenant-scoped access handle.

Persistence lives in an external managed database. Route handlers never
talk to the store directly: they receive a ``ScopedDataAccess`` bound to the
caller's organization, so every read and write is filtered by the tenant
taken from the auth context rather than from client input.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

Row = dict[str, Any]

# Tables whose rows carry an organization_id.
TENANT_TABLES = ("contacts", "properties", "activities", "gbp_profiles")


@dataclass(frozen=True)
class Relation:
    """A to-one embed resolved alongside each row.

    Attributes:
        table: Related table name.
        foreign_key: Column on the parent row holding the related id.
        columns: Columns to return from the related row.
    """

    table: str
    foreign_key: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class Page:
    """One page of rows plus the unpaginated match count."""

    items: list[Row]
    total: int


@dataclass(frozen=True)
class ListQuery:
    """Filtering, ordering and paging for a list call."""

    filters: Mapping[str, Any] = field(default_factory=dict)
    sort_by: str = "created_at"
    ascending: bool = False
    offset: int = 0
    limit: int = 50
    relations: Mapping[str, Relation] = field(default_factory=dict)


class AbstractDataStore(ABC):
    """Interface over the external store.

    Tenant-scoped primitives take ``organization_id`` explicitly; callers
    should go through :meth:`scoped` instead of passing it by hand.
    """

    @abstractmethod
    async def select(self, table: str, *, organization_id: str, query: ListQuery) -> Page:
        raise NotImplementedError

    @abstractmethod
    async def select_one(
        self,
        table: str,
        *,
        organization_id: str,
        record_id: str,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row | None:
        raise NotImplementedError

    @abstractmethod
    async def insert(
        self,
        table: str,
        values: Row,
        *,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row:
        raise NotImplementedError

    @abstractmethod
    async def update(
        self, table: str, *, organization_id: str, record_id: str, values: Row
    ) -> Row | None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, table: str, *, organization_id: str, record_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def get_organization(self, organization_id: str) -> Row | None:
        raise NotImplementedError

    @abstractmethod
    async def update_organization(self, organization_id: str, values: Row) -> Row | None:
        raise NotImplementedError

    # Privileged (service-role) operations used by super-admin routes.

    @abstractmethod
    async def count(self, table: str, *, organization_id: str | None = None) -> int:
        raise NotImplementedError

    @abstractmethod
    async def list_organizations(self, *, offset: int, limit: int) -> Page:
        raise NotImplementedError

    @abstractmethod
    async def list_users(self, *, offset: int, limit: int) -> Page:
        raise NotImplementedError

    @abstractmethod
    async def search_organizations(self, text: str, *, limit: int) -> list[Row]:
        raise NotImplementedError

    @abstractmethod
    async def set_super_admin(self, user_id: str, flag: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    async def system_stats(self) -> Row:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the store."""
        return None

    def scoped(self, organization_id: str, *, user_id: str | None = None) -> "ScopedDataAccess":
        """Bind a handle to one tenant."""
        return ScopedDataAccess(self, organization_id=organization_id, user_id=user_id)


class ScopedDataAccess:
    """Data handle bound to a single organization.

    ``organization_id`` is stamped on every insert and applied as a filter on
    every read, update and delete. Values supplied by the caller for that
    column are overwritten.
    """

    def __init__(
        self,
        store: AbstractDataStore,
        *,
        organization_id: str,
        user_id: str | None = None,
    ) -> None:
        self._store = store
        self.organization_id = organization_id
        self.user_id = user_id

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ScopedDataAccess(organization_id={self.organization_id!r})"

    async def list(self, table: str, query: ListQuery) -> Page:
        return await self._store.select(table, organization_id=self.organization_id, query=query)

    async def get(
        self,
        table: str,
        record_id: str,
        *,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row | None:
        return await self._store.select_one(
            table,
            organization_id=self.organization_id,
            record_id=record_id,
            relations=relations,
        )

    async def insert(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        relations: Mapping[str, Relation] | None = None,
    ) -> Row:
        row = {**values, "organization_id": self.organization_id}
        return await self._store.insert(table, row, relations=relations)

    async def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Row | None:
        changes = {k: v for k, v in values.items() if k not in ("id", "organization_id")}
        return await self._store.update(
            table,
            organization_id=self.organization_id,
            record_id=record_id,
            values=changes,
        )

    async def delete(self, table: str, record_id: str) -> bool:
        return await self._store.delete(
            table, organization_id=self.organization_id, record_id=record_id
        )

    async def get_organization(self) -> Row | None:
        return await self._store.get_organization(self.organization_id)

    async def update_organization(self, values: Mapping[str, Any]) -> Row | None:
        changes = {k: v for k, v in values.items() if k != "id"}
        return await self._store.update_organization(self.organization_id, changes)
