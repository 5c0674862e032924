"""Thin async client for a PostgREST endpoint (Supabase ``/rest/v1``).

Only the pieces the adapters need: authenticated requests with the
service-role key, exact counts via ``Content-Range`` and error mapping to
:class:`DataAccessAppError`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from crm_api.core.errors import DataAccessAppError

logger = logging.getLogger(__name__)


def parse_content_range(header: str | None) -> int | None:
    """Extract the total from ``Content-Range: 0-49/123`` (or ``*/0``)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class PostgrestClient:
    """Async PostgREST client bound to one base URL and key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request and map failures to DataAccessAppError.

        4xx responses carry PostgREST's message (constraint names, bad
        columns), which is safe to show; transport errors and 5xx are not.
        """
        url = f"{self._rest_url}/{path.lstrip('/')}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as exc:
            logger.error(
                "store.request_failed",
                extra={"path": path, "method": method, "error_type": type(exc).__name__},
            )
            raise DataAccessAppError(
                code="store_unavailable",
                message="Data store request failed",
            ) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "store.request_failed",
                extra={"path": path, "method": method, "status": response.status_code},
            )
            raise DataAccessAppError(
                code="store_request_failed",
                message=message,
                details={"http_status": response.status_code},
                safe=response.status_code < 500,
            )
        return response

    async def select(
        self,
        table: str,
        params: Mapping[str, str],
        *,
        offset: int | None = None,
        limit: int | None = None,
        count: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        headers: dict[str, str] = {}
        if count:
            headers["Prefer"] = "count=exact"
        if limit is not None:
            start = offset or 0
            headers["Range-Unit"] = "items"
            headers["Range"] = f"{start}-{start + limit - 1}"

        response = await self.request("GET", table, params=params, headers=headers)
        total = parse_content_range(response.headers.get("content-range")) if count else None
        return response.json(), total

    async def write(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
    ) -> list[dict[str, Any]]:
        response = await self.request(
            method,
            table,
            params=params,
            json=json,
            headers={"Prefer": "return=representation"},
        )
        return response.json() if response.content else []

    async def rpc(self, function: str, payload: Mapping[str, Any]) -> Any:
        response = await self.request("POST", f"rpc/{function}", json=dict(payload))
        return response.json() if response.content else None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("msg") or body.get("error") or body)
    return str(body)
