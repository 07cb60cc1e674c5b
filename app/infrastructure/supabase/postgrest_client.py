from __future__ import annotations

import logging
from typing import Any

import httpx

from app.application.exceptions import FetchError


class PostgrestClient:
    """Thin async client for the managed database's REST endpoint (`/rest/v1/<table>`)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    async def select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: dict[str, Any]) -> list[dict[str, Any]]:
        return await self._request("POST", table, json=row, prefer="return=representation")

    async def update(self, table: str, params: dict[str, str], values: dict[str, Any]) -> list[dict[str, Any]]:
        """PATCH every row matching `params`; returns the rows actually changed (possibly none)."""
        return await self._request("PATCH", table, params=params, json=values, prefer="return=representation")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = await self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            self._logger.error("Database request failed", extra={"reason": f"{method} {table}", "error": str(e)})
            raise FetchError(f"{method} {table} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                error_json = resp.json()
                error_message = error_json.get("message") or resp.text
                error_code = error_json.get("code")
            except Exception:
                error_message = resp.text
                error_code = None

            self._logger.error(
                "Database request rejected",
                extra={
                    "reason": f"{method} {table} status={resp.status_code} code={error_code}",
                    "error": error_message,
                },
            )
            raise FetchError(f"{method} {table} returned {resp.status_code}: {error_message}")

        if not resp.content:
            return []
        try:
            data = resp.json()
        except ValueError as e:
            self._logger.error(
                "Database response is not JSON",
                extra={"reason": f"{method} {table} status={resp.status_code}", "error": resp.text[:200]},
            )
            raise FetchError(f"{method} {table} returned a non-JSON body") from e
        if isinstance(data, dict):
            return [data]
        return list(data)
