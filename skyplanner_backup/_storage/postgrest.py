"""Relational store access over the hosted PostgREST endpoint."""

import json
from typing import Any, Dict, List, Optional

import httpx

from .base import BaseSourceStore, Row
from ..config import SourceStoreConfig
from ..exceptions import StoreError
from .._utils import logger

CATALOG_RPC = "get_public_tables"


class PostgrestSourceStore(BaseSourceStore):
    """Read and write tables through ``<url>/rest/v1`` with a service-role key."""

    def __init__(
        self,
        config: SourceStoreConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = config.url.rstrip("/") + "/rest/v1"
        self._client = client or httpx.AsyncClient(timeout=config.timeout)
        self._headers = {
            "apikey": config.service_key,
            "Authorization": f"Bearer {config.service_key}",
        }

    async def list_tables(self) -> List[str]:
        data = await self._request("POST", f"/rpc/{CATALOG_RPC}", json={})
        return [entry["tablename"] for entry in data or [] if entry.get("tablename")]

    async def fetch_page(
        self,
        table: str,
        offset: int,
        limit: int,
        order_by: Optional[str] = None,
    ) -> List[Row]:
        params = {"select": "*", "offset": str(offset), "limit": str(limit)}
        if order_by:
            params["order"] = f"{order_by}.asc.nullslast"
        return await self._request("GET", f"/{table}", params=params) or []

    async def find_one(self, table: str, column: str, value: Any) -> Optional[Row]:
        rows = await self._request(
            "GET", f"/{table}", params={"select": "*", column: f"eq.{value}", "limit": "1"}
        )
        return rows[0] if rows else None

    async def delete_where(self, table: str, column: str, value: Any) -> None:
        await self._request(
            "DELETE", f"/{table}",
            params={column: f"eq.{value}"},
            headers={"Prefer": "return=minimal"},
        )

    async def insert_rows(self, table: str, rows: List[Row]) -> None:
        await self._request(
            "POST", f"/{table}",
            content=json.dumps(rows, default=str),
            headers={"Prefer": "return=minimal", "Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                self.base_url + path,
                headers={**self._headers, **(headers or {})},
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise self._error_from_response(response)

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_from_response(response: httpx.Response) -> StoreError:
        """Map a PostgREST error body ``{code, message, details, hint}`` to StoreError."""
        code = None
        message = response.text or response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict):
                code = body.get("code")
                message = body.get("message") or message
        except ValueError:
            pass
        logger.debug(f"Store error {response.status_code} ({code}): {message}")
        return StoreError(message, status=response.status_code, code=code)
