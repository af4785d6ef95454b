from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import httpx
from pydantic_core import to_jsonable_python

from memory_grove_tracker.backend.base import BackendError, BackendTimeout, Row
from memory_grove_tracker.constants import DEFAULT_HTTP_TIMEOUT
from memory_grove_tracker.models import SortKey

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupabaseCredentials:
    url: str
    anon_key: str
    access_token: Optional[str] = None

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"


def _order_param(order: Sequence[SortKey]) -> str:
    return ",".join(f"{key.column}.{'asc' if key.ascending else 'desc'}" for key in order)


def _extract_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"Supabase request failed (status {response.status_code})."
    if isinstance(payload, dict):
        for field in ("message", "error_description", "error", "hint"):
            message = payload.get(field)
            if isinstance(message, str) and message:
                return f"Supabase request failed: {message}"
    return f"Supabase request failed (status {response.status_code})."


class SupabaseRestClient:
    """Collection operations against a Supabase project's PostgREST endpoint."""

    def __init__(
        self,
        credentials: SupabaseCredentials,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self.credentials = credentials
        self._client = client or httpx.Client(timeout=timeout)

    def _headers(self, *, returning: bool = False) -> dict[str, str]:
        token = self.credentials.access_token or self.credentials.anon_key
        headers = {
            "apikey": self.credentials.anon_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"
        else:
            headers["Prefer"] = "return=minimal"
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        returning: bool = False,
    ) -> Any:
        url = f"{self.credentials.rest_url}/{table}"
        try:
            response = self._client.request(
                method,
                url,
                headers=self._headers(returning=returning),
                params=dict(params or {}),
                json=to_jsonable_python(json) if json is not None else None,
            )
        except httpx.TimeoutException as exc:
            LOGGER.error("%s %s timed out: %s", method, table, exc)
            raise BackendTimeout(f"Supabase request to {table} timed out.") from exc
        except httpx.RequestError as exc:
            LOGGER.error("%s %s failed: %s", method, table, exc)
            raise BackendError(f"Supabase request to {table} failed.") from exc

        if response.status_code >= 400:
            message = _extract_error_message(response)
            LOGGER.error("%s %s rejected (%s): %s", method, table, response.status_code, message)
            raise BackendError(message)

        if not response.content:
            return None
        return response.json()

    def fetch_all(self, table: str, order: Sequence[SortKey] = ()) -> list[Row]:
        params = {"select": "*"}
        if order:
            params["order"] = _order_param(order)
        data = self._request("GET", table, params=params)
        if not isinstance(data, list):
            raise BackendError("Supabase returned an unexpected response.")
        return [dict(row) for row in data]

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        rows = self.insert_many(table, [values])
        if len(rows) != 1:
            raise BackendError(f"Supabase returned {len(rows)} rows for a single insert.")
        return rows[0]

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        data = self._request("POST", table, json=[dict(row) for row in rows], returning=True)
        if not isinstance(data, list):
            raise BackendError("Supabase returned an unexpected response.")
        return [dict(row) for row in data]

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        self._request("PATCH", table, params={"id": f"eq.{record_id}"}, json=dict(values))

    def delete(self, table: str, record_id: str) -> None:
        self._request("DELETE", table, params={"id": f"eq.{record_id}"})

    def close(self) -> None:
        self._client.close()


__all__ = ["SupabaseCredentials", "SupabaseRestClient"]
