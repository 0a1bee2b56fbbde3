from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import RecordStoreConfig
from app.schemas.outcomes import QueryOutcome

logger = logging.getLogger(__name__)


class RecordStoreError(RuntimeError):
    pass


class RecordStoreUnavailable(RecordStoreError):
    """The store could not answer (non-2xx, timeout, transport error)."""


@dataclass(frozen=True)
class QueryResult:
    outcome: QueryOutcome
    rows: list[dict[str, Any]] = field(default_factory=list)
    status_code: int | None = None
    detail: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is QueryOutcome.FOUND

    @property
    def failed(self) -> bool:
        return self.outcome is QueryOutcome.TRANSIENT_FAILURE

    @property
    def conflict(self) -> bool:
        return self.status_code == 409

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def rows_or_none(self) -> list[dict[str, Any]] | None:
        # Old "null on any failure" view of the result.
        return None if self.failed else list(self.rows)

    def raise_for_failure(self) -> None:
        if self.failed:
            raise RecordStoreUnavailable(self.detail or "record store unavailable")


def encode_filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def build_params(
    filters: Mapping[str, Any],
    *,
    select: str | None = None,
    limit: int | None = None,
) -> dict[str, str]:
    params: dict[str, str] = {"select": select or "*"}
    for name, value in filters.items():
        params[name] = f"eq.{encode_filter_value(value)}"
    if limit is not None:
        params["limit"] = str(limit)
    return params


def _failure(detail: str, status_code: int | None = None) -> QueryResult:
    return QueryResult(
        outcome=QueryOutcome.TRANSIENT_FAILURE,
        status_code=status_code,
        detail=detail,
    )


def _rows_from_payload(payload: Any) -> list[dict[str, Any]] | None:
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list) and all(isinstance(row, dict) for row in payload):
        return payload
    return None


class RecordStoreClient:
    """Filtered reads and inserts against named collections of the hosted store.

    Reads are ``GET <base>/rest/v1/<collection>?field=eq.<value>``, writes are
    ``POST`` with a JSON body and ``Prefer: return=representation``. No caching
    and no retries; each call opens its own connection with an explicit
    timeout.
    """

    def __init__(
        self,
        config: RecordStoreConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.config.api_key,
            "Authorization": f"Bearer {self.config.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.rest_url,
            timeout=self.config.timeout_seconds,
            verify=self.config.verify_tls,
            transport=self._transport,
        )

    async def _send(
        self,
        method: str,
        collection: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> QueryResult:
        try:
            async with self._client() as client:
                r = await client.request(
                    method,
                    f"/{collection}",
                    params=params,
                    json=json,
                    headers=self._headers(),
                )
        except httpx.TimeoutException:
            logger.warning("Record store %s %s timed out", method, collection)
            return _failure("timeout")
        except httpx.HTTPError as exc:
            logger.warning("Record store %s %s failed: %s", method, collection, exc)
            return _failure("transport_error")

        if r.status_code == 409 and method == "POST":
            return QueryResult(
                outcome=QueryOutcome.NOT_FOUND,
                status_code=409,
                detail="conflict",
            )

        if not r.is_success:
            logger.warning(
                "Record store %s %s returned HTTP %s",
                method,
                collection,
                r.status_code,
            )
            return _failure(f"http_{r.status_code}", r.status_code)

        if not r.content:
            rows: list[dict[str, Any]] | None = []
        else:
            try:
                rows = _rows_from_payload(r.json())
            except ValueError:
                rows = None
        if rows is None:
            logger.warning("Record store %s %s returned an unexpected body", method, collection)
            return _failure("unexpected_body", r.status_code)

        return QueryResult(
            outcome=QueryOutcome.FOUND if rows else QueryOutcome.NOT_FOUND,
            rows=rows,
            status_code=r.status_code,
        )

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        *,
        select: str | None = None,
        limit: int | None = None,
    ) -> QueryResult:
        params = build_params(filters, select=select, limit=limit)
        return await self._send("GET", collection, params=params)

    async def insert(self, collection: str, record: Mapping[str, Any]) -> QueryResult:
        return await self._send("POST", collection, json=dict(record))
