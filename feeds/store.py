"""
Remote store access: the protocol the feed layer relies on plus two backends.

``PostgrestStore`` talks to a PostgREST-compatible REST endpoint over
``httpx``; ``MemoryStore`` keeps tables in process (fixtures, CLI demos,
tests) with the same ordering and filtering semantics.
"""
from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import httpx
import yaml

from feeds.errors import ConflictError, RecordNotFound, StoreError
from feeds.models import Filters, OrderSpec

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class RemoteStore(Protocol):
    async def query(
        self,
        collection: str,
        *,
        order: OrderSpec = (),
        filters: Filters = (),
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        ...

    async def query_one(self, collection: str, *, filters: Filters) -> Dict[str, Any]:
        ...

    async def insert(self, collection: str, row: Mapping[str, Any]) -> None:
        ...

    async def delete(self, collection: str, *, filters: Filters) -> None:
        ...


def redact_secrets(text: str) -> str:
    """Strip API keys and bearer tokens from text headed for logs."""
    redacted = re.sub(r"(?i)(api[_-]?key|token|secret)=([^&\s]+)", r"\1=***REDACTED***", text)
    return re.sub(r"(?i)Bearer\s+[A-Za-z0-9._\-]+", "Bearer ***REDACTED***", redacted)


def encode_order(order: OrderSpec) -> str:
    return ",".join(f"{name}.{'asc' if ascending else 'desc'}" for name, ascending in order)


def encode_filters(filters: Filters) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    for name, op, value in filters:
        if op == "eq":
            params.append((name, f"eq.{value}"))
        elif op == "in":
            joined = ",".join(str(v) for v in value)
            params.append((name, f"in.({joined})"))
        else:
            raise ValueError(f"Unsupported filter operator '{op}'")
    return params


class PostgrestStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = 15.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Accept": "application/json",
            "User-Agent": "ListingFeeds/1.0",
        }
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport or httpx.AsyncHTTPTransport(retries=max_retries),
        )

    async def query(
        self,
        collection: str,
        *,
        order: OrderSpec = (),
        filters: Filters = (),
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        params = [("select", columns)] + encode_filters(filters)
        if order:
            params.append(("order", encode_order(order)))
        response = await self._send("GET", collection, params=params)
        return list(_decode(response, collection))

    async def query_one(self, collection: str, *, filters: Filters) -> Dict[str, Any]:
        params = [("select", "*")] + encode_filters(filters)
        try:
            response = await self._send("GET", collection, params=params, headers={"Accept": SINGLE_OBJECT})
        except StoreError as exc:
            # PostgREST answers 406 when a single-object request matches no row.
            if exc.status_code == 406:
                raise RecordNotFound(collection, list(filters)) from exc
            raise
        return dict(_decode(response, collection))

    async def insert(self, collection: str, row: Mapping[str, Any]) -> None:
        await self._send("POST", collection, json=dict(row), headers={"Prefer": "return=minimal"})

    async def delete(self, collection: str, *, filters: Filters) -> None:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        await self._send("DELETE", collection, params=encode_filters(filters))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "PostgrestStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(self, method: str, collection: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, f"/{collection}", **kwargs)
        except httpx.HTTPError as exc:
            message = redact_secrets(str(exc)) or exc.__class__.__name__
            logger.error("%s %s failed: %s", method, collection, message)
            raise StoreError(message) from exc
        if response.status_code == 409:
            raise ConflictError(redact_secrets(response.text[:200]), status_code=409)
        if response.status_code >= 400:
            detail = redact_secrets(response.text[:200])
            logger.warning("%s %s returned %s: %s", method, collection, response.status_code, detail)
            raise StoreError(f"HTTP {response.status_code}: {detail}", status_code=response.status_code)
        return response


def _decode(response: httpx.Response, collection: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        # Gateways and proxies answer 200 with HTML pages.
        logger.warning("Non-JSON body from %s: %s", collection, redact_secrets(response.text[:200]))
        raise StoreError(f"Malformed response from {collection}", status_code=response.status_code) from exc


def _order_rows(rows: List[Dict[str, Any]], order: OrderSpec) -> List[Dict[str, Any]]:
    # Postgres defaults: NULLS LAST for ascending keys, NULLS FIRST for descending ones.
    ordered = list(rows)
    for name, ascending in reversed(list(order)):
        present = [row for row in ordered if row.get(name) is not None]
        missing = [row for row in ordered if row.get(name) is None]
        present.sort(key=lambda row: row[name], reverse=not ascending)
        ordered = present + missing if ascending else missing + present
    return ordered


def _matches(row: Mapping[str, Any], filters: Filters) -> bool:
    for name, op, value in filters:
        if op == "eq" and row.get(name) != value:
            return False
        if op == "in" and row.get(name) not in set(value):
            return False
    return True


Gate = Callable[[str], Awaitable[None]]


class MemoryStore:
    """
    In-process store with PostgREST-like semantics.

    ``gate`` (when set) is awaited after a read has been answered but before it
    is returned, which lets callers control when responses arrive.
    """

    def __init__(
        self,
        tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        *,
        unique: Optional[Dict[str, Sequence[str]]] = None,
    ) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: list(rows) for name, rows in (tables or {}).items()}
        self.unique = {name: tuple(cols) for name, cols in (unique or {}).items()}
        self.gate: Optional[Gate] = None
        self.calls: List[Tuple[str, str]] = []
        self._failures: Dict[str, List[BaseException]] = {}

    @classmethod
    def from_file(cls, path: Path) -> "MemoryStore":
        """Load ``{tables: {...}, unique: {...}}`` from a YAML or JSON fixture."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        return cls(data.get("tables") or {}, unique=data.get("unique") or {})

    def fail_next(self, collection: str, exc: BaseException) -> None:
        self._failures.setdefault(collection, []).append(exc)

    async def query(
        self,
        collection: str,
        *,
        order: OrderSpec = (),
        filters: Filters = (),
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        self._enter("query", collection)
        rows = [dict(row) for row in self.tables.get(collection, []) if _matches(row, filters)]
        rows = _order_rows(rows, order)
        if columns != "*":
            wanted = [name.strip() for name in columns.split(",")]
            rows = [{name: row.get(name) for name in wanted} for row in rows]
        await self._pass_gate(collection)
        return rows

    async def query_one(self, collection: str, *, filters: Filters) -> Dict[str, Any]:
        self._enter("query_one", collection)
        rows = [dict(row) for row in self.tables.get(collection, []) if _matches(row, filters)]
        await self._pass_gate(collection)
        if len(rows) != 1:
            raise RecordNotFound(collection, list(filters))
        return rows[0]

    async def insert(self, collection: str, row: Mapping[str, Any]) -> None:
        self._enter("insert", collection)
        await asyncio.sleep(0)
        table = self.tables.setdefault(collection, [])
        columns = self.unique.get(collection)
        if columns:
            key = tuple(row.get(col) for col in columns)
            if any(tuple(existing.get(col) for col in columns) == key for existing in table):
                raise ConflictError(f"duplicate key value violates unique constraint on {collection}", 409)
        table.append(dict(row))

    async def delete(self, collection: str, *, filters: Filters) -> None:
        self._enter("delete", collection)
        await asyncio.sleep(0)
        table = self.tables.get(collection, [])
        self.tables[collection] = [row for row in table if not _matches(row, filters)]

    def _enter(self, op: str, collection: str) -> None:
        self.calls.append((op, collection))
        pending = self._failures.get(collection)
        if pending:
            raise pending.pop(0)

    async def _pass_gate(self, collection: str) -> None:
        if self.gate is not None:
            await self.gate(collection)
        else:
            await asyncio.sleep(0)
