import os
import itertools
import json
from collections import defaultdict

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing app.settings/app.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("RECORD_STORE_URL", "https://records.test")
os.environ.setdefault("RECORD_STORE_API_KEY", "test-anon-key")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

from app.main import app as fastapi_app  # noqa: E402
from app.api.deps import get_record_store  # noqa: E402
from app.core.config import RecordStoreConfig  # noqa: E402
from app.services.record_store import RecordStoreClient  # noqa: E402

REST_PREFIX = "/rest/v1/"


def _encode(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class FakeRecordStore:
    """Just enough of a PostgREST endpoint: eq filters, select, limit, inserts."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = defaultdict(list)
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()
        self.unique: dict[str, tuple[str, ...]] = {}
        self._ids = itertools.count(1000)

    def seed(self, collection: str, *rows: dict) -> None:
        self.tables[collection].extend(dict(r) for r in rows)

    def rows(self, collection: str) -> list[dict]:
        return self.tables[collection]

    def requests_for(self, collection: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"{REST_PREFIX}{collection}"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.url.path.startswith(REST_PREFIX), request.url.path
        collection = request.url.path[len(REST_PREFIX):]

        if collection in self.failing:
            return httpx.Response(503, json={"message": "service unavailable"})

        if request.method == "GET":
            return self._select(collection, request.url.params)
        if request.method == "POST":
            return self._insert(collection, json.loads(request.content))
        return httpx.Response(405)

    def _select(self, collection: str, params: httpx.QueryParams) -> httpx.Response:
        filters = {}
        for key, value in params.multi_items():
            if key in {"select", "limit"}:
                continue
            assert value.startswith("eq."), value
            filters[key] = value[len("eq."):]

        matched = [
            row
            for row in self.tables[collection]
            if all(_encode(row.get(k)) == v for k, v in filters.items())
        ]
        if params.get("limit"):
            matched = matched[: int(params["limit"])]

        select = params.get("select", "*")
        if select != "*":
            columns = [c.strip() for c in select.split(",")]
            matched = [{c: row.get(c) for c in columns} for row in matched]
        return httpx.Response(200, json=matched)

    def _insert(self, collection: str, body: dict) -> httpx.Response:
        keys = self.unique.get(collection)
        if keys:
            for row in self.tables[collection]:
                if all(row.get(k) == body.get(k) for k in keys):
                    return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})
        row = {"id": str(next(self._ids)), **body}
        self.tables[collection].append(row)
        return httpx.Response(201, json=[row])


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def store_config():
    return RecordStoreConfig(base_url="https://records.test", api_key="test-anon-key", timeout_seconds=2)


@pytest.fixture
def store_client(record_store, store_config):
    return RecordStoreClient(store_config, transport=httpx.MockTransport(record_store.handler))


@pytest.fixture
def seed_invite(record_store):
    def _seed(
        code: str = "DR5XWFLB",
        *,
        owner_id: str | None = "u1",
        list_id: str | None = "l1",
        is_active: bool = True,
        display_name: str | None = "Alex",
        avatar_url: str | None = None,
        list_title: str | None = "Birthday",
    ):
        record_store.seed(
            "invite_links",
            {"id": 1, "code": code, "owner_id": owner_id, "list_id": list_id, "is_active": is_active},
        )
        if owner_id and display_name is not None:
            record_store.seed(
                "users",
                {
                    "uid": owner_id,
                    "display_name": display_name,
                    "avatar_url": avatar_url,
                    "email": "alex@example.com",
                },
            )
        if list_id and list_title is not None:
            record_store.seed("lists", {"id": list_id, "uid": f"{list_id}-uid", "title": list_title})

    return _seed


@pytest.fixture
async def client(store_client):
    fastapi_app.dependency_overrides[get_record_store] = lambda: store_client

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.pop(get_record_store, None)
