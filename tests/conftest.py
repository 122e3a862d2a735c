"""Shared fixtures: in-memory database, ledger registry, object store double and HTTP client."""

from typing import Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from truthprevails.auth.identity import TokenService
from truthprevails.context import AppContext
from truthprevails.main import create_app
from truthprevails.registry.ledger import LedgerRegistry
from truthprevails.shared.config import Settings
from truthprevails.shared.database.connection import Database
from truthprevails.storage.object_store import StorageError, StoredObject, new_upload_id, object_key

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
ENCRYPTION_SECRET = "test-encryption-secret"


class InMemoryObjectStore:
    """Object store double keeping bytes in a dict."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_deletes = False

    async def put(self, owner_id, content_hash, file_name, data, content_type="application/octet-stream"):
        key = object_key("test", owner_id, content_hash, new_upload_id(), file_name)
        self.objects[key] = data
        return StoredObject(key=key, url=f"memory://{key}")

    async def delete(self, key):
        if self.fail_deletes:
            raise StorageError("delete refused")
        self.objects.pop(key, None)

    async def presigned_url(self, key, expires_in=3600):
        return f"https://storage.test/{key}?expires={expires_in}"


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        database_url="sqlite:///:memory:",
        jwt_secret=JWT_SECRET,
        encryption_secret=ENCRYPTION_SECRET,
        registry_backend="ledger",
        explorer_tx_url="https://explorer.test/tx/{tx_hash}",
        s3_bucket=None,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
async def database():
    db = Database.from_url("sqlite+aiosqlite:///:memory:")
    await db.create_tables()
    yield db
    await db.drop_tables()
    await db.dispose()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def context(settings, database, object_store) -> AppContext:
    return AppContext(
        settings=settings,
        database=database,
        registry=LedgerRegistry(database),
        object_store=object_store,
        tokens=TokenService(JWT_SECRET, issuer=settings.jwt_issuer),
        encryption_secret=ENCRYPTION_SECRET,
    )


@pytest.fixture
async def client(context):
    app = create_app(context=context)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def signup(
    client: AsyncClient,
    email: str = "alice@example.com",
    name: str = "Alice",
    password: str = "secret123",
) -> Dict[str, str]:
    """Create an account, log in and return the bearer auth headers."""
    response = await client.post(
        "/api/auth/signup",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def upload(
    client: AsyncClient,
    headers: Dict[str, str],
    data: bytes,
    name: str = "report.pdf",
    content_type: str = "application/pdf",
    expected: Optional[int] = 201,
):
    response = await client.post(
        "/api/files/upload",
        files={"file": (name, data, content_type)},
        headers=headers,
    )
    if expected is not None:
        assert response.status_code == expected, response.text
    return response
