"""Tests for health and status endpoints."""

from truthprevails import __version__
from truthprevails.shared.errors import Unavailable


class TestStatus:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "truth-prevails-api"
        assert body["version"] == __version__
        assert body["timestamp"]

    async def test_root(self, client):
        body = (await client.get("/")).json()

        assert body["version"] == __version__
        assert body["registryBackend"] == "ledger"

    async def test_features_all_available(self, client):
        features = (await client.get("/api/status")).json()["features"]

        assert features["registry"] == {"available": True, "backend": "ledger", "reason": None}
        assert features["authentication"]["available"] is True
        assert features["objectStorage"]["available"] is True
        assert features["walletEncryption"]["available"] is True

    async def test_unavailable_features_report_reason(self, client, context):
        context.registry = Unavailable("Hash registry", "Missing configuration: RPC_URL, CONTRACT_ADDRESS")
        context.object_store = Unavailable("Object storage", "Missing configuration: S3_BUCKET")

        features = (await client.get("/api/status")).json()["features"]

        assert features["registry"]["available"] is False
        assert features["registry"]["reason"] == "Missing configuration: RPC_URL, CONTRACT_ADDRESS"
        assert features["objectStorage"] == {
            "available": False,
            "backend": None,
            "reason": "Missing configuration: S3_BUCKET",
        }

    async def test_unknown_route(self, client):
        assert (await client.get("/api/nothing-here")).status_code == 404
