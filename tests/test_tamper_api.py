"""Tests for the tamper detection endpoints."""

from test_tamper import CAMERA, ORIGINAL, make_jpeg


class TestAnalyze:
    async def test_analyze_image(self, client):
        response = await client.post(
            "/api/tamper-detection/analyze",
            files={"file": ("photo.jpg", make_jpeg(zeroth=CAMERA, exif=ORIGINAL), "image/jpeg")},
        )

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["status"] == "clean"
        assert analysis["confidence"] == 0.9
        assert analysis["metadata"]["make"] == "Canon"
        assert analysis["fileInfo"]["name"] == "photo.jpg"
        assert analysis["fileInfo"]["type"] == "image/jpeg"

    async def test_analyze_without_authentication(self, client, object_store):
        response = await client.post(
            "/api/tamper-detection/analyze",
            files={"file": ("doc.pdf", b"%PDF-1.4\n", "application/pdf")},
        )

        assert response.status_code == 200
        assert object_store.objects == {}

    async def test_rejects_disallowed_type(self, client):
        response = await client.post(
            "/api/tamper-detection/analyze",
            files={"file": ("page.html", b"<html></html>", "text/html")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file type"

    async def test_rejects_empty_file(self, client):
        response = await client.post(
            "/api/tamper-detection/analyze",
            files={"file": ("empty.pdf", b"", "application/pdf")},
        )
        assert response.status_code == 400


class TestAnalyzeBatch:
    async def test_batch(self, client):
        response = await client.post(
            "/api/tamper-detection/analyze-batch",
            files=[
                ("files", ("a.jpg", make_jpeg(), "image/jpeg")),
                ("files", ("b.pdf", b"%PDF-1.4\n", "application/pdf")),
                ("files", ("c.jpg", b"corrupt", "image/jpeg")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert [a["status"] for a in body["analyses"]] == ["suspicious", "clean", "failed"]
        assert body["summary"]["totalFiles"] == 3
        assert body["summary"]["suspiciousFiles"] == 1
        assert body["summary"]["cleanFiles"] == 1
        assert body["summary"]["failedAnalyses"] == 1
        assert body["summary"]["overallConfidence"] == 0.5

    async def test_batch_limit(self, client, context):
        context.settings.max_batch_files = 2

        response = await client.post(
            "/api/tamper-detection/analyze-batch",
            files=[("files", (f"{i}.pdf", b"%PDF-1.4\n", "application/pdf")) for i in range(3)],
        )
        assert response.status_code == 400

    async def test_bad_file_fails_only_its_entry(self, client):
        response = await client.post(
            "/api/tamper-detection/analyze-batch",
            files=[
                ("files", ("a.pdf", b"%PDF-1.4\n", "application/pdf")),
                ("files", ("empty.pdf", b"", "application/pdf")),
                ("files", ("page.html", b"<html></html>", "text/html")),
                ("files", ("b.jpg", make_jpeg(), "image/jpeg")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        analyses = body["analyses"]
        assert [a["status"] for a in analyses] == ["clean", "failed", "failed", "suspicious"]
        assert analyses[1]["error"] == "No file provided"
        assert analyses[1]["fileInfo"]["name"] == "empty.pdf"
        assert analyses[1]["fileInfo"]["size"] == 0
        assert analyses[2]["error"] == "Invalid file type"
        assert analyses[2]["fileInfo"]["type"] == "text/html"
        assert analyses[0]["error"] is None
        assert body["summary"]["totalFiles"] == 4
        assert body["summary"]["failedAnalyses"] == 2
        assert body["summary"]["cleanFiles"] == 1
        assert body["summary"]["suspiciousFiles"] == 1
        assert body["summary"]["overallConfidence"] == 0.375
