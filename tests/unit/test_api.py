"""
API tests.

Routes are exercised through FastAPI's TestClient with providers swapped
out via dependency_overrides, so no request reaches YouTube and FFmpeg
is replaced by the RecordingEngine.
"""

import asyncio
import random

import httpx
import pytest
from fastapi.testclient import TestClient

from shortclip.api.dependencies import (
    get_acquisition_service,
    get_clip_service,
    get_search_adapter,
    get_search_provider,
)
from shortclip.config.settings import Settings, get_settings
from shortclip.core.clipping.acquisition import AcquisitionService
from shortclip.core.clipping.pipeline import TranscodePipeline
from shortclip.core.clipping.search import SearchAdapter
from shortclip.core.clipping.service import ClipService
from shortclip.infrastructure.youtube.search import MockSearchProvider, YouTubeConfig, YouTubeSearchClient
from shortclip.infrastructure.youtube.source import MockVideoSource
from shortclip.main import create_app

VIDEOS = {"abc": bytes(range(256)) * 400, "def": b"second video"}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, youtube_api_key="", youtube_mock_mode=False)


@pytest.fixture
def source() -> MockVideoSource:
    return MockVideoSource(videos=VIDEOS, chunk_size=1024)


@pytest.fixture
def app(settings, source, engine):
    app = create_app()
    clip_service = ClipService(AcquisitionService(source), TranscodePipeline(engine))

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_acquisition_service] = lambda: AcquisitionService(source)
    app.dependency_overrides[get_clip_service] = lambda: clip_service
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TestCollectVideos:

    def test_missing_key_is_server_error_with_message(self, client):
        """No credential must never look like an empty result set."""
        response = client.get("/api/collect-videos", params={"q": "trending"})

        assert response.status_code == 500
        assert response.json()["message"]

    def test_returns_ten_sampled_items(self, app, client):
        provider = MockSearchProvider(total=50)
        app.dependency_overrides[get_search_adapter] = lambda: SearchAdapter(
            provider, rng=random.Random(1)
        )

        response = client.get("/api/collect-videos", params={"q": "trending"})

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 10
        ids = {item["id"]["videoId"] for item in items}
        assert ids <= {f"mock{i:07d}" for i in range(50)}
        assert set(items[0]["snippet"]["thumbnails"]["medium"]) == {"url", "width", "height"}
        assert provider.queries == ["trending"]

    def test_default_query_when_q_missing(self, app, client):
        provider = MockSearchProvider(total=5)
        app.dependency_overrides[get_search_provider] = lambda: provider

        response = client.get("/api/collect-videos")

        assert response.status_code == 200
        assert provider.queries == ["trending"]

    def test_upstream_error_has_message_and_error(self, app, client):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "API key not valid."}})

        app.dependency_overrides[get_search_provider] = lambda: YouTubeSearchClient(
            YouTubeConfig(api_key="bad"),
            transport=httpx.MockTransport(handler),
        )

        response = client.get("/api/collect-videos", params={"q": "x"})

        assert response.status_code == 500
        assert response.json() == {
            "message": "Error fetching videos from YouTube API.",
            "error": "API key not valid.",
        }

    def test_unexpected_payload_shape_has_message_and_error(self, app, client):
        app.dependency_overrides[get_search_provider] = lambda: YouTubeSearchClient(
            YouTubeConfig(api_key="key"),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=["x"])),
        )

        response = client.get("/api/collect-videos", params={"q": "x"})

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Error fetching videos from YouTube API."
        assert body["error"]


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------

class TestProcessVideo:

    def test_streams_source_as_attachment(self, client):
        response = client.post("/api/process-video", json={"videoId": "abc"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-disposition"].startswith("attachment")
        assert response.content == VIDEOS["abc"]

    def test_missing_video_id_is_client_error(self, client, source):
        response = client.post("/api/process-video", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Video ID is required"}
        assert source.opened == []

    def test_empty_video_id_is_client_error(self, client, source):
        response = client.post("/api/process-video", json={"videoId": ""})

        assert response.status_code == 400
        assert source.opened == []

    def test_unknown_video_is_not_found(self, client):
        response = client.post("/api/process-video", json={"videoId": "zzz"})

        assert response.status_code == 404
        assert response.json()["error"]

    @pytest.mark.parametrize("video_id", [123, ["abc"], {"id": "abc"}])
    def test_non_string_video_id_is_client_error(self, client, source, video_id):
        response = client.post("/api/process-video", json={"videoId": video_id})

        assert response.status_code == 400
        assert response.json() == {"error": "Video ID is required"}
        assert source.opened == []

    def test_invalid_json_is_client_error(self, client):
        response = client.post(
            "/api/process-video",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Video ID is required"}


# ---------------------------------------------------------------------------
# Clips
# ---------------------------------------------------------------------------

class TestClips:

    def test_create_clip_returns_artifact_links(self, client):
        response = client.post("/api/v1/clips", json={"videoId": "abc"})

        assert response.status_code == 201
        body = response.json()
        assert body["stage"] == "ready"
        assert body["source_id"] == "abc"
        assert body["error"] is None
        assert set(body["artifacts"]) == {"original", "trimmed", "processed"}
        assert all(body["artifacts"].values())

        original = client.get(body["artifacts"]["original"])
        assert original.status_code == 200
        assert original.content == VIDEOS["abc"]

        processed = client.get(body["artifacts"]["processed"])
        assert processed.status_code == 200
        assert processed.headers["content-type"] == "video/mp4"
        assert processed.content.startswith(b"encode:")

    def test_failed_encode_keeps_partial_artifacts(self, app, client, source, failing_engine):
        service = ClipService(AcquisitionService(source), TranscodePipeline(failing_engine("encode")))
        app.dependency_overrides[get_clip_service] = lambda: service

        response = client.post("/api/v1/clips", json={"videoId": "abc"})

        assert response.status_code == 201
        body = response.json()
        assert body["stage"] == "failed"
        assert body["failed_stage"] == "encode"
        assert body["stage_label"] == "failed (encode)"
        assert "encode exploded" in body["error"]
        assert body["artifacts"]["original"]
        assert body["artifacts"]["trimmed"]
        assert body["artifacts"]["processed"] is None

        job_id = body["job_id"]
        assert client.get(f"/api/v1/clips/{job_id}/processed").status_code == 404
        assert client.get(f"/api/v1/clips/{job_id}/trimmed").status_code == 200

    def test_missing_video_id(self, client):
        response = client.post("/api/v1/clips", json={"videoId": "  "})

        assert response.status_code == 400

    def test_unknown_video(self, client):
        response = client.post("/api/v1/clips", json={"videoId": "zzz"})

        assert response.status_code == 404

    def test_new_clip_releases_previous(self, client):
        headers = {"X-Client-Id": "alice"}
        first = client.post("/api/v1/clips", json={"videoId": "abc"}, headers=headers).json()
        second = client.post("/api/v1/clips", json={"videoId": "def"}, headers=headers).json()

        assert client.get(f"/api/v1/clips/{first['job_id']}").status_code == 404
        assert client.get(f"/api/v1/clips/{second['job_id']}").status_code == 200

    def test_get_and_delete(self, client):
        job_id = client.post("/api/v1/clips", json={"videoId": "abc"}).json()["job_id"]

        assert client.get(f"/api/v1/clips/{job_id}").json()["stage"] == "ready"
        assert client.delete(f"/api/v1/clips/{job_id}").status_code == 204
        assert client.get(f"/api/v1/clips/{job_id}").status_code == 404
        assert client.delete(f"/api/v1/clips/{job_id}").status_code == 404

    def test_unknown_artifact_name(self, client):
        job_id = client.post("/api/v1/clips", json={"videoId": "abc"}).json()["job_id"]

        assert client.get(f"/api/v1/clips/{job_id}/thumbnail").status_code == 404

    def test_non_string_video_id_is_client_error(self, client):
        response = client.post("/api/v1/clips", json={"videoId": 123})

        assert response.status_code == 400
        assert response.json() == {"error": "Video ID is required"}

    def test_malformed_job_id_keeps_validation_error(self, client):
        response = client.get("/api/v1/clips/not-a-uuid")

        assert response.status_code == 422
        assert "detail" in response.json()

    def test_current_without_job(self, client):
        response = client.get("/api/v1/clips/current", headers={"X-Client-Id": "nobody"})

        assert response.status_code == 404

    def test_current_returns_latest_job_of_client(self, client):
        headers = {"X-Client-Id": "alice"}
        created = client.post("/api/v1/clips", json={"videoId": "abc"}, headers=headers).json()
        client.post("/api/v1/clips", json={"videoId": "def"}, headers={"X-Client-Id": "bob"})

        current = client.get("/api/v1/clips/current", headers=headers)

        assert current.status_code == 200
        assert current.json()["job_id"] == created["job_id"]
        assert current.json()["stage"] == "ready"

    @pytest.mark.asyncio
    async def test_stage_can_be_polled_while_clip_runs(self, app, source, gated_engine):
        service = ClipService(AcquisitionService(source), TranscodePipeline(gated_engine))
        app.dependency_overrides[get_clip_service] = lambda: service
        headers = {"X-Client-Id": "alice"}

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            post = asyncio.create_task(
                http.post("/api/v1/clips", json={"videoId": "abc"}, headers=headers)
            )
            await asyncio.wait_for(gated_engine.entered.wait(), timeout=5)

            polled = await http.get("/api/v1/clips/current", headers=headers)
            busy = await http.post("/api/v1/clips", json={"videoId": "def"}, headers=headers)

            gated_engine.gate.set()
            created = await post

        assert polled.status_code == 200
        assert polled.json()["stage"] == "trimmed"
        assert polled.json()["artifacts"]["trimmed"]
        assert polled.json()["artifacts"]["processed"] is None
        assert busy.status_code == 409

        assert created.status_code == 201
        assert created.json()["job_id"] == polled.json()["job_id"]
        assert created.json()["stage"] == "ready"

    def test_retained_jobs_are_bounded(self, app, client, source, engine):
        service = ClipService(AcquisitionService(source), TranscodePipeline(engine), max_jobs=2)
        app.dependency_overrides[get_clip_service] = lambda: service

        ids = [
            client.post("/api/v1/clips", json={"videoId": "abc"}, headers={"X-Client-Id": f"c{i}"}).json()["job_id"]
            for i in range(5)
        ]

        assert service.job_count == 2
        assert client.get(f"/api/v1/clips/{ids[0]}").status_code == 404
        assert client.get(f"/api/v1/clips/{ids[-1]}").status_code == 200


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness_reports_missing_key(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 503
        checks = {c["name"]: c for c in response.json()["checks"]}
        assert checks["configuration"]["status"] == "error"
        assert "YOUTUBE_API_KEY" in checks["configuration"]["error"]
