"""
Tests for the video host and image host clients over httpx.MockTransport.
"""

import base64

import httpx
import pytest

from vidshelf.core.exceptions import CollaboratorError, RemoteSubmissionError
from vidshelf.services.image_host import ImageHostClient
from vidshelf.services.ingestion_client import VideoHostClient
from vidshelf.services.remote_ingestion import RemoteJobStatus


def host_with(handler) -> VideoHostClient:
    return VideoHostClient(base_url="https://host.test", transport=httpx.MockTransport(handler))


class TestVideoHostClient:
    async def test_upload_target(self, video_host, video_host_api):
        target = await video_host.get_upload_target()

        assert target == {"url": video_host_api.upload_url, "valid_until": None}
        assert video_host_api.paths() == ["/upload/url"]

    async def test_upload_target_plain_payload(self):
        async with host_with(lambda request: httpx.Response(200, json={"url": "https://u.test/x"})) as host:
            target = await host.get_upload_target()

        assert target["url"] == "https://u.test/x"

    async def test_upload_target_without_url(self):
        async with host_with(lambda request: httpx.Response(200, json={"status": 200})) as host:
            with pytest.raises(CollaboratorError):
                await host.get_upload_target()

    async def test_submit_remote_sends_url(self, video_host, video_host_api):
        remote_id = await video_host.submit_remote("http://ex.com/a.mp4")

        assert remote_id == "R1"
        request = video_host_api.requests[-1]
        assert request.url.path == "/remote/add"
        assert request.url.params["url"] == "http://ex.com/a.mp4"

    async def test_submit_remote_without_id(self, video_host, video_host_api):
        video_host_api.remote_ids = [None]

        with pytest.raises(RemoteSubmissionError):
            await video_host.submit_remote("http://ex.com/a.mp4")

    async def test_status_keyed_by_remote_id(self, video_host, video_host_api):
        video_host_api.statuses["R1"] = [
            {"status": "downloading", "bytes_loaded": 1000, "bytes_total": 5000, "linkid": None},
            {"status": "finished", "bytes_loaded": 5000, "bytes_total": 5000, "linkid": "F42"},
        ]

        first = await video_host.fetch_remote_status("R1")
        second = await video_host.fetch_remote_status("R1")

        assert first.status is RemoteJobStatus.PROCESSING
        assert (first.bytes_loaded, first.bytes_total) == (1000, 5000)
        assert second.status is RemoteJobStatus.FINISHED
        assert second.file_id == "F42"
        assert video_host_api.requests[-1].url.params["id"] == "R1"

    async def test_status_error_message(self, video_host, video_host_api):
        video_host_api.statuses["R1"] = [{"status": "error", "error": "invalid source"}]

        update = await video_host.fetch_remote_status("R1")

        assert update.status is RemoteJobStatus.ERROR
        assert update.error_message == "invalid source"
        assert update.file_id is None

    async def test_unwrapped_status_payload(self):
        payload = {"R7": {"status": "new", "bytes_loaded": "0", "bytes_total": None}}
        async with host_with(lambda request: httpx.Response(200, json=payload)) as host:
            update = await host.fetch_remote_status("R7")

        assert update.status is RemoteJobStatus.QUEUED
        assert update.bytes_loaded == 0
        assert update.bytes_total is None

    async def test_single_unkeyed_status(self):
        payload = {"status": "finished", "linkid": "F1", "bytes_loaded": 10, "bytes_total": 10}
        async with host_with(lambda request: httpx.Response(200, json=payload)) as host:
            update = await host.fetch_remote_status("R7")

        assert update.status is RemoteJobStatus.FINISHED
        assert update.file_id == "F1"

    async def test_bare_envelope_is_not_a_status(self):
        payload = {"status": 404, "msg": "Not found"}
        async with host_with(lambda request: httpx.Response(200, json=payload)) as host:
            with pytest.raises(CollaboratorError):
                await host.fetch_remote_status("R1")

    async def test_status_for_another_job_is_not_used(self):
        payload = {"result": {"R2": {"status": "finished", "linkid": "SOMEONE_ELSES_FILE"}}}
        async with host_with(lambda request: httpx.Response(200, json=payload)) as host:
            with pytest.raises(CollaboratorError):
                await host.fetch_remote_status("R1")

    async def test_http_error_becomes_collaborator_error(self, video_host, video_host_api):
        video_host_api.down.add("/remote/status")

        with pytest.raises(CollaboratorError):
            await video_host.fetch_remote_status("R1")

    async def test_network_error_becomes_collaborator_error(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with host_with(unreachable) as host:
            with pytest.raises(CollaboratorError):
                await host.submit_remote("http://ex.com/a.mp4")

    async def test_non_json_becomes_collaborator_error(self):
        async with host_with(lambda request: httpx.Response(200, text="<html>")) as host:
            with pytest.raises(CollaboratorError):
                await host.fetch_remote_status("R1")

    async def test_empty_status_payload(self):
        async with host_with(lambda request: httpx.Response(200, json={})) as host:
            with pytest.raises(CollaboratorError):
                await host.fetch_remote_status("R1")


class TestImageHostClient:
    async def test_upload_posts_base64_image(self, image_host, image_host_api):
        url = await image_host.upload(b"\x89PNG fake", filename="thumb.png")

        assert url == "https://i.images.test/1.png"
        [upload] = image_host_api.uploads
        assert upload["key"] == "test-image-key"
        assert base64.b64decode(upload["image"]) == b"\x89PNG fake"
        assert upload["name"] == "thumb.png"

    async def test_failed_upload(self, image_host, image_host_api):
        image_host_api.fail = True

        with pytest.raises(CollaboratorError):
            await image_host.upload(b"img")

    async def test_unsuccessful_payload(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"success": False}))
        async with ImageHostClient(api_url="https://images.test", api_key="k", transport=transport) as client:
            with pytest.raises(CollaboratorError):
                await client.upload(b"img")

    async def test_missing_api_key(self):
        async with ImageHostClient(api_url="https://images.test", api_key="") as client:
            with pytest.raises(CollaboratorError):
                await client.upload(b"img")
