"""
Tests for the server-side remote ingestion task.

``ingest_remote`` is exercised directly against the fake video host and the
test database; the Celery task wrapper is checked with its collaborators
patched out.
"""

import pytest
from sqlalchemy import select

from vidshelf.core.exceptions import CollaboratorError
from vidshelf.models import Video
from vidshelf.services.remote_ingestion import RemoteJobStatus, RemoteUploadJob
from vidshelf.tasks import ingestion_tasks
from vidshelf.tasks.ingestion_tasks import ingest_remote, ingest_remote_video
from tests.factories import create_video


async def run_ingest(video_host, session_factory, uploader_id, **overrides):
    params = {
        "uploader_id": uploader_id,
        "source_url": "http://ex.com/a.mp4",
        "title": "From the web",
        "description": "Fetched by the video host",
        "poll_interval": 0,
        "job_timeout": 5,
    }
    params.update(overrides)
    return await ingest_remote(video_host, session_factory, **params)


class TestIngestRemote:
    async def test_finished_job_is_published(self, video_host, video_host_api, session_factory, db_session, alice):
        video_host_api.statuses["R1"] = [
            {"status": "new"},
            {"status": "downloading", "bytes_loaded": 1000, "bytes_total": 5000},
            {"status": "finished", "linkid": "F42"},
        ]
        seen = []

        result = await run_ingest(
            video_host,
            session_factory,
            alice.id,
            on_progress=lambda job: seen.append(job.status),
        )

        assert result["success"] is True
        assert result["remote_id"] == "R1"
        assert result["file_id"] == "F42"
        video = await db_session.scalar(select(Video).where(Video.file_id == "F42"))
        assert video.id == result["video_id"]
        assert video.uploader_id == alice.id
        assert video.title == "From the web"
        assert seen == [RemoteJobStatus.QUEUED, RemoteJobStatus.PROCESSING, RemoteJobStatus.FINISHED]

    async def test_remote_error_publishes_nothing(self, video_host, video_host_api, session_factory, db_session, alice):
        video_host_api.statuses["R1"] = [{"status": "downloading"}, {"status": "error", "error": "invalid source"}]

        result = await run_ingest(video_host, session_factory, alice.id)

        assert result == {
            "success": False,
            "stage": "poll",
            "remote_id": "R1",
            "error": "invalid source",
        }
        assert await db_session.scalar(select(Video.id)) is None

    async def test_rejected_url_never_reaches_host(self, video_host, video_host_api, session_factory, alice):
        result = await run_ingest(video_host, session_factory, alice.id, source_url="file:///etc/passwd")

        assert result["success"] is False
        assert result["stage"] == "submit"
        assert video_host_api.requests == []

    async def test_submission_failure(self, video_host, video_host_api, session_factory, alice):
        video_host_api.down.add("/remote/add")

        result = await run_ingest(video_host, session_factory, alice.id)

        assert result["stage"] == "submit"
        assert result["remote_id"] is None
        assert video_host_api.paths() == ["/remote/add"]

    async def test_transient_status_failures_are_retried(self, video_host, video_host_api, session_factory, alice):
        video_host_api.statuses["R1"] = [{"status": "finished", "linkid": "F42"}]
        fetch = video_host.fetch_remote_status
        failures = [CollaboratorError("second timeout"), CollaboratorError("first timeout")]
        reported = []

        async def flaky_fetch(remote_id):
            if failures:
                raise failures.pop()
            return await fetch(remote_id)

        video_host.fetch_remote_status = flaky_fetch

        result = await run_ingest(
            video_host,
            session_factory,
            alice.id,
            on_tick_error=lambda job, error: reported.append((job.last_tick_error, error.message)),
        )

        assert result["success"] is True
        assert result["file_id"] == "F42"
        assert failures == []
        assert reported == [
            ("first timeout", "first timeout"),
            ("second timeout", "second timeout"),
        ]

    async def test_unreachable_host_is_abandoned(self, video_host, video_host_api, session_factory, db_session, alice):
        video_host_api.down.add("/remote/status")
        reported = []

        result = await run_ingest(
            video_host,
            session_factory,
            alice.id,
            max_tick_failures=3,
            on_tick_error=lambda job, error: reported.append(error),
        )

        assert result["success"] is False
        assert result["stage"] == "poll"
        assert result["remote_id"] == "R1"
        assert "3 times in a row" in result["error"]
        assert len(reported) == 3
        assert video_host_api.paths().count("/remote/status") == 3
        assert await db_session.scalar(select(Video.id)) is None

    async def test_successful_check_resets_failure_count(self, video_host, video_host_api, session_factory, alice):
        video_host_api.statuses["R1"] = [{"status": "downloading"}, {"status": "finished", "linkid": "F42"}]
        fetch = video_host.fetch_remote_status
        outcomes = ["fail", "ok", "fail", "ok"]

        async def alternating_fetch(remote_id):
            if outcomes.pop(0) == "fail":
                raise CollaboratorError("timeout")
            return await fetch(remote_id)

        video_host.fetch_remote_status = alternating_fetch

        result = await run_ingest(video_host, session_factory, alice.id, max_tick_failures=2)

        assert result["success"] is True
        assert outcomes == []

    async def test_job_that_never_settles_times_out(self, video_host, video_host_api, session_factory, alice):
        video_host_api.statuses["R1"] = [{"status": "downloading"}]

        result = await run_ingest(video_host, session_factory, alice.id, poll_interval=0.01, job_timeout=0.1)

        assert result["success"] is False
        assert result["stage"] == "poll"
        assert result["remote_id"] == "R1"

    async def test_already_published_file(self, video_host, video_host_api, session_factory, db_session, alice):
        await create_video(db_session, alice.id, "Existing", file_id="F42")
        video_host_api.statuses["R1"] = [{"status": "finished", "linkid": "F42"}]

        result = await run_ingest(video_host, session_factory, alice.id)

        assert result["success"] is False
        assert result["stage"] == "publish"
        assert result["remote_id"] == "R1"


class TestIngestTask:
    def test_task_runs_ingest_and_disposes_engine(self, monkeypatch):
        captured = {}
        disposed = []

        async def fake_ingest(host, session_factory, **kwargs):
            captured.update(kwargs)
            return {"success": True, "remote_id": "R1", "file_id": "F42", "video_id": 1}

        class FakeEngine:
            async def dispose(self):
                disposed.append(True)

        monkeypatch.setattr(ingestion_tasks, "ingest_remote", fake_ingest)
        monkeypatch.setattr(ingestion_tasks, "engine", FakeEngine())

        result = ingest_remote_video.run(7, "http://ex.com/a.mp4", "Clip", "From the web")

        assert result["video_id"] == 1
        assert captured["uploader_id"] == 7
        assert captured["source_url"] == "http://ex.com/a.mp4"
        assert callable(captured["on_tick_error"])
        assert disposed == [True]

    def test_progress_meta_carries_last_tick_error(self):
        job = RemoteUploadJob(remote_id="R1", source_url="http://ex.com/a.mp4")
        job.last_tick_error = "Video host timed out"

        meta = ingestion_tasks._progress_meta(job)

        assert meta == {
            "remote_id": "R1",
            "status": "queued",
            "bytes_loaded": None,
            "bytes_total": None,
            "last_tick_error": "Video host timed out",
        }

    def test_task_registration(self):
        assert ingest_remote_video.name == "ingestion.ingest_remote_video"

    @pytest.mark.parametrize("stage", ["submit", "poll", "publish"])
    def test_failure_result_shape(self, stage):
        result = ingestion_tasks._failure(stage, "boom", "R1")

        assert result == {"success": False, "stage": stage, "remote_id": "R1", "error": "boom"}
