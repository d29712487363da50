from __future__ import annotations

from pathlib import Path

import pytest

from rtp_capture_service.app import create_app
from rtp_capture_service.app.bootstrap import ensure_single_process_pool
from rtp_capture_service.engine import CaptureSessionManager, StopStrategy


@pytest.fixture()
def capture_app(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, settings, router):
    monkeypatch.setenv("CAPTURE_SERVICE_LOG_DIR", str(tmp_path / "logs"))
    for name in ("GUNICORN_WORKERS", "WEB_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)
    app = create_app(
        {
            "TESTING": True,
            "CAPTURE_TASKS_EAGER": True,
            "CELERY_BROKER_URL": "memory://",
            "CELERY_RESULT_BACKEND": "cache+memory://",
            "CAPTURE_STATUS_REDIS_URL": "",
            "CAPTURE_OUTPUT_DIR": str(settings.output_dir),
            "CAPTURE_SCRATCH_DIR": str(settings.scratch_dir),
            "CAPTURE_FFMPEG_BINARY": str(settings.ffmpeg_binary),
            "CAPTURE_MEDIA_ROUTER_URL": "http://media-router.test/api",
        }
    )
    manager = CaptureSessionManager(
        settings,
        lambda room: router,
        stop_strategy=StopStrategy(graceful_timeout=5, terminate_timeout=2, kill_timeout=2),
    )
    app.extensions["capture_manager"] = manager
    yield app
    manager.stop_all()


def test_health_and_status(capture_app) -> None:
    client = capture_app.test_client()

    health = client.get("/health")
    assert health.status_code == 200
    assert health.get_json()["service"] == "rtp_capture"

    status = client.get("/status")
    assert status.status_code == 200
    assert status.get_json()["running"] is False
    assert status.get_json()["sessions"] == []


def test_record_duplicate_and_stop(capture_app, router, wait_for) -> None:
    client = capture_app.test_client()
    body = {"producerId": "P1", "roomName": "R1", "peerId": "Pe1"}

    started = client.post("/recordings", json=body)
    assert started.status_code == 201
    payload = started.get_json()
    assert payload["key"] == "P1"
    assert payload["file_name"].startswith("R1_Pe1_audio_")
    assert payload["file_name"].endswith(".opus")
    assert payload["capture_status"]["count"] == 1

    duplicate = client.post("/recordings", json=body)
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error_type"] == "DuplicateSessionError"

    session = capture_app.extensions["capture_manager"].get("P1")
    assert wait_for(lambda: "ready" in session.diagnostics)

    stopped = client.post("/recordings/stop", json={"producer_id": "P1"})
    assert stopped.status_code == 200
    assert stopped.get_json()["output_path"].endswith(payload["file_name"])
    assert router.transports[0].closed

    missing = client.post("/recordings/stop", json={"producer_id": "P1"})
    assert missing.status_code == 404
    assert missing.get_json()["key"] == "P1"


def test_invalid_request_is_rejected(capture_app) -> None:
    response = capture_app.test_client().post("/recordings", json={"producer_id": "P1"})

    assert response.status_code == 400
    assert "room and peer" in response.get_json()["error"]


def test_provisioning_failure_maps_to_bad_gateway(capture_app, router) -> None:
    router.failing_producers.add("V1")

    response = capture_app.test_client().post(
        "/streams",
        json={"audio_producer_id": "A1", "video_producer_id": "V1", "room": "R1", "peer": "Pe1"},
    )

    assert response.status_code == 502
    assert all(transport.closed for transport in router.transports)


def test_combined_and_stream_routes(capture_app, wait_for) -> None:
    client = capture_app.test_client()
    body = {"audio_producer_id": "A1", "video_producer_id": "V1", "room": "R1", "peer": "Pe1"}

    combined = client.post("/recordings/combined", json=body)
    assert combined.status_code == 201
    assert combined.get_json()["key"] == "A1_V1"

    stream = client.post("/streams", json=body)
    assert stream.status_code == 201
    stream_payload = stream.get_json()
    assert stream_payload["key"] == "stream_A1_V1"
    assert stream_payload["stream_url"] == f"rtmp://localhost/live/{stream_payload['stream_key']}"

    manager = capture_app.extensions["capture_manager"]
    for key in ("A1_V1", "stream_A1_V1"):
        session = manager.get(key)
        assert wait_for(lambda: "ready" in session.diagnostics)

    assert client.post("/streams/stop", json=body).status_code == 200
    stopped = client.post("/recordings/combined/stop", json=body)
    assert stopped.status_code == 200
    assert stopped.get_json()["output_path"].endswith(".mkv")


def test_unknown_task_is_pending(capture_app) -> None:
    response = capture_app.test_client().get("/tasks/does-not-exist")

    assert response.status_code == 202
    assert response.get_json()["state"] == "PENDING"


class SnapshotReader:
    def __init__(self, snapshot) -> None:
        self.snapshot = snapshot

    def read(self):
        return None if self.snapshot is None else dict(self.snapshot)

    def close(self) -> None:
        pass


def test_status_prefers_worker_snapshot(capture_app) -> None:
    capture_app.config["CAPTURE_TASKS_EAGER"] = False
    capture_app.extensions["capture_status_broadcaster"] = SnapshotReader(
        {"running": True, "count": 1, "sessions": [{"key": "P1"}]}
    )

    payload = capture_app.test_client().get("/status").get_json()

    assert payload["source"] == "shared"
    assert payload["sessions"] == [{"key": "P1"}]


def test_status_falls_back_to_local_manager(capture_app) -> None:
    capture_app.config["CAPTURE_TASKS_EAGER"] = False
    capture_app.extensions["capture_status_broadcaster"] = SnapshotReader(None)

    payload = capture_app.test_client().get("/status").get_json()

    assert payload["source"] == "local"
    assert payload["count"] == 0


def test_worker_runs_in_a_single_process(capture_app) -> None:
    celery_app = capture_app.extensions["celery"]

    assert celery_app.conf.worker_pool == "threads"
    assert celery_app.conf.worker_concurrency == 4


def test_forking_pool_is_refused(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CAPTURE_SERVICE_LOG_DIR", str(tmp_path / "logs"))
    for name in ("GUNICORN_WORKERS", "WEB_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(RuntimeError, match="split capture sessions"):
        create_app(
            {
                "CAPTURE_TASKS_EAGER": True,
                "CAPTURE_STATUS_REDIS_URL": "",
                "CELERY_WORKER_POOL": "prefork",
            }
        )


def test_worker_pool_classes_are_checked() -> None:
    from celery.concurrency.prefork import TaskPool as PreforkPool
    from celery.concurrency.solo import TaskPool as SoloPool
    from celery.concurrency.thread import TaskPool as ThreadPool

    ensure_single_process_pool(ThreadPool)
    ensure_single_process_pool(SoloPool)
    ensure_single_process_pool("threads")
    with pytest.raises(RuntimeError):
        ensure_single_process_pool(PreforkPool)


def test_abnormal_stop_returns_diagnostics(capture_app, monkeypatch: pytest.MonkeyPatch, wait_for) -> None:
    monkeypatch.setenv("FAKE_FFMPEG_EXIT", "3")
    client = capture_app.test_client()
    assert client.post("/recordings", json={"producer_id": "P1", "room": "R1", "peer": "Pe1"}).status_code == 201
    session = capture_app.extensions["capture_manager"].get("P1")
    assert wait_for(lambda: "ready" in session.diagnostics)

    stopped = client.post("/recordings/stop", json={"producer_id": "P1"}).get_json()

    assert stopped["exit_code"] == 3
    assert "received signal 2" in stopped["session"]["diagnostics"]
    assert stopped["output_path"].endswith(".opus")
