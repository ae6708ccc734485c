"""Tests for server.py Flask endpoints: pipeline runs are mocked."""

import threading
import time
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from config.services import INVENTORY, PAYMENTS
from config.settings import Settings
from core.errors import ArtifactWriteError, ConfigurationError, GenerationCancelled, GenerationError, StageError
from core.state import Artifact, PipelineRunResult, StageResult


class _InlineThread:
    """Stands in for threading.Thread: runs the target on start()."""

    def __init__(self, target, args=(), name=None, daemon=None):
        self.target = target
        self.args = args

    def start(self):
        self.target(*self.args)


def _run_result():
    now = datetime.now()
    return PipelineRunResult(
        descriptor=INVENTORY,
        stage_results=(
            StageResult("API Design Agent", "raw", (Artifact("api/routes.go", "go", "x"),), 1.5),
        ),
        start_time=now,
        end_time=now,
    )


def _fake_pipeline(result=None, error=None):
    pipeline = MagicMock()

    def run(descriptor, cancel=None, on_stage=None):
        if error is not None:
            raise error
        for i, stage_result in enumerate(result.stage_results):
            on_stage(i, stage_result)
        return result

    pipeline.run.side_effect = run
    return pipeline


@pytest.fixture
def client():
    """Flask test client with a fresh job store each test."""
    import server
    server.app.config["TESTING"] = True
    server._jobs.clear()
    server._settings = Settings(api_key="sk-test", output_dir="/tmp/unused")
    with server.app.test_client() as c:
        yield c
    server._settings = None


def _start(client, pipeline, body=None, written=None):
    with patch("server.threading.Thread", _InlineThread), \
         patch("server._build_pipeline", return_value=pipeline), \
         patch("server.save_artifacts", return_value=written or []) as save:
        resp = client.post("/api/runs", json=body or {"service": "inventory"})
    return resp, save


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

def test_stages_listed_in_order(client):
    resp = client.get("/api/stages")
    assert resp.status_code == 200
    data = resp.get_json()
    assert [s["name"] for s in data] == [
        "API Design Agent",
        "Backend & Database Agent",
        "Messaging & Events Agent",
        "Testing & Security Agent",
    ]
    assert data[1]["reads"] == ["api_design"]


def test_services_listed(client):
    data = client.get("/api/services").get_json()
    assert {s["name"] for s in data} == {"inventory", "payments", "notifications"}


# ---------------------------------------------------------------------------
# POST /api/dry-run
# ---------------------------------------------------------------------------

def test_dry_run_preset(client):
    resp = client.post("/api/dry-run", json={"service": "inventory"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["prompt"] == INVENTORY.render_prompt()
    assert len(data["stages"]) == 4


def test_dry_run_custom_descriptor(client):
    resp = client.post("/api/dry-run", json={"descriptor": {"name": "orders", "entities": ["Order"]}})
    assert resp.status_code == 200
    assert "  - Order" in resp.get_json()["prompt"]


@pytest.mark.parametrize("body", [
    None,
    {},
    {"service": "billing"},
    {"descriptor": {"name": ""}},
    {"descriptor": "orders"},
])
def test_dry_run_bad_input(client, body):
    resp = client.post("/api/dry-run", json=body)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


# ---------------------------------------------------------------------------
# POST /api/runs + GET /api/runs/<id>
# ---------------------------------------------------------------------------

def test_run_success(client):
    resp, save = _start(client, _fake_pipeline(result=_run_result()), written=["/tmp/a.go"])
    assert resp.status_code == 202
    job_id = resp.get_json()["job_id"]
    save.assert_called_once()
    assert save.call_args.args[1] == "/tmp/unused"

    status = client.get(f"/api/runs/{job_id}").get_json()
    assert status["status"] == "done"
    assert status["service"] == "inventory"
    assert status["stages"] == [{
        "name": "API Design Agent",
        "elapsed": 1.5,
        "artifacts": [{"filename": "api/routes.go", "language": "go"}],
    }]
    assert status["written_files"] == ["/tmp/a.go"]
    assert status["error"] is None


def test_run_stage_failure(client):
    error = StageError("Backend & Database Agent", GenerationError("overloaded"))
    resp, save = _start(client, _fake_pipeline(error=error))
    job_id = resp.get_json()["job_id"]

    status = client.get(f"/api/runs/{job_id}").get_json()
    assert status["status"] == "failed"
    assert "Backend & Database Agent" in status["error"]
    save.assert_not_called()


def test_run_cancelled(client):
    error = StageError("API Design Agent", GenerationCancelled("generation cancelled"))
    resp, _ = _start(client, _fake_pipeline(error=error))
    status = client.get(f"/api/runs/{resp.get_json()['job_id']}").get_json()
    assert status["status"] == "cancelled"


def test_run_save_failure(client):
    pipeline = _fake_pipeline(result=_run_result())
    with patch("server.threading.Thread", _InlineThread), \
         patch("server._build_pipeline", return_value=pipeline), \
         patch("server.save_artifacts", side_effect=ArtifactWriteError("/x", "Failed to write file")):
        resp = client.post("/api/runs", json={"service": "inventory"})
    status = client.get(f"/api/runs/{resp.get_json()['job_id']}").get_json()
    assert status["status"] == "failed"
    assert "Failed to write file" in status["error"]


def test_run_unexpected_worker_error_marks_job_failed(client, caplog):
    resp, save = _start(client, _fake_pipeline(error=RuntimeError("socket went away")))
    job_id = resp.get_json()["job_id"]

    status = client.get(f"/api/runs/{job_id}").get_json()
    assert status["status"] == "failed"
    assert status["error"] == "socket went away"
    assert "crashed" in caplog.text
    save.assert_not_called()


def test_saves_for_same_service_take_turns(client, tmp_path):
    import server
    guard = threading.Lock()
    active = []
    peak = []

    def slow_save(result, output_dir):
        with guard:
            active.append(1)
            peak.append(len(active))
        time.sleep(0.05)
        with guard:
            active.pop()
        return []

    jobs = [server._new_job(INVENTORY)[1] for _ in range(2)]
    with patch("server.save_artifacts", side_effect=slow_save):
        workers = [
            threading.Thread(target=server._run_job,
                             args=(job, _fake_pipeline(result=_run_result()), str(tmp_path)))
            for job in jobs
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join(timeout=5)

    assert max(peak) == 1
    assert [job["status"] for job in jobs] == ["done", "done"]


def test_save_lock_is_per_service_directory(tmp_path):
    import server
    out = str(tmp_path)
    assert server._save_lock_for(out, "inventory") is server._save_lock_for(out + "/", "inventory")
    assert server._save_lock_for(out, "inventory") is not server._save_lock_for(out, PAYMENTS.name)


def test_run_bad_input(client):
    resp = client.post("/api/runs", json={"service": "nope"})
    assert resp.status_code == 400


def test_run_without_api_key(client):
    import server
    server._settings = None
    with patch("server.load_settings", side_effect=ConfigurationError("ANTHROPIC_API_KEY missing")):
        resp = client.post("/api/runs", json={"service": "inventory"})
    assert resp.status_code == 500
    assert "ANTHROPIC_API_KEY" in resp.get_json()["error"]


def test_status_unknown_job(client):
    assert client.get("/api/runs/nope").status_code == 404


# ---------------------------------------------------------------------------
# POST /api/runs/<id>/cancel
# ---------------------------------------------------------------------------

def test_cancel_running_job(client):
    import server
    job_id, job = server._new_job(INVENTORY)

    resp = client.post(f"/api/runs/{job_id}/cancel")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "cancelling"
    assert job["cancel"].is_set()


def test_cancel_finished_job(client):
    resp, _ = _start(client, _fake_pipeline(result=_run_result()))
    job_id = resp.get_json()["job_id"]
    assert client.post(f"/api/runs/{job_id}/cancel").status_code == 400


def test_cancel_unknown_job(client):
    assert client.post("/api/runs/nope/cancel").status_code == 404


def test_expired_jobs_dropped(client):
    import server
    job_id, job = server._new_job(INVENTORY)
    job["created"] -= server._JOB_TTL + 1
    assert client.get(f"/api/runs/{job_id}").status_code == 404
    assert job_id not in server._jobs
