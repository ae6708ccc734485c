#!/usr/bin/env python3
"""HTTP API for the microservice agent pipeline."""

import logging
import os
import threading
import time
import uuid

from flask import Flask, jsonify, request

from config.services import SERVICES, get_service
from config.settings import load_settings
from core.errors import ArtifactWriteError, ConfigurationError, StageError
from core.orchestrator import DEFAULT_STAGES, Pipeline
from core.state import ServiceDescriptor
from core.writer import save_artifacts
from utils.folder_naming import service_dir
from utils.llm import GenerationClient

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Pipeline jobs keyed by job_id
_jobs = {}
_jobs_lock = threading.Lock()
_MAX_JOBS = 50  # prevent unbounded memory growth
_JOB_TTL = 3600  # expire jobs after 1 hour

# Runs for the same service share an output directory; saves take turns
_save_locks = {}
_save_locks_lock = threading.Lock()

_settings = None


def _get_settings():
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _build_pipeline(settings):
    return Pipeline.from_settings(GenerationClient(settings), settings)


def _save_lock_for(output_dir, service_name):
    key = os.path.realpath(service_dir(output_dir, service_name))
    with _save_locks_lock:
        return _save_locks.setdefault(key, threading.Lock())


def _cleanup_jobs():
    """Remove expired jobs. Called under _jobs_lock."""
    now = time.time()
    expired = [jid for jid, job in _jobs.items() if now - job["created"] > _JOB_TTL]
    for jid in expired:
        del _jobs[jid]
    # If still over limit, remove oldest finished jobs first
    if len(_jobs) > _MAX_JOBS:
        by_age = sorted(_jobs.items(),
                        key=lambda x: (x[1]["status"] == "running", x[1]["created"]))
        for jid, _ in by_age[:len(_jobs) - _MAX_JOBS]:
            del _jobs[jid]


def _new_job(descriptor):
    job_id = str(uuid.uuid4())[:8]
    job = {
        "descriptor": descriptor,
        "status": "running",
        "stages": [],
        "written": [],
        "error": None,
        "cancel": threading.Event(),
        "created": time.time(),
    }
    with _jobs_lock:
        _cleanup_jobs()
        _jobs[job_id] = job
    return job_id, job


def _get_job(job_id):
    """Get a job by ID, or None if not found/expired."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and time.time() - job["created"] > _JOB_TTL:
            _jobs.pop(job_id, None)
            return None
    return job


def _update_job(job, **fields):
    with _jobs_lock:
        job.update(fields)


def _stage_to_dict(stage_result):
    return {
        "name": stage_result.stage_name,
        "elapsed": round(stage_result.elapsed, 2),
        "artifacts": [
            {"filename": a.filename, "language": a.language}
            for a in stage_result.artifacts
        ],
    }


def _job_to_dict(job_id, job):
    with _jobs_lock:
        return {
            "job_id": job_id,
            "service": job["descriptor"].name,
            "status": job["status"],
            "stages": list(job["stages"]),
            "total_stages": len(DEFAULT_STAGES),
            "written_files": list(job["written"]),
            "error": job["error"],
        }


def _descriptor_from_body(data):
    """Return (descriptor, error_message) from a request body."""
    if not data:
        return None, "Missing request body"
    if data.get("descriptor") is not None:
        if not isinstance(data["descriptor"], dict):
            return None, "descriptor must be an object"
        try:
            return ServiceDescriptor.from_dict(data["descriptor"]), None
        except (TypeError, ValueError) as e:
            return None, f"Invalid descriptor: {e}"
    if data.get("service"):
        try:
            return get_service(data["service"]), None
        except KeyError as e:
            return None, str(e.args[0])
    return None, "Provide either 'service' or 'descriptor'"


def _run_job(job, pipeline, output_dir):
    """Worker thread body: run the pipeline, save, record the outcome."""

    def on_stage(index, stage_result):
        with _jobs_lock:
            job["stages"].append(_stage_to_dict(stage_result))

    try:
        result = pipeline.run(job["descriptor"], cancel=job["cancel"], on_stage=on_stage)
        with _save_lock_for(output_dir, job["descriptor"].name):
            written = save_artifacts(result, output_dir)
    except StageError as e:
        _update_job(job, status="cancelled" if e.cancelled else "failed", error=str(e))
        return
    except ArtifactWriteError as e:
        _update_job(job, status="failed", error=str(e))
        return
    except Exception as e:
        logger.exception("Pipeline job for %s crashed", job["descriptor"].name)
        _update_job(job, status="failed", error=str(e) or type(e).__name__)
        return
    _update_job(job, status="done", written=written)


@app.route("/api/stages")
def api_stages():
    return jsonify([stage.describe() for stage in DEFAULT_STAGES])


@app.route("/api/services")
def api_services():
    return jsonify([s.to_dict() for s in SERVICES.values()])


@app.route("/api/dry-run", methods=["POST"])
def api_dry_run():
    descriptor, error = _descriptor_from_body(request.get_json(silent=True))
    if error:
        return jsonify({"error": error}), 400
    return jsonify({
        "service": descriptor.name,
        "prompt": descriptor.render_prompt(),
        "stages": [stage.name for stage in DEFAULT_STAGES],
        "dry_run": True,
    })


@app.route("/api/runs", methods=["POST"])
def api_start_run():
    descriptor, error = _descriptor_from_body(request.get_json(silent=True))
    if error:
        return jsonify({"error": error}), 400

    try:
        settings = _get_settings()
    except ConfigurationError as e:
        return jsonify({"error": str(e)}), 500

    job_id, job = _new_job(descriptor)
    worker = threading.Thread(
        target=_run_job,
        args=(job, _build_pipeline(settings), settings.output_dir),
        name=f"pipeline-{job_id}",
        daemon=True,
    )
    worker.start()
    return jsonify({"job_id": job_id, "status": "running"}), 202


@app.route("/api/runs/<job_id>")
def api_run_status(job_id):
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    return jsonify(_job_to_dict(job_id, job))


@app.route("/api/runs/<job_id>/cancel", methods=["POST"])
def api_cancel_run(job_id):
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    if job["status"] != "running":
        return jsonify({"error": f"Job already {job['status']}"}), 400
    job["cancel"].set()
    return jsonify({"job_id": job_id, "status": "cancelling"})


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    print(f"Agent pipeline API running at http://localhost:{port}")
    app.run(debug=False, port=port)
