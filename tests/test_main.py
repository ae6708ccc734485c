"""Tests for the main.py command-line entry point."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import main
from config.services import INVENTORY
from core.errors import GenerationError, StageError
from core.state import Artifact, PipelineRunResult, StageResult


def _result():
    now = datetime.now()
    return PipelineRunResult(
        descriptor=INVENTORY,
        stage_results=(StageResult("API Design Agent", "raw", (Artifact("api.go", "go", "x"),)),),
        start_time=now,
        end_time=now,
    )


def test_list_stages(capsys):
    assert main.main(["--list-stages"]) == 0
    out = capsys.readouterr().out
    assert "Backend & Database Agent" in out


def test_dry_run_needs_no_api_key(capsys, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    assert main.main(["--dry-run", "--service", "payments"]) == 0
    out = capsys.readouterr().out
    assert "Microservice Name: payments" in out


def test_missing_api_key_exits_before_any_stage(capsys, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with patch("main.Pipeline") as pipeline_cls:
        assert main.main([]) == 1
    pipeline_cls.from_settings.assert_not_called()
    assert "ANTHROPIC_API_KEY" in capsys.readouterr().err


def test_bad_descriptor_file(capsys, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    assert main.main(["--descriptor", str(path)]) == 1
    assert "Invalid service definition" in capsys.readouterr().err


def test_run_saves_to_positional_output_dir(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    pipeline = MagicMock()
    pipeline.run.return_value = _result()

    with patch("main.GenerationClient"), \
         patch("main.Pipeline.from_settings", return_value=pipeline), \
         patch("main.save_artifacts") as save:
        assert main.main([str(tmp_path)]) == 0

    save.assert_called_once_with(pipeline.run.return_value, str(tmp_path))
    assert pipeline.run.call_args.args[0] is INVENTORY
    assert "api.go" in capsys.readouterr().out


def test_stage_failure_exits_nonzero(monkeypatch, capsys):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    pipeline = MagicMock()
    pipeline.run.side_effect = StageError("Messaging & Events Agent", GenerationError("boom"))

    with patch("main.GenerationClient"), \
         patch("main.Pipeline.from_settings", return_value=pipeline), \
         patch("main.save_artifacts") as save:
        assert main.main([]) == 1

    save.assert_not_called()
    assert "[Messaging & Events Agent] failed: boom" in capsys.readouterr().err
