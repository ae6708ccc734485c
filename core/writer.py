"""Artifact writer: persists a pipeline run under <root>/<service>/."""

import logging
import os
from datetime import timedelta

from config.defaults import DEFAULTS
from core.errors import ArtifactWriteError
from utils.folder_naming import contained_path, service_dir, stage_dir_name

logger = logging.getLogger(__name__)


def _write(base_dir, relative_path, content):
    """Write content to base_dir/relative_path, creating dirs as needed."""
    if not relative_path:
        raise ArtifactWriteError(base_dir, "Artifact has no filename")
    try:
        resolved = contained_path(base_dir, relative_path)
    except ValueError as e:
        raise ArtifactWriteError(relative_path, "Path escapes output directory") from e

    try:
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "w") as f:
            f.write(content)
    except OSError as e:
        raise ArtifactWriteError(resolved, f"Failed to write file ({e.strerror or e})") from e

    logger.debug("Wrote %s", resolved)
    return resolved


def format_duration(delta):
    return str(timedelta(seconds=round(delta.total_seconds())))


def render_summary(result):
    """Markdown summary of a run: service, duration, artifacts per stage."""
    descriptor = result.descriptor
    lines = [
        f"# {descriptor.name}",
        "",
        descriptor.description,
        "",
        f"- Language: {descriptor.language}",
        f"- Generated: {result.start_time.isoformat(timespec='seconds')}",
        f"- Duration: {format_duration(result.duration)}",
        "",
        "## Stages",
    ]
    for stage_result in result.stage_results:
        lines.append("")
        lines.append(f"### {stage_result.stage_name}")
        lines.append("")
        lines.append(f"{len(stage_result.artifacts)} artifact(s) in "
                     f"`{stage_dir_name(stage_result.stage_name)}/`")
        for artifact in stage_result.artifacts:
            lines.append(f"- `{artifact.filename}`")
    return "\n".join(lines) + "\n"


def save_artifacts(result, output_root):
    """Write a run's raw outputs, artifacts and summary to disk.

    Layout:
        <output_root>/<service>/README.md
        <output_root>/<service>/<stage_dir>/output.md
        <output_root>/<service>/<stage_dir>/<artifact filename>

    Artifacts sharing a filename within a stage overwrite each other in
    order. A failure stops the save; files already written stay on disk.

    Returns the list of written paths.
    """
    base = service_dir(output_root, result.descriptor.name)
    written = []

    for stage_result in result.stage_results:
        stage_dir = os.path.join(base, stage_dir_name(stage_result.stage_name))
        written.append(_write(stage_dir, DEFAULTS["stage_log"], stage_result.raw_output))
        for artifact in stage_result.artifacts:
            written.append(_write(stage_dir, artifact.filename, artifact.content))

    written.append(_write(base, DEFAULTS["summary_file"], render_summary(result)))
    logger.info("Saved %d file(s) under %s", len(written), base)
    return written
