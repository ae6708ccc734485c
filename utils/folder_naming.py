"""Folder naming utilities: stage directory names and path containment."""

import os

SEPARATOR = "_"


def stage_dir_name(stage_name):
    """Turn a stage name into its output directory name.

    "Backend & Database Agent" -> "backend_and_database_agent"
    """
    name = stage_name.replace(" ", SEPARATOR)
    name = name.replace("&", "and")
    name = name.replace("/", SEPARATOR)
    return name.lower()


def service_dir(output_root, service_name):
    return os.path.join(output_root, service_name)


def contained_path(base_dir, relative_path):
    """Join relative_path onto base_dir, refusing paths that escape it.

    Leading separators are dropped, so "/internal/api/router.go" lands at
    base_dir/internal/api/router.go. Only ".." escapes are refused.
    """
    relative_path = relative_path.lstrip("/" + os.sep)
    full_path = os.path.join(base_dir, relative_path)
    resolved = os.path.realpath(full_path)
    if not resolved.startswith(os.path.realpath(base_dir) + os.sep):
        raise ValueError(f"Path escapes output directory: {relative_path}")
    return resolved
