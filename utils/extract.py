"""Artifact extraction from fenced code blocks in generated text."""

from dataclasses import replace

from core.state import Artifact

FENCE = "```"
HINT_PREFIXES = ("// file:", "# file:")

LANGUAGE_EXTENSIONS = {
    "go": ".go",
    "sql": ".sql",
    "yaml": ".yaml",
    "yml": ".yaml",
    "json": ".json",
}
DEFAULT_EXTENSION = ".txt"

_OUTSIDE = "outside-block"
_INSIDE = "inside-block"


def extract_artifacts(text):
    """Extract (filename, language, content) artifacts from fenced blocks.

    Format:
        ```go
        // file: internal/api/router.go
        package api
        ```

    The rest of the opening fence line is the language tag. Inside a block,
    a line starting with "// file:" or "# file:" sets the filename (the last
    hint wins) and is kept in the content. A block that is never closed is
    dropped. Fences do not nest: only a bare ``` closes the current block.

    Returns a list of Artifact in the order the blocks were closed.
    """
    artifacts = []
    state = _OUTSIDE
    language = filename = ""
    lines = []

    for line in text.split("\n"):
        if state == _OUTSIDE:
            if line.startswith(FENCE):
                state = _INSIDE
                language = line[len(FENCE):]
                filename = ""
                lines = []
            continue

        if line == FENCE:
            artifacts.append(Artifact(filename=filename, language=language,
                                      content="\n".join(lines)))
            state = _OUTSIDE
            continue

        if line.startswith(HINT_PREFIXES):
            filename = line.split(":", 1)[1].strip()
        lines.append(line)

    return artifacts


def extension_for(language):
    """Map a fence language tag to a file extension."""
    return LANGUAGE_EXTENSIONS.get(language.strip().lower(), DEFAULT_EXTENSION)


def assign_default_names(artifacts, family):
    """Name every hintless artifact "<family>_<n><ext>".

    n counts only the artifacts that had no hint, starting at 1, so the
    names are stable for a given extraction.
    """
    named = []
    counter = 0
    for artifact in artifacts:
        if artifact.filename:
            named.append(artifact)
            continue
        counter += 1
        filename = f"{family}_{counter}{extension_for(artifact.language)}"
        named.append(replace(artifact, filename=filename))
    return named
