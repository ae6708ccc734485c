"""Prompt templates rendered with string.Template."""

import os
from functools import lru_cache
from string import Template

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")


@lru_cache(maxsize=None)
def load_template(category, template_name):
    """Load templates/<category>/<template_name> as a Template."""
    path = os.path.join(TEMPLATES_DIR, category, template_name)
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(TEMPLATES_DIR) + os.sep):
        raise ValueError(f"Template path escapes templates directory: {category}/{template_name}")
    with open(resolved, "r") as f:
        return Template(f.read())


def render_prompt(template_name, **variables):
    """Render a prompt template. Missing variables raise KeyError."""
    return load_template("prompts", template_name).substitute(variables)
