"""Base class that every pipeline stage extends."""

import logging
import time

from core.state import StageResult
from utils.extract import assign_default_names, extract_artifacts
from utils.llm import user_message
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


class BaseAgent:
    """One stage of the pipeline.

    Subclasses are declarative: they set the class attributes below and
    inherit run(). A stage is constructed once per run, bound to that run's
    descriptor, and never shared between runs.
    """

    name = "base"
    description = "Base agent"
    family = "artifact"         # prefix for default artifact names
    context_key = None          # ContextKey this stage's output is stored under
    reads = ()                  # ((ContextKey, label), ...) optional prior context
    task_template = ""          # templates/prompts/<task_template>
    responsibilities = ""
    output_format = ""

    def __init__(self, client, descriptor):
        self.client = client
        self.system_prompt = render_prompt(
            "system.txt",
            role=self.name,
            service=descriptor.name,
            language=descriptor.language,
            responsibilities=self.responsibilities,
            output_format=self.output_format,
        )

    def build_prompt(self, descriptor, prior_context):
        """Task prompt plus whichever prior-context sections are present."""
        prompt = render_prompt(self.task_template, service_prompt=descriptor.render_prompt())
        for key, label in self.reads:
            text = prior_context.get(key)
            if text is None:
                continue
            prompt += f"\n\n{label}:\n{text}"
        return prompt

    def run(self, descriptor, prior_context, cancel=None):
        """Call the model once and extract artifacts from its answer.

        Generation errors propagate untouched; nothing is extracted from a
        failed call.
        """
        prompt = self.build_prompt(descriptor, prior_context)
        started = time.monotonic()
        output = self.client.send(self.system_prompt, [user_message(prompt)], cancel=cancel)
        artifacts = assign_default_names(extract_artifacts(output), self.family)
        elapsed = time.monotonic() - started

        logger.info("[%s] produced %d artifact(s) in %.1fs", self.name, len(artifacts), elapsed)
        return StageResult(
            stage_name=self.name,
            raw_output=output,
            artifacts=tuple(artifacts),
            elapsed=elapsed,
        )

    @classmethod
    def describe(cls):
        return {
            "name": cls.name,
            "description": cls.description,
            "context_key": cls.context_key.value if cls.context_key else None,
            "reads": [key.value for key, _ in cls.reads],
        }
