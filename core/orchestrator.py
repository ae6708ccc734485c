"""Main pipeline orchestrator: runs the stages in order, threading context."""

import logging
from datetime import datetime

from agents.api_design import APIDesignAgent
from agents.backend_db import BackendDBAgent
from agents.messaging import MessagingAgent
from agents.testing_security import TestingSecurityAgent
from config.defaults import DEFAULTS
from core.context import SEED_KEY, ExecutionContext
from core.errors import ConfigurationError, GenerationCancelled, GenerationError, StageError
from core.state import PipelineRunResult

logger = logging.getLogger(__name__)

DEFAULT_STAGES = (
    APIDesignAgent,
    BackendDBAgent,
    MessagingAgent,
    TestingSecurityAgent,
)


def truncate(text, cap):
    """First cap characters of text, no boundary awareness."""
    return text[:cap]


def validate_stages(stages):
    """Check that context only flows forward through the stage list."""
    available = {SEED_KEY}
    for stage in stages:
        for key, _ in stage.reads:
            if key not in available:
                raise ConfigurationError(
                    f"[{stage.name}] reads {key.value!r} before any earlier stage writes it"
                )
        if stage.context_key in available:
            raise ConfigurationError(
                f"[{stage.name}] writes context key {stage.context_key.value!r} already in use"
            )
        available.add(stage.context_key)


class Pipeline:
    """Runs api design → backend/db → messaging → testing/security.

    Stages run strictly one after another. After each stage its output,
    cut to context_char_cap characters, is stored under the stage's context
    key so later stages can include it in their prompts. Any stage failure
    aborts the run: the error is raised as StageError and no partial result
    is returned.
    """

    def __init__(self, client, stages=DEFAULT_STAGES, context_char_cap=None):
        validate_stages(stages)
        self.client = client
        self.stages = tuple(stages)
        self.context_char_cap = context_char_cap or DEFAULTS["context_char_cap"]

    @classmethod
    def from_settings(cls, client, settings, stages=DEFAULT_STAGES):
        return cls(client, stages=stages, context_char_cap=settings.context_char_cap)

    def run(self, descriptor, cancel=None, on_stage=None):
        """Run every stage for descriptor.

        Args:
            descriptor: ServiceDescriptor to build.
            cancel: Optional threading.Event; setting it aborts the run.
            on_stage: Optional callback(index, stage_result), called after
                      each successful stage.

        Returns:
            PipelineRunResult with one StageResult per stage.

        Raises:
            StageError: wrapping the failing stage's error.
        """
        start_time = datetime.now()
        context = ExecutionContext()
        context.put(SEED_KEY, descriptor.render_prompt())
        results = []

        for index, stage_cls in enumerate(self.stages):
            if cancel is not None and cancel.is_set():
                raise StageError(stage_cls.name, GenerationCancelled("run cancelled before stage started"))

            logger.info("Running stage %d/%d: %s", index + 1, len(self.stages), stage_cls.name)
            try:
                stage = stage_cls(self.client, descriptor)
                result = stage.run(descriptor, context.snapshot(), cancel=cancel)
            except GenerationError as e:
                logger.error("Stage %s failed: %s", stage_cls.name, e)
                raise StageError(stage_cls.name, e) from e

            context.put(stage_cls.context_key, truncate(result.raw_output, self.context_char_cap))
            results.append(result)
            if on_stage:
                on_stage(index, result)

        end_time = datetime.now()
        logger.info("Pipeline for %s finished in %s", descriptor.name, end_time - start_time)
        return PipelineRunResult(
            descriptor=descriptor,
            stage_results=tuple(results),
            start_time=start_time,
            end_time=end_time,
        )
