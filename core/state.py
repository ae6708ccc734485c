"""Pipeline state models shared across all stages."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime

_SECTIONS = (
    ("entities", "Core Domain Entities"),
    ("operations", "Key Business Operations"),
    ("integrations", "External Integrations"),
    ("extra_requirements", "Additional Requirements"),
)


@dataclass(frozen=True)
class ServiceDescriptor:
    """Describes the microservice to be built.

    Every stage receives the same descriptor and tailors its output to it.
    List fields are stored as tuples; their order is the order they are
    rendered into prompts.
    """

    name: str
    description: str = ""
    language: str = "Go"
    entities: tuple[str, ...] = ()
    operations: tuple[str, ...] = ()
    integrations: tuple[str, ...] = ()
    extra_requirements: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("service name must be non-empty")
        if "/" in self.name or os.sep in self.name or self.name in (".", ".."):
            raise ValueError(f"service name must be a single path segment: {self.name!r}")
        for attr, _ in _SECTIONS:
            object.__setattr__(self, attr, tuple(getattr(self, attr)))

    @classmethod
    def from_dict(cls, data):
        """Build a descriptor from a JSON-style dict."""
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            language=data.get("language") or data.get("target_language") or "Go",
            entities=data.get("entities", ()),
            operations=data.get("operations", ()),
            integrations=data.get("integrations", ()),
            extra_requirements=data.get("extra_requirements", ()),
        )

    def to_dict(self):
        return {
            "name": self.name,
            "description": self.description,
            "language": self.language,
            "entities": list(self.entities),
            "operations": list(self.operations),
            "integrations": list(self.integrations),
            "extra_requirements": list(self.extra_requirements),
        }

    def render_prompt(self):
        """Render the base task text injected into every stage's prompt."""
        parts = [
            f"Microservice Name: {self.name}\n\n",
            f"Description:\n{self.description}\n\n",
            f"Language: {self.language}\n\n",
        ]
        for attr, heading in _SECTIONS:
            items = getattr(self, attr)
            if not items:
                continue
            parts.append(f"{heading}:\n")
            parts.extend(f"  - {item}\n" for item in items)
            parts.append("\n")
        return "".join(parts)


@dataclass(frozen=True)
class Artifact:
    filename: str       # "" when the block carried no file hint
    language: str       # fence tag, verbatim: "go", "sql", ""
    content: str


@dataclass(frozen=True)
class StageResult:
    stage_name: str
    raw_output: str
    artifacts: tuple[Artifact, ...] = ()
    elapsed: float = 0.0    # seconds spent in the stage


@dataclass(frozen=True)
class PipelineRunResult:
    descriptor: ServiceDescriptor
    stage_results: tuple[StageResult, ...]
    start_time: datetime
    end_time: datetime

    @property
    def duration(self):
        return self.end_time - self.start_time

    @property
    def artifact_count(self):
        return sum(len(r.artifacts) for r in self.stage_results)
