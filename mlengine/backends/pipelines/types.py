"""
Pipeline Types - task constants and pipeline data model

NO string literals for built-in tasks! Use PipelineTask.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from ...core.config import DEFAULT_MODEL_REVISION, LogLevel
from ...core.performance_tracker import InferenceMetrics


class PipelineTask(str, Enum):
    """Tasks with a built-in execution function"""
    ECHO = "moz-echo"
    IMAGE_TO_TEXT = "moz-image-to-text"


class PipelineMode(str, Enum):
    """Execution mode of a pipeline, fixed for its lifetime"""
    SPECIFIC = "specific"   # built-in function + model/tokenizer/processor
    GENERIC = "generic"     # single generic backend handle


class ResourceKind(str, Enum):
    """Resource slots a specific-mode pipeline may hold"""
    MODEL = "model"
    TOKENIZER = "tokenizer"
    PROCESSOR = "processor"


@dataclass
class InferenceResult:
    """
    Result of a single ``run`` call.

    Attributes:
        output: Task output (opaque to the pipeline)
        metrics: Timing metrics for this call
    """
    output: Any = None
    metrics: InferenceMetrics = field(default_factory=InferenceMetrics)

    def to_dict(self) -> Dict[str, Any]:
        return {"output": self.output, "metrics": self.metrics.to_dict()}


# (request, model, tokenizer, processor) -> InferenceResult
PipelineFunction = Callable[[Any, Any, Any, Any], Awaitable[InferenceResult]]


@dataclass(frozen=True)
class ResourceSpec:
    """A resource to load: identifier plus the class that loads it"""
    kind: ResourceKind
    identifier: str
    loader: Any


# Resource slot variants

@dataclass(frozen=True)
class Unconfigured:
    """No identifier/loader configured for this slot"""


@dataclass(frozen=True)
class Pending:
    """Load started, not yet awaited"""
    handle: asyncio.Future


@dataclass(frozen=True)
class Resolved:
    """Load completed"""
    value: Any


ResourceSlot = Union[Unconfigured, Pending, Resolved]

UNCONFIGURED = Unconfigured()


@dataclass(frozen=True)
class TaskConfiguration:
    """
    Fully resolved configuration for one pipeline.

    Loader classes are paired with identifiers: a resource is only loaded
    when both halves are present (see ``resource_specs``).

    Attributes:
        task_name: Task identifier
        model_id / tokenizer_id / processor_id: Resource identifiers
        model_class / tokenizer_class / processor_class: Loader classes
            exposing ``from_pretrained``
        pipeline_function: Built-in execution function; None = generic mode
        model_revision: Revision tag for all resources
        runtime: Opaque runtime blob passed through to execution
        runtime_filename: File name the runtime blob is known under
        log_level: Diagnostic verbosity for the pipeline
    """
    task_name: str
    model_id: Optional[str] = None
    model_class: Optional[Any] = None
    tokenizer_id: Optional[str] = None
    tokenizer_class: Optional[Any] = None
    processor_id: Optional[str] = None
    processor_class: Optional[Any] = None
    pipeline_function: Optional[PipelineFunction] = None
    model_revision: str = DEFAULT_MODEL_REVISION
    runtime: Optional[bytes] = field(default=None, repr=False)
    runtime_filename: Optional[str] = None
    log_level: Optional[LogLevel] = None

    @property
    def mode(self) -> PipelineMode:
        if self.pipeline_function is not None:
            return PipelineMode.SPECIFIC
        return PipelineMode.GENERIC

    def resource_specs(self) -> Dict[ResourceKind, Optional[ResourceSpec]]:
        """Per-slot spec, or None when either half of the pair is absent"""
        pairs = {
            ResourceKind.MODEL: (self.model_id, self.model_class),
            ResourceKind.TOKENIZER: (self.tokenizer_id, self.tokenizer_class),
            ResourceKind.PROCESSOR: (self.processor_id, self.processor_class),
        }
        return {
            kind: ResourceSpec(kind, identifier, loader) if identifier and loader is not None else None
            for kind, (identifier, loader) in pairs.items()
        }
