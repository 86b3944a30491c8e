"""
Pipelines Module - lazily-initialized task pipelines

A task name plus caller overrides resolves (against an injected
TaskRegistry) into a TaskConfiguration; Pipeline.initialize starts the
resource loads and Pipeline.run executes requests once they resolve.

Routing:
1. Registered task -> built-in execution function (specific mode)
2. Anything else -> generic backend (generic mode)
"""

from .types import (
    PipelineTask,
    PipelineMode,
    ResourceKind,
    ResourceSpec,
    TaskConfiguration,
    InferenceResult,
    Unconfigured,
    Pending,
    Resolved,
)
from .options import PipelineOptions, validate_task_name
from .registry import TaskRegistry, build_default_registry
from .merger import ConfigurationMerger
from .loader import ResourceLoader
from .pipeline import Pipeline, normalize_output
from .echo import echo
from .image_to_text import image_to_text, BatchAggregation


__all__ = [
    # Types
    "PipelineTask",
    "PipelineMode",
    "ResourceKind",
    "ResourceSpec",
    "TaskConfiguration",
    "InferenceResult",
    "Unconfigured",
    "Pending",
    "Resolved",
    # Configuration
    "PipelineOptions",
    "validate_task_name",
    "TaskRegistry",
    "build_default_registry",
    "ConfigurationMerger",
    # Execution
    "ResourceLoader",
    "Pipeline",
    "normalize_output",
    # Built-in functions
    "echo",
    "image_to_text",
    "BatchAggregation",
]
