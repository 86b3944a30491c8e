"""
Core module for the inference engine.
Contains shared configuration, errors, metrics and collaborators.
"""

from .config import (
    EngineConfig,
    ENGINE_CONFIG,
    LogLevel,
    DEFAULT_MODEL_REVISION,
    ECHO_TEST_MODEL_ID,
    apply_log_level,
    setup_logging,
)
from .errors import (
    PipelineError,
    ConfigurationError,
    ValidationError,
    ResourceLoadError,
    ExecutionError,
    EngineDisabledError,
)
from .performance_tracker import InferenceMetrics, Stopwatch
from .model_cache import ModelCache, HubModelCache

__all__ = [
    # Configuration
    "EngineConfig",
    "ENGINE_CONFIG",
    "LogLevel",
    "DEFAULT_MODEL_REVISION",
    "ECHO_TEST_MODEL_ID",
    "apply_log_level",
    "setup_logging",
    # Errors
    "PipelineError",
    "ConfigurationError",
    "ValidationError",
    "ResourceLoadError",
    "ExecutionError",
    "EngineDisabledError",
    # Metrics
    "InferenceMetrics",
    "Stopwatch",
    # Cache
    "ModelCache",
    "HubModelCache",
]
