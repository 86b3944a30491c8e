"""
Error taxonomy for the inference engine.

The pipeline core never wraps collaborator exceptions: whatever a loader,
cache or backend raises reaches the caller of ``Pipeline.run`` unchanged.
These classes are raised by the engine's own components.
"""


class PipelineError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(PipelineError):
    """Resolved task configuration cannot be used to build a pipeline"""


class ValidationError(ConfigurationError):
    """Caller-supplied options are malformed (e.g. invalid task name)"""


class ResourceLoadError(PipelineError):
    """A model, tokenizer, processor or backend could not be loaded"""


class ExecutionError(PipelineError):
    """A built-in execution function failed while running a request"""


class EngineDisabledError(PipelineError):
    """The engine is switched off in configuration"""
