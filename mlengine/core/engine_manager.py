"""
Engine Manager

Keeps one pipeline per distinct set of options so callers that ask for
the same task/model share the loaded resources. Works for both the HTTP
server and the CLI.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..backends.base_backend import GenericBackend
from ..backends.transformers_backend import TransformersBackend
from ..backends.pipelines import (
    InferenceResult,
    Pipeline,
    PipelineOptions,
    TaskRegistry,
    build_default_registry,
)
from .config import ENGINE_CONFIG, EngineConfig
from .errors import EngineDisabledError, PipelineError, ResourceLoadError
from .model_cache import HubModelCache, ModelCache

logger = logging.getLogger(__name__)
PREFIX = "[EngineManager]"

DISABLED_MESSAGE = "Inference engine is disabled. Check the engine configuration."


class EngineManager:
    """
    Creates, caches and tears down pipelines.

    Pipelines are keyed by PipelineOptions.engine_key(); log level and
    runtime file name do not create a new engine.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        cache: Optional[ModelCache] = None,
        backend: Optional[GenericBackend] = None,
        runtime: Optional[bytes] = None,
        config: Optional[EngineConfig] = None,
    ):
        self._registry = registry
        self._cache = cache
        self._backend = backend
        self._runtime = runtime
        self._config = config or ENGINE_CONFIG
        self._engines: Dict[tuple, Pipeline] = {}
        logger.info(f"{PREFIX} Initialized with tasks: {', '.join(registry) or 'none'}")

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @staticmethod
    def _as_options(options: Union[PipelineOptions, Mapping[str, Any]]) -> PipelineOptions:
        if isinstance(options, PipelineOptions):
            return options
        return PipelineOptions(**options)

    def get_engine(self, options: Union[PipelineOptions, Mapping[str, Any]]) -> Pipeline:
        """
        Get or create the pipeline for these options.

        Must be called while an event loop is running.

        Raises:
            EngineDisabledError: If the engine is disabled
            ValidationError: If the task name is malformed
        """
        if not self._config.enabled:
            raise EngineDisabledError(DISABLED_MESSAGE)

        options = self._as_options(options)
        key = options.engine_key()

        engine = self._engines.get(key)
        if engine is None:
            logger.info(f"{PREFIX} Creating engine for task {options.task_name} "
                        f"(model: {options.model_id or 'default'})")
            if options.log_level is None:
                options = options.model_copy(update={"log_level": self._config.log_level})
            engine = Pipeline.initialize(
                self._cache,
                self._runtime,
                options,
                registry=self._registry,
                backend=self._backend,
            )
            self._engines[key] = engine
        return engine

    async def run(
        self,
        options: Union[PipelineOptions, Mapping[str, Any]],
        request: Any,
    ) -> InferenceResult:
        """
        Run a request on the engine for these options.

        An engine that fails before becoming ready is dropped so the next
        request for the same options starts fresh loads.

        Raises:
            ResourceLoadError: If initialization failed with an error from
                outside the PipelineError hierarchy
        """
        options = self._as_options(options)
        engine = self.get_engine(options)
        try:
            return await engine.run(request)
        except Exception as e:
            if engine.is_ready:
                raise
            self._discard(options.engine_key(), engine)
            if isinstance(e, PipelineError):
                raise
            raise ResourceLoadError(f"Failed to initialize {options.task_name}: {e}") from e

    def _discard(self, key: tuple, engine: Pipeline) -> None:
        if self._engines.get(key) is engine:
            del self._engines[key]
            engine.close()
            logger.info(f"{PREFIX} Dropped engine for task {engine.task_name} after failed initialization")

    def list_engines(self) -> List[Dict[str, Any]]:
        return [engine.describe() for engine in self._engines.values()]

    def all_engines_terminated(self) -> bool:
        return not self._engines

    async def destroy(self) -> int:
        """
        Close and forget every engine.

        Returns:
            Number of engines destroyed
        """
        count = len(self._engines)
        for engine in self._engines.values():
            engine.close()
        self._engines.clear()
        logger.info(f"{PREFIX} Destroyed {count} engine(s)")
        return count


# Global engine manager instance
_engine_manager: Optional[EngineManager] = None


def get_engine_manager() -> EngineManager:
    """
    Get the global engine manager, creating it on first use with the
    default registry and a HuggingFace Hub cache.
    """
    global _engine_manager
    if _engine_manager is None:
        _engine_manager = EngineManager(
            registry=build_default_registry(),
            cache=HubModelCache(
                cache_dir=ENGINE_CONFIG.cache_dir,
                endpoint=ENGINE_CONFIG.hub_endpoint,
                local_files_only=ENGINE_CONFIG.local_files_only,
            ),
            backend=TransformersBackend(cache_dir=ENGINE_CONFIG.cache_dir),
        )
    return _engine_manager


def set_engine_manager(manager: Optional[EngineManager]) -> None:
    """Replace the global engine manager (None resets it)"""
    global _engine_manager
    _engine_manager = manager
