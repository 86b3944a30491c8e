"""
Pipeline - lazily-initialized inference pipeline

Lifecycle:
- initialize(): validate the task name, resolve configuration, start
  resource (or generic backend) loads. Never waits for them.
- first run(): await every pending load once ("ready" transition), then
  dispatch. A failed load leaves the pipeline cold and is re-raised by
  every later run, since the same failed handle is awaited again.
- later run(): dispatch straight away.

Two mutually exclusive modes:
- specific: built-in execution function + model/tokenizer/processor
- generic: one generic backend handle, request = {args, options}
"""

import asyncio
import dataclasses
import json
import logging
import math
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np
import torch

from ...core.config import ECHO_TEST_MODEL_ID, apply_log_level
from ...core.model_cache import ModelCache
from ...core.performance_tracker import InferenceMetrics, Stopwatch
from ..base_backend import GenericBackend
from ..transformers_backend import TransformersBackend
from .loader import ResourceLoader
from .merger import ConfigurationMerger
from .options import PipelineOptions, validate_task_name
from .registry import TaskRegistry
from .types import (
    UNCONFIGURED,
    InferenceResult,
    Pending,
    PipelineMode,
    ResourceKind,
    ResourceSlot,
    Resolved,
    TaskConfiguration,
)

logger = logging.getLogger(__name__)
PREFIX = "[Pipeline]"

_DROP = object()


def _sanitize(value: Any, _path: Optional[set] = None) -> Any:
    """Reduce a value to JSON-representable data, _DROP if impossible"""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (np.ndarray, np.generic, torch.Tensor)):
        return _sanitize(value.tolist())
    if not isinstance(value, (Mapping, list, tuple)):
        return _DROP

    # Containers currently being visited; a repeat is a reference cycle
    path = _path if _path is not None else set()
    if id(value) in path:
        return _DROP
    path.add(id(value))
    try:
        if isinstance(value, Mapping):
            clean: Dict[Any, Any] = {}
            for key, item in value.items():
                if not isinstance(key, (str, int, float, bool)):
                    continue
                item = _sanitize(item, path)
                if item is not _DROP:
                    clean[key] = item
            return clean
        items = []
        for item in value:
            item = _sanitize(item, path)
            items.append(None if item is _DROP else item)
        return items
    finally:
        path.discard(id(value))


def normalize_output(value: Any) -> Any:
    """
    Serialize/deserialize round trip that strips non-transferable handles.

    Mapping entries that cannot be represented are dropped, list items
    become None. Never raises for unsupported types.
    """
    clean = _sanitize(value)
    if clean is _DROP:
        return None
    return json.loads(json.dumps(clean))


def _coerce_result(result: Any) -> InferenceResult:
    """Accept InferenceResult or a {"output", "metrics"} mapping"""
    if isinstance(result, InferenceResult):
        return result
    if isinstance(result, Mapping):
        metrics = result.get("metrics") or {}
        return InferenceResult(
            output=result.get("output"),
            metrics=InferenceMetrics(
                tokenizing_time=metrics.get("tokenizing_time"),
                inference_time=metrics.get("inference_time"),
            ),
        )
    raise TypeError(f"Pipeline function returned {type(result).__name__}, expected InferenceResult")


class Pipeline:
    """
    Inference pipeline for one task configuration.

    Construct with ``Pipeline.initialize``; must be created while an event
    loop is running because loads are scheduled immediately.
    """

    def __init__(
        self,
        config: TaskConfiguration,
        cache: Optional[ModelCache] = None,
        backend: Optional[GenericBackend] = None,
    ):
        stopwatch = Stopwatch()
        validate_task_name(config.task_name)
        if config.log_level is not None:
            apply_log_level(config.log_level)

        self._config = config
        self._loader = ResourceLoader(cache)
        self._ready = False
        self._init_lock = asyncio.Lock()

        self._resources: Dict[ResourceKind, ResourceSlot] = {}
        self._backend: Optional[GenericBackend] = None
        self._backend_slot: Optional[ResourceSlot] = None

        if config.mode is PipelineMode.SPECIFIC:
            logger.debug(f"{PREFIX} Using internal inference function for {config.task_name}")
            self._resources = self._loader.start_resources(config)
        else:
            logger.debug(f"{PREFIX} Using generic pipeline function for {config.task_name}")
            self._backend = backend or TransformersBackend()
            if config.model_id == ECHO_TEST_MODEL_ID:
                self._backend_slot = UNCONFIGURED
            else:
                self._backend_slot = self._loader.start_backend(self._backend, config)

        self._init_time = stopwatch.elapsed
        logger.debug(f"{PREFIX} Pipeline initialized, took {self._init_time:.1f}ms")

    @classmethod
    def initialize(
        cls,
        cache: Optional[ModelCache],
        runtime: Optional[bytes],
        options: Union[PipelineOptions, Mapping[str, Any]],
        *,
        registry: TaskRegistry,
        backend: Optional[GenericBackend] = None,
    ) -> "Pipeline":
        """
        Build a pipeline from caller options.

        Args:
            cache: Artifact cache for resource loads
            runtime: Opaque runtime blob passed through in the configuration
            options: PipelineOptions or a mapping of override fields
            registry: Built-in task defaults
            backend: Generic backend for tasks without a built-in function

        Raises:
            ValidationError: If the task name is malformed (checked by the
                constructor before any load starts)
        """
        if isinstance(options, PipelineOptions):
            task_name = options.task_name
        else:
            task_name = options.get("task_name")
        logger.debug(f"{PREFIX} Initializing Pipeline for task {task_name}")

        config = ConfigurationMerger(registry).resolve(task_name, options)
        if runtime is not None:
            config = dataclasses.replace(config, runtime=runtime)
        return cls(config, cache=cache, backend=backend)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> TaskConfiguration:
        return self._config

    @property
    def task_name(self) -> str:
        return self._config.task_name

    @property
    def model_id(self) -> Optional[str]:
        return self._config.model_id

    @property
    def mode(self) -> PipelineMode:
        return self._config.mode

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def init_time(self) -> float:
        """Cumulative initialization time in milliseconds"""
        return self._init_time

    def describe(self) -> Dict[str, Any]:
        return {
            "task_name": self.task_name,
            "model_id": self.model_id,
            "model_revision": self._config.model_revision,
            "mode": self.mode.value,
            "ready": self._ready,
            "init_time": self._init_time,
        }

    # ------------------------------------------------------------------
    # Ready transition
    # ------------------------------------------------------------------

    async def _resolve_resources(self) -> None:
        pending = {
            kind: slot.handle for kind, slot in self._resources.items()
            if isinstance(slot, Pending)
        }
        # Shielded: a cancelled caller must not cancel loads other callers share
        outcomes = await asyncio.shield(
            asyncio.gather(*pending.values(), return_exceptions=True)
        )
        values: Dict[ResourceKind, Any] = {
            kind: slot.value for kind, slot in self._resources.items()
            if isinstance(slot, Resolved)
        }
        for kind, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                raise outcome
            values[kind] = outcome
        # Swap all slots at once so no caller sees a partial set
        self._resources = {
            kind: Resolved(values[kind]) if kind in values else UNCONFIGURED
            for kind in self._resources
        }

    async def _resolve_backend(self) -> None:
        slot = self._backend_slot
        if isinstance(slot, Pending):
            self._backend_slot = Resolved(await asyncio.shield(slot.handle))

    async def _ensure_ready(self) -> None:
        async with self._init_lock:
            if self._ready:
                return
            stopwatch = Stopwatch()
            try:
                if self.mode is PipelineMode.GENERIC:
                    logger.debug(f"{PREFIX} Initializing generic backend")
                    await self._resolve_backend()
                else:
                    logger.debug(f"{PREFIX} Initializing model, tokenizer and processor")
                    await self._resolve_resources()
            except Exception as e:
                logger.debug(f"{PREFIX} Error initializing pipeline: {e!r}")
                raise
            self._ready = True
            self._init_time += stopwatch.elapsed
            logger.debug(f"{PREFIX} Pipeline is fully initialized, took {self._init_time:.1f}ms")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _resource(self, kind: ResourceKind) -> Any:
        slot = self._resources.get(kind)
        return slot.value if isinstance(slot, Resolved) else None

    async def _run_generic(self, request: Mapping[str, Any]) -> InferenceResult:
        if self.model_id == ECHO_TEST_MODEL_ID:
            return InferenceResult(output=request.get("args"), metrics=InferenceMetrics(init_time=self._init_time))

        args = list(request.get("args") or [])
        options = request.get("options") or {}
        raw = await self._backend.invoke(self._backend_slot.value, *args, **options)
        return InferenceResult(
            output=normalize_output(raw),
            metrics=InferenceMetrics(init_time=self._init_time),
        )

    async def _run_specific(self, request: Any) -> InferenceResult:
        result = await self._config.pipeline_function(
            request,
            self._resource(ResourceKind.MODEL),
            self._resource(ResourceKind.TOKENIZER),
            self._resource(ResourceKind.PROCESSOR),
        )
        result = _coerce_result(result)
        result.metrics.init_time = self._init_time
        return result

    async def run(self, request: Any) -> InferenceResult:
        """
        Run the pipeline on one request.

        Args:
            request: Task-specific fields for built-in functions, or
                ``{"args": [...], "options": {...}}`` in generic mode

        Returns:
            InferenceResult with output and metrics

        Raises:
            Whatever a loader, backend or execution function raised,
            unchanged.
        """
        logger.debug(f"{PREFIX} Running task: {self.task_name}")
        if not self._ready:
            await self._ensure_ready()

        if self.mode is PipelineMode.GENERIC:
            return await self._run_generic(request)
        return await self._run_specific(request)

    def close(self) -> None:
        """Cancel loads that are still in flight"""
        pending = list(self._resources.values())
        if self._backend_slot is not None:
            pending.append(self._backend_slot)
        for slot in pending:
            if isinstance(slot, Pending) and not slot.handle.done():
                slot.handle.cancel()
        logger.debug(f"{PREFIX} Closed pipeline for {self.task_name}")
