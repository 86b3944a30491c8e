"""
ResourceLoader - eager, non-blocking resource and backend loads

Loads are scheduled as asyncio tasks at pipeline construction and only
awaited on first use, so model, tokenizer and processor downloads overlap.
Each load is issued at most once per pipeline; cross-pipeline dedup is
the cache's job.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ...core.config import DEFAULT_MODEL_REVISION
from ...core.model_cache import ModelCache
from ..base_backend import GenericBackend
from .types import UNCONFIGURED, Pending, ResourceKind, ResourceSlot, ResourceSpec, TaskConfiguration

logger = logging.getLogger(__name__)
PREFIX = "[ResourceLoader]"


class ResourceLoader:
    """Starts the loads a TaskConfiguration asks for"""

    def __init__(self, cache: Optional[ModelCache] = None):
        """
        Args:
            cache: Artifact cache; without one, loaders fetch by identifier
        """
        self._cache = cache

    async def load(self, spec: ResourceSpec, revision: Optional[str]) -> Any:
        """Fetch one resource through the cache and instantiate it"""
        logger.debug(f"{PREFIX} Loading {spec.kind.value} {spec.identifier} with {spec.loader}")
        if revision == DEFAULT_MODEL_REVISION:
            revision = None
        if self._cache is not None:
            source = await self._cache.get(spec.identifier, revision)
            return await asyncio.to_thread(spec.loader.from_pretrained, source)
        return await asyncio.to_thread(spec.loader.from_pretrained, spec.identifier, revision=revision)

    def start_resources(self, config: TaskConfiguration) -> Dict[ResourceKind, ResourceSlot]:
        """
        Schedule model/tokenizer/processor loads.

        Must be called with a running event loop. Slots whose identifier
        or loader is missing stay Unconfigured.
        """
        loop = asyncio.get_running_loop()
        slots: Dict[ResourceKind, ResourceSlot] = {}
        for kind, spec in config.resource_specs().items():
            if spec is None:
                slots[kind] = UNCONFIGURED
                continue
            task = loop.create_task(
                self.load(spec, config.model_revision),
                name=f"load-{config.task_name}-{kind.value}",
            )
            slots[kind] = Pending(task)
        return slots

    def start_backend(self, backend: GenericBackend, config: TaskConfiguration) -> Pending:
        """Schedule generic backend construction for (task, model, revision)"""
        loop = asyncio.get_running_loop()
        logger.debug(f"{PREFIX} Constructing generic backend for {config.task_name}")
        task = loop.create_task(
            backend.construct(config.task_name, config.model_id, config.model_revision),
            name=f"construct-{config.task_name}",
        )
        return Pending(task)
