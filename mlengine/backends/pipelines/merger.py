"""
ConfigurationMerger - registry defaults + caller overrides

Routing:
1. Known task -> start from the registry entry (specific mode)
2. Unknown task -> empty generic-mode skeleton
Overrides are then applied field by field on top.
"""

import dataclasses
import logging
from typing import Any, Mapping, Optional, Union

from ...core.config import DEFAULT_MODEL_REVISION
from .options import PipelineOptions
from .registry import TaskRegistry
from .types import TaskConfiguration

logger = logging.getLogger(__name__)
PREFIX = "[ConfigurationMerger]"

_CONFIG_FIELDS = frozenset(f.name for f in dataclasses.fields(TaskConfiguration))

Overrides = Union[PipelineOptions, Mapping[str, Any], None]


class ConfigurationMerger:
    """Resolves a task name and overrides into a TaskConfiguration"""

    def __init__(self, registry: TaskRegistry):
        self._registry = registry

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    @staticmethod
    def _normalize(overrides: Overrides) -> dict:
        if overrides is None:
            return {}
        if isinstance(overrides, PipelineOptions):
            return overrides.overrides()
        return {key: value for key, value in overrides.items() if value is not None}

    def resolve(self, task_name: str, overrides: Overrides = None) -> TaskConfiguration:
        """
        Merge registry defaults for ``task_name`` with ``overrides``.

        Never mutates the registry and never fails; unknown override keys
        are ignored.
        """
        fields = self._normalize(overrides)

        base = self._registry.lookup(task_name)
        if base is None:
            logger.debug(f"{PREFIX} Unknown internal task {task_name}, using generic pipeline")
            base = TaskConfiguration(
                task_name=task_name,
                model_id=fields.get("model_id"),
                model_revision=fields.get("model_revision") or DEFAULT_MODEL_REVISION,
            )
        else:
            logger.debug(f"{PREFIX} Internal task detected {task_name}")

        unknown = set(fields) - _CONFIG_FIELDS
        if unknown:
            logger.debug(f"{PREFIX} Ignoring unknown override keys: {sorted(unknown)}")

        # task_name always comes from the caller argument
        applied = {
            key: value for key, value in fields.items()
            if key in _CONFIG_FIELDS and key != "task_name"
        }
        return dataclasses.replace(base, **applied)

