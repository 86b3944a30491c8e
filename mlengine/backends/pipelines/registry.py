"""
TaskRegistry - task name -> default TaskConfiguration

The registry is built once at startup and handed to whoever needs it
(merger, engine manager, API). It cannot be mutated afterwards.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from .types import PipelineTask, TaskConfiguration

logger = logging.getLogger(__name__)
PREFIX = "[TaskRegistry]"


class TaskRegistry(Mapping):
    """Read-only mapping of task names to their default configuration"""

    def __init__(self, entries: Mapping[str, TaskConfiguration]):
        for name, config in entries.items():
            if config.task_name != name:
                raise ValueError(f"Registry key '{name}' does not match task name '{config.task_name}'")
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, task_name: str) -> TaskConfiguration:
        return self._entries[task_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, task_name: str) -> Optional[TaskConfiguration]:
        return self._entries.get(task_name)

    def describe(self) -> Dict[str, Dict[str, Optional[str]]]:
        """Serializable summary of every task (no callables)"""
        return {
            name: {
                "mode": config.mode.value,
                "model_id": config.model_id,
                "tokenizer_id": config.tokenizer_id,
                "processor_id": config.processor_id,
            }
            for name, config in self._entries.items()
        }


def build_default_registry() -> TaskRegistry:
    """
    Build the registry of built-in tasks.

    - moz-echo: identity transform, no resources
    - moz-image-to-text: distilvit captioning
    """
    import transformers

    from .echo import echo
    from .image_to_text import image_to_text

    distilvit = "mozilla/distilvit"
    entries = {
        PipelineTask.IMAGE_TO_TEXT.value: TaskConfiguration(
            task_name=PipelineTask.IMAGE_TO_TEXT.value,
            model_id=distilvit,
            model_class=transformers.VisionEncoderDecoderModel,
            tokenizer_id=distilvit,
            tokenizer_class=transformers.AutoTokenizer,
            processor_id=distilvit,
            processor_class=transformers.AutoImageProcessor,
            pipeline_function=image_to_text,
        ),
        PipelineTask.ECHO.value: TaskConfiguration(
            task_name=PipelineTask.ECHO.value,
            pipeline_function=echo,
        ),
    }
    logger.debug(f"{PREFIX} Built default registry: {', '.join(entries)}")
    return TaskRegistry(entries)
