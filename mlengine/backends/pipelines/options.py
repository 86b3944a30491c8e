"""
Pipeline Options - caller-supplied overrides for a task configuration

Callables (loader classes, execution functions) are deliberately not
exposed here: options must be serializable so they can travel over HTTP.
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.config import TASK_NAME_PATTERN, LogLevel
from ...core.errors import ValidationError

_TASK_NAME_RE = re.compile(TASK_NAME_PATTERN)

INVALID_TASK_NAME_MESSAGE = (
    "Invalid task name. Task name should contain only alphanumeric "
    "characters and underscores/dashes."
)


def validate_task_name(task_name: Any) -> str:
    """
    Check a task name against the allowed character set.

    Raises:
        ValidationError: If the name is empty or has other characters
    """
    if not isinstance(task_name, str) or not _TASK_NAME_RE.fullmatch(task_name):
        raise ValidationError(INVALID_TASK_NAME_MESSAGE)
    return task_name


class PipelineOptions(BaseModel):
    """Options used to build a pipeline"""
    model_config = ConfigDict(protected_namespaces=())

    task_name: str = Field(..., description="Task identifier", examples=["moz-echo", "summarization"])
    model_id: Optional[str] = Field(None, description="Model repo id or path")
    model_revision: Optional[str] = Field(None, description="Model revision tag", examples=["main"])
    tokenizer_id: Optional[str] = Field(None, description="Tokenizer repo id or path")
    processor_id: Optional[str] = Field(None, description="Processor repo id or path")
    runtime_filename: Optional[str] = Field(None, description="Name of the runtime blob")
    log_level: Optional[LogLevel] = Field(None, description="Diagnostic verbosity")

    def overrides(self) -> Dict[str, Any]:
        """Fields the caller actually provided"""
        return self.model_dump(exclude_unset=True, exclude_none=True)

    def engine_key(self) -> tuple:
        """Key identifying pipelines that can be shared between callers"""
        return (
            self.task_name,
            self.model_id,
            self.model_revision,
            self.tokenizer_id,
            self.processor_id,
        )
