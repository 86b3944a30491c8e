"""
Echo - identity pipeline function for exercising the orchestration path

No resources, no cost: returns ``request["data"]`` as output.
"""

from typing import Any, Mapping

from ...core.errors import ExecutionError
from ...core.performance_tracker import InferenceMetrics
from .types import InferenceResult

# Request that makes echo fail on purpose
THROW_REQUEST = "throw"


async def echo(request: Any, model: Any, tokenizer: Any, processor: Any) -> InferenceResult:
    """
    Echo inference for testing purposes.

    Args:
        request: Mapping with a ``data`` field (None when absent), or the
            literal "throw"
        model, tokenizer, processor: Unused

    Raises:
        ExecutionError: When the request is "throw"
    """
    if request == THROW_REQUEST:
        raise ExecutionError(f'Received the message "{THROW_REQUEST}", so intentionally throwing an error.')

    return InferenceResult(
        output=request.get("data") if isinstance(request, Mapping) else None,
        metrics=InferenceMetrics(tokenizing_time=0),
    )
