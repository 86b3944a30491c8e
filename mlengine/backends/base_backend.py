"""
Base interface for generic inference backends.

A generic backend can run any named task end-to-end when no built-in
execution function exists for it. Construction and invocation are both
asynchronous so pipelines can overlap backend setup with other work.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional



class GenericBackend(ABC):
    """
    Abstract base class for generic-mode backends.

    Implementations build an opaque handle for (task, model, revision)
    and later invoke it with positional arguments and keyword options.
    """

    @abstractmethod
    async def construct(
        self,
        task_name: str,
        model_id: Optional[str],
        revision: Optional[str] = None,
    ) -> Any:
        """
        Build a backend handle for a task.

        Args:
            task_name: Task identifier (e.g. 'summarization')
            model_id: Model repo id or path; None lets the backend pick
            revision: Model revision tag

        Returns:
            Opaque backend handle
        """
        pass

    @abstractmethod
    async def invoke(self, handle: Any, *args: Any, **options: Any) -> Any:
        """
        Run the task.

        Args:
            handle: Handle returned by construct()
            *args: Positional task inputs
            **options: Task options

        Returns:
            Raw backend result
        """
        pass
