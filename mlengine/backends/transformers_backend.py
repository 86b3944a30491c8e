"""
HuggingFace Transformers generic backend.

Builds ``transformers.pipeline`` objects for arbitrary task names and runs
them. Both steps block on disk/network/compute, so they are pushed to a
worker thread to keep the event loop responsive.
"""

import asyncio
import logging
from typing import Any, Optional

import torch

from ..core.config import DEFAULT_MODEL_REVISION
from ..core.errors import ResourceLoadError
from .base_backend import GenericBackend

logger = logging.getLogger(__name__)
PREFIX = "[TransformersBackend]"


class TransformersBackend(GenericBackend):
    """
    Generic backend powered by ``transformers.pipeline``.

    Supports any task the installed transformers version knows about
    (summarization, translation, text-classification, ...).
    """

    def __init__(
        self,
        device: Optional[str] = None,
        cache_dir: Optional[str] = None,
        trust_remote_code: bool = False,
    ):
        """
        Initialize Transformers backend

        Args:
            device: Device to run on (defaults to cuda when available)
            cache_dir: HuggingFace cache directory for weights
            trust_remote_code: Allow custom model code execution
        """
        self._transformers = None
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self.cache_dir = cache_dir
        self.trust_remote_code = trust_remote_code
        logger.info(f"{PREFIX} Initialized (device: {self.device})")

    def _ensure_transformers(self):
        """Lazy load transformers library"""
        if self._transformers is None:
            try:
                import transformers
                self._transformers = transformers
                logger.info(f"{PREFIX} Transformers loaded (version: {transformers.__version__})")
            except ImportError:
                raise RuntimeError(
                    "Transformers not installed. "
                    "Install with: pip install transformers torch"
                )
        return self._transformers

    def _build(self, task_name: str, model_id: Optional[str], revision: Optional[str]) -> Any:
        transformers = self._ensure_transformers()
        model_kwargs = {"cache_dir": self.cache_dir} if self.cache_dir else None
        return transformers.pipeline(
            task_name,
            model=model_id,
            revision=revision,
            device=self.device,
            trust_remote_code=self.trust_remote_code,
            model_kwargs=model_kwargs,
        )

    async def construct(
        self,
        task_name: str,
        model_id: Optional[str],
        revision: Optional[str] = None,
    ) -> Any:
        if revision == DEFAULT_MODEL_REVISION:
            revision = None
        logger.info(f"{PREFIX} Building pipeline: task={task_name}, model={model_id or 'default'}, "
                    f"revision={revision or 'latest'}")
        try:
            handle = await asyncio.to_thread(self._build, task_name, model_id, revision)
        except Exception as e:
            logger.error(f"{PREFIX} Failed to build pipeline for {task_name}: {e}")
            raise ResourceLoadError(f"Failed to build pipeline for {task_name}: {e}") from e
        logger.info(f"{PREFIX} Pipeline ready for task {task_name}")
        return handle

    async def invoke(self, handle: Any, *args: Any, **options: Any) -> Any:
        return await asyncio.to_thread(self._call, handle, args, options)

    @staticmethod
    def _call(handle: Any, args: tuple, options: dict) -> Any:
        with torch.no_grad():
            return handle(*args, **options)
