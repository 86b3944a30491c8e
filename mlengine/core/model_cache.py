"""
Model Cache

Content-addressed cache for model, tokenizer and processor artifacts.
Pipelines ask the cache for an identifier and hand the result to the
resource's loader class.

HubModelCache resolves HuggingFace repo ids to local snapshot
directories and guarantees at most one fetch per (identifier, revision).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from .config import DEFAULT_MODEL_REVISION
from .errors import ResourceLoadError

logger = logging.getLogger(__name__)
PREFIX = "[ModelCache]"


class ModelCache(ABC):
    """Cache interface consumed by the resource loader"""

    @abstractmethod
    async def get(self, identifier: str, revision: Optional[str] = None) -> Any:
        """
        Resolve an identifier to something a loader can consume.

        Args:
            identifier: Model/tokenizer/processor id
            revision: Optional revision tag

        Returns:
            Local path, bytes or structured model data
        """
        pass


class HubModelCache(ModelCache):
    """
    HuggingFace Hub backed cache.

    Fetches are delegated to ``huggingface_hub.snapshot_download`` in a
    worker thread. Concurrent requests for the same key share one fetch;
    successful results are memoized, failures are not.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        endpoint: Optional[str] = None,
        local_files_only: bool = False,
        token: Optional[str] = None,
    ):
        self.cache_dir = cache_dir
        self.endpoint = endpoint
        self.local_files_only = local_files_only
        self._token = token
        self._fetches: Dict[Tuple[str, Optional[str]], asyncio.Future] = {}

    def _snapshot(self, identifier: str, revision: Optional[str]) -> str:
        import huggingface_hub

        return huggingface_hub.snapshot_download(
            repo_id=identifier,
            revision=revision,
            cache_dir=self.cache_dir,
            endpoint=self.endpoint,
            local_files_only=self.local_files_only,
            token=self._token,
        )

    async def _fetch(self, identifier: str, revision: Optional[str]) -> str:
        logger.info(f"{PREFIX} Fetching {identifier} (revision: {revision or 'latest'})")
        try:
            local_path = await asyncio.to_thread(self._snapshot, identifier, revision)
        except Exception as e:
            logger.error(f"{PREFIX} Fetch failed for {identifier}: {e}")
            raise ResourceLoadError(f"Failed to fetch {identifier}: {e}") from e
        logger.info(f"{PREFIX} {identifier} available at {local_path}")
        return local_path

    async def get(self, identifier: str, revision: Optional[str] = None) -> Any:
        # The "default" sentinel means "whatever the hub serves by default"
        if revision == DEFAULT_MODEL_REVISION:
            revision = None
        key = (identifier, revision)

        fetch = self._fetches.get(key)
        if fetch is None:
            fetch = asyncio.ensure_future(self._fetch(identifier, revision))
            self._fetches[key] = fetch
        else:
            logger.debug(f"{PREFIX} Reusing fetch for {identifier}")

        try:
            return await asyncio.shield(fetch)
        except ResourceLoadError:
            if self._fetches.get(key) is fetch:
                del self._fetches[key]
            raise

    def clear(self) -> None:
        """Forget memoized fetches (files on disk are kept)"""
        self._fetches.clear()
