"""
Unit tests for HubModelCache

Tests fetch deduplication and failure handling without network access.
"""

import asyncio
from unittest.mock import Mock, patch

import pytest

from mlengine.core.errors import ResourceLoadError
from mlengine.core.model_cache import HubModelCache


class TestHubModelCache:
    """Tests for HubModelCache"""

    @pytest.mark.asyncio
    async def test_concurrent_gets_share_one_fetch(self):
        """Test concurrent requests for one identifier fetch once"""
        # Arrange
        cache = HubModelCache()
        snapshot = Mock(return_value="/hub/org--model")

        with patch.object(cache, "_snapshot", snapshot):
            # Act
            paths = await asyncio.gather(*(cache.get("org/model") for _ in range(4)))

        # Assert
        assert paths == ["/hub/org--model"] * 4
        snapshot.assert_called_once_with("org/model", None)

    @pytest.mark.asyncio
    async def test_completed_fetch_is_memoized(self):
        """Test a later request reuses the earlier result"""
        # Arrange
        cache = HubModelCache()
        snapshot = Mock(return_value="/hub/org--model")

        with patch.object(cache, "_snapshot", snapshot):
            # Act
            await cache.get("org/model", "default")
            await cache.get("org/model")

        # Assert
        assert snapshot.call_count == 1

    @pytest.mark.asyncio
    async def test_revisions_are_fetched_separately(self):
        """Test each revision is its own cache entry"""
        # Arrange
        cache = HubModelCache()
        snapshot = Mock(side_effect=lambda identifier, revision: f"/hub/{identifier}@{revision}")

        with patch.object(cache, "_snapshot", snapshot):
            # Act
            main = await cache.get("org/model", "main")
            pinned = await cache.get("org/model", "abc123")

        # Assert
        assert main == "/hub/org/model@main"
        assert pinned == "/hub/org/model@abc123"

    @pytest.mark.asyncio
    async def test_failure_is_wrapped_and_not_memoized(self):
        """Test failed fetches raise ResourceLoadError and can be retried"""
        # Arrange
        cache = HubModelCache()
        error = OSError("offline")
        snapshot = Mock(side_effect=[error, "/hub/org--model"])

        with patch.object(cache, "_snapshot", snapshot):
            # Act
            with pytest.raises(ResourceLoadError) as excinfo:
                await cache.get("org/model")
            path = await cache.get("org/model")

        # Assert
        assert excinfo.value.__cause__ is error
        assert path == "/hub/org--model"
        assert snapshot.call_count == 2

    @pytest.mark.asyncio
    async def test_clear_forgets_fetches(self):
        """Test clear drops memoized results"""
        # Arrange
        cache = HubModelCache()
        snapshot = Mock(return_value="/hub/org--model")

        with patch.object(cache, "_snapshot", snapshot):
            # Act
            await cache.get("org/model")
            cache.clear()
            await cache.get("org/model")

        # Assert
        assert snapshot.call_count == 2

    def test_snapshot_uses_hub_settings(self):
        """Test snapshot_download receives the configured hub settings"""
        # Arrange
        cache = HubModelCache(
            cache_dir="/tmp/models",
            endpoint="https://hub.example.com",
            local_files_only=True,
            token="hf_test",
        )

        with patch("huggingface_hub.snapshot_download", return_value="/tmp/models/x") as download:
            # Act
            path = cache._snapshot("org/model", "main")

        # Assert
        assert path == "/tmp/models/x"
        download.assert_called_once_with(
            repo_id="org/model",
            revision="main",
            cache_dir="/tmp/models",
            endpoint="https://hub.example.com",
            local_files_only=True,
            token="hf_test",
        )
