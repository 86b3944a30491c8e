"""
Pytest configuration and shared fixtures

Provides fake loaders, a small task registry and an API client bound to
an injected engine manager. Nothing here downloads weights.
"""

from typing import Any, Iterator, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from mlengine.api import app
from mlengine.backends.base_backend import GenericBackend
from mlengine.backends.pipelines import (
    InferenceResult,
    TaskConfiguration,
    TaskRegistry,
    echo,
)
from mlengine.core.config import EngineConfig, LogLevel
from mlengine.core.engine_manager import EngineManager, set_engine_manager
from mlengine.core.performance_tracker import InferenceMetrics


class FakeLoader:
    """Stands in for a transformers class exposing ``from_pretrained``"""

    def __init__(self, name: str, error: Optional[Exception] = None):
        self.name = name
        self.error = error
        self.calls: List[Tuple[Any, dict]] = []

    def from_pretrained(self, source: Any, **kwargs: Any) -> str:
        self.calls.append((source, kwargs))
        if self.error is not None:
            raise self.error
        return f"{self.name}:{source}"


async def record_resources(request, model, tokenizer, processor) -> InferenceResult:
    """Execution function that reports what it was given"""
    return InferenceResult(
        output={
            "request": request,
            "model": model,
            "tokenizer": tokenizer,
            "processor": processor,
        },
        metrics=InferenceMetrics(inference_time=1.0),
    )


@pytest.fixture
def loaders() -> dict:
    """
    Fresh fake loaders per test

    Returns:
        Dict of model/tokenizer/processor FakeLoader objects
    """
    return {
        "model": FakeLoader("model"),
        "tokenizer": FakeLoader("tokenizer"),
        "processor": FakeLoader("processor"),
    }


@pytest.fixture
def registry(loaders) -> TaskRegistry:
    """
    Registry with an echo task and a resource-backed test task

    Returns:
        TaskRegistry with "moz-echo" and "captioner"
    """
    return TaskRegistry({
        "moz-echo": TaskConfiguration(task_name="moz-echo", pipeline_function=echo),
        "captioner": TaskConfiguration(
            task_name="captioner",
            model_id="org/captioner",
            model_class=loaders["model"],
            tokenizer_id="org/captioner",
            tokenizer_class=loaders["tokenizer"],
            processor_id="org/captioner",
            processor_class=loaders["processor"],
            pipeline_function=record_resources,
        ),
    })


@pytest.fixture
def generic_backend() -> AsyncMock:
    """
    Mock generic backend

    Returns:
        AsyncMock following the GenericBackend interface
    """
    backend = AsyncMock(spec=GenericBackend)
    backend.construct.return_value = "pipeline-handle"
    backend.invoke.return_value = [{"label": "POSITIVE", "score": 0.5}]
    return backend


@pytest.fixture
def engine_config() -> EngineConfig:
    """Enabled engine configuration that does not read the environment"""
    return EngineConfig(enabled=True, log_level=LogLevel.ERROR, cache_dir=None, hub_endpoint=None)


@pytest.fixture
def engine_manager(registry, generic_backend, engine_config) -> Iterator[EngineManager]:
    """
    Engine manager installed as the global instance for the test

    Yields:
        EngineManager using the test registry and mock backend
    """
    manager = EngineManager(registry=registry, backend=generic_backend, config=engine_config)
    set_engine_manager(manager)
    yield manager
    set_engine_manager(None)


@pytest.fixture
def client(engine_manager) -> Iterator[TestClient]:
    """
    FastAPI test client

    One client (and event loop) per test so pipelines created by one
    request can be reused by the next.

    Yields:
        TestClient for API testing
    """
    with TestClient(app) as test_client:
        yield test_client
