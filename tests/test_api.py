"""
Unit tests for the HTTP API

Tests routes against an injected engine manager.
"""

from fastapi import status
from fastapi.testclient import TestClient

from conftest import FakeLoader
from mlengine.api import app
from mlengine.api.constants import APIPrefix, EndpointPath
from mlengine.backends.pipelines import TaskConfiguration, TaskRegistry, echo
from mlengine.backends.pipelines.options import INVALID_TASK_NAME_MESSAGE
from mlengine.core.config import EngineConfig
from mlengine.core.engine_manager import DISABLED_MESSAGE, EngineManager, set_engine_manager
from mlengine.core.errors import ResourceLoadError


def _url(path: EndpointPath) -> str:
    return f"{APIPrefix.V1.value}{path.value}"


class TestHealthEndpoint:
    """Tests for /health endpoint"""

    def test_health_check_success(self, client: TestClient):
        """Test successful health check"""
        # Act
        response = client.get(_url(EndpointPath.HEALTH))

        # Assert
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["enabled"] is True
        assert data["engines"] == 0
        assert isinstance(data["uptime"], (int, float))


class TestTasksEndpoint:
    """Tests for /tasks endpoint"""

    def test_lists_registry(self, client: TestClient):
        """Test tasks come from the registry"""
        # Act
        response = client.get(_url(EndpointPath.TASKS))

        # Assert
        assert response.status_code == status.HTTP_200_OK
        tasks = response.json()["tasks"]
        assert set(tasks) == {"moz-echo", "captioner"}
        assert tasks["captioner"]["model_id"] == "org/captioner"
        assert tasks["moz-echo"]["mode"] == "specific"


class TestRunEndpoint:
    """Tests for /pipelines/run endpoint"""

    def test_echo(self, client: TestClient):
        """Test echo output and metrics"""
        # Arrange
        body = {"options": {"task_name": "moz-echo"}, "request": {"data": "This gets echoed."}}

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["output"] == "This gets echoed."
        assert data["metrics"]["tokenizing_time"] == 0
        assert data["metrics"]["init_time"] >= 0

    def test_generic_echo_model(self, client: TestClient, generic_backend):
        """Test the test-echo model returns args over HTTP"""
        # Arrange
        body = {
            "options": {"task_name": "summarization", "model_id": "test-echo", "model_revision": "main"},
            "request": {"args": ["This gets echoed."]},
        }

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["output"] == ["This gets echoed."]
        generic_backend.construct.assert_not_called()

    def test_generic_backend(self, client: TestClient, generic_backend):
        """Test unknown tasks go through the generic backend"""
        # Arrange
        body = {
            "options": {"task_name": "text-classification", "model_id": "org/classifier"},
            "request": {"args": ["great"], "options": {"top_k": 1}},
        }

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["output"] == [{"label": "POSITIVE", "score": 0.5}]
        generic_backend.invoke.assert_awaited_once_with("pipeline-handle", "great", top_k=1)

    def test_invalid_task_name(self, client: TestClient):
        """Test malformed task names map to 400"""
        # Arrange
        body = {"options": {"task_name": "not valid!"}, "request": {}}

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        error = response.json()["detail"]["error"]
        assert error["message"] == INVALID_TASK_NAME_MESSAGE
        assert error["type"] == "ValidationError"

    def test_missing_task_name(self, client: TestClient):
        """Test body validation rejects options without a task name"""
        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json={"options": {}, "request": {}})

        # Assert
        assert response.status_code == 422

    def test_execution_error(self, client: TestClient):
        """Test execution failures map to 500"""
        # Arrange
        body = {"options": {"task_name": "moz-echo"}, "request": "throw"}

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"]["error"]["type"] == "ExecutionError"

    def test_unexpected_error(self, client: TestClient, generic_backend):
        """Test errors outside the hierarchy still produce an error payload"""
        # Arrange
        generic_backend.invoke.side_effect = RuntimeError("CUDA out of memory")
        body = {"options": {"task_name": "summarization", "model_id": "org/model"}, "request": {"args": ["x"]}}

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"]["error"] == {"message": "CUDA out of memory", "type": "RuntimeError"}

    def test_resource_load_error(self, engine_config):
        """Test load failures map to 502"""
        # Arrange
        broken = FakeLoader("model", error=ResourceLoadError("Failed to fetch org/missing"))
        registry = TaskRegistry({
            "broken": TaskConfiguration(
                task_name="broken",
                model_id="org/missing",
                model_class=broken,
                pipeline_function=echo,
            ),
        })
        set_engine_manager(EngineManager(registry=registry, config=engine_config))
        try:
            with TestClient(app) as client:
                # Act
                response = client.post(
                    _url(EndpointPath.PIPELINES_RUN),
                    json={"options": {"task_name": "broken"}, "request": {"data": 1}},
                )
        finally:
            set_engine_manager(None)

        # Assert
        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["detail"]["error"]["message"] == "Failed to fetch org/missing"

    def test_disabled_engine(self, registry):
        """Test a disabled engine maps to 503"""
        # Arrange
        set_engine_manager(EngineManager(registry=registry, config=EngineConfig(enabled=False)))
        try:
            with TestClient(app) as client:
                # Act
                response = client.post(
                    _url(EndpointPath.PIPELINES_RUN),
                    json={"options": {"task_name": "moz-echo"}, "request": {"data": 1}},
                )
        finally:
            set_engine_manager(None)

        # Assert
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"]["error"]["message"] == DISABLED_MESSAGE

    def test_backend_construction_failure(self, client: TestClient, generic_backend):
        """Test generic backend build failures map to 502"""
        # Arrange
        generic_backend.construct.side_effect = OSError("org/missing is not a valid model identifier")
        body = {"options": {"task_name": "summarization", "model_id": "org/missing"}, "request": {"args": ["x"]}}

        # Act
        response = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["detail"]["error"]["type"] == "ResourceLoadError"

    def test_failed_pipeline_is_retried(self, client: TestClient, generic_backend):
        """Test a later request rebuilds a pipeline whose construction failed"""
        # Arrange
        generic_backend.construct.side_effect = [OSError("connection reset"), "pipeline-handle"]
        body = {"options": {"task_name": "summarization", "model_id": "org/model"}, "request": {"args": ["x"]}}

        # Act
        first = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)
        second = client.post(_url(EndpointPath.PIPELINES_RUN), json=body)

        # Assert
        assert first.status_code == status.HTTP_502_BAD_GATEWAY
        assert second.status_code == status.HTTP_200_OK
        assert generic_backend.construct.await_count == 2


class TestPipelinesEndpoint:
    """Tests for /pipelines endpoints"""

    def test_list_and_destroy(self, client: TestClient):
        """Test live pipelines are listed and destroyed"""
        # Arrange
        client.post(
            _url(EndpointPath.PIPELINES_RUN),
            json={"options": {"task_name": "moz-echo"}, "request": {"data": 1}},
        )

        # Act
        listed = client.get(_url(EndpointPath.PIPELINES))
        destroyed = client.delete(_url(EndpointPath.PIPELINES))
        after = client.get(_url(EndpointPath.PIPELINES))

        # Assert
        engines = listed.json()["engines"]
        assert len(engines) == 1
        assert engines[0]["task_name"] == "moz-echo"
        assert engines[0]["ready"] is True
        assert destroyed.json() == {"destroyed": 1}
        assert after.json() == {"engines": []}
