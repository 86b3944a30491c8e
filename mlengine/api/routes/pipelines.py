"""
Pipeline Endpoints

Run requests on pipelines and manage the live set.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from ...core.engine_manager import get_engine_manager
from ...core.errors import (
    EngineDisabledError,
    ExecutionError,
    PipelineError,
    ResourceLoadError,
    ValidationError,
)
from ..constants import EndpointPath, ErrorField
from ..types import (
    DestroyEnginesResponse,
    EngineInfo,
    EngineListResponse,
    InferenceMetricsModel,
    RunPipelineRequest,
    RunPipelineResponse,
    TaskInfo,
    TaskListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, error: Exception) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            ErrorField.ERROR.value: {
                ErrorField.MESSAGE.value: str(error),
                ErrorField.TYPE.value: type(error).__name__,
            }
        },
    )


def _to_http_error(error: PipelineError) -> HTTPException:
    if isinstance(error, ValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, error)
    if isinstance(error, EngineDisabledError):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, error)
    if isinstance(error, ResourceLoadError):
        return _error(status.HTTP_502_BAD_GATEWAY, error)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error)


# [ENDPOINT] GET /api/v1/tasks - Built-in tasks
@router.get(
    EndpointPath.TASKS.value,
    response_model=TaskListResponse,
    summary="List built-in tasks",
)
async def list_tasks() -> TaskListResponse:
    registry = get_engine_manager().registry
    return TaskListResponse(
        tasks={name: TaskInfo(**info) for name, info in registry.describe().items()}
    )


# [ENDPOINT] POST /api/v1/pipelines/run - Run one request
@router.post(
    EndpointPath.PIPELINES_RUN.value,
    response_model=RunPipelineResponse,
    summary="Run a pipeline",
    description="""
    ## Run one request

    Creates the pipeline for `options` on first use, waits for its
    resources, then runs `request`.

    ### Errors:
    - 400: malformed task name
    - 502: model, tokenizer, processor or backend failed to load
    - 503: engine disabled
    - 500: execution failed
    """,
)
async def run_pipeline(body: RunPipelineRequest) -> RunPipelineResponse:
    manager = get_engine_manager()
    try:
        result = await manager.run(body.options, body.request)
    except PipelineError as e:
        if isinstance(e, (ExecutionError, ResourceLoadError)):
            logger.error(f"Pipeline {body.options.task_name} failed: {e}")
        raise _to_http_error(e) from e
    except Exception as e:
        logger.error(f"Pipeline {body.options.task_name} failed: {e}", exc_info=True)
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e) from e

    return RunPipelineResponse(
        output=result.output,
        metrics=InferenceMetricsModel(**result.metrics.to_dict()),
    )


# [ENDPOINT] GET /api/v1/pipelines - Live pipelines
@router.get(
    EndpointPath.PIPELINES.value,
    response_model=EngineListResponse,
    summary="List live pipelines",
)
async def list_pipelines() -> EngineListResponse:
    engines = get_engine_manager().list_engines()
    return EngineListResponse(engines=[EngineInfo(**engine) for engine in engines])


# [ENDPOINT] DELETE /api/v1/pipelines - Destroy every pipeline
@router.delete(
    EndpointPath.PIPELINES.value,
    response_model=DestroyEnginesResponse,
    summary="Destroy all pipelines",
)
async def destroy_pipelines() -> DestroyEnginesResponse:
    destroyed = await get_engine_manager().destroy()
    return DestroyEnginesResponse(destroyed=destroyed)
