"""
API Request/Response Types
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..backends.pipelines import PipelineOptions


# Request Models

class RunPipelineRequest(BaseModel):
    """Run one request on the pipeline described by ``options``"""
    options: PipelineOptions = Field(..., description="Pipeline options")
    request: Any = Field(..., description="Task-specific request or {args, options} for generic tasks")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "options": {"task_name": "moz-echo"},
                    "request": {"data": "This gets echoed."}
                },
                {
                    "options": {"task_name": "summarization", "model_id": "test-echo", "model_revision": "main"},
                    "request": {"args": ["This gets echoed."]}
                }
            ]
        }
    }


# Response Models

class InferenceMetricsModel(BaseModel):
    """Per-request timings in milliseconds"""
    tokenizing_time: Optional[float] = None
    inference_time: Optional[float] = None
    init_time: float = 0.0


class RunPipelineResponse(BaseModel):
    """Pipeline output"""
    output: Any = None
    metrics: InferenceMetricsModel


class EngineInfo(BaseModel):
    """A live pipeline"""
    model_config = ConfigDict(protected_namespaces=())

    task_name: str
    model_id: Optional[str] = None
    model_revision: Optional[str] = None
    mode: str
    ready: bool
    init_time: float


class EngineListResponse(BaseModel):
    engines: List[EngineInfo]


class DestroyEnginesResponse(BaseModel):
    destroyed: int


class TaskInfo(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    mode: str
    model_id: Optional[str] = None
    tokenizer_id: Optional[str] = None
    processor_id: Optional[str] = None


class TaskListResponse(BaseModel):
    tasks: Dict[str, TaskInfo]


class HealthStatus(BaseModel):
    """Server health"""
    status: str = Field(..., examples=["ok"])
    enabled: bool
    engines: int
    uptime: float
