"""
API Constants

String literals for API endpoints and error payloads.
Single source of truth for API-related constants.
"""

from enum import Enum


class APIPrefix(str, Enum):
    """API path prefixes"""
    V1 = "/api/v1"


class EndpointPath(str, Enum):
    """API endpoint paths (relative to prefix)"""
    # Health
    HEALTH = "/health"

    # Tasks
    TASKS = "/tasks"

    # Pipelines
    PIPELINES = "/pipelines"
    PIPELINES_RUN = "/pipelines/run"


class ErrorField(str, Enum):
    """Keys of the error detail payload"""
    ERROR = "error"
    MESSAGE = "message"
    TYPE = "type"
