"""
mlengine Server API

HTTP surface for running task pipelines.
Uses core.engine_manager (shared with the CLI).
"""

from .main import app

__all__ = ["app"]
