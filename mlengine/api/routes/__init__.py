"""API route modules"""

from . import health, pipelines

__all__ = ["health", "pipelines"]
