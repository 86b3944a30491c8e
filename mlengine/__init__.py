"""
mlengine Python Package

Lazily-initialized inference pipelines driven by declarative task configs:
- api/ - FastAPI routes and HTTP server
- backends/ - Generic inference backend and task pipelines
- core/ - Configuration, errors, metrics, model cache and engine manager
"""

__version__ = "0.1.0"
