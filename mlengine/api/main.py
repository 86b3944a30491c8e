"""
mlengine Server - Main FastAPI Application

HTTP access to lazily-initialized task pipelines.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.engine_manager import get_engine_manager
from .constants import APIPrefix
from .routes import health, pipelines

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown"""
    logger.info("mlengine server starting...")

    yield

    logger.info("mlengine server shutting down...")
    await get_engine_manager().destroy()


app = FastAPI(
    title="mlengine Server",
    description="""
    ## Task pipelines over HTTP

    A pipeline is created from a task name plus optional overrides
    (model, revision, tokenizer, processor). Resources load in the
    background and the first request waits for them.

    ### Built-in tasks
    - `moz-echo` - returns `request.data`
    - `moz-image-to-text` - image captioning

    Any other task name runs through the transformers pipeline backend
    with `request = {"args": [...], "options": {...}}`.
    """,
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check and server status"
        },
        {
            "name": "pipelines",
            "description": "Run requests and manage live pipelines"
        },
    ],
)

# Allow all origins for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=APIPrefix.V1.value, tags=["health"])
app.include_router(pipelines.router, prefix=APIPrefix.V1.value, tags=["pipelines"])


@app.get("/")
async def root():
    """Server info"""
    return {
        "name": "mlengine Server",
        "version": __version__,
        "status": "running",
        "documentation": {
            "swagger_ui": "/docs",
            "openapi_json": "/openapi.json",
        },
        "endpoints": {
            "health": "/api/v1/health",
            "tasks": "/api/v1/tasks",
            "run": "/api/v1/pipelines/run",
            "pipelines": "/api/v1/pipelines",
        },
    }


if __name__ == "__main__":
    import uvicorn

    from ..core.config import ENGINE_CONFIG

    uvicorn.run(app, host=ENGINE_CONFIG.host, port=ENGINE_CONFIG.port)
