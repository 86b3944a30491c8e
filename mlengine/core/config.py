# mlengine Configuration
"""
Strongly typed configuration for the inference engine and its pipelines.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Literal, Optional


# Logging configuration
LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGER_NAME: str = "mlengine"

# Custom level between DEBUG and NOTSET for very chatty diagnostics
TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")

# Revision used when the caller does not pin one
DEFAULT_MODEL_REVISION: str = "default"

# Generic-mode model id that short-circuits to echoing the request args
ECHO_TEST_MODEL_ID: str = "test-echo"

# Allowed task name characters
TASK_NAME_PATTERN: str = r"^[A-Za-z0-9_-]+$"


class LogLevel(str, Enum):
    """Diagnostic verbosity accepted in pipeline options"""
    QUIET = "quiet"
    ERROR = "error"
    DEBUG = "debug"
    TRACE = "trace"
    ALL = "all"


_LEVEL_MAP: Dict[LogLevel, int] = {
    LogLevel.QUIET: logging.CRITICAL + 10,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: TRACE,
    LogLevel.ALL: 1,
}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Inference engine configuration"""

    # Master switch; a disabled engine refuses to create pipelines
    enabled: bool = field(default_factory=lambda: _env_flag("MLENGINE_ENABLED", True))

    # Default verbosity for pipelines that do not set one
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.environ.get("MLENGINE_LOG_LEVEL", LogLevel.ERROR.value))
    )

    # Model hub settings (None = huggingface_hub defaults)
    cache_dir: Optional[str] = field(default_factory=lambda: os.environ.get("MLENGINE_CACHE_DIR"))
    hub_endpoint: Optional[str] = field(default_factory=lambda: os.environ.get("MLENGINE_HUB_ENDPOINT"))
    local_files_only: bool = field(
        default_factory=lambda: _env_flag("MLENGINE_LOCAL_FILES_ONLY", False)
    )

    # Server defaults
    host: str = "127.0.0.1"
    port: int = 8000


# Global engine configuration instance
ENGINE_CONFIG = EngineConfig()


def to_logging_level(level: LogLevel) -> int:
    """Map a LogLevel to a stdlib logging level"""
    return _LEVEL_MAP[LogLevel(level)]


def apply_log_level(level: LogLevel) -> None:
    """
    Set verbosity of the engine's own loggers.

    Only the ``mlengine`` logger hierarchy is touched; third-party
    loggers and global output streams are left alone.
    """
    logging.getLogger(LOGGER_NAME).setLevel(to_logging_level(level))


def setup_logging(verbose: int) -> None:
    """
    Setup logging based on verbosity level.

    Args:
        verbose: Verbosity count (0=WARNING, 1=INFO, 2=DEBUG, 3+=TRACE)
    """
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    elif verbose == 2:
        level = logging.DEBUG
    else:
        level = TRACE

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(LOGGER_NAME).setLevel(level)


ServerLogLevel = Literal["critical", "error", "warning", "info", "debug", "trace"]
