"""
Command-line interface for mlengine.

Commands:
- tasks: built-in tasks and their default resources
- run: initialize one pipeline and run a single request
- serve: start the HTTP server
"""

import sys
import argparse
import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

from .core.config import ENGINE_CONFIG, LogLevel, ServerLogLevel, setup_logging
from .core.engine_manager import get_engine_manager
from .core.errors import PipelineError
from .backends.pipelines import PipelineOptions

logger = logging.getLogger(__name__)


class ExitCode(int, Enum):
    """CLI exit codes"""
    SUCCESS = 0
    ERROR = 1
    INVALID_ARGS = 2
    NOT_IMPLEMENTED = 3


class OutputFormat(str, Enum):
    """Output format options"""
    TEXT = "text"
    JSON = "json"


def _pipeline_log_level(verbose: int) -> Optional[LogLevel]:
    """Keep pipelines from muting what -v asked for"""
    if verbose >= 3:
        return LogLevel.TRACE
    if verbose >= 1:
        return LogLevel.DEBUG
    return None


def _server_log_level(verbose: int) -> ServerLogLevel:
    if verbose >= 3:
        return "trace"
    if verbose == 2:
        return "debug"
    if verbose == 1:
        return "info"
    return "warning"


def _build_request(args) -> Any:
    """Request payload from run arguments"""
    if args.arg:
        return {"args": args.arg, "options": {}}
    request: Dict[str, Any] = {}
    if args.url:
        request["url"] = args.url
    if args.data is not None:
        request["data"] = args.data
    return request


def cmd_tasks(args) -> int:
    """
    List built-in tasks.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code
    """
    try:
        tasks = get_engine_manager().registry.describe()

        if args.format == OutputFormat.JSON.value:
            print(json.dumps(tasks, indent=2))
        else:
            print("=== Built-in Tasks ===\n")
            for name, info in tasks.items():
                print(f"{name} ({info['mode']})")
                for key in ("model_id", "tokenizer_id", "processor_id"):
                    if info[key]:
                        print(f"  {key}: {info[key]}")
            print("\nAny other task name runs through the transformers pipeline backend.")

        return ExitCode.SUCCESS.value

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ERROR.value


async def _run_once(options: PipelineOptions, request: Any):
    manager = get_engine_manager()
    try:
        return await manager.run(options, request)
    finally:
        await manager.destroy()


def cmd_run(args) -> int:
    """
    Run one request through a pipeline.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code
    """
    fields: Dict[str, Any] = {"task_name": args.task}
    if args.model_id:
        fields["model_id"] = args.model_id
    if args.revision:
        fields["model_revision"] = args.revision
    level = _pipeline_log_level(args.verbose)
    if level is not None:
        fields["log_level"] = level

    try:
        options = PipelineOptions(**fields)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.INVALID_ARGS.value

    request = _build_request(args)
    logger.debug(f"Running {options.task_name} with request fields: {sorted(request)}")

    try:
        result = asyncio.run(_run_once(options, request))
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ERROR.value
    except Exception as e:
        logger.debug("Pipeline run failed", exc_info=True)
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return ExitCode.ERROR.value

    if args.format == OutputFormat.JSON.value:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print(result.output)
        metrics = ", ".join(f"{k}={v:.1f}ms" for k, v in result.metrics.to_dict().items())
        print(f"\n[{metrics}]")

    return ExitCode.SUCCESS.value


def cmd_serve(args) -> int:
    """
    Start the HTTP server.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code
    """
    import uvicorn

    from .api import app

    uvicorn.run(app, host=args.host, port=args.port, log_level=_server_log_level(args.verbose))
    return ExitCode.SUCCESS.value


def main() -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="mlengine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s tasks                                     # List built-in tasks
  %(prog)s run --task moz-echo --data hello          # Echo a request
  %(prog)s run --task moz-image-to-text --url cat.jpg
  %(prog)s run --task summarization --model-id test-echo --arg hello
  %(prog)s serve --port 8000                         # Start the HTTP server
        """
    )

    # Global options
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (can be repeated: -v, -vv, -vvv)'
    )
    parser.add_argument(
        '--format',
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help='Output format'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    subparsers.add_parser(
        'tasks',
        help='List built-in tasks'
    )

    run_parser = subparsers.add_parser(
        'run',
        help='Run one request through a pipeline'
    )
    run_parser.add_argument('--task', required=True, help='Task name')
    run_parser.add_argument('--model-id', help='Model identifier override')
    run_parser.add_argument('--revision', help='Model revision')
    run_parser.add_argument('--data', help='Request data (echo)')
    run_parser.add_argument('--url', help='Image URL, data URL or file path')
    run_parser.add_argument(
        '--arg',
        action='append',
        help='Positional argument for generic tasks (repeatable)'
    )

    serve_parser = subparsers.add_parser(
        'serve',
        help='Start the HTTP server'
    )
    serve_parser.add_argument('--host', default=ENGINE_CONFIG.host, help='Bind address')
    serve_parser.add_argument('--port', type=int, default=ENGINE_CONFIG.port, help='Port')

    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return ExitCode.SUCCESS.value

    if args.command == 'tasks':
        return cmd_tasks(args)
    elif args.command == 'run':
        return cmd_run(args)
    elif args.command == 'serve':
        return cmd_serve(args)
    else:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return ExitCode.INVALID_ARGS.value


if __name__ == '__main__':
    sys.exit(main())
