"""Logging configuration for kubelaunch.

Logs go to stderr through stdlib logging so stdout only carries command
output. Human-readable by default, one JSON object per line with --json.
"""

import logging
import sys

import structlog

# -v count to log level
VERBOSITY_LEVELS = {0: "warning", 1: "info"}

# Chatty libraries kept at warning unless running with -vv
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def level_for_verbosity(verbose: int) -> str:
    """Map the -v count to a log level name."""
    return VERBOSITY_LEVELS.get(verbose, "debug")


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: str = "warning", json_output: bool = False) -> None:
    """Configure stdlib logging and structlog.

    Called by the CLI group on every invocation, so it must be safe to run
    more than once.

    Args:
        level: Log level (debug, info, warning, error, critical)
        json_output: Render log lines as JSON
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    quiet_level = log_level if level == "debug" else max(log_level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso" if json_output else "%H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(json_output))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
