"""
Centralized logging configuration for the signal board.

All components log through structlog with key/value context. Call
configure_logging() once at process start; modules obtain loggers with
get_logger(__name__). Records from stdlib loggers (uvicorn, asyncio) are
rendered by the same renderer so server output stays uniform.
"""
import logging
import sys
from typing import IO, Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

# Handler installed by the last configure_logging() call
_board_handler: Optional[logging.Handler] = None


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger for the board.

    Calling it again replaces the handler installed by the previous call
    and leaves other root handlers alone.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per line instead of console output
        stream: Output stream, stdout by default
    """
    global _board_handler

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    stream = stream or sys.stdout
    if format_json:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    if _board_handler is not None:
        root.removeHandler(_board_handler)
    root.addHandler(handler)
    root.setLevel(log_level)
    _board_handler = handler

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **bindings: Any) -> FilteringBoundLogger:
    """
    Get a structlog logger with optional initial context.

    The logger stays lazy, so module-level loggers pick up the
    configuration applied later by configure_logging().
    """
    return structlog.get_logger(name, **bindings)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound with state engine context.

    Every signal merge decision logged through this logger carries
    subsystem and audit markers so it can be filtered downstream.
    """
    return get_logger(name, subsystem="state_engine", audit_trail=True)


def get_viewer_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound with viewer transport context."""
    return get_logger(name, subsystem="viewers")


def log_signal_transition(
    logger: FilteringBoundLogger,
    symbol: str,
    channel_key: str,
    outcome: str,
    repeat_count: Optional[int] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a signal merge decision with standardized format.

    Args:
        logger: Structlog logger instance
        symbol: Symbol the event targeted
        channel_key: Channel the event resolved to
        outcome: Transition outcome value (updated, ignored, rejected)
        repeat_count: Repeat count written, when the channel was updated
        context: Additional context data
    """
    bound_logger = logger.bind(
        symbol=symbol,
        channel_key=channel_key,
        outcome=outcome,
        repeat_count=repeat_count,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if outcome == "updated":
        bound_logger.info("Signal transition")
    else:
        bound_logger.warning("Signal transition not applied")
