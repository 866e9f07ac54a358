"""Structured logging for tiled pixel retrieval.

A single get_all_pixels or get_raw_pixels call can fan out into thousands
of tile requests. Every event emitted while it runs is stamped with:

- request_id: one per retrieval call, set by Pixels
- pixels_id: the remote pixel set being read
- plane: the (t, z, c) plane currently being assembled, set by
  RegionAssembler and cleared at the start of the next call

Output is either colored console lines or one JSON object per line
(LOG_FORMAT=json), written through the stdlib root logger.
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from omero_tiles.config import settings

# Context variables for correlation IDs
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_pixels_id: ContextVar[int | None] = ContextVar("pixels_id", default=None)
_plane: ContextVar[str | None] = ContextVar("plane", default=None)


def set_correlation_context(
    request_id: str | None = None,
    pixels_id: int | None = None,
    plane: str | None = None,
) -> None:
    """Set correlation IDs for the current context.

    Only the IDs passed are changed; use clear_correlation_context() or
    reset_plane() to drop stale ones.

    Args:
        request_id: Unique identifier for one retrieval call
        pixels_id: Remote pixel set being read
        plane: Plane being fetched, formatted as "t=..,z=..,c=.."
    """
    if request_id is not None:
        _request_id.set(request_id)
    if pixels_id is not None:
        _pixels_id.set(pixels_id)
    if plane is not None:
        _plane.set(plane)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    _request_id.set(None)
    _pixels_id.set(None)
    _plane.set(None)


def reset_plane() -> None:
    """Forget the plane left over from a previous retrieval."""
    _plane.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add correlation IDs to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    request_id = _request_id.get()
    pixels_id = _pixels_id.get()
    plane = _plane.get()

    if request_id is not None:
        event_dict["request_id"] = request_id
    if pixels_id is not None:
        event_dict["pixels_id"] = pixels_id
    if plane is not None:
        event_dict["plane"] = plane

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match. basicConfig is a no-op once the
    # root logger has handlers, so the level is applied separately.
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(getattr(logging, level.upper()))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
