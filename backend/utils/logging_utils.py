"""
Structured logging for audit pipeline steps

Records carry ``step``, ``building_id`` and ``status`` extras so one
building's run can be followed through the logs.
"""

import time
import logging
from typing import Dict, Any, Optional, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def _subject(step: str, context: Dict[str, Any]) -> str:
    building_id = context.get('building_id')
    return f"{step} for building {building_id}" if building_id else step


def _extra(step: str, context: Dict[str, Any], status: str, **fields) -> Dict[str, Any]:
    extra = {
        'step': step,
        'building_id': context.get('building_id', '-'),
        'context': context,
        'status': status,
    }
    extra.update(fields)
    return extra


class Timer:
    """Times a block; blocks slower than ``warn_after`` seconds log a warning."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None,
                 warn_after: Optional[float] = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.warn_after = warn_after
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        if exc_type is not None:
            self.logger.warning(f"{self.name} failed after {self.duration:.2f}s")
        elif self.warn_after is not None and self.duration > self.warn_after:
            self.logger.warning(f"{self.name} took {self.duration:.2f}s (over {self.warn_after:.0f}s)")
        else:
            self.logger.info(f"{self.name} completed in {self.duration:.2f}s")


@contextmanager
def log_operation(step: str, context: Dict[str, Any],
                  logger: Optional[logging.Logger] = None) -> Iterator[Dict[str, Any]]:
    """
    Log start, completion or failure of one audit step with its duration.

    Yields a dict; whatever the step puts in it is logged with the completion
    record.

    Usage:
        with log_operation("initial_audit", {"building_id": building.id}) as outcome:
            outcome["rooms"] = len(rooms)
    """
    logger = logger or logging.getLogger(__name__)
    subject = _subject(step, context)
    outcome: Dict[str, Any] = {}
    start_time = time.perf_counter()

    logger.info(f"Starting {subject}", extra=_extra(step, context, 'started'))

    try:
        yield outcome
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(f"Failed {subject} after {duration:.2f}s: {e}", extra=_extra(
            step, context, 'failed',
            duration_seconds=duration,
            error_type=type(e).__name__,
        ))
        raise

    duration = time.perf_counter() - start_time
    summary = ", ".join(f"{key}={value}" for key, value in outcome.items())
    logger.info(
        f"Completed {subject} in {duration:.2f}s" + (f" ({summary})" if summary else ""),
        extra=_extra(step, context, 'completed', duration_seconds=duration, outcome=outcome),
    )


def log_with_context(level: str, message: str, context: Dict[str, Any],
                     logger: Optional[logging.Logger] = None) -> None:
    """Log ``message`` at ``level`` with ``context`` attached as an extra"""
    logger = logger or logging.getLogger(__name__)
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(message, extra={'context': context, 'building_id': context.get('building_id', '-')})
