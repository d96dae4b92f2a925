"""Error taxonomy for the warp and height-synthesis pipeline."""

import warnings

import structlog

logger = structlog.get_logger()


class ConfigurationError(ValueError):
    """Invalid setup detected before any computation starts."""


class DegenerateInputWarning(UserWarning):
    """Input was empty or degenerate; a fallback was used instead."""


class RunCancelled(Exception):
    """A cooperative cancellation request stopped a long-running pass."""

    def __init__(self, stage: str, rows_completed: int):
        super().__init__(f"{stage} cancelled after {rows_completed} rows")
        self.stage = stage
        self.rows_completed = rows_completed


def warn_degenerate(message: str, **context) -> str:
    """Log and emit a DegenerateInputWarning. Returns the message for bookkeeping."""
    logger.warning(message, **context)
    warnings.warn(message, DegenerateInputWarning, stacklevel=3)
    return message
