"""Logging helpers for guard and engine decisions.

Decisions are reported after they are made. Reporting is a side channel:
a failure inside a handler or while formatting fields never changes the
decision that was reported.
"""

import logging
from typing import Any


def log_decision(
    logger: logging.Logger,
    decision: str,
    subject: str,
    level: int = logging.DEBUG,
    **fields: Any,
) -> None:
    """Report a guard/engine decision to ``logger``.

    Args:
        logger: Module logger of the component that decided
        decision: Short verb such as "allowed", "rejected", "applied"
        subject: What was decided on (path, command, file)
        level: Logging level
        **fields: Extra context rendered as key=value pairs

    Example:
        >>> log_decision(
        ...     logger, "rejected", "../etc/passwd", logging.WARNING, kind="path_traversal"
        ... )
    """
    try:
        if not logger.isEnabledFor(level):
            return
        extra = " ".join(f"{key}={value!r}" for key, value in fields.items())
        logger.log(level, f"{decision}: {subject!r} {extra}".rstrip())
    except Exception:
        # Best-effort: reporting must never alter a validation outcome
        pass
