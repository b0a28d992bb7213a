"""Exact-match text edit engine."""

from agent_sandbox.editing.engine import (
    EditFailure,
    EditOutcome,
    EditSpec,
    SequenceResult,
    apply_edit,
    apply_sequence,
    normalize_line_endings,
)

__all__ = [
    "EditFailure",
    "EditOutcome",
    "EditSpec",
    "SequenceResult",
    "apply_edit",
    "apply_sequence",
    "normalize_line_endings",
]
