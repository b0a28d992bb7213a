"""Deterministic exact-match text edits.

The engine computes new file content from current content and one or more
edit specifications. It performs no I/O: callers read the file, run the
engine, and write the result only when the engine says so.

Matching is literal substring search (``str.count``/``str.replace``), never
regex. An edit applies only when the number of non-overlapping occurrences
equals the expected count, and then replaces every occurrence.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agent_sandbox.exceptions import (
    EditError,
    FileAlreadyExists,
    OccurrenceMismatch,
    TextNotFound,
)
from agent_sandbox.observability import log_decision

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


class EditFailure(str, Enum):
    """Why an edit could not be applied."""

    NOT_FOUND = "not_found"
    OCCURRENCE_MISMATCH = "occurrence_mismatch"
    FILE_ALREADY_EXISTS = "file_already_exists"


_FAILURE_ERRORS: dict[EditFailure, type[EditError]] = {
    EditFailure.NOT_FOUND: TextNotFound,
    EditFailure.OCCURRENCE_MISMATCH: OccurrenceMismatch,
    EditFailure.FILE_ALREADY_EXISTS: FileAlreadyExists,
}


@dataclass(frozen=True)
class EditSpec:
    """One exact-match replacement request.

    Attributes:
        old_text: Literal text to find. Empty means "create the file".
        new_text: Replacement text
        expected_occurrences: How many occurrences must exist (>= 1)
    """

    old_text: str
    new_text: str
    expected_occurrences: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.old_text, str) or not isinstance(self.new_text, str):
            raise TypeError("old_text and new_text must be strings")
        if isinstance(self.expected_occurrences, bool) or not isinstance(
            self.expected_occurrences, int
        ):
            raise TypeError("expected_occurrences must be an integer")
        if self.expected_occurrences < 1:
            raise ValueError(
                f"expected_occurrences must be at least 1, got {self.expected_occurrences}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "old_string": self.old_text,
            "new_string": self.new_text,
            "expected_replacements": self.expected_occurrences,
        }


@dataclass
class EditOutcome:
    """Result of evaluating one EditSpec against content.

    ``content`` is the content after the edit, or the unchanged input on failure.
    """

    spec: EditSpec
    matched_occurrences: int
    applied: bool
    content: str
    failure_reason: EditFailure | None = None
    message: str = ""
    is_new_file: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "edit": self.spec.to_dict(),
            "success": self.applied,
            "occurrences": self.matched_occurrences,
            "error": self.message if not self.applied else None,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
        }

    def to_error(self, context: str = "") -> EditError:
        """Build the exception matching this failed outcome."""
        if self.applied or self.failure_reason is None:
            raise ValueError("Cannot build an error from a successful outcome")
        error_cls = _FAILURE_ERRORS[self.failure_reason]
        message = f"{context}: {self.message}" if context else self.message
        return error_cls(
            message,
            {
                "expected_occurrences": self.spec.expected_occurrences,
                "matched_occurrences": self.matched_occurrences,
                "old_string_preview": _preview(self.spec.old_text),
            },
        )


@dataclass
class SequenceResult:
    """Result of an ordered multi-edit session on one file's content."""

    final_content: str
    outcomes: list[EditOutcome] = field(default_factory=list)
    total_specs: int = 0
    aborted: bool = False

    @property
    def any_applied(self) -> bool:
        return any(outcome.applied for outcome in self.outcomes)

    @property
    def applied_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.applied)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.applied)

    @property
    def total_replacements(self) -> int:
        return sum(o.matched_occurrences for o in self.outcomes if o.applied)

    @property
    def failed_index(self) -> int | None:
        failure = self.first_failure
        return failure[0] if failure else None

    @property
    def first_failure(self) -> tuple[int, EditOutcome] | None:
        for index, outcome in enumerate(self.outcomes):
            if not outcome.applied:
                return index, outcome
        return None


def normalize_line_endings(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return f"{text[:PREVIEW_LENGTH]}..."
    return text


def apply_edit(content: str | None, spec: EditSpec) -> EditOutcome:
    """Evaluate one edit against ``content``.

    Args:
        content: Current file content, or None when the file does not exist
        spec: Edit to evaluate

    Returns:
        EditOutcome; ``applied`` is True only when the occurrence count matched

    Example:
        >>> outcome = apply_edit("a b a", EditSpec("a", "c", expected_occurrences=2))
        >>> outcome.content
        'c b c'
        >>> apply_edit("a b a", EditSpec("a", "c")).failure_reason
        <EditFailure.OCCURRENCE_MISMATCH: 'occurrence_mismatch'>
    """
    old_text = normalize_line_endings(spec.old_text)
    new_text = normalize_line_endings(spec.new_text)

    if content is None:
        if old_text == "":
            log_decision(logger, "created", "<new file>", length=len(new_text))
            return EditOutcome(
                spec=spec,
                matched_occurrences=1,
                applied=True,
                content=new_text,
                message="New file content created",
                is_new_file=True,
            )
        return EditOutcome(
            spec=spec,
            matched_occurrences=0,
            applied=False,
            content="",
            failure_reason=EditFailure.NOT_FOUND,
            message="File not found. Use an empty old_string to create a new file.",
        )

    current = normalize_line_endings(content)

    if old_text == "":
        return EditOutcome(
            spec=spec,
            matched_occurrences=0,
            applied=False,
            content=current,
            failure_reason=EditFailure.FILE_ALREADY_EXISTS,
            message="File already exists, cannot create it with an empty old_string.",
        )

    occurrences = current.count(old_text)

    if occurrences == 0:
        log_decision(logger, "not found", _preview(old_text))
        return EditOutcome(
            spec=spec,
            matched_occurrences=0,
            applied=False,
            content=current,
            failure_reason=EditFailure.NOT_FOUND,
            message=(
                f'Text not found: "{_preview(old_text)}". 0 occurrences of old_string found. '
                "Ensure exact text match including whitespace and indentation."
            ),
        )

    if occurrences != spec.expected_occurrences:
        log_decision(
            logger,
            "count mismatch",
            _preview(old_text),
            expected=spec.expected_occurrences,
            found=occurrences,
        )
        return EditOutcome(
            spec=spec,
            matched_occurrences=occurrences,
            applied=False,
            content=current,
            failure_reason=EditFailure.OCCURRENCE_MISMATCH,
            message=(
                f"Expected {spec.expected_occurrences} replacement(s) but found "
                f"{occurrences} occurrence(s)."
            ),
        )

    log_decision(logger, "applied", _preview(old_text), replacements=occurrences)
    return EditOutcome(
        spec=spec,
        matched_occurrences=occurrences,
        applied=True,
        content=current.replace(old_text, new_text),
        message=f"Replaced {occurrences} occurrence(s)",
    )


def apply_sequence(
    content: str | None, specs: Iterable[EditSpec], fail_fast: bool = True
) -> SequenceResult:
    """Apply edits in order, each against the output of the previous one.

    Args:
        content: Current file content, or None when the file does not exist
        specs: Edits in declaration order
        fail_fast: Stop at the first failure. The caller must not write when
            the result is ``aborted``.

    Returns:
        SequenceResult with the accumulated content and one outcome per
        evaluated spec (specs after an aborting failure are not evaluated)

    Example:
        >>> result = apply_sequence("X", [EditSpec("X", "Y"), EditSpec("Y", "Z")])
        >>> result.final_content
        'Z'
    """
    specs = list(specs)
    current = content
    result = SequenceResult(
        final_content=normalize_line_endings(content) if content is not None else "",
        total_specs=len(specs),
    )

    for index, spec in enumerate(specs):
        outcome = apply_edit(current, spec)
        result.outcomes.append(outcome)

        if outcome.applied:
            current = outcome.content
            result.final_content = outcome.content
            continue

        logger.debug(f"Edit {index + 1}/{len(specs)} failed: {outcome.message}")
        if fail_fast:
            result.aborted = True
            break

    return result
