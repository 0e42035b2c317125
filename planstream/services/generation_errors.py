"""Errors raised while generating a plan."""
from __future__ import annotations

__all__ = [
    "GenerationInProgressError",
    "ParseFailure",
    "PlanGenerationError",
    "RetriesExhausted",
    "StreamTransportError",
    "ValidationShortfall",
]


class PlanGenerationError(RuntimeError):
    """Base class for plan generation failures."""


class StreamTransportError(PlanGenerationError):
    """The text-generation service could not be reached or rejected the request."""


class ParseFailure(PlanGenerationError):
    """The generated text contained no month or week headers."""

    def __init__(self, message: str = "generated text contained no recognizable plan structure", *, expected: int = 0) -> None:
        super().__init__(message)
        self.found = 0
        self.expected = expected


class ValidationShortfall(PlanGenerationError):
    """Too few unique tasks survived parsing and deduplication."""

    def __init__(self, found: int, expected: int) -> None:
        super().__init__(f"too few unique tasks: found {found}, expected {expected}")
        self.found = found
        self.expected = expected


class RetriesExhausted(PlanGenerationError):
    """Every attempt ended in a parse failure or shortfall."""

    def __init__(self, found: int, expected: int, attempts: int) -> None:
        super().__init__(
            f"insufficient unique tasks: found {found}, expected {expected} after {attempts} attempts"
        )
        self.found = found
        self.expected = expected
        self.attempts = attempts


class GenerationInProgressError(PlanGenerationError):
    """A generation is already running on this session."""
