"""Error taxonomy for the resolution pipeline."""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for resolution pipeline errors."""


class SourceFailure(ResolutionError):
    """One source could not produce a value (timeout, HTTP error, bad payload, extraction miss)."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class InsufficientData(ResolutionError):
    """Fewer successful observations than the configured minimum."""

    def __init__(self, succeeded: int, required: int, dispatched: int):
        super().__init__(f"insufficient data: {succeeded}/{dispatched} sources usable, need {required}")
        self.succeeded = succeeded
        self.required = required
        self.dispatched = dispatched


class ConsensusBelowThreshold(ResolutionError):
    """Consensus confidence did not reach the acceptance threshold."""

    def __init__(self, confidence: float, threshold: float):
        super().__init__(f"confidence {confidence:g} below threshold {threshold:g}")
        self.confidence = confidence
        self.threshold = threshold


class CollaboratorFailure(ResolutionError):
    """Market source or resolution sink failed."""


class ConfigurationError(ResolutionError):
    """Invalid or missing configuration. Fatal at startup."""
