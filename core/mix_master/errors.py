"""
core/mix_master/errors.py — Error taxonomy for the mix/master engine.

Hierarchy::

    MixMasterError
    ├── InputError                     (also a ValueError) — caller's fault, never retried
    └── CollaboratorUnavailableError   — renderer / meter absent or unreachable
        ├── CollaboratorTimeoutError   — blocking call exceeded its timeout
        └── CollaboratorParseError     — external tool produced unreadable output

Rendering operations let CollaboratorUnavailableError propagate. Loudness
measurement catches it and falls back to the internal meter, tagging the
result as degraded.
"""

from __future__ import annotations


class MixMasterError(Exception):
    """Base class for every error raised by the engine."""


class InputError(MixMasterError, ValueError):
    """Malformed, empty or undecodable input, or an out-of-range parameter."""


class CollaboratorUnavailableError(MixMasterError):
    """An external collaborator could not serve the request.

    Args:
        collaborator: Short name of the collaborator (e.g. ``"ffmpeg"``).
        reason: Human-readable cause.
    """

    def __init__(self, collaborator: str, reason: str) -> None:
        """Initialize with collaborator name and failure reason."""
        self.collaborator = collaborator
        self.reason = reason
        super().__init__(f"{collaborator} unavailable: {reason}")


class CollaboratorTimeoutError(CollaboratorUnavailableError):
    """A blocking collaborator call did not finish within its timeout."""

    def __init__(self, collaborator: str, timeout_seconds: float) -> None:
        """Initialize with collaborator name and the timeout that expired."""
        self.timeout_seconds = timeout_seconds
        super().__init__(collaborator, f"timed out after {timeout_seconds:.1f}s")


class CollaboratorParseError(CollaboratorUnavailableError):
    """External tool output could not be parsed into a measurement."""
