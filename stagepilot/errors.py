"""Exception hierarchy raised by the compilation core.

Every error propagates unmodified to the caller. Only the command line layer
turns them into messages and exit codes.
"""

from __future__ import annotations

from collections.abc import Iterable


class StagePilotError(Exception):
    """Base class for every error raised while compiling a document."""


class ConfigurationError(StagePilotError):
    """Inconsistent records: wrong preset types, missing leader, bad project fields."""


class NotFoundError(ConfigurationError):
    """A repository lookup missed."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ValidationError(StagePilotError):
    """A business rule was violated. Holds every collected message."""

    def __init__(self, errors: Iterable[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class DrumSetupValidationError(ValidationError):
    """A drum setup count or pad option is out of range."""

    def __str__(self) -> str:
        return f"Invalid drum setup: {' '.join(self.errors)}"


class OverrideCollisionError(ValidationError):
    """An override tried to add an input whose key already exists."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f'Preset override collision for input key "{key}".')


class CapacityError(ValidationError):
    """Input channel, monitor mix or group order limits were exceeded."""


class LayoutOverflowError(StagePilotError):
    """Stage plan content does not fit its box or the page."""


class InternalInvariantError(StagePilotError):
    """A resolver produced output that breaks its own guarantees."""
