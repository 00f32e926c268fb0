"""Error kinds raised by the dealer core.

Every error is raised synchronously to the caller; nothing in the core retries.
The tool layer turns :class:`DealerError` subclasses into ``Error: ...`` strings.
"""

from __future__ import annotations

from dataclasses import dataclass


class DealerError(Exception):
    """Base class for all domain errors."""


@dataclass(frozen=True)
class FieldError:
    """One violated field constraint."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(DealerError):
    """Input failed one or more field constraints.

    Carries every violation found, not just the first.
    """

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("Validation failed: " + "; ".join(str(e) for e in self.errors))

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        return {"errors": [{"field": e.field, "message": e.message} for e in self.errors]}


class NotFoundError(DealerError):
    """A referenced entity id does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(DealerError):
    """A state precondition was violated (wrong status, duplicate key, blocked delete)."""
