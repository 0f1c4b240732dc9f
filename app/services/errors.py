"""Domain exceptions shared by the services and repositories.

Services raise these; routers translate them into HTTP responses.  The
``Duplicate*`` / ``*CollisionError`` family is raised by repositories on
uniqueness violations and is always handled inside the service layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from app.models.progress import ProgressSnapshot


class DomainError(Exception):
    """Base class for errors the API layer maps to a status code."""


class NotFoundError(DomainError):
    def __init__(self, entity: str, entity_id: UUID | str) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class NotCompleteError(DomainError):
    """Certificate requested before every active lesson was completed."""

    def __init__(self, snapshot: ProgressSnapshot) -> None:
        super().__init__(
            f"course not complete: {snapshot.completed_lessons}/"
            f"{snapshot.total_lessons} lessons ({snapshot.progress_percentage}%)"
        )
        self.snapshot = snapshot


class InvalidTransitionError(DomainError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"cannot move enrollment from {current} to {target}")
        self.current = current
        self.target = target


class IssuanceFailedError(DomainError):
    """Certificate insert failed for a reason other than a uniqueness race."""


class ValidationError(DomainError):
    pass


class WebhookSignatureError(DomainError):
    """Payment webhook payload failed signature verification or decoding."""


# --- Repository conflicts (never reach HTTP) ---


class DuplicateCertificateError(Exception):
    """A certificate already exists for this enrollment."""


class CertificateCodeCollisionError(Exception):
    """The generated certificate code is already taken."""


class DuplicateEnrollmentError(Exception):
    """An enrollment already exists for this (learner, course) pair."""


class DuplicateTransactionError(Exception):
    """A transaction with this gateway transaction id was already recorded."""
