# clinic/core/errors.py
from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from fastapi import HTTPException, status


class ClinicError(Exception):
    """
    Base class for business errors raised by the services.
    Routers convert them with `to_http()`.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# 400 family
class ValidationError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class MissingFields(ValidationError):
    default_message = "All fields are required"

    def __init__(self, fields: Sequence[str] = ()):
        self.fields = list(fields)
        super().__init__()


class InvalidFormat(ValidationError):
    default_message = "Invalid format"


class InvalidValue(ValidationError):
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} must be a number greater than 0")


class AppointmentCanceled(ValidationError):
    default_message = "Appointment is canceled"


class PastDate(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Date cannot be in the past"


class SchedulingConflict(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The dentist has a conflicting appointment during this time slot"

    def __init__(
        self,
        practitioner_id: UUID,
        start: datetime,
        end: datetime,
        conflicting_ids: Sequence[UUID] = (),
    ):
        self.practitioner_id = practitioner_id
        self.start = start
        self.end = end
        self.conflicting_ids = list(conflicting_ids)
        super().__init__()


# 404
class NotFound(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity} not found")


# 500 family
class InvariantViolation(ClinicError):
    """Stored invoice total no longer matches its line items."""


class UnexpectedError(ClinicError):
    pass


def to_http(exc: ClinicError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
