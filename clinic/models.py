# clinic/models.py
# Import every model module so Base.metadata knows all tables
# (create_all, Alembic autogenerate).
from clinic.modules.users.models import AuditLog, User, UserRole
from clinic.modules.patients.models import Patient
from clinic.modules.rooms.models import Room
from clinic.modules.appointments.models import Appointment, ApptStatus
from clinic.modules.treatments.models import Treatment
from clinic.modules.billing.models import (
    Invoice,
    InvoiceLineItem,
    InvoiceSequence,
    InvoiceStatus,
)

__all__ = [
    "AuditLog",
    "User",
    "UserRole",
    "Patient",
    "Room",
    "Appointment",
    "ApptStatus",
    "Treatment",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceSequence",
    "InvoiceStatus",
]
