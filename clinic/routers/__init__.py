# clinic/routers/__init__.py
from . import health
from . import auth
from . import patients
from . import rooms
from . import appointments
from . import treatments
from . import invoices
from . import line_items

__all__ = [
    "health",
    "auth",
    "patients",
    "rooms",
    "appointments",
    "treatments",
    "invoices",
    "line_items",
]
