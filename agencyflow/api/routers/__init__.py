"""API routers for AgencyFlow."""

from . import agency
from . import campaigns
from . import clients
from . import client_portal
from . import creators
from . import deliverables
from . import health
from . import internal
from . import payments
from . import projects

__all__ = [
    "agency",
    "campaigns",
    "clients",
    "client_portal",
    "creators",
    "deliverables",
    "health",
    "internal",
    "payments",
    "projects",
]
