"""
Routers for the Cobbler Workshop API.
"""

from . import billing, delivery, enquiries, health, pickup, service

ROUTERS = [
    health.router,
    enquiries.router,
    pickup.router,
    service.router,
    billing.router,
    delivery.router,
]

__all__ = ["ROUTERS"]
