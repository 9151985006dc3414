"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backoffice.app.api.v1.endpoints import customer_ledger

router = APIRouter()

# Customer A/R ledger endpoints
router.include_router(customer_ledger.router)
