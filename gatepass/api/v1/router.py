"""Main API router for v1."""
from fastapi import APIRouter

from gatepass.api.v1.endpoints import attendees, scans, credentials

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(scans.router, prefix="/scans", tags=["Check-in"])
api_router.include_router(attendees.router, prefix="/attendees", tags=["Check-in"])
api_router.include_router(credentials.router, tags=["Credentials"])
