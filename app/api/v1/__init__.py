"""API v1 router aggregator."""

from fastapi import APIRouter

from app.api.v1 import admin, commissions, inquiries, listings, notifications

api_router = APIRouter(tags=["API v1"])

# Include all API routers
api_router.include_router(listings.router, prefix="/listings", tags=["Listings"])
api_router.include_router(inquiries.router, prefix="/inquiries", tags=["Inquiries"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])
api_router.include_router(admin.router)
