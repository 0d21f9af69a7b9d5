# app/api/v1/router.py
"""Main API router combining all v1 endpoints"""
from fastapi import APIRouter

from app.api.v1 import auto_messages, groups, movements, webhooks

api_router = APIRouter()

# Include all routers
api_router.include_router(groups.router, prefix="/groups", tags=["Groups"])
api_router.include_router(auto_messages.router, prefix="/auto-messages", tags=["Auto Messages"])
api_router.include_router(movements.router, prefix="/movements", tags=["Movements"])
api_router.include_router(webhooks.router, prefix="/webhook", tags=["Webhooks"])
