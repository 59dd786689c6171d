"""API v1 router aggregating all route modules."""

from fastapi import APIRouter

from app.api.v1.routes import batch_history

api_router = APIRouter()

api_router.include_router(batch_history.router)
