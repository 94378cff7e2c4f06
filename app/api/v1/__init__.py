from fastapi import APIRouter

from app.api.v1.routers import applications, health

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(applications.router)

__all__ = ["api_router"]
