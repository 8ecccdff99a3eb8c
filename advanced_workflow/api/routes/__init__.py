"""API Routes module"""
from fastapi import APIRouter

from .definitions import router as definitions_router
from .instances import router as instances_router

# Main API router
api_router = APIRouter()

api_router.include_router(definitions_router, prefix="/definitions", tags=["Definitions"])
api_router.include_router(instances_router, prefix="/instances", tags=["Instances"])

__all__ = ["api_router"]
