from fastapi import APIRouter
from performance_analytics.routers import analytics

# Centralized API router hub: main.py only imports this single router.
api_router = APIRouter()

api_router.include_router(analytics.router, tags=["Analytics"])
