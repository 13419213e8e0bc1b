from fastapi import APIRouter
from sqlconsole.api.endpoints import console, health

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(console.router)
api_router.include_router(health.router)
