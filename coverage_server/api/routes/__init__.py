from fastapi import APIRouter
from coverage_server.api.routes import coverage, health, info

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(info.router)
api_router.include_router(coverage.router)
