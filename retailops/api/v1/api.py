"""
API v1 router aggregation
Combines all v1 route handlers into a single router
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
from fastapi import APIRouter

from retailops.api.v1.routes import (
    coverage,
    employees,
    health,
    inventory,
    leaves,
    sales,
    schedule,
    targets,
    tasks,
)
from retailops.core.config import settings


# All v1 routes are prefixed with /api/v1
api_router = APIRouter(prefix=settings.API_V1_PREFIX)

api_router.include_router(health.router)
api_router.include_router(schedule.router)
api_router.include_router(coverage.router)
api_router.include_router(targets.router)
api_router.include_router(sales.router)
api_router.include_router(leaves.router)
api_router.include_router(employees.router)
api_router.include_router(tasks.router)
api_router.include_router(inventory.router)
