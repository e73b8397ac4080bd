"""
API v1 Router

Every endpoint resolves the caller's account and effective role first.
"""

from fastapi import APIRouter
from . import delegations, projects, requests, tasks, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(delegations.router, prefix="/delegations", tags=["Delegations"])
router.include_router(requests.router, prefix="/requests", tags=["Requests"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/users",
            "/users/me",
            "/tasks",
            "/projects",
            "/delegations",
            "/requests",
        ],
    }
