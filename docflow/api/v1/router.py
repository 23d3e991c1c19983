from fastapi import APIRouter

from docflow.api.v1.endpoints import documents, jobs, uploads, workspaces

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(uploads.router, prefix="/uploads", tags=["Uploads"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(workspaces.router, prefix="/workspaces", tags=["Workspaces"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])

__all__ = ["api_router"]
