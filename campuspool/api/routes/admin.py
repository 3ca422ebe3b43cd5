"""
Operational endpoints
=====================

GET /api/health -- simple health check
"""

from fastapi import APIRouter

from campuspool.api.schemas import HealthResponse

router = APIRouter(tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
