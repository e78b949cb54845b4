"""
Health endpoints.

- /health_check: liveness, 200 with an empty body
- /health/ready: readiness, 200 only while the database answers
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse


def create_health_router(ping_database: Callable[[], None]) -> APIRouter:
    """
    Create FastAPI router for health endpoints.

    Args:
        ping_database: Raises if the database cannot serve queries
    """
    router = APIRouter(tags=["health"])

    @router.get("/health_check", response_class=Response)
    def health_check() -> Response:
        """Process is up and serving requests."""
        return Response(status_code=status.HTTP_200_OK)

    @router.get(
        "/health/ready",
        response_model=None,
        responses={
            200: {"description": "Service is ready to accept traffic"},
            503: {"description": "Database unavailable"},
        },
    )
    def readiness_check() -> JSONResponse:
        try:
            ping_database()
        except Exception as e:
            return JSONResponse(
                content={"ready": False, "database": f"error: {e}"},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return JSONResponse(content={"ready": True, "database": "ok"})

    return router
