from __future__ import annotations

from fastapi import APIRouter

from nexium.schemas.users import HealthResponse, MessageResponse

router = APIRouter(tags=["Health"])


@router.get("/", response_model=MessageResponse)
def root() -> MessageResponse:
    return MessageResponse(message="NEXIUM")


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        HealthResponse: ``{"status": "healthy"}``.
    """

    return HealthResponse(status="healthy")


@router.get("/api/test", response_model=MessageResponse)
def smoke_test() -> MessageResponse:
    return MessageResponse(message="NEXIUM ON TOP!")
