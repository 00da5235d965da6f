"""Health check endpoints for the SubFeed API."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Health check endpoint.

    Returns:
        A simple status object indicating the service is healthy
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    The service is ready once the lifespan handler has wired up the feed
    aggregator.
    """
    return {"ok": hasattr(request.app.state, "aggregator")}
