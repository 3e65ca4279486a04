"""
BookAPI Backend - Health Check Route
=====================================

What:  Liveness check for load balancers and orchestrators.
How:   Always answers 200 "OK" as plain text. The database is not consulted,
       so a database outage does not take the instance out of rotation.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/healthz",
    response_class=PlainTextResponse,
    summary="Liveness check",
)
async def healthz() -> PlainTextResponse:
    return PlainTextResponse("OK")
