"""
Health Check Router

Endpoints:
    GET /        - Plain-text liveness ("OK")
    GET /health  - JSON liveness
"""

from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "OK"


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {"ok": True}
