# routers/health.py
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health check")
async def healthcheck(request: Request):
    gateway = request.app.state.gateway
    return {"status": "ok", "connections": len(gateway.presence)}
