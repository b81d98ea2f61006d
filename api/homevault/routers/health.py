from fastapi import APIRouter, Depends

from homevault.core.backend import BackendClient, get_backend

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/backend")
async def health_backend(backend: BackendClient = Depends(get_backend)):
    await backend.ping()
    return {"status": "ok", "backend": "connected"}
