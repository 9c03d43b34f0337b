from __future__ import annotations

from fastapi import APIRouter

from social_chat.api.deps import HubDep

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(hub: HubDep) -> dict[str, str | int]:
    return {"status": "ok", "clients": hub.client_count}
