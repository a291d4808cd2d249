from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..settings import Settings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
	return {"ok": True, "env": settings.app_env, "time": datetime.now(timezone.utc).isoformat()}
