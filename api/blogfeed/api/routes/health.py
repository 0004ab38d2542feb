from fastapi import APIRouter, Depends

from blogfeed.core.config import Settings, get_settings

router = APIRouter()


def _status(settings: Settings) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name, "environment": settings.environment}


@router.get("/")
async def root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return _status(settings)


@router.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return _status(settings)
