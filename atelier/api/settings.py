from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.api.dependencies import get_settings_cache
from atelier.core.settings_cache import SettingsCache
from atelier.db.session import get_db
from atelier.schemas.settings import PublicStoreSettings
from atelier.services.settings import get_store_settings, to_public_settings

router = APIRouter(prefix="/api", tags=["settings"])


@router.get("/settings", response_model=PublicStoreSettings)
async def public_settings(
    cache: SettingsCache = Depends(get_settings_cache),
    db: AsyncSession = Depends(get_db)
):
    store = await get_store_settings(cache, db)
    return to_public_settings(store)
