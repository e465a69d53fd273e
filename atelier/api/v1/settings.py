from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.api.dependencies import get_current_admin, get_settings_cache
from atelier.core.exceptions import PersistenceError
from atelier.core.settings_cache import SettingsCache
from atelier.db.models import User
from atelier.db.session import get_db
from atelier.schemas.settings import StoreSettings, StoreSettingsUpdate
from atelier.services.settings import get_store_settings, update_store_settings

router = APIRouter(prefix="/api/v1/admin/settings", tags=["settings"])


@router.get("", response_model=StoreSettings)
async def read_settings(
    admin: User = Depends(get_current_admin),
    cache: SettingsCache = Depends(get_settings_cache),
    db: AsyncSession = Depends(get_db)
):
    return await get_store_settings(cache, db)


@router.put("", response_model=StoreSettings)
async def write_settings(
    data: StoreSettingsUpdate,
    admin: User = Depends(get_current_admin),
    cache: SettingsCache = Depends(get_settings_cache),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await update_store_settings(db, cache, data, actor_id=admin.id)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
