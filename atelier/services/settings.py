import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.config import settings as app_settings
from atelier.core.exceptions import PersistenceError
from atelier.core.settings_cache import SettingsCache
from atelier.db.models import AuditLog, SystemSettings
from atelier.schemas.settings import PublicStoreSettings, StoreSettings, StoreSettingsUpdate

logger = logging.getLogger(__name__)


DEFAULT_STORE_SETTINGS = {
    "store_name": "ATELIER 7X",
    "store_address": "123 Art Gallery Street, New York, NY 10001",
    "store_phone": "+1 (212) 555-7890",
    "store_email": "contact@atelier7x.com",
    "store_website": "https://atelier7x.com",
    "enable_payment": True,
    "maintenance_mode": False,
    "currency": "INR",
}


def default_store_settings() -> StoreSettings:
    return StoreSettings(**DEFAULT_STORE_SETTINGS)


def _to_store_settings(row: SystemSettings) -> StoreSettings:
    return StoreSettings(
        store_name=row.store_name,
        store_address=row.store_address or "",
        store_phone=row.store_phone or "",
        store_email=row.store_email or "",
        store_website=row.store_website or "",
        enable_payment=row.enable_payment,
        maintenance_mode=row.maintenance_mode,
        currency=row.currency,
        logo_url=row.logo_url,
        primary_color=row.primary_color,
        secondary_color=row.secondary_color,
        accent_color=row.accent_color,
        facebook_url=row.facebook_url,
        twitter_url=row.twitter_url,
        instagram_url=row.instagram_url,
        support_phone=row.support_phone,
        privacy_policy_url=row.privacy_policy_url,
        terms_url=row.terms_url,
    )


async def _get_or_create_row(db: AsyncSession) -> SystemSettings:
    result = await db.execute(select(SystemSettings).order_by(SystemSettings.id).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        logger.info("No store settings found, creating defaults")
        row = SystemSettings(**DEFAULT_STORE_SETTINGS)
        db.add(row)
        await db.commit()
        await db.refresh(row)
    return row


async def load_store_settings(db: AsyncSession) -> StoreSettings:
    return _to_store_settings(await _get_or_create_row(db))


def create_settings_cache() -> SettingsCache:
    return SettingsCache(load_store_settings, ttl_seconds=app_settings.SETTINGS_CACHE_TTL_SECONDS)


async def get_store_settings(cache: SettingsCache, db: AsyncSession) -> StoreSettings:
    """Cached settings; defaults when the database cannot be read. Defaults are never cached."""
    try:
        return await cache.get(db)
    except SQLAlchemyError as e:
        logger.error(f"Error getting store settings: {str(e)}")
        return default_store_settings()


def to_public_settings(store: StoreSettings) -> PublicStoreSettings:
    return PublicStoreSettings(**store.model_dump(include=set(PublicStoreSettings.model_fields)))


async def update_store_settings(
    db: AsyncSession,
    cache: SettingsCache,
    data: StoreSettingsUpdate,
    actor_id: int = None,
) -> StoreSettings:
    row = await _get_or_create_row(db)
    update_data = data.model_dump(exclude_unset=True)
    if "currency" in update_data and update_data["currency"]:
        update_data["currency"] = update_data["currency"].upper()

    for field, value in update_data.items():
        setattr(row, field, value)
    row.updated_at = datetime.utcnow()

    db.add(AuditLog(
        user_id=actor_id,
        action="SETTINGS_UPDATE",
        entity="settings",
        entity_id=row.id,
        audit_data=update_data,
    ))
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Store settings update failed: {str(e)}")
        raise PersistenceError("Failed to update settings") from e
    await db.refresh(row)
    cache.invalidate()
    logger.info(f"Store settings updated: {sorted(update_data)}")

    return _to_store_settings(row)
