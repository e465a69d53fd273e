from pydantic import BaseModel, Field, model_validator
from typing import Optional


class StoreSettings(BaseModel):
    store_name: str
    store_address: str = ""
    store_phone: str = ""
    store_email: str = ""
    store_website: str = ""
    enable_payment: bool = True
    maintenance_mode: bool = False
    currency: str = "INR"
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    facebook_url: Optional[str] = None
    twitter_url: Optional[str] = None
    instagram_url: Optional[str] = None
    support_phone: Optional[str] = None
    privacy_policy_url: Optional[str] = None
    terms_url: Optional[str] = None

    class Config:
        from_attributes = True


class PublicStoreSettings(BaseModel):
    store_name: str
    store_email: str
    store_phone: str
    currency: str
    enable_payment: bool
    maintenance_mode: bool
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_url: Optional[str] = None
    facebook_url: Optional[str] = None
    twitter_url: Optional[str] = None
    instagram_url: Optional[str] = None


# Columns that may be left out of an update but never cleared
REQUIRED_SETTINGS_FIELDS = ("store_name", "currency", "enable_payment", "maintenance_mode")


class StoreSettingsUpdate(BaseModel):
    store_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    store_address: Optional[str] = None
    store_phone: Optional[str] = None
    store_email: Optional[str] = None
    store_website: Optional[str] = None
    enable_payment: Optional[bool] = None
    maintenance_mode: Optional[bool] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    facebook_url: Optional[str] = None
    twitter_url: Optional[str] = None
    instagram_url: Optional[str] = None
    support_phone: Optional[str] = None
    privacy_policy_url: Optional[str] = None
    terms_url: Optional[str] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field in REQUIRED_SETTINGS_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self
