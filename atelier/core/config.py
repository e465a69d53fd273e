from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./atelier.db"

    # Session (signed cookie that also carries the cart)
    SESSION_SECRET_KEY: str
    SESSION_MAX_AGE: int = 3600 * 24 * 30

    # Shop Configuration
    SHOP_NAME: str = "ATELIER 7X"
    CART_STORAGE_KEY: str = "atelier-cart"
    # Encoded size the cart may take inside the session cookie (browsers cap cookies at 4096 bytes)
    CART_COOKIE_MAX_BYTES: int = 3800

    # Store settings cache
    SETTINGS_CACHE_TTL_SECONDS: int = 300

    # Inventory
    INVENTORY_RECENT_WINDOW_DAYS: int = 7

    # Checkout handoff
    CHECKOUT_API_BASE_URL: str = ""
    CHECKOUT_API_KEY: str = ""
    CHECKOUT_REDIRECT_PATH: str = "/checkout"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
