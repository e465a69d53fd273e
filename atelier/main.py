import logging
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from atelier.core.config import settings
from atelier.core.checkout_client import checkout_client
from atelier.services.settings import create_settings_cache
from atelier.api import cart, products, settings as public_settings
from atelier.api.v1 import inventory, categories, orders, settings as admin_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{settings.SHOP_NAME} Storefront",
    description="Art storefront with cart, checkout handoff and inventory administration",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.state.settings_cache = create_settings_cache()
app.state.checkout_client = checkout_client

# Session cookie also carries the cart
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    max_age=settings.SESSION_MAX_AGE
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Storefront
app.include_router(cart.router)
app.include_router(products.router)
app.include_router(public_settings.router)

# Admin
app.include_router(inventory.router)
app.include_router(categories.router)
app.include_router(orders.router)
app.include_router(admin_settings.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "shop_name": settings.SHOP_NAME}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.SHOP_NAME} storefront")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down storefront")
    await app.state.checkout_client.close()
