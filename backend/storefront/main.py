"""
# `storefront/main.py` - Application entry point

## Overview
Creates the FastAPI app, configures CORS and logging, and mounts the storefront routers.

## Routers
- `/cart`   cart, line items, addresses, shipping, payments, discounts, checkout session token
- `/orders` checkout, order list, single order

## Lifecycle
- `startup`: one shared commerce backend client (`app.state.commerce_client`).
- `shutdown`: the client's connection pool is closed.

Carts and orders live in the commerce backend; nothing runs in the background here.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.core.context import SESSION_DATA_HEADER
from storefront.integrations.commerce import CommerceClient
from storefront.routers import carts, orders

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("storefront")

# Initialize FastAPI app
app = FastAPI(
    title="Storefront API",
    description="Cart and checkout actions of the storefront, backed by the commerce backend.",
    version="1.0.0",
    debug=settings.debug,
    redirect_slashes=False,
)

# Configure CORS (allow front-end domain or all origins as specified)
allow_origins = [origin.strip() for origin in settings.allowed_origins.split(',')] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[SESSION_DATA_HEADER, settings.session_header_name],
)

app.include_router(carts.router)
app.include_router(orders.router)


@app.on_event("startup")
async def _startup_commerce_client():
    if getattr(app.state, "commerce_client", None) is None:
        app.state.commerce_client = CommerceClient.from_settings(settings)
        logger.info("Commerce client ready for project %s", settings.commerce_project_key or "-")


@app.on_event("shutdown")
async def _shutdown_commerce_client():
    client = getattr(app.state, "commerce_client", None)
    if client is not None:
        await client.aclose()
        app.state.commerce_client = None


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
