# Retail POS application entry point

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from retail_pos.core.rate_limiter import limiter
from retail_pos.core.config import settings
from retail_pos.core.exceptions import SaleError
from retail_pos.models import (  # noqa: F401  (registers every table on Base)
    users,
    categories,
    products,
    sales as sales_model,
    sale_items,
    store_settings as store_settings_model,
)
from retail_pos.routers import (
    auth,
    users as users_router,
    profile,
    categories as categories_router,
    products as products_router,
    sales,
    store_settings,
    dashboard,
    internal_admin,
)

ROUTERS = (
    auth,
    users_router,
    profile,
    categories_router,
    products_router,
    sales,
    store_settings,
    dashboard,
    internal_admin,
)


# LOGGING

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger("retail_pos")


app = FastAPI(
    title="Retail POS API",
    description="Point-of-sale backend: catalog, checkout, sales history and dashboards",
    version="1.0.0",
    debug=settings.DEBUG,
)


# The till and back office send a bearer token, never cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(SaleError)
async def sale_error_handler(request: Request, exc: SaleError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.2f}ms)"
    )

    return response


for module in ROUTERS:
    app.include_router(module.router)


@app.get("/")
def root():
    return {"message": "Retail POS API is running", "environment": settings.ENV}
