"""Dropline FastAPI application.

Web server for the dropship domain: processes commands synchronously via
HTTP, with each request wrapped in the domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"
#   - "production" → event_processing = "async" (handlers fire via Engine)
from dropship.domain import dropship  # noqa: E402
from dropship.utils.logging import bind_request_context, clear_request_context, configure_logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

configure_logging()
dropship.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_DOMAIN_ROUTE_PREFIXES = (
    "/merchant-orders",
    "/wallets",
    "/supplier-orders",
    "/suppliers",
    "/products",
)


def _is_domain_route(path: str) -> bool:
    return path.startswith(_DOMAIN_ROUTE_PREFIXES)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Dropline API",
    description="Dropshipping order fulfillment and merchant wallet ledger",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the Protean domain context for each domain request."""
    if not _is_domain_route(request.url.path):
        # Health check, docs, etc.
        return await call_next(request)

    bind_request_context(method=request.method, path=request.url.path)
    try:
        with dropship.domain_context():
            return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from dropship.api import (  # noqa: E402
    order_router,
    product_router,
    supplier_order_router,
    supplier_router,
    wallet_router,
)

app.include_router(order_router)
app.include_router(wallet_router)
app.include_router(supplier_order_router)
app.include_router(supplier_router)
app.include_router(product_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": dropship.name})
