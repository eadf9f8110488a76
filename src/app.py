"""RouteStream FastAPI application.

Dispatch web server: drivers report stop progress over HTTP and commands are
processed synchronously. Requests under the dispatch prefixes are wrapped in
the dispatch domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from dispatch.domain import dispatch  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

dispatch.init()

_DISPATCH_PREFIXES = ("/deliveries", "/drivers")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="RouteStream API",
    description="Multi-stop delivery progression — Dispatch domain",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the dispatch domain context for dispatch requests."""
    if request.url.path.startswith(_DISPATCH_PREFIXES):
        with dispatch.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from dispatch.api.errors import register_error_handlers  # noqa: E402
from dispatch.api.routes import delivery_router, driver_router  # noqa: E402

app.include_router(delivery_router)
app.include_router(driver_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "dispatch": {"name": dispatch.name},
            },
        }
    )
