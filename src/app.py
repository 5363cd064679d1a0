"""Payment Sandbox FastAPI application.

Merchants drive simulated charges, refunds and subscriptions over HTTP.
Commands are processed synchronously; webhook notifications are emitted by
event handlers once each command's unit of work commits.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Logging is configured before the domain so registration messages are
# rendered by structlog too.
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sandbox.config import get_config
from sandbox.domain import sandbox
from sandbox.utils.logging import configure_logging

configure_logging()
sandbox.init()

logger = structlog.get_logger(__name__)

# Paths served by the sandbox routers; everything else (health, docs) runs
# without a domain context.
_SANDBOX_PREFIXES = ("/transactions", "/refunds", "/subscriptions", "/sandbox")


app = FastAPI(
    title="Payment Sandbox API",
    description="Simulated payments, refunds and recurring subscriptions",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def sandbox_context_middleware(request: Request, call_next):
    if not request.url.path.startswith(_SANDBOX_PREFIXES):
        return await call_next(request)
    with sandbox.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from sandbox.api import (  # noqa: E402
    refund_router,
    register_error_handlers,
    sandbox_router,
    subscription_router,
    transaction_router,
)

for router in (transaction_router, refund_router, subscription_router, sandbox_router):
    app.include_router(router)
register_error_handlers(app)

logger.info("Sandbox API ready", gateway_mode=get_config().gateway.mode)


@app.get("/health")
async def health():
    config = get_config()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": sandbox.name,
            "gateway_mode": config.gateway.mode,
            "billing_workers": config.billing.runner_max_workers,
        }
    )
