"""
Transfer Gateway: billing-platform payment plugin for a transfer processor.

Executes purchases and refunds as remote funds transfers, records every
attempt, and reconciles the processor's asynchronous webhooks with the
billing platform's pending transactions.

Start the server:
    uvicorn transfer_gateway.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from transfer_gateway import __version__
from transfer_gateway.api.errors import register_exception_handlers
from transfer_gateway.api.health import router as health_router
from transfer_gateway.api.notifications import router as notifications_router
from transfer_gateway.api.payment_methods import router as payment_methods_router
from transfer_gateway.api.payments import router as payments_router
from transfer_gateway.config import settings
from transfer_gateway.database import init_db

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    await init_db()
    yield


app = FastAPI(
    title="Transfer Gateway",
    description=(
        "Payment plugin bridging a billing platform to a transfer-based processor. "
        "Transparent token refresh, exactly-once response ledger, and idempotent "
        "webhook reconciliation of pending transactions."
    ),
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(health_router)
app.include_router(payments_router, prefix="/api")
app.include_router(payment_methods_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
