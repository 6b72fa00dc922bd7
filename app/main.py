"""
School Fee Payments - payment initiation and status reconciliation API.

Opens collect requests with the payment gateway and reconciles each
payment's final state from three channels of decreasing trust: signed
webhooks, gateway status polls, and browser-redirect callbacks.

Start the server:
    uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.health import router as health_router
from app.api.payments import router as payments_router
from app.api.transactions import router as transactions_router
from app.config import settings
from app.database import init_db
from app.engine.errors import PaymentError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("school_payments.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    await init_db()
    yield


app = FastAPI(
    title="School Fee Payments",
    description=(
        "Payment initiation and status reconciliation for school fee collection. "
        "Resolves each payment's final state from signed webhooks, gateway status "
        "polls and browser callbacks under a strict trust ordering."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "details": exc.details},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": "An unexpected error occurred"},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


app.include_router(health_router)
app.include_router(payments_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")
