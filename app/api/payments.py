"""
Payment endpoints.

POST /payments/create-payment - Open a collect request and return the payment URL.
GET  /payments/callback       - Browser redirect from the gateway; always redirects on.
POST /payments/webhook        - Authenticated settlement push from the gateway.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_callback_ingestor, get_initiator, get_webhook_ingestor
from app.database import get_session
from app.engine.callback import CallbackIngestor
from app.engine.errors import InvalidWebhookError
from app.engine.initiator import PaymentInitiator
from app.engine.webhook import WebhookIngestor

router = APIRouter(prefix="/payments", tags=["payments"])


class StudentInfoIn(BaseModel):
    name: Optional[str] = None
    id: Optional[str] = None
    email: Optional[str] = None


class CreatePaymentRequest(BaseModel):
    amount: Any = None
    student_info: Optional[StudentInfoIn] = None
    phone_number: Optional[str] = None


class CreatePaymentResponse(BaseModel):
    redirect_url: str
    collect_request_url: str
    collect_request_id: str
    order_id: str
    status: str = "success"
    message: str = "Payment initiated successfully"


class WebhookResponse(BaseModel):
    message: str
    order_id: str


@router.post("/create-payment", response_model=CreatePaymentResponse)
async def create_payment(
    body: CreatePaymentRequest,
    x_user_id: Optional[str] = Header(None),
    initiator: PaymentInitiator = Depends(get_initiator),
    session: AsyncSession = Depends(get_session),
):
    """
    Create an Order and a gateway collect request.

    The caller redirects the payer to ``redirect_url``. Gateway failures are
    returned as ``{"error", "details"}`` with the mapped status code; the
    Order stays pending either way.
    """
    student_info = body.student_info.model_dump() if body.student_info else None
    result = await initiator.create_payment(
        session,
        amount=body.amount,
        student_info=student_info,
        phone_number=body.phone_number,
        trustee_id=x_user_id,
    )
    return CreatePaymentResponse(
        redirect_url=result.redirect_url,
        collect_request_url=result.redirect_url,
        collect_request_id=result.collect_request_id,
        order_id=result.order_id,
    )


@router.get("/callback")
async def payment_callback(
    order_id: Optional[str] = Query(None, alias="orderId"),
    collect_id: Optional[str] = Query(None, alias="EdvironCollectRequestId"),
    status: Optional[str] = Query(None),
    ingestor: CallbackIngestor = Depends(get_callback_ingestor),
    session: AsyncSession = Depends(get_session),
):
    """Reconcile a browser redirect and send the payer on to the frontend."""
    directive = await ingestor.handle(session, order_id=order_id, collect_id=collect_id, status=status)
    return RedirectResponse(url=directive.location, status_code=302)


@router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(get_webhook_ingestor),
    session: AsyncSession = Depends(get_session),
):
    """Apply a signed settlement webhook."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidWebhookError(details="Body is not valid JSON") from e

    receipt = await ingestor.ingest(session, payload)
    return WebhookResponse(message="Webhook processed successfully", order_id=receipt.order_id)
