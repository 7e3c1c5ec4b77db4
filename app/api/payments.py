"""
app/api/payments.py

Purpose: Payment gateway webhook

- Verifies the X-Razorpay-Signature header over the raw body
- Marks orders paid on capture events, once per gateway payment id
- Acknowledges everything else so the gateway stops retrying
"""

import json

from fastapi import APIRouter, Header, Request
from typing import Optional

from app.core.exceptions import BadRequestError, PaymentVerificationError
from app.core.logging import get_logger
from app.services.order_service import apply_payment_event
from app.services.payment_service import verify_webhook_signature
from utils.constants import MSG_INVALID_SIGNATURE

logger = get_logger(__name__)
router = APIRouter()


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
):
    body = await request.body()

    if not verify_webhook_signature(body, x_razorpay_signature):
        logger.warning("Rejected webhook with invalid signature")
        raise PaymentVerificationError(MSG_INVALID_SIGNATURE)

    try:
        event = json.loads(body)
    except ValueError:
        raise BadRequestError("Invalid webhook payload")
    if not isinstance(event, dict):
        raise BadRequestError("Invalid webhook payload")

    logger.info(f"📬 Payment webhook received: {event.get('event')}")
    status = await apply_payment_event(event)
    return {"status": status}
