"""
app/services/payment_service.py

Purpose: Payment gateway integration (Razorpay)

- Creates gateway orders over the REST API
- Verifies checkout callback signatures
- Verifies webhook signatures
"""

import hashlib
import hmac
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any

import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger
from utils.constants import MSG_GATEWAY_UNAVAILABLE

logger = get_logger(__name__)


def to_minor_units(amount: float) -> int:
    """
    Converts a price to the gateway's smallest currency unit (paise).

    Rounds half-up on the decimal value so 0.285 becomes 29, not 28.
    """
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    gateway_order_id: Optional[str],
    payment_id: Optional[str],
    signature: Optional[str],
    secret: Optional[str] = None,
) -> bool:
    """
    Verifies the signature the checkout widget hands to the browser.

    The gateway signs ``<order_id>|<payment_id>`` with the API key secret.

    Returns:
        True if the signature matches
    """
    secret = secret if secret is not None else settings.RAZORPAY_KEY_SECRET
    if not (gateway_order_id and payment_id and signature and secret):
        return False

    expected = _hmac_sha256(secret, f"{gateway_order_id}|{payment_id}".encode("utf-8"))
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(
    body: bytes,
    signature: Optional[str],
    secret: Optional[str] = None,
) -> bool:
    """
    Verifies the ``X-Razorpay-Signature`` header over the raw webhook body.
    """
    secret = secret if secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
    if not (signature and secret):
        return False

    expected = _hmac_sha256(secret, body)
    return hmac.compare_digest(expected, signature)


class PaymentGateway:
    """
    Thin async client for the Razorpay Orders API.
    """

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.base_url = (base_url or settings.RAZORPAY_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.PAYMENT_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

    def is_configured(self) -> bool:
        """Check if gateway credentials are present"""
        return bool(self.key_id and self.key_secret)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=self._timeout,
            )
        return self._client

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Creates a gateway order the checkout widget can collect against.

        Args:
            amount: Amount in the smallest currency unit
            currency: ISO currency code
            receipt: Our order id, echoed back by the gateway
            notes: Optional key/value metadata

        Returns:
            Gateway order (``id``, ``amount``, ``currency``, ``receipt``, ``status``)

        Raises:
            ExternalServiceError: If the gateway is unconfigured, unreachable
                or rejects the request
        """
        if not self.is_configured():
            raise ExternalServiceError(MSG_GATEWAY_UNAVAILABLE)

        payload: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
        }
        if notes:
            payload["notes"] = notes

        try:
            logger.info(f"Creating gateway order for receipt {receipt} ({amount} {currency})")
            response = await self._get_client().post("/orders", json=payload)
        except httpx.TimeoutException:
            logger.error("Payment gateway timeout while creating order")
            raise ExternalServiceError("Payment gateway is taking too long to respond")
        except httpx.RequestError as e:
            logger.error(f"Network error contacting payment gateway: {e}")
            raise ExternalServiceError("Unable to reach the payment gateway")

        if response.status_code not in (200, 201):
            logger.error(
                f"Payment gateway error: {response.status_code} - {response.text[:300]}"
            )
            raise ExternalServiceError(
                "Payment gateway rejected the order",
                details={"status_code": response.status_code}
            )

        gateway_order = response.json()
        logger.info(f"Gateway order created: {gateway_order.get('id')}")
        return gateway_order

    async def close(self):
        """Closes the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global gateway instance
_payment_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """Get or create the global payment gateway client."""
    global _payment_gateway
    if _payment_gateway is None:
        _payment_gateway = PaymentGateway()
    return _payment_gateway


async def close_payment_gateway():
    """Close the payment gateway client (call on shutdown)."""
    global _payment_gateway
    if _payment_gateway:
        await _payment_gateway.close()
        _payment_gateway = None
