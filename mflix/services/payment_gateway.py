"""
Razorpay orders API and payment signature check.
Orders are created over the REST API; the checkout widget returns order id, payment id and an
HMAC-SHA256 signature of "order_id|payment_id" keyed with the account secret.
"""
import hashlib
import hmac
import logging
import time
import httpx
from mflix.config import Settings, get_settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    pass


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str, api_url: str, transport: httpx.AsyncBaseTransport | None = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(settings.razorpay_key_id, settings.razorpay_key_secret, settings.razorpay_api_url)

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def create_order(self, amount: int, currency: str, notes: dict[str, str]) -> dict:
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": f"rcpt_{int(time.time() * 1000)}",
            "notes": notes,
        }
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
                res = await client.post(
                    f"{self.api_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Gateway unreachable: {e}") from e
        if res.status_code != 200:
            raise PaymentGatewayError(f"Gateway returned {res.status_code}")
        try:
            order = res.json()
        except ValueError as e:
            raise PaymentGatewayError("Gateway returned a non-JSON body") from e
        logger.info("Created payment order %s (%s %s)", order.get("id"), amount, currency)
        return order

    def signature_for(self, order_id: str, payment_id: str) -> str:
        message = f"{order_id}|{payment_id}".encode()
        return hmac.new(self.key_secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret:
            return False
        return hmac.compare_digest(self.signature_for(order_id, payment_id), signature or "")


def get_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway.from_settings(get_settings())
