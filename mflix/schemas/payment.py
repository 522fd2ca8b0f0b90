from pydantic import BaseModel


class CreateSubscriptionRequest(BaseModel):
    plan: str | None = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = ""
    razorpay_payment_id: str = ""
    razorpay_signature: str = ""
    plan: str | None = None


class MockActivateRequest(BaseModel):
    plan: str | None = None
