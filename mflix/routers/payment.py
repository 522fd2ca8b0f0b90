"""
Subscription payments: create a gateway order for a plan, verify the checkout signature and
activate, cancel. Activation and cancellation are confirmed by email. With skip_payment enabled (dev/test) signatures are not checked and
mock-activate is available.
"""
import logging
import time
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from mflix.auth import get_current_user
from mflix.config import get_settings
from mflix.database import get_db
from mflix.models.user import SubscriptionPlan, User
from mflix.routers.auth import user_response
from mflix.schemas.payment import CreateSubscriptionRequest, MockActivateRequest, VerifyPaymentRequest
from mflix.services.mailer import Mailer, get_mailer
from mflix.services.payment_gateway import PaymentGatewayError, RazorpayGateway, get_payment_gateway
from mflix.services.subscriptions import PAID_PLANS, activate_subscription, cancel_subscription

router = APIRouter(prefix="/api/payment", tags=["payment"])
logger = logging.getLogger(__name__)
settings = get_settings()


def _plan_amount(plan: str) -> int:
    return settings.plan_price_yearly if plan == SubscriptionPlan.YEARLY.value else settings.plan_price_monthly


@router.post("/create-subscription")
async def create_subscription(
    body: CreateSubscriptionRequest,
    user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Create a one-time order for the plan's first payment."""
    if body.plan not in PAID_PLANS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid plan type")
    if not gateway.configured:
        logger.error("Razorpay credentials missing")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Payment gateway not configured")

    amount = _plan_amount(body.plan)
    try:
        order = await gateway.create_order(amount, settings.payment_currency, {"plan": body.plan, "user_id": user.id})
    except PaymentGatewayError as e:
        if settings.skip_payment:
            return {"order": {"id": f"order_mock_{int(time.time() * 1000)}"}, "amount": amount, "mock": True}
        logger.exception("Order creation failed for user %s", user.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to create order") from e
    return {"order": order, "amount": amount}


def _notify_activated(background_tasks: BackgroundTasks, mailer: Mailer, user: User) -> None:
    background_tasks.add_task(
        mailer.send_subscription_activated,
        user.email,
        user.name,
        user.subscription_plan,
        user.subscription_end,
    )


@router.post("/verify")
def verify_payment(
    body: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    mailer: Mailer = Depends(get_mailer),
    db: Session = Depends(get_db),
):
    """Check the checkout signature, then activate the subscription."""
    if settings.skip_payment:
        user = activate_subscription(db, user, body.plan)
        _notify_activated(background_tasks, mailer, user)
        return {"success": True, "user": user_response(user, with_subscription=True), "skipped": True}

    if not gateway.verify_signature(body.razorpay_order_id, body.razorpay_payment_id, body.razorpay_signature):
        logger.warning("Invalid payment signature for user %s, order %s", user.id, body.razorpay_order_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    user = activate_subscription(db, user, body.plan)
    _notify_activated(background_tasks, mailer, user)
    return {"success": True, "user": user_response(user, with_subscription=True)}


@router.post("/cancel")
def cancel(
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    mailer: Mailer = Depends(get_mailer),
    db: Session = Depends(get_db),
):
    user = cancel_subscription(db, user)
    background_tasks.add_task(mailer.send_subscription_cancelled, user.email, user.name)
    return {"success": True, "user": user_response(user, with_subscription=True)}


@router.post("/mock-activate")
def mock_activate(
    body: MockActivateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Dev/test: activate without paying. Disabled unless skip_payment is on."""
    if not settings.skip_payment:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Mock activation disabled")
    user = activate_subscription(db, user, body.plan)
    return {"success": True, "user": user_response(user, with_subscription=True), "mock_activated": True}


@router.get("/gateway-status")
def gateway_status(gateway: RazorpayGateway = Depends(get_payment_gateway)):
    """Whether gateway keys are configured. Never returns the secret."""
    return {"key_id": gateway.key_id, "configured": gateway.configured}
