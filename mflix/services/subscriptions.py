"""Subscription lifecycle on the user row: activate for a plan period, cancel immediately."""
import calendar
import logging
from datetime import datetime
from sqlalchemy.orm import Session
from mflix.models.user import SubscriptionPlan, SubscriptionStatus, User

logger = logging.getLogger(__name__)

PAID_PLANS = (SubscriptionPlan.MONTHLY.value, SubscriptionPlan.YEARLY.value)


def add_months(start: datetime, months: int) -> datetime:
    """Same day-of-month `months` later, clamped to the last day of a shorter month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def plan_end_date(plan: str, start: datetime) -> datetime:
    return add_months(start, 12 if plan == SubscriptionPlan.YEARLY.value else 1)


def activate_subscription(db: Session, user: User, plan: str | None) -> User:
    plan = plan if plan in PAID_PLANS else SubscriptionPlan.MONTHLY.value
    now = datetime.utcnow()
    user.subscription_plan = plan
    user.subscription_start = now
    user.subscription_end = plan_end_date(plan, now)
    user.subscription_status = SubscriptionStatus.ACTIVE.value
    db.commit()
    db.refresh(user)
    logger.info("Activated %s subscription for user %s until %s", plan, user.id, user.subscription_end.isoformat())
    return user


def cancel_subscription(db: Session, user: User) -> User:
    user.subscription_status = SubscriptionStatus.INACTIVE.value
    user.subscription_end = datetime.utcnow()
    db.commit()
    db.refresh(user)
    logger.info("Cancelled subscription for user %s", user.id)
    return user
