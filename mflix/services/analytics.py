from datetime import datetime, timedelta
from sqlalchemy import func
from sqlalchemy.orm import Session
from mflix.models.content import Content
from mflix.models.user import SubscriptionPlan, SubscriptionStatus, User
from mflix.services.recommendations import age_group

# Revenue estimate per active subscription per month, in currency units
MONTHLY_PLAN_REVENUE = 1
YEARLY_PLAN_REVENUE = 10

AGE_GROUPS = {
    "kids": ("Kids (0-12)", "0-12"),
    "teens": ("Teens (13-19)", "13-19"),
    "adults": ("Adults (20+)", "20+"),
}


def _percent(count: int, total: int) -> float:
    return round(count * 100 / (total or 1), 2)


def overview(db: Session) -> dict:
    total_users = db.query(func.count(User.id)).scalar() or 0
    active_plans = [
        plan for (plan,) in db.query(User.subscription_plan)
        .filter(User.subscription_status == SubscriptionStatus.ACTIVE.value)
        .all()
    ]
    revenue = sum(
        YEARLY_PLAN_REVENUE / 12 if plan == SubscriptionPlan.YEARLY.value else MONTHLY_PLAN_REVENUE
        for plan in active_plans
    )

    male = db.query(func.count(User.id)).filter(User.gender == "male").scalar() or 0
    female = db.query(func.count(User.id)).filter(User.gender == "female").scalar() or 0
    gender_total = male + female

    ages = [age for (age,) in db.query(User.age).all()]
    counts = {key: 0 for key in AGE_GROUPS}
    for age in ages:
        group = age_group(age)
        if group:
            counts[group] += 1

    return {
        "total_users": total_users,
        "active_subs": len(active_plans),
        "revenue_monthly_estimate": round(revenue),
        "total_content": db.query(func.count(Content.id)).scalar() or 0,
        "demographics": {
            "male": {"count": male, "percent": _percent(male, gender_total)},
            "female": {"count": female, "percent": _percent(female, gender_total)},
        },
        "age_groups": {
            key: {"label": label, "range": span, "count": counts[key], "percent": _percent(counts[key], len(ages))}
            for key, (label, span) in AGE_GROUPS.items()
        },
    }


def users_timeline(db: Session, days: int, today: datetime | None = None) -> list[dict]:
    """Registrations per day for the last `days` days (today included), zero-filled."""
    days = max(days, 1)
    today = (today or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
    start = today - timedelta(days=days - 1)
    created = [c for (c,) in db.query(User.created_at).filter(User.created_at >= start).all()]
    by_date: dict[str, int] = {}
    for ts in created:
        key = ts.date().isoformat()
        by_date[key] = by_date.get(key, 0) + 1
    points = []
    for i in range(days):
        key = (start + timedelta(days=i)).date().isoformat()
        points.append({"date": key, "count": by_date.get(key, 0)})
    return points
