from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from mflix.auth import get_current_user_admin
from mflix.database import get_db
from mflix.models.user import User
from mflix.services.analytics import overview, users_timeline

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/analytics")
def get_analytics(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Admin: users, subscriptions, revenue estimate, catalog size and demographics."""
    return overview(db)


@router.get("/analytics/users-timeline")
def get_users_timeline(
    days: int = Query(30),
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Admin: daily registrations for the last `days` days."""
    return {"points": users_timeline(db, days)}
