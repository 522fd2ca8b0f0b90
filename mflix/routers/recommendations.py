from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from mflix.auth import get_current_user
from mflix.database import get_db
from mflix.models.user import User
from mflix.schemas.content import ContentResponse
from mflix.services.recommendations import recommend_for

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("", response_model=list[ContentResponse])
def get_recommendations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Personalised by age group, gender and preferred genres."""
    return recommend_for(db, user)
