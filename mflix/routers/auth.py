import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from mflix.database import get_db
from mflix.models.user import User, UserRole
from mflix.auth import create_access_token, get_current_user, hash_password, verify_password
from mflix.schemas.user import AuthResponse, LoginRequest, RegisterRequest, SubscriptionResponse, UserResponse
from mflix.services.mailer import Mailer, get_mailer

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def user_response(user: User, with_subscription: bool = False) -> UserResponse:
    subscription = None
    if with_subscription:
        subscription = SubscriptionResponse(
            plan=user.subscription_plan,
            status=user.subscription_status,
            start_date=user.subscription_start,
            end_date=user.subscription_end,
        )
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        gender=user.gender,
        age=user.age,
        preferred_genres=user.preferred_genres or [],
        language=user.language,
        subscription=subscription,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Create an account. The very first account becomes admin."""
    email = body.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    role = UserRole.ADMIN.value if db.query(func.count(User.id)).scalar() == 0 else UserRole.USER.value
    user = User(
        name=body.name,
        email=email,
        password=hash_password(body.password),
        role=role,
        gender=body.gender,
        age=body.age,
        preferred_genres=[g for g in body.genres if g],
        language=body.language,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (role=%s)", user.id, user.role)
    background_tasks.add_task(mailer.send_welcome, user.email, user.name)
    return AuthResponse(token=create_access_token(user.id), user=user_response(user))


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    email = body.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User not found")
    if not verify_password(body.password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")
    return AuthResponse(token=create_access_token(user.id), user=user_response(user))


@router.get("/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)):
    return user_response(user, with_subscription=True)
