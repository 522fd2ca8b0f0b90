from datetime import datetime, timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, sessionmaker
from mflix.config import get_settings
from mflix.database import get_db
from mflix.models.user import User, UserRole
from mflix.schemas.user import TokenPayload
from mflix.services.access_gate import PrincipalSubscription

settings = get_settings()
security = HTTPBearer(auto_error=False)

# Use Argon2 for password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)

def create_access_token(user_id: str) -> str:
    expire = datetime.utcnow() + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)

def decode_token(token: str) -> TokenPayload | None:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
        return TokenPayload(
            sub=payload["sub"],
            exp=payload["exp"],
        )
    except (JWTError, KeyError):
        return None

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials
    payload = decode_token(token)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == payload.sub).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def get_current_user_admin(
    user: User = Depends(get_current_user),
) -> User:
    """User must be logged in and have admin role."""
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Requires admin role",
        )
    return user


def get_bearer_credential(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Raw bearer token or None. Used where anonymous callers are allowed (free content)."""
    if not credentials:
        return None
    return credentials.credentials


class CredentialVerifier:
    """
    Token and subscription lookups backing the access gate.
    Each subscription lookup opens its own session and returns the connection to the pool
    before returning; nothing is cached across requests.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def verify(self, token: str) -> str | None:
        payload = decode_token(token)
        if not payload:
            return None
        return payload.sub

    def get_principal_subscription(self, principal_id: str) -> PrincipalSubscription | None:
        with self.session_factory() as db:
            user = db.query(User).filter(User.id == principal_id).first()
            if not user:
                return None
            return PrincipalSubscription(
                plan=user.subscription_plan,
                status=user.subscription_status,
                start_date=user.subscription_start,
                end_date=user.subscription_end,
            )
