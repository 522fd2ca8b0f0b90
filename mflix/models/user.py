import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from mflix.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class SubscriptionPlan(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NONE = "none"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    gender = Column(String(10), nullable=False, default="male")
    age = Column(Integer, nullable=True)
    preferred_genres = Column(JSON, nullable=False, default=list)
    language = Column(String(20), nullable=True)
    # Subscription is embedded on the user row; status alone gates paid content
    subscription_plan = Column(String(20), nullable=False, default=SubscriptionPlan.NONE.value)
    subscription_status = Column(String(20), nullable=False, default=SubscriptionStatus.INACTIVE.value)
    subscription_start = Column(DateTime, nullable=True)
    subscription_end = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
