from mflix.models.user import User, UserRole, SubscriptionPlan, SubscriptionStatus
from mflix.models.content import Content, ContentType, Episode, Visibility

__all__ = [
    "User", "UserRole", "SubscriptionPlan", "SubscriptionStatus",
    "Content", "ContentType", "Episode", "Visibility",
]
