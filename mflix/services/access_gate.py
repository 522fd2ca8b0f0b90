"""
Decides whether a caller may stream a content item.
Free items are open to everyone; paid items need a valid token whose user has an active subscription.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from mflix.models.content import Visibility
from mflix.models.user import SubscriptionStatus


class DenialReason(str, enum.Enum):
    NO_CREDENTIAL = "no_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    SUBSCRIPTION_REQUIRED = "subscription_required"


DENIAL_MESSAGES = {
    DenialReason.NO_CREDENTIAL: "Subscription required: sign in to watch this content.",
    DenialReason.INVALID_CREDENTIAL: "Subscription required: invalid or expired token.",
    DenialReason.SUBSCRIPTION_REQUIRED: "Subscription required.",
}


@dataclass(frozen=True)
class PrincipalSubscription:
    plan: str
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class SubscriptionVerifier(Protocol):
    def verify(self, token: str) -> str | None: ...

    def get_principal_subscription(self, principal_id: str) -> PrincipalSubscription | None: ...


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    reason: DenialReason | None = None
    principal_id: str | None = None

    @property
    def message(self) -> str:
        return DENIAL_MESSAGES[self.reason] if self.reason else ""


def check_access(
    visibility: str,
    credential: str | None,
    verifier: SubscriptionVerifier,
) -> AccessDecision:
    if visibility == Visibility.FREE.value:
        return AccessDecision(granted=True)

    # Anything not explicitly free is gated like paid content
    if not credential:
        return AccessDecision(granted=False, reason=DenialReason.NO_CREDENTIAL)

    principal_id = verifier.verify(credential)
    if not principal_id:
        return AccessDecision(granted=False, reason=DenialReason.INVALID_CREDENTIAL)

    subscription = verifier.get_principal_subscription(principal_id)
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE.value:
        return AccessDecision(granted=False, reason=DenialReason.SUBSCRIPTION_REQUIRED, principal_id=principal_id)

    return AccessDecision(granted=True, principal_id=principal_id)
