# services/errors.py
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from services.entitlements import LimitCheck


class BoardflowError(Exception):
    """Base class for domain errors raised by the service layer."""


# ============================================================
# NOT FOUND
# ============================================================
class NotFoundError(BoardflowError):
    pass


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class CompanyNotFoundError(NotFoundError):
    def __init__(self, company_id: int):
        super().__init__(f"Company {company_id} not found")
        self.company_id = company_id


class PlanNotFoundError(NotFoundError):
    def __init__(self, plan_name: str):
        super().__init__(f"Subscription plan '{plan_name}' not found or inactive")
        self.plan_name = plan_name


# ============================================================
# ACCESS / ENTITLEMENT
# ============================================================
class LimitExceededError(BoardflowError):
    """Raised when a scope has used up its quota for a resource kind."""

    def __init__(self, check: "LimitCheck", message: Optional[str] = None):
        super().__init__(message or check.message)
        self.check = check


# ============================================================
# SUBSCRIPTION LIFECYCLE
# ============================================================
class PaymentProviderError(BoardflowError):
    pass


class SubscriptionConflictError(BoardflowError):
    """A concurrent write changed the subscription row first. Safe to retry."""

    def __init__(self, subscription_id: int, expected_version: int):
        super().__init__(
            f"Subscription {subscription_id} was modified concurrently "
            f"(expected version {expected_version})"
        )
        self.subscription_id = subscription_id
        self.expected_version = expected_version


class SubscriptionValidationError(BoardflowError):
    pass


class SubscriptionNotFoundError(NotFoundError):
    def __init__(self, subscription_id: int):
        super().__init__(f"Subscription {subscription_id} not found")
        self.subscription_id = subscription_id
