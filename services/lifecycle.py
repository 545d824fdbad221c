# services/lifecycle.py
"""
Subscription lifecycle: tier switches, checkout hand-off, direct database
updates and admin overrides.

A switch first tries the payment provider. When the provider is missing or
fails, the change is written straight to the database so a paying user is
never left without the tier they asked for. Every write path records an
audit entry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.models import (
    AuditAction,
    BillingCycle,
    CompanyPaymentInfo,
    PlanName,
    Subscription,
    SubscriptionPackage,
    SubscriptionStatus,
    User,
    utcnow,
)
from services.audit import AuditTrail
from services.errors import (
    BoardflowError,
    CompanyNotFoundError,
    PlanNotFoundError,
    SubscriptionConflictError,
    SubscriptionNotFoundError,
    SubscriptionValidationError,
    UserNotFoundError,
)
from services.payment_provider import (
    DEFAULT_CURRENCY,
    YEARLY_DISCOUNT,
    PaymentProvider,
    PriceSpec,
    UnconfiguredPaymentProvider,
)
from services.plans import PlanCatalog, tier_rank
from services.repository import EntityStore

logger = logging.getLogger(__name__)

MONTHLY_PERIOD = timedelta(days=30)
YEARLY_PERIOD = timedelta(days=365)

# Tiers that never lapse
NON_EXPIRING_TIERS = {PlanName.FREE.value, PlanName.INTERNAL.value}


def normalize_billing_cycle(value: Optional[str]) -> str:
    """'yearly' in any casing stays yearly; everything else is monthly."""
    if isinstance(value, BillingCycle):
        value = value.value
    if isinstance(value, str) and value.strip().lower() == BillingCycle.YEARLY.value:
        return BillingCycle.YEARLY.value
    return BillingCycle.MONTHLY.value


def compute_expiry(tier: str, billing_cycle: str, now: Optional[datetime] = None) -> Optional[datetime]:
    if tier.lower() in NON_EXPIRING_TIERS:
        return None
    now = now or utcnow()
    if billing_cycle == BillingCycle.YEARLY.value:
        return now + YEARLY_PERIOD
    return now + MONTHLY_PERIOD


def change_action(old_tier: Optional[str], new_tier: str) -> AuditAction:
    if not old_tier:
        return AuditAction.CREATE
    old_rank, new_rank = tier_rank(old_tier), tier_rank(new_tier)
    if new_rank > old_rank:
        return AuditAction.UPGRADE
    if new_rank < old_rank:
        return AuditAction.DOWNGRADE
    return AuditAction.CHANGE_TIER


@dataclass
class SwitchResult:
    success: bool
    checkout_url: Optional[str] = None
    requires_payment: bool = False
    session_id: Optional[str] = None
    subscription_id: Optional[int] = None
    method: Optional[str] = None
    message: str = ""


@dataclass
class UpdateResult:
    success: bool
    message: str
    method: Optional[str] = None
    tier: Optional[str] = None
    billing_cycle: Optional[str] = None


class SubscriptionLifecycleManager:
    def __init__(
        self,
        session: Session,
        provider: Optional[PaymentProvider] = None,
        success_url: str = "http://localhost:5173/payment/success?session_id={CHECKOUT_SESSION_ID}",
        cancel_url: str = "http://localhost:5173/payment/cancel",
        currency: str = DEFAULT_CURRENCY,
        yearly_discount: float = YEARLY_DISCOUNT,
    ):
        self.session = session
        self.provider = provider or UnconfiguredPaymentProvider()
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.yearly_discount = yearly_discount
        self.store = EntityStore(session)
        self.catalog = PlanCatalog(session)
        self.audit = AuditTrail(session)

    # ============================================================
    # ✅ Lookups
    # ============================================================
    def _get_user(self, user_id: int) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _get_plan(self, tier: str, active_only: bool = True) -> SubscriptionPackage:
        plan = self.catalog.get_plan(tier, active_only=active_only)
        if plan is None:
            raise PlanNotFoundError(tier)
        return plan

    def latest_subscription(self, user_id: int) -> Optional[Subscription]:
        return self.session.exec(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        ).first()

    def current_subscription(self, user_id: int) -> Optional[Subscription]:
        return self.session.exec(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        ).first()

    def _active_rows(self, user_id: int) -> List[Subscription]:
        return list(
            self.session.exec(
                select(Subscription).where(
                    Subscription.user_id == user_id,
                    Subscription.status == SubscriptionStatus.ACTIVE.value,
                )
            ).all()
        )

    # ============================================================
    # ✅ Row writes (compare-and-swap on version)
    # ============================================================
    def _write_subscription(self, subscription: Subscription, **changes: Any) -> Subscription:
        expected = subscription.version
        self.session.flush()
        result = self.session.connection().execute(
            update(Subscription)
            .where(Subscription.id == subscription.id, Subscription.version == expected)
            .values(version=expected + 1, updated_at=utcnow(), **changes)
        )
        if result.rowcount != 1:
            logger.warning(f"⚠️ Stale write on subscription {subscription.id} (version {expected}).")
            raise SubscriptionConflictError(subscription.id, expected)
        self.session.expire(subscription)
        return subscription

    def _supersede_active(self, user_id: int, keep_id: Optional[int], now: datetime) -> int:
        superseded = 0
        for row in self._active_rows(user_id):
            if row.id == keep_id:
                continue
            self._write_subscription(row, status=SubscriptionStatus.CANCELLED.value, cancelled_at=now)
            superseded += 1
        return superseded

    def _sync_company_payment_info(
        self, company_id: int, tier: str, billing_cycle: str, expires_at: Optional[datetime], now: datetime
    ) -> CompanyPaymentInfo:
        info = self.store.payment_info.first_where(CompanyPaymentInfo.company_id == company_id)
        if info is None:
            info = CompanyPaymentInfo(company_id=company_id, subscription_start_date=now)
        info.subscription_tier = tier
        info.subscription_status = SubscriptionStatus.ACTIVE.value
        info.billing_cycle = billing_cycle
        info.subscription_end_date = expires_at
        info.updated_at = now
        self.session.add(info)
        return info

    def _apply_direct(
        self,
        user: User,
        plan: SubscriptionPackage,
        billing_cycle: str,
        action: AuditAction,
        changed_by_user_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> Subscription:
        """
        Write the tier straight to the database.

        Updates the user's newest subscription row in place (inserting one
        only when none exists), cancels any other active rows and syncs the
        denormalized tier fields. Repeating the call converges on the same
        state; each call still audits.
        """
        now = utcnow()
        old_tier = user.subscription_tier
        expires_at = compute_expiry(plan.name, billing_cycle, now)

        subscription = self.latest_subscription(user.id)
        if subscription is None:
            subscription = Subscription(
                user_id=user.id,
                company_id=user.company_id,
                package_id=plan.id,
                status=SubscriptionStatus.ACTIVE.value,
                billing_cycle=billing_cycle,
                current_period_start=now,
                current_period_end=expires_at,
            )
            self.session.add(subscription)
            self.session.flush()
        else:
            provider_link = {}
            if subscription.status == SubscriptionStatus.CANCELLED.value:
                # the provider side of a cancelled row is gone for good
                provider_link = {"provider_subscription_id": None, "provider_session_id": None}
            self._write_subscription(
                subscription,
                **provider_link,
                company_id=user.company_id,
                package_id=plan.id,
                status=SubscriptionStatus.ACTIVE.value,
                billing_cycle=billing_cycle,
                current_period_start=now,
                current_period_end=expires_at,
                cancelled_at=None,
            )
        self._supersede_active(user.id, subscription.id, now)

        user.subscription_tier = plan.name
        user.subscription_billing_cycle = billing_cycle
        user.subscription_expires_at = expires_at
        user.updated_at = now
        self.session.add(user)

        if user.is_company_admin and user.company_id is not None:
            self._sync_company_payment_info(user.company_id, plan.name, billing_cycle, expires_at, now)

        self.session.commit()
        self.session.refresh(subscription)
        logger.info(f"✅ User {user.id} tier {old_tier} -> {plan.name} ({billing_cycle}) via {action.value}")

        self.audit.append(
            action,
            user_id=user.id,
            company_id=user.company_id,
            changed_by_user_id=changed_by_user_id if changed_by_user_id is not None else user.id,
            old_tier=old_tier,
            new_tier=plan.name,
            details=details or f"billing_cycle={billing_cycle}",
        )
        return subscription

    # ============================================================
    # ✅ Switch (checkout first, database fallback)
    # ============================================================
    def switch_subscription(self, user_id: int, new_tier: str, billing_cycle: Optional[str] = None) -> SwitchResult:
        cycle = normalize_billing_cycle(billing_cycle)
        user = self._get_user(user_id)
        plan = self._get_plan(new_tier)
        if plan.name == PlanName.INTERNAL.value:
            raise SubscriptionValidationError("The internal plan can only be assigned by a platform admin")

        if not self.provider.is_configured or plan.price == 0:
            if self.provider.is_configured:
                self._cancel_provider_subscriptions(user_id)
            logger.info(f"No payment needed for user {user_id} -> {plan.name}, updating database only.")
            subscription = self._apply_direct(
                user, plan, cycle, AuditAction.SUBSCRIPTION_SWITCH_DB_ONLY,
                details="provider not configured" if not self.provider.is_configured else "free plan",
            )
            return SwitchResult(
                success=True,
                requires_payment=False,
                subscription_id=subscription.id,
                method="database_only",
                message=f"Subscription switched to {plan.display_name}.",
            )

        self._cancel_provider_subscriptions(user_id)

        pending = Subscription(
            user_id=user.id,
            company_id=user.company_id,
            package_id=plan.id,
            status=SubscriptionStatus.PENDING.value,
            billing_cycle=cycle,
        )
        self.session.add(pending)
        self.session.commit()
        self.session.refresh(pending)

        metadata = {
            "subscription_id": str(pending.id),
            "package_id": str(plan.id),
            "user_id": str(user.id),
            "billing_cycle": cycle,
        }
        separator = "&" if "?" in self.success_url else "?"
        try:
            checkout = self.provider.create_checkout_session(
                customer_email=user.email,
                price_spec=PriceSpec.for_plan(plan, cycle, self.currency, self.yearly_discount),
                success_url=f"{self.success_url}{separator}subscription_id={pending.id}",
                cancel_url=self.cancel_url,
                metadata=metadata,
            )
        except Exception as e:  # any provider failure, timeouts included
            logger.warning(f"⚠️ Checkout for user {user_id} failed ({e}), falling back to database update.")
            return self._fallback_after_checkout_failure(user_id, plan.name, cycle, pending.id, str(e))

        self._write_subscription(pending, provider_session_id=checkout.session_id)
        self.session.commit()
        self.audit.append(
            AuditAction.CHECKOUT_STARTED,
            user_id=user.id,
            company_id=user.company_id,
            changed_by_user_id=user.id,
            old_tier=user.subscription_tier,
            new_tier=plan.name,
            details=f"session_id={checkout.session_id}, billing_cycle={cycle}",
        )
        return SwitchResult(
            success=True,
            checkout_url=checkout.url,
            requires_payment=True,
            session_id=checkout.session_id,
            subscription_id=pending.id,
            method="checkout",
            message="Redirecting to checkout.",
        )

    def _cancel_provider_subscriptions(self, user_id: int) -> None:
        """Cancel active provider-linked rows. Failures are logged, never raised."""
        rows = [row for row in self._active_rows(user_id) if row.provider_subscription_id]
        for row in rows:
            try:
                self.provider.cancel_subscription(row.provider_subscription_id)
            except Exception as e:  # provider errors and timeouts alike
                logger.error(f"❌ Could not cancel provider subscription {row.provider_subscription_id}: {e}")
                continue
            try:
                self._write_subscription(
                    row, status=SubscriptionStatus.CANCELLED.value, cancelled_at=utcnow()
                )
                self.session.commit()
            except (SubscriptionConflictError, SQLAlchemyError):
                self.session.rollback()
                logger.exception(f"❌ Could not mark subscription {row.id} cancelled locally")

    def _fallback_after_checkout_failure(
        self, user_id: int, tier: str, cycle: str, pending_id: int, reason: str
    ) -> SwitchResult:
        try:
            user = self._get_user(user_id)
            plan = self._get_plan(tier)
            subscription = self._apply_direct(
                user, plan, cycle, AuditAction.SUBSCRIPTION_SWITCH_DB_ONLY,
                details=f"checkout failed: {reason}"[:1000],
            )
        except (BoardflowError, SQLAlchemyError):
            self.session.rollback()
            logger.exception(f"❌ Fallback update for user {user_id} failed as well.")
            self._mark_failed(user_id, pending_id, tier, reason)
            return SwitchResult(
                success=False,
                requires_payment=False,
                subscription_id=pending_id,
                method=None,
                message="Subscription could not be changed. Please try again later.",
            )

        return SwitchResult(
            success=True,
            checkout_url=None,
            requires_payment=False,
            subscription_id=subscription.id,
            method="database_only",
            message=f"Subscription switched to {tier} without payment.",
        )

    def _mark_failed(self, user_id: int, subscription_id: int, tier: str, reason: str) -> None:
        pending = self.session.get(Subscription, subscription_id)
        if pending is None or pending.status != SubscriptionStatus.PENDING.value:
            return
        try:
            self._write_subscription(pending, status=SubscriptionStatus.FAILED.value)
            self.session.commit()
        except (SubscriptionConflictError, SQLAlchemyError):
            self.session.rollback()
            logger.exception(f"❌ Could not mark subscription {subscription_id} as failed")
        self.audit.append(
            AuditAction.CHECKOUT_FAILED,
            user_id=user_id,
            changed_by_user_id=user_id,
            new_tier=tier,
            details=reason[:1000],
        )

    # ============================================================
    # ✅ Direct / fallback update
    # ============================================================
    def update_database_only(
        self,
        user_id: int,
        tier: str,
        billing_cycle: Optional[str] = None,
        changed_by_user_id: Optional[int] = None,
    ) -> Subscription:
        cycle = normalize_billing_cycle(billing_cycle)
        user = self._get_user(user_id)
        plan = self._get_plan(tier)
        return self._apply_direct(
            user, plan, cycle, AuditAction.SUBSCRIPTION_SWITCH_DB_ONLY, changed_by_user_id=changed_by_user_id
        )

    def guaranteed_update(
        self,
        user_id: int,
        tier: str,
        billing_cycle: Optional[str] = None,
        changed_by_user_id: Optional[int] = None,
    ) -> UpdateResult:
        """
        Apply a tier change through the strict path, degrading to a plain
        database write when that fails. Only fails if both paths fail.
        """
        cycle = normalize_billing_cycle(billing_cycle)
        user = self.store.users.get(user_id)
        if user is None:
            return UpdateResult(success=False, message=f"User {user_id} not found")

        # 1. strict service path
        try:
            plan = self._get_plan(tier, active_only=True)
            if plan.name == PlanName.INTERNAL.value:
                raise SubscriptionValidationError("The internal plan requires a platform admin")
            if plan.requires_company and user.company_id is None:
                raise SubscriptionValidationError(f"The {plan.name} plan requires a company")
            self._apply_direct(user, plan, cycle, AuditAction.GUARANTEED_UPDATE, changed_by_user_id)
            return UpdateResult(
                success=True,
                message=f"Subscription updated to {plan.name}",
                method="service",
                tier=plan.name,
                billing_cycle=cycle,
            )
        except (BoardflowError, SQLAlchemyError) as e:
            self.session.rollback()
            logger.warning(f"⚠️ Strict update for user {user_id} failed ({e}), trying direct database update.")

        # 2. permissive direct path
        try:
            user = self._get_user(user_id)
            plan = self._get_plan(tier, active_only=False)
            self._apply_direct(
                user, plan, cycle, AuditAction.DIRECT_DB_UPDATE, changed_by_user_id,
                details=f"fallback after strict path, billing_cycle={cycle}",
            )
            return UpdateResult(
                success=True,
                message=f"Subscription updated to {plan.name} (direct)",
                method="direct_db",
                tier=plan.name,
                billing_cycle=cycle,
            )
        except (BoardflowError, SQLAlchemyError) as e:
            self.session.rollback()
            logger.exception(f"❌ All update paths failed for user {user_id}")
            return UpdateResult(success=False, message=str(e))

    # ============================================================
    # ✅ Admin override
    # ============================================================
    def admin_set_tier(
        self,
        admin_user_id: int,
        user_id: int,
        tier: str,
        billing_cycle: Optional[str] = None,
    ) -> User:
        cycle = normalize_billing_cycle(billing_cycle)
        user = self._get_user(user_id)
        plan = self._get_plan(tier, active_only=True)
        self._apply_direct(
            user, plan, cycle, AuditAction.USER_SUBSCRIPTION_CHANGE,
            changed_by_user_id=admin_user_id,
            details=f"admin override by user {admin_user_id}, billing_cycle={cycle}",
        )
        self.session.refresh(user)
        return user

    def update_company_subscription(
        self,
        company_id: int,
        tier: str,
        changed_by_user_id: int,
        billing_cycle: Optional[str] = None,
    ) -> CompanyPaymentInfo:
        cycle = normalize_billing_cycle(billing_cycle)
        if self.store.companies.get(company_id) is None:
            raise CompanyNotFoundError(company_id)
        plan = self._get_plan(tier, active_only=True)

        info = self.store.payment_info.first_where(CompanyPaymentInfo.company_id == company_id)
        old_tier = info.subscription_tier if info else None
        action = change_action(old_tier, plan.name)

        now = utcnow()
        info = self._sync_company_payment_info(company_id, plan.name, cycle, compute_expiry(plan.name, cycle, now), now)
        self.session.commit()
        self.session.refresh(info)

        self.audit.append(
            action,
            company_id=company_id,
            user_id=changed_by_user_id,
            changed_by_user_id=changed_by_user_id,
            old_tier=old_tier,
            new_tier=plan.name,
            details=f"billing_cycle={cycle}",
        )
        return info

    # ============================================================
    # ✅ Confirmation & expiry
    # ============================================================
    def activate_subscription(
        self,
        subscription_id: int,
        provider_subscription_id: Optional[str] = None,
        provider_customer_id: Optional[str] = None,
    ) -> Subscription:
        """Flip a pending row to active once the provider confirms payment."""
        subscription = self.session.get(Subscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_id)
        if subscription.status == SubscriptionStatus.ACTIVE.value:
            return subscription
        if subscription.status != SubscriptionStatus.PENDING.value:
            raise SubscriptionValidationError(
                f"Subscription {subscription_id} is {subscription.status}, only pending subscriptions can be activated"
            )

        user = self._get_user(subscription.user_id)
        plan = self.session.get(SubscriptionPackage, subscription.package_id)
        if plan is None:
            raise PlanNotFoundError(str(subscription.package_id))

        now = utcnow()
        cycle = normalize_billing_cycle(subscription.billing_cycle)
        expires_at = compute_expiry(plan.name, cycle, now)
        old_tier = user.subscription_tier

        self._write_subscription(
            subscription,
            status=SubscriptionStatus.ACTIVE.value,
            provider_subscription_id=provider_subscription_id,
            provider_customer_id=provider_customer_id,
            current_period_start=now,
            current_period_end=expires_at,
        )
        self._supersede_active(user.id, subscription.id, now)

        user.subscription_tier = plan.name
        user.subscription_billing_cycle = cycle
        user.subscription_expires_at = expires_at
        user.updated_at = now
        self.session.add(user)
        if user.is_company_admin and user.company_id is not None:
            self._sync_company_payment_info(user.company_id, plan.name, cycle, expires_at, now)
        self.session.commit()
        self.session.refresh(subscription)

        self.audit.append(
            AuditAction.SUBSCRIPTION_ACTIVATED,
            user_id=user.id,
            company_id=user.company_id,
            changed_by_user_id=user.id,
            old_tier=old_tier,
            new_tier=plan.name,
            details=f"provider_subscription_id={provider_subscription_id}",
        )
        return subscription

    def expire_if_elapsed(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """Lazily drop a lapsed paid tier back to free. Returns True if it did."""
        now = now or utcnow()
        user = self._get_user(user_id)
        if user.subscription_expires_at is None or user.subscription_expires_at >= now:
            return False

        old_tier = user.subscription_tier
        for row in self._active_rows(user_id):
            self._write_subscription(row, status=SubscriptionStatus.EXPIRED.value)

        user.subscription_tier = PlanName.FREE.value
        user.subscription_expires_at = None
        user.updated_at = now
        self.session.add(user)
        self.session.commit()
        logger.info(f"⌛ Subscription of user {user_id} expired ({old_tier} -> free).")

        self.audit.append(
            AuditAction.SUBSCRIPTION_EXPIRED,
            user_id=user_id,
            company_id=user.company_id,
            old_tier=old_tier,
            new_tier=PlanName.FREE.value,
        )
        return True
