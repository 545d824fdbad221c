# ================================================================
# services/payment_provider.py: payment provider adapter (Stripe)
# ================================================================
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import stripe

from models.models import BillingCycle, SubscriptionPackage
from services.errors import PaymentProviderError

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "eur"
DEFAULT_TIMEOUT_SECONDS = 10
YEARLY_DISCOUNT = 0.9


@dataclass(frozen=True)
class PriceSpec:
    """What the customer is charged, in the currency's minor unit."""

    product_name: str
    unit_amount: int
    interval: str  # "month" | "year"
    currency: str = DEFAULT_CURRENCY
    description: Optional[str] = None

    @classmethod
    def for_plan(
        cls,
        plan: SubscriptionPackage,
        billing_cycle: str,
        currency: str = DEFAULT_CURRENCY,
        yearly_discount: float = YEARLY_DISCOUNT,
    ) -> "PriceSpec":
        if billing_cycle == BillingCycle.YEARLY.value:
            amount = round(plan.price * 12 * yearly_discount)
            interval = "year"
        else:
            amount = plan.price
            interval = "month"
        return cls(
            product_name=f"{plan.display_name} subscription",
            unit_amount=int(amount),
            interval=interval,
            currency=currency,
            description=plan.description,
        )


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_id: str
    metadata: Dict[str, str] = field(default_factory=dict)


class PaymentProvider:
    """Interface the lifecycle manager talks to."""

    @property
    def is_configured(self) -> bool:
        return False

    def create_checkout_session(
        self,
        customer_email: str,
        price_spec: PriceSpec,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        raise NotImplementedError

    def cancel_subscription(self, provider_subscription_id: str) -> None:
        raise NotImplementedError


class UnconfiguredPaymentProvider(PaymentProvider):
    """Stands in when no provider key is set; every call is refused."""

    def create_checkout_session(self, customer_email, price_spec, success_url, cancel_url, metadata):
        raise PaymentProviderError("Payment provider is not configured")

    def cancel_subscription(self, provider_subscription_id):
        raise PaymentProviderError("Payment provider is not configured")


class StripePaymentProvider(PaymentProvider):
    def __init__(self, api_key: Optional[str], timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        if api_key:
            stripe.api_key = api_key
            # timeouts surface as StripeError and take the same fallback path
            stripe.default_http_client = stripe.new_default_http_client(timeout=timeout_seconds)
            stripe.max_network_retries = 0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def create_checkout_session(
        self,
        customer_email: str,
        price_spec: PriceSpec,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        if not self.is_configured:
            raise PaymentProviderError("Stripe secret key is not configured")

        try:
            checkout_session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": price_spec.currency,
                        "product_data": {
                            "name": price_spec.product_name,
                            "description": price_spec.description or price_spec.product_name,
                        },
                        "unit_amount": price_spec.unit_amount,
                        "recurring": {"interval": price_spec.interval},
                    },
                    "quantity": 1,
                }],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=customer_email,
                client_reference_id=metadata.get("subscription_id"),
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe checkout session creation failed: {e}")
            raise PaymentProviderError(str(e)) from e

        if not checkout_session.url:
            raise PaymentProviderError("Stripe returned a checkout session without a URL")

        logger.info(f"✅ Stripe checkout session created: {checkout_session.id}")
        return CheckoutSession(url=checkout_session.url, session_id=checkout_session.id, metadata=metadata)

    def cancel_subscription(self, provider_subscription_id: str) -> None:
        if not self.is_configured:
            raise PaymentProviderError("Stripe secret key is not configured")
        try:
            stripe.Subscription.cancel(provider_subscription_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe cancellation failed for {provider_subscription_id}: {e}")
            raise PaymentProviderError(str(e)) from e
        logger.info(f"🔄 Cancelled Stripe subscription {provider_subscription_id}")


def build_payment_provider(settings) -> PaymentProvider:
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("⚠️ STRIPE_SECRET_KEY not set, subscription changes skip checkout.")
        return UnconfiguredPaymentProvider()
    return StripePaymentProvider(settings.STRIPE_SECRET_KEY, settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS)
