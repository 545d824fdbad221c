"""Tests for services/payment_provider.py."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import stripe

from models.models import SubscriptionPackage
from services.errors import PaymentProviderError
from services.payment_provider import (
    PriceSpec,
    StripePaymentProvider,
    UnconfiguredPaymentProvider,
    build_payment_provider,
)


@pytest.fixture()
def plan() -> SubscriptionPackage:
    return SubscriptionPackage(name="freelancer", display_name="Freelancer", price=900)


class TestPriceSpec:
    def test_monthly(self, plan):
        spec = PriceSpec.for_plan(plan, "monthly")

        assert (spec.unit_amount, spec.interval, spec.currency) == (900, "month", "eur")

    def test_yearly_is_discounted(self, plan):
        spec = PriceSpec.for_plan(plan, "yearly", currency="usd")

        assert (spec.unit_amount, spec.interval, spec.currency) == (9720, "year", "usd")


class TestProviders:
    def test_missing_key_builds_unconfigured_provider(self):
        provider = build_payment_provider(SimpleNamespace(STRIPE_SECRET_KEY=None))

        assert isinstance(provider, UnconfiguredPaymentProvider)
        assert provider.is_configured is False
        with pytest.raises(PaymentProviderError):
            provider.cancel_subscription("sub_1")

    def test_stripe_without_key_refuses(self, plan):
        provider = StripePaymentProvider(None)

        with pytest.raises(PaymentProviderError):
            provider.create_checkout_session("a@example.com", PriceSpec.for_plan(plan, "monthly"), "s", "c", {})

    def test_stripe_error_becomes_provider_error(self, plan, monkeypatch):
        provider = StripePaymentProvider(None)
        provider.api_key = "sk_test_dummy"

        def fail(**kwargs):
            raise stripe.StripeError("card network down")

        monkeypatch.setattr(stripe.checkout.Session, "create", fail)

        with pytest.raises(PaymentProviderError, match="card network down"):
            provider.create_checkout_session(
                "a@example.com", PriceSpec.for_plan(plan, "monthly"), "s", "c", {"subscription_id": "1"}
            )

    def test_stripe_checkout_returns_session(self, plan, monkeypatch):
        provider = StripePaymentProvider(None)
        provider.api_key = "sk_test_dummy"
        captured = {}

        def create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(id="cs_123", url="https://checkout.stripe.test/cs_123")

        monkeypatch.setattr(stripe.checkout.Session, "create", create)

        session = provider.create_checkout_session(
            "a@example.com", PriceSpec.for_plan(plan, "yearly"), "s", "c", {"subscription_id": "7"}
        )

        assert session.session_id == "cs_123"
        assert captured["client_reference_id"] == "7"
        assert captured["line_items"][0]["price_data"]["recurring"] == {"interval": "year"}
