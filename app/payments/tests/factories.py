"""
Factory Boy factories for payment test data.

This module provides factories for creating test instances of payment models.
Factories generate realistic test data while allowing easy customization.

Usage:
    from payments.tests.factories import TransactionFactory, InstallmentPlanFactory

    # A pending one-shot checkout
    txn = TransactionFactory(provider_checkout_id="T100")

    # A pending installment plan with its full schedule
    plan = InstallmentPlanFactory(amount=Decimal("100.00"), periods=3)
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from payments.models import (
    InstallmentSchedule,
    PaymentProfile,
    Subscription,
    Transaction,
    WebhookEvent,
)
from payments.state_machines import (
    InstallmentStatus,
    ProviderName,
    SubscriptionStatus,
    TransactionKind,
    TransactionStatus,
    WebhookEventStatus,
)


class TransactionFactory(factory.django.DjangoModelFactory):
    """
    Factory for Transaction.

    Examples:
        txn = TransactionFactory()
        txn = TransactionFactory(kind=TransactionKind.ITEM, item_id=item.pk)
        txn = TransactionFactory(status=TransactionStatus.SUCCEEDED, provider_payment_id="pi_1")
    """

    class Meta:
        model = Transaction

    user = factory.SubFactory(UserFactory)
    amount = Decimal("150.00")
    currency = "USD"
    status = TransactionStatus.PENDING
    kind = TransactionKind.ONE_TIME
    provider = ProviderName.PAYSTACK
    provider_checkout_id = factory.Sequence(lambda n: f"T{100 + n}")
    description = ""


class InstallmentScheduleFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InstallmentSchedule

    transaction = factory.SubFactory(TransactionFactory, kind=TransactionKind.INSTALLMENT)
    installment_number = 1
    total_installments = 1
    amount = Decimal("150.00")
    due_date = factory.LazyFunction(timezone.now)
    status = InstallmentStatus.PENDING


class InstallmentPlanFactory(TransactionFactory):
    """
    A pending installment plan parent plus an evenly split schedule.

    The last period absorbs the rounding remainder, as the planner does.

    Examples:
        plan = InstallmentPlanFactory()  # 3 periods
        plan = InstallmentPlanFactory(periods=2, amount=Decimal("800.00"))
    """

    class Meta:
        skip_postgeneration_save = True

    kind = TransactionKind.INSTALLMENT
    amount = Decimal("100.00")

    @factory.post_generation
    def periods(obj, create, extracted, **kwargs):
        if not create:
            return
        periods = extracted or 3
        cents = int(obj.amount * 100)
        base = cents // periods
        now = timezone.now()
        for number in range(1, periods + 1):
            minor = base if number < periods else cents - base * (periods - 1)
            InstallmentSchedule.objects.create(
                transaction=obj,
                installment_number=number,
                total_installments=periods,
                amount=Decimal(minor) / 100,
                due_date=now + timedelta(days=30 * (number - 1)),
            )


class SubscriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Subscription

    user = factory.SubFactory(UserFactory)
    provider = ProviderName.STRIPE
    provider_subscription_id = factory.Sequence(lambda n: f"sub_test{n}")
    plan_id = "style-connoisseur"
    status = SubscriptionStatus.ACTIVE


class PaymentProfileFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PaymentProfile

    user = factory.SubFactory(UserFactory)
    provider = ProviderName.STRIPE
    customer_id = factory.Sequence(lambda n: f"cus_test{n}")


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """Factory for WebhookEvent."""

    class Meta:
        model = WebhookEvent

    provider = ProviderName.STRIPE
    event_key = factory.Sequence(lambda n: f"evt_test{n}")
    event_type = "checkout.session.completed"
    payload = factory.LazyAttribute(lambda o: {"id": o.event_key, "type": o.event_type})
    status = WebhookEventStatus.PENDING
