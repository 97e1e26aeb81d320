"""
Installment planner.

Decides how many periods an installment plan has, splits the total into
per-period amounts, and persists the plan through the ledger.

Period count rules:
- default: 3
- long-term customer (student): 6
- category "suit": 2, checked last so it wins over the student rule
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from core.helpers import add_months
from core.services import BaseService
from payments.exceptions import PlanNotAvailableError
from payments.ledger import ScheduledPeriod, ledger

if TYPE_CHECKING:
    from datetime import datetime

    from payments.ledger import Money
    from payments.models import Transaction

DEFAULT_PERIODS = 3
LONG_TERM_CUSTOMER_PERIODS = 6
CATEGORY_PERIODS = {
    "suit": 2,
}


class InstallmentPlanner(BaseService):
    """Computes and persists installment schedules."""

    @classmethod
    def resolve_period_count(
        cls,
        is_long_term_customer: bool = False,
        category: str | None = None,
        category_periods: dict[str, int] | None = None,
    ) -> int:
        """
        Number of periods for a plan.

        Raises:
            PlanNotAvailableError: The rules yield fewer than one period
        """
        periods = DEFAULT_PERIODS
        if is_long_term_customer:
            periods = LONG_TERM_CUSTOMER_PERIODS

        overrides = CATEGORY_PERIODS if category_periods is None else category_periods
        if category and category.strip().lower() in overrides:
            periods = overrides[category.strip().lower()]

        if periods < 1:
            raise PlanNotAvailableError(
                "No installment plan is available for this purchase",
                details={"periods": periods, "category": category},
            )
        return periods

    @classmethod
    def plan(
        cls, total: Money, periods: int, start: datetime | None = None
    ) -> list[ScheduledPeriod]:
        """
        Split total across periods.

        Period 1 is due at start; period n is due n-1 calendar months later.
        The amounts always sum to total.

        Raises:
            PlanNotAvailableError: periods < 1
        """
        if periods < 1:
            raise PlanNotAvailableError(
                "An installment plan needs at least one period",
                details={"periods": periods},
            )
        start = start or timezone.now()
        return [
            ScheduledPeriod(
                number=number,
                amount=amount,
                due_date=add_months(start, number - 1),
            )
            for number, amount in enumerate(total.split(periods), start=1)
        ]

    @classmethod
    def create_plan(
        cls,
        user_id: int,
        total: Money,
        provider: str,
        periods: int,
        description: str = "",
        item_id: int | None = None,
        metadata: dict | None = None,
        start: datetime | None = None,
    ) -> tuple[Transaction, list[ScheduledPeriod]]:
        """Persist a pending plan Transaction and its schedule in one atomic unit."""
        schedule = cls.plan(total, periods, start=start)
        parent = ledger.create_installment_plan(
            user_id=user_id,
            total=total,
            provider=provider,
            periods=schedule,
            description=description,
            item_id=item_id,
            metadata=metadata,
        )
        cls.get_logger().info(
            "Installment plan created",
            extra={
                "transaction_id": parent.pk,
                "user_id": user_id,
                "periods": periods,
                "total": str(total),
            },
        )
        return parent, schedule
