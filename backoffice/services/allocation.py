"""
Payment allocation rules.

Pure functions, no database access:

* ``derive_status`` maps an invoice total and its payments to a
  ``PaymentStatus``. It is the single source of truth for the status column.
* ``allocation_order`` sorts a shop's invoices for distribution: unpaid
  invoices first, then the others, each group oldest first.
* ``plan_allocation`` splits one payment amount across ordered invoices,
  never giving an invoice more than its remaining balance.

Every comparison between a sum of payments and a total goes through
``gte``/``lte`` so the one-cent tolerance is applied uniformly.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from backoffice.core.config import settings
from backoffice.models.invoice import PaymentStatus


TOLERANCE: Decimal = Decimal(settings.PAYMENT_TOLERANCE)
ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number to a two-decimal Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def gte(a: Decimal, b: Decimal) -> bool:
    """a >= b within tolerance."""
    return a - b >= -TOLERANCE


def lte(a: Decimal, b: Decimal) -> bool:
    """a <= b within tolerance."""
    return a - b <= TOLERANCE


def total_paid(payments: Iterable[Decimal]) -> Decimal:
    return sum((to_money(p) for p in payments), ZERO)


def derive_status(total_amount: Decimal, payments: Iterable[Decimal]) -> PaymentStatus:
    """
    Compute an invoice's payment status from its total and payment amounts.

    A zero-total invoice without payments stays ``unpaid``.
    """
    paid = total_paid(payments)
    if paid <= ZERO:
        return PaymentStatus.UNPAID
    if gte(paid, to_money(total_amount)):
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def remaining_balance(total_amount: Decimal, payments: Iterable[Decimal]) -> Decimal:
    return to_money(total_amount) - total_paid(payments)


@dataclass(frozen=True)
class AllocationCandidate:
    """An invoice as seen by the allocation planner."""

    invoice_id: int
    payment_status: PaymentStatus
    created_at: datetime
    total_amount: Decimal
    paid_amount: Decimal = ZERO

    @property
    def remaining(self) -> Decimal:
        return to_money(self.total_amount) - to_money(self.paid_amount)


@dataclass(frozen=True)
class Allocation:
    """The share of a payment applied to one invoice."""

    candidate: AllocationCandidate
    amount: Decimal

    @property
    def invoice_id(self) -> int:
        return self.candidate.invoice_id

    @property
    def paid_after(self) -> Decimal:
        return to_money(self.candidate.paid_amount) + self.amount

    @property
    def status_after(self) -> PaymentStatus:
        return derive_status(self.candidate.total_amount, [self.paid_after])


def allocation_order(candidates: Iterable[AllocationCandidate]) -> list[AllocationCandidate]:
    """
    Order invoices for distribution.

    Unpaid invoices (by persisted status) come before all others; each group
    is sorted oldest first, ties broken by invoice id.
    """
    return sorted(
        candidates,
        key=lambda c: (
            c.payment_status != PaymentStatus.UNPAID,
            c.created_at,
            c.invoice_id,
        ),
    )


def total_pending(candidates: Iterable[AllocationCandidate]) -> Decimal:
    """Sum of positive remaining balances."""
    return sum((c.remaining for c in candidates if c.remaining > ZERO), ZERO)


def plan_allocation(
    amount: Decimal,
    candidates: Sequence[AllocationCandidate],
) -> list[Allocation]:
    """
    Split ``amount`` across ``candidates`` in allocation order.

    Invoices with nothing remaining are skipped; iteration stops once the
    amount is exhausted. When ``amount`` does not exceed the total pending
    balance, the planned allocations sum to ``amount`` exactly.
    """
    remaining_payment = to_money(amount)
    plan: list[Allocation] = []

    for candidate in allocation_order(candidates):
        if remaining_payment <= ZERO:
            break
        pending = candidate.remaining
        if pending <= ZERO:
            continue
        applied = min(remaining_payment, pending)
        plan.append(Allocation(candidate=candidate, amount=applied))
        remaining_payment -= applied

    return plan
