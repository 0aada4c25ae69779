"""
Payment recording and distribution tests.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from backoffice.core.exceptions import (
    PartialApplicationError,
    PersistenceError,
    ValidationError,
)
from backoffice.models import Invoice, Payment, PaymentMethod, PaymentStatus
from backoffice.schemas.payment import DistributePaymentRequest, PaymentCreate
from backoffice.services.allocation import derive_status
from backoffice.services.payment import PaymentService


async def payment_count(db_session) -> int:
    result = await db_session.execute(select(func.count(Payment.id)))
    return result.scalar()


async def statuses(db_session) -> dict[int, PaymentStatus]:
    result = await db_session.execute(select(Invoice.id, Invoice.payment_status))
    return dict(result.all())


async def assert_statuses_match_payments(db_session):
    invoices = (await db_session.execute(select(Invoice))).unique().scalars().all()
    service = PaymentService(db_session)
    for invoice in invoices:
        payments = [p.amount for p in await service.fetch_payments(invoice.id)]
        assert sum(payments, Decimal("0.00")) <= invoice.total_amount + Decimal("0.01")
        assert invoice.payment_status == derive_status(invoice.total_amount, payments)


# Single invoice


async def test_full_payment_marks_invoice_paid(db_session, shop, admin_user, make_invoice):
    invoice = await make_invoice(shop, "100.00")
    service = PaymentService(db_session)

    applied = await service.apply(
        PaymentCreate(invoice_id=invoice.id, amount=Decimal("100.00")),
        admin_user.id,
    )

    assert applied.status == PaymentStatus.PAID
    assert applied.invoice.payment_status == PaymentStatus.PAID
    payments = await service.fetch_payments(invoice.id)
    assert [p.amount for p in payments] == [Decimal("100.00")]
    assert payments[0].payment_method == PaymentMethod.CASH


async def test_two_payments_go_partial_then_paid(db_session, shop, admin_user, make_invoice):
    invoice = await make_invoice(shop, "100.00")
    service = PaymentService(db_session)

    first = await service.apply(
        PaymentCreate(invoice_id=invoice.id, amount=Decimal("40.00")), admin_user.id
    )
    assert first.status == PaymentStatus.PARTIAL
    assert first.invoice.remaining_balance == Decimal("60.00")

    second = await service.apply(
        PaymentCreate(invoice_id=invoice.id, amount=Decimal("60.00")), admin_user.id
    )
    assert second.status == PaymentStatus.PAID
    assert second.invoice.remaining_balance == Decimal("0.00")
    await assert_statuses_match_payments(db_session)


async def test_payment_above_remaining_is_rejected(db_session, shop, admin_user, make_invoice):
    invoice = await make_invoice(shop, "100.00", paid=["40.00"])
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="remaining balance"):
        await service.apply(
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("60.02")), admin_user.id
        )

    assert await payment_count(db_session) == 1


async def test_payment_within_one_cent_is_accepted(db_session, shop, admin_user, make_invoice):
    invoice = await make_invoice(shop, "100.00", paid=["40.00"])
    service = PaymentService(db_session)

    applied = await service.apply(
        PaymentCreate(invoice_id=invoice.id, amount=Decimal("60.01")), admin_user.id
    )

    assert applied.status == PaymentStatus.PAID


async def test_paid_invoice_rejects_payment(db_session, shop, admin_user, make_invoice):
    invoice = await make_invoice(shop, "50.00", paid=["50.00"])
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="already fully paid"):
        await service.apply(
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("1.00")), admin_user.id
        )


async def test_unknown_invoice_is_rejected(db_session, admin_user):
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="select an invoice"):
        await service.apply(PaymentCreate(invoice_id=999, amount=Decimal("5.00")), admin_user.id)


async def test_check_number_kept_only_for_checks():
    cash = PaymentCreate(invoice_id=1, amount=Decimal("5.00"), check_number="123")
    check = PaymentCreate(
        invoice_id=1,
        amount=Decimal("5.00"),
        payment_method=PaymentMethod.CHECK,
        check_number="123",
    )

    assert cash.check_number is None
    assert check.check_number == "123"


# Distribution


async def test_distribution_serves_unpaid_before_partial(db_session, shop, admin_user, make_invoice):
    y = await make_invoice(shop, "30.00", age_days=0, paid=["10.00"])
    x = await make_invoice(shop, "50.00", age_days=5)
    service = PaymentService(db_session)

    distribution = await service.distribute(
        DistributePaymentRequest(shop_id=shop.id, amount=Decimal("60.00")),
        admin_user.id,
    )

    allocated = {a.invoice.id: (a.payment.amount, a.status) for a in distribution.applied}
    assert allocated == {
        x.id: (Decimal("50.00"), PaymentStatus.PAID),
        y.id: (Decimal("10.00"), PaymentStatus.PARTIAL),
    }
    assert distribution.total_pending == Decimal("70.00")
    assert y.remaining_balance == Decimal("10.00")
    await assert_statuses_match_payments(db_session)


async def test_distribution_order_is_not_chronological(db_session, shop, admin_user, make_invoice):
    a = await make_invoice(shop, "100.00", age_days=365)
    b = await make_invoice(shop, "100.00", age_days=150, paid=["10.00"])
    c = await make_invoice(shop, "100.00", age_days=0)
    service = PaymentService(db_session)

    preview = await service.preview_distribution(shop.id)
    assert [i.id for i in preview] == [c.id, a.id, b.id]

    distribution = await service.distribute(
        DistributePaymentRequest(shop_id=shop.id, amount=Decimal("150.00")),
        admin_user.id,
    )
    assert [(ap.invoice.id, ap.payment.amount) for ap in distribution.applied] == [
        (c.id, Decimal("100.00")),
        (a.id, Decimal("50.00")),
    ]


async def test_distribution_of_exact_pending_pays_everything(db_session, shop, admin_user, make_invoice):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", age_days=1, paid=["10.00"])
    await make_invoice(shop, "25.50", age_days=2)
    service = PaymentService(db_session)

    distribution = await service.distribute(
        DistributePaymentRequest(shop_id=shop.id, amount=Decimal("95.50")),
        admin_user.id,
    )

    assert sum(a.payment.amount for a in distribution.applied) == Decimal("95.50")
    assert set((await statuses(db_session)).values()) == {PaymentStatus.PAID}
    await assert_statuses_match_payments(db_session)


async def test_distribution_conserves_amount(db_session, shop, admin_user, make_invoice):
    await make_invoice(shop, "19.99")
    await make_invoice(shop, "45.50", age_days=1)
    await make_invoice(shop, "80.00", age_days=2, paid=["30.25"])
    service = PaymentService(db_session)

    distribution = await service.distribute(
        DistributePaymentRequest(shop_id=shop.id, amount=Decimal("77.77")),
        admin_user.id,
    )

    assert sum(a.payment.amount for a in distribution.applied) == Decimal("77.77")
    await assert_statuses_match_payments(db_session)


async def test_distribution_above_pending_creates_no_payment(db_session, shop, admin_user, make_invoice):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", age_days=1, paid=["10.00"])
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="total pending balance"):
        await service.distribute(
            DistributePaymentRequest(shop_id=shop.id, amount=Decimal("70.01")),
            admin_user.id,
        )

    assert await payment_count(db_session) == 1


async def test_distribution_for_settled_shop_is_rejected(db_session, shop, admin_user, make_invoice):
    await make_invoice(shop, "50.00", paid=["50.00"])
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="no outstanding balance"):
        await service.distribute(
            DistributePaymentRequest(shop_id=shop.id, amount=Decimal("1.00")),
            admin_user.id,
        )


async def test_distribution_for_unknown_shop_is_rejected(db_session, admin_user):
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="select a shop"):
        await service.distribute(
            DistributePaymentRequest(shop_id=404, amount=Decimal("1.00")),
            admin_user.id,
        )


def failing_on_call(monkeypatch, failing_call: int):
    """Make the n-th payment insert raise a storage error."""
    original = PaymentService._append_payment
    calls = 0

    async def append(self, invoice, amount, data, created_by):
        nonlocal calls
        calls += 1
        if calls == failing_call:
            raise OperationalError("INSERT INTO payments", {}, Exception("disk I/O error"))
        return await original(self, invoice, amount, data, created_by)

    monkeypatch.setattr(PaymentService, "_append_payment", append)


async def test_atomic_distribution_rolls_back_on_failure(
    db_session, shop, admin_user, make_invoice, monkeypatch
):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", age_days=1)
    shop_id, user_id = shop.id, admin_user.id
    failing_on_call(monkeypatch, 2)
    service = PaymentService(db_session, atomic=True)

    with pytest.raises(PersistenceError):
        await service.distribute(
            DistributePaymentRequest(shop_id=shop_id, amount=Decimal("80.00")),
            user_id,
        )

    assert await payment_count(db_session) == 0
    assert set((await statuses(db_session)).values()) == {PaymentStatus.UNPAID}


async def test_non_atomic_distribution_reports_partial_application(
    db_session, shop, admin_user, make_invoice, monkeypatch
):
    first = await make_invoice(shop, "50.00")
    second = await make_invoice(shop, "30.00", age_days=1)
    third = await make_invoice(shop, "20.00", age_days=2)
    ids = (first.id, second.id, third.id)
    shop_id, user_id = shop.id, admin_user.id
    failing_on_call(monkeypatch, 2)
    service = PaymentService(db_session, atomic=False)

    with pytest.raises(PartialApplicationError) as exc_info:
        await service.distribute(
            DistributePaymentRequest(shop_id=shop_id, amount=Decimal("100.00")),
            user_id,
        )

    error = exc_info.value
    assert error.applied_invoice_ids == [ids[0]]
    assert error.failed_invoice_id == ids[1]
    assert error.pending_invoice_ids == [ids[2]]
    assert error.to_dict()["code"] == "PARTIAL_APPLICATION"

    assert await payment_count(db_session) == 1
    current = await statuses(db_session)
    assert current[ids[0]] == PaymentStatus.PAID
    assert current[ids[1]] == PaymentStatus.UNPAID


async def test_non_atomic_distribution_failing_first_charges_nothing(
    db_session, shop, admin_user, make_invoice, monkeypatch
):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", age_days=1)
    shop_id, user_id = shop.id, admin_user.id
    failing_on_call(monkeypatch, 1)
    service = PaymentService(db_session, atomic=False)

    with pytest.raises(PersistenceError) as exc_info:
        await service.distribute(
            DistributePaymentRequest(shop_id=shop_id, amount=Decimal("80.00")),
            user_id,
        )

    assert type(exc_info.value) is PersistenceError
    assert await payment_count(db_session) == 0
    assert set((await statuses(db_session)).values()) == {PaymentStatus.UNPAID}


# Visibility


async def test_owner_scoped_payment_rejects_foreign_invoice(
    db_session, shop, sales_user, make_invoice
):
    invoice = await make_invoice(shop, "100.00")
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="select an invoice"):
        await service.apply(
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("10.00")),
            sales_user.id,
            owner_id=sales_user.id,
        )

    assert await payment_count(db_session) == 0


async def test_owner_scoped_distribution_only_touches_own_invoices(
    db_session, shop, sales_user, make_invoice
):
    own = await make_invoice(shop, "40.00", age_days=5, created_by=sales_user.id)
    await make_invoice(shop, "100.00")
    own_id, shop_id, user_id = own.id, shop.id, sales_user.id
    service = PaymentService(db_session)

    with pytest.raises(ValidationError, match="total pending balance"):
        await service.distribute(
            DistributePaymentRequest(shop_id=shop_id, amount=Decimal("50.00")),
            user_id,
            owner_id=user_id,
        )

    distribution = await service.distribute(
        DistributePaymentRequest(shop_id=shop_id, amount=Decimal("40.00")),
        user_id,
        owner_id=user_id,
    )

    assert distribution.total_pending == Decimal("40.00")
    assert [(a.invoice.id, a.status) for a in distribution.applied] == [
        (own_id, PaymentStatus.PAID),
    ]
    assert await payment_count(db_session) == 1


# API


async def test_record_payment_endpoint(auth_client: AsyncClient, shop, make_invoice):
    invoice = await make_invoice(shop, "100.00")

    response = await auth_client.post(
        "/api/v1/payments",
        json={"invoice_id": invoice.id, "amount": "40.00", "payment_method": "check", "check_number": "881"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["payment_status"] == "partial"
    assert Decimal(data["remaining_balance"]) == Decimal("60.00")
    assert data["payment"]["check_number"] == "881"


async def test_record_payment_endpoint_rejects_overpayment(auth_client: AsyncClient, shop, make_invoice):
    invoice = await make_invoice(shop, "100.00")

    response = await auth_client.post(
        "/api/v1/payments",
        json={"invoice_id": invoice.id, "amount": "150.00"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_distribute_endpoint(auth_client: AsyncClient, shop, make_invoice):
    x = await make_invoice(shop, "50.00", age_days=3)
    y = await make_invoice(shop, "30.00", paid=["10.00"])

    response = await auth_client.post(
        "/api/v1/payments/distribute",
        json={"shop_id": shop.id, "amount": "60.00"},
    )

    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["total_pending_before"]) == Decimal("70.00")
    assert [(a["invoice_id"], a["payment_status"]) for a in data["allocations"]] == [
        (x.id, "paid"),
        (y.id, "partial"),
    ]


async def test_invoice_payments_and_stats_endpoints(auth_client: AsyncClient, shop, make_invoice):
    invoice = await make_invoice(shop, "100.00", paid=["25.00", "15.00"])

    response = await auth_client.get(f"/api/v1/payments/invoice/{invoice.id}")
    assert response.status_code == 200
    assert [Decimal(p["amount"]) for p in response.json()] == [Decimal("25.00"), Decimal("15.00")]

    response = await auth_client.get("/api/v1/payments/stats")
    assert response.status_code == 200
    stats = response.json()
    assert stats["by_method"]["cash"]["count"] == 2
    assert Decimal(str(stats["total"])) == Decimal("40.00")

    response = await auth_client.get("/api/v1/payments/invoice/999")
    assert response.status_code == 404


async def test_sales_user_cannot_reach_other_users_payments(
    sales_client: AsyncClient, db_session, shop, make_invoice
):
    invoice = await make_invoice(shop, "100.00", paid=["25.00"])
    [payment] = await PaymentService(db_session).fetch_payments(invoice.id)
    invoice_id, payment_id, shop_id = invoice.id, payment.id, shop.id

    response = await sales_client.get(f"/api/v1/payments/invoice/{invoice_id}")
    assert response.status_code == 404

    response = await sales_client.get(f"/api/v1/payments/{payment_id}")
    assert response.status_code == 404

    response = await sales_client.get(f"/api/v1/payments/distribute/{shop_id}/preview")
    assert response.status_code == 200
    assert response.json() == []

    response = await sales_client.post(
        "/api/v1/payments",
        json={"invoice_id": invoice_id, "amount": "10.00"},
    )
    assert response.status_code == 400

    response = await sales_client.post(
        "/api/v1/payments/distribute",
        json={"shop_id": shop_id, "amount": "10.00"},
    )
    assert response.status_code == 400

    assert await payment_count(db_session) == 1


async def test_sales_user_works_with_own_invoices(
    sales_client: AsyncClient, sales_user, shop, make_invoice
):
    invoice = await make_invoice(shop, "100.00", paid=["25.00"], created_by=sales_user.id)
    invoice_id, shop_id = invoice.id, shop.id

    response = await sales_client.get(f"/api/v1/payments/invoice/{invoice_id}")
    assert response.status_code == 200
    [payment] = response.json()

    response = await sales_client.get(f"/api/v1/payments/{payment['id']}")
    assert response.status_code == 200

    response = await sales_client.get(f"/api/v1/payments/distribute/{shop_id}/preview")
    assert [i["id"] for i in response.json()] == [invoice_id]

    response = await sales_client.post(
        "/api/v1/payments",
        json={"invoice_id": invoice_id, "amount": "75.00"},
    )
    assert response.status_code == 201
    assert response.json()["payment_status"] == "paid"
