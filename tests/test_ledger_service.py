"""
Testes do Razão e do Motor de Saldo
===================================
Saldo sempre recalculado, nunca negativo; crédito exposto à parte
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from vitrine.api.admin.services import ledger_service
from vitrine.core import models
from vitrine.core.exceptions import InvalidAmount, NotFound
from vitrine.core.utils.enums import ClaimStatus, CommissionDisplayStatus
from tests.conftest import make_delivered_and_accrue

JANUARY = datetime(2025, 1, 20, 15, 0, tzinfo=timezone.utc)
FEBRUARY = datetime(2025, 2, 20, 15, 0, tzinfo=timezone.utc)


def payment_count(session) -> int:
    return session.execute(select(func.count(models.CommissionPayment.id))).scalar_one()


class TestBalanceScenario:

    def test_pay_exactly_then_overpay(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00")

        balance = ledger_service.compute_balance(seeded_db, 1)
        assert balance.total_commission == Decimal("7.00")
        assert balance.current_balance == Decimal("7.00")
        assert balance.credit == Decimal("0.00")

        ledger_service.register_payment(seeded_db, 1, "7.00", admin_actor)
        balance = ledger_service.compute_balance(seeded_db, 1)
        assert balance.current_balance == Decimal("0.00")
        assert balance.credit == Decimal("0.00")

        ledger_service.register_payment(seeded_db, 1, "3.00", admin_actor)
        balance = ledger_service.compute_balance(seeded_db, 1)
        assert balance.total_paid == Decimal("10.00")
        assert balance.current_balance == Decimal("0.00")
        assert balance.credit == Decimal("3.00")

    def test_partial_payment(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00")
        ledger_service.register_payment(seeded_db, 1, "2.50", admin_actor)

        balance = ledger_service.compute_balance(seeded_db, 1)
        assert balance.current_balance == Decimal("4.50")
        assert balance.credit == Decimal("0.00")

    def test_credit_absorbs_next_period(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00", created_at=JANUARY)
        ledger_service.register_payment(seeded_db, 1, "10.00", admin_actor)

        make_delivered_and_accrue(seeded_db, total="100.00", created_at=FEBRUARY)

        balance = ledger_service.compute_balance(seeded_db, 1)
        assert balance.current_balance == Decimal("4.00")
        assert balance.credit == Decimal("0.00")

    def test_balance_is_idempotent(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="250.00")
        ledger_service.register_payment(seeded_db, 1, "5.00", admin_actor)

        assert ledger_service.compute_balance(seeded_db, 1) == ledger_service.compute_balance(seeded_db, 1)

    def test_balances_are_per_merchant(self, seeded_db):
        make_delivered_and_accrue(seeded_db, merchant_id=1, total="100.00")
        make_delivered_and_accrue(seeded_db, merchant_id=2, total="300.00")

        assert ledger_service.compute_balance(seeded_db, 1).current_balance == Decimal("7.00")
        assert ledger_service.compute_balance(seeded_db, 2).current_balance == Decimal("21.00")

    def test_merchant_without_activity(self, seeded_db):
        balance = ledger_service.compute_balance(seeded_db, 2)
        assert balance.total_commission == Decimal("0.00")
        assert balance.current_balance == Decimal("0.00")

    def test_unknown_merchant(self, seeded_db):
        with pytest.raises(NotFound):
            ledger_service.compute_balance(seeded_db, 999)


class TestRegisterPayment:

    @pytest.mark.parametrize("amount", [0, "0.00", -5, "-0.01", "7.001", "abc", None, "NaN", "Infinity"])
    def test_invalid_amounts(self, seeded_db, admin_actor, amount):
        with pytest.raises(InvalidAmount):
            ledger_service.register_payment(seeded_db, 1, amount, admin_actor)

        assert payment_count(seeded_db) == 0

    def test_accepts_comma_decimal_separator(self, seeded_db, admin_actor):
        payment = ledger_service.register_payment(seeded_db, 1, "7,50", admin_actor)
        assert payment.amount == Decimal("7.50")

    def test_payment_fields(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00")
        payment = ledger_service.register_payment(
            seeded_db, 1, Decimal("7.00"), admin_actor, receipt_url="https://cdn/pix.png"
        )

        assert payment.id is not None
        assert payment.confirmed_by == admin_actor.user_id
        assert payment.confirmed_at is not None
        assert payment.receipt_url == "https://cdn/pix.png"
        assert payment.reference_month == "2025-03"
        assert payment.notes.startswith("Pagamento registrado em ")

    def test_every_call_appends_a_row(self, seeded_db, admin_actor):
        ledger_service.register_payment(seeded_db, 1, "1.00", admin_actor)
        ledger_service.register_payment(seeded_db, 1, "1.00", admin_actor)

        assert payment_count(seeded_db) == 2

    def test_unknown_merchant(self, seeded_db, admin_actor):
        with pytest.raises(NotFound):
            ledger_service.register_payment(seeded_db, 999, "1.00", admin_actor)


class TestPeriodViews:

    def test_payments_cover_oldest_period_first(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00", created_at=JANUARY)
        make_delivered_and_accrue(seeded_db, total="200.00", created_at=FEBRUARY)
        ledger_service.register_payment(seeded_db, 1, "10.00", admin_actor)

        january, february = ledger_service.period_views(seeded_db, 1)

        assert january.status == CommissionDisplayStatus.PAID
        assert january.outstanding == Decimal("0.00")
        assert february.status == CommissionDisplayStatus.PENDING
        assert february.paid_amount == Decimal("3.00")
        assert february.outstanding == Decimal("11.00")

    def test_pending_claim_marks_awaiting_confirmation(self, seeded_db):
        make_delivered_and_accrue(seeded_db, total="100.00", created_at=JANUARY)
        seeded_db.add(models.CommissionReceipt(
            merchant_id=1, receipt_url="https://cdn/r.png", amount_claimed=Decimal("7.00"),
            reference_month="2025-01", status=ClaimStatus.PENDING,
        ))
        seeded_db.commit()

        (january,) = ledger_service.period_views(seeded_db, 1)
        assert january.status == CommissionDisplayStatus.AWAITING_CONFIRMATION

        # Status exibido nunca afeta o saldo
        assert ledger_service.compute_balance(seeded_db, 1).current_balance == Decimal("7.00")

    def test_due_alert(self, seeded_db):
        make_delivered_and_accrue(seeded_db, total="100.00", created_at=JANUARY)
        views = ledger_service.period_views(seeded_db, 1)

        alert = ledger_service.get_due_alert(views, today=date(2025, 2, 5))
        assert alert.month_year == "2025-01"
        assert alert.due_date == date(2025, 2, 5)
        assert alert.is_overdue is False

        alert = ledger_service.get_due_alert(views, today=date(2025, 2, 6))
        assert alert.is_overdue is True

    def test_no_due_alert_when_settled(self, seeded_db, admin_actor):
        make_delivered_and_accrue(seeded_db, total="100.00", created_at=JANUARY)
        ledger_service.register_payment(seeded_db, 1, "7.00", admin_actor)

        assert ledger_service.get_due_alert(ledger_service.period_views(seeded_db, 1)) is None
        assert ledger_service.get_balance_summary(seeded_db, 1).due_alert is None
