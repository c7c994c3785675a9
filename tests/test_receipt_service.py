"""
Testes da Fila de Comprovantes
==============================
Comprovante não altera saldo; confirmação cria exatamente um pagamento
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import select, func

from vitrine.api.admin.services import ledger_service, receipt_service
from vitrine.core import models
from vitrine.core.exceptions import AlreadyResolved, InvalidAmount, MissingReason, NotFound
from vitrine.core.utils.enums import ClaimDecision, ClaimStatus
from tests.conftest import make_delivered_and_accrue

RECEIPT_URL = "https://cdn.vitrine.com.br/commissions/1/2025-03/pix.png"


def payment_count(session) -> int:
    return session.execute(select(func.count(models.CommissionPayment.id))).scalar_one()


@pytest.fixture
def owed_db(seeded_db):
    """Lojista 1 devendo R$ 7,00 referentes a março/2025"""
    make_delivered_and_accrue(seeded_db, total="100.00")
    return seeded_db


class TestSubmitClaim:

    def test_amount_defaults_to_current_balance(self, owed_db):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        assert claim.status == ClaimStatus.PENDING
        assert claim.amount_claimed == Decimal("7.00")
        assert claim.reference_month == "2025-03"
        assert claim.uploaded_at is not None

    def test_partial_amount(self, owed_db):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL, claimed_amount="3,50")
        assert claim.amount_claimed == Decimal("3.50")

    def test_amount_above_balance(self, owed_db):
        with pytest.raises(InvalidAmount):
            receipt_service.submit_claim(owed_db, 1, RECEIPT_URL, claimed_amount="7.01")

    @pytest.mark.parametrize("amount", ["0", "-1", "1.999"])
    def test_invalid_amount(self, owed_db, amount):
        with pytest.raises(InvalidAmount):
            receipt_service.submit_claim(owed_db, 1, RECEIPT_URL, claimed_amount=amount)

    def test_nothing_to_pay(self, seeded_db):
        with pytest.raises(InvalidAmount):
            receipt_service.submit_claim(seeded_db, 1, RECEIPT_URL)

    def test_claim_does_not_change_balance(self, owed_db):
        receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        balance = ledger_service.compute_balance(owed_db, 1)
        assert balance.current_balance == Decimal("7.00")
        assert payment_count(owed_db) == 0

    def test_multiple_pending_claims_coexist(self, owed_db):
        first = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)
        second = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        pending = receipt_service.list_claims(owed_db, merchant_id=1, status=ClaimStatus.PENDING)
        assert {c.id for c in pending} == {first.id, second.id}

    def test_unknown_merchant(self, seeded_db):
        with pytest.raises(NotFound):
            receipt_service.submit_claim(seeded_db, 999, RECEIPT_URL)


class TestResolveClaim:

    def test_confirm_creates_one_payment(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        resolved = receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.CONFIRM, admin_actor)

        assert resolved.status == ClaimStatus.CONFIRMED
        assert resolved.reviewed_by == admin_actor.user_id
        assert resolved.reviewed_at is not None

        payment = owed_db.execute(select(models.CommissionPayment)).scalar_one()
        assert payment.amount == Decimal("7.00")
        assert payment.receipt_id == claim.id
        assert payment.receipt_url == RECEIPT_URL
        assert payment.reference_month == "2025-03"

        assert ledger_service.compute_balance(owed_db, 1).current_balance == Decimal("0.00")

    def test_second_resolution_fails(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)
        receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.CONFIRM, admin_actor)

        with pytest.raises(AlreadyResolved):
            receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.CONFIRM, admin_actor)
        with pytest.raises(AlreadyResolved):
            receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.REJECT, admin_actor, reason="duplicado")

        assert payment_count(owed_db) == 1

    def test_reject_requires_reason(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        for reason in (None, "", "   "):
            with pytest.raises(MissingReason):
                receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.REJECT, admin_actor, reason=reason)

        assert receipt_service.get_claim_or_404(owed_db, claim.id).status == ClaimStatus.PENDING

    def test_reject_keeps_balance(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        resolved = receipt_service.resolve_claim(
            owed_db, claim.id, ClaimDecision.REJECT, admin_actor, reason="Comprovante ilegível"
        )

        assert resolved.status == ClaimStatus.REJECTED
        assert resolved.rejection_reason == "Comprovante ilegível"
        assert payment_count(owed_db) == 0
        assert ledger_service.compute_balance(owed_db, 1).current_balance == Decimal("7.00")

    def test_already_resolved_wins_over_missing_reason(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)
        receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.CONFIRM, admin_actor)

        with pytest.raises(AlreadyResolved):
            receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.REJECT, admin_actor)

    def test_failed_payment_keeps_claim_pending(self, owed_db, admin_actor):
        claim = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL)

        with patch.object(ledger_service, "register_payment", side_effect=RuntimeError("disco cheio")):
            with pytest.raises(RuntimeError):
                receipt_service.resolve_claim(owed_db, claim.id, ClaimDecision.CONFIRM, admin_actor)

        owed_db.expire_all()
        assert receipt_service.get_claim_or_404(owed_db, claim.id).status == ClaimStatus.PENDING
        assert payment_count(owed_db) == 0

    def test_unknown_claim(self, seeded_db, admin_actor):
        with pytest.raises(NotFound):
            receipt_service.resolve_claim(seeded_db, 999, ClaimDecision.CONFIRM, admin_actor)

    def test_list_claims_filters(self, owed_db, admin_actor):
        kept = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL, claimed_amount="1.00")
        done = receipt_service.submit_claim(owed_db, 1, RECEIPT_URL, claimed_amount="2.00")
        receipt_service.resolve_claim(owed_db, done.id, ClaimDecision.CONFIRM, admin_actor)

        pending = receipt_service.list_claims(owed_db, status=ClaimStatus.PENDING)
        assert [c.id for c in pending] == [kept.id]
        assert receipt_service.list_claims(owed_db, merchant_id=2) == []
