"""
Testes de Concorrência
======================
Duas sessões independentes sobre o mesmo arquivo SQLite, simulando
duas requisições que leram o mesmo pedido antes de qualquer escrita.
"""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from vitrine.api.admin.services import commission_service, receipt_service
from vitrine.api.admin.services.order_service import OrderService
from vitrine.core import models
from vitrine.core.exceptions import AlreadyResolved, InvalidTransition
from vitrine.core.security import Actor
from vitrine.core.utils.enums import ActorRole, ClaimDecision, ClaimStatus, OrderStatus
from tests.conftest import OWNER_A_ID, ADMIN_ID, make_delivered_and_accrue, make_order, seed_base_data

MERCHANT = Actor(user_id=OWNER_A_ID, role=ActorRole.MERCHANT)
ADMIN = Actor(user_id=ADMIN_ID, role=ActorRole.ADMIN)


@pytest.fixture
def file_sessionmaker(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'vitrine.db'}")
    models.Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    with factory() as session:
        seed_base_data(session)

    yield factory
    engine.dispose()


def order_in_status(factory, status: OrderStatus) -> int:
    with factory() as session:
        return make_order(session, status=status).id


class TestConcurrentTransitions:

    def test_second_writer_loses(self, file_sessionmaker):
        order_id = order_in_status(file_sessionmaker, OrderStatus.CONFIRMED)

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            first, second = OrderService(s1), OrderService(s2)

            # As duas leem o pedido em 'confirmed' antes de qualquer escrita
            first.get_order(order_id)
            second.get_order(order_id)

            first.transition(order_id, OrderStatus.PREPARING, MERCHANT)

            with pytest.raises(InvalidTransition):
                second.transition(order_id, OrderStatus.PREPARING, MERCHANT)

        with file_sessionmaker() as session:
            order = OrderService(session).get_order(order_id)
            assert order.status == OrderStatus.PREPARING
            assert [h.to_value for h in order.status_history] == ["preparing"]

    def test_confirm_and_reject_race(self, file_sessionmaker):
        order_id = order_in_status(file_sessionmaker, OrderStatus.PENDING_CONFIRMATION)

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            first, second = OrderService(s1), OrderService(s2)
            first.get_order(order_id)
            second.get_order(order_id)

            first.transition(order_id, OrderStatus.CONFIRMED, MERCHANT)

            with pytest.raises(InvalidTransition):
                second.transition(order_id, OrderStatus.REJECTED, MERCHANT)

        with file_sessionmaker() as session:
            assert OrderService(session).get_order(order_id).status == OrderStatus.CONFIRMED

    def test_concurrent_delivery_accrues_once(self, file_sessionmaker):
        order_id = order_in_status(file_sessionmaker, OrderStatus.READY)

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            first, second = OrderService(s1), OrderService(s2)
            first.get_order(order_id)
            second.get_order(order_id)

            first.transition(order_id, OrderStatus.DELIVERED, MERCHANT)
            with pytest.raises(InvalidTransition):
                second.transition(order_id, OrderStatus.DELIVERED, MERCHANT)

        with file_sessionmaker() as session:
            period = session.execute(select(models.CommissionPeriod)).scalar_one()
            assert period.commission_amount == Decimal("7.00")
            assert period.delivered_count == 1

    def test_preparing_and_reject_race_from_confirmed(self, file_sessionmaker):
        order_id = order_in_status(file_sessionmaker, OrderStatus.CONFIRMED)

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            first, second = OrderService(s1), OrderService(s2)
            first.get_order(order_id)
            second.get_order(order_id)

            first.transition(order_id, OrderStatus.PREPARING, MERCHANT)

            with pytest.raises(InvalidTransition):
                second.transition(order_id, OrderStatus.REJECTED, MERCHANT)

        with file_sessionmaker() as session:
            order = OrderService(session).get_order(order_id)
            assert order.status == OrderStatus.PREPARING
            assert [h.to_value for h in order.status_history] == ["preparing"]


class TestConcurrentClaimResolution:

    def test_only_one_resolver_wins(self, file_sessionmaker):
        with file_sessionmaker() as session:
            make_delivered_and_accrue(session, total="100.00")
            claim_id = receipt_service.submit_claim(session, 1, "https://cdn/pix.png").id

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            # Ambas enxergam o comprovante pendente
            assert receipt_service.get_claim_or_404(s1, claim_id).status == ClaimStatus.PENDING
            assert receipt_service.get_claim_or_404(s2, claim_id).status == ClaimStatus.PENDING

            receipt_service.resolve_claim(s1, claim_id, ClaimDecision.CONFIRM, ADMIN)

            with pytest.raises(AlreadyResolved):
                receipt_service.resolve_claim(s2, claim_id, ClaimDecision.CONFIRM, ADMIN)

        with file_sessionmaker() as session:
            payments = session.execute(select(models.CommissionPayment)).scalars().all()
            assert len(payments) == 1


class TestConcurrentAccrual:

    def test_sibling_deliveries_both_count(self, file_sessionmaker):
        first_id = order_in_status(file_sessionmaker, OrderStatus.READY)
        second_id = order_in_status(file_sessionmaker, OrderStatus.READY)

        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            first, second = OrderService(s1), OrderService(s2)
            first.get_order(first_id)
            second.get_order(second_id)

            first.transition(first_id, OrderStatus.DELIVERED, MERCHANT)
            second.transition(second_id, OrderStatus.DELIVERED, MERCHANT)

        with file_sessionmaker() as session:
            period = session.execute(select(models.CommissionPeriod)).scalar_one()
            assert period.total_sales == Decimal("200.00")
            assert period.commission_amount == Decimal("14.00")
            assert period.delivered_count == 2

    def test_period_created_elsewhere_is_reused(self, file_sessionmaker):
        with file_sessionmaker() as s1, file_sessionmaker() as s2:
            # s2 ainda não enxerga o período quando s1 grava
            assert s2.execute(select(models.CommissionPeriod)).first() is None

            commission_service.create_period(s1, 1, "2025-03", Decimal("0.07"))
            s1.commit()

            period = commission_service.create_period(s2, 1, "2025-03", Decimal("0.07"))
            assert period.id is not None
            s2.commit()

        with file_sessionmaker() as session:
            assert len(session.execute(select(models.CommissionPeriod)).scalars().all()) == 1

    def test_accrual_locks_the_merchant_row(self):
        statement = commission_service.merchant_lock_query(1)
        sql = str(statement.compile(dialect=postgresql.dialect()))

        assert "FOR UPDATE" in sql
        assert "merchants" in sql
