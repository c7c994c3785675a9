# vitrine/api/admin/services/commission_service.py
"""
Apuração de comissão por lojista e mês.

A comissão é SEMPRE re-derivada dos pedidos entregues do período.
Nunca soma sobre o valor anterior, então rodar de novo não duplica nada.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vitrine.core import models
from vitrine.core.config import config
from vitrine.core.utils.enums import OrderStatus
from vitrine.core.utils.time_utils import month_bounds, month_key, now_utc
from vitrine.core.utils.validators import to_money

logger = logging.getLogger(__name__)


def calculate_commission(total_sales: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    rate = config.COMMISSION_RATE if rate is None else rate
    return to_money(Decimal(total_sales) * Decimal(rate))


def merchant_lock_query(merchant_id: int):
    return (
        select(models.Merchant.id)
        .where(models.Merchant.id == merchant_id)
        .with_for_update()
    )


def create_period(db: Session, merchant_id: int, month_year: str, rate: Decimal) -> models.CommissionPeriod:
    """
    Insere o período dentro de um savepoint.

    Se outra transação gravou o mesmo (lojista, mês) primeiro, a constraint
    única dispara e a linha dela é reaproveitada no lugar de um erro 500.
    """
    period = models.CommissionPeriod(merchant_id=merchant_id, month_year=month_year, commission_rate=rate)
    try:
        with db.begin_nested():
            db.add(period)
            db.flush()
        return period
    except IntegrityError:
        logger.warning(f"⚠️ Período {month_year} do lojista {merchant_id} já criado em paralelo, reaproveitando")

    return db.execute(
        select(models.CommissionPeriod).where(
            models.CommissionPeriod.merchant_id == merchant_id,
            models.CommissionPeriod.month_year == month_year,
        )
    ).scalar_one()


def accrue(db: Session, merchant_id: int, month_year: str) -> Optional[models.CommissionPeriod]:
    """
    Recalcula o CommissionPeriod de (lojista, mês) a partir dos pedidos.

    Não faz commit: roda dentro da transação de quem chamou (ex: a transição
    para 'delivered'). Retorna None se o mês não tem vendas nem período gravado.
    """
    start, end = month_bounds(month_year)

    # Apurações do mesmo lojista entram em fila: a segunda só lê os pedidos
    # depois que a primeira fez commit.
    db.execute(merchant_lock_query(merchant_id))

    rows = db.execute(
        select(models.Order.status, models.Order.total).where(
            models.Order.merchant_id == merchant_id,
            models.Order.created_at >= start,
            models.Order.created_at < end,
        )
    ).all()

    delivered_totals = [Decimal(total) for status, total in rows if status == OrderStatus.DELIVERED]
    total_sales = to_money(sum(delivered_totals, Decimal("0")))
    rate = config.COMMISSION_RATE
    commission_amount = calculate_commission(total_sales, rate)

    period = db.execute(
        select(models.CommissionPeriod).where(
            models.CommissionPeriod.merchant_id == merchant_id,
            models.CommissionPeriod.month_year == month_year,
        )
    ).scalar_one_or_none()

    if period is None:
        if not delivered_totals:
            return None
        period = create_period(db, merchant_id, month_year, rate)

    period.total_sales = total_sales
    period.commission_rate = rate
    period.commission_amount = commission_amount
    period.orders_count = len(rows)
    period.delivered_count = len(delivered_totals)
    period.calculated_at = now_utc()

    db.flush()

    logger.info(
        f"📊 Comissão apurada: lojista {merchant_id} | {month_year} | "
        f"vendas R$ {total_sales} | comissão R$ {commission_amount} | "
        f"{len(delivered_totals)}/{len(rows)} pedidos entregues"
    )
    return period


def accrue_all(db: Session, merchant_id: Optional[int] = None) -> list[models.CommissionPeriod]:
    """
    Recalcula em lote todos os períodos que têm pedidos ou período já gravado.

    Resultado idêntico ao das apurações incrementais: cada período é
    re-derivado de forma independente, então a ordem não importa.
    """
    order_query = select(models.Order.merchant_id, models.Order.created_at)
    period_query = select(models.CommissionPeriod.merchant_id, models.CommissionPeriod.month_year)
    if merchant_id is not None:
        order_query = order_query.where(models.Order.merchant_id == merchant_id)
        period_query = period_query.where(models.CommissionPeriod.merchant_id == merchant_id)

    # Mês calculado em Python: depende do fuso do negócio, não do banco
    targets: dict[int, set[str]] = defaultdict(set)
    for order_merchant_id, created_at in db.execute(order_query):
        targets[order_merchant_id].add(month_key(created_at))
    for period_merchant_id, month_year in db.execute(period_query):
        targets[period_merchant_id].add(month_year)

    try:
        periods = []
        for target_merchant_id in sorted(targets):
            for month_year in sorted(targets[target_merchant_id]):
                period = accrue(db, target_merchant_id, month_year)
                if period is not None:
                    periods.append(period)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Recalculo em lote concluído: {len(periods)} períodos")
    return periods
