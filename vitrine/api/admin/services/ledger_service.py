# vitrine/api/admin/services/ledger_service.py
"""
Razão de pagamentos de comissão e motor de saldo.

O saldo NUNCA é gravado: é recalculado a cada leitura a partir de
CommissionPeriod (devido) e CommissionPayment (pago).
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from vitrine.api.schemas.financial.commission import BalanceSummary, DueAlert
from vitrine.core import models
from vitrine.core.exceptions import NotFound
from vitrine.core.security import Actor
from vitrine.core.utils.enums import ClaimStatus, CommissionDisplayStatus
from vitrine.core.utils.time_utils import (
    commission_due_date, current_month_key, format_brazil_datetime, now_utc, to_brazil_time,
)
from vitrine.core.utils.validators import to_money, validate_amount

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class PeriodView:
    """Período de comissão com o status exibido já derivado do razão."""
    period: models.CommissionPeriod
    paid_amount: Decimal
    outstanding: Decimal
    status: CommissionDisplayStatus
    due_date: date


def get_merchant_or_404(db: Session, merchant_id: int) -> models.Merchant:
    merchant = db.get(models.Merchant, merchant_id)
    if not merchant:
        raise NotFound(f"Lojista {merchant_id} não encontrado")
    return merchant


# ═══════════════════════════════════════════════════════════
# MOTOR DE SALDO
# ═══════════════════════════════════════════════════════════

def _sum_money(values) -> Decimal:
    return to_money(sum((Decimal(v) for v in values), Decimal("0")))


def total_commission(db: Session, merchant_id: int) -> Decimal:
    return _sum_money(db.execute(
        select(models.CommissionPeriod.commission_amount)
        .where(models.CommissionPeriod.merchant_id == merchant_id)
    ).scalars())


def total_paid(db: Session, merchant_id: int) -> Decimal:
    return _sum_money(db.execute(
        select(models.CommissionPayment.amount)
        .where(models.CommissionPayment.merchant_id == merchant_id)
    ).scalars())


def compute_balance(db: Session, merchant_id: int) -> BalanceSummary:
    """
    Saldo atual = max(0, comissão total - total pago).

    Pagamento acima do devido aparece em `credit`, nunca como saldo negativo.
    Leitura pura: sem lock e sem escrita.
    """
    get_merchant_or_404(db, merchant_id)

    commission = total_commission(db, merchant_id)
    paid = total_paid(db, merchant_id)
    raw = commission - paid

    return BalanceSummary(
        merchant_id=merchant_id,
        total_commission=commission,
        total_paid=paid,
        current_balance=max(ZERO, raw),
        credit=max(ZERO, -raw),
    )


def get_balance_summary(db: Session, merchant_id: int) -> BalanceSummary:
    """Saldo + alerta de vencimento do período mais antigo em aberto."""
    summary = compute_balance(db, merchant_id)
    summary.due_alert = get_due_alert(period_views(db, merchant_id))
    return summary


# ═══════════════════════════════════════════════════════════
# STATUS EXIBIDO DOS PERÍODOS
# ═══════════════════════════════════════════════════════════

def pending_claim_months(db: Session, merchant_id: int) -> set[str]:
    return set(db.execute(
        select(models.CommissionReceipt.reference_month).where(
            models.CommissionReceipt.merchant_id == merchant_id,
            models.CommissionReceipt.status == ClaimStatus.PENDING,
        )
    ).scalars())


def period_views(db: Session, merchant_id: int) -> list[PeriodView]:
    """
    Distribui o total pago pelos períodos, do mais antigo para o mais novo.

    - período totalmente coberto      -> paid
    - com comprovante pendente no mês -> awaiting_confirmation
    - senão                           -> pending
    """
    periods = db.execute(
        select(models.CommissionPeriod)
        .where(models.CommissionPeriod.merchant_id == merchant_id)
        .order_by(models.CommissionPeriod.month_year.asc())
    ).scalars().all()

    remaining = total_paid(db, merchant_id)
    awaiting = pending_claim_months(db, merchant_id)

    views = []
    for period in periods:
        commission = to_money(period.commission_amount)
        allocated = min(remaining, commission)
        remaining -= allocated
        outstanding = commission - allocated

        if outstanding == ZERO:
            status = CommissionDisplayStatus.PAID
        elif period.month_year in awaiting:
            status = CommissionDisplayStatus.AWAITING_CONFIRMATION
        else:
            status = CommissionDisplayStatus.PENDING

        views.append(PeriodView(
            period=period,
            paid_amount=allocated,
            outstanding=outstanding,
            status=status,
            due_date=commission_due_date(period.month_year),
        ))

    return views


def get_due_alert(views: list[PeriodView], today: Optional[date] = None) -> Optional[DueAlert]:
    today = today or to_brazil_time(now_utc()).date()

    for view in views:
        if view.outstanding > ZERO:
            return DueAlert(
                month_year=view.period.month_year,
                due_date=view.due_date,
                is_overdue=today > view.due_date,
                outstanding=view.outstanding,
            )
    return None


def oldest_outstanding_month(db: Session, merchant_id: int) -> Optional[str]:
    for view in period_views(db, merchant_id):
        if view.outstanding > ZERO:
            return view.period.month_year
    return None


# ═══════════════════════════════════════════════════════════
# RAZÃO
# ═══════════════════════════════════════════════════════════

def register_payment(
        db: Session,
        merchant_id: int,
        amount,
        admin: Actor,
        notes: Optional[str] = None,
        receipt_url: Optional[str] = None,
        reference_month: Optional[str] = None,
        receipt_id: Optional[int] = None,
        commit: bool = True,
) -> models.CommissionPayment:
    """
    Acrescenta um pagamento confirmado ao razão.

    NÃO é idempotente: cada chamada cria uma linha nova. Quem chama deve
    evitar duplicidade (ex: resolve_claim só aceita comprovante pendente).

    Args:
        commit: False quando faz parte de uma transação maior (confirmação
            de comprovante); quem chamou faz o commit.

    Raises:
        InvalidAmount: valor não positivo ou com mais de 2 casas
        NotFound: lojista inexistente
    """
    try:
        value = validate_amount(amount)
        get_merchant_or_404(db, merchant_id)

        confirmed_at = now_utc()
        if not notes:
            notes = f"Pagamento registrado em {format_brazil_datetime(confirmed_at, '%d/%m/%Y às %H:%M')}"

        if not reference_month:
            reference_month = oldest_outstanding_month(db, merchant_id) or current_month_key()

        payment = models.CommissionPayment(
            merchant_id=merchant_id,
            amount=value,
            notes=notes,
            reference_month=reference_month,
            receipt_url=receipt_url,
            receipt_id=receipt_id,
            confirmed_at=confirmed_at,
            confirmed_by=admin.user_id,
        )
        db.add(payment)
        db.flush()

        if commit:
            db.commit()
    except Exception:
        if commit:
            db.rollback()
        raise

    logger.info(
        f"💰 Pagamento registrado: lojista {merchant_id} | R$ {value} | "
        f"ref {reference_month} | admin {admin.user_id} | comprovante {receipt_id or '-'}"
    )
    return payment


def list_payments(db: Session, merchant_id: int) -> list[models.CommissionPayment]:
    return db.execute(
        select(models.CommissionPayment)
        .where(models.CommissionPayment.merchant_id == merchant_id)
        .order_by(models.CommissionPayment.confirmed_at.desc(), models.CommissionPayment.id.desc())
    ).scalars().all()
