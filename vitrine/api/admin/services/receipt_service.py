# vitrine/api/admin/services/receipt_service.py
"""
Fila de comprovantes de pagamento de comissão.

Um comprovante NÃO reduz o saldo. Só a confirmação do administrador,
que cria o CommissionPayment na mesma transação, reduz.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from vitrine.api.admin.services import ledger_service
from vitrine.core import models
from vitrine.core.exceptions import InvalidAmount, AlreadyResolved, MissingReason, NotFound
from vitrine.core.security import Actor
from vitrine.core.utils.enums import ClaimStatus, ClaimDecision
from vitrine.core.utils.time_utils import current_month_key, now_utc
from vitrine.core.utils.validators import validate_amount

logger = logging.getLogger(__name__)


def resolve_claim_amount(db: Session, merchant_id: int, claimed_amount=None) -> Decimal:
    """
    Valor do comprovante: o informado (> 0 e <= saldo) ou o saldo atual.

    Raises:
        InvalidAmount: valor inválido, acima do saldo ou saldo zerado
    """
    balance = ledger_service.compute_balance(db, merchant_id)

    if claimed_amount is None:
        if balance.current_balance <= Decimal("0"):
            raise InvalidAmount("Não há saldo de comissão em aberto")
        return balance.current_balance

    amount = validate_amount(claimed_amount)
    if amount > balance.current_balance:
        raise InvalidAmount(
            f"Valor informado (R$ {amount}) maior que o saldo atual (R$ {balance.current_balance})"
        )
    return amount


def submit_claim(
        db: Session,
        merchant_id: int,
        receipt_url: str,
        claimed_amount=None,
        reference_month: Optional[str] = None,
        notes: Optional[str] = None,
) -> models.CommissionReceipt:
    """
    Registra um comprovante pendente.

    - sem valor informado: usa o saldo atual calculado AGORA
    - valor informado: precisa ser > 0 e <= saldo atual
    - sem mês de referência: período mais antigo em aberto (ou o mês atual)

    Raises:
        InvalidAmount: valor inválido, acima do saldo ou saldo zerado
        NotFound: lojista inexistente
    """
    amount = resolve_claim_amount(db, merchant_id, claimed_amount)

    if not reference_month:
        reference_month = ledger_service.oldest_outstanding_month(db, merchant_id) or current_month_key()

    claim = models.CommissionReceipt(
        merchant_id=merchant_id,
        receipt_url=receipt_url,
        amount_claimed=amount,
        reference_month=reference_month,
        notes=notes,
        status=ClaimStatus.PENDING,
        uploaded_at=now_utc(),
    )

    try:
        db.add(claim)
        db.commit()
        db.refresh(claim)
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"📎 Comprovante {claim.id} enviado: lojista {merchant_id} | R$ {amount} | ref {reference_month}"
    )
    return claim


def get_claim_or_404(db: Session, claim_id: int) -> models.CommissionReceipt:
    claim = db.get(models.CommissionReceipt, claim_id)
    if not claim:
        raise NotFound(f"Comprovante {claim_id} não encontrado")
    return claim


def resolve_claim(
        db: Session,
        claim_id: int,
        decision: ClaimDecision,
        admin: Actor,
        reason: Optional[str] = None,
) -> models.CommissionReceipt:
    """
    Confirma ou rejeita um comprovante pendente.

    Confirmar = status 'confirmed' + CommissionPayment, num único commit.
    Rejeitar = status 'rejected' com motivo obrigatório; saldo intocado.

    Raises:
        NotFound: comprovante inexistente
        AlreadyResolved: comprovante já confirmado/rejeitado
        MissingReason: rejeição sem motivo
    """
    claim = get_claim_or_404(db, claim_id)

    if claim.status != ClaimStatus.PENDING:
        raise AlreadyResolved(f"Comprovante {claim_id} já está '{claim.status.value}'")

    reason = (reason or "").strip() or None
    if decision == ClaimDecision.REJECT and not reason:
        raise MissingReason("Informe o motivo da rejeição")

    new_status = ClaimStatus.CONFIRMED if decision == ClaimDecision.CONFIRM else ClaimStatus.REJECTED

    try:
        # UPDATE condicional: só um resolvedor concorrente encontra a linha pendente
        result = db.execute(
            update(models.CommissionReceipt)
            .where(
                models.CommissionReceipt.id == claim_id,
                models.CommissionReceipt.status == ClaimStatus.PENDING,
            )
            .values(
                status=new_status,
                reviewed_at=now_utc(),
                reviewed_by=admin.user_id,
                rejection_reason=reason if new_status == ClaimStatus.REJECTED else None,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyResolved(f"Comprovante {claim_id} já foi resolvido")

        if new_status == ClaimStatus.CONFIRMED:
            ledger_service.register_payment(
                db,
                merchant_id=claim.merchant_id,
                amount=claim.amount_claimed,
                admin=admin,
                notes=f"Comprovante #{claim.id} confirmado",
                receipt_url=claim.receipt_url,
                reference_month=claim.reference_month,
                receipt_id=claim.id,
                commit=False,
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(claim)

    if new_status == ClaimStatus.CONFIRMED:
        logger.info(f"✅ Comprovante {claim_id} confirmado por admin {admin.user_id}: R$ {claim.amount_claimed}")
    else:
        logger.info(f"❌ Comprovante {claim_id} rejeitado por admin {admin.user_id}: {reason}")

    return claim


def list_claims(
        db: Session,
        merchant_id: Optional[int] = None,
        status: Optional[ClaimStatus] = None,
) -> list[models.CommissionReceipt]:
    query = select(models.CommissionReceipt)
    if merchant_id is not None:
        query = query.where(models.CommissionReceipt.merchant_id == merchant_id)
    if status is not None:
        query = query.where(models.CommissionReceipt.status == status)

    return db.execute(
        query.order_by(models.CommissionReceipt.uploaded_at.desc(), models.CommissionReceipt.id.desc())
    ).scalars().all()
