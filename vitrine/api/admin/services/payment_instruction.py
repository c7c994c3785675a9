# vitrine/api/admin/services/payment_instruction.py
"""
Instrução de pagamento PIX da comissão.

A codificação do payload (QR code / copia-e-cola) é externa: recebemos um
gerador pronto e só entregamos entradas bem formadas e exibimos o resultado.
"""
import logging
from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import Session

from vitrine.api.admin.services import ledger_service
from vitrine.api.schemas.financial.commission import PaymentInstructionOut
from vitrine.core.config import config
from vitrine.core.exceptions import InvalidAmount

logger = logging.getLogger(__name__)


class PaymentInstructionGenerator(Protocol):
    def __call__(
            self,
            payee_key: str,
            payee_key_type: str,
            payee_name: str,
            payee_city: str,
            amount: Decimal,
            description: str,
    ) -> str:
        ...


def textual_instruction(
        payee_key: str,
        payee_key_type: str,
        payee_name: str,
        payee_city: str,
        amount: Decimal,
        description: str,
) -> str:
    """Cópia legível da instrução, para quem paga digitando a chave."""
    return (
        f"{payee_key}\n"
        f"Valor: R$ {amount:.2f}\n"
        f"Descrição: {description}\n"
        f"Recebedor: {payee_name}"
    )


def build_payment_instruction(
        db: Session,
        merchant_id: int,
        generator: PaymentInstructionGenerator,
) -> PaymentInstructionOut:
    """
    Monta a instrução para o saldo atual do lojista.

    Raises:
        InvalidAmount: saldo zerado (nada a pagar)
        NotFound: lojista inexistente
    """
    balance = ledger_service.compute_balance(db, merchant_id)
    if balance.current_balance <= Decimal("0"):
        raise InvalidAmount("Não há saldo de comissão a pagar")

    params = dict(
        payee_key=config.PLATFORM_PIX_KEY,
        payee_key_type=config.PLATFORM_PIX_KEY_TYPE,
        payee_name=config.PLATFORM_PIX_NAME,
        payee_city=config.PLATFORM_PIX_CITY,
        amount=balance.current_balance,
        description=config.PLATFORM_PIX_DESCRIPTION,
    )

    payload = generator(**params)
    logger.info(f"🔑 Instrução de pagamento gerada: lojista {merchant_id} | R$ {balance.current_balance}")

    return PaymentInstructionOut(
        amount=balance.current_balance,
        payload=payload,
        text_copy=textual_instruction(**params),
        payee_name=config.PLATFORM_PIX_NAME,
        payee_key=config.PLATFORM_PIX_KEY,
        description=config.PLATFORM_PIX_DESCRIPTION,
    )
