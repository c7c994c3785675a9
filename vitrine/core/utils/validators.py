# vitrine/core/utils/validators.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from vitrine.core.exceptions import InvalidAmount

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Arredonda para centavos (meio para cima)."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_amount(value) -> Decimal:
    """
    Valida um valor monetário informado por usuário.

    Regras:
    - número decimal finito
    - estritamente positivo
    - no máximo 2 casas decimais (nada é arredondado silenciosamente)

    Raises:
        InvalidAmount: se alguma regra falhar
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount("Valor não informado")

    if isinstance(value, float):
        # float direto perde precisão; usamos sua representação textual
        value = repr(value)

    try:
        amount = Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Valor inválido: '{value}'")

    if not amount.is_finite():
        raise InvalidAmount(f"Valor inválido: '{value}'")

    if amount <= 0:
        raise InvalidAmount("O valor deve ser maior que zero")

    if amount.as_tuple().exponent < -2 and amount != amount.quantize(CENTS):
        raise InvalidAmount("O valor deve ter no máximo 2 casas decimais")

    return amount.quantize(CENTS)
