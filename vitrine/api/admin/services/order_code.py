import random
import string

from sqlalchemy.orm import Session

from vitrine.core import models
from vitrine.core.config import config
from vitrine.core.exceptions import CommissionError
from vitrine.core.utils.time_utils import now_utc, to_brazil_time


def generate_order_number(prefix: str | None = None) -> str:
    """'TF20250314-0427': prefixo + data local + 4 dígitos aleatórios."""
    prefix = config.ORDER_NUMBER_PREFIX if prefix is None else prefix
    hoje = to_brazil_time(now_utc()).strftime("%Y%m%d")
    sufixo = ''.join(random.choices(string.digits, k=4))
    return f"{prefix}{hoje}-{sufixo}"


def generate_unique_order_number(db: Session, max_attempts: int = 5) -> str:
    for _ in range(max_attempts):
        order_number = generate_order_number()
        existe = db.query(models.Order.id).filter_by(order_number=order_number).first()
        if not existe:
            return order_number
    raise CommissionError("Falha ao gerar número de pedido único")
