# vitrine/api/admin/services/order_service.py
import logging
import math
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from vitrine.api.admin.services import commission_service, order_state_machine
from vitrine.api.admin.services.order_code import generate_unique_order_number
from vitrine.api.schemas.orders.order import OrderCreate
from vitrine.core import models
from vitrine.core.exceptions import InvalidAmount, InvalidTransition, NotFound
from vitrine.core.security import Actor
from vitrine.core.utils.enums import OrderStatus, PaymentStatus
from vitrine.core.utils.time_utils import month_key
from vitrine.core.utils.validators import to_money, validate_amount

logger = logging.getLogger(__name__)


class OrderService:
    """Checkout e ciclo de vida do pedido (status e sub-status PIX)"""

    def __init__(self, db: Session):
        self.db = db

    # ========== CONSULTAS ==========

    def get_order(self, order_id: int) -> models.Order:
        order = self.db.execute(
            select(models.Order)
            .options(selectinload(models.Order.items), selectinload(models.Order.status_history))
            .where(models.Order.id == order_id)
        ).scalar_one_or_none()

        if not order:
            raise NotFound(f"Pedido {order_id} não encontrado")
        return order

    def get_merchant_order(self, merchant_id: int, order_id: int) -> models.Order:
        order = self.get_order(order_id)
        if order.merchant_id != merchant_id:
            raise NotFound(f"Pedido {order_id} não encontrado")
        return order

    def get_customer_order(self, customer_id: int, order_id: int) -> models.Order:
        order = self.get_order(order_id)
        if order.customer_id != customer_id:
            raise NotFound(f"Pedido {order_id} não encontrado")
        return order

    def list_merchant_orders(
            self,
            merchant_id: int,
            status: Optional[OrderStatus] = None,
            page: int = 1,
            size: int = 20,
    ) -> tuple[list[models.Order], int, int]:
        """Retorna (pedidos da página, total de itens, total de páginas)"""
        query = select(models.Order).where(models.Order.merchant_id == merchant_id)
        if status:
            query = query.where(models.Order.status == status)

        total_items = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        orders = self.db.execute(
            query.order_by(models.Order.created_at.desc(), models.Order.id.desc())
            .offset((page - 1) * size)
            .limit(size)
        ).scalars().all()

        return orders, total_items, math.ceil(total_items / size) if size else 0

    def list_customer_orders(self, customer_id: int) -> list[models.Order]:
        return self.db.execute(
            select(models.Order)
            .where(models.Order.customer_id == customer_id)
            .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        ).scalars().all()

    # ========== CHECKOUT ==========

    def create_order(self, customer: Actor, request: OrderCreate) -> models.Order:
        """
        Cria o pedido com snapshot dos itens.

        total = subtotal + taxa de entrega, calculado aqui e nunca editado depois.
        """
        merchant = self.db.get(models.Merchant, request.merchant_id)
        if not merchant or not merchant.is_active:
            raise NotFound(f"Lojista {request.merchant_id} não encontrado")

        if not request.items:
            raise InvalidAmount("O pedido precisa de pelo menos um item")

        items = []
        for item in request.items:
            unit_price = validate_amount(item.unit_price)
            if item.quantity <= 0:
                raise InvalidAmount(f"Quantidade inválida para '{item.product_name}'")
            items.append(models.OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                unit_price=unit_price,
                quantity=item.quantity,
                subtotal=to_money(unit_price * item.quantity),
            ))

        subtotal = to_money(sum((i.subtotal for i in items), Decimal("0")))

        delivery_fee = Decimal("0.00")
        if request.wants_delivery:
            delivery_fee = to_money(request.delivery_fee or 0)
            if delivery_fee < 0:
                raise InvalidAmount("Taxa de entrega não pode ser negativa")

        order = models.Order(
            order_number=generate_unique_order_number(self.db),
            merchant_id=merchant.id,
            customer_id=customer.user_id,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=subtotal + delivery_fee,
            status=OrderStatus.PENDING,
            payment_method=request.payment_method,
            payment_status=None,
            wants_delivery=request.wants_delivery,
            delivery_address=request.delivery_address if request.wants_delivery else None,
            customer_phone=request.customer_phone,
            customer_notes=request.customer_notes,
            items=items,
        )
        self.db.add(order)

        try:
            self.db.flush()
            self._record_history(order, "status", None, OrderStatus.PENDING.value, customer)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"🛒 Pedido {order.order_number} criado: lojista {merchant.id} | cliente {customer.user_id} | "
            f"R$ {order.total} | {order.payment_method.value}"
        )
        return self.get_order(order.id)

    # ========== TRANSIÇÕES ==========

    def transition(
            self,
            order_id: int,
            target: OrderStatus,
            actor: Actor,
            expected_version: Optional[int] = None,
    ) -> models.Order:
        """
        Move o pedido para `target`.

        Protegido por versão otimista: se outra transição gravou antes,
        esta falha com InvalidTransition em vez de sobrescrever.
        Entrega dispara a re-apuração da comissão do mês na mesma transação.
        """
        order = self.get_order(order_id)
        previous = order.status

        try:
            if expected_version is not None and expected_version != order.version:
                raise InvalidTransition(
                    f"Pedido {order.order_number} foi alterado por outra operação (versão {order.version})"
                )

            order_state_machine.validate_transition(order, target, actor)
            self._apply_status(order, target, actor)

            self.db.commit()
        except InvalidTransition as e:
            self.db.rollback()
            logger.warning(f"⚠️ Transição recusada no pedido {order_id}: {e.message}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"🔄 Pedido {order.order_number}: {previous.value} → {target.value} "
            f"por {actor.role.value} {actor.user_id}"
        )
        return order

    def update_payment_status(
            self,
            order_id: int,
            target: PaymentStatus,
            actor: Actor,
            proof_url: Optional[str] = None,
            advance_order: bool = True,
    ) -> models.Order:
        """
        Move o sub-status PIX.

        Confirmar o pagamento com o pedido ainda antes de 'confirmed' também
        avança o pedido para 'confirmed' (quando advance_order=True).
        """
        order = self.get_order(order_id)
        previous = order.payment_status

        try:
            order_state_machine.validate_payment_transition(order, target, actor)

            order.payment_status = target
            if proof_url:
                order.payment_proof_url = proof_url
            self._record_history(
                order, "payment_status", previous.value if previous else None, target.value, actor
            )
            self._flush_guarded(order)

            if (
                    advance_order
                    and target == PaymentStatus.CONFIRMED
                    and order.status in order_state_machine.PRE_CONFIRMATION_STATUSES
            ):
                order_state_machine.validate_transition(order, OrderStatus.CONFIRMED, actor)
                self._apply_status(order, OrderStatus.CONFIRMED, actor)

            self.db.commit()
        except InvalidTransition as e:
            self.db.rollback()
            logger.warning(f"⚠️ Pagamento do pedido {order_id} não alterado: {e.message}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"💳 Pedido {order.order_number}: pagamento {previous.value if previous else 'null'} → "
            f"{target.value} por {actor.role.value} {actor.user_id}"
        )
        return order

    # ========== INTERNOS ==========

    def _apply_status(self, order: models.Order, target: OrderStatus, actor: Actor) -> None:
        previous = order.status
        order.status = target
        self._record_history(order, "status", previous.value, target.value, actor)
        self._flush_guarded(order)

        if target == OrderStatus.DELIVERED:
            commission_service.accrue(self.db, order.merchant_id, month_key(order.created_at))

    def _flush_guarded(self, order: models.Order) -> None:
        try:
            self.db.flush()
        except StaleDataError:
            raise InvalidTransition(
                f"Pedido {order.order_number} foi alterado por outra operação"
            )

    def _record_history(
            self,
            order: models.Order,
            field: str,
            from_value: Optional[str],
            to_value: str,
            actor: Actor,
    ) -> None:
        order.status_history.append(models.OrderStatusHistory(
            field=field,
            from_value=from_value,
            to_value=to_value,
            actor_id=actor.user_id,
            actor_role=actor.role,
        ))
