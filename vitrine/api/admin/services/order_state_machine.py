# vitrine/api/admin/services/order_state_machine.py
"""
Tabela de transições do pedido e do sub-status de pagamento PIX.

Funções puras: não tocam no banco. O OrderService aplica o resultado.
"""
from typing import Optional

from vitrine.core import models
from vitrine.core.exceptions import InvalidTransition
from vitrine.core.security import Actor
from vitrine.core.utils.enums import (
    ActorRole, OrderStatus, PaymentStatus, PaymentMethod, TERMINAL_ORDER_STATUSES,
)

# ═══════════════════════════════════════════════════════════
# STATUS DO PEDIDO
# ═══════════════════════════════════════════════════════════

# Cadeia principal, na ordem em que o pedido avança
ORDER_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.AWAITING_PAYMENT,
    OrderStatus.PENDING_CONFIRMATION,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)

REJECTABLE_FROM = frozenset({
    OrderStatus.PENDING,
    OrderStatus.AWAITING_PAYMENT,
    OrderStatus.PENDING_CONFIRMATION,
})

CANCELLABLE_FROM = frozenset({
    OrderStatus.PENDING,
    OrderStatus.AWAITING_PAYMENT,
})

MERCHANT_ROLES = frozenset({ActorRole.MERCHANT, ActorRole.ADMIN})
CUSTOMER_ROLES = frozenset({ActorRole.CUSTOMER})


def _build_order_edges() -> dict[OrderStatus, dict[OrderStatus, frozenset[ActorRole]]]:
    edges: dict[OrderStatus, dict[OrderStatus, frozenset[ActorRole]]] = {
        status: {} for status in OrderStatus
    }

    # Lojista avança para qualquer status posterior da cadeia
    for index, current in enumerate(ORDER_FLOW[:-1]):
        for target in ORDER_FLOW[index + 1:]:
            edges[current][target] = MERCHANT_ROLES

    for current in REJECTABLE_FROM:
        edges[current][OrderStatus.REJECTED] = MERCHANT_ROLES

    for current in CANCELLABLE_FROM:
        edges[current][OrderStatus.CANCELLED] = CUSTOMER_ROLES

    return edges


ORDER_TRANSITIONS = _build_order_edges()


def allowed_targets(current: OrderStatus) -> frozenset[OrderStatus]:
    return frozenset(ORDER_TRANSITIONS[current])


def allowed_roles(current: OrderStatus, target: OrderStatus) -> frozenset[ActorRole]:
    return ORDER_TRANSITIONS[current].get(target, frozenset())


def can_transition(current: OrderStatus, target: OrderStatus, role: Optional[ActorRole] = None) -> bool:
    roles = allowed_roles(current, target)
    if not roles:
        return False
    return role is None or role in roles


def _check_ownership(order: models.Order, actor: Actor) -> None:
    """Cliente só mexe no próprio pedido; lojista só nos pedidos da própria vitrine."""
    if actor.role == ActorRole.ADMIN:
        return

    if actor.role == ActorRole.CUSTOMER and order.customer_id == actor.user_id:
        return

    if actor.role == ActorRole.MERCHANT and order.merchant.owner_id == actor.user_id:
        return

    raise InvalidTransition(
        f"Usuário {actor.user_id} ({actor.role.value}) não pode alterar o pedido {order.order_number}"
    )


def validate_transition(order: models.Order, target: OrderStatus, actor: Actor) -> None:
    """
    Raises:
        InvalidTransition: status terminal, aresta inexistente, papel sem
        permissão ou pedido de outra pessoa
    """
    current = order.status

    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidTransition(
            f"Pedido {order.order_number} está em status final '{current.value}'"
        )

    roles = allowed_roles(current, target)
    if not roles:
        raise InvalidTransition(
            f"Transição inválida: '{current.value}' → '{target.value}'"
        )

    if actor.role not in roles:
        raise InvalidTransition(
            f"Papel '{actor.role.value}' não pode mover o pedido de '{current.value}' para '{target.value}'"
        )

    _check_ownership(order, actor)


# ═══════════════════════════════════════════════════════════
# SUB-STATUS DE PAGAMENTO (PIX)
# ═══════════════════════════════════════════════════════════

PAYMENT_TRANSITIONS: dict[Optional[PaymentStatus], dict[PaymentStatus, frozenset[ActorRole]]] = {
    None: {
        PaymentStatus.AWAITING_PAYMENT: MERCHANT_ROLES,
    },
    PaymentStatus.AWAITING_PAYMENT: {
        # Cliente avisa que pagou; lojista também pode marcar ao ver o PIX cair
        PaymentStatus.PENDING_CONFIRMATION: CUSTOMER_ROLES | MERCHANT_ROLES,
    },
    PaymentStatus.PENDING_CONFIRMATION: {
        PaymentStatus.CONFIRMED: MERCHANT_ROLES,
        PaymentStatus.REJECTED: MERCHANT_ROLES,
    },
    PaymentStatus.CONFIRMED: {},
    PaymentStatus.REJECTED: {},
}

# Status anteriores a 'confirmed' que a confirmação do PIX pode avançar
PRE_CONFIRMATION_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.AWAITING_PAYMENT,
    OrderStatus.PENDING_CONFIRMATION,
})


def validate_payment_transition(order: models.Order, target: PaymentStatus, actor: Actor) -> None:
    if order.payment_method != PaymentMethod.PIX:
        raise InvalidTransition(
            f"Pedido {order.order_number} não é PIX: sub-status de pagamento não se aplica"
        )

    if order.status in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
        raise InvalidTransition(
            f"Pedido {order.order_number} está em status final '{order.status.value}'"
        )

    current = order.payment_status
    roles = PAYMENT_TRANSITIONS[current].get(target, frozenset())
    current_label = current.value if current else 'null'

    if not roles:
        raise InvalidTransition(
            f"Transição de pagamento inválida: '{current_label}' → '{target.value}'"
        )

    if actor.role not in roles:
        raise InvalidTransition(
            f"Papel '{actor.role.value}' não pode mover o pagamento de '{current_label}' para '{target.value}'"
        )

    _check_ownership(order, actor)
