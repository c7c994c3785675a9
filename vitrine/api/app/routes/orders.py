from fastapi import APIRouter, BackgroundTasks

from vitrine.api.admin.services.order_service import OrderService
from vitrine.api.admin.socketio.emitters import (
    emit_order_status_changed, emit_order_payment_status_changed,
)
from vitrine.api.schemas.orders.order import OrderCreate, OrderDetails, OrderOut, PaymentProofCreate
from vitrine.core.database import GetDBDep
from vitrine.core.dependencies import GetActorDep
from vitrine.core.utils.enums import OrderStatus, PaymentStatus

router = APIRouter(prefix="/orders", tags=["Customer Orders"])


@router.post("", response_model=OrderDetails, status_code=201)
def checkout(
        payload: OrderCreate,
        db: GetDBDep,
        actor: GetActorDep,
        background_tasks: BackgroundTasks,
):
    order = OrderService(db).create_order(actor, payload)

    background_tasks.add_task(
        emit_order_status_changed,
        order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id, status=order.status.value,
    )
    return order


@router.get("", response_model=list[OrderOut])
def list_my_orders(db: GetDBDep, actor: GetActorDep):
    return OrderService(db).list_customer_orders(actor.user_id)


@router.get("/{order_id}", response_model=OrderDetails)
def get_my_order(order_id: int, db: GetDBDep, actor: GetActorDep):
    return OrderService(db).get_customer_order(actor.user_id, order_id)


@router.post("/{order_id}/cancel", response_model=OrderDetails)
def cancel_order(
        order_id: int,
        db: GetDBDep,
        actor: GetActorDep,
        background_tasks: BackgroundTasks,
):
    service = OrderService(db)
    service.get_customer_order(actor.user_id, order_id)
    order = service.transition(order_id, OrderStatus.CANCELLED, actor)

    background_tasks.add_task(
        emit_order_status_changed,
        order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id, status=order.status.value,
    )
    return order


@router.post("/{order_id}/payment-proof", response_model=OrderDetails)
def send_payment_proof(
        order_id: int,
        payload: PaymentProofCreate,
        db: GetDBDep,
        actor: GetActorDep,
        background_tasks: BackgroundTasks,
):
    """Cliente avisa que pagou o PIX (opcionalmente com o comprovante)."""
    service = OrderService(db)
    service.get_customer_order(actor.user_id, order_id)
    order = service.update_payment_status(
        order_id, PaymentStatus.PENDING_CONFIRMATION, actor, proof_url=payload.proof_url
    )

    background_tasks.add_task(
        emit_order_payment_status_changed,
        order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id,
        payment_status=order.payment_status.value,
    )
    return order
