from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query

from vitrine.api.admin.services.order_service import OrderService
from vitrine.api.admin.socketio.emitters import (
    emit_order_status_changed, emit_order_payment_status_changed,
)
from vitrine.api.schemas.orders.order import (
    OrderDetails, OrderOut, OrderStatusUpdate, PaymentStatusUpdate,
)
from vitrine.api.schemas.shared.pagination import PaginatedResponse
from vitrine.core.database import GetDBDep
from vitrine.core.dependencies import GetActorDep, GetMerchantDep
from vitrine.core.utils.enums import OrderStatus

router = APIRouter(prefix="/stores/{merchant_id}/orders", tags=["Orders"])


@router.get("", response_model=PaginatedResponse[OrderOut])
def list_orders(
        db: GetDBDep,
        merchant: GetMerchantDep,
        status: Optional[OrderStatus] = Query(None),
        page: int = Query(1, ge=1),
        size: int = Query(20, ge=1, le=100),
):
    orders, total_items, total_pages = OrderService(db).list_merchant_orders(merchant.id, status, page, size)
    return PaginatedResponse[OrderOut](
        items=[OrderOut.model_validate(o) for o in orders],
        total_items=total_items,
        total_pages=total_pages,
        page=page,
        size=size,
    )


@router.get("/{order_id}", response_model=OrderDetails)
def get_order(order_id: int, db: GetDBDep, merchant: GetMerchantDep):
    return OrderService(db).get_merchant_order(merchant.id, order_id)


@router.post("/{order_id}/status", response_model=OrderDetails)
def update_order_status(
        order_id: int,
        payload: OrderStatusUpdate,
        db: GetDBDep,
        merchant: GetMerchantDep,
        actor: GetActorDep,
        background_tasks: BackgroundTasks,
):
    service = OrderService(db)
    service.get_merchant_order(merchant.id, order_id)

    order = service.transition(order_id, payload.status, actor, expected_version=payload.version)

    # Só notifica depois do commit
    background_tasks.add_task(
        emit_order_status_changed,
        order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id, status=order.status.value,
    )
    return order


@router.post("/{order_id}/payment-status", response_model=OrderDetails)
def update_payment_status(
        order_id: int,
        payload: PaymentStatusUpdate,
        db: GetDBDep,
        merchant: GetMerchantDep,
        actor: GetActorDep,
        background_tasks: BackgroundTasks,
):
    service = OrderService(db)
    before = service.get_merchant_order(merchant.id, order_id).status

    order = service.update_payment_status(
        order_id, payload.payment_status, actor, advance_order=payload.advance_order
    )

    background_tasks.add_task(
        emit_order_payment_status_changed,
        order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id,
        payment_status=order.payment_status.value,
    )
    if order.status != before:
        background_tasks.add_task(
            emit_order_status_changed,
            order_id=order.id, merchant_id=order.merchant_id, customer_id=order.customer_id,
            status=order.status.value,
        )
    return order
