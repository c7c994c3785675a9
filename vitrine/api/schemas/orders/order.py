# vitrine/api/schemas/orders/order.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from vitrine.api.schemas.shared.base import AppBaseModel
from vitrine.core.utils.enums import OrderStatus, PaymentMethod, PaymentStatus, ActorRole


# ===================================================================
# ENTRADA (CHECKOUT)
# ===================================================================

class OrderItemCreate(AppBaseModel):
    product_id: Optional[int] = None
    product_name: str = Field(..., min_length=1, max_length=200)
    unit_price: Decimal = Field(..., gt=0, decimal_places=2)
    quantity: int = Field(..., gt=0)


class OrderCreate(AppBaseModel):
    merchant_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod
    wants_delivery: bool = False
    delivery_address: Optional[str] = None
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    customer_phone: Optional[str] = Field(None, max_length=32)
    customer_notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_delivery(self):
        if self.wants_delivery and not (self.delivery_address or "").strip():
            raise ValueError("Endereço de entrega é obrigatório para delivery")
        return self


class OrderStatusUpdate(AppBaseModel):
    status: OrderStatus
    # Versão lida pelo cliente; se divergir, outra alteração venceu
    version: Optional[int] = None


class PaymentStatusUpdate(AppBaseModel):
    payment_status: PaymentStatus
    advance_order: bool = True


class PaymentProofCreate(AppBaseModel):
    proof_url: Optional[str] = None


# ===================================================================
# SAÍDA
# ===================================================================

class OrderItemOut(AppBaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


class OrderStatusHistoryOut(AppBaseModel):
    field: str
    from_value: Optional[str] = None
    to_value: str
    actor_id: int
    actor_role: ActorRole
    changed_at: datetime


class OrderOut(AppBaseModel):
    id: int
    order_number: str
    merchant_id: int
    customer_id: int
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: Optional[PaymentStatus] = None
    wants_delivery: bool
    version: int
    created_at: datetime
    updated_at: datetime


class OrderDetails(OrderOut):
    delivery_address: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_notes: Optional[str] = None
    payment_proof_url: Optional[str] = None
    items: List[OrderItemOut] = []
    status_history: List[OrderStatusHistoryOut] = []
