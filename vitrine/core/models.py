from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, Index, UniqueConstraint, CheckConstraint
from sqlalchemy import ForeignKey, String, Enum, Numeric, Text
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vitrine.core.utils.enums import (
    ActorRole, OrderStatus, PaymentStatus, PaymentMethod, ClaimStatus,
)


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Grava o .value ('delivered'), não o nome do membro ('DELIVERED')
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


MONEY = Numeric(12, 2)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    is_superuser: Mapped[bool] = mapped_column(default=False)

    merchants: Mapped[List["Merchant"]] = relationship(back_populates="owner")


class Merchant(Base, TimestampMixin):
    """Vitrine de um lojista. Nunca é apagada: pedidos são histórico."""
    __tablename__ = "merchants"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    owner: Mapped["User"] = relationship(back_populates="merchants")

    name: Mapped[str] = mapped_column(String(160))
    slug: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    pix_key: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    orders: Mapped[List["Order"]] = relationship(back_populates="merchant")
    commission_periods: Mapped[List["CommissionPeriod"]] = relationship(back_populates="merchant")
    payments: Mapped[List["CommissionPayment"]] = relationship(back_populates="merchant")
    receipts: Mapped[List["CommissionReceipt"]] = relationship(back_populates="merchant")


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)

    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    merchant: Mapped["Merchant"] = relationship(back_populates="orders")

    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    customer: Mapped["User"] = relationship()

    # --- Valores (total = subtotal + taxa de entrega, nunca editado direto) ---
    subtotal: Mapped[Decimal] = mapped_column(MONEY)
    delivery_fee: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(MONEY)

    # --- Status ---
    status: Mapped[OrderStatus] = mapped_column(
        _enum(OrderStatus, "order_status_enum"), default=OrderStatus.PENDING, index=True
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod, "payment_method_enum"))
    payment_status: Mapped[PaymentStatus | None] = mapped_column(
        _enum(PaymentStatus, "payment_status_enum"), nullable=True
    )
    payment_proof_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(nullable=False)

    # --- Entrega ---
    wants_delivery: Mapped[bool] = mapped_column(default=False)
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    status_history: Mapped[List["OrderStatusHistory"]] = relationship(
        back_populates="order",
        order_by="OrderStatusHistory.id",
    )

    __table_args__ = (
        Index('idx_orders_merchant_status_created', 'merchant_id', 'status', 'created_at'),
    )

    # UPDATE ... WHERE version = :lida. Escrita concorrente perde com StaleDataError
    __mapper_args__ = {"version_id_col": version}


class OrderItem(Base):
    """Snapshot do produto no momento da compra. Imutável."""
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    order: Mapped["Order"] = relationship(back_populates="items")

    product_id: Mapped[int | None] = mapped_column(nullable=True)
    product_name: Mapped[str] = mapped_column(String(200))
    unit_price: Mapped[Decimal] = mapped_column(MONEY)
    quantity: Mapped[int] = mapped_column()
    subtotal: Mapped[Decimal] = mapped_column(MONEY)


class OrderStatusHistory(Base):
    """Trilha de auditoria append-only de cada transição aplicada."""
    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)
    order: Mapped["Order"] = relationship(back_populates="status_history")

    field: Mapped[str] = mapped_column(String(20), default="status")  # 'status' | 'payment_status'
    from_value: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_value: Mapped[str] = mapped_column(String(32))
    actor_id: Mapped[int] = mapped_column()
    actor_role: Mapped[ActorRole] = mapped_column(_enum(ActorRole, "actor_role_enum"))
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CommissionPeriod(Base):
    """
    Comissão de um lojista em um mês.

    Sempre re-derivada dos pedidos entregues (ver commission_service.accrue).
    Não guarda status: o status exibido é calculado a partir do razão.
    """
    __tablename__ = "commission_periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    merchant: Mapped["Merchant"] = relationship(back_populates="commission_periods")

    month_year: Mapped[str] = mapped_column(String(7))  # Formato: 'YYYY-MM'
    total_sales: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4))
    commission_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))
    orders_count: Mapped[int] = mapped_column(default=0)
    delivered_count: Mapped[int] = mapped_column(default=0)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint('merchant_id', 'month_year', name='uq_commission_period_merchant_month'),
    )


class CommissionPayment(Base):
    """
    Entrada do razão: pagamento confirmado pelo administrador.

    Append-only. É a ÚNICA forma de reduzir o saldo de um lojista.
    """
    __tablename__ = "commission_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    merchant: Mapped["Merchant"] = relationship(back_populates="payments")

    amount: Mapped[Decimal] = mapped_column(MONEY)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_month: Mapped[str | None] = mapped_column(String(7), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Um comprovante confirmado gera no máximo um pagamento
    receipt_id: Mapped[int | None] = mapped_column(
        ForeignKey("commission_receipts.id"), unique=True, nullable=True
    )
    receipt: Mapped[Optional["CommissionReceipt"]] = relationship(back_populates="payment")

    confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    confirmed_by: Mapped[int] = mapped_column(ForeignKey("users.id"))

    __table_args__ = (
        CheckConstraint('amount > 0', name='ck_commission_payments_positive'),
    )


class CommissionReceipt(Base):
    """
    Comprovante enviado pelo lojista, aguardando decisão do administrador.

    Não altera o saldo. Nunca é sobrescrito: cada envio é uma nova linha.
    """
    __tablename__ = "commission_receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    merchant: Mapped["Merchant"] = relationship(back_populates="receipts")

    receipt_url: Mapped[str] = mapped_column(Text)
    amount_claimed: Mapped[Decimal] = mapped_column(MONEY)
    reference_month: Mapped[str] = mapped_column(String(7))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ClaimStatus] = mapped_column(
        _enum(ClaimStatus, "claim_status_enum"), default=ClaimStatus.PENDING, index=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    payment: Mapped[Optional["CommissionPayment"]] = relationship(back_populates="receipt", uselist=False)

    __table_args__ = (
        Index('idx_commission_receipts_merchant_status', 'merchant_id', 'status'),
    )
