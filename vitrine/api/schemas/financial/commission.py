# vitrine/api/schemas/financial/commission.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from vitrine.api.schemas.shared.base import AppBaseModel
from vitrine.core.utils.enums import ClaimStatus, ClaimDecision, CommissionDisplayStatus, OrderStatus
from vitrine.core.utils.time_utils import parse_month_year


def _check_month_year(value: Optional[str]) -> Optional[str]:
    if value is not None:
        parse_month_year(value)
    return value


# ===================================================================
# ENTRADA
# ===================================================================

class PaymentCreate(AppBaseModel):
    """Pagamento registrado manualmente pelo administrador."""
    amount: Decimal
    notes: Optional[str] = None
    reference_month: Optional[str] = None
    receipt_url: Optional[str] = None

    @field_validator('reference_month')
    @classmethod
    def validate_reference_month(cls, value):
        return _check_month_year(value)


class ClaimCreate(AppBaseModel):
    """Comprovante enviado pelo lojista (URL já hospedada)."""
    receipt_url: str = Field(..., min_length=1)
    amount: Optional[Decimal] = None
    reference_month: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('reference_month')
    @classmethod
    def validate_reference_month(cls, value):
        return _check_month_year(value)


class ClaimResolve(AppBaseModel):
    decision: ClaimDecision
    reason: Optional[str] = None


# ===================================================================
# SAÍDA
# ===================================================================

class CommissionPaymentOut(AppBaseModel):
    id: int
    merchant_id: int
    amount: Decimal
    notes: Optional[str] = None
    reference_month: Optional[str] = None
    receipt_url: Optional[str] = None
    receipt_id: Optional[int] = None
    confirmed_at: datetime
    confirmed_by: int


class CommissionClaimOut(AppBaseModel):
    id: int
    merchant_id: int
    receipt_url: str
    amount_claimed: Decimal
    reference_month: str
    notes: Optional[str] = None
    status: ClaimStatus
    rejection_reason: Optional[str] = None
    uploaded_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None


class DueAlert(AppBaseModel):
    """Período mais antigo ainda em aberto e seu vencimento."""
    month_year: str
    due_date: date
    is_overdue: bool
    outstanding: Decimal


class BalanceSummary(AppBaseModel):
    merchant_id: int
    total_commission: Decimal
    total_paid: Decimal
    current_balance: Decimal
    # Pagamento acima do devido. Exibido à parte, nunca vira saldo negativo.
    credit: Decimal
    due_alert: Optional[DueAlert] = None


class CommissionPeriodOut(AppBaseModel):
    month_year: str
    month_label: str
    total_sales: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    orders_count: int
    delivered_count: int
    paid_amount: Decimal
    outstanding: Decimal
    status: CommissionDisplayStatus
    due_date: date
    calculated_at: datetime


class PaymentInstructionOut(AppBaseModel):
    amount: Decimal
    payload: str
    text_copy: str
    payee_name: str
    payee_key: str
    description: str


# ===================================================================
# RELATÓRIOS
# ===================================================================

class BreakdownOrder(AppBaseModel):
    id: int
    order_number: str
    created_at: datetime
    status: OrderStatus
    total: Decimal
    counts_for_commission: bool


class MonthlyBreakdown(AppBaseModel):
    merchant_id: int
    merchant_name: str
    month_year: str
    month_label: str
    orders_count: int
    delivered_count: int
    total_sales: Decimal
    commission_amount: Decimal
    status: Optional[CommissionDisplayStatus] = None
    orders: List[BreakdownOrder] = []
    payments: List[CommissionPaymentOut] = []
    balance: BalanceSummary


class MerchantCommissionOverview(AppBaseModel):
    merchant_id: int
    merchant_name: str
    month_year: str
    orders_count: int
    delivered_count: int
    total_sales: Decimal
    commission_amount: Decimal
    status: Optional[CommissionDisplayStatus] = None
    current_balance: Decimal
    credit: Decimal
    pending_claims: int


class GlobalRollup(AppBaseModel):
    """Painel do administrador: soma dos baldes de todos os lojistas."""
    pending: Decimal
    awaiting_confirmation: Decimal
    paid: Decimal
    total_to_receive: Decimal
    total_credit: Decimal
    merchants_count: int
    merchants_with_balance: int
    pending_claims: int


class YearlyMonthSummary(AppBaseModel):
    month_year: str
    month_label: str
    merchants_count: int
    total_sales: Decimal
    commission_amount: Decimal
    paid_amount: Decimal


class YearlySummary(AppBaseModel):
    year: int
    months: List[YearlyMonthSummary] = []
    total_sales: Decimal
    commission_amount: Decimal
