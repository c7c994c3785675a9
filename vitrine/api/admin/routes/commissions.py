from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile

from vitrine.api.admin.services import ledger_service, receipt_service
from vitrine.api.admin.services.billing_report_service import BillingReportService
from vitrine.api.admin.services.payment_instruction import (
    PaymentInstructionGenerator, build_payment_instruction, textual_instruction,
)
from vitrine.api.admin.socketio.emitters import emit_commission_claim_submitted
from vitrine.api.schemas.financial.commission import (
    BalanceSummary, ClaimCreate, CommissionClaimOut, CommissionPaymentOut, CommissionPeriodOut,
    PaymentInstructionOut,
)
from vitrine.core import aws
from vitrine.core.database import GetDBDep
from vitrine.core.dependencies import GetMerchantDep
from vitrine.core.utils.time_utils import current_month_key, format_month_year, parse_month_year

router = APIRouter(prefix="/stores/{merchant_id}/commissions", tags=["Commissions"])


def get_instruction_generator() -> PaymentInstructionGenerator:
    """Gerador do payload PIX. Substituível via dependency_overrides."""
    return textual_instruction


def _period_out(view: ledger_service.PeriodView) -> CommissionPeriodOut:
    period = view.period
    return CommissionPeriodOut(
        month_year=period.month_year,
        month_label=format_month_year(period.month_year),
        total_sales=period.total_sales,
        commission_rate=period.commission_rate,
        commission_amount=period.commission_amount,
        orders_count=period.orders_count,
        delivered_count=period.delivered_count,
        paid_amount=view.paid_amount,
        outstanding=view.outstanding,
        status=view.status,
        due_date=view.due_date,
        calculated_at=period.calculated_at,
    )


@router.get("/balance", response_model=BalanceSummary)
def get_balance(db: GetDBDep, merchant: GetMerchantDep):
    return ledger_service.get_balance_summary(db, merchant.id)


@router.get("/periods", response_model=list[CommissionPeriodOut])
def list_periods(
        db: GetDBDep,
        merchant: GetMerchantDep,
        months: int = Query(12, ge=1, le=120),
):
    return [_period_out(v) for v in BillingReportService.get_merchant_history(db, merchant.id, months)]


@router.get("/payments", response_model=list[CommissionPaymentOut])
def list_payments(db: GetDBDep, merchant: GetMerchantDep):
    return BillingReportService.get_payment_history(db, merchant.id)


@router.get("/receipts", response_model=list[CommissionClaimOut])
def list_receipts(db: GetDBDep, merchant: GetMerchantDep):
    return BillingReportService.get_claim_history(db, merchant.id)


@router.post("/receipts", response_model=CommissionClaimOut, status_code=201)
def submit_receipt(
        payload: ClaimCreate,
        db: GetDBDep,
        merchant: GetMerchantDep,
        background_tasks: BackgroundTasks,
):
    claim = receipt_service.submit_claim(
        db,
        merchant_id=merchant.id,
        receipt_url=payload.receipt_url,
        claimed_amount=payload.amount,
        reference_month=payload.reference_month,
        notes=payload.notes,
    )

    background_tasks.add_task(emit_commission_claim_submitted, merchant_id=merchant.id, claim_id=claim.id)
    return claim


@router.post("/receipts/upload", response_model=CommissionClaimOut, status_code=201)
def upload_receipt(
        db: GetDBDep,
        merchant: GetMerchantDep,
        background_tasks: BackgroundTasks,
        file: UploadFile = File(...),
        amount: Optional[str] = Form(None),
        reference_month: Optional[str] = Form(None),
        notes: Optional[str] = Form(None),
):
    if reference_month:
        try:
            parse_month_year(reference_month)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    else:
        reference_month = ledger_service.oldest_outstanding_month(db, merchant.id) or current_month_key()

    # Valor recusado não deixa arquivo órfão no bucket
    claimed_amount = receipt_service.resolve_claim_amount(db, merchant.id, amount or None)

    receipt_url = aws.upload_receipt(file, merchant.id, reference_month)
    if not receipt_url:
        raise HTTPException(status_code=502, detail="Falha ao enviar o comprovante")

    claim = receipt_service.submit_claim(
        db,
        merchant_id=merchant.id,
        receipt_url=receipt_url,
        claimed_amount=claimed_amount,
        reference_month=reference_month,
        notes=notes,
    )

    background_tasks.add_task(emit_commission_claim_submitted, merchant_id=merchant.id, claim_id=claim.id)
    return claim


@router.get("/payment-instruction", response_model=PaymentInstructionOut)
def get_payment_instruction(
        db: GetDBDep,
        merchant: GetMerchantDep,
        generator: PaymentInstructionGenerator = Depends(get_instruction_generator),
):
    return build_payment_instruction(db, merchant.id, generator)
