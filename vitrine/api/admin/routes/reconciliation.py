from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query
from fastapi.responses import HTMLResponse

from vitrine.api.admin.services import commission_service, ledger_service, receipt_service
from vitrine.api.admin.services.billing_report_service import BillingReportService
from vitrine.api.admin.services.report_export_service import render_commission_report
from vitrine.api.admin.socketio.emitters import (
    emit_commission_claim_resolved, emit_commission_payment_registered,
)
from vitrine.api.schemas.financial.commission import (
    ClaimResolve, CommissionClaimOut, CommissionPaymentOut, GlobalRollup, MerchantCommissionOverview,
    MonthlyBreakdown, PaymentCreate, YearlySummary,
)
from vitrine.core.database import GetDBDep
from vitrine.core.dependencies import GetAdminDep
from vitrine.core.utils.enums import ClaimStatus, CommissionDisplayStatus
from vitrine.core.utils.time_utils import current_month_key, parse_month_year

router = APIRouter(prefix="/admin/commissions", tags=["Commission Reconciliation"])


def _valid_month(month_year: Optional[str]) -> Optional[str]:
    if month_year is None:
        return None
    try:
        parse_month_year(month_year)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return month_year


@router.get("", response_model=list[MerchantCommissionOverview])
def merchants_overview(
        db: GetDBDep,
        admin: GetAdminDep,
        month_year: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        status: Optional[CommissionDisplayStatus] = Query(None),
):
    return BillingReportService.get_merchants_overview(db, _valid_month(month_year), search, status)


@router.get("/rollup", response_model=GlobalRollup)
def global_rollup(db: GetDBDep, admin: GetAdminDep):
    return BillingReportService.get_global_rollup(db)


@router.get("/yearly/{year}", response_model=YearlySummary)
def yearly_summary(year: int, db: GetDBDep, admin: GetAdminDep):
    return BillingReportService.get_yearly_summary(db, year)


@router.get("/receipts", response_model=list[CommissionClaimOut])
def list_receipts(
        db: GetDBDep,
        admin: GetAdminDep,
        status: Optional[ClaimStatus] = Query(ClaimStatus.PENDING),
        merchant_id: Optional[int] = Query(None),
):
    return receipt_service.list_claims(db, merchant_id=merchant_id, status=status)


@router.get("/merchants/{merchant_id}/report", response_model=MonthlyBreakdown)
def monthly_breakdown(
        merchant_id: int,
        db: GetDBDep,
        admin: GetAdminDep,
        month_year: Optional[str] = Query(None),
):
    return BillingReportService.get_monthly_breakdown(
        db, merchant_id, _valid_month(month_year) or current_month_key()
    )


@router.get("/merchants/{merchant_id}/export", response_class=HTMLResponse)
def export_report(
        merchant_id: int,
        db: GetDBDep,
        admin: GetAdminDep,
        month_year: Optional[str] = Query(None),
):
    return HTMLResponse(render_commission_report(db, merchant_id, _valid_month(month_year)))


@router.post("/merchants/{merchant_id}/payments", response_model=CommissionPaymentOut, status_code=201)
def register_payment(
        merchant_id: int,
        payload: PaymentCreate,
        db: GetDBDep,
        admin: GetAdminDep,
        background_tasks: BackgroundTasks,
):
    payment = ledger_service.register_payment(
        db,
        merchant_id=merchant_id,
        amount=payload.amount,
        admin=admin,
        notes=payload.notes,
        receipt_url=payload.receipt_url,
        reference_month=payload.reference_month,
    )

    background_tasks.add_task(emit_commission_payment_registered, merchant_id=merchant_id, payment_id=payment.id)
    return payment


@router.post("/receipts/{claim_id}/resolve", response_model=CommissionClaimOut)
def resolve_receipt(
        claim_id: int,
        payload: ClaimResolve,
        db: GetDBDep,
        admin: GetAdminDep,
        background_tasks: BackgroundTasks,
):
    claim = receipt_service.resolve_claim(db, claim_id, payload.decision, admin, payload.reason)

    payment_id = claim.payment.id if claim.payment else None
    background_tasks.add_task(
        emit_commission_claim_resolved,
        merchant_id=claim.merchant_id, claim_id=claim.id, status=claim.status.value, payment_id=payment_id,
    )
    if payment_id:
        background_tasks.add_task(
            emit_commission_payment_registered, merchant_id=claim.merchant_id, payment_id=payment_id
        )
    return claim


@router.post("/recalculate")
def recalculate(
        db: GetDBDep,
        admin: GetAdminDep,
        merchant_id: Optional[int] = Query(None),
):
    if merchant_id is not None:
        ledger_service.get_merchant_or_404(db, merchant_id)
    periods = commission_service.accrue_all(db, merchant_id)
    return {"recalculated_periods": len(periods)}
