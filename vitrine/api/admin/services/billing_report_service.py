# vitrine/api/admin/services/billing_report_service.py

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, union
from sqlalchemy.orm import Session

from vitrine.api.admin.services import ledger_service, receipt_service
from vitrine.api.admin.services.ledger_service import PeriodView, ZERO
from vitrine.api.schemas.financial.commission import (
    BreakdownOrder, CommissionPaymentOut, GlobalRollup, MerchantCommissionOverview,
    MonthlyBreakdown, YearlyMonthSummary, YearlySummary,
)
from vitrine.core import models
from vitrine.core.utils.enums import ClaimStatus, CommissionDisplayStatus, OrderStatus
from vitrine.core.utils.time_utils import current_month_key, format_month_year, month_bounds


class BillingReportService:
    """
    Relatórios de conciliação. Somente leitura: nenhum método escreve no banco.

    Todos os números vêm de CommissionPeriod (apurado) e do razão de
    pagamentos, via ledger_service.
    """

    @staticmethod
    def _views_by_merchant(db: Session, merchant_ids: Optional[List[int]] = None) -> Dict[int, List[PeriodView]]:
        if merchant_ids is None:
            # Lojista só com pagamento (crédito sem período apurado) também conta
            merchant_ids = db.execute(
                union(
                    select(models.CommissionPeriod.merchant_id),
                    select(models.CommissionPayment.merchant_id),
                )
            ).scalars().all()
        return {merchant_id: ledger_service.period_views(db, merchant_id) for merchant_id in merchant_ids}

    @staticmethod
    def _find_view(views: List[PeriodView], month_year: str) -> Optional[PeriodView]:
        return next((v for v in views if v.period.month_year == month_year), None)

    @staticmethod
    def get_monthly_breakdown(db: Session, merchant_id: int, month_year: str) -> MonthlyBreakdown:
        """
        Detalhe de um lojista em um mês: pedidos, entregues, vendas e comissão.
        """
        merchant = ledger_service.get_merchant_or_404(db, merchant_id)
        start, end = month_bounds(month_year)

        orders = db.execute(
            select(models.Order).where(
                models.Order.merchant_id == merchant_id,
                models.Order.created_at >= start,
                models.Order.created_at < end,
            ).order_by(models.Order.created_at.asc(), models.Order.id.asc())
        ).scalars().all()

        view = BillingReportService._find_view(ledger_service.period_views(db, merchant_id), month_year)

        payments = db.execute(
            select(models.CommissionPayment).where(
                models.CommissionPayment.merchant_id == merchant_id,
                models.CommissionPayment.reference_month == month_year,
            ).order_by(models.CommissionPayment.confirmed_at.asc())
        ).scalars().all()

        return MonthlyBreakdown(
            merchant_id=merchant.id,
            merchant_name=merchant.name,
            month_year=month_year,
            month_label=format_month_year(month_year),
            orders_count=len(orders),
            delivered_count=len([o for o in orders if o.status == OrderStatus.DELIVERED]),
            total_sales=view.period.total_sales if view else ZERO,
            commission_amount=view.period.commission_amount if view else ZERO,
            status=view.status if view else None,
            orders=[
                BreakdownOrder(
                    id=o.id,
                    order_number=o.order_number,
                    created_at=o.created_at,
                    status=o.status,
                    total=o.total,
                    counts_for_commission=o.status == OrderStatus.DELIVERED,
                )
                for o in orders
            ],
            payments=[CommissionPaymentOut.model_validate(p) for p in payments],
            balance=ledger_service.compute_balance(db, merchant_id),
        )

    @staticmethod
    def get_merchant_history(db: Session, merchant_id: int, months: int = 6) -> List[PeriodView]:
        """
        Últimos `months` períodos do lojista, do mais recente para o mais antigo.
        """
        ledger_service.get_merchant_or_404(db, merchant_id)
        views = ledger_service.period_views(db, merchant_id)
        return list(reversed(views))[:months]

    @staticmethod
    def get_payment_history(db: Session, merchant_id: int) -> List[models.CommissionPayment]:
        ledger_service.get_merchant_or_404(db, merchant_id)
        return ledger_service.list_payments(db, merchant_id)

    @staticmethod
    def get_claim_history(db: Session, merchant_id: int) -> List[models.CommissionReceipt]:
        ledger_service.get_merchant_or_404(db, merchant_id)
        return receipt_service.list_claims(db, merchant_id=merchant_id)

    @staticmethod
    def get_merchants_overview(
            db: Session,
            month_year: Optional[str] = None,
            search: Optional[str] = None,
            status: Optional[CommissionDisplayStatus] = None,
    ) -> List[MerchantCommissionOverview]:
        """
        Lista de lojistas para o painel do administrador, com filtro por nome
        e por status exibido do mês.
        """
        month_year = month_year or current_month_key()

        query = select(models.Merchant).order_by(models.Merchant.name.asc())
        if search:
            query = query.where(func.lower(models.Merchant.name).contains(search.strip().lower()))
        merchants = db.execute(query).scalars().all()

        pending_claims = dict(db.execute(
            select(models.CommissionReceipt.merchant_id, func.count(models.CommissionReceipt.id))
            .where(models.CommissionReceipt.status == ClaimStatus.PENDING)
            .group_by(models.CommissionReceipt.merchant_id)
        ).all())

        overview = []
        for merchant in merchants:
            view = BillingReportService._find_view(ledger_service.period_views(db, merchant.id), month_year)
            if status and (view is None or view.status != status):
                continue

            balance = ledger_service.compute_balance(db, merchant.id)
            overview.append(MerchantCommissionOverview(
                merchant_id=merchant.id,
                merchant_name=merchant.name,
                month_year=month_year,
                orders_count=view.period.orders_count if view else 0,
                delivered_count=view.period.delivered_count if view else 0,
                total_sales=view.period.total_sales if view else ZERO,
                commission_amount=view.period.commission_amount if view else ZERO,
                status=view.status if view else None,
                current_balance=balance.current_balance,
                credit=balance.credit,
                pending_claims=pending_claims.get(merchant.id, 0),
            ))

        return overview

    @staticmethod
    def get_global_rollup(db: Session) -> GlobalRollup:
        """
        Soma dos baldes de todos os lojistas.

        pending + awaiting_confirmation == soma dos saldos atuais;
        paid é a parte da comissão já coberta pelo razão.
        """
        buckets = {status: ZERO for status in CommissionDisplayStatus}
        merchants_with_balance = 0
        total_credit = ZERO

        views_by_merchant = BillingReportService._views_by_merchant(db)
        for merchant_id, views in views_by_merchant.items():
            for view in views:
                buckets[CommissionDisplayStatus.PAID] += view.paid_amount
                if view.status != CommissionDisplayStatus.PAID:
                    buckets[view.status] += view.outstanding

            balance = ledger_service.compute_balance(db, merchant_id)
            total_credit += balance.credit
            if balance.current_balance > ZERO:
                merchants_with_balance += 1

        pending_claims = db.execute(
            select(func.count(models.CommissionReceipt.id))
            .where(models.CommissionReceipt.status == ClaimStatus.PENDING)
        ).scalar_one()

        return GlobalRollup(
            pending=buckets[CommissionDisplayStatus.PENDING],
            awaiting_confirmation=buckets[CommissionDisplayStatus.AWAITING_CONFIRMATION],
            paid=buckets[CommissionDisplayStatus.PAID],
            total_to_receive=buckets[CommissionDisplayStatus.PENDING] + buckets[CommissionDisplayStatus.AWAITING_CONFIRMATION],
            total_credit=total_credit,
            merchants_count=len(views_by_merchant),
            merchants_with_balance=merchants_with_balance,
            pending_claims=pending_claims,
        )

    @staticmethod
    def get_yearly_summary(db: Session, year: int) -> YearlySummary:
        """
        Retorna um resumo das comissões por mês do ano, somando todos os lojistas.
        """
        prefix = f"{year:04d}-"
        per_month = defaultdict(lambda: {'merchants': 0, 'sales': ZERO, 'commission': ZERO, 'paid': ZERO})

        for views in BillingReportService._views_by_merchant(db).values():
            for view in views:
                if not view.period.month_year.startswith(prefix):
                    continue
                bucket = per_month[view.period.month_year]
                bucket['merchants'] += 1
                bucket['sales'] += view.period.total_sales
                bucket['commission'] += view.period.commission_amount
                bucket['paid'] += view.paid_amount

        months = [
            YearlyMonthSummary(
                month_year=month_year,
                month_label=format_month_year(month_year),
                merchants_count=data['merchants'],
                total_sales=data['sales'],
                commission_amount=data['commission'],
                paid_amount=data['paid'],
            )
            for month_year, data in sorted(per_month.items())
        ]

        return YearlySummary(
            year=year,
            months=months,
            total_sales=sum((m.total_sales for m in months), ZERO),
            commission_amount=sum((m.commission_amount for m in months), ZERO),
        )
