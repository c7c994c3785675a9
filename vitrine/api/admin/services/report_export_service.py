# vitrine/api/admin/services/report_export_service.py
from decimal import Decimal
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session

from vitrine.api.admin.services import ledger_service
from vitrine.api.admin.services.billing_report_service import BillingReportService
from vitrine.core.utils.time_utils import format_brazil_datetime, format_month_year, now_utc

TEMPLATES_DIR = Path(__file__).resolve().parents[3] / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def _brl(value) -> str:
    """1234.5 -> '1.234,50'"""
    return f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


_env.filters["brl"] = _brl
_env.filters["datetime_br"] = format_brazil_datetime
_env.filters["month_label"] = format_month_year


def render_commission_report(db: Session, merchant_id: int, month_year: Optional[str] = None) -> str:
    """
    Gera o relatório imprimível de comissões de um lojista.

    Sem `month_year`, cobre todos os períodos apurados. Os números são os
    mesmos dos relatórios: nada é recalculado aqui.
    """
    merchant = ledger_service.get_merchant_or_404(db, merchant_id)
    balance = ledger_service.compute_balance(db, merchant_id)
    views = ledger_service.period_views(db, merchant_id)

    if month_year:
        breakdown = BillingReportService.get_monthly_breakdown(db, merchant_id, month_year)
        views = [v for v in views if v.period.month_year == month_year]
        orders = breakdown.orders
        payments = breakdown.payments
        title = f"Relatório de Comissões - {format_month_year(month_year)}"
    else:
        breakdowns = [
            BillingReportService.get_monthly_breakdown(db, merchant_id, v.period.month_year)
            for v in views
        ]
        orders = [order for b in breakdowns for order in b.orders]
        payments = BillingReportService.get_payment_history(db, merchant_id)
        title = "Relatório de Comissões - Todos os meses"

    # Rodapé com os números do período, nunca a soma de comissões por pedido
    delivered_sales = sum((v.period.total_sales for v in views), Decimal("0.00"))
    period_commission = sum((v.period.commission_amount for v in views), Decimal("0.00"))

    template = _env.get_template("commission_report.html")
    return template.render(
        title=title,
        merchant=merchant,
        balance=balance,
        periods=views,
        orders=orders,
        delivered_sales=delivered_sales,
        period_commission=period_commission,
        payments=payments,
        generated_at=format_brazil_datetime(now_utc(), "%d/%m/%Y %H:%M"),
    )
