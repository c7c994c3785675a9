# vitrine/core/utils/time_utils.py
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from vitrine.core.config import config

_MONTH_YEAR_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def business_tz() -> timezone:
    """Fuso do negócio (Brasília por padrão)."""
    return timezone(timedelta(hours=config.BUSINESS_UTC_OFFSET_HOURS))


def now_utc() -> datetime:
    """
    Retorna o datetime atual em UTC.
    """
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Normaliza para UTC. Datetime sem timezone (ex: lido do SQLite) é tratado como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_brazil_time(utc_dt: datetime) -> datetime:
    """
    Converte UTC para o horário do negócio de forma segura.
    """
    return as_utc(utc_dt).astimezone(business_tz())


def format_brazil_datetime(utc_dt: Optional[datetime], format_str: str = "%d/%m/%Y %H:%M") -> str:
    """
    Formata datetime para string no horário de Brasil.
    """
    if utc_dt is None:
        return "-"
    return to_brazil_time(utc_dt).strftime(format_str)


# ═══════════════════════════════════════════════════════════
# PERÍODOS MENSAIS (YYYY-MM)
# ═══════════════════════════════════════════════════════════

def parse_month_year(month_year: str) -> date:
    """
    Valida 'YYYY-MM' e retorna o primeiro dia do mês.

    Raises:
        ValueError: se o formato for inválido
    """
    match = _MONTH_YEAR_RE.match(month_year or "")
    if not match:
        raise ValueError(f"Período inválido: '{month_year}'. Use o formato YYYY-MM.")
    return date(int(match.group(1)), int(match.group(2)), 1)


def month_key(dt: datetime) -> str:
    """Período (YYYY-MM) ao qual um instante pertence, no fuso do negócio."""
    return to_brazil_time(dt).strftime("%Y-%m")


def current_month_key() -> str:
    return month_key(now_utc())


def month_bounds(month_year: str) -> tuple[datetime, datetime]:
    """
    Limites do mês em UTC: [início, fim).

    O mês é o calendário local do negócio, convertido para UTC para consulta.
    """
    first_day = parse_month_year(month_year)
    start_local = datetime.combine(first_day, time.min, tzinfo=business_tz())
    end_local = start_local + relativedelta(months=1)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def commission_due_date(month_year: str) -> date:
    """Vencimento da comissão de um mês: dia COMMISSION_DUE_DAY do mês seguinte."""
    next_month = parse_month_year(month_year) + relativedelta(months=1)
    return next_month.replace(day=config.COMMISSION_DUE_DAY)


def format_month_year(month_year: str) -> str:
    """'2025-03' -> 'Março/2025'"""
    first_day = parse_month_year(month_year)
    return f"{MONTH_NAMES_PT[first_day.month - 1]}/{first_day.year}"


MONTH_NAMES_PT = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]
