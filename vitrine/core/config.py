# vitrine/core/config.py
"""
Configurações da Aplicação - Vitrine
====================================

Gerencia variáveis de ambiente de forma centralizada e tipada.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Carrega .env do diretório raiz
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent.parent / ".env")


class Config(BaseSettings):
    """Configurações centralizadas da aplicação"""

    # ═══════════════════════════════════════════════════════════
    # 🌍 AMBIENTE
    # ═══════════════════════════════════════════════════════════

    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # ═══════════════════════════════════════════════════════════
    # 🗄️ BANCO DE DADOS
    # ═══════════════════════════════════════════════════════════

    DATABASE_URL: str

    # ═══════════════════════════════════════════════════════════
    # 🔴 REDIS (opcional, escala o Socket.IO horizontalmente)
    # ═══════════════════════════════════════════════════════════

    REDIS_URL: Optional[str] = None

    # ═══════════════════════════════════════════════════════════
    # 🔐 JWT
    # ═══════════════════════════════════════════════════════════

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # ═══════════════════════════════════════════════════════════
    # ☁️ AWS S3 (comprovantes)
    # ═══════════════════════════════════════════════════════════

    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: Optional[str] = None
    AWS_BUCKET_NAME: Optional[str] = None
    RECEIPTS_FOLDER: str = "commissions"

    # ═══════════════════════════════════════════════════════════
    # 💰 COMISSÃO DA PLATAFORMA
    # ═══════════════════════════════════════════════════════════

    COMMISSION_RATE: Decimal = Decimal("0.07")
    COMMISSION_DUE_DAY: int = 5  # Dia do mês seguinte em que a comissão vence
    BUSINESS_UTC_OFFSET_HOURS: int = -3  # Horário de Brasília (sem horário de verão)
    ORDER_NUMBER_PREFIX: str = "TF"

    # Recebedor PIX da plataforma
    PLATFORM_PIX_KEY: str = ""
    PLATFORM_PIX_KEY_TYPE: str = "cpf"
    PLATFORM_PIX_NAME: str = ""
    PLATFORM_PIX_CITY: str = ""
    PLATFORM_PIX_DESCRIPTION: str = "Comissao Plataforma"

    # ═══════════════════════════════════════════════════════════
    # 🌐 CORS
    # ═══════════════════════════════════════════════════════════

    ALLOWED_ORIGINS: str = "http://localhost:3000"

    def get_allowed_origins_list(self) -> list[str]:
        """Retorna lista de origens permitidas para CORS"""
        origins = [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

        if self.is_development:
            origins.extend([
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000",
            ])

        # Remove duplicatas mantendo ordem
        return list(dict.fromkeys(origins))

    # ═══════════════════════════════════════════════════════════
    # 🖥️ SERVIDOR
    # ═══════════════════════════════════════════════════════════

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # ═══════════════════════════════════════════════════════════
    # 🔧 PROPRIEDADES ÚTEIS
    # ═══════════════════════════════════════════════════════════

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT.lower() == "test"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# ✅ Instância global
config = Config()


def validate_config():
    """Valida configurações críticas"""
    errors = []

    if config.is_production and len(config.SECRET_KEY) < 32:
        errors.append("SECRET_KEY muito curta (mínimo 32 caracteres)")

    if config.ENVIRONMENT not in ["development", "test", "production"]:
        errors.append("ENVIRONMENT deve ser: development, test ou production")

    if not (Decimal("0") < config.COMMISSION_RATE < Decimal("1")):
        errors.append("COMMISSION_RATE deve estar entre 0 e 1")

    if not 1 <= config.COMMISSION_DUE_DAY <= 28:
        errors.append("COMMISSION_DUE_DAY deve estar entre 1 e 28")

    if errors:
        raise ValueError("Configuração inválida: " + "; ".join(errors))
