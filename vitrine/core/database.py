"""
Database Layer
==============

Engine, sessões e dependências do FastAPI.

Características:
- ✅ Connection pooling por ambiente
- ✅ Rollback automático em erro
- ✅ SQLite suportado para desenvolvimento e testes
"""

import logging
from contextlib import contextmanager
from typing import Annotated

from fastapi import Depends, HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, NullPool

from vitrine.core.config import config
from vitrine.core.exceptions import CommissionError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════
# CONFIGURAÇÕES
# ═══════════════════════════════════════════════════════════

class DatabaseConfig:
    """Configurações centralizadas do banco de dados"""

    # Pool de Conexões - Produção
    PRODUCTION_POOL_SIZE = 20
    PRODUCTION_MAX_OVERFLOW = 30
    PRODUCTION_POOL_TIMEOUT = 10
    PRODUCTION_POOL_RECYCLE = 1800  # Recicla a cada 30min

    # Pool de Conexões - Desenvolvimento
    DEV_POOL_SIZE = 5
    DEV_MAX_OVERFLOW = 10
    DEV_POOL_TIMEOUT = 30
    DEV_POOL_RECYCLE = 3600


def get_engine_config() -> dict:
    """
    Retorna configuração do engine baseada no ambiente

    Returns:
        dict: Configuração do SQLAlchemy engine
    """

    if config.is_sqlite:
        return {
            "connect_args": {"check_same_thread": False},
            "echo": config.DEBUG,
        }

    if config.is_production:
        return {
            "poolclass": QueuePool,
            "pool_size": DatabaseConfig.PRODUCTION_POOL_SIZE,
            "max_overflow": DatabaseConfig.PRODUCTION_MAX_OVERFLOW,
            "pool_timeout": DatabaseConfig.PRODUCTION_POOL_TIMEOUT,
            "pool_recycle": DatabaseConfig.PRODUCTION_POOL_RECYCLE,
            "pool_pre_ping": True,
            "echo": False,
            "connect_args": {
                "connect_timeout": 10,
                "options": "-c statement_timeout=30000",  # 30s query timeout
                "application_name": "vitrine_api",
            },
            "execution_options": {
                "isolation_level": "READ COMMITTED"
            }
        }
    elif config.is_test:
        return {
            "poolclass": NullPool,
            "echo": False,
        }
    else:
        return {
            "poolclass": QueuePool,
            "pool_size": DatabaseConfig.DEV_POOL_SIZE,
            "max_overflow": DatabaseConfig.DEV_MAX_OVERFLOW,
            "pool_timeout": DatabaseConfig.DEV_POOL_TIMEOUT,
            "pool_recycle": DatabaseConfig.DEV_POOL_RECYCLE,
            "pool_pre_ping": True,
            "echo": config.DEBUG,
        }


# ═══════════════════════════════════════════════════════════
# ENGINE
# ═══════════════════════════════════════════════════════════

engine = create_engine(config.DATABASE_URL, **get_engine_config())


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# ═══════════════════════════════════════════════════════════
# DATABASE DEPENDENCIES
# ═══════════════════════════════════════════════════════════

def get_db():
    """
    Dependency para operações de leitura e escrita

    - ✅ Rollback em erro
    - ✅ Logging de exceções inesperadas
    """
    db = SessionLocal()
    try:
        yield db
    except (CommissionError, HTTPException):
        # Erro de negócio ou de acesso: não é falha do banco
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"❌ Erro na sessão: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


get_db_manager = contextmanager(get_db)

GetDBDep = Annotated[Session, Depends(get_db)]
