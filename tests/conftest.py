"""
Fixtures compartilhadas
=======================
Banco SQLite em memória por teste, lojistas/usuários de exemplo e TestClient.
"""

import os

# Precisa vir antes de qualquer import de `vitrine`
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["REDIS_URL"] = ""
os.environ["PLATFORM_PIX_KEY"] = "financeiro@vitrine.com.br"
os.environ["PLATFORM_PIX_KEY_TYPE"] = "email"
os.environ["PLATFORM_PIX_NAME"] = "Vitrine Plataforma"
os.environ["PLATFORM_PIX_CITY"] = "Sao Paulo"

from datetime import datetime, timezone
from decimal import Decimal
from itertools import count
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vitrine.api.admin.services import commission_service
from vitrine.core import models
from vitrine.core.database import get_db
from vitrine.core.security import Actor, create_access_token
from vitrine.core.utils.enums import ActorRole, OrderStatus, PaymentMethod
from vitrine.core.utils.time_utils import month_key

ADMIN_ID = 1
OWNER_A_ID = 2
OWNER_B_ID = 3
CUSTOMER_ID = 4
OTHER_CUSTOMER_ID = 5

_order_numbers = count(1)


# ═══════════════════════════════════════════════════════════
# BANCO
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def engine():
    """Banco novo em memória a cada teste"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSessionLocal()
    yield session
    session.close()


def seed_base_data(session):
    """Usuários e duas vitrines (A do usuário 2, B do usuário 3)"""
    session.add_all([
        models.User(id=ADMIN_ID, name="Admin", email="admin@vitrine.com.br", is_superuser=True),
        models.User(id=OWNER_A_ID, name="Ana Lojista", email="ana@lojaa.com.br"),
        models.User(id=OWNER_B_ID, name="Bruno Lojista", email="bruno@lojab.com.br"),
        models.User(id=CUSTOMER_ID, name="Carla Cliente", email="carla@gmail.com"),
        models.User(id=OTHER_CUSTOMER_ID, name="Davi Cliente", email="davi@gmail.com"),
    ])
    session.add_all([
        models.Merchant(id=1, owner_id=OWNER_A_ID, name="Padaria Pão Quente", slug="padaria-pao-quente"),
        models.Merchant(id=2, owner_id=OWNER_B_ID, name="Bazar da Esquina", slug="bazar-da-esquina"),
    ])
    session.commit()


@pytest.fixture
def seeded_db(db):
    seed_base_data(db)
    return db


@pytest.fixture
def merchant_a(seeded_db):
    return seeded_db.get(models.Merchant, 1)


@pytest.fixture
def merchant_b(seeded_db):
    return seeded_db.get(models.Merchant, 2)


# ═══════════════════════════════════════════════════════════
# ATORES
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def admin_actor():
    return Actor(user_id=ADMIN_ID, role=ActorRole.ADMIN)


@pytest.fixture
def merchant_actor():
    return Actor(user_id=OWNER_A_ID, role=ActorRole.MERCHANT)


@pytest.fixture
def other_merchant_actor():
    return Actor(user_id=OWNER_B_ID, role=ActorRole.MERCHANT)


@pytest.fixture
def customer_actor():
    return Actor(user_id=CUSTOMER_ID, role=ActorRole.CUSTOMER)


# ═══════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════

def make_order(
        session,
        merchant_id: int = 1,
        total: str = "100.00",
        status: OrderStatus = OrderStatus.DELIVERED,
        created_at: datetime | None = None,
        payment_method: PaymentMethod = PaymentMethod.PIX,
        customer_id: int = CUSTOMER_ID,
) -> models.Order:
    """Insere um pedido direto no banco (sem passar pela máquina de estados)"""
    created_at = created_at or datetime(2025, 3, 15, 15, 0, tzinfo=timezone.utc)
    value = Decimal(total)
    order = models.Order(
        order_number=f"TF20250315-{next(_order_numbers):04d}",
        merchant_id=merchant_id,
        customer_id=customer_id,
        subtotal=value,
        delivery_fee=Decimal("0.00"),
        total=value,
        status=status,
        payment_method=payment_method,
        created_at=created_at,
        items=[models.OrderItem(product_name="Item", unit_price=value, quantity=1, subtotal=value)],
    )
    session.add(order)
    session.commit()
    return order


def make_delivered_and_accrue(session, merchant_id: int = 1, total: str = "100.00", created_at=None):
    order = make_order(session, merchant_id=merchant_id, total=total, created_at=created_at)
    commission_service.accrue(session, merchant_id, month_key(order.created_at))
    session.commit()
    return order


def auth_headers(user_id: int, role: ActorRole) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


# ═══════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def mock_sio():
    """Socket.IO falso: as notificações viram chamadas registradas"""
    with patch("vitrine.api.admin.socketio.emitters.sio") as sio:
        sio.emit = AsyncMock()
        yield sio


@pytest.fixture
def client(seeded_db, mock_sio):
    from vitrine.main import fast_app

    def override_get_db():
        yield seeded_db

    fast_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fast_app) as test_client:
        yield test_client
    fast_app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, ActorRole.ADMIN)


@pytest.fixture
def merchant_headers():
    return auth_headers(OWNER_A_ID, ActorRole.MERCHANT)


@pytest.fixture
def other_merchant_headers():
    return auth_headers(OWNER_B_ID, ActorRole.MERCHANT)


@pytest.fixture
def customer_headers():
    return auth_headers(CUSTOMER_ID, ActorRole.CUSTOMER)
