# vitrine/core/security.py

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta, datetime, timezone
from typing import Optional

import jwt
from jwt import InvalidTokenError
from fastapi.security import OAuth2PasswordBearer

from vitrine.core.config import config
from vitrine.core.utils.enums import ActorRole

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════
# CONSTANTES DE SEGURANÇA
# ═══════════════════════════════════════════════════════════

# O login acontece no provedor de identidade; aqui só validamos o token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@dataclass(frozen=True)
class Actor:
    """Identidade já autenticada de quem chama a API."""
    user_id: int
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


# ═══════════════════════════════════════════════════════════
# FUNÇÕES DE TOKENS
# ═══════════════════════════════════════════════════════════

def create_access_token(
        user_id: int,
        role: ActorRole,
        expires_delta: timedelta | None = None,
) -> str:
    """
    Cria um access token JWT.

    Args:
        user_id: ID do usuário (vai no claim "sub")
        role: papel do usuário (claim "role")
        expires_delta: Tempo customizado de expiração (opcional)

    Returns:
        Token JWT codificado como string
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "sub": str(user_id),
        "role": ActorRole(role).value,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_access_token(token: str) -> Optional[Actor]:
    """
    Decodifica o token e monta o Actor.

    Returns:
        Actor ou None se o token for inválido, expirado ou sem claims
    """
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except InvalidTokenError as e:
        logger.warning(f"⚠️ Token inválido: {e}")
        return None

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not role:
        return None

    try:
        return Actor(user_id=int(sub), role=ActorRole(role))
    except ValueError:
        logger.warning(f"⚠️ Claims inválidos no token: sub={sub!r} role={role!r}")
        return None
