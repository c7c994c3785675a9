# vitrine/api/admin/events/vitrine_namespace.py
import logging
from urllib.parse import parse_qs

from socketio import AsyncNamespace
from sqlalchemy import select

from vitrine.api.admin.socketio.emitters import ADMINS_ROOM, customer_room, merchant_room
from vitrine.core import models
from vitrine.core.database import get_db_manager
from vitrine.core.security import verify_access_token
from vitrine.core.utils.enums import ActorRole

logger = logging.getLogger(__name__)


def rooms_for_token(token: str | None) -> list[str]:
    """
    Salas que o dono do token pode ouvir.

    Raises:
        ConnectionRefusedError: token ausente ou inválido
    """
    if not token:
        raise ConnectionRefusedError("Token obrigatório")

    actor = verify_access_token(token)
    if not actor:
        raise ConnectionRefusedError("Token inválido ou expirado")

    rooms = [customer_room(actor.user_id)]

    if actor.role == ActorRole.ADMIN:
        rooms.append(ADMINS_ROOM)
    elif actor.role == ActorRole.MERCHANT:
        with get_db_manager() as db:
            merchant_ids = db.execute(
                select(models.Merchant.id).where(models.Merchant.owner_id == actor.user_id)
            ).scalars().all()
        rooms.extend(merchant_room(merchant_id) for merchant_id in merchant_ids)

    return rooms


class VitrineNamespace(AsyncNamespace):
    """Canal único: cada conexão entra nas salas do próprio usuário."""

    async def on_connect(self, sid, environ, auth=None):
        token = (auth or {}).get("token") if isinstance(auth, dict) else None
        if not token:
            query = parse_qs(environ.get("QUERY_STRING", ""))
            token = query.get("token", [None])[0]

        rooms = rooms_for_token(token)
        for room in rooms:
            await self.enter_room(sid, room)

        logger.info(f"🔌 [SOCKET] {sid} conectado nas salas {rooms}")

    async def on_disconnect(self, sid, *args):
        logger.info(f"🔌 [SOCKET] {sid} desconectado")
