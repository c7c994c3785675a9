# vitrine/api/admin/socketio/emitters.py
"""
Sinais de "algo mudou, busque de novo".

Os payloads levam só ids e o nome do evento, nunca saldo ou valores:
o cliente sempre relê o estado pela API. Falhas são logadas e engolidas.
"""
import logging
from typing import Optional

from vitrine.socketio_instance import sio

logger = logging.getLogger(__name__)

NAMESPACE = '/vitrine'
ADMINS_ROOM = 'admins'


def merchant_room(merchant_id: int) -> str:
    return f"merchant:{merchant_id}"


def customer_room(customer_id: int) -> str:
    return f"customer:{customer_id}"


async def _publish(event_name: str, payload: dict, rooms: list[str]) -> None:
    try:
        for room in rooms:
            await sio.emit(event_name, payload, namespace=NAMESPACE, room=room)
        logger.info(f"📡 [EMIT] {event_name} → {', '.join(rooms)}")
    except Exception as e:
        logger.error(f"❌ Erro ao emitir {event_name}: {e}", exc_info=True)


async def emit_order_status_changed(order_id: int, merchant_id: int, customer_id: int, status: str):
    await _publish(
        "order_status_changed",
        {"event": "order_status_changed", "order_id": order_id, "merchant_id": merchant_id, "status": status},
        [merchant_room(merchant_id), customer_room(customer_id)],
    )


async def emit_order_payment_status_changed(order_id: int, merchant_id: int, customer_id: int, payment_status: str):
    await _publish(
        "order_payment_status_changed",
        {
            "event": "order_payment_status_changed",
            "order_id": order_id,
            "merchant_id": merchant_id,
            "payment_status": payment_status,
        },
        [merchant_room(merchant_id), customer_room(customer_id)],
    )


async def emit_commission_payment_registered(merchant_id: int, payment_id: int):
    await _publish(
        "commission_payment_registered",
        {"event": "commission_payment_registered", "merchant_id": merchant_id, "payment_id": payment_id},
        [merchant_room(merchant_id), ADMINS_ROOM],
    )


async def emit_commission_claim_submitted(merchant_id: int, claim_id: int):
    await _publish(
        "commission_claim_submitted",
        {"event": "commission_claim_submitted", "merchant_id": merchant_id, "claim_id": claim_id},
        [merchant_room(merchant_id), ADMINS_ROOM],
    )


async def emit_commission_claim_resolved(
        merchant_id: int,
        claim_id: int,
        status: str,
        payment_id: Optional[int] = None,
):
    await _publish(
        "commission_claim_resolved",
        {
            "event": "commission_claim_resolved",
            "merchant_id": merchant_id,
            "claim_id": claim_id,
            "status": status,
            "payment_id": payment_id,
        },
        [merchant_room(merchant_id), ADMINS_ROOM],
    )
