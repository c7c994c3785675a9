import socketio

from vitrine.core.config import config

# CORS aberto só em desenvolvimento
cors_origins = "*" if config.is_development else config.get_allowed_origins_list()

# Com REDIS_URL, o Socket.IO escala horizontalmente entre processos
client_manager = None
if config.REDIS_URL:
    client_manager = socketio.AsyncRedisManager(config.REDIS_URL)

sio = socketio.AsyncServer(
    cors_allowed_origins=cors_origins,
    logger=config.DEBUG,
    engineio_logger=config.DEBUG,
    async_mode="asgi",
    client_manager=client_manager
)
