import logging
import time

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.database import engine, AsyncSessionLocal
from core.errors import register_error_handlers
from models.base import Base
from services.gateway import ChatGateway

from routers.discover import router as discover_router
from routers.chat import router as chat_router
from routers.health import router as health_router

app = FastAPI(
    title="UniMatch Backend",
    version="0.1.0",
    description="Backend университетского приложения знакомств: свайпы, матчи и чат",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],        # Content-Type, Authorization и др.
)

logger = logging.getLogger("uvicorn.error")

register_error_handlers(app)

# Realtime-канал: Socket.IO на /socket.io/, всё остальное уходит в FastAPI.
# Запуск: uvicorn main:socket_app
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*" if settings.CORS_ORIGINS == "*" else settings.cors_origins,
    logger=settings.DEBUG,
    engineio_logger=False,
)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

# Шлюз владеет presence и подписками на комнаты; пересоздаётся на старте
app.state.gateway = ChatGateway(sio, session_factory=AsyncSessionLocal)


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response

app.include_router(discover_router)
app.include_router(chat_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():
    # Создаём все таблицы
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.gateway = ChatGateway(sio, session_factory=AsyncSessionLocal)


@app.get("/")
async def root():
    return {"message": "UniMatch Backend"}


@app.on_event("shutdown")
async def shutdown():
    # Закрываем все соединения пула
    await engine.dispose()
