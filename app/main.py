# app/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import setup_logging

setup_logging(settings.LOG_LEVEL)

# importing every model registers its table on Base.metadata
from app.db.session import engine
from app.models.base import Base
from app.models.user import UserProfile
from app.models.friendship import Friendship
from app.models.payment import Payment

from app.common.errors import register_exception_handlers
from app.common.events import event_bus
from app.common.websocket import manager
from app.middleware.edge_guard import EdgeGuardMiddleware
from app.routers import ai, auth, friends, hooks, pages, payments

Base.metadata.create_all(bind=engine)

# friendship transitions push view invalidations to connected clients
event_bus.subscribe(manager.handle_event)

app = FastAPI(title="Hapien API")

app.add_middleware(EdgeGuardMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/api/health")
def read_health():
    return {"message": "Hapien API is running!"}


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(friends.router, prefix="/api/friends", tags=["friends"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
app.include_router(hooks.router, prefix="/api/hooks", tags=["hooks"])
# catch-all, keep last
app.include_router(pages.router, tags=["pages"])
