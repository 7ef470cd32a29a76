# app/routers/ai.py

from fastapi import APIRouter, Depends

from app.common.deps import get_chat_relay
from app.services.ai_chat import ChatRelay, ChatReply, ChatRequest

router = APIRouter()


@router.post("/chat", response_model=ChatReply)
async def chat(request: ChatRequest, relay: ChatRelay = Depends(get_chat_relay)):
    return await relay.chat(request)
